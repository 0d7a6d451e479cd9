"""
Push sources feeding an AuthSession.

An auth-state source reports sign-in/sign-out as ``AuthUser | None``; a
profile source streams the profile document of one user. Both return a
zero-argument callable that detaches the subscription.
"""
import logging
import threading
from typing import Callable, List, Optional, Protocol

import firebase_admin
from firebase_admin import firestore

from .firebase import verify_id_token
from .models import AuthUser, UserProfile

logger = logging.getLogger(__name__)

Unsubscribe = Callable[[], None]
AuthStateCallback = Callable[[Optional[AuthUser]], None]
ProfileCallback = Callable[[Optional[UserProfile]], None]
ErrorCallback = Callable[[Exception], None]


class AuthStateSource(Protocol):
    def on_auth_state_changed(self, callback: AuthStateCallback) -> Unsubscribe:
        ...


class ProfileSource(Protocol):
    def subscribe(self, uid: str, on_profile: ProfileCallback,
                  on_error: ErrorCallback) -> Unsubscribe:
        ...


class IdTokenAuthSource:
    """In-process auth-state source driven by verified Firebase ID tokens.

    New subscribers are called straight away with the current user, then on
    every ``sign_in``/``sign_out``.
    """

    def __init__(self, app: Optional[firebase_admin.App] = None, check_revoked: bool = False):
        self.app = app
        self.check_revoked = check_revoked
        self._current_user: Optional[AuthUser] = None
        self._callbacks: List[AuthStateCallback] = []
        self._lock = threading.Lock()

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current_user

    def on_auth_state_changed(self, callback: AuthStateCallback) -> Unsubscribe:
        with self._lock:
            self._callbacks.append(callback)
            current = self._current_user

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        callback(current)
        return unsubscribe

    def sign_in(self, id_token: str) -> AuthUser:
        """Verify ``id_token`` and announce the user it belongs to."""
        user = verify_id_token(id_token, app=self.app, check_revoked=self.check_revoked)
        logger.info(f"Auth state: signed in as {user.uid}")
        self._emit(user)
        return user

    def sign_out(self) -> None:
        logger.info("Auth state: signed out")
        self._emit(None)

    def _emit(self, user: Optional[AuthUser]) -> None:
        with self._lock:
            self._current_user = user
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(user)


class FirestoreProfileSource:
    """Streams ``<collection>/<uid>`` documents through Firestore snapshot listeners."""

    def __init__(self, client=None, collection: str = "users",
                 app: Optional[firebase_admin.App] = None):
        self.client = client if client is not None else firestore.client(app)
        self.collection = collection

    def subscribe(self, uid: str, on_profile: ProfileCallback,
                  on_error: ErrorCallback) -> Unsubscribe:
        doc_ref = self.client.collection(self.collection).document(uid)

        def on_snapshot(doc_snapshots, changes, read_time):
            # Runs on the Firestore watch thread.
            try:
                snapshot = doc_snapshots[0] if doc_snapshots else None
                if snapshot is None or not snapshot.exists:
                    on_profile(None)
                else:
                    on_profile(UserProfile.from_document(uid, snapshot.to_dict()))
            except Exception as e:
                on_error(e)

        logger.info(f"Subscribing to profile snapshots for UID: {uid}")
        watch = doc_ref.on_snapshot(on_snapshot)
        return watch.unsubscribe
