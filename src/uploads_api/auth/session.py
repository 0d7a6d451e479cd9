"""
Client-side auth/profile state.

``AuthSession`` listens for auth-state changes and keeps a live subscription
on the signed-in user's profile document. On every change the previous
profile subscription is detached before a new one is attached, so a stale
listener can never overwrite the state of the current user.
"""
import logging
import threading
from typing import Callable, List, Optional

from .models import AuthState, AuthUser, UserProfile
from .firebase import get_firebase_app
from .sources import (
    AuthStateSource,
    FirestoreProfileSource,
    IdTokenAuthSource,
    ProfileSource,
    Unsubscribe,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[AuthState], None]


class AuthSession:
    """Mirrors the signed-in user and their profile as observable state."""

    def __init__(self, auth_source: AuthStateSource, profile_source: ProfileSource):
        self.auth_source = auth_source
        self.profile_source = profile_source

        self._user: Optional[AuthUser] = None
        self._user_profile: Optional[UserProfile] = None
        self._loading = True

        self._auth_unsubscribe: Optional[Unsubscribe] = None
        self._profile_unsubscribe: Optional[Unsubscribe] = None
        # Identifies the live profile subscription; callbacks carrying any other
        # token belong to a detached listener.
        self._profile_token: Optional[object] = None

        self._started = False
        self._listeners: List[StateListener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    @property
    def user_profile(self) -> Optional[UserProfile]:
        return self._user_profile

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def user_id(self) -> Optional[str]:
        return self._user.uid if self._user else None

    @property
    def state(self) -> AuthState:
        with self._lock:
            return AuthState(
                user=self._user,
                user_profile=self._user_profile,
                loading=self._loading,
                user_id=self.user_id,
            )

    def add_listener(self, listener: StateListener) -> Callable[[], None]:
        """Register a callback for state changes; returns a function removing it."""
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Subscribe to auth-state changes. Calling it twice is a no-op."""
        with self._lock:
            if self._started:
                return
            self._started = True
            self._loading = True
            logger.info("AuthSession: Setting up auth state listener.")
        # The source may call back straight away with the current user.
        unsubscribe = self.auth_source.on_auth_state_changed(self._handle_auth_state_changed)
        with self._lock:
            self._auth_unsubscribe = unsubscribe

    def close(self) -> None:
        """Detach the auth listener and any active profile listener."""
        with self._lock:
            logger.info("AuthSession: Unsubscribing from auth state and any active profile listener.")
            auth_unsubscribe = self._auth_unsubscribe
            self._auth_unsubscribe = None
            self._started = False
            profile_unsubscribe = self._take_profile_unsubscribe()
        # Unsubscribing may join the snapshot thread, which can be waiting on the lock.
        if auth_unsubscribe is not None:
            auth_unsubscribe()
        if profile_unsubscribe is not None:
            profile_unsubscribe()

    def refresh_user_profile(self) -> None:
        """Kept for explicit refresh requests; the snapshot listener already keeps the profile current."""
        logger.info("AuthSession: refresh_user_profile called. No-op while the profile listener is active.")

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _handle_auth_state_changed(self, user: Optional[AuthUser]) -> None:
        with self._lock:
            logger.info(f"AuthSession: auth state changed. UID: {user.uid if user else 'null'}")
            previous_unsubscribe = self._take_profile_unsubscribe()

            self._user = user
            self._user_profile = None
            self._loading = user is not None

        if previous_unsubscribe is not None:
            previous_unsubscribe()

        with self._lock:
            if user is None:
                logger.info("AuthSession: No user. Loading false, profile null.")
            elif self._user is user and self._profile_token is None:
                self._attach_profile_listener(user.uid)
            state = self.state
        self._notify(state)

    def _attach_profile_listener(self, uid: str) -> None:
        token = object()
        self._profile_token = token
        try:
            self._profile_unsubscribe = self.profile_source.subscribe(
                uid,
                lambda profile: self._handle_profile(token, uid, profile),
                lambda error: self._handle_profile_error(token, uid, error),
            )
        except Exception as e:
            logger.error(f"AuthSession: Could not subscribe to profile for UID {uid}: {e}")
            self._profile_token = None
            self._user_profile = None
            self._loading = False

    def _take_profile_unsubscribe(self) -> Optional[Unsubscribe]:
        """Invalidate the live profile subscription; the caller runs the returned unsubscribe outside the lock."""
        unsubscribe = self._profile_unsubscribe
        self._profile_unsubscribe = None
        self._profile_token = None
        if unsubscribe is not None:
            logger.info(f"AuthSession: Unsubscribing from previous profile listener for UID: {self.user_id}")
        return unsubscribe

    def _handle_profile(self, token: object, uid: str, profile: Optional[UserProfile]) -> None:
        with self._lock:
            if token is not self._profile_token:
                logger.debug(f"AuthSession: Ignoring snapshot from detached listener for UID: {uid}")
                return
            self._user_profile = profile
            self._loading = False
            if profile is None:
                logger.warning(f"AuthSession: User profile NOT FOUND for UID: {uid}")
            else:
                logger.info(f"AuthSession: User profile updated from snapshot for UID: {uid}")
            state = self.state
        self._notify(state)

    def _handle_profile_error(self, token: object, uid: str, error: Exception) -> None:
        with self._lock:
            if token is not self._profile_token:
                return
            logger.error(f"AuthSession: Error listening to user profile for UID {uid}: {error}")
            self._user_profile = None
            self._loading = False
            state = self.state
        self._notify(state)

    def _notify(self, state: AuthState) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(state)
            except Exception:
                logger.exception("AuthSession: state listener raised")


def build_auth_session(settings) -> AuthSession:
    """Wire an AuthSession to Firebase: ID-token sign-in plus Firestore profile snapshots."""
    app = get_firebase_app(settings.firebase_project_id)
    return AuthSession(
        auth_source=IdTokenAuthSource(app=app),
        profile_source=FirestoreProfileSource(collection=settings.users_collection, app=app),
    )
