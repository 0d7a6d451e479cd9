"""Firebase Admin SDK bootstrap and ID-token verification."""
import logging
import threading
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth
from firebase_admin import exceptions as firebase_exceptions

from .models import AuthUser

logger = logging.getLogger(__name__)

_app_lock = threading.Lock()


class AuthTokenError(Exception):
    """An ID token was missing, malformed, expired, or revoked."""


def get_firebase_app(project_id: Optional[str] = None) -> firebase_admin.App:
    """Return the default Firebase app, initializing it on first use.

    Credentials come from the environment (GOOGLE_APPLICATION_CREDENTIALS or
    the runtime's default service account).
    """
    with _app_lock:
        try:
            return firebase_admin.get_app()
        except ValueError:
            options = {"projectId": project_id} if project_id else None
            logger.info(f"Initializing Firebase app (project: {project_id or 'from environment'})")
            return firebase_admin.initialize_app(options=options)


def verify_id_token(id_token: str, app: Optional[firebase_admin.App] = None,
                    check_revoked: bool = False) -> AuthUser:
    """Verify a Firebase ID token and return the user it identifies.

    Raises:
        AuthTokenError: the token is empty or fails verification.
    """
    if not id_token:
        raise AuthTokenError("Missing ID token")
    try:
        claims = firebase_auth.verify_id_token(id_token, app=app, check_revoked=check_revoked)
    except (ValueError, firebase_exceptions.FirebaseError) as e:
        logger.warning(f"ID token verification failed: {type(e).__name__}: {e}")
        raise AuthTokenError(str(e)) from e
    return AuthUser.from_claims(claims)
