"""
Authentication and user-profile state.

Bridges auth-state changes from Firebase to a live subscription on the
signed-in user's profile document, and verifies ID tokens for the API.
"""

from .models import AuthState, AuthUser, UserProfile
from .session import AuthSession, build_auth_session

__all__ = ["AuthState", "AuthUser", "UserProfile", "AuthSession", "build_auth_session"]
