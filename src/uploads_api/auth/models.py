"""Models for the signed-in user and their profile document."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """Identity of a user as asserted by a verified Firebase ID token."""
    uid: str = Field(min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = None
    email_verified: bool = False
    claims: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "AuthUser":
        return cls(
            uid=claims.get("uid") or claims.get("sub"),
            email=claims.get("email"),
            display_name=claims.get("name"),
            email_verified=bool(claims.get("email_verified", False)),
            claims=dict(claims),
        )


class UserProfile(BaseModel):
    """Mirror of a document in the users collection; unknown fields are kept."""
    uid: Optional[str] = None
    email: Optional[str] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    photo_url: Optional[str] = Field(None, alias="photoURL")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    updated_at: Optional[datetime] = Field(None, alias="updatedAt")

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @classmethod
    def from_document(cls, uid: str, data: Optional[Dict[str, Any]]) -> "UserProfile":
        document = dict(data or {})
        document.setdefault("uid", uid)
        return cls.model_validate(document)


@dataclass(frozen=True)
class AuthState:
    """Point-in-time view of the session handed to listeners."""
    user: Optional[AuthUser]
    user_profile: Optional[UserProfile]
    loading: bool
    user_id: Optional[str]
