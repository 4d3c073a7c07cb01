"""
Domain models for the Twitter OAuth2 PKCE flow and stored connections.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

TWITTER_PLATFORM = "twitter"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PKCEAuthorization(BaseModel):
    """Result of starting an authorization attempt."""

    authorization_url: str
    state: str


class PendingSession(BaseModel):
    """A PKCE session awaiting its callback."""

    state: str
    user_id: str
    platform: str = TWITTER_PLATFORM
    code_verifier: str
    created_at: datetime = Field(default_factory=_utcnow)


class TokenSet(BaseModel):
    """Tokens returned by the Twitter token endpoint."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None

    def expires_at(self, issued_at: datetime) -> Optional[datetime]:
        if self.expires_in is None:
            return None
        return issued_at + timedelta(seconds=self.expires_in)


class TwitterProfile(BaseModel):
    """Snapshot of the connected account kept alongside the tokens."""

    id: str
    username: str
    name: str = ""
    public_metrics: Dict[str, Any] = Field(default_factory=dict)


class Connection(BaseModel):
    """A user's link to an external platform, with tokens already decrypted."""

    user_id: str
    platform: str = TWITTER_PLATFORM
    is_connected: bool = False
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[datetime] = None
    connection_data: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def username(self) -> Optional[str]:
        return self.connection_data.get("username")

    def public_view(self) -> Dict[str, Any]:
        """Connection details that are safe to return to the front-end."""
        return {
            "platform": self.platform,
            "is_connected": self.is_connected,
            "token_expires_at": (
                self.token_expires_at.isoformat() if self.token_expires_at else None
            ),
            "connection_data": self.connection_data,
            "updated_at": self.updated_at.isoformat(),
        }


__all__ = [
    "Connection",
    "PKCEAuthorization",
    "PendingSession",
    "TWITTER_PLATFORM",
    "TokenSet",
    "TwitterProfile",
]
