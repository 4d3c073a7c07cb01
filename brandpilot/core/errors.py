"""
Error taxonomy shared by the dispatcher, services and HTTP layer.

Every failure that should reach a caller is a ``BrandPilotError``. The API
layer turns it into ``{"error": message}`` with the error's status code.
"""

from __future__ import annotations

from datetime import datetime
from http import HTTPStatus
from typing import Any, Optional


class BrandPilotError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message}


class InvalidRequest(BrandPilotError):
    """Required fields are missing or malformed."""

    status_code = HTTPStatus.BAD_REQUEST


class InvalidOrExpiredSession(BrandPilotError):
    """The OAuth state does not match any outstanding PKCE session."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str = "Invalid state parameter or expired session") -> None:
        super().__init__(message)


class ProviderError(BrandPilotError):
    """An external platform answered with a non-2xx status."""

    status_code = HTTPStatus.BAD_GATEWAY

    def __init__(
        self,
        message: str,
        *,
        provider_status: Optional[int] = None,
        provider_body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.provider_status = provider_status
        self.provider_body = provider_body


class ProviderRateLimited(ProviderError):
    """Twitter reported that the caller's quota is exhausted (HTTP 429)."""

    def __init__(
        self,
        message: str,
        *,
        reset_at: Optional[datetime] = None,
        provider_body: Optional[str] = None,
    ) -> None:
        super().__init__(message, provider_status=429, provider_body=provider_body)
        self.reset_at = reset_at


class RateLimited(BrandPilotError):
    """The local rate limiter denied the call."""

    status_code = HTTPStatus.TOO_MANY_REQUESTS

    def __init__(self, reset_at: datetime, message: Optional[str] = None) -> None:
        super().__init__(
            message
            or f"Rate limit exceeded. Try again after {reset_at.isoformat()}."
        )
        self.reset_at = reset_at

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "resetAt": self.reset_at.isoformat()}


class NotConnected(BrandPilotError):
    """No active Twitter connection exists for the user."""

    status_code = HTTPStatus.UNAUTHORIZED

    def __init__(
        self,
        message: str = "Twitter connection is not established or access token is missing",
    ) -> None:
        super().__init__(message)


class NotFound(BrandPilotError):
    """A referenced record does not exist."""

    status_code = HTTPStatus.NOT_FOUND


class NoResults(BrandPilotError):
    """A harvest produced no new relevant posts."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, message: str, *, skipped_posts_count: int = 0) -> None:
        super().__init__(message)
        self.skipped_posts_count = skipped_posts_count

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.message, "skippedPostsCount": self.skipped_posts_count}


class NoReplyText(BrandPilotError):
    """sendReply was called without explicit or previously generated text."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(
        self,
        message: str = "No reply text provided and no AI response has been generated",
    ) -> None:
        super().__init__(message)


class GenerationFailed(BrandPilotError):
    """The LLM or content generator returned nothing usable."""

    status_code = HTTPStatus.BAD_GATEWAY


class PersistenceError(BrandPilotError):
    """A database write failed."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR


__all__ = [
    "BrandPilotError",
    "GenerationFailed",
    "InvalidOrExpiredSession",
    "InvalidRequest",
    "NoReplyText",
    "NoResults",
    "NotConnected",
    "NotFound",
    "PersistenceError",
    "ProviderError",
    "ProviderRateLimited",
    "RateLimited",
]
