"""
Helpers for retrieving and refreshing Twitter OAuth tokens.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from brandpilot.clients.twitter import TwitterClient
from brandpilot.core.errors import NotConnected
from brandpilot.models import TWITTER_PLATFORM, Connection
from brandpilot.services.connections import ConnectionStore

logger = logging.getLogger(__name__)


class TwitterTokenService:
    """Hands out usable access tokens for connected Twitter accounts."""

    _REFRESH_WINDOW = timedelta(minutes=5)

    def __init__(
        self,
        connections: ConnectionStore,
        twitter_client: TwitterClient,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._connections = connections
        self._twitter = twitter_client
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def require_connection(self, user_id: str) -> Connection:
        connection = self._connections.get_active(user_id, TWITTER_PLATFORM)
        if connection is None:
            raise NotConnected()
        return connection

    async def get_access_token(self, user_id: str) -> str:
        """Return the stored token, refreshing it first when it is about to expire."""
        connection = self.require_connection(user_id)
        access_token = connection.access_token or ""

        expires_at = connection.token_expires_at
        if expires_at is None or not connection.refresh_token:
            return access_token
        if expires_at > self._clock() + self._REFRESH_WINDOW:
            return access_token

        refreshed_at = self._clock()
        tokens = await self._twitter.refresh_access_token(connection.refresh_token)
        self._connections.update_tokens(
            user_id=user_id, tokens=tokens, issued_at=refreshed_at
        )
        logger.info("Refreshed Twitter access token for user %s", user_id)
        return tokens.access_token


__all__ = ["TwitterTokenService"]
