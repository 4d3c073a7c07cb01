"""
PKCE session handling for the Twitter OAuth2 authorization code flow.

Sessions live in their own ``oauth_sessions`` table keyed by ``state`` and are
pruned once older than the configured TTL. Consuming a session removes it in
the same statement that reads it, so a state value can be redeemed once.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import secrets
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from brandpilot.clients.sqlite_store import SQLiteStore
from brandpilot.core.errors import InvalidOrExpiredSession, PersistenceError
from brandpilot.models import TWITTER_PLATFORM, PendingSession, PKCEAuthorization
from brandpilot.services.token_cipher import TokenCipher

logger = logging.getLogger(__name__)

VERIFIER_BYTES = 32


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def generate_code_verifier() -> str:
    """Return a high-entropy verifier: 32 random bytes, URL-safe, unpadded."""
    return _b64url(secrets.token_bytes(VERIFIER_BYTES))


def generate_code_challenge(verifier: str) -> str:
    """Derive the S256 challenge for ``verifier``."""
    return _b64url(hashlib.sha256(verifier.encode("ascii")).digest())


def generate_state() -> str:
    return str(uuid.uuid4())


class PKCESessionStore:
    """SQLite table of outstanding authorization attempts with TTL pruning."""

    def __init__(
        self,
        store: SQLiteStore,
        cipher: TokenCipher,
        *,
        ttl_seconds: int = 900,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._cipher = cipher
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _prune(self, conn: sqlite3.Connection) -> None:
        threshold = (self._clock() - self._ttl).isoformat()
        conn.execute("DELETE FROM oauth_sessions WHERE created_at < ?", (threshold,))

    def save(self, session: PendingSession) -> None:
        try:
            with self._store.connect() as conn:
                self._prune(conn)
                conn.execute(
                    """
                    INSERT INTO oauth_sessions (
                        state, user_id, platform, code_verifier_encrypted, created_at
                    )
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        session.state,
                        session.user_id,
                        session.platform,
                        self._cipher.encrypt(session.code_verifier),
                        session.created_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to store authorization session: {exc}") from exc

    def pop(self, state: str) -> Optional[PendingSession]:
        """Remove and return the live session for ``state``, if any."""
        with self._store.connect() as conn:
            self._prune(conn)
            row = conn.execute(
                "DELETE FROM oauth_sessions WHERE state = ? "
                "RETURNING state, user_id, platform, code_verifier_encrypted, created_at",
                (state,),
            ).fetchone()
        if not row:
            return None
        created_at = datetime.fromisoformat(row["created_at"])
        return PendingSession(
            state=row["state"],
            user_id=row["user_id"],
            platform=row["platform"],
            code_verifier=self._cipher.decrypt(row["code_verifier_encrypted"]),
            created_at=created_at,
        )

    def count_for_user(self, user_id: str) -> int:
        with self._store.connect() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM oauth_sessions WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        return int(row["total"])


class PKCESessionManager:
    """Begin and consume PKCE authorization attempts."""

    def __init__(
        self,
        sessions: PKCESessionStore,
        build_authorization_url: Callable[..., str],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._sessions = sessions
        self._build_authorization_url = build_authorization_url
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def begin_session(
        self, user_id: str, platform: str = TWITTER_PLATFORM
    ) -> PKCEAuthorization:
        verifier = generate_code_verifier()
        state = generate_state()
        self._sessions.save(
            PendingSession(
                state=state,
                user_id=user_id,
                platform=platform,
                code_verifier=verifier,
                created_at=self._clock(),
            )
        )
        url = self._build_authorization_url(
            state=state, code_challenge=generate_code_challenge(verifier)
        )
        logger.info("Started %s authorization for user %s", platform, user_id)
        return PKCEAuthorization(authorization_url=url, state=state)

    def consume_session(self, state: str) -> PendingSession:
        session = self._sessions.pop(state)
        if session is None:
            logger.warning("No pending authorization session found for state")
            raise InvalidOrExpiredSession()
        return session


__all__ = [
    "PKCESessionManager",
    "PKCESessionStore",
    "generate_code_challenge",
    "generate_code_verifier",
    "generate_state",
]
