"""Persistence for platform connections and their encrypted tokens."""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import List, Optional

from brandpilot.clients.sqlite_store import SQLiteStore
from brandpilot.core.errors import PersistenceError
from brandpilot.models import TWITTER_PLATFORM, Connection, TokenSet, TwitterProfile
from brandpilot.services.token_cipher import TokenCipher

logger = logging.getLogger(__name__)


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ConnectionStore:
    """One row per (user, platform); tokens never leave this class encrypted."""

    def __init__(self, store: SQLiteStore, cipher: TokenCipher) -> None:
        self._store = store
        self._cipher = cipher

    def get(self, user_id: str, platform: str = TWITTER_PLATFORM) -> Optional[Connection]:
        with self._store.connect() as conn:
            row = conn.execute(
                "SELECT * FROM social_connections WHERE user_id = ? AND platform = ?",
                (user_id, platform),
            ).fetchone()
        if not row:
            return None
        return self._row_to_connection(row)

    def get_active(
        self, user_id: str, platform: str = TWITTER_PLATFORM
    ) -> Optional[Connection]:
        """Return the connection only when it is connected and holds a token."""
        connection = self.get(user_id, platform)
        if not connection or not connection.is_connected or not connection.access_token:
            return None
        return connection

    def list_for_user(self, user_id: str) -> List[Connection]:
        with self._store.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM social_connections WHERE user_id = ? ORDER BY platform",
                (user_id,),
            ).fetchall()
        return [self._row_to_connection(row) for row in rows]

    def save_connected(
        self,
        *,
        user_id: str,
        tokens: TokenSet,
        profile: TwitterProfile,
        issued_at: datetime,
        platform: str = TWITTER_PLATFORM,
    ) -> Connection:
        """Upsert the connected row after a successful code exchange."""
        expires_at = tokens.expires_at(issued_at)
        connection_data = {
            "username": profile.username,
            "name": profile.name,
            "id": profile.id,
            "public_metrics": profile.public_metrics,
        }
        now = issued_at.isoformat()
        try:
            with self._store.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO social_connections (
                        user_id, platform, is_connected, access_token_encrypted,
                        refresh_token_encrypted, token_expires_at, connection_data,
                        created_at, updated_at
                    )
                    VALUES (?, ?, 1, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT(user_id, platform) DO UPDATE SET
                        is_connected = 1,
                        access_token_encrypted = excluded.access_token_encrypted,
                        refresh_token_encrypted = excluded.refresh_token_encrypted,
                        token_expires_at = excluded.token_expires_at,
                        connection_data = excluded.connection_data,
                        updated_at = excluded.updated_at
                    """,
                    (
                        user_id,
                        platform,
                        self._cipher.encrypt(tokens.access_token),
                        self._cipher.encrypt_optional(tokens.refresh_token),
                        expires_at.isoformat() if expires_at else None,
                        json.dumps(connection_data),
                        now,
                        now,
                    ),
                )
        except sqlite3.Error as exc:
            logger.error("Failed to save %s connection for %s: %s", platform, user_id, exc)
            raise PersistenceError(f"Failed to save Twitter connection: {exc}") from exc

        connection = self.get(user_id, platform)
        if connection is None:
            raise PersistenceError("Twitter connection was not persisted")
        return connection

    def update_tokens(
        self,
        *,
        user_id: str,
        tokens: TokenSet,
        issued_at: datetime,
        platform: str = TWITTER_PLATFORM,
    ) -> None:
        """Store a refreshed token set, keeping the old refresh token if none was issued."""
        expires_at = tokens.expires_at(issued_at)
        assignments = [
            "access_token_encrypted = ?",
            "token_expires_at = ?",
            "updated_at = ?",
        ]
        params: list = [
            self._cipher.encrypt(tokens.access_token),
            expires_at.isoformat() if expires_at else None,
            issued_at.isoformat(),
        ]
        if tokens.refresh_token:
            assignments.append("refresh_token_encrypted = ?")
            params.append(self._cipher.encrypt(tokens.refresh_token))
        params.extend([user_id, platform])
        try:
            with self._store.connect() as conn:
                conn.execute(
                    f"UPDATE social_connections SET {', '.join(assignments)} "
                    "WHERE user_id = ? AND platform = ?",
                    params,
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to store refreshed token: {exc}") from exc

    def disconnect(self, user_id: str, platform: str = TWITTER_PLATFORM) -> None:
        """Clear tokens and mark the connection inactive; the row is kept."""
        try:
            with self._store.connect() as conn:
                conn.execute(
                    """
                    UPDATE social_connections
                    SET is_connected = 0,
                        access_token_encrypted = NULL,
                        refresh_token_encrypted = NULL,
                        token_expires_at = NULL,
                        updated_at = ?
                    WHERE user_id = ? AND platform = ?
                    """,
                    (datetime.now(timezone.utc).isoformat(), user_id, platform),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to disconnect Twitter: {exc}") from exc

    def _row_to_connection(self, row: sqlite3.Row) -> Connection:
        return Connection(
            user_id=row["user_id"],
            platform=row["platform"],
            is_connected=bool(row["is_connected"]),
            access_token=self._cipher.decrypt_optional(row["access_token_encrypted"]),
            refresh_token=self._cipher.decrypt_optional(row["refresh_token_encrypted"]),
            token_expires_at=_parse_dt(row["token_expires_at"]),
            connection_data=json.loads(row["connection_data"] or "{}"),
            created_at=_parse_dt(row["created_at"]),
            updated_at=_parse_dt(row["updated_at"]),
        )


__all__ = ["ConnectionStore"]
