"""SQLite database backing connections, PKCE sessions, posts and profiles."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE,
        ai_voice TEXT NOT NULL DEFAULT 'professional',
        goal TEXT,
        topics_of_interest TEXT NOT NULL DEFAULT '[]',
        about_context TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS onboarding_profiles (
        user_id TEXT PRIMARY KEY,
        name TEXT,
        username TEXT,
        user_type TEXT,
        domain TEXT,
        social_media_goal TEXT,
        business_description TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS social_connections (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT NOT NULL,
        platform TEXT NOT NULL,
        is_connected INTEGER NOT NULL DEFAULT 0,
        access_token_encrypted TEXT,
        refresh_token_encrypted TEXT,
        token_expires_at TEXT,
        connection_data TEXT NOT NULL DEFAULT '{}',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (user_id, platform)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS oauth_sessions (
        state TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        platform TEXT NOT NULL,
        code_verifier_encrypted TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS relevant_posts (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        tweet_id TEXT NOT NULL,
        author_name TEXT,
        author_username TEXT,
        author_id TEXT,
        content TEXT NOT NULL,
        tweet_url TEXT,
        tweet_created_at TEXT,
        retweet_count INTEGER NOT NULL DEFAULT 0,
        like_count INTEGER NOT NULL DEFAULT 0,
        reply_count INTEGER NOT NULL DEFAULT 0,
        quote_count INTEGER NOT NULL DEFAULT 0,
        topic TEXT,
        context_annotations TEXT,
        ai_response TEXT,
        reply_tweet_id TEXT,
        created_at TEXT NOT NULL,
        UNIQUE (user_id, tweet_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS posts (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        platform TEXT NOT NULL DEFAULT 'twitter',
        content TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'draft',
        url TEXT,
        created_at TEXT NOT NULL,
        published_at TEXT
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_posts_user ON posts (user_id, status)",
    "CREATE INDEX IF NOT EXISTS idx_oauth_sessions_created ON oauth_sessions (created_at)",
)


class SQLiteStore:
    """Owns the database file and hands out short-lived connections."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def path(self) -> Path:
        return self._db_path

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and is always closed."""
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self.connect() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)


__all__ = ["SQLiteStore"]
