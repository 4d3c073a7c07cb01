"""Persistence for tweets harvested as engagement candidates."""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from brandpilot.clients.sqlite_store import SQLiteStore
from brandpilot.core.errors import NotFound, PersistenceError
from brandpilot.models import RelevantPost

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id",
    "user_id",
    "tweet_id",
    "author_name",
    "author_username",
    "author_id",
    "content",
    "tweet_url",
    "tweet_created_at",
    "retweet_count",
    "like_count",
    "reply_count",
    "quote_count",
    "topic",
    "context_annotations",
    "ai_response",
    "reply_tweet_id",
    "created_at",
)


def new_post_id() -> str:
    return str(uuid.uuid4())


class RelevantPostStore:
    """CRUD for ``relevant_posts``; (user_id, tweet_id) is unique."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def exists(self, user_id: str, tweet_id: str) -> bool:
        with self._store.connect() as conn:
            row = conn.execute(
                "SELECT 1 FROM relevant_posts WHERE user_id = ? AND tweet_id = ?",
                (user_id, tweet_id),
            ).fetchone()
        return row is not None

    def insert(self, post: RelevantPost) -> bool:
        """Insert ``post``; returns False when the tweet is already saved for the user."""
        values = (
            post.id,
            post.user_id,
            post.tweet_id,
            post.author_name,
            post.author_username,
            post.author_id,
            post.content,
            post.tweet_url,
            post.tweet_created_at.isoformat() if post.tweet_created_at else None,
            post.retweet_count,
            post.like_count,
            post.reply_count,
            post.quote_count,
            post.topic,
            json.dumps(post.context_annotations)
            if post.context_annotations is not None
            else None,
            post.ai_response,
            post.reply_tweet_id,
            post.created_at.isoformat(),
        )
        placeholders = ", ".join("?" for _ in _COLUMNS)
        try:
            with self._store.connect() as conn:
                cursor = conn.execute(
                    f"INSERT INTO relevant_posts ({', '.join(_COLUMNS)}) "
                    f"VALUES ({placeholders}) "
                    "ON CONFLICT(user_id, tweet_id) DO NOTHING",
                    values,
                )
                inserted = cursor.rowcount == 1
        except sqlite3.Error as exc:
            logger.error("Failed to save relevant post %s: %s", post.tweet_id, exc)
            raise PersistenceError(f"Failed to save relevant post: {exc}") from exc
        return inserted

    def get(self, post_id: str) -> Optional[RelevantPost]:
        with self._store.connect() as conn:
            row = conn.execute(
                "SELECT * FROM relevant_posts WHERE id = ?", (post_id,)
            ).fetchone()
        return _row_to_post(row) if row else None

    def get_by_tweet(self, user_id: str, tweet_id: str) -> Optional[RelevantPost]:
        with self._store.connect() as conn:
            row = conn.execute(
                "SELECT * FROM relevant_posts WHERE user_id = ? AND tweet_id = ?",
                (user_id, tweet_id),
            ).fetchone()
        return _row_to_post(row) if row else None

    def list_for_user(self, user_id: str) -> List[RelevantPost]:
        with self._store.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM relevant_posts WHERE user_id = ? ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [_row_to_post(row) for row in rows]

    def set_ai_response(self, post_id: str, response: str) -> None:
        self._update(post_id, "ai_response", response)

    def set_reply_tweet_id(self, post_id: str, reply_tweet_id: str) -> None:
        self._update(post_id, "reply_tweet_id", reply_tweet_id)

    def delete(self, post_id: str) -> None:
        try:
            with self._store.connect() as conn:
                cursor = conn.execute("DELETE FROM relevant_posts WHERE id = ?", (post_id,))
                deleted = cursor.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to delete relevant post: {exc}") from exc
        if not deleted:
            raise NotFound("Relevant post not found")

    def _update(self, post_id: str, column: str, value: str) -> None:
        try:
            with self._store.connect() as conn:
                cursor = conn.execute(
                    f"UPDATE relevant_posts SET {column} = ? WHERE id = ?",
                    (value, post_id),
                )
                updated = cursor.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to update relevant post: {exc}") from exc
        if not updated:
            raise NotFound("Relevant post not found")


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _row_to_post(row: sqlite3.Row) -> RelevantPost:
    annotations = row["context_annotations"]
    return RelevantPost(
        id=row["id"],
        user_id=row["user_id"],
        tweet_id=row["tweet_id"],
        author_name=row["author_name"],
        author_username=row["author_username"],
        author_id=row["author_id"],
        content=row["content"],
        tweet_url=row["tweet_url"],
        tweet_created_at=_parse_dt(row["tweet_created_at"]),
        retweet_count=row["retweet_count"],
        like_count=row["like_count"],
        reply_count=row["reply_count"],
        quote_count=row["quote_count"],
        topic=row["topic"],
        context_annotations=json.loads(annotations) if annotations else None,
        ai_response=row["ai_response"],
        reply_tweet_id=row["reply_tweet_id"],
        created_at=_parse_dt(row["created_at"]),
    )


__all__ = ["RelevantPostStore", "new_post_id"]
