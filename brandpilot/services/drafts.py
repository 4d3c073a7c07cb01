"""
Drafted posts: local persistence and bulk generation through the external
content generator.
"""

from __future__ import annotations

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from brandpilot.clients.content_generator import ContentGeneratorClient, ContentRequest
from brandpilot.clients.sqlite_store import SQLiteStore
from brandpilot.core.errors import InvalidRequest, NotFound, PersistenceError
from brandpilot.models import TWITTER_PLATFORM, DraftPost, DraftStatus
from brandpilot.services.profiles import ProfileStore

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


class DraftPostStore:
    """CRUD for the ``posts`` table. Status only moves from draft to published."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    def list_drafts(self, user_id: str) -> List[DraftPost]:
        with self._store.connect() as conn:
            rows = conn.execute(
                "SELECT * FROM posts WHERE user_id = ? AND status = 'draft' "
                "ORDER BY created_at DESC",
                (user_id,),
            ).fetchall()
        return [_row_to_draft(row) for row in rows]

    def get(self, draft_id: str) -> Optional[DraftPost]:
        with self._store.connect() as conn:
            row = conn.execute("SELECT * FROM posts WHERE id = ?", (draft_id,)).fetchone()
        return _row_to_draft(row) if row else None

    def require(self, draft_id: str) -> DraftPost:
        draft = self.get(draft_id)
        if draft is None:
            raise NotFound("Draft post not found")
        return draft

    def create(
        self,
        user_id: str,
        content: str,
        *,
        platform: str = TWITTER_PLATFORM,
        url: Optional[str] = None,
    ) -> DraftPost:
        draft = DraftPost(
            id=str(uuid.uuid4()),
            user_id=user_id,
            platform=platform,
            content=content,
            url=url,
        )
        try:
            with self._store.connect() as conn:
                conn.execute(
                    """
                    INSERT INTO posts (id, user_id, platform, content, status, url, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        draft.id,
                        draft.user_id,
                        draft.platform,
                        draft.content,
                        draft.status,
                        draft.url,
                        draft.created_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Failed to create draft post: {exc}") from exc
        return draft

    def update_content(self, draft_id: str, content: str) -> DraftPost:
        self._execute(
            "UPDATE posts SET content = ? WHERE id = ?",
            (content, draft_id),
            failure="Failed to update post",
        )
        return self.require(draft_id)

    def update_status(self, draft_id: str, status: DraftStatus) -> DraftPost:
        draft = self.require(draft_id)
        if draft.status == status:
            return draft
        if draft.status == "published":
            raise InvalidRequest("Published posts cannot be moved back to draft")
        self._execute(
            "UPDATE posts SET status = ?, published_at = ? WHERE id = ?",
            (status, _utcnow().isoformat(), draft_id),
            failure="Failed to update post status",
        )
        return self.require(draft_id)

    def mark_published(self, draft_id: str) -> DraftPost:
        return self.update_status(draft_id, "published")

    def delete(self, draft_id: str) -> None:
        self._execute(
            "DELETE FROM posts WHERE id = ?", (draft_id,), failure="Failed to delete post"
        )

    def _execute(self, sql: str, params: tuple, *, failure: str) -> None:
        try:
            with self._store.connect() as conn:
                affected = conn.execute(sql, params).rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(f"{failure}: {exc}") from exc
        if not affected:
            raise NotFound("Draft post not found")


class GeneratedDrafts(BaseModel):
    posts: List[DraftPost] = Field(default_factory=list)
    url_article: Optional[str] = None


class DraftService:
    """Ask the content generator for a batch of posts and store them as drafts."""

    def __init__(
        self,
        drafts: DraftPostStore,
        profiles: ProfileStore,
        generator: ContentGeneratorClient,
    ) -> None:
        self._drafts = drafts
        self._profiles = profiles
        self._generator = generator

    def build_request(self, user_id: str) -> ContentRequest:
        context = self._profiles.load_context(user_id)
        if context.profile is None:
            raise NotFound("Profile not found")

        topics = list(context.topics)
        onboarding = context.onboarding
        if onboarding is not None:
            if onboarding.user_type:
                topics.append(onboarding.user_type)
            if onboarding.domain:
                topics.append(onboarding.domain)

        return ContentRequest(
            topics_of_interest=topics,
            ai_voice="professional",
            about_context=(onboarding.social_media_goal if onboarding else None) or "",
            post_preference=(onboarding.business_description if onboarding else None) or "",
        )

    async def generate_and_save(self, user_id: str) -> GeneratedDrafts:
        request = self.build_request(user_id)
        generated = await self._generator.generate(request)
        saved = [
            self._drafts.create(user_id, content, url=generated.url_content)
            for content in generated.contents
        ]
        logger.info("Stored %d generated drafts for user %s", len(saved), user_id)
        return GeneratedDrafts(posts=saved, url_article=generated.url_content)


def _row_to_draft(row: sqlite3.Row) -> DraftPost:
    return DraftPost(
        id=row["id"],
        user_id=row["user_id"],
        platform=row["platform"],
        content=row["content"],
        status=row["status"],
        url=row["url"],
        created_at=_parse_dt(row["created_at"]),
        published_at=_parse_dt(row["published_at"]),
    )


__all__ = ["DraftPostStore", "DraftService", "GeneratedDrafts"]
