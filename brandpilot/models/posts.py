"""
Domain models for discovered tweets and drafted posts.
"""

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

DraftStatus = Literal["draft", "published"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RelevantPost(BaseModel):
    """A tweet discovered by search and kept for potential engagement."""

    id: str
    user_id: str
    tweet_id: str
    author_name: Optional[str] = None
    author_username: Optional[str] = None
    author_id: Optional[str] = None
    content: str
    tweet_url: Optional[str] = None
    tweet_created_at: Optional[datetime] = None
    retweet_count: int = 0
    like_count: int = 0
    reply_count: int = 0
    quote_count: int = 0
    topic: Optional[str] = None
    context_annotations: Optional[List[Any]] = None
    ai_response: Optional[str] = None
    reply_tweet_id: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)


class DraftPost(BaseModel):
    """Locally authored or generated content awaiting publication."""

    id: str
    user_id: str
    platform: str = "twitter"
    content: str
    status: DraftStatus = "draft"
    url: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    published_at: Optional[datetime] = None


__all__ = ["DraftPost", "DraftStatus", "RelevantPost"]
