"""
Search Twitter for tweets matching a user's interests and keep the new ones.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from brandpilot.clients.twitter import SearchResult, Tweet, TwitterClient
from brandpilot.core.errors import NoResults, ProviderRateLimited, RateLimited
from brandpilot.models import RelevantPost
from brandpilot.services.profiles import ProfileStore
from brandpilot.services.rate_limiter import RateLimiter
from brandpilot.services.relevant_posts import RelevantPostStore, new_post_id
from brandpilot.services.search_query import build_search_query, classify_topic
from brandpilot.services.twitter_tokens import TwitterTokenService

logger = logging.getLogger(__name__)


class HarvestResult(BaseModel):
    query: str
    posts: List[RelevantPost] = Field(default_factory=list)
    new_posts_count: int = 0
    skipped_posts_count: int = 0


class RelevanceHarvester:
    """Rate-limited search plus the findAndSave pipeline."""

    def __init__(
        self,
        *,
        profiles: ProfileStore,
        posts: RelevantPostStore,
        tokens: TwitterTokenService,
        twitter_client: TwitterClient,
        rate_limiter: RateLimiter,
        harvest_size: int = 10,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._profiles = profiles
        self._posts = posts
        self._tokens = tokens
        self._twitter = twitter_client
        self._limiter = rate_limiter
        self._harvest_size = harvest_size
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def search(
        self, user_id: str, query: str, *, max_results: int = 10
    ) -> SearchResult:
        """Admit the call through the local limiter, then query recent tweets."""
        decision = await self._limiter.check_and_consume(user_id)
        if not decision.allowed:
            raise RateLimited(decision.reset_at)

        access_token = await self._tokens.get_access_token(user_id)
        try:
            return await self._twitter.search_recent(
                access_token, query, max_results=max_results
            )
        except ProviderRateLimited as exc:
            await self._limiter.mark_exhausted(user_id)
            exhausted = await self._limiter.check_and_consume(user_id)
            raise RateLimited(
                exc.reset_at or exhausted.reset_at,
                "Twitter rate limit exceeded. Please try again later.",
            ) from exc

    async def find_and_save(self, user_id: str) -> HarvestResult:
        context = self._profiles.load_context(user_id)
        query = build_search_query(context)
        logger.info("Harvesting relevant posts for user %s", user_id)

        result = await self.search(user_id, query, max_results=self._harvest_size)

        saved: List[RelevantPost] = []
        skipped = 0
        for tweet in result.tweets:
            post = self._to_relevant_post(user_id, tweet)
            if self._posts.insert(post):
                saved.append(post)
            else:
                skipped += 1

        if not saved:
            message = (
                "All found posts are already saved"
                if skipped
                else "No relevant tweets found for your interests"
            )
            raise NoResults(message, skipped_posts_count=skipped)

        logger.info(
            "Saved %d new relevant posts for user %s (%d already known)",
            len(saved),
            user_id,
            skipped,
        )
        return HarvestResult(
            query=query,
            posts=saved,
            new_posts_count=len(saved),
            skipped_posts_count=skipped,
        )

    def _to_relevant_post(self, user_id: str, tweet: Tweet) -> RelevantPost:
        metrics = tweet.public_metrics
        author = tweet.author
        annotations: Optional[list] = tweet.context_annotations or None
        return RelevantPost(
            id=new_post_id(),
            user_id=user_id,
            tweet_id=tweet.id,
            author_name=author.name if author else None,
            author_username=author.username if author else None,
            author_id=tweet.author_id,
            content=tweet.text,
            tweet_url=tweet.url,
            tweet_created_at=tweet.created_at,
            retweet_count=metrics.get("retweet_count", 0),
            like_count=metrics.get("like_count", 0),
            reply_count=metrics.get("reply_count", 0),
            quote_count=metrics.get("quote_count", 0),
            topic=classify_topic(tweet.text, tweet.context_annotations),
            context_annotations=annotations,
            created_at=self._clock(),
        )


__all__ = ["HarvestResult", "RelevanceHarvester"]
