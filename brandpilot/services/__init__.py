"""Service layer exports."""

from .connections import ConnectionStore
from .dispatcher import ActionDispatcher, ActionResult
from .drafts import DraftPostStore, DraftService, GeneratedDrafts
from .harvester import HarvestResult, RelevanceHarvester
from .pkce import PKCESessionManager, PKCESessionStore
from .post_writer import GeneratedPost, PostWriter
from .profiles import ProfileStore
from .rate_limiter import (
    InMemoryRateLimitBackend,
    RateLimitDecision,
    RateLimiter,
    RedisRateLimitBackend,
)
from .relevant_posts import RelevantPostStore
from .reply_composer import ReplyComposer, truncate_for_platform
from .token_cipher import TokenCipher
from .twitter_tokens import TwitterTokenService

__all__ = [
    "ActionDispatcher",
    "ActionResult",
    "ConnectionStore",
    "DraftPostStore",
    "DraftService",
    "GeneratedDrafts",
    "GeneratedPost",
    "HarvestResult",
    "InMemoryRateLimitBackend",
    "PKCESessionManager",
    "PKCESessionStore",
    "PostWriter",
    "ProfileStore",
    "RateLimitDecision",
    "RateLimiter",
    "RedisRateLimitBackend",
    "RelevanceHarvester",
    "RelevantPostStore",
    "ReplyComposer",
    "TokenCipher",
    "TwitterTokenService",
    "truncate_for_platform",
]
