"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from brandpilot.clients import (
    ContentGeneratorClient,
    OpenAIChatClient,
    SQLiteStore,
    TwitterClient,
)
from brandpilot.core.config import get_settings
from brandpilot.services import (
    ActionDispatcher,
    ConnectionStore,
    DraftPostStore,
    DraftService,
    InMemoryRateLimitBackend,
    PKCESessionManager,
    PKCESessionStore,
    PostWriter,
    ProfileStore,
    RateLimiter,
    RedisRateLimitBackend,
    RelevanceHarvester,
    RelevantPostStore,
    ReplyComposer,
    TokenCipher,
    TwitterTokenService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the shared SQLite database."""
    return SQLiteStore(_settings().database_path)


@lru_cache()
def get_token_cipher() -> TokenCipher:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.twitter.client_secret
    return TokenCipher(secret=secret)


@lru_cache()
def get_twitter_client() -> TwitterClient:
    """Create a singleton Twitter API client."""
    return TwitterClient(_settings().twitter)


@lru_cache()
def get_openai_chat_client() -> OpenAIChatClient:
    """Provide the OpenAI chat completions wrapper."""
    return OpenAIChatClient(_settings().openai)


@lru_cache()
def get_content_generator_client() -> ContentGeneratorClient:
    return ContentGeneratorClient(_settings().content_generator)


@lru_cache()
def get_connection_store() -> ConnectionStore:
    return ConnectionStore(get_sqlite_store(), get_token_cipher())


@lru_cache()
def get_profile_store() -> ProfileStore:
    return ProfileStore(get_sqlite_store())


@lru_cache()
def get_relevant_post_store() -> RelevantPostStore:
    return RelevantPostStore(get_sqlite_store())


@lru_cache()
def get_draft_post_store() -> DraftPostStore:
    return DraftPostStore(get_sqlite_store())


@lru_cache()
def get_pkce_session_manager() -> PKCESessionManager:
    """Provide the PKCE session manager bound to the Twitter consent URL."""
    settings = _settings()
    sessions = PKCESessionStore(
        get_sqlite_store(),
        get_token_cipher(),
        ttl_seconds=settings.oauth.session_ttl_seconds,
    )
    return PKCESessionManager(sessions, get_twitter_client().build_authorization_url)


@lru_cache()
def get_twitter_token_service() -> TwitterTokenService:
    """Provide helper for retrieving and refreshing Twitter tokens."""
    return TwitterTokenService(get_connection_store(), get_twitter_client())


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    """Provide the search rate limiter on the configured backend."""
    settings = _settings().rate_limit
    if settings.backend == "redis":
        backend = RedisRateLimitBackend.from_url(settings.redis_url)
    else:
        backend = InMemoryRateLimitBackend()
    return RateLimiter(
        backend, quota=settings.quota, window_seconds=settings.window_seconds
    )


@lru_cache()
def get_reply_composer() -> ReplyComposer:
    settings = _settings().openai
    return ReplyComposer(
        get_openai_chat_client(),
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
    )


def get_post_writer() -> PostWriter:
    """Build a post writer using OpenAI and stored profiles."""
    return PostWriter(get_openai_chat_client(), get_profile_store())


def get_draft_service() -> DraftService:
    """Build a draft service using the external content generator."""
    return DraftService(
        get_draft_post_store(), get_profile_store(), get_content_generator_client()
    )


def get_relevance_harvester() -> RelevanceHarvester:
    """Build the harvester that searches and stores relevant tweets."""
    return RelevanceHarvester(
        profiles=get_profile_store(),
        posts=get_relevant_post_store(),
        tokens=get_twitter_token_service(),
        twitter_client=get_twitter_client(),
        rate_limiter=get_rate_limiter(),
        harvest_size=_settings().twitter.search_max_results,
    )


def get_action_dispatcher() -> ActionDispatcher:
    """Build the dispatcher behind the action-routed Twitter endpoint."""
    return ActionDispatcher(
        sessions=get_pkce_session_manager(),
        twitter_client=get_twitter_client(),
        connections=get_connection_store(),
        tokens=get_twitter_token_service(),
        harvester=get_relevance_harvester(),
        relevant_posts=get_relevant_post_store(),
        profiles=get_profile_store(),
        reply_composer=get_reply_composer(),
        drafts=get_draft_post_store(),
        frontend_base_url=_settings().frontend_base_url,
    )


__all__ = [
    "get_action_dispatcher",
    "get_connection_store",
    "get_content_generator_client",
    "get_draft_post_store",
    "get_draft_service",
    "get_openai_chat_client",
    "get_pkce_session_manager",
    "get_post_writer",
    "get_profile_store",
    "get_rate_limiter",
    "get_relevance_harvester",
    "get_relevant_post_store",
    "get_reply_composer",
    "get_sqlite_store",
    "get_token_cipher",
    "get_twitter_client",
    "get_twitter_token_service",
]
