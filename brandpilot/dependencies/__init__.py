"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_action_dispatcher,
    get_connection_store,
    get_content_generator_client,
    get_draft_post_store,
    get_draft_service,
    get_openai_chat_client,
    get_pkce_session_manager,
    get_post_writer,
    get_profile_store,
    get_rate_limiter,
    get_relevance_harvester,
    get_relevant_post_store,
    get_reply_composer,
    get_sqlite_store,
    get_token_cipher,
    get_twitter_client,
    get_twitter_token_service,
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
