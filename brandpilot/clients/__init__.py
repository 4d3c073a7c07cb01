"""Expose constructed client wrappers."""

from .content_generator import ContentGeneratorClient, ContentRequest, GeneratedContent
from .openai_chat import OpenAIChatClient
from .sqlite_store import SQLiteStore
from .twitter import PublishedTweet, SearchResult, Tweet, TweetAuthor, TwitterClient

__all__ = [
    "ContentGeneratorClient",
    "ContentRequest",
    "GeneratedContent",
    "OpenAIChatClient",
    "PublishedTweet",
    "SQLiteStore",
    "SearchResult",
    "Tweet",
    "TweetAuthor",
    "TwitterClient",
]
