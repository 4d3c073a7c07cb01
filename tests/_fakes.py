"""Hand-written stand-ins for Twitter and OpenAI shared by several test modules."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from brandpilot.clients.twitter import TwitterClient
from brandpilot.core.config import TwitterSettings
from brandpilot.models import RelevantPost, TokenSet, TwitterProfile
from brandpilot.services import (
    ActionDispatcher,
    ConnectionStore,
    DraftPostStore,
    InMemoryRateLimitBackend,
    PKCESessionManager,
    PKCESessionStore,
    ProfileStore,
    RateLimiter,
    RelevanceHarvester,
    RelevantPostStore,
    ReplyComposer,
    TwitterTokenService,
)
from brandpilot.services.relevant_posts import new_post_id
from brandpilot.utils.http import RetryConfig


def twitter_settings(**overrides: Any) -> TwitterSettings:
    values = {
        "client_id": "client-123",
        "client_secret": "secret-456",
        "redirect_uri": "https://api.example.com/api/twitter-auth?action=callback",
    }
    values.update(overrides)
    return TwitterSettings(**values)


def search_payload(*tweets: Dict[str, Any]) -> Dict[str, Any]:
    """Build a recent-search response with one author per tweet."""
    data = []
    users = []
    for tweet in tweets:
        author_id = tweet.get("author_id", f"author-{tweet['id']}")
        data.append(
            {
                "id": tweet["id"],
                "text": tweet.get("text", f"tweet {tweet['id']} about ai"),
                "author_id": author_id,
                "created_at": "2024-05-01T12:00:00.000Z",
                "public_metrics": {
                    "retweet_count": 1,
                    "reply_count": 2,
                    "like_count": 3,
                    "quote_count": 0,
                },
                **(
                    {"context_annotations": tweet["context_annotations"]}
                    if "context_annotations" in tweet
                    else {}
                ),
            }
        )
        users.append({"id": author_id, "name": f"Author {author_id}", "username": f"user_{author_id}"})
    return {
        "data": data,
        "includes": {"users": users},
        "meta": {"result_count": len(data)},
    }


class DummyTwitterAPI:
    """Routes MockTransport requests to canned Twitter responses and records them."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.token_response: httpx.Response = httpx.Response(
            200,
            json={
                "access_token": "access-1",
                "refresh_token": "refresh-1",
                "expires_in": 7200,
                "scope": "tweet.read tweet.write users.read offline.access",
            },
        )
        self.me_response: httpx.Response = httpx.Response(
            200,
            json={
                "data": {
                    "id": "42",
                    "username": "brandpilot",
                    "name": "Brand Pilot",
                    "public_metrics": {"followers_count": 10},
                }
            },
        )
        self.tweet_responses: List[httpx.Response] = []
        self.search_responses: List[httpx.Response] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/2/oauth2/token":
            return self.token_response
        if path == "/2/users/me":
            return self.me_response
        if path == "/2/tweets" and request.method == "POST":
            if self.tweet_responses:
                return self.tweet_responses.pop(0)
            body = json.loads(request.content)
            return httpx.Response(201, json={"data": {"id": "9001", "text": body["text"]}})
        if path == "/2/tweets/search/recent":
            if self.search_responses:
                return self.search_responses.pop(0)
            return httpx.Response(200, json={"meta": {"result_count": 0}})
        return httpx.Response(404, text=f"unexpected {request.method} {path}")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self, **overrides: Any) -> TwitterClient:
        return TwitterClient(
            twitter_settings(**overrides),
            transport=self.transport(),
            search_retry=RetryConfig(attempts=2, backoff_seconds=0),
        )

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]


class DummyChatClient:
    """Replaces ``OpenAIChatClient``; returns queued replies and keeps the prompts."""

    def __init__(self, *replies: str) -> None:
        self.replies = list(replies)
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        *,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_message": user_message,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        return self.replies.pop(0)


class FrozenClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


class Services:
    """The dispatcher and the stores behind it, wired to the dummy providers."""

    def __init__(
        self,
        sqlite_store,
        cipher,
        *,
        api: Optional[DummyTwitterAPI] = None,
        chat: Optional[DummyChatClient] = None,
        clock: Optional[FrozenClock] = None,
        quota: int = 300,
    ) -> None:
        self.api = api or DummyTwitterAPI()
        self.chat = chat or DummyChatClient()
        self.clock = clock or FrozenClock()
        twitter = self.api.client()

        self.connections = ConnectionStore(sqlite_store, cipher)
        self.profiles = ProfileStore(sqlite_store)
        self.relevant_posts = RelevantPostStore(sqlite_store)
        self.drafts = DraftPostStore(sqlite_store)
        self.sessions = PKCESessionManager(
            PKCESessionStore(sqlite_store, cipher, clock=self.clock),
            twitter.build_authorization_url,
            clock=self.clock,
        )
        self.tokens = TwitterTokenService(self.connections, twitter, clock=self.clock)
        self.rate_limiter = RateLimiter(
            InMemoryRateLimitBackend(clock=self.clock), quota=quota, window_seconds=900
        )
        self.harvester = RelevanceHarvester(
            profiles=self.profiles,
            posts=self.relevant_posts,
            tokens=self.tokens,
            twitter_client=twitter,
            rate_limiter=self.rate_limiter,
            clock=self.clock,
        )
        self.dispatcher = ActionDispatcher(
            sessions=self.sessions,
            twitter_client=twitter,
            connections=self.connections,
            tokens=self.tokens,
            harvester=self.harvester,
            relevant_posts=self.relevant_posts,
            profiles=self.profiles,
            reply_composer=ReplyComposer(self.chat),
            drafts=self.drafts,
            frontend_base_url="https://app.example.com",
            clock=self.clock,
        )

    def connect(self, user_id: str = "u1") -> None:
        self.connections.save_connected(
            user_id=user_id,
            tokens=TokenSet(access_token="access-0", refresh_token="refresh-0", expires_in=7200),
            profile=TwitterProfile(id="42", username="brandpilot", name="Brand Pilot"),
            issued_at=self.clock(),
        )

    def save_relevant_post(self, user_id: str = "u1", tweet_id: str = "1", **fields: Any):
        post = RelevantPost(
            id=new_post_id(),
            user_id=user_id,
            tweet_id=tweet_id,
            content=fields.pop("content", "Founders: how do you find your first customers?"),
            **fields,
        )
        self.relevant_posts.insert(post)
        return post
