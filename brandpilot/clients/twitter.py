"""
Twitter OAuth2 and v2 API client.

Builds PKCE authorization URLs, exchanges and refreshes tokens, and performs
the handful of v2 calls BrandPilot needs: identity, publish, reply and
recent search.
"""

from __future__ import annotations

import base64
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, Field

from brandpilot.core.config import TwitterSettings
from brandpilot.core.errors import ProviderError, ProviderRateLimited
from brandpilot.models import TokenSet, TwitterProfile
from brandpilot.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

SEARCH_TWEET_FIELDS = "created_at,author_id,public_metrics,context_annotations,entities"
SEARCH_USER_FIELDS = "name,username,profile_image_url,public_metrics"
SEARCH_MIN_RESULTS = 10
SEARCH_MAX_RESULTS = 100


class TweetAuthor(BaseModel):
    id: str
    name: Optional[str] = None
    username: Optional[str] = None


class Tweet(BaseModel):
    """A tweet from search results with its author expansion joined in."""

    id: str
    text: str
    author_id: Optional[str] = None
    created_at: Optional[datetime] = None
    public_metrics: Dict[str, int] = Field(default_factory=dict)
    context_annotations: List[Dict[str, Any]] = Field(default_factory=list)
    author: Optional[TweetAuthor] = None

    @property
    def url(self) -> str:
        handle = self.author.username if self.author and self.author.username else "i/web"
        return f"https://twitter.com/{handle}/status/{self.id}"


class SearchResult(BaseModel):
    tweets: List[Tweet] = Field(default_factory=list)
    result_count: int = 0
    next_token: Optional[str] = None


class PublishedTweet(BaseModel):
    id: str
    text: str = ""


def clamp_max_results(value: int) -> int:
    """The recent search endpoint only accepts 10..100 results per page."""
    return max(SEARCH_MIN_RESULTS, min(SEARCH_MAX_RESULTS, value))


class TwitterClient:
    """Talk to Twitter's OAuth2 endpoints and v2 API with user access tokens."""

    AUTH_BASE_URL = "https://twitter.com/i/oauth2/authorize"
    TOKEN_URL = "https://api.twitter.com/2/oauth2/token"
    API_BASE_URL = "https://api.twitter.com/2"

    def __init__(
        self,
        settings: TwitterSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
        search_retry: RetryConfig | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._timeout = timeout
        self._search_retry = search_retry or RetryConfig()

    @property
    def redirect_uri(self) -> str:
        return str(self._settings.redirect_uri)

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[httpx.AsyncClient]:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                yield client
        except httpx.TransportError as exc:
            logger.error("Network error while trying to %s: %s", action, exc)
            raise ProviderError(f"Failed to {action}: network error ({exc})") from exc

    def _basic_auth_header(self) -> str:
        raw = f"{self._settings.client_id}:{self._settings.client_secret}"
        return "Basic " + base64.b64encode(raw.encode("utf-8")).decode("ascii")

    def build_authorization_url(self, *, state: str, code_challenge: str) -> str:
        """Construct the consent URL for an S256 PKCE authorization request."""
        params = {
            "response_type": "code",
            "client_id": self._settings.client_id,
            "redirect_uri": self.redirect_uri,
            "scope": self._settings.scopes,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": "S256",
        }
        return f"{self.AUTH_BASE_URL}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str, code_verifier: str) -> TokenSet:
        """Redeem an authorization code bound to ``code_verifier``."""
        payload = {
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
            "code_verifier": code_verifier,
        }
        return await self._token_request(payload, action="exchange code for token")

    async def refresh_access_token(self, refresh_token: str) -> TokenSet:
        """Trade a refresh token (``offline.access`` scope) for a new token set."""
        payload = {
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
            "client_id": self._settings.client_id,
        }
        return await self._token_request(payload, action="refresh access token")

    async def _token_request(self, payload: Dict[str, str], *, action: str) -> TokenSet:
        headers = {
            "Authorization": self._basic_auth_header(),
            "Content-Type": "application/x-www-form-urlencoded",
        }
        async with self._session(action) as client:
            response = await client.post(self.TOKEN_URL, data=payload, headers=headers)
        _raise_for_provider(response, action=action)

        body = _json_body(response, action=action)
        if not body.get("access_token"):
            raise ProviderError(
                f"Failed to {action}: token response did not include an access token",
                provider_status=response.status_code,
                provider_body=response.text,
            )
        return TokenSet.model_validate(body)

    async def fetch_identity(self, access_token: str) -> TwitterProfile:
        """Return the profile of the account the access token belongs to."""
        async with self._session("fetch user info from Twitter") as client:
            response = await client.get(
                f"{self.API_BASE_URL}/users/me",
                params={"user.fields": "public_metrics"},
                headers=_bearer(access_token),
            )
        _raise_for_provider(response, action="fetch user info from Twitter")
        data = _json_body(response, action="fetch user info from Twitter").get("data") or {}
        return TwitterProfile(
            id=str(data.get("id", "")),
            username=data.get("username", ""),
            name=data.get("name", ""),
            public_metrics=data.get("public_metrics") or {},
        )

    async def create_tweet(
        self,
        access_token: str,
        text: str,
        *,
        in_reply_to_tweet_id: Optional[str] = None,
    ) -> PublishedTweet:
        """Publish a tweet, threaded under ``in_reply_to_tweet_id`` when given."""
        body: Dict[str, Any] = {"text": text}
        if in_reply_to_tweet_id:
            body["reply"] = {"in_reply_to_tweet_id": in_reply_to_tweet_id}

        action = "send reply" if in_reply_to_tweet_id else "post tweet"
        async with self._session(action) as client:
            response = await client.post(
                f"{self.API_BASE_URL}/tweets",
                json=body,
                headers=_bearer(access_token),
            )
        _raise_for_provider(response, action=action)
        data = _json_body(response, action=action).get("data") or {}
        return PublishedTweet(id=str(data.get("id", "")), text=data.get("text", text))

    async def search_recent(
        self, access_token: str, query: str, *, max_results: int = 10
    ) -> SearchResult:
        """Run a recent search and join author expansions onto each tweet."""
        params = {
            "query": query,
            "max_results": clamp_max_results(max_results),
            "tweet.fields": SEARCH_TWEET_FIELDS,
            "user.fields": SEARCH_USER_FIELDS,
            "expansions": "author_id",
        }
        async with self._session("search recent tweets") as client:
            response = await request_with_retry(
                client.get,
                f"{self.API_BASE_URL}/tweets/search/recent",
                params=params,
                headers=_bearer(access_token),
                retry_config=self._search_retry,
            )
        _raise_for_provider(response, action="search recent tweets")
        return _parse_search_payload(_json_body(response, action="search recent tweets"))


def _bearer(access_token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}


def _raise_for_provider(response: httpx.Response, *, action: str) -> None:
    if response.is_success:
        return
    body = response.text
    if response.status_code == 429:
        reset_header = response.headers.get("x-rate-limit-reset")
        logger.warning("Twitter rate limit hit while trying to %s.", action)
        raise ProviderRateLimited(
            f"Twitter rate limit exceeded while trying to {action}",
            reset_at=_parse_reset(reset_header),
            provider_body=body,
        )
    logger.error("Twitter API error during %s: %s %s", action, response.status_code, body)
    raise ProviderError(
        f"Failed to {action}: {body}",
        provider_status=response.status_code,
        provider_body=body,
    )


def _json_body(response: httpx.Response, *, action: str) -> Dict[str, Any]:
    """Decode a 2xx body, treating anything but a JSON object as a provider fault."""
    try:
        body = response.json()
    except ValueError as exc:
        raise ProviderError(
            f"Failed to {action}: response was not valid JSON",
            provider_status=response.status_code,
            provider_body=response.text,
        ) from exc
    if not isinstance(body, dict):
        raise ProviderError(
            f"Failed to {action}: unexpected response shape",
            provider_status=response.status_code,
            provider_body=response.text,
        )
    return body


def _parse_reset(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except ValueError:
        return None


def _parse_search_payload(payload: Dict[str, Any]) -> SearchResult:
    users = {
        str(user.get("id")): TweetAuthor(
            id=str(user.get("id")),
            name=user.get("name"),
            username=user.get("username"),
        )
        for user in (payload.get("includes") or {}).get("users", [])
    }
    tweets: List[Tweet] = []
    for item in payload.get("data") or []:
        tweet = Tweet.model_validate(item)
        if tweet.author_id:
            tweet.author = users.get(tweet.author_id)
        tweets.append(tweet)

    meta = payload.get("meta") or {}
    return SearchResult(
        tweets=tweets,
        result_count=int(meta.get("result_count", len(tweets))),
        next_token=meta.get("next_token"),
    )


__all__ = [
    "PublishedTweet",
    "SearchResult",
    "Tweet",
    "TweetAuthor",
    "TwitterClient",
    "clamp_max_results",
]
