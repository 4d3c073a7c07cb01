try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import base64
import json
from urllib.parse import parse_qs

import httpx
import pytest

from _fakes import DummyTwitterAPI, search_payload
from brandpilot.clients.twitter import clamp_max_results
from brandpilot.core.errors import ProviderError, ProviderRateLimited


@pytest.mark.anyio
async def test_exchange_posts_form_with_basic_auth() -> None:
    api = DummyTwitterAPI()
    client = api.client()

    tokens = await client.exchange_authorization_code("code-1", "verifier-1")

    assert tokens.access_token == "access-1"
    assert tokens.refresh_token == "refresh-1"
    request = api.requests_to("/2/oauth2/token")[0]
    form = parse_qs(request.content.decode())
    assert form == {
        "code": ["code-1"],
        "grant_type": ["authorization_code"],
        "redirect_uri": ["https://api.example.com/api/twitter-auth?action=callback"],
        "code_verifier": ["verifier-1"],
    }
    expected = base64.b64encode(b"client-123:secret-456").decode()
    assert request.headers["Authorization"] == f"Basic {expected}"


@pytest.mark.anyio
async def test_exchange_failure_carries_provider_body() -> None:
    api = DummyTwitterAPI()
    api.token_response = httpx.Response(400, text='{"error":"invalid_request"}')

    with pytest.raises(ProviderError) as excinfo:
        await api.client().exchange_authorization_code("code-1", "verifier-1")

    assert excinfo.value.provider_status == 400
    assert "invalid_request" in excinfo.value.provider_body
    assert excinfo.value.message.startswith("Failed to exchange code for token")


@pytest.mark.anyio
async def test_fetch_identity_uses_bearer_token() -> None:
    api = DummyTwitterAPI()

    profile = await api.client().fetch_identity("access-1")

    assert profile.username == "brandpilot"
    assert profile.public_metrics == {"followers_count": 10}
    request = api.requests_to("/2/users/me")[0]
    assert request.headers["Authorization"] == "Bearer access-1"
    assert request.url.params["user.fields"] == "public_metrics"


@pytest.mark.anyio
async def test_create_tweet_threads_replies() -> None:
    api = DummyTwitterAPI()

    published = await api.client().create_tweet(
        "access-1", "nice thread", in_reply_to_tweet_id="777"
    )

    assert published.id == "9001"
    body = json.loads(api.requests_to("/2/tweets")[0].content)
    assert body == {"text": "nice thread", "reply": {"in_reply_to_tweet_id": "777"}}


@pytest.mark.anyio
async def test_search_joins_authors_and_clamps_page_size() -> None:
    api = DummyTwitterAPI()
    api.search_responses.append(httpx.Response(200, json=search_payload({"id": "1"})))

    result = await api.client().search_recent("access-1", "ai", max_results=500)

    assert result.result_count == 1
    tweet = result.tweets[0]
    assert tweet.author is not None and tweet.author.username == "user_author-1"
    assert tweet.url == "https://twitter.com/user_author-1/status/1"
    params = api.requests_to("/2/tweets/search/recent")[0].url.params
    assert params["max_results"] == "100"
    assert params["expansions"] == "author_id"


@pytest.mark.anyio
async def test_search_retries_server_errors_only() -> None:
    api = DummyTwitterAPI()
    api.search_responses.extend(
        [
            httpx.Response(503, text="over capacity"),
            httpx.Response(200, json=search_payload({"id": "1"})),
        ]
    )

    result = await api.client().search_recent("access-1", "ai")

    assert len(result.tweets) == 1
    assert len(api.requests_to("/2/tweets/search/recent")) == 2


@pytest.mark.anyio
async def test_search_rate_limit_is_not_retried() -> None:
    api = DummyTwitterAPI()
    api.search_responses.append(
        httpx.Response(429, text="Too Many Requests", headers={"x-rate-limit-reset": "1714572000"})
    )

    with pytest.raises(ProviderRateLimited) as excinfo:
        await api.client().search_recent("access-1", "ai")

    assert excinfo.value.reset_at is not None
    assert excinfo.value.reset_at.timestamp() == 1714572000
    assert len(api.requests_to("/2/tweets/search/recent")) == 1


def test_clamp_max_results_bounds() -> None:
    assert clamp_max_results(1) == 10
    assert clamp_max_results(50) == 50
    assert clamp_max_results(1000) == 100
