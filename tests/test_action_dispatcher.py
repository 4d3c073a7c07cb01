try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from _fakes import DummyChatClient, Services, search_payload
from brandpilot.core.errors import (
    InvalidOrExpiredSession,
    InvalidRequest,
    NoReplyText,
    NoResults,
    NotConnected,
    NotFound,
    ProviderError,
    RateLimited,
)
from brandpilot.models import Profile


@pytest.fixture()
def services(sqlite_store, cipher) -> Services:
    return Services(sqlite_store, cipher, chat=DummyChatClient("Great question!"))


@pytest.mark.anyio
async def test_authorize_then_callback_connects_account(services, sqlite_store) -> None:
    started = await services.dispatcher.dispatch({"action": "authorize", "userId": "u1"})
    state = started.body["state"]
    assert parse_qs(urlparse(started.body["authUrl"]).query)["state"] == [state]

    result = await services.dispatcher.dispatch(
        {"action": "callback", "code": "code-1", "state": state}
    )

    assert result.redirect_url == "https://app.example.com/dashboard?twitter_connected=true"
    connection = services.connections.get("u1")
    assert connection.is_connected and connection.access_token == "access-1"
    with sqlite_store.connect() as conn:
        assert conn.execute("SELECT COUNT(*) FROM oauth_sessions").fetchone()[0] == 0
        assert conn.execute("SELECT COUNT(*) FROM social_connections").fetchone()[0] == 1

    with pytest.raises(InvalidOrExpiredSession):
        await services.dispatcher.dispatch(
            {"action": "callback", "code": "code-1", "state": state}
        )


@pytest.mark.anyio
async def test_failed_exchange_consumes_session(services) -> None:
    services.api.token_response = httpx.Response(400, text="invalid_grant")
    started = await services.dispatcher.dispatch({"action": "authorize", "userId": "u1"})
    payload = {"action": "callback", "code": "bad", "state": started.body["state"]}

    with pytest.raises(ProviderError):
        await services.dispatcher.dispatch(payload)
    with pytest.raises(InvalidOrExpiredSession):
        await services.dispatcher.dispatch(payload)
    assert services.connections.get("u1") is None


@pytest.mark.anyio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"action": "launch"},
        {"action": "authorize"},
        {"action": "post", "userId": "u1"},
        {"action": "generateResponse"},
        {"action": "sendReply", "tweetId": "1"},
    ],
)
async def test_malformed_actions_are_invalid_requests(services, payload) -> None:
    with pytest.raises(InvalidRequest):
        await services.dispatcher.dispatch(payload)


@pytest.mark.anyio
async def test_post_requires_connection(services) -> None:
    with pytest.raises(NotConnected):
        await services.dispatcher.dispatch({"action": "post", "userId": "u1", "tweet": "hi"})
    assert services.api.requests == []


@pytest.mark.anyio
async def test_post_publishes_and_marks_draft(services) -> None:
    services.connect()
    draft = services.drafts.create("u1", "Shipping day!")

    result = await services.dispatcher.dispatch(
        {"action": "post", "userId": "u1", "tweet": "Shipping day!", "draftId": draft.id}
    )

    assert result.body == {
        "success": True,
        "tweetId": "9001",
        "url": "https://twitter.com/brandpilot/status/9001",
    }
    published = services.drafts.get(draft.id)
    assert published.status == "published"
    assert published.published_at is not None


@pytest.mark.anyio
async def test_search_is_rate_limited_locally(sqlite_store, cipher) -> None:
    services = Services(sqlite_store, cipher, quota=1)
    services.connect()
    services.api.search_responses.append(
        httpx.Response(200, json=search_payload({"id": "1"}))
    )
    payload = {"action": "search", "userId": "u1", "query": "ai", "maxResults": 5}

    result = await services.dispatcher.dispatch(payload)
    assert [tweet["id"] for tweet in result.body["tweets"]] == ["1"]

    with pytest.raises(RateLimited):
        await services.dispatcher.dispatch(payload)
    assert len(services.api.requests_to("/2/tweets/search/recent")) == 1


@pytest.mark.anyio
async def test_provider_429_exhausts_local_window(services) -> None:
    services.connect()
    services.api.search_responses.append(httpx.Response(429, text="Too Many Requests"))
    payload = {"action": "search", "userId": "u1", "query": "ai"}

    with pytest.raises(RateLimited):
        await services.dispatcher.dispatch(payload)
    with pytest.raises(RateLimited):
        await services.dispatcher.dispatch(payload)
    assert len(services.api.requests_to("/2/tweets/search/recent")) == 1


@pytest.mark.anyio
async def test_find_and_save_skips_known_tweets(services) -> None:
    services.connect()
    services.profiles.save(Profile(id="u1", topics_of_interest=["AI & Technology"]))
    services.save_relevant_post(tweet_id="2")
    services.api.search_responses.append(
        httpx.Response(200, json=search_payload({"id": "1"}, {"id": "2"}, {"id": "3"}))
    )

    result = await services.dispatcher.dispatch({"action": "findAndSave", "userId": "u1"})

    assert result.body["newPostsCount"] == 2
    assert result.body["skippedPostsCount"] == 1
    assert result.body["query"].startswith('"AI & Technology"')
    saved = {post.tweet_id for post in services.relevant_posts.list_for_user("u1")}
    assert saved == {"1", "2", "3"}
    assert {post["topic"] for post in result.body["posts"]} == {"AI & Technology"}


@pytest.mark.anyio
async def test_find_and_save_without_new_posts_reports_no_results(services) -> None:
    services.connect()
    services.save_relevant_post(tweet_id="1")
    services.api.search_responses.append(
        httpx.Response(200, json=search_payload({"id": "1"}))
    )

    with pytest.raises(NoResults) as excinfo:
        await services.dispatcher.dispatch({"action": "findAndSave", "userId": "u1"})
    assert excinfo.value.skipped_posts_count == 1


@pytest.mark.anyio
async def test_generate_response_stores_reply(services) -> None:
    post = services.save_relevant_post()

    result = await services.dispatcher.dispatch(
        {"action": "generateResponse", "postId": post.id}
    )

    assert result.body["response"] == "Great question!"
    assert services.relevant_posts.get(post.id).ai_response == "Great question!"
    assert post.content in services.chat.calls[0]["user_message"]


@pytest.mark.anyio
async def test_generate_response_for_unknown_post(services) -> None:
    with pytest.raises(NotFound):
        await services.dispatcher.dispatch(
            {"action": "generateResponse", "tweetId": "404", "userId": "u1"}
        )


@pytest.mark.anyio
async def test_send_reply_without_text_makes_no_provider_call(services) -> None:
    services.connect()
    post = services.save_relevant_post()

    with pytest.raises(NoReplyText):
        await services.dispatcher.dispatch({"action": "sendReply", "postId": post.id})
    assert services.api.requests == []


@pytest.mark.anyio
async def test_send_reply_uses_stored_response(services) -> None:
    services.connect()
    post = services.save_relevant_post(tweet_id="777", ai_response="Totally agree")

    result = await services.dispatcher.dispatch(
        {"action": "sendReply", "tweetId": "777", "userId": "u1"}
    )

    assert result.body["replyId"] == "9001"
    body = json.loads(services.api.requests_to("/2/tweets")[0].content)
    assert body == {"text": "Totally agree", "reply": {"in_reply_to_tweet_id": "777"}}
    assert services.relevant_posts.get(post.id).reply_tweet_id == "9001"


@pytest.mark.anyio
async def test_disconnect_clears_connection(services) -> None:
    services.connect()

    result = await services.dispatcher.dispatch({"action": "disconnect", "userId": "u1"})

    assert result.body == {"success": True}
    assert services.connections.get_active("u1") is None


@pytest.mark.anyio
async def test_send_reply_to_another_users_post_is_not_found(services) -> None:
    services.connect("u1")
    services.connect("u2")
    post = services.save_relevant_post(user_id="u1", ai_response="Nice one")

    with pytest.raises(NotFound):
        await services.dispatcher.dispatch(
            {"action": "sendReply", "postId": post.id, "userId": "u2"}
        )
    with pytest.raises(NotFound):
        await services.dispatcher.dispatch(
            {"action": "generateResponse", "postId": post.id, "userId": "u2"}
        )

    assert services.api.requests == []
    assert services.relevant_posts.get(post.id).reply_tweet_id is None


@pytest.mark.anyio
async def test_send_reply_by_post_id_uses_the_owners_connection(services) -> None:
    services.connect("u1")
    post = services.save_relevant_post(user_id="u1", ai_response="Nice one")

    result = await services.dispatcher.dispatch({"action": "sendReply", "postId": post.id})

    assert result.body["replyId"] == "9001"
    [request] = services.api.requests_to("/2/tweets")
    assert request.headers["Authorization"] == "Bearer access-0"


@pytest.mark.anyio
async def test_post_with_another_users_draft_is_not_found(services) -> None:
    services.connect("u2")
    draft = services.drafts.create("u1", "Not yours")

    with pytest.raises(NotFound):
        await services.dispatcher.dispatch(
            {"action": "post", "userId": "u2", "tweet": "Not yours", "draftId": draft.id}
        )

    assert services.api.requests == []
    assert services.drafts.get(draft.id).status == "draft"
