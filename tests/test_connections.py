try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from datetime import timedelta

import httpx
import pytest

from _fakes import DummyTwitterAPI, FrozenClock
from brandpilot.core.errors import NotConnected
from brandpilot.models import TokenSet, TwitterProfile
from brandpilot.services.connections import ConnectionStore
from brandpilot.services.twitter_tokens import TwitterTokenService

PROFILE = TwitterProfile(id="42", username="brandpilot", name="Brand Pilot")


@pytest.fixture()
def connections(sqlite_store, cipher) -> ConnectionStore:
    return ConnectionStore(sqlite_store, cipher)


def _connect(connections: ConnectionStore, clock: FrozenClock, **token_fields) -> None:
    tokens = TokenSet(
        access_token=token_fields.get("access_token", "access-0"),
        refresh_token=token_fields.get("refresh_token", "refresh-0"),
        expires_in=token_fields.get("expires_in", 7200),
    )
    connections.save_connected(
        user_id="u1", tokens=tokens, profile=PROFILE, issued_at=clock()
    )


def test_save_connected_upserts_one_row_with_encrypted_tokens(
    connections, sqlite_store
) -> None:
    clock = FrozenClock()
    _connect(connections, clock)
    _connect(connections, clock, access_token="access-1")

    with sqlite_store.connect() as conn:
        rows = conn.execute("SELECT * FROM social_connections").fetchall()
    assert len(rows) == 1
    assert rows[0]["access_token_encrypted"] != "access-1"

    connection = connections.get("u1")
    assert connection.is_connected
    assert connection.access_token == "access-1"
    assert connection.username == "brandpilot"
    assert connection.token_expires_at == clock() + timedelta(seconds=7200)
    assert "access_token" not in connection.public_view()


def test_disconnect_clears_tokens_but_keeps_row(connections) -> None:
    _connect(connections, FrozenClock())

    connections.disconnect("u1")

    connection = connections.get("u1")
    assert connection is not None
    assert connection.is_connected is False
    assert connection.access_token is None
    assert connection.refresh_token is None
    assert connections.get_active("u1") is None


@pytest.mark.anyio
async def test_token_service_requires_active_connection(connections) -> None:
    service = TwitterTokenService(connections, DummyTwitterAPI().client())

    with pytest.raises(NotConnected):
        await service.get_access_token("u1")


@pytest.mark.anyio
async def test_token_service_returns_fresh_token_without_refresh(connections) -> None:
    clock = FrozenClock()
    _connect(connections, clock)
    api = DummyTwitterAPI()
    service = TwitterTokenService(connections, api.client(), clock=clock)

    assert await service.get_access_token("u1") == "access-0"
    assert api.requests == []


@pytest.mark.anyio
async def test_token_service_refreshes_tokens_near_expiry(connections) -> None:
    clock = FrozenClock()
    _connect(connections, clock, expires_in=120)
    api = DummyTwitterAPI()
    api.token_response = httpx.Response(
        200, json={"access_token": "access-2", "expires_in": 7200}
    )
    service = TwitterTokenService(connections, api.client(), clock=clock)

    assert await service.get_access_token("u1") == "access-2"

    form = api.requests_to("/2/oauth2/token")[0].content.decode()
    assert "grant_type=refresh_token" in form
    stored = connections.get("u1")
    assert stored.access_token == "access-2"
    assert stored.refresh_token == "refresh-0"
    assert stored.token_expires_at == clock() + timedelta(seconds=7200)
