try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from datetime import timedelta

import anyio
import fakeredis
import pytest

from _fakes import FrozenClock
from brandpilot.services.rate_limiter import (
    InMemoryRateLimitBackend,
    RateLimiter,
    RedisRateLimitBackend,
)


def _limiter(clock: FrozenClock, quota: int = 3, window_seconds: int = 60) -> RateLimiter:
    return RateLimiter(
        InMemoryRateLimitBackend(clock=clock), quota=quota, window_seconds=window_seconds
    )


@pytest.mark.anyio
async def test_quota_allows_then_denies_without_incrementing() -> None:
    clock = FrozenClock()
    limiter = _limiter(clock)

    decisions = [await limiter.check_and_consume("u1") for _ in range(3)]
    assert [d.allowed for d in decisions] == [True, True, True]
    assert [d.count for d in decisions] == [1, 2, 3]
    assert decisions[0].reset_at == clock.now + timedelta(seconds=60)

    denied = await limiter.check_and_consume("u1")
    assert denied.allowed is False
    assert denied.count == 3
    assert denied.reset_at == decisions[0].reset_at


@pytest.mark.anyio
async def test_window_resets_after_expiry() -> None:
    clock = FrozenClock()
    limiter = _limiter(clock)
    for _ in range(4):
        await limiter.check_and_consume("u1")

    clock.now += timedelta(seconds=61)
    decision = await limiter.check_and_consume("u1")

    assert decision.allowed is True
    assert decision.count == 1
    assert decision.reset_at == clock.now + timedelta(seconds=60)


@pytest.mark.anyio
async def test_users_have_separate_windows() -> None:
    limiter = _limiter(FrozenClock(), quota=1)

    assert (await limiter.check_and_consume("u1")).allowed
    assert not (await limiter.check_and_consume("u1")).allowed
    assert (await limiter.check_and_consume("u2")).allowed


@pytest.mark.anyio
async def test_mark_exhausted_blocks_until_window_ends() -> None:
    clock = FrozenClock()
    limiter = _limiter(clock, quota=5)
    await limiter.check_and_consume("u1")

    await limiter.mark_exhausted("u1")
    denied = await limiter.check_and_consume("u1")

    assert denied.allowed is False
    assert denied.count == 5
    assert denied.reset_at == clock.now + timedelta(seconds=60)


@pytest.mark.anyio
async def test_in_memory_backend_drops_expired_windows() -> None:
    clock = FrozenClock()
    backend = InMemoryRateLimitBackend(clock=clock)
    limiter = RateLimiter(backend, quota=3, window_seconds=60)
    for user_id in ("u1", "u2", "u3"):
        await limiter.check_and_consume(user_id)
    assert len(backend) == 3

    clock.now += timedelta(seconds=61)
    await limiter.check_and_consume("u4")

    assert len(backend) == 1


@pytest.fixture(params=["memory", "redis"])
def shared_limiter(request):
    clock = FrozenClock()
    if request.param == "redis":
        client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
        backend = RedisRateLimitBackend(client, clock=clock)
    else:
        backend = InMemoryRateLimitBackend(clock=clock)
    return RateLimiter(backend, quota=2, window_seconds=60), clock


@pytest.mark.anyio
async def test_each_backend_enforces_quota(shared_limiter) -> None:
    limiter, clock = shared_limiter

    decisions = [await limiter.check_and_consume("u1") for _ in range(3)]

    assert [(d.allowed, d.count) for d in decisions] == [(True, 1), (True, 2), (False, 2)]
    assert clock.now < decisions[-1].reset_at <= clock.now + timedelta(seconds=60)
    assert (await limiter.check_and_consume("u2")).allowed


@pytest.mark.anyio
async def test_each_backend_honours_mark_exhausted(shared_limiter) -> None:
    limiter, clock = shared_limiter
    await limiter.check_and_consume("u1")

    await limiter.mark_exhausted("u1")
    denied = await limiter.check_and_consume("u1")

    assert denied.allowed is False
    assert denied.count == 2
    assert clock.now < denied.reset_at <= clock.now + timedelta(seconds=60)


@pytest.mark.anyio
async def test_redis_window_resets_once_key_expires() -> None:
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    limiter = RateLimiter(RedisRateLimitBackend(client), quota=1, window_seconds=1)
    assert (await limiter.check_and_consume("u1")).allowed
    assert not (await limiter.check_and_consume("u1")).allowed

    await anyio.sleep(1.1)
    decision = await limiter.check_and_consume("u1")

    assert decision.allowed is True
    assert decision.count == 1
