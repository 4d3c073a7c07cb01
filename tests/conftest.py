"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from brandpilot.clients.sqlite_store import SQLiteStore
from brandpilot.services.token_cipher import TokenCipher


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def sqlite_store(tmp_path) -> SQLiteStore:
    return SQLiteStore(str(tmp_path / "brandpilot.db"))


@pytest.fixture
def cipher() -> TokenCipher:
    return TokenCipher(secret="unit-test-secret")
