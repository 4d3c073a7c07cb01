"""HTTP utilities providing bounded retry for idempotent provider calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 1.0) -> None:
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


def _is_retryable(response: httpx.Response) -> bool:
    return response.status_code >= 500


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> httpx.Response:
    """
    Invoke ``func`` and retry transport failures and 5xx answers.

    Only use this for idempotent GET requests. 4xx answers (429 included) are
    returned to the caller untouched; the last 5xx answer is returned once the
    attempts are used up so the caller can report the provider's body.
    """
    config = retry_config or RetryConfig()
    attempt = 0
    last_exception: Exception | None = None
    last_response: httpx.Response | None = None

    while attempt < config.attempts:
        try:
            response = await func(*args, **kwargs)
        except httpx.TransportError as exc:
            last_exception = exc
            last_response = None
        else:
            if not _is_retryable(response):
                return response
            last_response = response
            last_exception = None

        attempt += 1
        if attempt >= config.attempts:
            break
        logger.warning(
            "Retrying provider request (attempt %d/%d).", attempt + 1, config.attempts
        )
        await asyncio.sleep(config.backoff_seconds * attempt)

    if last_response is not None:
        return last_response
    if last_exception is not None:
        raise last_exception
    raise RuntimeError("Request failed without raising an exception")


__all__ = ["RetryConfig", "request_with_retry"]
