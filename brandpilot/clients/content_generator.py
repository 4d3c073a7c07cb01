"""Client for the external service that drafts batches of posts."""

from __future__ import annotations

import logging
from typing import List, Optional

import httpx
from pydantic import BaseModel, Field

from brandpilot.core.config import ContentGeneratorSettings
from brandpilot.core.errors import ProviderError

logger = logging.getLogger(__name__)


class ContentRequest(BaseModel):
    topics_of_interest: List[str] = Field(default_factory=list)
    ai_voice: str = "professional"
    about_context: str = ""
    post_preference: str = ""


class GeneratedContent(BaseModel):
    contents: List[str]
    url_content: Optional[str] = None


class ContentGeneratorClient:
    """POST a user's interests and receive ready-to-edit post texts."""

    def __init__(
        self,
        settings: ContentGeneratorSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def generate(self, request: ContentRequest) -> GeneratedContent:
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        ) as client:
            try:
                response = await client.post(self._settings.url, json=request.model_dump())
            except httpx.TransportError as exc:
                raise ProviderError(
                    f"Failed to generate content: network error ({exc})"
                ) from exc

        if not response.is_success:
            logger.error(
                "Content generator error: %s %s", response.status_code, response.text
            )
            raise ProviderError(
                f"External API error: {response.status_code} - {response.text}",
                provider_status=response.status_code,
                provider_body=response.text,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError(
                "Invalid response format from external API",
                provider_status=response.status_code,
                provider_body=response.text,
            ) from exc
        contents = body.get("contents") if isinstance(body, dict) else None
        if not isinstance(contents, list):
            raise ProviderError(
                "Invalid response format from external API",
                provider_status=response.status_code,
                provider_body=response.text,
            )
        return GeneratedContent(
            contents=[str(item) for item in contents],
            url_content=body.get("url_content"),
        )


__all__ = ["ContentGeneratorClient", "ContentRequest", "GeneratedContent"]
