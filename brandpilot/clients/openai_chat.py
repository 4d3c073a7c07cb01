"""Client wrapper for OpenAI chat completions."""

from __future__ import annotations

import logging
from typing import Optional

from openai import APIError, AsyncOpenAI

from brandpilot.core.config import OpenAISettings
from brandpilot.core.errors import GenerationFailed

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Send a system instruction plus one user turn and return the reply text."""

    def __init__(
        self, settings: OpenAISettings, *, client: Optional[AsyncOpenAI] = None
    ) -> None:
        self._settings = settings
        self._client = client or AsyncOpenAI(api_key=settings.api_key)

    async def complete(
        self,
        *,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """
        Return the stripped content of the first choice.

        Raises ``GenerationFailed`` when the API call fails or the completion
        comes back empty.
        """
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.model_name,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_message},
                ],
                max_tokens=max_tokens or self._settings.max_tokens,
                temperature=(
                    temperature if temperature is not None else self._settings.temperature
                ),
            )
        except APIError as exc:
            logger.error("OpenAI chat completion failed: %s", exc)
            raise GenerationFailed(f"OpenAI API error: {exc}") from exc

        content = ""
        if response.choices:
            content = (response.choices[0].message.content or "").strip()
        if not content:
            raise GenerationFailed("No content generated from OpenAI")
        return content


__all__ = ["OpenAIChatClient"]
