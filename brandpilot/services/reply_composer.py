"""
Compose short conversational replies to saved tweets.
"""

from __future__ import annotations

import logging
from typing import Optional

from brandpilot.clients.openai_chat import OpenAIChatClient
from brandpilot.core.errors import GenerationFailed
from brandpilot.models import ProfileContext

logger = logging.getLogger(__name__)

TWEET_CHAR_LIMIT = 280
_ELLIPSIS = "..."
_QUOTES = "\"'“”‘’"


def truncate_for_platform(text: str, limit: int = TWEET_CHAR_LIMIT) -> str:
    """Cut ``text`` to ``limit`` characters, ending with an ellipsis when cut."""
    if len(text) <= limit:
        return text
    return text[: limit - len(_ELLIPSIS)] + _ELLIPSIS


def strip_wrapping_quotes(text: str) -> str:
    return text.strip().strip(_QUOTES).strip()


def build_reply_system_prompt(context: ProfileContext) -> str:
    topics = ", ".join(context.topics) or "general business topics"
    background = context.background or "No additional background provided."
    return (
        "You are a social media assistant writing a reply to a tweet on behalf of a user.\n"
        f"Voice: {context.voice}.\n"
        f"About the user: {background}\n"
        f"Topics the user cares about: {topics}.\n\n"
        "Rules:\n"
        f"- Keep the reply under {TWEET_CHAR_LIMIT} characters.\n"
        "- Be conversational and add value to the discussion.\n"
        "- Do not overload the reply with self-promotion.\n"
        "- Use at most one hashtag, and only if it is natural.\n"
        "- Return only the reply text, without quotes."
    )


class ReplyComposer:
    def __init__(
        self,
        chat_client: OpenAIChatClient,
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> None:
        self._chat = chat_client
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def compose(self, target_text: str, context: ProfileContext) -> str:
        """Return a reply to ``target_text`` that fits in a single tweet."""
        raw = await self._chat.complete(
            system_prompt=build_reply_system_prompt(context),
            user_message=f'Write a reply to this tweet: "{target_text}"',
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )
        reply = strip_wrapping_quotes(raw)
        if not reply:
            raise GenerationFailed("No content generated from OpenAI")
        reply = truncate_for_platform(reply)
        logger.debug("Composed reply of %d characters", len(reply))
        return reply


__all__ = [
    "ReplyComposer",
    "TWEET_CHAR_LIMIT",
    "build_reply_system_prompt",
    "strip_wrapping_quotes",
    "truncate_for_platform",
]
