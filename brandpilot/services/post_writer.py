"""
Generate a single Twitter post from a free-form prompt.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from pydantic import BaseModel

from brandpilot.clients.openai_chat import OpenAIChatClient
from brandpilot.core.errors import InvalidRequest
from brandpilot.models import ProfileContext
from brandpilot.services.profiles import ProfileStore
from brandpilot.services.reply_composer import TWEET_CHAR_LIMIT, truncate_for_platform

logger = logging.getLogger(__name__)

TONE_INSTRUCTIONS: Dict[str, str] = {
    "professional": "Write in a professional, authoritative tone suitable for business networking.",
    "friendly": "Write in a warm, approachable tone that feels conversational and welcoming.",
    "witty": "Write with clever humor and wit, making the content engaging and memorable.",
    "inspirational": "Write in an uplifting, motivational tone that inspires and encourages action.",
    "educational": "Write in an informative, teaching tone that explains concepts clearly.",
}

LENGTH_INSTRUCTIONS: Dict[str, str] = {
    "short": "Keep it very concise, 1-2 sentences maximum.",
    "medium": "Write 3-4 sentences with moderate detail.",
    "long": f"Write 5+ sentences with comprehensive detail, but stay under {TWEET_CHAR_LIMIT} characters.",
}


class GeneratedPost(BaseModel):
    post: str
    character_count: int


def _context_block(context: Optional[ProfileContext]) -> str:
    if context is None or context.profile is None:
        return ""
    profile = context.profile
    return (
        f"User context: {profile.about_context or 'No specific context provided'}\n"
        f"Topics of interest: {', '.join(profile.topics_of_interest) or 'General topics'}\n"
        f"Preferred voice: {profile.ai_voice or 'professional'}"
    )


def build_post_system_prompt(
    tone: str, length: str, context: Optional[ProfileContext] = None
) -> str:
    lines = [
        "You are an expert social media content creator. "
        "Generate a Twitter post based on the user's input.",
        "",
        "REQUIREMENTS:",
        f"- Maximum {TWEET_CHAR_LIMIT} characters (this is critical - count carefully)",
        f"- Tone: {TONE_INSTRUCTIONS[tone]}",
        f"- Length: {LENGTH_INSTRUCTIONS[length]}",
        "- Make it engaging and suitable for Twitter",
        "- Include relevant hashtags if appropriate (but count them in character limit)",
        "- Do not use quotes around the post",
    ]
    block = _context_block(context)
    if block:
        lines.append(block)
    lines.extend(["", "Generate ONLY the post content, nothing else."])
    return "\n".join(lines)


class PostWriter:
    def __init__(self, chat_client: OpenAIChatClient, profiles: ProfileStore) -> None:
        self._chat = chat_client
        self._profiles = profiles

    async def generate(
        self,
        prompt: str,
        tone: str,
        length: str,
        user_id: Optional[str] = None,
    ) -> GeneratedPost:
        if not prompt or not prompt.strip():
            raise InvalidRequest("Prompt, tone, and length are required")
        if tone not in TONE_INSTRUCTIONS:
            raise InvalidRequest(f"Unsupported tone: {tone}")
        if length not in LENGTH_INSTRUCTIONS:
            raise InvalidRequest(f"Unsupported length: {length}")

        context = self._profiles.load_context(user_id) if user_id else None
        text = await self._chat.complete(
            system_prompt=build_post_system_prompt(tone, length, context),
            user_message=prompt,
        )
        post = truncate_for_platform(text)
        logger.info("Generated %s/%s post of %d characters", tone, length, len(post))
        return GeneratedPost(post=post, character_count=len(post))


__all__ = [
    "GeneratedPost",
    "LENGTH_INSTRUCTIONS",
    "PostWriter",
    "TONE_INSTRUCTIONS",
    "build_post_system_prompt",
]
