"""Request bodies for the profile, draft and post generation routes."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import AliasChoices, BaseModel, Field

from brandpilot.models import DraftStatus


class GeneratePostRequest(BaseModel):
    """Free-form prompt turned into a single post by the LLM."""

    prompt: str = Field(..., description="What the post should be about.")
    tone: str = Field(..., description="professional, friendly, witty, inspirational or educational.")
    length: str = Field(..., description="short, medium or long.")
    user_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("user_id", "userId", "profileId"),
        description="Profile whose voice and topics should shape the post.",
    )


class GeneratePostResponse(BaseModel):
    post: str
    characterCount: int


class ProfileCreateRequest(BaseModel):
    email: str = Field(..., min_length=3)


class ProfileUpdateRequest(BaseModel):
    ai_voice: Optional[str] = None
    goal: Optional[str] = None
    topics_of_interest: Optional[List[str]] = None
    about_context: Optional[str] = None


class OnboardingRequest(BaseModel):
    name: Optional[str] = None
    username: Optional[str] = None
    user_type: Optional[Literal["freelancer", "startup_founder"]] = None
    domain: Optional[str] = None
    social_media_goal: Optional[
        Literal["find_clients", "personal_branding", "for_fund"]
    ] = None
    business_description: Optional[str] = None


class DraftCreateRequest(BaseModel):
    content: str = Field(..., min_length=1)
    platform: str = "twitter"
    url: Optional[str] = None


class DraftUpdateRequest(BaseModel):
    content: Optional[str] = Field(None, min_length=1)
    status: Optional[DraftStatus] = None


__all__ = [
    "DraftCreateRequest",
    "DraftUpdateRequest",
    "GeneratePostRequest",
    "GeneratePostResponse",
    "OnboardingRequest",
    "ProfileCreateRequest",
    "ProfileUpdateRequest",
]
