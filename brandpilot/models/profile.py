"""
User profile and onboarding answers that steer search and generation.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

DEFAULT_TOPICS = ["AI & Technology", "Startups"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(BaseModel):
    id: str
    email: Optional[str] = None
    ai_voice: str = "professional"
    goal: Optional[str] = "personal_branding"
    topics_of_interest: List[str] = Field(default_factory=lambda: list(DEFAULT_TOPICS))
    about_context: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class OnboardingProfile(BaseModel):
    user_id: str
    name: Optional[str] = None
    username: Optional[str] = None
    user_type: Optional[Literal["freelancer", "startup_founder"]] = None
    domain: Optional[str] = None
    social_media_goal: Optional[
        Literal["find_clients", "personal_branding", "for_fund"]
    ] = None
    business_description: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ProfileContext(BaseModel):
    """Everything known about a user that prompts and search queries draw on."""

    user_id: str
    profile: Optional[Profile] = None
    onboarding: Optional[OnboardingProfile] = None

    @property
    def topics(self) -> List[str]:
        return list(self.profile.topics_of_interest) if self.profile else []

    @property
    def voice(self) -> str:
        return self.profile.ai_voice if self.profile else "professional"

    @property
    def background(self) -> Optional[str]:
        if self.profile and self.profile.about_context:
            return self.profile.about_context
        if self.onboarding and self.onboarding.business_description:
            return self.onboarding.business_description
        return None


__all__ = ["DEFAULT_TOPICS", "OnboardingProfile", "Profile", "ProfileContext"]
