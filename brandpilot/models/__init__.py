"""Domain models shared by the stores, services and routes."""

from .oauth import (
    TWITTER_PLATFORM,
    Connection,
    PendingSession,
    PKCEAuthorization,
    TokenSet,
    TwitterProfile,
)
from .posts import DraftPost, DraftStatus, RelevantPost
from .profile import DEFAULT_TOPICS, OnboardingProfile, Profile, ProfileContext

__all__ = [
    "Connection",
    "DEFAULT_TOPICS",
    "DraftPost",
    "DraftStatus",
    "OnboardingProfile",
    "PKCEAuthorization",
    "PendingSession",
    "Profile",
    "ProfileContext",
    "RelevantPost",
    "TWITTER_PLATFORM",
    "TokenSet",
    "TwitterProfile",
]
