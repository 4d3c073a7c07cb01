"""Public schema exports."""

from .actions import (
    AuthorizeAction,
    CallbackAction,
    DisconnectAction,
    FindAndSaveAction,
    GenerateResponseAction,
    PostAction,
    SearchAction,
    SendReplyAction,
    TwitterAction,
    parse_action,
)
from .api import (
    DraftCreateRequest,
    DraftUpdateRequest,
    GeneratePostRequest,
    GeneratePostResponse,
    OnboardingRequest,
    ProfileCreateRequest,
    ProfileUpdateRequest,
)

__all__ = [
    "AuthorizeAction",
    "CallbackAction",
    "DisconnectAction",
    "DraftCreateRequest",
    "DraftUpdateRequest",
    "FindAndSaveAction",
    "GeneratePostRequest",
    "GeneratePostResponse",
    "GenerateResponseAction",
    "OnboardingRequest",
    "PostAction",
    "ProfileCreateRequest",
    "ProfileUpdateRequest",
    "SearchAction",
    "SendReplyAction",
    "TwitterAction",
    "parse_action",
]
