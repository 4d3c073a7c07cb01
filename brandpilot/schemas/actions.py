"""
Request bodies for the action-routed ``/api/twitter-auth`` endpoint.

Each action is its own model; ``parse_action`` selects one by the ``action``
tag. Field names accept snake_case and the camelCase spellings the web client
sends.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)

from brandpilot.core.errors import InvalidRequest

_USER_ID = AliasChoices("user_id", "userId", "profileId")
_TWEET_ID = AliasChoices("tweet_id", "tweetId")
_POST_ID = AliasChoices("post_id", "postId")


class _Action(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)


class AuthorizeAction(_Action):
    action: Literal["authorize"]
    user_id: str = Field(..., min_length=1, validation_alias=_USER_ID)


class CallbackAction(_Action):
    action: Literal["callback"]
    code: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)


class DisconnectAction(_Action):
    action: Literal["disconnect"]
    user_id: str = Field(..., min_length=1, validation_alias=_USER_ID)


class PostAction(_Action):
    action: Literal["post"]
    user_id: str = Field(..., min_length=1, validation_alias=_USER_ID)
    text: str = Field(..., min_length=1, validation_alias=AliasChoices("text", "tweet"))
    draft_id: Optional[str] = Field(None, validation_alias=AliasChoices("draft_id", "draftId"))


class SearchAction(_Action):
    action: Literal["search"]
    user_id: str = Field(..., min_length=1, validation_alias=_USER_ID)
    query: str = Field(..., min_length=1)
    max_results: int = Field(
        10, validation_alias=AliasChoices("max_results", "maxResults")
    )


class FindAndSaveAction(_Action):
    action: Literal["findAndSave"]
    user_id: str = Field(..., min_length=1, validation_alias=_USER_ID)


class _TargetsRelevantPost(_Action):
    """Actions addressed by a saved post id, or by tweet id plus owner."""

    post_id: Optional[str] = Field(None, validation_alias=_POST_ID)
    tweet_id: Optional[str] = Field(None, validation_alias=_TWEET_ID)
    user_id: Optional[str] = Field(None, validation_alias=_USER_ID)

    @model_validator(mode="after")
    def _require_target(self) -> "_TargetsRelevantPost":
        if not self.post_id and not self.tweet_id:
            raise ValueError("postId or tweetId is required")
        if not self.post_id and not self.user_id:
            raise ValueError("userId is required when addressing a post by tweetId")
        return self


class GenerateResponseAction(_TargetsRelevantPost):
    action: Literal["generateResponse"]


class SendReplyAction(_TargetsRelevantPost):
    action: Literal["sendReply"]
    reply_text: Optional[str] = Field(
        None, validation_alias=AliasChoices("reply_text", "replyText")
    )


TwitterAction = Annotated[
    Union[
        AuthorizeAction,
        CallbackAction,
        DisconnectAction,
        PostAction,
        SearchAction,
        FindAndSaveAction,
        GenerateResponseAction,
        SendReplyAction,
    ],
    Field(discriminator="action"),
]

_ACTION_ADAPTER: TypeAdapter[TwitterAction] = TypeAdapter(TwitterAction)


def _describe(exc: ValidationError) -> str:
    error = exc.errors()[0]
    if error["type"] in {"union_tag_not_found", "union_tag_invalid"}:
        return "Invalid action"
    location = ".".join(str(part) for part in error["loc"][1:] if part != "")
    message = error["msg"].removeprefix("Value error, ")
    return f"{location}: {message}" if location else message


def parse_action(payload: Any) -> TwitterAction:
    """Validate ``payload`` into one of the action models or raise ``InvalidRequest``."""
    if not isinstance(payload, Mapping):
        raise InvalidRequest("Request body must be a JSON object")
    try:
        return _ACTION_ADAPTER.validate_python(dict(payload))
    except ValidationError as exc:
        raise InvalidRequest(_describe(exc)) from exc


__all__ = [
    "AuthorizeAction",
    "CallbackAction",
    "DisconnectAction",
    "FindAndSaveAction",
    "GenerateResponseAction",
    "PostAction",
    "SearchAction",
    "SendReplyAction",
    "TwitterAction",
    "parse_action",
]
