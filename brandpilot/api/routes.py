"""
FastAPI routes for the BrandPilot backend.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import RedirectResponse

from brandpilot.core.errors import InvalidRequest, NotFound
from brandpilot.dependencies import (
    get_action_dispatcher,
    get_connection_store,
    get_draft_post_store,
    get_draft_service,
    get_post_writer,
    get_profile_store,
    get_relevant_post_store,
)
from brandpilot.models import OnboardingProfile
from brandpilot.schemas import (
    DraftCreateRequest,
    DraftUpdateRequest,
    GeneratePostRequest,
    GeneratePostResponse,
    OnboardingRequest,
    ProfileCreateRequest,
    ProfileUpdateRequest,
)
from brandpilot.services.dispatcher import ActionResult

router = APIRouter()
logger = logging.getLogger(__name__)


def _to_response(result: ActionResult) -> Response | dict:
    if result.redirect_url:
        return RedirectResponse(url=result.redirect_url, status_code=HTTPStatus.FOUND)
    return result.body


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/twitter-auth", status_code=HTTPStatus.OK)
async def twitter_action(
    request: Request,
    dispatcher: Annotated[Any, Depends(get_action_dispatcher)],
) -> Any:
    """
    Single entry point for every Twitter action.

    The JSON body names the action (``authorize``, ``post``, ``search``,
    ``findAndSave``, ``generateResponse``, ``sendReply``, ``disconnect`` or
    ``callback``) alongside its arguments.
    """
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequest("Request body must be valid JSON") from exc
    return _to_response(await dispatcher.dispatch(payload))


@router.get("/twitter-auth", status_code=HTTPStatus.FOUND)
async def twitter_callback(
    dispatcher: Annotated[Any, Depends(get_action_dispatcher)],
    action: str | None = Query(default=None, description="Only 'callback' is served over GET."),
    code: str | None = Query(default=None, description="Authorization code from Twitter."),
    state: str | None = Query(default=None, description="State issued by authorize."),
) -> Any:
    """Browser redirect target registered as the Twitter OAuth callback."""
    if action != "callback":
        raise InvalidRequest("Invalid action parameter")
    payload = {"action": action, "code": code, "state": state}
    return _to_response(await dispatcher.dispatch(payload))


@router.post("/generate-post", status_code=HTTPStatus.OK)
async def generate_post(
    payload: GeneratePostRequest,
    writer: Annotated[Any, Depends(get_post_writer)],
) -> GeneratePostResponse:
    """Generate one post from a prompt, tone and length."""
    generated = await writer.generate(
        payload.prompt, payload.tone, payload.length, user_id=payload.user_id
    )
    return GeneratePostResponse(
        post=generated.post, characterCount=generated.character_count
    )


@router.post("/profiles", status_code=HTTPStatus.OK)
async def get_or_create_profile(
    payload: ProfileCreateRequest,
    profiles: Annotated[Any, Depends(get_profile_store)],
) -> dict:
    return profiles.get_or_create(payload.email).model_dump(mode="json")


@router.get("/profiles/{user_id}", status_code=HTTPStatus.OK)
async def read_profile(
    user_id: str,
    profiles: Annotated[Any, Depends(get_profile_store)],
) -> dict:
    context = profiles.load_context(user_id)
    if context.profile is None:
        raise NotFound("Profile not found")
    return {
        "profile": context.profile.model_dump(mode="json"),
        "onboarding": (
            context.onboarding.model_dump(mode="json") if context.onboarding else None
        ),
    }


@router.put("/profiles/{user_id}", status_code=HTTPStatus.OK)
async def update_profile(
    user_id: str,
    payload: ProfileUpdateRequest,
    profiles: Annotated[Any, Depends(get_profile_store)],
) -> dict:
    updated = profiles.update(user_id, payload.model_dump(exclude_unset=True))
    return updated.model_dump(mode="json")


@router.put("/profiles/{user_id}/onboarding", status_code=HTTPStatus.OK)
async def save_onboarding(
    user_id: str,
    payload: OnboardingRequest,
    profiles: Annotated[Any, Depends(get_profile_store)],
) -> dict:
    onboarding = OnboardingProfile(user_id=user_id, **payload.model_dump())
    return profiles.upsert_onboarding(onboarding).model_dump(mode="json")


@router.get("/profiles/{user_id}/connections", status_code=HTTPStatus.OK)
async def list_connections(
    user_id: str,
    connections: Annotated[Any, Depends(get_connection_store)],
) -> list[dict]:
    """Connection status per platform, without token material."""
    return [connection.public_view() for connection in connections.list_for_user(user_id)]


@router.get("/profiles/{user_id}/relevant-posts", status_code=HTTPStatus.OK)
async def list_relevant_posts(
    user_id: str,
    posts: Annotated[Any, Depends(get_relevant_post_store)],
) -> list[dict]:
    return [post.model_dump(mode="json") for post in posts.list_for_user(user_id)]


@router.delete("/relevant-posts/{post_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_relevant_post(
    post_id: str,
    posts: Annotated[Any, Depends(get_relevant_post_store)],
) -> Response:
    posts.delete(post_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


@router.get("/profiles/{user_id}/drafts", status_code=HTTPStatus.OK)
async def list_drafts(
    user_id: str,
    drafts: Annotated[Any, Depends(get_draft_post_store)],
) -> list[dict]:
    return [draft.model_dump(mode="json") for draft in drafts.list_drafts(user_id)]


@router.post("/profiles/{user_id}/drafts", status_code=HTTPStatus.CREATED)
async def create_draft(
    user_id: str,
    payload: DraftCreateRequest,
    drafts: Annotated[Any, Depends(get_draft_post_store)],
) -> dict:
    draft = drafts.create(
        user_id, payload.content, platform=payload.platform, url=payload.url
    )
    return draft.model_dump(mode="json")


@router.post("/profiles/{user_id}/drafts/generate", status_code=HTTPStatus.OK)
async def generate_drafts(
    user_id: str,
    service: Annotated[Any, Depends(get_draft_service)],
) -> dict:
    """Ask the content generator for a batch of drafts and store them."""
    generated = await service.generate_and_save(user_id)
    return generated.model_dump(mode="json")


@router.patch("/drafts/{draft_id}", status_code=HTTPStatus.OK)
async def update_draft(
    draft_id: str,
    payload: DraftUpdateRequest,
    drafts: Annotated[Any, Depends(get_draft_post_store)],
) -> dict:
    if payload.content is None and payload.status is None:
        raise InvalidRequest("Nothing to update")
    draft = drafts.require(draft_id)
    if payload.content is not None:
        draft = drafts.update_content(draft_id, payload.content)
    if payload.status is not None:
        draft = drafts.update_status(draft_id, payload.status)
    return draft.model_dump(mode="json")


@router.delete("/drafts/{draft_id}", status_code=HTTPStatus.NO_CONTENT)
async def delete_draft(
    draft_id: str,
    drafts: Annotated[Any, Depends(get_draft_post_store)],
) -> Response:
    drafts.delete(draft_id)
    return Response(status_code=HTTPStatus.NO_CONTENT)


__all__ = ["router"]
