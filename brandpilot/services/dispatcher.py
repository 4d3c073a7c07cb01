"""
Route ``/api/twitter-auth`` actions to the services that implement them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

from brandpilot.clients.twitter import Tweet, TwitterClient
from brandpilot.core.errors import InvalidRequest, NoReplyText, NotFound
from brandpilot.models import TWITTER_PLATFORM, RelevantPost
from brandpilot.schemas.actions import (
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
from brandpilot.services.connections import ConnectionStore
from brandpilot.services.drafts import DraftPostStore
from brandpilot.services.harvester import RelevanceHarvester
from brandpilot.services.pkce import PKCESessionManager
from brandpilot.services.profiles import ProfileStore
from brandpilot.services.relevant_posts import RelevantPostStore
from brandpilot.services.reply_composer import ReplyComposer
from brandpilot.services.twitter_tokens import TwitterTokenService

logger = logging.getLogger(__name__)


@dataclass
class ActionResult:
    """JSON body for most actions; the OAuth callback answers with a redirect."""

    body: Dict[str, Any] = field(default_factory=dict)
    redirect_url: Optional[str] = None


def tweet_url(username: Optional[str], tweet_id: str) -> str:
    return f"https://twitter.com/{username or 'i/web'}/status/{tweet_id}"


def _tweet_payload(tweet: Tweet) -> Dict[str, Any]:
    payload = tweet.model_dump(mode="json", exclude_none=True)
    payload["url"] = tweet.url
    return payload


class ActionDispatcher:
    def __init__(
        self,
        *,
        sessions: PKCESessionManager,
        twitter_client: TwitterClient,
        connections: ConnectionStore,
        tokens: TwitterTokenService,
        harvester: RelevanceHarvester,
        relevant_posts: RelevantPostStore,
        profiles: ProfileStore,
        reply_composer: ReplyComposer,
        drafts: DraftPostStore,
        frontend_base_url: str,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._sessions = sessions
        self._twitter = twitter_client
        self._connections = connections
        self._tokens = tokens
        self._harvester = harvester
        self._posts = relevant_posts
        self._profiles = profiles
        self._composer = reply_composer
        self._drafts = drafts
        self._frontend_base_url = frontend_base_url.rstrip("/")
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def dispatch(self, payload: Any) -> ActionResult:
        """Validate ``payload`` and run the action it names."""
        action = parse_action(payload)
        logger.info("Dispatching twitter action %s", action.action)
        return await self.run(action)

    async def run(self, action: TwitterAction) -> ActionResult:
        if isinstance(action, AuthorizeAction):
            return self._authorize(action)
        if isinstance(action, CallbackAction):
            return await self._callback(action)
        if isinstance(action, DisconnectAction):
            return self._disconnect(action)
        if isinstance(action, PostAction):
            return await self._post(action)
        if isinstance(action, SearchAction):
            return await self._search(action)
        if isinstance(action, FindAndSaveAction):
            return await self._find_and_save(action)
        if isinstance(action, GenerateResponseAction):
            return await self._generate_response(action)
        if isinstance(action, SendReplyAction):
            return await self._send_reply(action)
        raise InvalidRequest("Invalid action")

    def _authorize(self, action: AuthorizeAction) -> ActionResult:
        authorization = self._sessions.begin_session(action.user_id, TWITTER_PLATFORM)
        return ActionResult(
            body={"authUrl": authorization.authorization_url, "state": authorization.state}
        )

    async def _callback(self, action: CallbackAction) -> ActionResult:
        # The session is gone once consumed; a failed exchange needs a new authorize.
        session = self._sessions.consume_session(action.state)
        issued_at = self._clock()
        tokens = await self._twitter.exchange_authorization_code(
            action.code, session.code_verifier
        )
        profile = await self._twitter.fetch_identity(tokens.access_token)
        self._connections.save_connected(
            user_id=session.user_id,
            tokens=tokens,
            profile=profile,
            issued_at=issued_at,
            platform=session.platform,
        )
        logger.info("Connected Twitter account @%s for user %s", profile.username, session.user_id)
        query = urlencode({"twitter_connected": "true"})
        return ActionResult(redirect_url=f"{self._frontend_base_url}/dashboard?{query}")

    def _disconnect(self, action: DisconnectAction) -> ActionResult:
        self._connections.disconnect(action.user_id, TWITTER_PLATFORM)
        logger.info("Disconnected Twitter for user %s", action.user_id)
        return ActionResult(body={"success": True})

    async def _post(self, action: PostAction) -> ActionResult:
        connection = self._tokens.require_connection(action.user_id)
        if action.draft_id:
            draft = self._drafts.require(action.draft_id)
            if draft.user_id != action.user_id:
                raise NotFound("Draft post not found")

        access_token = await self._tokens.get_access_token(action.user_id)
        published = await self._twitter.create_tweet(access_token, action.text)
        if action.draft_id:
            self._drafts.mark_published(action.draft_id)
        return ActionResult(
            body={
                "success": True,
                "tweetId": published.id,
                "url": tweet_url(connection.username, published.id),
            }
        )

    async def _search(self, action: SearchAction) -> ActionResult:
        result = await self._harvester.search(
            action.user_id, action.query, max_results=action.max_results
        )
        return ActionResult(
            body={
                "tweets": [_tweet_payload(tweet) for tweet in result.tweets],
                "resultCount": result.result_count,
                "nextToken": result.next_token,
            }
        )

    async def _find_and_save(self, action: FindAndSaveAction) -> ActionResult:
        result = await self._harvester.find_and_save(action.user_id)
        return ActionResult(
            body={
                "success": True,
                "newPostsCount": result.new_posts_count,
                "skippedPostsCount": result.skipped_posts_count,
                "posts": [post.model_dump(mode="json") for post in result.posts],
                "query": result.query,
            }
        )

    async def _generate_response(self, action: GenerateResponseAction) -> ActionResult:
        post = self._resolve_post(action.post_id, action.tweet_id, action.user_id)
        context = self._profiles.load_context(post.user_id)
        reply = await self._composer.compose(post.content, context)
        self._posts.set_ai_response(post.id, reply)
        return ActionResult(body={"success": True, "response": reply, "postId": post.id})

    async def _send_reply(self, action: SendReplyAction) -> ActionResult:
        post = self._resolve_post(action.post_id, action.tweet_id, action.user_id)
        text = action.reply_text or post.ai_response
        if not text:
            raise NoReplyText()

        connection = self._tokens.require_connection(post.user_id)
        access_token = await self._tokens.get_access_token(post.user_id)
        published = await self._twitter.create_tweet(
            access_token, text, in_reply_to_tweet_id=post.tweet_id
        )
        self._posts.set_reply_tweet_id(post.id, published.id)
        return ActionResult(
            body={
                "success": True,
                "replyId": published.id,
                "url": tweet_url(connection.username, published.id),
            }
        )

    def _resolve_post(
        self, post_id: Optional[str], tweet_id: Optional[str], user_id: Optional[str]
    ) -> RelevantPost:
        post: Optional[RelevantPost] = None
        if post_id:
            post = self._posts.get(post_id)
            # A post is only visible to the user who saved it.
            if post is not None and user_id and post.user_id != user_id:
                post = None
        elif tweet_id and user_id:
            post = self._posts.get_by_tweet(user_id, tweet_id)
        if post is None:
            raise NotFound("Post not found")
        return post


__all__ = ["ActionDispatcher", "ActionResult", "tweet_url"]
