from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from typing import Any, cast

from pydantic import ValidationError

from backend.app.models.action_contracts import (
    ACTION_NAMES,
    ACTION_REQUEST_ADAPTER,
    WRITE_ACTIONS,
    ActionError,
    ActionOutcome,
    ActionRequest,
    AddCommentRequest,
    CreatePostRequest,
    DeletePostRequest,
    ExtractKeywordsRequest,
    FindYouTubeVideoIdRequest,
    GetAllCommentsRequest,
    GetAllPostsRequest,
    GetCommentsRequest,
    GetPostByIdRequest,
    GetPostsRequest,
    GetRelatedPostsRequest,
    SearchAndGeneratePostRequest,
    SeedNewContentRequest,
    UpdateCommentStatusRequest,
    UpdatePostRequest,
)
from backend.app.models.blog_contracts import BLOG_TOPICS, POSTS_PER_PAGE, Article
from backend.app.repositories.comment_repository import (
    CommentRepository,
    CommentTransitionError,
)
from backend.app.repositories.common import utc_now_iso
from backend.app.repositories.database import RepositoryError
from backend.app.repositories.post_repository import PostRepository
from backend.app.services.content_service import ContentService, ContentServiceError
from backend.app.services.showcase import showcase_article
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("global_gist.actions")

RELATED_POST_COUNT = 3


class ActionDispatcher:
    def __init__(
        self,
        *,
        post_repository: PostRepository,
        comment_repository: CommentRepository,
        content_service: ContentService,
        telemetry: TelemetryClient | None = None,
        topics: Sequence[str] = BLOG_TOPICS,
        seed_topic_count: int = 3,
        seed_posts_per_topic: int = 5,
        generated_posts_per_topic: int = 10,
        default_page_size: int = POSTS_PER_PAGE,
        rng: random.Random | None = None,
    ) -> None:
        self._posts = post_repository
        self._comments = comment_repository
        self._content = content_service
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()
        self._topics = tuple(topics)
        self._seed_topic_count = max(0, int(seed_topic_count))
        self._seed_posts_per_topic = max(1, int(seed_posts_per_topic))
        self._generated_posts_per_topic = max(1, int(generated_posts_per_topic))
        self._default_page_size = max(1, int(default_page_size))
        self._rng = rng if rng is not None else random.Random()

    @property
    def post_repository(self) -> PostRepository:
        return self._posts

    @property
    def comment_repository(self) -> CommentRepository:
        return self._comments

    def parse_request(self, body: object) -> ActionRequest:
        if not isinstance(body, dict):
            raise ActionError("Missing action", status_code=400)
        raw = cast(dict[str, Any], body)
        action = raw.get("action")
        if not action:
            raise ActionError("Missing action", status_code=400)
        if not isinstance(action, str) or action not in ACTION_NAMES:
            raise ActionError("Invalid action", status_code=400)

        payload = raw.get("payload")
        envelope = {"action": action, "payload": payload if payload is not None else {}}
        try:
            return ACTION_REQUEST_ADAPTER.validate_python(envelope)
        except ValidationError as exc:
            raise ActionError(
                f"Invalid payload for {action}: {_validation_summary(exc, action)}",
                status_code=400,
            ) from exc

    def execute(self, request: ActionRequest) -> ActionOutcome:
        action = request.action
        with self._telemetry.measure(
            "action.execute",
            action=action,
            write_operation=action in WRITE_ACTIONS,
        ) as telemetry_outcome:
            try:
                outcome = self._execute_action(request)
            except ActionError as exc:
                telemetry_outcome["status_code"] = exc.status_code
                raise
            except CommentTransitionError as exc:
                telemetry_outcome.update(status_code=400, error_type=type(exc).__name__)
                raise ActionError(str(exc), status_code=400) from exc
            except RepositoryError as exc:
                LOGGER.error("action failed in repository action=%s error=%s", action, exc)
                telemetry_outcome.update(status_code=500, error_type=type(exc).__name__)
                raise ActionError(str(exc), status_code=500) from exc
            except ContentServiceError as exc:
                LOGGER.warning("action failed in content service action=%s error=%s", action, exc)
                telemetry_outcome.update(status_code=502, error_type=type(exc).__name__)
                raise ActionError(str(exc), status_code=502) from exc
            telemetry_outcome["status_code"] = outcome.status_code
        return outcome

    def generate_for_topic(self, topic: str, *, count: int | None = None) -> list[Article]:
        articles = self._content.generate_posts(
            topic,
            count=count if count is not None else self._generated_posts_per_topic,
        )
        self._posts.insert_posts(articles)
        return articles

    def _execute_action(self, request: ActionRequest) -> ActionOutcome:
        if isinstance(request, GetPostsRequest):
            return self._handle_get_posts(request)
        if isinstance(request, GetPostByIdRequest):
            post = self._posts.get_post(request.payload.post_id)
            return ActionOutcome(body=post.to_wire() if post is not None else None)
        if isinstance(request, GetAllPostsRequest):
            return ActionOutcome(body=[entry.to_wire() for entry in self._posts.list_index()])
        if isinstance(request, SearchAndGeneratePostRequest):
            return self._handle_search_and_generate(request)
        if isinstance(request, GetRelatedPostsRequest):
            return self._handle_related_posts(request)
        if isinstance(request, CreatePostRequest):
            created = self._posts.create_post(request.payload.post)
            return ActionOutcome(body=created.to_wire(), status_code=201)
        if isinstance(request, UpdatePostRequest):
            updated = self._posts.update_post(request.payload.post)
            return ActionOutcome(body=updated.to_wire() if updated is not None else None)
        if isinstance(request, DeletePostRequest):
            self._posts.delete_post(request.payload.post_id)
            return ActionOutcome(body={"success": True})
        if isinstance(request, GetCommentsRequest):
            comments = self._comments.list_for_post(request.payload.post_id)
            return ActionOutcome(body=[comment.to_wire() for comment in comments])
        if isinstance(request, GetAllCommentsRequest):
            return ActionOutcome(body=[comment.to_wire() for comment in self._comments.list_all()])
        if isinstance(request, AddCommentRequest):
            comment = self._comments.add_comment(request.payload.comment)
            return ActionOutcome(body=comment.to_wire(), status_code=201)
        if isinstance(request, UpdateCommentStatusRequest):
            updated_comment = self._comments.update_status(
                request.payload.comment_id, request.payload.status
            )
            return ActionOutcome(
                body=updated_comment.to_wire() if updated_comment is not None else None
            )
        if isinstance(request, FindYouTubeVideoIdRequest):
            return ActionOutcome(body=self._content.find_youtube_video_id(request.payload.query))
        if isinstance(request, ExtractKeywordsRequest):
            return ActionOutcome(body=self._content.extract_keywords(request.payload.content))
        if isinstance(request, SeedNewContentRequest):
            return self._handle_seed_new_content()
        raise ActionError("Invalid action", status_code=400)

    def _handle_get_posts(self, request: GetPostsRequest) -> ActionOutcome:
        payload = request.payload
        limit = payload.limit if "limit" in payload.model_fields_set else self._default_page_size
        posts = self._posts.list_posts(topic=payload.topic, page=payload.page, limit=limit)
        return ActionOutcome(body=[post.to_wire() for post in posts])

    def _handle_search_and_generate(self, request: SearchAndGeneratePostRequest) -> ActionOutcome:
        generated = self._content.generate_posts(request.payload.topic, count=1)
        if not generated:
            return ActionOutcome(body=None)
        first = generated[0]
        self._posts.insert_posts([first])
        return ActionOutcome(body=first.to_wire())

    def _handle_related_posts(self, request: GetRelatedPostsRequest) -> ActionOutcome:
        payload = request.payload
        current = self._posts.get_post(payload.current_post_id)
        exclude_title = current.title if current is not None else None

        generated = self._content.generate_posts(
            ", ".join(payload.keywords),
            count=RELATED_POST_COUNT,
            exclude_title=exclude_title,
        )
        related = [
            article
            for article in generated
            if exclude_title is None or article.title.strip() != exclude_title.strip()
        ][:RELATED_POST_COUNT]
        self._posts.insert_posts(related)
        return ActionOutcome(body=[article.to_wire() for article in related])

    def _handle_seed_new_content(self) -> ActionOutcome:
        try:
            if self._posts.ensure_post(showcase_article(created_at=utc_now_iso())):
                LOGGER.info("showcase article inserted")
        except RepositoryError as exc:
            LOGGER.error("failed to insert showcase article error=%s", exc)

        topic_count = min(self._seed_topic_count, len(self._topics))
        seeded_topics = self._rng.sample(list(self._topics), topic_count)
        for topic in seeded_topics:
            LOGGER.info("seeding new content topic=%s", topic)
            self.generate_for_topic(topic, count=self._seed_posts_per_topic)

        return ActionOutcome(body={"success": True, "seededTopics": seeded_topics})


def _validation_summary(exc: ValidationError, action: str) -> str:
    parts: list[str] = []
    for error in exc.errors():
        location = ".".join(
            str(item) for item in error.get("loc", ()) if item not in ("payload", action)
        )
        message = str(error.get("msg", "invalid value"))
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) if parts else "invalid payload"
