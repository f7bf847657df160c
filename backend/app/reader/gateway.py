from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, cast

import httpx
from pydantic import TypeAdapter, ValidationError

from backend.app.models.action_contracts import (
    AddCommentPayload,
    AddCommentRequest,
    ContentPayload,
    CreatePostPayload,
    CreatePostRequest,
    DeletePostRequest,
    ExtractKeywordsRequest,
    FindYouTubeVideoIdRequest,
    GetAllCommentsRequest,
    GetAllPostsRequest,
    GetCommentsRequest,
    GetPostByIdRequest,
    GetPostsPayload,
    GetPostsRequest,
    GetRelatedPostsRequest,
    PostIdPayload,
    QueryPayload,
    RelatedPostsPayload,
    SearchAndGeneratePostRequest,
    SeedNewContentRequest,
    TopicPayload,
    UpdateCommentStatusPayload,
    UpdateCommentStatusRequest,
    UpdatePostPayload,
    UpdatePostRequest,
)
from backend.app.models.blog_contracts import (
    POSTS_PER_PAGE,
    Article,
    ArticleDraft,
    Comment,
    CommentDraft,
    CommentStatus,
    PostIndexEntry,
)

LOGGER = logging.getLogger("global_gist.reader.gateway")

DEFAULT_TIMEOUT_SECONDS = 30.0
UNKNOWN_API_ERROR = "An unknown API error occurred."

_ARTICLE_LIST = TypeAdapter(list[Article])
_OPTIONAL_ARTICLE = TypeAdapter(Article | None)
_INDEX_LIST = TypeAdapter(list[PostIndexEntry])
_COMMENT_LIST = TypeAdapter(list[Comment])
_OPTIONAL_COMMENT = TypeAdapter(Comment | None)
_STRING_LIST = TypeAdapter(list[str])
_OPTIONAL_STRING = TypeAdapter(str | None)


class FetchError(RuntimeError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class FetchGateway:
    """Client for the `{action, payload}` endpoint.

    `FetchError` is the only exception raised to callers. When built with
    `offline_samples`, listing and lookup calls fall back to those articles if the
    endpoint cannot be reached.
    """

    def __init__(
        self,
        api_url: str,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
        offline_samples: Sequence[Article] | None = None,
    ) -> None:
        self._api_url = api_url
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(max(1.0, float(timeout_seconds))),
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._offline_samples = tuple(offline_samples) if offline_samples is not None else None

    @property
    def api_url(self) -> str:
        return self._api_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> FetchGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def call(self, envelope: dict[str, Any]) -> Any:
        action = str(envelope.get("action"))
        try:
            response = await self._client.post(self._api_url, json=envelope)
        except httpx.TransportError as exc:
            LOGGER.warning("api unreachable action=%s error=%s", action, exc)
            raise FetchError(f"Could not reach the blog API: {exc}") from exc

        if response.is_error:
            raise FetchError(_error_message(response, action), status_code=response.status_code)
        try:
            return response.json()
        except ValueError as exc:
            raise FetchError(
                f"Invalid response from the blog API for action: {action}",
                status_code=response.status_code,
            ) from exc

    async def get_posts(self, topic: str, page: int, limit: int = POSTS_PER_PAGE) -> list[Article]:
        request = GetPostsRequest(payload=GetPostsPayload(topic=topic, page=page, limit=limit))
        try:
            body = await self.call(request.to_wire())
        except FetchError as exc:
            if self._offline_samples is None or exc.status_code is not None:
                raise
            return self._sample_page(topic, page, limit)
        return _validate(_ARTICLE_LIST, body, request.action)

    async def get_post_by_id(self, post_id: str) -> Article | None:
        request = GetPostByIdRequest(payload=PostIdPayload(post_id=post_id))
        try:
            body = await self.call(request.to_wire())
        except FetchError as exc:
            if self._offline_samples is None or exc.status_code is not None:
                raise
            return next((post for post in self._offline_samples if post.id == post_id), None)
        return _validate(_OPTIONAL_ARTICLE, body, request.action)

    async def get_all_posts(self) -> list[PostIndexEntry]:
        request = GetAllPostsRequest()
        return _validate(_INDEX_LIST, await self.call(request.to_wire()), request.action)

    async def search_and_generate_post(self, topic: str) -> Article | None:
        request = SearchAndGeneratePostRequest(payload=TopicPayload(topic=topic))
        return _validate(_OPTIONAL_ARTICLE, await self.call(request.to_wire()), request.action)

    async def get_related_posts(self, keywords: list[str], current_post_id: str) -> list[Article]:
        request = GetRelatedPostsRequest(
            payload=RelatedPostsPayload(keywords=keywords, current_post_id=current_post_id)
        )
        return _validate(_ARTICLE_LIST, await self.call(request.to_wire()), request.action)

    async def create_post(self, draft: ArticleDraft) -> Article:
        request = CreatePostRequest(payload=CreatePostPayload(post=draft))
        created = _validate(_OPTIONAL_ARTICLE, await self.call(request.to_wire()), request.action)
        if created is None:
            raise FetchError("The blog API did not return the created post.")
        return created

    async def update_post(self, article: Article) -> Article | None:
        request = UpdatePostRequest(payload=UpdatePostPayload(post=article))
        return _validate(_OPTIONAL_ARTICLE, await self.call(request.to_wire()), request.action)

    async def delete_post(self, post_id: str) -> bool:
        request = DeletePostRequest(payload=PostIdPayload(post_id=post_id))
        body = await self.call(request.to_wire())
        return isinstance(body, dict) and cast(dict[str, Any], body).get("success") is True

    async def get_comments(self, post_id: str) -> list[Comment]:
        request = GetCommentsRequest(payload=PostIdPayload(post_id=post_id))
        return _validate(_COMMENT_LIST, await self.call(request.to_wire()), request.action)

    async def get_all_comments(self) -> list[Comment]:
        request = GetAllCommentsRequest()
        return _validate(_COMMENT_LIST, await self.call(request.to_wire()), request.action)

    async def add_comment(self, draft: CommentDraft) -> Comment:
        request = AddCommentRequest(payload=AddCommentPayload(comment=draft))
        created = _validate(_OPTIONAL_COMMENT, await self.call(request.to_wire()), request.action)
        if created is None:
            raise FetchError("The blog API did not return the created comment.")
        return created

    async def update_comment_status(self, comment_id: str, status: CommentStatus) -> Comment | None:
        request = UpdateCommentStatusRequest(
            payload=UpdateCommentStatusPayload(comment_id=comment_id, status=status)
        )
        return _validate(_OPTIONAL_COMMENT, await self.call(request.to_wire()), request.action)

    async def find_youtube_video_id(self, query: str) -> str | None:
        request = FindYouTubeVideoIdRequest(payload=QueryPayload(query=query))
        return _validate(_OPTIONAL_STRING, await self.call(request.to_wire()), request.action)

    async def extract_keywords(self, content: str) -> list[str]:
        request = ExtractKeywordsRequest(payload=ContentPayload(content=content))
        return _validate(_STRING_LIST, await self.call(request.to_wire()), request.action)

    async def seed_new_content(self) -> dict[str, Any]:
        request = SeedNewContentRequest()
        body = await self.call(request.to_wire())
        if not isinstance(body, dict):
            raise FetchError(f"Invalid response from the blog API for action: {request.action}")
        return cast(dict[str, Any], body)

    def _sample_page(self, topic: str, page: int, limit: int) -> list[Article]:
        samples = [post for post in self._offline_samples or () if post.topic == topic]
        samples.sort(key=lambda post: post.created_at, reverse=True)
        offset = (max(page, 1) - 1) * limit
        LOGGER.info("serving offline samples topic=%s page=%s", topic, page)
        return samples[offset : offset + limit]


def _error_message(response: httpx.Response, action: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Failed to call API proxy for action: {action}"
    if isinstance(body, dict):
        message = cast(dict[str, Any], body).get("error")
        if isinstance(message, str) and message:
            return message
    return UNKNOWN_API_ERROR


def _validate(adapter: TypeAdapter[Any], body: Any, action: str) -> Any:
    try:
        return adapter.validate_python(body)
    except ValidationError as exc:
        raise FetchError(
            f"Unexpected response shape from the blog API for action: {action}"
        ) from exc
