from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest
from blog_factories import make_article

from backend.app.models.blog_contracts import ArticleDraft, CommentDraft
from backend.app.reader.gateway import UNKNOWN_API_ERROR, FetchError, FetchGateway

API_URL = "http://blog.test/api"


def _gateway(
    handler: Callable[[httpx.Request], httpx.Response],
    **kwargs: Any,
) -> FetchGateway:
    return FetchGateway(API_URL, transport=httpx.MockTransport(handler), **kwargs)


def _recording_handler(
    responses: dict[str, Any],
    seen: list[dict[str, Any]],
) -> Callable[[httpx.Request], httpx.Response]:
    def handler(request: httpx.Request) -> httpx.Response:
        envelope = json.loads(request.content)
        seen.append(envelope)
        return httpx.Response(200, json=responses.get(envelope["action"]))

    return handler


def test_typed_calls_send_action_envelopes() -> None:
    article = make_article("p1")
    seen: list[dict[str, Any]] = []
    handler = _recording_handler(
        {
            "getPosts": [article.to_wire()],
            "getPostById": article.to_wire(),
            "getRelatedPosts": [],
            "extractKeywordsFromContent": ["space"],
            "findYouTubeVideoId": None,
            "deletePost": {"success": True},
        },
        seen,
    )

    async def scenario() -> None:
        async with _gateway(handler) as gateway:
            posts = await gateway.get_posts("Space Exploration", 2, 5)
            fetched = await gateway.get_post_by_id("p1")
            related = await gateway.get_related_posts(["moon"], "p1")
            keywords = await gateway.extract_keywords("Body")
            video = await gateway.find_youtube_video_id("Moon")
            deleted = await gateway.delete_post("p1")

        assert [post.id for post in posts] == ["p1"]
        assert fetched == article
        assert related == []
        assert keywords == ["space"]
        assert video is None
        assert deleted is True

    asyncio.run(scenario())

    assert seen[0] == {
        "action": "getPosts",
        "payload": {"topic": "Space Exploration", "page": 2, "limit": 5},
    }
    assert seen[1] == {"action": "getPostById", "payload": {"postId": "p1"}}
    assert seen[2] == {
        "action": "getRelatedPosts",
        "payload": {"keywords": ["moon"], "currentPostId": "p1"},
    }


def test_create_post_and_add_comment_serialize_camel_case() -> None:
    created = make_article("custom-1")
    comment = {
        "id": "comment-1",
        "postId": "custom-1",
        "author": "Ada",
        "text": "Hi",
        "timestamp": 1,
        "status": "pending",
        "created_at": "2025-01-01T00:00:00+00:00",
    }
    seen: list[dict[str, Any]] = []
    handler = _recording_handler({"createPost": created.to_wire(), "addComment": comment}, seen)

    async def scenario() -> None:
        async with _gateway(handler) as gateway:
            article = await gateway.create_post(
                ArticleDraft(
                    topic="Space Exploration",
                    title="T",
                    summary="S",
                    content="C",
                    youtube_video_id="abcdefghijk",
                )
            )
            saved = await gateway.add_comment(
                CommentDraft(post_id="custom-1", author="Ada", text="Hi")
            )
        assert article.id == "custom-1"
        assert saved.post_id == "custom-1"

    asyncio.run(scenario())

    assert seen[0]["payload"]["post"]["youtubeVideoId"] == "abcdefghijk"
    assert seen[1]["payload"]["comment"] == {
        "postId": "custom-1",
        "author": "Ada",
        "text": "Hi",
        "status": "pending",
    }


@pytest.mark.parametrize(
    ("response", "message"),
    [
        (httpx.Response(400, json={"error": "Missing action"}), "Missing action"),
        (httpx.Response(500, json={"detail": "nope"}), UNKNOWN_API_ERROR),
        (httpx.Response(502, text="<html>bad gateway</html>"),
         "Failed to call API proxy for action: getAllPosts"),
    ],
)
def test_error_responses_become_fetch_errors(response: httpx.Response, message: str) -> None:
    async def scenario() -> None:
        async with _gateway(lambda request: response) as gateway:
            await gateway.get_all_posts()

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(scenario())

    assert exc_info.value.message == message
    assert exc_info.value.status_code == response.status_code


def test_unexpected_response_shape_is_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"not": "a list"})

    async def scenario() -> None:
        async with _gateway(handler) as gateway:
            await gateway.get_comments("p1")

    with pytest.raises(FetchError, match="Unexpected response shape"):
        asyncio.run(scenario())


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


def test_transport_failure_without_samples_raises() -> None:
    async def scenario() -> None:
        async with _gateway(_unreachable) as gateway:
            await gateway.get_posts("Space Exploration", 1)

    with pytest.raises(FetchError) as exc_info:
        asyncio.run(scenario())
    assert exc_info.value.status_code is None


def test_offline_samples_cover_listing_and_lookup_only() -> None:
    samples = [
        make_article("s1", created_at="2025-01-01T00:00:00+00:00"),
        make_article("s2", created_at="2025-01-02T00:00:00+00:00"),
        make_article("other", topic="World Politics"),
    ]

    async def scenario() -> None:
        async with _gateway(_unreachable, offline_samples=samples) as gateway:
            page = await gateway.get_posts("Space Exploration", 1, 9)
            found = await gateway.get_post_by_id("s1")
            missing = await gateway.get_post_by_id("nope")
            assert [post.id for post in page] == ["s2", "s1"]
            assert found is not None and found.id == "s1"
            assert missing is None
            with pytest.raises(FetchError):
                await gateway.get_all_comments()

    asyncio.run(scenario())


def test_offline_samples_do_not_mask_server_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "Database query failed"})

    async def scenario() -> None:
        async with _gateway(handler, offline_samples=[make_article("s1")]) as gateway:
            await gateway.get_posts("Space Exploration", 1)

    with pytest.raises(FetchError, match="Database query failed"):
        asyncio.run(scenario())
