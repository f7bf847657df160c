from __future__ import annotations

import random
from collections.abc import Mapping
from typing import Any

import pytest
from blog_factories import FakeContentService, make_article

from backend.app.models.action_contracts import ActionError, GetPostsRequest
from backend.app.models.blog_contracts import BLOG_TOPICS, Article
from backend.app.repositories.comment_repository import CommentRepository
from backend.app.repositories.database import Database, RepositoryError
from backend.app.repositories.post_repository import PostRepository
from backend.app.services.action_dispatcher import ActionDispatcher
from backend.app.services.content_service import ContentServiceError
from backend.app.services.showcase import SHOWCASE_ARTICLE_ID
from backend.app.telemetry import TelemetryClient


class _CaptureSink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))


def _run(dispatcher: ActionDispatcher, body: object) -> tuple[int, Any]:
    outcome = dispatcher.execute(dispatcher.parse_request(body))
    return outcome.status_code, outcome.body


@pytest.mark.parametrize(
    ("body", "message"),
    [
        (None, "Missing action"),
        ([], "Missing action"),
        ({"payload": {}}, "Missing action"),
        ({"action": ""}, "Missing action"),
        ({"action": "dropTables"}, "Invalid action"),
        ({"action": 42}, "Invalid action"),
    ],
)
def test_parse_request_rejects_missing_or_unknown_actions(
    dispatcher: ActionDispatcher,
    body: object,
    message: str,
) -> None:
    with pytest.raises(ActionError) as exc_info:
        dispatcher.parse_request(body)
    assert exc_info.value.status_code == 400
    assert exc_info.value.message == message


def test_parse_request_reports_invalid_payload_fields(dispatcher: ActionDispatcher) -> None:
    with pytest.raises(ActionError) as exc_info:
        dispatcher.parse_request({"action": "getPosts", "payload": {"page": 0}})

    assert exc_info.value.status_code == 400
    assert exc_info.value.message.startswith("Invalid payload for getPosts: ")
    assert "topic" in exc_info.value.message
    assert "page" in exc_info.value.message


def test_parse_request_defaults_missing_payload(dispatcher: ActionDispatcher) -> None:
    request = dispatcher.parse_request({"action": "getAllPosts"})
    assert request.action == "getAllPosts"


def test_get_posts_uses_configured_page_size_when_limit_is_omitted(database: Database) -> None:
    posts = PostRepository(database)
    posts.insert_posts(
        [make_article(f"p{index}", created_at=f"2025-01-01T00:00:{index:02d}+00:00")
         for index in range(5)]
    )
    dispatcher = ActionDispatcher(
        post_repository=posts,
        comment_repository=CommentRepository(database),
        content_service=FakeContentService(),
        default_page_size=2,
    )

    _, default_page = _run(
        dispatcher, {"action": "getPosts", "payload": {"topic": "Space Exploration"}}
    )
    _, explicit_page = _run(
        dispatcher,
        {"action": "getPosts", "payload": {"topic": "Space Exploration", "page": 2, "limit": 3}},
    )

    assert [post["id"] for post in default_page] == ["p4", "p3"]
    assert [post["id"] for post in explicit_page] == ["p1", "p0"]
    assert default_page[0]["imageUrl"].startswith("https://")
    assert "created_at" in default_page[0]


def test_get_post_by_id_returns_null_for_unknown_post(dispatcher: ActionDispatcher) -> None:
    status, body = _run(dispatcher, {"action": "getPostById", "payload": {"postId": "nope"}})
    assert status == 200
    assert body is None


def test_search_and_generate_persists_only_the_first_post(
    dispatcher: ActionDispatcher,
    content_service: FakeContentService,
) -> None:
    status, body = _run(
        dispatcher, {"action": "searchAndGeneratePost", "payload": {"topic": "  fusion power "}}
    )

    assert status == 200
    assert body["topic"] == "fusion power"
    assert content_service.calls == [("fusion power", 1, None)]
    assert dispatcher.post_repository.get_post(body["id"]) is not None


def test_search_and_generate_returns_null_when_nothing_is_generated(
    dispatcher: ActionDispatcher,
    content_service: FakeContentService,
) -> None:
    content_service.titles = []
    _, body = _run(dispatcher, {"action": "searchAndGeneratePost", "payload": {"topic": "x"}})
    assert body is None
    assert dispatcher.post_repository.count_posts() == 0


def test_related_posts_exclude_the_current_title(
    dispatcher: ActionDispatcher,
    content_service: FakeContentService,
) -> None:
    dispatcher.post_repository.insert_posts([make_article("current", title="Moon Base")])
    content_service.titles = ["Moon Base", "Mars Rovers", "Venus Probes", "Europa Ice"]

    _, body = _run(
        dispatcher,
        {
            "action": "getRelatedPosts",
            "payload": {"keywords": ["moon", " ", "lunar"], "currentPostId": "current"},
        },
    )

    assert content_service.calls == [("moon, lunar", 3, "Moon Base")]
    assert [post["title"] for post in body] == ["Mars Rovers", "Venus Probes"]
    assert dispatcher.post_repository.count_posts() == 3


def test_related_posts_require_a_keyword(dispatcher: ActionDispatcher) -> None:
    with pytest.raises(ActionError) as exc_info:
        dispatcher.parse_request(
            {"action": "getRelatedPosts", "payload": {"keywords": [" "], "currentPostId": "x"}}
        )
    assert exc_info.value.status_code == 400


def test_create_update_delete_post(dispatcher: ActionDispatcher) -> None:
    status, created = _run(
        dispatcher,
        {
            "action": "createPost",
            "payload": {
                "post": {
                    "topic": "Science Frontiers",
                    "title": "Tardigrades",
                    "summary": "Tiny and tough.",
                    "content": "They survive everything.",
                }
            },
        },
    )
    assert status == 201
    assert created["id"].startswith("custom-")

    created["title"] = "Tardigrades Revisited"
    _, updated = _run(dispatcher, {"action": "updatePost", "payload": {"post": created}})
    assert updated["title"] == "Tardigrades Revisited"
    assert updated["created_at"] == created["created_at"]

    _, deleted = _run(dispatcher, {"action": "deletePost", "payload": {"postId": created["id"]}})
    assert deleted == {"success": True}
    _, missing_delete = _run(dispatcher, {"action": "deletePost", "payload": {"postId": "gone"}})
    assert missing_delete == {"success": True}


def test_update_post_for_unknown_id_returns_null(dispatcher: ActionDispatcher) -> None:
    _, body = _run(
        dispatcher,
        {"action": "updatePost", "payload": {"post": make_article("ghost").to_wire()}},
    )
    assert body is None


def test_comment_lifecycle(dispatcher: ActionDispatcher) -> None:
    status, comment = _run(
        dispatcher,
        {
            "action": "addComment",
            "payload": {"comment": {"postId": "p1", "author": "Ada", "text": "Hi"}},
        },
    )
    assert status == 201
    assert comment["status"] == "pending"
    assert comment["postId"] == "p1"

    _, approved = _run(
        dispatcher,
        {
            "action": "updateCommentStatus",
            "payload": {"commentId": comment["id"], "status": "approved"},
        },
    )
    assert approved["status"] == "approved"

    _, per_post = _run(dispatcher, {"action": "getComments", "payload": {"postId": "p1"}})
    _, everything = _run(dispatcher, {"action": "getAllComments"})
    assert [entry["id"] for entry in per_post] == [comment["id"]]
    assert len(everything) == 1

    with pytest.raises(ActionError) as exc_info:
        _run(
            dispatcher,
            {
                "action": "updateCommentStatus",
                "payload": {"commentId": comment["id"], "status": "rejected"},
            },
        )
    assert exc_info.value.status_code == 400


def test_add_comment_cannot_start_rejected(dispatcher: ActionDispatcher) -> None:
    with pytest.raises(ActionError) as exc_info:
        _run(
            dispatcher,
            {
                "action": "addComment",
                "payload": {
                    "comment": {"postId": "p1", "author": "Ada", "text": "Hi", "status": "rejected"}
                },
            },
        )
    assert exc_info.value.status_code == 400
    assert exc_info.value.message.startswith("Invalid payload for addComment: ")

    _, everything = _run(dispatcher, {"action": "getAllComments"})
    assert everything == []

    status, approved = _run(
        dispatcher,
        {
            "action": "addComment",
            "payload": {
                "comment": {"postId": "p1", "author": "Ada", "text": "Hi", "status": "approved"}
            },
        },
    )
    assert status == 201
    assert approved["status"] == "approved"


def test_video_and_keyword_actions_pass_through(
    dispatcher: ActionDispatcher,
    content_service: FakeContentService,
) -> None:
    _, video = _run(dispatcher, {"action": "findYouTubeVideoId", "payload": {"query": "Moon"}})
    _, keywords = _run(
        dispatcher, {"action": "extractKeywordsFromContent", "payload": {"content": "Rockets"}}
    )
    assert video == content_service.video_id
    assert keywords == ["rockets", "orbit"]


def test_content_service_failures_map_to_bad_gateway(
    dispatcher: ActionDispatcher,
    content_service: FakeContentService,
) -> None:
    content_service.fail_with = ContentServiceError("quota exhausted", retryable=True)

    with pytest.raises(ActionError) as exc_info:
        _run(dispatcher, {"action": "searchAndGeneratePost", "payload": {"topic": "x"}})

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "quota exhausted"


def test_repository_failures_map_to_server_error(
    database: Database,
    content_service: FakeContentService,
) -> None:
    class _BrokenPosts(PostRepository):
        def get_post(self, post_id: str) -> Article | None:
            raise RepositoryError("disk on fire")

    dispatcher = ActionDispatcher(
        post_repository=_BrokenPosts(database),
        comment_repository=CommentRepository(database),
        content_service=content_service,
    )

    with pytest.raises(ActionError) as exc_info:
        _run(dispatcher, {"action": "getPostById", "payload": {"postId": "x"}})
    assert exc_info.value.status_code == 500


def test_seed_new_content_inserts_showcase_once_and_seeds_distinct_topics(
    database: Database,
    content_service: FakeContentService,
) -> None:
    dispatcher = ActionDispatcher(
        post_repository=PostRepository(database),
        comment_repository=CommentRepository(database),
        content_service=content_service,
        seed_topic_count=3,
        seed_posts_per_topic=2,
        rng=random.Random(7),
    )

    _, first = _run(dispatcher, {"action": "seedNewContent"})
    _, second = _run(dispatcher, {"action": "seedNewContent"})

    assert first["success"] is True
    assert len(set(first["seededTopics"])) == 3
    assert set(first["seededTopics"]) <= set(BLOG_TOPICS)
    assert all(count == 2 for _, count, _ in content_service.calls)
    assert dispatcher.post_repository.get_post(SHOWCASE_ARTICLE_ID) is not None
    assert second["success"] is True
    # one showcase article plus 2 posts for each of 3 topics, twice
    assert dispatcher.post_repository.count_posts() == 1 + 2 * 3 * 2


def test_execute_emits_start_and_finish_telemetry(database: Database) -> None:
    sink = _CaptureSink()
    dispatcher = ActionDispatcher(
        post_repository=PostRepository(database),
        comment_repository=CommentRepository(database),
        content_service=FakeContentService(),
        telemetry=TelemetryClient(enabled=True, sink=sink),
    )

    dispatcher.execute(GetPostsRequest.model_validate({"payload": {"topic": "World Politics"}}))

    names = [name for name, _ in sink.events]
    assert names == ["action.execute.start", "action.execute.finish"]
    assert sink.events[0][1]["action"] == "getPosts"
    assert sink.events[0][1]["write_operation"] is False
    assert sink.events[1][1]["status_code"] == 200


def test_generate_for_topic_uses_default_batch_size(
    dispatcher: ActionDispatcher,
    content_service: FakeContentService,
) -> None:
    articles = dispatcher.generate_for_topic("Space Exploration")
    assert len(articles) == 10
    assert content_service.calls == [("Space Exploration", 10, None)]
    assert dispatcher.post_repository.count_posts() == 10
