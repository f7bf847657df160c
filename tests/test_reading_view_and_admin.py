from __future__ import annotations

import asyncio

import pytest
from blog_factories import make_article

from backend.app.models.blog_contracts import (
    Article,
    ArticleDraft,
    Comment,
    CommentDraft,
    CommentStatus,
    PostIndexEntry,
    PostSummary,
    default_image_url,
)
from backend.app.reader.admin import (
    CONTENT_TOO_SHORT_ERROR,
    REQUIRED_FIELDS_ERROR,
    AdminConsole,
    PostForm,
    PostFormError,
    build_draft,
    build_updated_article,
    dashboard_stats,
    extract_youtube_id,
)
from backend.app.reader.gateway import FetchError
from backend.app.reader.reading_view import (
    COMMENT_REQUIRED_FIELDS_ERROR,
    COMMENT_TOO_LONG_ERROR,
    RELATED_POSTS_ERROR,
    CommentFormError,
    ReadingView,
)
from backend.app.reader.storage import InMemoryStore, LocalLibrary

SEVEN_PARAGRAPHS = "\n\n".join(f"Paragraph {index}." for index in range(7))


def _comment(comment_id: str, status: CommentStatus, *, post_id: str = "p1") -> Comment:
    return Comment(
        id=comment_id,
        post_id=post_id,
        author="Ada",
        text="Nice",
        timestamp=int(comment_id.rsplit("-", 1)[-1]),
        status=status,
        created_at="2025-01-01T00:00:00+00:00",
    )


class _FakeBlog:
    def __init__(self) -> None:
        self.comments: list[Comment] = []
        self.keywords: list[str] = ["moon"]
        self.related: list[Article] = [make_article("r1")]
        self.video_id: str | None = "abcdefghijk"
        self.fail_keywords = False
        self.fail_comments = False
        self.related_queries: list[tuple[list[str], str]] = []
        self.video_queries: list[str] = []
        self.posts: dict[str, Article] = {}
        self.created: list[ArticleDraft] = []
        self._next_id = 100

    async def get_comments(self, post_id: str) -> list[Comment]:
        if self.fail_comments:
            raise FetchError("down")
        return [comment for comment in self.comments if comment.post_id == post_id]

    async def add_comment(self, draft: CommentDraft) -> Comment:
        self._next_id += 1
        comment = Comment(
            id=f"comment-{self._next_id}",
            post_id=draft.post_id,
            author=draft.author,
            text=draft.text,
            timestamp=self._next_id,
            status=draft.status,
            created_at="2025-01-02T00:00:00+00:00",
        )
        self.comments.append(comment)
        return comment

    async def extract_keywords(self, content: str) -> list[str]:
        if self.fail_keywords:
            raise FetchError("quota", status_code=502)
        return list(self.keywords)

    async def get_related_posts(self, keywords: list[str], current_post_id: str) -> list[Article]:
        self.related_queries.append((keywords, current_post_id))
        return list(self.related)

    async def find_youtube_video_id(self, query: str) -> str | None:
        self.video_queries.append(query)
        return self.video_id

    async def get_all_posts(self) -> list[PostIndexEntry]:
        return [
            PostIndexEntry(
                post=PostSummary(id=post.id, title=post.title, topic=post.topic),
                topic=post.topic,
            )
            for post in self.posts.values()
        ]

    async def get_all_comments(self) -> list[Comment]:
        return list(self.comments)

    async def create_post(self, draft: ArticleDraft) -> Article:
        self.created.append(draft)
        article = make_article(f"custom-{len(self.created)}", title=draft.title)
        self.posts[article.id] = article
        return article

    async def update_post(self, article: Article) -> Article | None:
        if article.id not in self.posts:
            return None
        self.posts[article.id] = article
        return article

    async def delete_post(self, post_id: str) -> bool:
        return self.posts.pop(post_id, None) is not None

    async def update_comment_status(self, comment_id: str, status: CommentStatus) -> Comment | None:
        for index, comment in enumerate(self.comments):
            if comment.id == comment_id:
                updated = comment.model_copy(update={"status": status})
                self.comments[index] = updated
                return updated
        return None


def test_load_fetches_comments_related_and_video_together() -> None:
    blog = _FakeBlog()
    blog.comments = [_comment("comment-1", "approved"), _comment("comment-2", "pending")]
    view = ReadingView(blog, make_article("p1", title="Moon Base"), LocalLibrary(InMemoryStore()))

    asyncio.run(view.load())

    state = view.state
    assert [comment.id for comment in state.comments] == ["comment-1"]
    assert state.keywords == ["moon"]
    assert [post.id for post in state.related_posts] == ["r1"]
    assert blog.related_queries == [(["moon"], "p1")]
    assert state.video_id == "abcdefghijk"
    assert blog.video_queries == ["Moon Base"]
    assert state.is_related_loading is False
    assert state.is_video_loading is False


def test_related_falls_back_to_title_when_no_keywords() -> None:
    blog = _FakeBlog()
    blog.keywords = []
    view = ReadingView(blog, make_article("p1", title="Moon Base"), LocalLibrary(InMemoryStore()))

    asyncio.run(view.load_related())

    assert blog.related_queries == [(["Moon Base"], "p1")]


def test_related_failure_sets_message_and_topic_keyword() -> None:
    blog = _FakeBlog()
    blog.fail_keywords = True
    view = ReadingView(blog, make_article("p1"), LocalLibrary(InMemoryStore()))

    asyncio.run(view.load_related())

    assert view.state.related_error == RELATED_POSTS_ERROR
    assert view.state.keywords == ["Space Exploration"]
    assert view.state.related_posts == []


def test_existing_video_id_skips_lookup_and_comment_failure_is_contained() -> None:
    blog = _FakeBlog()
    blog.fail_comments = True
    article = make_article("p1", youtube_video_id="zzzzzzzzzzz")
    view = ReadingView(blog, article, LocalLibrary(InMemoryStore()))

    asyncio.run(view.load())

    assert view.state.video_id == "zzzzzzzzzzz"
    assert blog.video_queries == []
    assert view.state.comments_error is not None


def test_add_comment_respects_auto_approve() -> None:
    blog = _FakeBlog()
    library = LocalLibrary(InMemoryStore())
    view = ReadingView(blog, make_article("p1"), library)

    pending = asyncio.run(view.add_comment("Ada", "First"))
    assert pending == "pending"
    assert view.state.comments == []

    library.set_auto_approve(True)
    approved = asyncio.run(view.add_comment("Bo", "Second"))
    assert approved == "approved"
    assert [comment.author for comment in view.state.comments] == ["Bo"]
    assert view.state.latest_comment_id == view.state.comments[0].id
    assert len(library.cached_comments()) == 2


@pytest.mark.parametrize(
    ("author", "text", "message"),
    [
        ("  ", "Hello", COMMENT_REQUIRED_FIELDS_ERROR),
        ("Ada", "\n\t", COMMENT_REQUIRED_FIELDS_ERROR),
        ("Ada", "x" * 5001, COMMENT_TOO_LONG_ERROR),
    ],
)
def test_add_comment_rejects_invalid_input_before_submitting(
    author: str,
    text: str,
    message: str,
) -> None:
    blog = _FakeBlog()
    view = ReadingView(blog, make_article("p1"), LocalLibrary(InMemoryStore()))

    with pytest.raises(CommentFormError, match=message):
        asyncio.run(view.add_comment(author, text))
    assert blog.comments == []


def test_toggle_saved_from_reading_view() -> None:
    library = LocalLibrary(InMemoryStore())
    view = ReadingView(_FakeBlog(), make_article("p1"), library)

    assert view.toggle_saved() is True
    assert view.is_saved is True
    assert view.toggle_saved() is False


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=10", "dQw4w9WgXcQ"),
        ("https://youtu.be/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("youtube.com/embed/dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        ("", None),
        ("not a video", None),
    ],
)
def test_extract_youtube_id(value: str, expected: str | None) -> None:
    assert extract_youtube_id(value) == expected


def test_post_form_validation() -> None:
    with pytest.raises(PostFormError, match=REQUIRED_FIELDS_ERROR):
        build_draft(PostForm(title=" ", summary="s", content="c"))
    with pytest.raises(PostFormError) as exc_info:
        build_draft(PostForm(title="t", summary="s", content="one\n\ntwo"))
    assert str(exc_info.value) == CONTENT_TOO_SHORT_ERROR


def test_build_draft_fills_image_and_video() -> None:
    draft = build_draft(
        PostForm(
            title=" Solar Sails ",
            summary="Light pushes.",
            content=SEVEN_PARAGRAPHS,
            topic="Space Exploration",
            youtube="https://youtu.be/dQw4w9WgXcQ",
        )
    )

    assert draft.title == "Solar Sails"
    assert draft.image_url == default_image_url("Solar Sails")
    assert draft.youtube_video_id == "dQw4w9WgXcQ"


def test_build_updated_article_keeps_identity() -> None:
    existing = make_article("p1", created_at="2025-01-01T00:00:00+00:00")
    updated = build_updated_article(
        PostForm(
            title="New",
            summary="S",
            content=SEVEN_PARAGRAPHS,
            image_url="https://i.test/a.png",
        ),
        existing,
    )

    assert updated.id == "p1"
    assert updated.created_at == existing.created_at
    assert updated.title == "New"
    assert updated.image_url == "https://i.test/a.png"
    assert updated.author == existing.author


def test_admin_console_moderation_and_stats() -> None:
    blog = _FakeBlog()
    blog.posts = {"p1": make_article("p1")}
    blog.comments = [
        _comment("comment-1", "pending"),
        _comment("comment-2", "pending"),
        _comment("comment-3", "approved"),
    ]
    library = LocalLibrary(InMemoryStore())
    console = AdminConsole(blog, library)

    async def scenario() -> Comment | None:
        await console.refresh()
        await console.moderate("comment-1", "approved")
        return await console.moderate("comment-404", "approved")

    missing = asyncio.run(scenario())

    assert missing is None
    assert console.tab_counts() == {"pending": 1, "approved": 2, "rejected": 0}
    assert [comment.id for comment in console.comments_tab("pending")] == ["comment-2"]
    assert console.stats() == dashboard_stats(console.posts, console.comments)
    assert console.stats().total_posts == 1
    assert console.stats().pending_comments == 1
    cached = {raw["id"]: raw["status"] for raw in library.cached_comments()}
    assert cached["comment-1"] == "approved"


def test_admin_console_saves_and_deletes_posts() -> None:
    blog = _FakeBlog()
    library = LocalLibrary(InMemoryStore())
    console = AdminConsole(blog, library)
    form = PostForm(title="Solar Sails", summary="S", content=SEVEN_PARAGRAPHS)

    async def scenario() -> tuple[Article | None, Article | None, bool]:
        created = await console.save_post(form)
        assert created is not None
        await console.refresh()
        edited = await console.save_post(
            PostForm(title="Solar Sails 2", summary="S", content=SEVEN_PARAGRAPHS),
            existing=created,
        )
        deleted = await console.delete_post(created.id)
        return created, edited, deleted

    created, edited, deleted = asyncio.run(scenario())

    assert created is not None and created.id == "custom-1"
    assert edited is not None and edited.title == "Solar Sails 2"
    assert deleted is True
    assert console.posts == []
    console.set_auto_approve(True)
    assert console.auto_approve() is True
