from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Protocol

from backend.app.models.blog_contracts import (
    BLOG_TOPICS,
    Article,
    ArticleDraft,
    Comment,
    CommentStatus,
    PostIndexEntry,
    default_image_url,
)
from backend.app.reader.comments import comments_with_status, status_counts
from backend.app.reader.storage import LocalLibrary

MIN_CONTENT_LINES = 7
REQUIRED_FIELDS_ERROR = "Please fill out Title, Summary, and Content fields."
CONTENT_TOO_SHORT_ERROR = "Content is too short. Please write at least 7 paragraphs."

_BARE_VIDEO_ID = re.compile(r"^[a-zA-Z0-9_-]{11}$")
_VIDEO_URL = re.compile(
    r"(?:https?://)?(?:www\.)?(?:youtube\.com/(?:watch\?v=|embed/)|youtu\.be/)([a-zA-Z0-9_-]{11})"
)


class PostFormError(ValueError):
    pass


@dataclass(frozen=True)
class PostForm:
    title: str
    summary: str
    content: str
    topic: str = BLOG_TOPICS[0]
    image_url: str = ""
    youtube: str = ""


@dataclass(frozen=True)
class DashboardStats:
    total_posts: int
    total_comments: int
    pending_comments: int


class AdminSource(Protocol):
    async def get_all_posts(self) -> list[PostIndexEntry]:
        ...

    async def get_all_comments(self) -> list[Comment]:
        ...

    async def create_post(self, draft: ArticleDraft) -> Article:
        ...

    async def update_post(self, article: Article) -> Article | None:
        ...

    async def delete_post(self, post_id: str) -> bool:
        ...

    async def update_comment_status(self, comment_id: str, status: CommentStatus) -> Comment | None:
        ...


def extract_youtube_id(value: str) -> str | None:
    candidate = value.strip()
    if not candidate:
        return None
    if _BARE_VIDEO_ID.match(candidate):
        return candidate
    match = _VIDEO_URL.search(candidate)
    return match.group(1) if match else None


def validate_form(form: PostForm) -> None:
    if not form.title.strip() or not form.summary.strip() or not form.content.strip():
        raise PostFormError(REQUIRED_FIELDS_ERROR)
    non_blank_lines = [line for line in form.content.split("\n") if line.strip()]
    if len(non_blank_lines) < MIN_CONTENT_LINES:
        raise PostFormError(CONTENT_TOO_SHORT_ERROR)


def build_draft(form: PostForm) -> ArticleDraft:
    validate_form(form)
    return ArticleDraft(
        topic=form.topic,
        title=form.title.strip(),
        summary=form.summary.strip(),
        content=form.content,
        image_url=form.image_url.strip() or default_image_url(form.title.strip()),
        youtube_video_id=extract_youtube_id(form.youtube),
    )


def build_updated_article(form: PostForm, existing: Article) -> Article:
    draft = build_draft(form)
    return existing.model_copy(
        update={
            "topic": draft.topic,
            "title": draft.title,
            "summary": draft.summary,
            "content": draft.content,
            "image_url": draft.image_url,
            "youtube_video_id": draft.youtube_video_id,
        }
    )


def dashboard_stats(posts: list[PostIndexEntry], comments: list[Comment]) -> DashboardStats:
    return DashboardStats(
        total_posts=len(posts),
        total_comments=len(comments),
        pending_comments=status_counts(comments)["pending"],
    )


class AdminConsole:
    """Post management and comment moderation over the blog API."""

    def __init__(self, source: AdminSource, library: LocalLibrary) -> None:
        self._source = source
        self._library = library
        self._posts: list[PostIndexEntry] = []
        self._comments: list[Comment] = []

    @property
    def posts(self) -> list[PostIndexEntry]:
        return list(self._posts)

    @property
    def comments(self) -> list[Comment]:
        return list(self._comments)

    async def refresh(self) -> None:
        self._posts = await self._source.get_all_posts()
        self._comments = await self._source.get_all_comments()
        self._library.replace_cached_comments(self._comments)

    def stats(self) -> DashboardStats:
        return dashboard_stats(self._posts, self._comments)

    def tab_counts(self) -> dict[CommentStatus, int]:
        return status_counts(self._comments)

    def comments_tab(self, status: CommentStatus) -> list[Comment]:
        return comments_with_status(self._comments, status)

    async def moderate(self, comment_id: str, status: CommentStatus) -> Comment | None:
        updated = await self._source.update_comment_status(comment_id, status)
        if updated is None:
            return None
        self._comments = [
            updated if comment.id == updated.id else comment for comment in self._comments
        ]
        self._library.cache_comment(updated)
        return updated

    async def save_post(self, form: PostForm, *, existing: Article | None = None) -> Article | None:
        if existing is None:
            return await self._source.create_post(build_draft(form))
        return await self._source.update_post(build_updated_article(form, existing))

    async def delete_post(self, post_id: str) -> bool:
        deleted = await self._source.delete_post(post_id)
        if deleted:
            self._posts = [entry for entry in self._posts if entry.post.id != post_id]
        return deleted

    def auto_approve(self) -> bool:
        return self._library.auto_approve()

    def set_auto_approve(self, enabled: bool) -> None:
        self._library.set_auto_approve(enabled)
