from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError

from backend.app.models.blog_contracts import Article, Comment, CommentDraft, CommentStatus
from backend.app.reader.comments import initial_status, public_comments
from backend.app.reader.gateway import FetchError
from backend.app.reader.storage import LocalLibrary

LOGGER = logging.getLogger("global_gist.reader.reading_view")

RELATED_POSTS_ERROR = "Could not load related articles."
COMMENTS_ERROR = "Could not load comments."
COMMENT_REQUIRED_FIELDS_ERROR = "Please enter your name and a comment."
COMMENT_TOO_LONG_ERROR = "Name or comment is too long."


class CommentFormError(ValueError):
    pass


class ArticleSource(Protocol):
    async def get_comments(self, post_id: str) -> list[Comment]:
        ...

    async def add_comment(self, draft: CommentDraft) -> Comment:
        ...

    async def extract_keywords(self, content: str) -> list[str]:
        ...

    async def get_related_posts(self, keywords: list[str], current_post_id: str) -> list[Article]:
        ...

    async def find_youtube_video_id(self, query: str) -> str | None:
        ...


def _empty_comments() -> list[Comment]:
    return []


def _empty_articles() -> list[Article]:
    return []


def _empty_keywords() -> list[str]:
    return []


@dataclass
class ReadingState:
    article: Article
    comments: list[Comment] = field(default_factory=_empty_comments)
    comments_error: str | None = None
    keywords: list[str] = field(default_factory=_empty_keywords)
    related_posts: list[Article] = field(default_factory=_empty_articles)
    related_error: str | None = None
    is_related_loading: bool = False
    video_id: str | None = None
    is_video_loading: bool = False
    latest_comment_id: str | None = None


class ReadingView:
    def __init__(self, source: ArticleSource, article: Article, library: LocalLibrary) -> None:
        self._source = source
        self._library = library
        self._state = ReadingState(article=article, video_id=article.youtube_video_id)

    @property
    def state(self) -> ReadingState:
        return self._state

    @property
    def is_saved(self) -> bool:
        return self._library.is_saved(self._state.article.id)

    async def load(self) -> None:
        await asyncio.gather(self.load_comments(), self.load_related(), self.load_video())

    async def load_comments(self) -> None:
        article = self._state.article
        try:
            comments = await self._source.get_comments(article.id)
        except FetchError as exc:
            LOGGER.warning("failed to load comments post_id=%s error=%s", article.id, exc)
            self._state.comments_error = COMMENTS_ERROR
            return
        self._state.comments = public_comments(comments)
        self._state.comments_error = None

    async def load_related(self) -> None:
        state = self._state
        article = state.article
        state.is_related_loading = True
        state.related_error = None
        state.related_posts = []
        try:
            keywords = await self._source.extract_keywords(article.content)
            state.keywords = keywords
            search_keywords = keywords if keywords else [article.title]
            state.related_posts = await self._source.get_related_posts(search_keywords, article.id)
        except FetchError as exc:
            LOGGER.warning("failed to load related posts post_id=%s error=%s", article.id, exc)
            state.keywords = [article.topic]
            state.related_error = RELATED_POSTS_ERROR
        finally:
            state.is_related_loading = False

    async def load_video(self) -> None:
        state = self._state
        article = state.article
        if article.youtube_video_id:
            state.video_id = article.youtube_video_id
            state.is_video_loading = False
            return
        state.is_video_loading = True
        try:
            state.video_id = await self._source.find_youtube_video_id(article.title)
        except FetchError as exc:
            LOGGER.warning("failed to find a video post_id=%s error=%s", article.id, exc)
            state.video_id = None
        finally:
            state.is_video_loading = False

    async def add_comment(self, author: str, text: str) -> CommentStatus:
        """Submit a comment; approved ones appear immediately, pending ones await moderation."""
        if not author.strip() or not text.strip():
            raise CommentFormError(COMMENT_REQUIRED_FIELDS_ERROR)
        status = initial_status(auto_approve=self._library.auto_approve())
        try:
            draft = CommentDraft(
                post_id=self._state.article.id,
                author=author,
                text=text,
                status=status,
            )
        except ValidationError as exc:
            raise CommentFormError(COMMENT_TOO_LONG_ERROR) from exc
        saved = await self._source.add_comment(draft)
        self._library.cache_comment(saved)
        if saved.status == "approved":
            self._state.comments = [*self._state.comments, saved]
            self._state.latest_comment_id = saved.id
        return status

    def toggle_saved(self) -> bool:
        return self._library.toggle_saved(self._state.article)
