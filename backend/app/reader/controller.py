from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

from backend.app.models.blog_contracts import (
    BLOG_TOPICS,
    FEATURED_POST_COUNT,
    POSTS_PER_PAGE,
    Article,
    search_topic_label,
)
from backend.app.reader.gateway import FetchError

LOGGER = logging.getLogger("global_gist.reader.controller")

FETCH_POSTS_ERROR = "An unknown error occurred while fetching posts."
LOAD_MORE_ERROR = "Failed to load more posts. Please try again later."
OPEN_POST_ERROR = "Could not load the requested article."


def search_error_message(query: str) -> str:
    return f'An error occurred while searching for "{query}".'


class PostSource(Protocol):
    async def get_posts(self, topic: str, page: int, limit: int = POSTS_PER_PAGE) -> list[Article]:
        ...

    async def get_post_by_id(self, post_id: str) -> Article | None:
        ...

    async def search_and_generate_post(self, topic: str) -> Article | None:
        ...


def _empty_articles() -> list[Article]:
    return []


@dataclass
class BrowseState:
    current_topic: str
    current_page: int = 1
    posts: list[Article] = field(default_factory=_empty_articles)
    featured_posts: list[Article] = field(default_factory=_empty_articles)
    has_more_posts: bool = True
    is_initial_loading: bool = False
    is_appending: bool = False
    error: str | None = None
    selected_post_id: str | None = None


class TopicPaginationController:
    """Owns the browsing session: current topic, accumulated pages and loading flags.

    Each topic selection or search starts a new request generation. A response
    that arrives after a newer generation has started is dropped without
    touching state, so a slow page for an old topic can never land in the
    list for the current one.
    """

    def __init__(
        self,
        source: PostSource,
        *,
        initial_topic: str = BLOG_TOPICS[0],
        page_size: int = POSTS_PER_PAGE,
    ) -> None:
        self._source = source
        self._page_size = max(1, int(page_size))
        self._generation = 0
        self._last_query: str | None = None
        self._state = BrowseState(current_topic=initial_topic)

    @property
    def state(self) -> BrowseState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def page_size(self) -> int:
        return self._page_size

    async def select_topic(self, topic: str) -> None:
        state = self._state
        if topic != state.current_topic:
            state.posts = []
            state.featured_posts = []
            state.current_page = 1
            state.has_more_posts = True
        state.current_topic = topic
        state.error = None
        state.selected_post_id = None
        self._last_query = None

        generation = self._start_generation()
        state.is_initial_loading = True
        try:
            fetched = await self._source.get_posts(topic, 1, self._page_size)
        except FetchError as exc:
            if self._is_current(generation):
                state.error = exc.message or FETCH_POSTS_ERROR
            return
        finally:
            if self._is_current(generation):
                state.is_initial_loading = False

        if not self._is_current(generation):
            LOGGER.debug("discarding stale topic page topic=%s", topic)
            return
        posts = [post for post in fetched if post.topic == topic]
        state.posts = posts
        state.featured_posts = posts[:FEATURED_POST_COUNT]
        state.current_page = 1
        state.has_more_posts = len(fetched) >= self._page_size

    async def load_more(self) -> None:
        state = self._state
        if state.is_appending or state.is_initial_loading or not state.has_more_posts:
            return

        generation = self._generation
        topic = state.current_topic
        next_page = state.current_page + 1
        state.is_appending = True
        try:
            fetched = await self._source.get_posts(topic, next_page, self._page_size)
        except FetchError:
            if self._is_current(generation):
                state.error = LOAD_MORE_ERROR
            return
        finally:
            if self._is_current(generation):
                state.is_appending = False

        if not self._is_current(generation):
            LOGGER.debug("discarding stale load-more page topic=%s page=%s", topic, next_page)
            return
        if fetched:
            state.posts = [*state.posts, *(post for post in fetched if post.topic == topic)]
            state.current_page = next_page
        state.has_more_posts = len(fetched) >= self._page_size

    async def search(self, query: str) -> None:
        query = query.strip()
        if not query:
            return
        state = self._state
        state.posts = []
        state.featured_posts = []
        state.current_topic = search_topic_label(query)
        state.current_page = 1
        state.has_more_posts = False
        state.error = None
        state.selected_post_id = None
        self._last_query = query

        generation = self._start_generation()
        state.is_initial_loading = True
        try:
            article = await self._source.search_and_generate_post(query)
        except FetchError:
            if self._is_current(generation):
                state.error = search_error_message(query)
            return
        finally:
            if self._is_current(generation):
                state.is_initial_loading = False

        if not self._is_current(generation):
            LOGGER.debug("discarding stale search result query=%s", query)
            return
        if article is not None:
            state.posts = [article]
            state.featured_posts = [article]

    async def refresh(self) -> None:
        if self._last_query is not None:
            await self.search(self._last_query)
            return
        await self.select_topic(self._state.current_topic)

    async def open_post(self, post_id: str) -> Article | None:
        state = self._state
        state.selected_post_id = post_id
        for post in state.posts:
            if post.id == post_id:
                return post

        generation = self._generation
        try:
            article = await self._source.get_post_by_id(post_id)
        except FetchError:
            if self._is_current(generation) and state.selected_post_id == post_id:
                state.error = OPEN_POST_ERROR
                state.selected_post_id = None
            return None
        if article is None and state.selected_post_id == post_id:
            state.selected_post_id = None
        return article

    def close_post(self) -> None:
        self._state.selected_post_id = None

    def _start_generation(self) -> int:
        self._generation += 1
        # A load-more from the previous generation can no longer clear its own flag.
        self._state.is_appending = False
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation
