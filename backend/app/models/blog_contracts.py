from __future__ import annotations

from typing import Any, Literal, cast
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CommentStatus = Literal["pending", "approved", "rejected"]
COMMENT_STATUSES: tuple[CommentStatus, ...] = ("pending", "approved", "rejected")
# A comment can only be rejected by moderation, never on submission.
InitialCommentStatus = Literal["pending", "approved"]

POSTS_PER_PAGE = 9
FEATURED_POST_COUNT = 3
SEARCH_TOPIC_PREFIX = "Search: "

BLOG_TOPICS: tuple[str, ...] = (
    "Breakthrough Tech Innovations",
    "Global Economy & Markets",
    "Health & Wellness Discoveries",
    "Climate & Environment",
    "Space Exploration",
    "Culture & Entertainment",
    "Science Frontiers",
    "World Politics",
)


def search_topic_label(query: str) -> str:
    return f'{SEARCH_TOPIC_PREFIX}"{query}"'


def default_image_url(title: str) -> str:
    return f"https://picsum.photos/seed/{quote(title, safe='')}/600/400"


class _WireModel(BaseModel):
    """Accepts snake_case or camelCase on input, emits camelCase via `by_alias`."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class GroundingSource(_WireModel):
    title: str = ""
    uri: str

    @model_validator(mode="before")
    @classmethod
    def _unwrap_web_chunk(cls, value: Any) -> Any:
        # Grounding chunks arrive as {"web": {"uri": ..., "title": ...}}.
        if isinstance(value, dict):
            raw = cast(dict[str, Any], value)
            web = raw.get("web")
            if isinstance(web, dict) and "uri" not in raw:
                return web
        return value


class Author(_WireModel):
    name: str
    bio: str = ""
    avatar_url: str = Field(default="", alias="avatarUrl")


def _default_sources() -> list[GroundingSource]:
    return []


DEFAULT_AUTHOR = Author(
    name="Global Gist Blog",
    bio=(
        "Global Gist Blog (GGB) is an independent newsroom distilling the world's most "
        "fascinating stories, trends and facts into clear, engaging articles."
    ),
    avatar_url="https://picsum.photos/seed/global-gist-blog-avatar/100/100",
)


class Article(_WireModel):
    id: str
    topic: str
    title: str
    summary: str
    content: str
    image_url: str = Field(alias="imageUrl")
    image_description: str | None = Field(default=None, alias="imageDescription")
    youtube_video_id: str | None = Field(default=None, alias="youtubeVideoId")
    sources: list[GroundingSource] = Field(default_factory=_default_sources)
    author: Author
    created_at: str
    comment_count: int | None = Field(default=None, alias="commentCount")

    @field_validator("sources", mode="before")
    @classmethod
    def _none_sources_as_empty(cls, value: Any) -> Any:
        if value is None:
            return []
        return value


class ArticleDraft(_WireModel):
    """Fields an author supplies; id, author, sources and timestamps are assigned server-side."""

    topic: str = Field(min_length=1)
    title: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    content: str = Field(min_length=1)
    image_url: str | None = Field(default=None, alias="imageUrl")
    image_description: str | None = Field(default=None, alias="imageDescription")
    youtube_video_id: str | None = Field(default=None, alias="youtubeVideoId")


class PostSummary(_WireModel):
    id: str
    title: str
    topic: str


class PostIndexEntry(_WireModel):
    post: PostSummary
    topic: str


class Comment(_WireModel):
    id: str
    post_id: str = Field(alias="postId")
    author: str
    text: str
    timestamp: int
    status: CommentStatus
    created_at: str


class CommentDraft(_WireModel):
    post_id: str = Field(alias="postId", min_length=1)
    author: str = Field(min_length=1, max_length=120)
    text: str = Field(min_length=1, max_length=5000)
    status: InitialCommentStatus = "pending"

    @field_validator("author", "text", mode="before")
    @classmethod
    def _strip_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value
