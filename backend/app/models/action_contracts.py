from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from backend.app.models.blog_contracts import (
    POSTS_PER_PAGE,
    Article,
    ArticleDraft,
    CommentDraft,
    CommentStatus,
)

ActionName = Literal[
    "getPosts",
    "getPostById",
    "getAllPosts",
    "searchAndGeneratePost",
    "getRelatedPosts",
    "createPost",
    "updatePost",
    "deletePost",
    "getComments",
    "getAllComments",
    "addComment",
    "updateCommentStatus",
    "findYouTubeVideoId",
    "extractKeywordsFromContent",
    "seedNewContent",
]

WRITE_ACTIONS: frozenset[str] = frozenset(
    {
        "searchAndGeneratePost",
        "getRelatedPosts",
        "createPost",
        "updatePost",
        "deletePost",
        "addComment",
        "updateCommentStatus",
        "seedNewContent",
    }
)


class ActionError(RuntimeError):
    """A failed action, carried back to the caller as `{"error": message}`."""

    def __init__(self, message: str, *, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class EmptyPayload(_Payload):
    pass


class GetPostsPayload(_Payload):
    topic: str = Field(min_length=1)
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=POSTS_PER_PAGE, ge=1, le=100)


class PostIdPayload(_Payload):
    post_id: str = Field(alias="postId", min_length=1)


class TopicPayload(_Payload):
    topic: str = Field(min_length=1, max_length=300)

    @field_validator("topic", mode="before")
    @classmethod
    def _strip_topic(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class RelatedPostsPayload(_Payload):
    keywords: list[str] = Field(min_length=1)
    current_post_id: str = Field(alias="currentPostId")

    @field_validator("keywords")
    @classmethod
    def _drop_blank_keywords(cls, value: list[str]) -> list[str]:
        cleaned = [keyword.strip() for keyword in value if keyword.strip()]
        if not cleaned:
            raise ValueError("keywords must contain at least one non-blank keyword")
        return cleaned


class CreatePostPayload(_Payload):
    post: ArticleDraft


class UpdatePostPayload(_Payload):
    post: Article


class AddCommentPayload(_Payload):
    comment: CommentDraft


class UpdateCommentStatusPayload(_Payload):
    comment_id: str = Field(alias="commentId", min_length=1)
    status: CommentStatus


class QueryPayload(_Payload):
    query: str = Field(min_length=1)


class ContentPayload(_Payload):
    content: str = Field(min_length=1)


class _ActionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class GetPostsRequest(_ActionRequest):
    action: Literal["getPosts"] = "getPosts"
    payload: GetPostsPayload


class GetPostByIdRequest(_ActionRequest):
    action: Literal["getPostById"] = "getPostById"
    payload: PostIdPayload


class GetAllPostsRequest(_ActionRequest):
    action: Literal["getAllPosts"] = "getAllPosts"
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class SearchAndGeneratePostRequest(_ActionRequest):
    action: Literal["searchAndGeneratePost"] = "searchAndGeneratePost"
    payload: TopicPayload


class GetRelatedPostsRequest(_ActionRequest):
    action: Literal["getRelatedPosts"] = "getRelatedPosts"
    payload: RelatedPostsPayload


class CreatePostRequest(_ActionRequest):
    action: Literal["createPost"] = "createPost"
    payload: CreatePostPayload


class UpdatePostRequest(_ActionRequest):
    action: Literal["updatePost"] = "updatePost"
    payload: UpdatePostPayload


class DeletePostRequest(_ActionRequest):
    action: Literal["deletePost"] = "deletePost"
    payload: PostIdPayload


class GetCommentsRequest(_ActionRequest):
    action: Literal["getComments"] = "getComments"
    payload: PostIdPayload


class GetAllCommentsRequest(_ActionRequest):
    action: Literal["getAllComments"] = "getAllComments"
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


class AddCommentRequest(_ActionRequest):
    action: Literal["addComment"] = "addComment"
    payload: AddCommentPayload


class UpdateCommentStatusRequest(_ActionRequest):
    action: Literal["updateCommentStatus"] = "updateCommentStatus"
    payload: UpdateCommentStatusPayload


class FindYouTubeVideoIdRequest(_ActionRequest):
    action: Literal["findYouTubeVideoId"] = "findYouTubeVideoId"
    payload: QueryPayload


class ExtractKeywordsRequest(_ActionRequest):
    action: Literal["extractKeywordsFromContent"] = "extractKeywordsFromContent"
    payload: ContentPayload


class SeedNewContentRequest(_ActionRequest):
    action: Literal["seedNewContent"] = "seedNewContent"
    payload: EmptyPayload = Field(default_factory=EmptyPayload)


ActionRequest = Annotated[
    GetPostsRequest
    | GetPostByIdRequest
    | GetAllPostsRequest
    | SearchAndGeneratePostRequest
    | GetRelatedPostsRequest
    | CreatePostRequest
    | UpdatePostRequest
    | DeletePostRequest
    | GetCommentsRequest
    | GetAllCommentsRequest
    | AddCommentRequest
    | UpdateCommentStatusRequest
    | FindYouTubeVideoIdRequest
    | ExtractKeywordsRequest
    | SeedNewContentRequest,
    Field(discriminator="action"),
]

ACTION_REQUEST_ADAPTER: TypeAdapter[ActionRequest] = TypeAdapter(ActionRequest)
ACTION_NAMES: frozenset[str] = frozenset(get_args(ActionName))


@dataclass(frozen=True)
class ActionOutcome:
    body: Any
    status_code: int = 200
