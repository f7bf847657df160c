from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any

from backend.app.models.blog_contracts import (
    COMMENT_STATUSES,
    Article,
    Comment,
    CommentStatus,
    InitialCommentStatus,
)


def public_comments(comments: Iterable[Comment]) -> list[Comment]:
    """Approved comments only, oldest first."""
    visible = [comment for comment in comments if comment.status == "approved"]
    return sorted(visible, key=lambda comment: (comment.created_at, comment.timestamp))


def initial_status(*, auto_approve: bool) -> InitialCommentStatus:
    return "approved" if auto_approve else "pending"


def comments_with_status(comments: Iterable[Comment], status: CommentStatus) -> list[Comment]:
    return [comment for comment in comments if comment.status == status]


def status_counts(comments: Iterable[Comment]) -> dict[CommentStatus, int]:
    counter = Counter(comment.status for comment in comments)
    return {status: counter.get(status, 0) for status in COMMENT_STATUSES}


def approved_counts_by_post(cached: Iterable[Mapping[str, Any]]) -> dict[str, int]:
    """Count cached comments per post, treating a missing status as approved."""
    counts: Counter[str] = Counter()
    for raw in cached:
        status = raw.get("status")
        if status and status != "approved":
            continue
        post_id = raw.get("postId") or raw.get("post_id")
        if isinstance(post_id, str) and post_id:
            counts[post_id] += 1
    return dict(counts)


def with_comment_counts(
    posts: Iterable[Article],
    cached: Iterable[Mapping[str, Any]],
) -> list[Article]:
    counts = approved_counts_by_post(cached)
    return [post.model_copy(update={"comment_count": counts.get(post.id, 0)}) for post in posts]
