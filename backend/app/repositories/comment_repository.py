from __future__ import annotations

import sqlite3
from typing import cast

from backend.app.models.blog_contracts import Comment, CommentDraft, CommentStatus
from backend.app.repositories.common import EPOCH_MILLIS, utc_now_iso
from backend.app.repositories.database import Database

_COMMENT_COLUMNS = "id, post_id, author, text, timestamp, status, created_at"

_ALLOWED_TRANSITIONS: dict[CommentStatus, frozenset[CommentStatus]] = {
    "pending": frozenset({"approved", "rejected"}),
    "approved": frozenset(),
    "rejected": frozenset(),
}


class CommentTransitionError(ValueError):
    def __init__(self, comment_id: str, current: CommentStatus, requested: CommentStatus) -> None:
        super().__init__(
            f"Comment {comment_id} cannot move from {current} to {requested}."
        )
        self.comment_id = comment_id
        self.current = current
        self.requested = requested


class CommentRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def add_comment(self, draft: CommentDraft) -> Comment:
        millis = EPOCH_MILLIS.next()
        comment = Comment(
            id=f"comment-{millis}",
            post_id=draft.post_id,
            author=draft.author,
            text=draft.text,
            timestamp=millis,
            status=draft.status,
            created_at=utc_now_iso(),
        )
        with self._db.connection() as conn:
            conn.execute(
                f"""
                INSERT INTO comments ({_COMMENT_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    comment.id,
                    comment.post_id,
                    comment.author,
                    comment.text,
                    comment.timestamp,
                    comment.status,
                    comment.created_at,
                ),
            )
        return comment

    def list_for_post(self, post_id: str) -> list[Comment]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COMMENT_COLUMNS}
                FROM comments
                WHERE post_id = ?
                ORDER BY created_at ASC, timestamp ASC
                """,
                (post_id,),
            ).fetchall()
        return [_row_to_comment(row) for row in rows]

    def list_all(self) -> list[Comment]:
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_COMMENT_COLUMNS}
                FROM comments
                ORDER BY created_at DESC, timestamp DESC
                """
            ).fetchall()
        return [_row_to_comment(row) for row in rows]

    def get_comment(self, comment_id: str) -> Comment | None:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT {_COMMENT_COLUMNS} FROM comments WHERE id = ?",
                (comment_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_comment(row)

    def update_status(self, comment_id: str, status: CommentStatus) -> Comment | None:
        with self._db.connection() as conn:
            row = conn.execute(
                f"SELECT {_COMMENT_COLUMNS} FROM comments WHERE id = ?",
                (comment_id,),
            ).fetchone()
            if row is None:
                return None

            existing = _row_to_comment(row)
            if existing.status == status:
                return existing
            if status not in _ALLOWED_TRANSITIONS[existing.status]:
                raise CommentTransitionError(comment_id, existing.status, status)

            conn.execute(
                """
                UPDATE comments
                SET status = ?
                WHERE id = ? AND status = ?
                """,
                (status, comment_id, existing.status),
            )
        return existing.model_copy(update={"status": status})

    def count_by_status(self) -> dict[CommentStatus, int]:
        counts: dict[CommentStatus, int] = {"pending": 0, "approved": 0, "rejected": 0}
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT status, COUNT(*) AS total
                FROM comments
                GROUP BY status
                """
            ).fetchall()
        for row in rows:
            status = str(row["status"])
            if status in counts:
                counts[cast(CommentStatus, status)] = int(row["total"])
        return counts


def _row_to_comment(row: sqlite3.Row) -> Comment:
    return Comment(
        id=str(row["id"]),
        post_id=str(row["post_id"]),
        author=str(row["author"]),
        text=str(row["text"]),
        timestamp=int(row["timestamp"]),
        status=cast(CommentStatus, str(row["status"])),
        created_at=str(row["created_at"]),
    )
