from __future__ import annotations

import sqlite3
from collections.abc import Iterable

from backend.app.models.blog_contracts import (
    DEFAULT_AUTHOR,
    Article,
    ArticleDraft,
    Author,
    GroundingSource,
    PostIndexEntry,
    PostSummary,
    default_image_url,
)
from backend.app.repositories.common import EPOCH_MILLIS, utc_now_iso
from backend.app.repositories.database import (
    Database,
    as_text_or_none,
    dump_json_list,
    load_json_list,
)

_POST_COLUMNS = """
    id, topic, title, summary, content, image_url, image_description,
    youtube_video_id, sources_json, author_name, author_bio, author_avatar_url,
    created_at
"""


class PostRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def list_posts(self, *, topic: str, page: int, limit: int) -> list[Article]:
        offset = (max(page, 1) - 1) * limit
        with self._db.connection() as conn:
            rows = conn.execute(
                f"""
                SELECT {_POST_COLUMNS}
                FROM posts
                WHERE topic = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ? OFFSET ?
                """,
                (topic, limit, offset),
            ).fetchall()
        return [_row_to_article(row) for row in rows]

    def get_post(self, post_id: str) -> Article | None:
        with self._db.connection() as conn:
            row = conn.execute(
                f"""
                SELECT {_POST_COLUMNS}
                FROM posts
                WHERE id = ?
                """,
                (post_id,),
            ).fetchone()
        if row is None:
            return None
        return _row_to_article(row)

    def list_index(self) -> list[PostIndexEntry]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT id, title, topic
                FROM posts
                ORDER BY created_at DESC, rowid DESC
                """
            ).fetchall()
        return [
            PostIndexEntry(
                post=PostSummary(
                    id=str(row["id"]), title=str(row["title"]), topic=str(row["topic"])
                ),
                topic=str(row["topic"]),
            )
            for row in rows
        ]

    def count_posts(self, *, limit: int | None = None) -> int:
        with self._db.connection() as conn:
            if limit is None:
                row = conn.execute("SELECT COUNT(*) AS total FROM posts").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) AS total FROM (SELECT id FROM posts LIMIT ?)",
                    (limit,),
                ).fetchone()
        return int(row["total"]) if row is not None else 0

    def insert_posts(self, articles: Iterable[Article]) -> None:
        with self._db.connection() as conn:
            for article in articles:
                _insert_article(conn, article)

    def create_post(self, draft: ArticleDraft, *, author: Author = DEFAULT_AUTHOR) -> Article:
        article = Article(
            id=f"custom-{EPOCH_MILLIS.next()}",
            topic=draft.topic,
            title=draft.title,
            summary=draft.summary,
            content=draft.content,
            image_url=draft.image_url or default_image_url(draft.title),
            image_description=as_text_or_none(draft.image_description),
            youtube_video_id=as_text_or_none(draft.youtube_video_id),
            sources=[],
            author=author,
            created_at=utc_now_iso(),
        )
        with self._db.connection() as conn:
            _insert_article(conn, article)
        return article

    def ensure_post(self, article: Article) -> bool:
        """Insert `article` unless a post with its id already exists; True when inserted."""
        with self._db.connection() as conn:
            result = conn.execute(
                f"""
                INSERT OR IGNORE INTO posts ({_POST_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                _article_params(article),
            )
        return result.rowcount > 0

    def update_post(self, article: Article) -> Article | None:
        # id and created_at are fixed at creation; everything else is replaceable.
        with self._db.connection() as conn:
            result = conn.execute(
                """
                UPDATE posts
                SET topic = ?,
                    title = ?,
                    summary = ?,
                    content = ?,
                    image_url = ?,
                    image_description = ?,
                    youtube_video_id = ?,
                    sources_json = ?,
                    author_name = ?,
                    author_bio = ?,
                    author_avatar_url = ?
                WHERE id = ?
                """,
                (
                    article.topic,
                    article.title,
                    article.summary,
                    article.content,
                    article.image_url,
                    as_text_or_none(article.image_description),
                    as_text_or_none(article.youtube_video_id),
                    _dump_sources(article.sources),
                    article.author.name,
                    article.author.bio,
                    article.author.avatar_url,
                    article.id,
                ),
            )
            if result.rowcount == 0:
                return None
        return self.get_post(article.id)

    def delete_post(self, post_id: str) -> bool:
        with self._db.connection() as conn:
            result = conn.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        return result.rowcount > 0


def _insert_article(conn: sqlite3.Connection, article: Article) -> None:
    conn.execute(
        f"""
        INSERT INTO posts ({_POST_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        _article_params(article),
    )


def _article_params(article: Article) -> tuple[str | None, ...]:
    return (
        article.id,
        article.topic,
        article.title,
        article.summary,
        article.content,
        article.image_url,
        as_text_or_none(article.image_description),
        as_text_or_none(article.youtube_video_id),
        _dump_sources(article.sources),
        article.author.name,
        article.author.bio,
        article.author.avatar_url,
        article.created_at,
    )


def _dump_sources(sources: list[GroundingSource]) -> str:
    return dump_json_list([{"title": source.title, "uri": source.uri} for source in sources])


def _row_to_article(row: sqlite3.Row) -> Article:
    sources = [
        GroundingSource(title=entry.get("title", ""), uri=entry["uri"])
        for entry in load_json_list(row["sources_json"])
        if entry.get("uri")
    ]
    return Article(
        id=str(row["id"]),
        topic=str(row["topic"]),
        title=str(row["title"]),
        summary=str(row["summary"]),
        content=str(row["content"]),
        image_url=str(row["image_url"]),
        image_description=as_text_or_none(row["image_description"]),
        youtube_video_id=as_text_or_none(row["youtube_video_id"]),
        sources=sources,
        author=Author(
            name=str(row["author_name"]),
            bio=str(row["author_bio"]),
            avatar_url=str(row["author_avatar_url"]),
        ),
        created_at=str(row["created_at"]),
    )
