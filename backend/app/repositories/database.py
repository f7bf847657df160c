from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import cast

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    topic TEXT NOT NULL,
    title TEXT NOT NULL,
    summary TEXT NOT NULL,
    content TEXT NOT NULL,
    image_url TEXT NOT NULL,
    image_description TEXT NULL,
    youtube_video_id TEXT NULL,
    sources_json TEXT NOT NULL,
    author_name TEXT NOT NULL,
    author_bio TEXT NOT NULL,
    author_avatar_url TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_posts_topic_created
ON posts(topic, created_at DESC);

CREATE INDEX IF NOT EXISTS idx_posts_created
ON posts(created_at DESC);

CREATE TABLE IF NOT EXISTS comments (
    id TEXT PRIMARY KEY,
    post_id TEXT NOT NULL,
    author TEXT NOT NULL,
    text TEXT NOT NULL,
    timestamp INTEGER NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_comments_post_created
ON comments(post_id, created_at);

CREATE INDEX IF NOT EXISTS idx_comments_created
ON comments(created_at DESC);
"""


class RepositoryError(RuntimeError):
    """Raised when the relational store rejects or fails a query."""


class Database:
    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._path)
        except sqlite3.Error as exc:
            raise RepositoryError(f"Could not open database {self._path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise RepositoryError(f"Database query failed: {exc}") from exc
        finally:
            conn.close()

    def initialize(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self.connection() as conn:
            conn.executescript(SCHEMA_SQL)


def dump_json_list(values: list[dict[str, str]]) -> str:
    return json.dumps(values, sort_keys=True, ensure_ascii=True)


def load_json_list(raw: object) -> list[dict[str, str]]:
    if not isinstance(raw, str):
        return []
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return []
    if not isinstance(parsed, list):
        return []

    entries: list[dict[str, str]] = []
    for item in cast(list[object], parsed):
        if not isinstance(item, dict):
            continue
        raw_item = cast(dict[object, object], item)
        entries.append(
            {str(key): str(value) for key, value in raw_item.items() if value is not None}
        )
    return entries


def as_text_or_none(value: object) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return str(value)
