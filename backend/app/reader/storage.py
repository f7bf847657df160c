from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol, cast

from pydantic import ValidationError

from backend.app.models.blog_contracts import Article, Comment

LOGGER = logging.getLogger("global_gist.reader.storage")

SAVED_POSTS_KEY = "globalGistSavedPosts"
COMMENTS_KEY = "globalGistComments"
AUTO_APPROVE_KEY = "globalGistAutoApprove"


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryStore:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileStore:
    """A whole-file JSON object mapping keys to encoded string values."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        values = self._read()
        values[key] = value
        self._write(values)

    def remove(self, key: str) -> None:
        values = self._read()
        if values.pop(key, None) is not None:
            self._write(values)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            LOGGER.warning("local store is not valid JSON; starting empty path=%s", self._path)
            return {}
        if not isinstance(raw, dict):
            return {}
        return cast(dict[str, Any], raw)

    def _write(self, values: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self._path)


class LocalLibrary:
    """Saved posts, the local comment cache and the auto-approve flag.

    Every value is JSON-encoded and read or written as a whole.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def saved_posts(self) -> list[Article]:
        posts: list[Article] = []
        for raw in self._load_list(SAVED_POSTS_KEY):
            try:
                posts.append(Article.model_validate(raw))
            except ValidationError:
                LOGGER.warning("dropping unreadable saved post")
        return posts

    def is_saved(self, post_id: str) -> bool:
        return any(post.id == post_id for post in self.saved_posts())

    def toggle_saved(self, article: Article) -> bool:
        """Save `article`, or unsave it if already saved. Returns the new saved state."""
        posts = self.saved_posts()
        if any(post.id == article.id for post in posts):
            self._save_posts([post for post in posts if post.id != article.id])
            return False
        self._save_posts([*posts, article])
        return True

    def remove_saved(self, post_id: str) -> None:
        self._save_posts([post for post in self.saved_posts() if post.id != post_id])

    def cached_comments(self) -> list[dict[str, Any]]:
        return self._load_list(COMMENTS_KEY)

    def cache_comment(self, comment: Comment) -> None:
        cached = [raw for raw in self.cached_comments() if raw.get("id") != comment.id]
        cached.append(comment.to_wire())
        self._store.set(COMMENTS_KEY, json.dumps(cached))

    def replace_cached_comments(self, comments: list[Comment]) -> None:
        self._store.set(COMMENTS_KEY, json.dumps([comment.to_wire() for comment in comments]))

    def auto_approve(self) -> bool:
        raw = self._store.get(AUTO_APPROVE_KEY)
        if raw is None:
            return False
        try:
            value = json.loads(raw)
        except json.JSONDecodeError:
            return False
        return value is True

    def set_auto_approve(self, enabled: bool) -> None:
        self._store.set(AUTO_APPROVE_KEY, json.dumps(bool(enabled)))

    def _save_posts(self, posts: list[Article]) -> None:
        self._store.set(SAVED_POSTS_KEY, json.dumps([post.to_wire() for post in posts]))

    def _load_list(self, key: str) -> list[dict[str, Any]]:
        raw = self._store.get(key)
        if raw is None:
            return []
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            LOGGER.warning("local value is not valid JSON key=%s", key)
            return []
        if not isinstance(parsed, list):
            return []
        return [
            cast(dict[str, Any], item)
            for item in cast(list[object], parsed)
            if isinstance(item, dict)
        ]
