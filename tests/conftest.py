from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from blog_factories import FakeContentService
from fastapi.testclient import TestClient

from backend.app.dependencies import get_dispatcher, reset_cached_dependencies
from backend.app.main import create_app
from backend.app.repositories.comment_repository import CommentRepository
from backend.app.repositories.database import Database
from backend.app.repositories.post_repository import PostRepository
from backend.app.services.action_dispatcher import ActionDispatcher


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "blog.db")
    db.initialize()
    return db


@pytest.fixture
def content_service() -> FakeContentService:
    return FakeContentService()


@pytest.fixture
def dispatcher(database: Database, content_service: FakeContentService) -> ActionDispatcher:
    return ActionDispatcher(
        post_repository=PostRepository(database),
        comment_repository=CommentRepository(database),
        content_service=content_service,
    )


@pytest.fixture
def client(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    content_service: FakeContentService,
) -> Iterator[TestClient]:
    data_dir = tmp_path / "runtime-data"
    data_dir.mkdir(parents=True, exist_ok=True)

    monkeypatch.setenv("GLOBAL_GIST_DATA_DIR", str(data_dir))
    monkeypatch.setenv("GLOBAL_GIST_GEMINI_API_KEY", "test-gemini-key")
    monkeypatch.setenv("GLOBAL_GIST_TELEMETRY_SINK", "none")
    reset_cached_dependencies()

    def _dispatcher() -> ActionDispatcher:
        database = Database(data_dir / "blog.db")
        database.initialize()
        return ActionDispatcher(
            post_repository=PostRepository(database),
            comment_repository=CommentRepository(database),
            content_service=content_service,
        )

    app = create_app()
    cached = _dispatcher()
    app.dependency_overrides[get_dispatcher] = lambda: cached
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()
