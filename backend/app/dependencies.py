from __future__ import annotations

from functools import lru_cache

from backend.app.config import AppSettings, load_settings
from backend.app.repositories.comment_repository import CommentRepository
from backend.app.repositories.database import Database
from backend.app.repositories.post_repository import PostRepository
from backend.app.services.action_dispatcher import ActionDispatcher
from backend.app.services.content_service import GeminiContentService
from backend.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    # A missing Gemini key degrades generation to 502s; `/api/ping` reports it.
    return load_settings(validate_secrets=False)


@lru_cache(maxsize=1)
def get_database() -> Database:
    settings = get_settings()
    database = Database(settings.db_path)
    database.initialize()
    return database


@lru_cache(maxsize=1)
def get_dispatcher() -> ActionDispatcher:
    settings = get_settings()
    database = get_database()
    telemetry = get_telemetry()

    return ActionDispatcher(
        post_repository=PostRepository(database),
        comment_repository=CommentRepository(database),
        content_service=GeminiContentService(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout_seconds=settings.gemini_timeout_seconds,
            telemetry=telemetry,
        ),
        telemetry=telemetry,
        seed_topic_count=settings.seed_topic_count,
        seed_posts_per_topic=settings.seed_posts_per_topic,
        generated_posts_per_topic=settings.generated_posts_per_topic,
        default_page_size=settings.posts_page_size,
    )


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


def reset_cached_dependencies() -> None:
    get_dispatcher.cache_clear()
    get_database.cache_clear()
    get_telemetry.cache_clear()
    get_settings.cache_clear()
