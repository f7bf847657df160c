from __future__ import annotations

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse
from starlette.concurrency import run_in_threadpool
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.config import AppSettings
from backend.app.dependencies import get_dispatcher, get_settings
from backend.app.models.action_contracts import ActionError, SeedNewContentRequest
from backend.app.reader.article_renderer import render_article, render_not_found
from backend.app.reader.comments import public_comments
from backend.app.repositories.database import RepositoryError
from backend.app.services.action_dispatcher import ActionDispatcher

LOGGER = logging.getLogger("global_gist.api")

router = APIRouter()


def _error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _dispatch(dispatcher: ActionDispatcher, body: object) -> JSONResponse:
    try:
        request = dispatcher.parse_request(body)
    except ActionError as exc:
        return _error_response(exc.message, exc.status_code)

    context_tokens = bind_contextvars(action=request.action)
    try:
        outcome = dispatcher.execute(request)
    except ActionError as exc:
        return _error_response(exc.message, exc.status_code)
    finally:
        reset_contextvars(**context_tokens)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)


@router.post("/api", tags=["actions"], operation_id="dispatch_action")
async def dispatch_action(
    request: Request,
    dispatcher: Annotated[ActionDispatcher, Depends(get_dispatcher)],
) -> JSONResponse:
    raw = await request.body()
    try:
        body: Any = json.loads(raw) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error_response("Request body must be valid JSON.", 400)
    return await run_in_threadpool(_dispatch, dispatcher, body)


@router.get("/api", tags=["actions"], operation_id="seed_new_content")
@router.get("/api/cron", tags=["actions"], operation_id="seed_new_content_cron")
async def seed_new_content(
    dispatcher: Annotated[ActionDispatcher, Depends(get_dispatcher)],
) -> JSONResponse:
    return await run_in_threadpool(_dispatch, dispatcher, SeedNewContentRequest().to_wire())


@router.get("/api/ping", tags=["system"], operation_id="ping")
def ping(
    dispatcher: Annotated[ActionDispatcher, Depends(get_dispatcher)],
    settings: Annotated[AppSettings, Depends(get_settings)],
) -> JSONResponse:
    try:
        sample_rows = dispatcher.post_repository.count_posts(limit=1)
    except RepositoryError as exc:
        LOGGER.warning("ping database check failed error=%s", exc)
        return JSONResponse(
            status_code=502,
            content={"ok": False, "error": "Database query failed", "details": str(exc)},
        )
    return JSONResponse(
        status_code=200,
        content={
            "ok": True,
            "database": {"path": str(settings.db_path), "sampleRows": sample_rows},
            "apiKeyPresent": settings.gemini_api_key is not None,
        },
    )


@router.get(
    "/read/{post_id}",
    tags=["reader"],
    operation_id="read_post",
    response_class=HTMLResponse,
)
def read_post(
    post_id: str,
    dispatcher: Annotated[ActionDispatcher, Depends(get_dispatcher)],
) -> HTMLResponse:
    try:
        article = dispatcher.post_repository.get_post(post_id)
        comments = dispatcher.comment_repository.list_for_post(post_id) if article else []
    except RepositoryError as exc:
        LOGGER.error("failed to load article for reading post_id=%s error=%s", post_id, exc)
        return HTMLResponse(status_code=500, content="<p>Could not load this article.</p>")
    if article is None:
        return HTMLResponse(status_code=404, content=render_not_found(post_id))
    return HTMLResponse(content=render_article(article, comments=public_comments(comments)))
