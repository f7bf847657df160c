from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, Response
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.api.routes import router
from backend.app.config import missing_required_secrets
from backend.app.dependencies import get_database, get_settings, get_telemetry
from backend.app.logging_config import configure_application_logging

LOGGER = logging.getLogger("global_gist.app")

REQUEST_ID_HEADER = "X-Request-ID"


def health_check() -> dict[str, str]:
    return {"status": "ok"}


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    log_path = configure_application_logging(settings)
    LOGGER.info("global gist api starting db_path=%s log_path=%s", settings.db_path, log_path)
    for name in missing_required_secrets(settings):
        LOGGER.warning("%s is not set; article generation requests will fail", name)
    get_database()
    yield
    LOGGER.info("global gist api stopped")


def _request_id(request: Request) -> str:
    supplied = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return supplied or str(uuid4())


async def request_context_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = _request_id(request)
    context_tokens = bind_contextvars(
        http_request_id=request_id,
        http_method=request.method,
        http_path=request.url.path,
    )
    try:
        with get_telemetry().measure(
            "http.request",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        ) as outcome:
            response = await call_next(request)
            outcome["status_code"] = response.status_code
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
    finally:
        reset_contextvars(**context_tokens)


def create_app() -> FastAPI:
    app = FastAPI(title="Global Gist Blog API", version="0.1.0", lifespan=app_lifespan)
    app.middleware("http")(request_context_middleware)
    app.include_router(router)
    app.add_api_route(
        "/health",
        health_check,
        methods=["GET"],
        tags=["system"],
        operation_id="health_check",
    )
    return app


app = create_app()
