"""Wiring between the terminal client and the reader library."""

import asyncio
from typing import Optional

import httpx

from backend.app.reader.gateway import FetchGateway
from backend.app.reader.storage import JsonFileStore, LocalLibrary
from backend.app.services.showcase import showcase_article
from backend.app.repositories.common import utc_now_iso

from .config import Config

# Tests swap this for an httpx.MockTransport.
TRANSPORT: Optional[httpx.AsyncBaseTransport] = None


def build_gateway(config: Config, offline: bool = False) -> FetchGateway:
    """Create a gateway for the configured API, optionally with offline samples."""
    samples = [showcase_article(created_at=utc_now_iso())] if offline else None
    return FetchGateway(
        config.api_url,
        timeout_seconds=config.timeout_seconds,
        transport=TRANSPORT,
        offline_samples=samples,
    )


def build_library(config: Config) -> LocalLibrary:
    return LocalLibrary(JsonFileStore(config.storage_path))


def run(coro):
    """Run a coroutine to completion from a synchronous click command."""
    return asyncio.run(coro)
