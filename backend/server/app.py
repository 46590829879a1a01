"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware and logging
- Initialize shared resources (HTTP client for the text service)
- Register routes and the static asset mount
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from config import AppConfig
from constants import GREETING_AUDIO_PATH
from observability import logger
from observability.logger import log_event

from server.routes import register_routes


def create_app(config: AppConfig | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This is the app factory pattern that allows:
    - Testing with different configurations
    - Environment-specific setup
    - ASGI server compatibility
    """
    config = config or AppConfig.load_from_env()
    logger.configure(json_lines=config.enable_json_logs)

    # One pooled client per process, shared by every session's resolver
    http_client = httpx.AsyncClient()

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await http_client.aclose()

    app = FastAPI(title="Shevanta Voice Dialogue", lifespan=lifespan)

    app.state.config = config
    app.state.http_client = http_client

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes (before the static mount so /health and /ws win)
    register_routes(app)

    _mount_static(app, config)

    return app


def _mount_static(app: FastAPI, config: AppConfig) -> None:
    static_dir = Path(config.static_dir)
    greeting = static_dir / GREETING_AUDIO_PATH.lstrip("/")

    if not greeting.is_file():
        log_event({
            "ts_ms": time.time_ns() // 1_000_000,
            "event_type": "greeting_asset_missing",
            "path": str(greeting),
        })

    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")
