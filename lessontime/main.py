from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lessontime.api.lesson_time import router as lesson_time_router
from lessontime.api.ops import router as ops_router
from lessontime.core.config import SETTINGS, Settings
from lessontime.core.logging import setup_logging
from lessontime.db.engine import lifespan_db
from lessontime.middleware.client_filter import ClientFilterMiddleware
from lessontime.middleware.request_context import (
    RequestContextMiddleware,
    install_request_context_filter,
)

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_request_context_filter()

logger = logging.getLogger(__name__)


def create_app(settings: Settings) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        async with lifespan_db(app, settings):
            yield

    app = FastAPI(
        title="lesson-time-service",
        lifespan=lifespan,
        docs_url="/docs" if settings.is_dev else None,
        redoc_url="/redoc" if settings.is_dev else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Last-added runs first:
    # RequestContext (outermost) → ClientFilter → CORS → route handler
    app.add_middleware(
        ClientFilterMiddleware,
        allowed_origins=settings.allowed_origins,
        enabled=settings.block_api_tools,
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(ops_router)
    app.include_router(lesson_time_router)
    return app


app = create_app(SETTINGS)

logger.info(
    "lesson-time-service configured  env=%s log_level=%s port=%d database=%s "
    "client_filter=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "on" if SETTINGS.database_url else "in-memory",
    "on" if SETTINGS.block_api_tools else "off",
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("lessontime.main:app", host="0.0.0.0", port=SETTINGS.port)
