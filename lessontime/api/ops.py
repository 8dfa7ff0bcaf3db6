"""Operational endpoints: liveness, readiness, Prometheus scrape.

  /health (liveness): 200 whenever the process can answer; the body
    reports per-dependency status ("ok", "degraded", "not_configured").

  /ready (readiness): 503 when the configured database cannot be
    reached, so the load balancer stops routing here until it recovers.
    Without a database the in-memory store is always ready.

  /metrics: text exposition format for the Prometheus scraper.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, Response, status
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from lessontime.db.engine import Database

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ops"])


async def _database_status(request: Request) -> str:
    database: Database | None = getattr(request.app.state, "database", None)
    if database is None:
        return "not_configured"
    try:
        await database.ping()
    except Exception:
        logger.warning("Database ping failed", exc_info=True)
        return "degraded"
    return "ok"


@router.get("/health")
async def health(request: Request) -> dict:
    checks = {"database": await _database_status(request)}
    overall = "degraded" if "degraded" in checks.values() else "ok"
    return {"status": overall, "checks": checks}


@router.get("/ready")
async def ready(request: Request) -> Response:
    if await _database_status(request) == "degraded":
        return Response(status_code=status.HTTP_503_SERVICE_UNAVAILABLE)
    return Response(status_code=status.HTTP_200_OK)


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
