"""Request-scoped persistence handle.

``get_progress_store`` checks a session out of the pool built at startup
and wraps it in a PgProgressStore.  The session (and its connection) goes
back to the pool when the request finishes, whichever way it finishes.
Without a database the shared InMemoryProgressStore is returned.

Tests swap the store with ``app.dependency_overrides[get_progress_store]``.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request

from lessontime.db.engine import Database
from lessontime.repos.pg_progress_store import PgProgressStore
from lessontime.repos.progress_store import InMemoryProgressStore, ProgressStore


async def get_progress_store(request: Request) -> AsyncGenerator[ProgressStore, None]:
    database: Database | None = request.app.state.database
    if database is None:
        memory_store: InMemoryProgressStore = request.app.state.memory_store
        yield memory_store
        return

    async with database.session_factory() as session:
        yield PgProgressStore(session)
