from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Tests always run against the in-memory store, whatever the shell has set.
os.environ.pop("DATABASE_URL", None)
os.environ.setdefault("APP_ENV", "test")

# Ensure repo root is on sys.path so `import lessontime` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lessontime.api.dependencies import get_progress_store  # noqa: E402
from lessontime.main import app  # noqa: E402
from lessontime.models.progress import CourseLessonRef, ProgressRecord  # noqa: E402
from lessontime.repos.progress_store import InMemoryProgressStore  # noqa: E402

MEMBER_ID = 501
LESSON_ID = 9001
COURSE_LESSON_ID = 77
COURSE_ID = 12
MEMBER_COURSE_ID = 3300


def make_progress(
    current_time: str = "05:00",
    *,
    lesson_id: int = LESSON_ID,
    member_id: int = MEMBER_ID,
    finished: bool = False,
) -> ProgressRecord:
    return ProgressRecord(
        lesson_id=lesson_id,
        member_id=member_id,
        course_lesson_id=COURSE_LESSON_ID,
        member_course_id=MEMBER_COURSE_ID,
        current_time=current_time,
        finished=finished,
    )


@pytest.fixture
def store() -> InMemoryProgressStore:
    """Store seeded with one unfinished lesson at 05:00 and its course mapping."""
    s = InMemoryProgressStore()
    s.add_course_lesson(
        CourseLessonRef(course_lesson_id=COURSE_LESSON_ID, course_id=COURSE_ID)
    )
    s.add_progress(make_progress())
    return s


@pytest.fixture
def client(store: InMemoryProgressStore) -> Iterator[TestClient]:
    app.dependency_overrides[get_progress_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
