"""SQL implementation of ProgressStore."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import asyncpg
from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lessontime.db.tables import CourseLessonRow, MemberLessonRow, StudyTimeLogRow
from lessontime.models.progress import (
    CourseLessonRef,
    LessonRef,
    ProgressRecord,
    StudyTimeLogEntry,
)
from lessontime.repos.progress_store import ProgressStoreError

# Connection checkout happens inside execute(); refused connects and
# driver auth errors reach us unwrapped by SQLAlchemy.
_STORE_ERRORS = (
    SQLAlchemyError,
    OSError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except _STORE_ERRORS as exc:
        raise ProgressStoreError(f"{operation} failed: {exc}") from exc


class PgProgressStore:
    """Satisfies the ProgressStore Protocol using one request-scoped session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_progress(
        self, member_id: int, lesson_id: int
    ) -> ProgressRecord | None:
        stmt = select(MemberLessonRow).where(
            MemberLessonRow.member_id == member_id,
            MemberLessonRow.id == lesson_id,
        )
        with _store_errors("get_progress"):
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_progress(row)

    async def get_lesson(self, lesson_id: int) -> LessonRef | None:
        stmt = select(MemberLessonRow.id, MemberLessonRow.course_lesson_id).where(
            MemberLessonRow.id == lesson_id
        )
        with _store_errors("get_lesson"):
            row = (await self._session.execute(stmt)).first()
        if row is None:
            return None
        return LessonRef(lesson_id=row.id, course_lesson_id=row.course_lesson_id)

    async def get_course_lesson(self, course_lesson_id: int) -> CourseLessonRef | None:
        stmt = select(CourseLessonRow).where(CourseLessonRow.id == course_lesson_id)
        with _store_errors("get_course_lesson"):
            row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return CourseLessonRef(course_lesson_id=row.id, course_id=row.course_id)

    async def advance_position(
        self, member_id: int, lesson_id: int, current_time: str
    ) -> int:
        stmt = (
            update(MemberLessonRow)
            .where(
                MemberLessonRow.member_id == member_id,
                MemberLessonRow.id == lesson_id,
                MemberLessonRow.finished == 0,
            )
            .values({MemberLessonRow.current_time: current_time})
            .execution_options(synchronize_session=False)
        )
        with _store_errors("advance_position"):
            result = await self._session.execute(stmt)
        return result.rowcount

    async def add_study_time(self, entry: StudyTimeLogEntry) -> None:
        stmt = insert(StudyTimeLogRow).values(
            {
                StudyTimeLogRow.member_id: entry.member_id,
                StudyTimeLogRow.course_id: entry.course_id,
                StudyTimeLogRow.course_lesson_id: entry.course_lesson_id,
                StudyTimeLogRow.member_course_id: entry.member_course_id,
                StudyTimeLogRow.study_time: entry.study_time,
                StudyTimeLogRow.pause_video_logout: entry.pause_video_logout,
                StudyTimeLogRow.login_start_video: entry.login_start_video,
                StudyTimeLogRow.study_time_video: entry.study_time_video,
                StudyTimeLogRow.answer: entry.answer,
            }
        )
        with _store_errors("add_study_time"):
            await self._session.execute(stmt)


def _row_to_progress(row: MemberLessonRow) -> ProgressRecord:
    return ProgressRecord(
        lesson_id=row.id,
        member_id=row.member_id,
        course_lesson_id=row.course_lesson_id,
        member_course_id=row.member_course_id,
        current_time=row.current_time,
        finished=bool(row.finished),
    )
