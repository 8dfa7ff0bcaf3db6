from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from lessontime.models.progress import (
    CourseLessonRef,
    LessonRef,
    ProgressRecord,
    StudyTimeLogEntry,
)


class ProgressStoreError(Exception):
    """The backing store failed to execute a read or write."""


class ProgressStore(Protocol):
    async def get_progress(
        self, member_id: int, lesson_id: int
    ) -> ProgressRecord | None: ...
    async def get_lesson(self, lesson_id: int) -> LessonRef | None: ...
    async def get_course_lesson(
        self, course_lesson_id: int
    ) -> CourseLessonRef | None: ...
    async def advance_position(
        self, member_id: int, lesson_id: int, current_time: str
    ) -> int: ...
    async def add_study_time(self, entry: StudyTimeLogEntry) -> None: ...


class InMemoryProgressStore:
    """Dict-backed store used when no DATABASE_URL is configured."""

    def __init__(self) -> None:
        self._progress: dict[int, ProgressRecord] = {}
        self._course_lessons: dict[int, CourseLessonRef] = {}
        self.study_logs: list[StudyTimeLogEntry] = []

    # --- seeding (enrollment and course setup live outside this service) ---

    def add_progress(self, record: ProgressRecord) -> None:
        if record.lesson_id in self._progress:
            raise ValueError("progress row already exists")
        self._progress[record.lesson_id] = record

    def add_course_lesson(self, ref: CourseLessonRef) -> None:
        self._course_lessons[ref.course_lesson_id] = ref

    def mark_finished(self, lesson_id: int) -> None:
        record = self._progress.get(lesson_id)
        if record is None:
            raise KeyError("progress row not found")
        self._progress[lesson_id] = replace(record, finished=True)

    # --- ProgressStore ---

    async def get_progress(
        self, member_id: int, lesson_id: int
    ) -> ProgressRecord | None:
        record = self._progress.get(lesson_id)
        if record is None or record.member_id != member_id:
            return None
        return record

    async def get_lesson(self, lesson_id: int) -> LessonRef | None:
        record = self._progress.get(lesson_id)
        if record is None:
            return None
        return LessonRef(
            lesson_id=record.lesson_id,
            course_lesson_id=record.course_lesson_id,
        )

    async def get_course_lesson(self, course_lesson_id: int) -> CourseLessonRef | None:
        return self._course_lessons.get(course_lesson_id)

    async def advance_position(
        self, member_id: int, lesson_id: int, current_time: str
    ) -> int:
        record = self._progress.get(lesson_id)
        if record is None or record.member_id != member_id or record.finished:
            return 0
        self._progress[lesson_id] = replace(record, current_time=current_time)
        return 1

    async def add_study_time(self, entry: StudyTimeLogEntry) -> None:
        self.study_logs.append(entry)
