"""Lesson position updates.

``update_lesson_time`` runs read → study-time log → compare → conditional
write against whatever ProgressStore the caller hands it.  The steps are
not atomic: two concurrent reports for the same lesson can both read the
same stored position, both decide to advance, and the later write wins.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from lessontime.core.metrics import LESSON_TIME_UPDATES
from lessontime.models.progress import ProgressRecord
from lessontime.repos.progress_store import ProgressStore
from lessontime.services.study_time_logger import log_study_time
from lessontime.services.time_format import strict_seconds

logger = logging.getLogger(__name__)


class LessonTimeError(Exception):
    pass


class LessonTimeValidationError(LessonTimeError, ValueError):
    def __init__(self, missing: tuple[str, ...]) -> None:
        self.missing = missing
        super().__init__(f"missing required fields: {', '.join(missing)}")


class LessonNotFoundError(LessonTimeError):
    def __init__(self, message: str = "Lesson not found") -> None:
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class LessonTimeResult:
    updated: bool
    previous: ProgressRecord


def should_advance(new_time: str, existing_time: str) -> bool:
    """True only when ``new_time`` is strictly later than ``existing_time``."""
    new_seconds = strict_seconds(new_time)
    existing_seconds = strict_seconds(existing_time)
    logger.debug(
        "Comparing times: %s (%ds) vs %s (%ds)",
        new_time,
        new_seconds,
        existing_time,
        existing_seconds,
    )
    return new_seconds > existing_seconds


async def update_lesson_time(
    store: ProgressStore,
    member_id: int | None,
    lesson_id: int | None,
    current_time: str | None,
    *,
    logout: int = 0,
    login: int = 0,
    answer: str | None = None,
) -> LessonTimeResult:
    missing = tuple(
        name
        for name, value in (
            ("member_id", member_id),
            ("lesson_id", lesson_id),
            ("current_time", current_time),
        )
        if not value
    )
    if missing:
        LESSON_TIME_UPDATES.labels(outcome="invalid").inc()
        logger.warning("Rejected lesson time update, missing=%s", ",".join(missing))
        raise LessonTimeValidationError(missing)

    context = {"member_id": member_id, "lesson_id": lesson_id}

    progress = await store.get_progress(member_id, lesson_id)
    if progress is None:
        LESSON_TIME_UPDATES.labels(outcome="not_found").inc()
        logger.info("No lesson data found", extra=context)
        raise LessonNotFoundError()

    # Result ignored: audit logging must not change the update outcome.
    await log_study_time(
        store, progress, current_time, logout=logout, login=login, answer=answer
    )

    if not should_advance(current_time, progress.current_time):
        LESSON_TIME_UPDATES.labels(outcome="unchanged").inc()
        logger.info(
            "Current time not updated: %s is not after %s",
            current_time,
            progress.current_time,
            extra=context,
        )
        return LessonTimeResult(updated=False, previous=progress)

    affected = await store.advance_position(member_id, lesson_id, current_time)
    if affected != 1:
        LESSON_TIME_UPDATES.labels(outcome="not_found").inc()
        logger.info("No lesson found or already finished", extra=context)
        raise LessonNotFoundError("Lesson not found or already finished")

    LESSON_TIME_UPDATES.labels(outcome="saved").inc()
    logger.info(
        "Lesson time updated %s -> %s",
        progress.current_time,
        current_time,
        extra=context,
    )
    return LessonTimeResult(updated=True, previous=progress)
