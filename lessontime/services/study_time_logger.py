"""Study-time audit logging.

Every position report is compared against the stored position and the
elapsed seconds are appended to the study-time log.  This is a side
record: ``log_study_time`` never raises, and the update flow ignores its
result.
"""

from __future__ import annotations

import logging

from lessontime.core.metrics import STUDY_TIME_LOGS
from lessontime.models.progress import ProgressRecord, StudyTimeLogEntry
from lessontime.repos.progress_store import ProgressStore
from lessontime.services.time_format import extended_seconds, video_position

logger = logging.getLogger(__name__)


async def log_study_time(
    store: ProgressStore,
    progress: ProgressRecord,
    current_time: str,
    *,
    logout: int = 0,
    login: int = 0,
    answer: str | None = None,
) -> bool:
    """Append one study-time row for the move from the stored position.

    ``progress`` is the caller's earlier snapshot; the stored position is
    re-read here.  Returns True when the row was written or nothing needed
    writing (zero delta), False when logging was abandoned.
    """
    context = {"member_id": progress.member_id, "lesson_id": progress.lesson_id}
    try:
        stored = await store.get_progress(progress.member_id, progress.lesson_id)
        if stored is None:
            return _abandon("progress row vanished", context)

        stored_seconds = extended_seconds(stored.current_time)
        if stored_seconds is None:
            return _abandon(f"unparseable stored time {stored.current_time!r}", context)

        new_seconds = extended_seconds(current_time)
        if new_seconds is None:
            return _abandon(f"unparseable new time {current_time!r}", context)

        delta = abs(new_seconds - stored_seconds)
        if delta == 0:
            STUDY_TIME_LOGS.labels(result="skipped").inc()
            return True

        lesson = await store.get_lesson(progress.lesson_id)
        if lesson is None:
            return _abandon("lesson not found", context)

        course_lesson = await store.get_course_lesson(lesson.course_lesson_id)
        if course_lesson is None:
            return _abandon(
                f"course lesson {lesson.course_lesson_id} not found", context
            )

        await store.add_study_time(
            StudyTimeLogEntry(
                member_id=progress.member_id,
                course_id=course_lesson.course_id,
                course_lesson_id=lesson.course_lesson_id,
                member_course_id=progress.member_course_id,
                study_time=delta,
                pause_video_logout=logout,
                login_start_video=login,
                study_time_video=video_position(current_time),
                answer=answer,
            )
        )
    except Exception:
        logger.exception("Error logging study time", extra=context)
        STUDY_TIME_LOGS.labels(result="failed").inc()
        return False

    STUDY_TIME_LOGS.labels(result="logged").inc()
    logger.info("Study time logged: %d seconds difference", delta, extra=context)
    return True


def _abandon(reason: str, context: dict[str, int]) -> bool:
    logger.info("Study time not logged: %s", reason, extra=context)
    STUDY_TIME_LOGS.labels(result="failed").inc()
    return False
