from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ProgressRecord:
    """A member's last-seen position within one lesson.

    Keyed by (member_id, lesson_id).  Enrollment and completion flows own
    the row; this service only moves ``current_time`` forward while the
    row is unfinished.
    """

    lesson_id: int
    member_id: int
    course_lesson_id: int
    member_course_id: int | None
    current_time: str
    finished: bool = False


@dataclass(frozen=True, slots=True)
class LessonRef:
    lesson_id: int
    course_lesson_id: int


@dataclass(frozen=True, slots=True)
class CourseLessonRef:
    course_lesson_id: int
    course_id: int


@dataclass(frozen=True, slots=True)
class StudyTimeLogEntry:
    """Append-only audit row: seconds elapsed between two observed positions."""

    member_id: int
    course_id: int
    course_lesson_id: int
    member_course_id: int | None
    study_time: int
    pause_video_logout: int = 0
    login_start_video: int = 0
    study_time_video: str = "0"
    answer: str | None = None
