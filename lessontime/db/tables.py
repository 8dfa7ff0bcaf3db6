"""SQLAlchemy table definitions.

The tables belong to the wider learning platform and are shared with
other services; column names follow the platform's upper-case naming.
Repos convert between these rows and the frozen dataclasses in
lessontime/models/.
"""

from __future__ import annotations

from sqlalchemy import Integer, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lessontime.db.engine import Base


class MemberLessonRow(Base):
    __tablename__ = "member_lesson"

    id: Mapped[int] = mapped_column("ID", Integer, primary_key=True)
    member_id: Mapped[int] = mapped_column("MEMBER_ID", Integer, nullable=False)
    course_lesson_id: Mapped[int] = mapped_column("LESSON_ID", Integer, nullable=False)
    member_course_id: Mapped[int | None] = mapped_column(
        "MEMBER_COURSE_ID", Integer, nullable=True
    )
    current_time: Mapped[str] = mapped_column(
        "CURRENT_TIME", String(16), nullable=False, default="00:00"
    )
    finished: Mapped[int] = mapped_column(
        "FINISHED", SmallInteger, nullable=False, default=0
    )


class CourseLessonRow(Base):
    __tablename__ = "course_lesson"

    id: Mapped[int] = mapped_column("ID", Integer, primary_key=True)
    course_id: Mapped[int] = mapped_column("COURSE_ID", Integer, nullable=False)


class StudyTimeLogRow(Base):
    __tablename__ = "log_study_time"

    id: Mapped[int] = mapped_column("ID", Integer, primary_key=True, autoincrement=True)
    member_id: Mapped[int] = mapped_column("MEMBER_ID", Integer, nullable=False)
    course_id: Mapped[int] = mapped_column("COURSE_ID", Integer, nullable=False)
    course_lesson_id: Mapped[int] = mapped_column("LESSON_ID", Integer, nullable=False)
    member_course_id: Mapped[int | None] = mapped_column(
        "MEMBER_COURSE_ID", Integer, nullable=True
    )
    study_time: Mapped[int] = mapped_column("STUDY_TIME", Integer, nullable=False)
    pause_video_logout: Mapped[int] = mapped_column(
        "PAUSE_VIDEO_LOGOUT", SmallInteger, nullable=False, default=0
    )
    login_start_video: Mapped[int] = mapped_column(
        "LOGIN_START_VIDEO", SmallInteger, nullable=False, default=0
    )
    study_time_video: Mapped[str] = mapped_column(
        "STUDY_TIME_VIDEO", String(16), nullable=False
    )
    answer: Mapped[str | None] = mapped_column("ANSWER", Text, nullable=True)
