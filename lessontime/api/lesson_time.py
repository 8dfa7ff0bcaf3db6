"""Lesson playback position endpoint.

POST /lesson/dwUpdateTime
  -> read member_lesson row
  -> append study-time log row (best effort)
  -> move CURRENT_TIME forward if the new position is later and the
     lesson is not finished
  -> echo the row as it was before the update
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field

from lessontime.api.dependencies import get_progress_store
from lessontime.core.metrics import LESSON_TIME_UPDATES
from lessontime.models.progress import ProgressRecord
from lessontime.repos.progress_store import ProgressStore, ProgressStoreError
from lessontime.services import lesson_time_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lesson", tags=["lesson"])

# Answer values the player sends when the learner gave no answer.
# Each maps to None, which is stored as NULL in log_study_time.ANSWER.
NO_ANSWER = "ไม่มี"
NO_ANSWER_SENTINELS: dict[str, None] = {NO_ANSWER: None}


class LessonTimeIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Required, but checked by the service so the 400 can name what's missing
    member_id: int | None = Field(default=None, alias="memberId")
    lesson_id: int | None = Field(default=None, alias="lessonId")
    current_time: str | None = Field(default=None, alias="currentTime")
    logout: int = Field(default=0, ge=0, le=1)
    login: int = Field(default=0, ge=0, le=1)
    # Omitted means "no answer"; an explicit null is stored as NULL too.
    answer: str | None = NO_ANSWER


class ProgressOut(BaseModel):
    lesson_id: int
    member_id: int
    course_lesson_id: int
    member_course_id: int | None
    current_time: str
    finished: bool


class LessonTimeOut(BaseModel):
    success: bool = True
    message: str
    data: ProgressOut


def answer_or_none(answer: str | None) -> str | None:
    if answer is None:
        return None
    if answer in NO_ANSWER_SENTINELS:
        return NO_ANSWER_SENTINELS[answer]
    return answer


def _progress_out(record: ProgressRecord) -> ProgressOut:
    return ProgressOut(
        lesson_id=record.lesson_id,
        member_id=record.member_id,
        course_lesson_id=record.course_lesson_id,
        member_course_id=record.member_course_id,
        current_time=record.current_time,
        finished=record.finished,
    )


@router.post("/dwUpdateTime", response_model=LessonTimeOut)
async def update_lesson_time(
    payload: LessonTimeIn,
    store: Annotated[ProgressStore, Depends(get_progress_store)],
) -> LessonTimeOut:
    logger.info(
        "Received request to update lesson time: member_id=%s lesson_id=%s "
        "current_time=%s logout=%d login=%d",
        payload.member_id,
        payload.lesson_id,
        payload.current_time,
        payload.logout,
        payload.login,
    )

    try:
        result = await lesson_time_service.update_lesson_time(
            store,
            payload.member_id,
            payload.lesson_id,
            payload.current_time,
            logout=payload.logout,
            login=payload.login,
            answer=answer_or_none(payload.answer),
        )
    except lesson_time_service.LessonTimeValidationError as e:
        fields = ", ".join(
            LessonTimeIn.model_fields[name].alias or name for name in e.missing
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Missing required fields: {fields}",
        ) from None
    except lesson_time_service.LessonNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=e.message,
        ) from None
    except ProgressStoreError:
        LESSON_TIME_UPDATES.labels(outcome="error").inc()
        logger.exception("Error updating lesson time")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error saving lesson time",
        ) from None

    if result.updated:
        message = "Lesson time saved!"
    else:
        message = (
            "Current time not updated - new time is not greater than existing time"
        )
    return LessonTimeOut(message=message, data=_progress_out(result.previous))
