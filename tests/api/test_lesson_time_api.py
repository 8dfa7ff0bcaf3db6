"""Tests for POST /lesson/dwUpdateTime."""

from __future__ import annotations

from fastapi.testclient import TestClient

from lessontime.api.dependencies import get_progress_store
from lessontime.api.lesson_time import NO_ANSWER, answer_or_none
from lessontime.main import app
from lessontime.repos.pg_progress_store import PgProgressStore
from lessontime.repos.progress_store import InMemoryProgressStore, ProgressStoreError
from tests.conftest import LESSON_ID, MEMBER_COURSE_ID, MEMBER_ID

_URL = "/lesson/dwUpdateTime"


def _payload(**overrides) -> dict:
    body = {"memberId": MEMBER_ID, "lessonId": LESSON_ID, "currentTime": "10:00"}
    body.update(overrides)
    return body


# ---- 200: saved ----


def test_advancing_time_is_saved(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    resp = client.post(_URL, json=_payload(currentTime="10:00"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"] == "Lesson time saved!"
    # The echoed row is the one read before the update
    assert body["data"]["current_time"] == "05:00"
    assert body["data"]["lesson_id"] == LESSON_ID
    assert body["data"]["member_course_id"] == MEMBER_COURSE_ID
    assert body["data"]["finished"] is False

    assert len(store.study_logs) == 1
    assert store.study_logs[0].study_time == 300


# ---- 200: unchanged ----


def test_earlier_time_is_not_saved(client: TestClient) -> None:
    resp = client.post(_URL, json=_payload(currentTime="04:00"))
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["message"].startswith("Current time not updated")
    assert body["data"]["current_time"] == "05:00"


def test_same_time_is_not_saved_and_not_logged(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    resp = client.post(_URL, json=_payload(currentTime="05:00"))
    assert resp.status_code == 200
    assert resp.json()["message"].startswith("Current time not updated")
    assert store.study_logs == []


# ---- answer sentinel ----


def test_sentinel_answer_is_stored_as_null(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    client.post(_URL, json=_payload(answer=NO_ANSWER))
    assert store.study_logs[0].answer is None


def test_default_answer_is_stored_as_null(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    client.post(_URL, json=_payload())
    assert store.study_logs[0].answer is None


def test_other_answer_is_stored_verbatim(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    client.post(_URL, json=_payload(answer="คำตอบ B"))
    assert store.study_logs[0].answer == "คำตอบ B"


def test_explicit_null_answer_is_stored_as_null(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    resp = client.post(_URL, json=_payload(answer=None))
    assert resp.status_code == 200
    assert store.study_logs[0].answer is None


def test_answer_or_none() -> None:
    assert answer_or_none(NO_ANSWER) is None
    assert answer_or_none(None) is None
    assert answer_or_none("none") == "none"
    assert answer_or_none("") == ""


def test_logout_and_login_flags_are_logged(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    client.post(_URL, json=_payload(logout=1, login=1))
    entry = store.study_logs[0]
    assert entry.pause_video_logout == 1
    assert entry.login_start_video == 1


# ---- 400: missing fields ----


def test_missing_member_id_is_rejected(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    body = _payload()
    del body["memberId"]
    resp = client.post(_URL, json=body)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Missing required fields: memberId"
    assert store.study_logs == []


def test_all_missing_fields_are_named(client: TestClient) -> None:
    resp = client.post(_URL, json={"currentTime": ""})
    assert resp.status_code == 400
    assert resp.json()["detail"] == (
        "Missing required fields: memberId, lessonId, currentTime"
    )


def test_out_of_range_flag_is_unprocessable(client: TestClient) -> None:
    resp = client.post(_URL, json=_payload(logout=2))
    assert resp.status_code == 422


# ---- 404 ----


def test_unknown_lesson_is_not_found(client: TestClient) -> None:
    resp = client.post(_URL, json=_payload(lessonId=LESSON_ID + 1))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Lesson not found"


def test_finished_lesson_is_not_found(
    client: TestClient, store: InMemoryProgressStore
) -> None:
    store.mark_finished(LESSON_ID)
    resp = client.post(_URL, json=_payload(currentTime="10:00"))
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Lesson not found or already finished"


# ---- 500 ----


class _UnavailableStore(InMemoryProgressStore):
    async def get_progress(self, member_id, lesson_id):
        raise ProgressStoreError("connection refused")


def test_store_failure_is_internal_error() -> None:
    app.dependency_overrides[get_progress_store] = lambda: _UnavailableStore()
    try:
        with TestClient(app) as c:
            resp = c.post(_URL, json=_payload())
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 500
    assert resp.json()["detail"] == "Error saving lesson time"


class _RefusingSession:
    async def execute(self, stmt):
        raise ConnectionRefusedError(111, "Connect call failed ('127.0.0.1', 1)")


def test_unreachable_database_is_internal_error() -> None:
    app.dependency_overrides[get_progress_store] = lambda: PgProgressStore(
        _RefusingSession()
    )
    try:
        with TestClient(app) as c:
            resp = c.post(_URL, json=_payload())
            metrics = c.get("/metrics").text
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 500
    assert resp.json() == {"detail": "Error saving lesson time"}
    assert 'lesson_time_updates_total{outcome="error"}' in metrics
