from __future__ import annotations

from datetime import date, time
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lifeos.db import Base
from lifeos.db.deps import get_db
from lifeos.db.models.generated_plan import GeneratedPlan
from lifeos.db.models.routine_instance import RoutineInstance
from lifeos.db.models.routine_template import RoutineTemplate
from lifeos.db.models.task import Task
from lifeos.db.models.user import User
from lifeos.main import app

DAY = date(2026, 1, 5)


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):  # pragma: no cover - sqlite setup
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _seed(session_factory, *rows) -> None:
    session = session_factory()
    try:
        for row in rows:
            session.add(row)
            session.flush()
        session.commit()
    finally:
        session.close()


def _user_with_routine(session_factory, **occurrence_fields):
    user_id, template_id, occurrence_id = uuid4(), uuid4(), uuid4()
    _seed(
        session_factory,
        User(id=user_id),
        RoutineTemplate(id=template_id, user_id=user_id, name="Yoga"),
        RoutineInstance(id=occurrence_id, user_id=user_id, template_id=template_id, **occurrence_fields),
    )
    return user_id, occurrence_id


def _conflicts(test_client: TestClient, user_id: UUID, start: date = DAY, end: date = DAY):
    return test_client.get(
        "/calendar/conflicts",
        params={"user_id": str(user_id), "start": start.isoformat(), "end": end.isoformat()},
    )


def test_overlapping_routine_and_task_conflict(client):
    test_client, session_factory = client
    user_id, _ = _user_with_routine(
        session_factory, scheduled_date=DAY, scheduled_start="09:00", scheduled_end="09:30"
    )
    _seed(
        session_factory,
        Task(user_id=user_id, title="Call", scheduled_date=DAY, scheduled_time=time(9, 15), estimated_minutes=30),
        Task(user_id=user_id, title="Someday", due_date=DAY),
    )

    response = _conflicts(test_client, user_id)

    assert response.status_code == 200
    conflicts = response.json()["conflicts"]
    assert len(conflicts) == 1
    assert conflicts[0]["overlap_minutes"] == 15
    assert {conflicts[0]["event_a"]["title"], conflicts[0]["event_b"]["title"]} == {"Yoga", "Call"}
    assert conflicts[0]["date"] == DAY.isoformat()


def test_unplaced_occurrence_defaults_to_nine_for_an_hour(client):
    test_client, session_factory = client
    user_id, _ = _user_with_routine(session_factory, scheduled_date=DAY)
    _seed(session_factory, Task(user_id=user_id, title="Standup", scheduled_date=DAY, scheduled_time=time(9, 45)))

    conflicts = _conflicts(test_client, user_id).json()["conflicts"]

    assert [conflict["overlap_minutes"] for conflict in conflicts] == [15]


def test_skipped_and_cancelled_items_are_hidden(client):
    test_client, session_factory = client
    user_id, _ = _user_with_routine(session_factory, scheduled_date=DAY, status="skipped")
    _seed(
        session_factory,
        Task(user_id=user_id, title="Dropped", status="cancelled", scheduled_date=DAY, scheduled_time=time(9, 0)),
        Task(user_id=user_id, title="Kept", scheduled_date=DAY, scheduled_time=time(9, 0)),
    )

    assert _conflicts(test_client, user_id).json()["conflicts"] == []


def test_conflict_range_is_validated(client):
    test_client, _ = client

    backwards = _conflicts(test_client, uuid4(), start=DAY, end=date(2026, 1, 1))
    too_wide = _conflicts(test_client, uuid4(), start=DAY, end=date(2026, 6, 1))

    assert backwards.status_code == 422
    assert too_wide.status_code == 422


def test_move_occurrence_locks_time_and_keeps_duration(client):
    test_client, session_factory = client
    user_id, occurrence_id = _user_with_routine(
        session_factory, scheduled_date=DAY, scheduled_start="07:00", scheduled_end="07:45"
    )
    _seed(session_factory, GeneratedPlan(user_id=user_id, date=DAY, status="active"))

    response = test_client.post(
        "/calendar/events/move",
        json={
            "user_id": str(user_id),
            "entity_type": "routine_instance",
            "entity_id": str(occurrence_id),
            "new_start": "18:30",
        },
    )

    assert response.status_code == 200
    assert (response.json()["start"], response.json()["end"]) == ("18:30", "19:15")
    session = session_factory()
    try:
        moved = session.get(RoutineInstance, occurrence_id)
        assert moved.time_locked is True
        assert (moved.scheduled_start, moved.scheduled_end) == ("18:30", "19:15")
        assert session.query(GeneratedPlan).one().status == "draft"
    finally:
        session.close()


def test_move_task_reports_new_conflicts(client):
    test_client, session_factory = client
    user_id, _ = _user_with_routine(
        session_factory, scheduled_date=DAY, scheduled_start="10:00", scheduled_end="11:00"
    )
    task_id = uuid4()
    _seed(session_factory, Task(id=task_id, user_id=user_id, title="Review", due_date=DAY, estimated_minutes=60))

    response = test_client.post(
        "/calendar/events/move",
        json={
            "user_id": str(user_id),
            "entity_type": "task",
            "entity_id": str(task_id),
            "new_start": "10:30",
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["date"] == DAY.isoformat()
    assert [conflict["overlap_minutes"] for conflict in body["conflicts"]] == [30]
    session = session_factory()
    try:
        task = session.get(Task, task_id)
        assert task.scheduled_time == time(10, 30)
        assert task.due_date == DAY
    finally:
        session.close()


def test_move_errors(client):
    test_client, session_factory = client
    user_id, occurrence_id = _user_with_routine(
        session_factory, scheduled_date=DAY, scheduled_start="07:00", scheduled_end="09:00"
    )

    def move(**overrides):
        payload = {
            "user_id": str(user_id),
            "entity_type": "routine_instance",
            "entity_id": str(occurrence_id),
            "new_start": "08:00",
        }
        payload.update(overrides)
        return test_client.post("/calendar/events/move", json=payload)

    assert move(entity_id=str(uuid4())).status_code == 404
    assert move(user_id=str(uuid4())).status_code == 403
    assert move(new_start="23:00").status_code == 422
    assert move(new_start="25:00").status_code == 422
    assert move(entity_type="project").status_code == 422
