from __future__ import annotations

from datetime import date, datetime, timezone
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lifeos.db import Base
from lifeos.db.deps import get_db
from lifeos.db.models.routine_instance import RoutineInstance
from lifeos.db.models.routine_template import RoutineTemplate
from lifeos.db.models.user import User
from lifeos.main import app

MONDAY = date(2026, 1, 5)


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


def _seed_user_with_routines(session_factory, *configs) -> UUID:
    session = session_factory()
    try:
        user_id = uuid4()
        session.add(User(id=user_id))
        session.flush()
        for name, recurrence, constraints in configs:
            session.add(
                RoutineTemplate(
                    user_id=user_id,
                    name=name,
                    recurrence_config=recurrence,
                    constraints=constraints,
                    created_at=datetime(2026, 1, 5, 6, 0, tzinfo=timezone.utc),
                )
            )
        session.commit()
        return user_id
    finally:
        session.close()


def _generate(test_client: TestClient, user_id: UUID, day: date = MONDAY):
    return test_client.post(
        "/routines/occurrences/generate",
        json={"user_id": str(user_id), "date": day.isoformat()},
    )


def test_generate_occurrences_is_idempotent(client):
    test_client, session_factory = client
    user_id = _seed_user_with_routines(
        session_factory,
        ("Read", {"type": "daily"}, {}),
        ("Gym", {"type": "weekly", "daysOfWeek": [2, 4]}, {}),
    )

    first = _generate(test_client, user_id)
    second = _generate(test_client, user_id)

    assert first.status_code == 200
    names = [item["name"] for item in first.json()["occurrences"]]
    assert names == ["Read"]
    assert [item["id"] for item in second.json()["occurrences"]] == [
        item["id"] for item in first.json()["occurrences"]
    ]
    assert first.json()["occurrences"][0]["status"] == "pending"

    session = session_factory()
    try:
        assert session.query(RoutineInstance).count() == 1
    finally:
        session.close()


def test_generate_for_unknown_user_returns_empty_list(client):
    test_client, _ = client

    response = _generate(test_client, uuid4())

    assert response.status_code == 200
    assert response.json()["occurrences"] == []


def test_complete_and_skip_occurrence(client):
    test_client, session_factory = client
    user_id = _seed_user_with_routines(
        session_factory,
        ("Water", {"type": "daily"}, {"targetValue": {"value": 8, "unit": "glasses"}}),
        ("Journal", {"type": "daily"}, {}),
    )
    occurrences = {item["name"]: item["id"] for item in _generate(test_client, user_id).json()["occurrences"]}

    completed = test_client.post(
        f"/routine-occurrences/{occurrences['Water']}/complete",
        json={"user_id": str(user_id), "actual_value": 4, "notes": "Busy day"},
    )
    skipped = test_client.post(
        f"/routine-occurrences/{occurrences['Journal']}/skip",
        json={"user_id": str(user_id), "reason": "Tired"},
    )

    assert completed.status_code == 200
    assert completed.json()["occurrence"]["status"] == "completed"
    assert completed.json()["occurrence"]["completion_score"] == 50
    assert skipped.status_code == 200
    assert skipped.json()["occurrence"]["status"] == "skipped"
    assert skipped.json()["occurrence"]["completion_score"] == 0


def test_occurrence_errors_map_to_status_codes(client):
    test_client, session_factory = client
    user_id = _seed_user_with_routines(session_factory, ("Read", {"type": "daily"}, {}))
    occurrence_id = _generate(test_client, user_id).json()["occurrences"][0]["id"]

    missing = test_client.post(f"/routine-occurrences/{uuid4()}/skip", json={"user_id": str(user_id)})
    foreign = test_client.post(f"/routine-occurrences/{occurrence_id}/complete", json={"user_id": str(uuid4())})
    negative = test_client.post(
        f"/routine-occurrences/{occurrence_id}/complete",
        json={"user_id": str(user_id), "actual_value": -1},
    )

    assert missing.status_code == 404
    assert foreign.status_code == 403
    assert negative.status_code == 422
