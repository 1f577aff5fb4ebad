from __future__ import annotations

from datetime import date, datetime, timezone
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lifeos.core.config import settings
from lifeos.db import Base
from lifeos.db.deps import get_db
from lifeos.db.models.generated_plan import GeneratedPlan
from lifeos.db.models.routine_template import RoutineTemplate
from lifeos.db.models.user import User
from lifeos.main import app

PLAN_DATE = date(2026, 1, 5)


@pytest.fixture()
def client(monkeypatch):
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )

    @event.listens_for(engine, "connect")
    def set_fk(conn, record):  # pragma: no cover
        cursor = conn.cursor()
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
    monkeypatch.setattr(settings, "debug", True)
    with TestClient(app) as test_client:
        yield test_client, TestingSessionLocal
    app.dependency_overrides.clear()


def _seed_user_with_routine(session_factory):
    session = session_factory()
    try:
        user_id = uuid4()
        session.add(User(id=user_id))
        session.flush()
        session.add(
            RoutineTemplate(user_id=user_id, name="Walk", created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        )
        session.commit()
        return user_id
    finally:
        session.close()


def test_jobs_config_reports_schedule(client):
    test_client, _ = client

    response = test_client.get("/jobs")

    assert response.status_code == 200
    body = response.json()
    assert body["schedule"]["daily_time"] == f"{settings.planning_job_hour:02d}:{settings.planning_job_minute:02d}"
    assert body["allocator_strategy"] == settings.allocator_strategy


def test_run_now_plans_every_active_user(client):
    test_client, session_factory = client
    first = _seed_user_with_routine(session_factory)
    second = _seed_user_with_routine(session_factory)

    response = test_client.post("/jobs/run-now", json={"plan_date": PLAN_DATE.isoformat()})

    assert response.status_code == 200
    body = response.json()
    assert body["job"] == "daily_plan"
    assert body["users_processed"] == 2
    assert body["plans_written"] == 2
    assert body["users_failed"] == 0

    session = session_factory()
    try:
        owners = {plan.user_id for plan in session.query(GeneratedPlan).all()}
        assert owners == {first, second}
    finally:
        session.close()


def test_run_now_for_single_user_respects_existing_plan(client):
    test_client, session_factory = client
    user_id = _seed_user_with_routine(session_factory)
    payload = {"user_id": str(user_id), "plan_date": PLAN_DATE.isoformat()}

    first = test_client.post("/jobs/run-now", json=payload).json()
    again = test_client.post("/jobs/run-now", json=payload).json()
    forced = test_client.post("/jobs/run-now", json={**payload, "force": True}).json()

    assert first["plans_written"] == 1
    assert again["plans_written"] == 0
    assert forced["plans_written"] == 1


def test_run_now_requires_debug(client, monkeypatch):
    test_client, _ = client
    monkeypatch.setattr(settings, "debug", False)

    response = test_client.post("/jobs/run-now", json={})

    assert response.status_code == 403
