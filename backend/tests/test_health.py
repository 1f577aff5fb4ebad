from fastapi.testclient import TestClient


def _get_client() -> TestClient:
    from lifeos.main import app

    return TestClient(app)


def test_health_reports_default_engine_setup(monkeypatch) -> None:
    monkeypatch.setattr("lifeos.main.get_opik_client", lambda: None)
    client = _get_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "allocator": "greedy",
        "scheduler": "disabled",
        "tracing": "disabled",
    }


def test_health_reflects_configured_allocator_and_scheduler(monkeypatch) -> None:
    monkeypatch.setattr("lifeos.main.settings.allocator_strategy", "llm")
    monkeypatch.setattr("lifeos.main.settings.scheduler_enabled", True)
    monkeypatch.setattr("lifeos.main.get_opik_client", lambda: object())
    client = _get_client()
    body = client.get("/health").json()

    assert body["allocator"] == "llm"
    assert body["scheduler"] == "enabled"
    assert body["tracing"] == "enabled"


def test_request_id_generated_and_echoed() -> None:
    client = _get_client()
    generated = client.get("/health")
    echoed = client.get("/health", headers={"X-Request-Id": "plan-req-42"})

    assert generated.headers.get("X-Request-Id")
    assert echoed.headers.get("X-Request-Id") == "plan-req-42"
