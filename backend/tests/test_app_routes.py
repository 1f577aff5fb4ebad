"""Regression tests for application route registration."""
from fastapi.routing import APIRoute

from lifeos.main import app


def test_planning_routes_registered_once() -> None:
    """Each planning endpoint is mounted exactly once."""
    expected = {
        ("POST", "/routines/occurrences/generate"),
        ("POST", "/routine-occurrences/{occurrence_id}/complete"),
        ("POST", "/routine-occurrences/{occurrence_id}/skip"),
        ("POST", "/plans/generate"),
        ("GET", "/plans/{plan_date}"),
        ("POST", "/plans/{plan_date}/stale"),
        ("GET", "/calendar/conflicts"),
        ("POST", "/calendar/events/move"),
        ("GET", "/preferences"),
        ("PUT", "/preferences"),
        ("POST", "/jobs/run-now"),
    }
    registered = [
        (method, route.path)
        for route in app.routes
        if isinstance(route, APIRoute)
        for method in route.methods
    ]

    for entry in expected:
        assert registered.count(entry) == 1, entry
