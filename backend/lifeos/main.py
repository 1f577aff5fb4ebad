"""Main FastAPI application for the LifeOS planning engine."""
from fastapi import FastAPI, Request

from lifeos.api.routes.calendar import router as calendar_router
from lifeos.api.routes.jobs import router as jobs_router
from lifeos.api.routes.planning import router as planning_router
from lifeos.api.routes.preferences import router as preferences_router
from lifeos.api.routes.routines import router as routines_router
from lifeos.core.config import settings
from lifeos.core.logging import configure_logging
from lifeos.core.middleware import RequestIDMiddleware
from lifeos.observability.client import get_opik_client, init_opik
from lifeos.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(routines_router)
app.include_router(planning_router)
app.include_router(calendar_router)
app.include_router(preferences_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup_observability() -> None:
    """Initialize observability backends after the event loop starts."""
    init_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {
            "status": "ok",
            "allocator": settings.allocator_strategy,
            "scheduler": "enabled" if settings.scheduler_enabled else "disabled",
            "tracing": "enabled" if get_opik_client() is not None else "disabled",
        }
