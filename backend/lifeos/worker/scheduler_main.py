"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from lifeos.core.config import settings
from lifeos.core.logging import configure_logging
from lifeos.db.session import SessionLocal
from lifeos.services.job_runner import planning_date, run_daily_plan_for_all_users


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        _register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running daily planning once on startup")
            _run_daily_plan_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def _register_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(
        _run_daily_plan_job,
        trigger="cron",
        hour=settings.planning_job_hour,
        minute=settings.planning_job_minute,
        id="daily_plan_job",
        replace_existing=True,
    )
    logger.info(
        "Registered daily planning job (time=%02d:%02d %s)",
        settings.planning_job_hour,
        settings.planning_job_minute,
        settings.scheduler_timezone,
    )


def _run_daily_plan_job() -> None:
    session = SessionLocal()
    target = planning_date()
    try:
        result = run_daily_plan_for_all_users(session, target)
        logger.info(
            "Daily planning job complete for %s: users=%s, plans=%s, failed=%s",
            target,
            result.users_processed,
            result.plans_written,
            result.users_failed,
        )
    except Exception:  # pragma: no cover - keeps the worker alive
        logger.exception("Daily planning job failed")
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
