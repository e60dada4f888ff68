import logging

from apscheduler.schedulers.background import BackgroundScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import afterschool.models  # noqa: F401
from afterschool.core.config import settings
from afterschool.core.db import SessionLocal
from afterschool.routers import auth as auth_router
from afterschool.routers import behavior as behavior_router
from afterschool.routers import homework as homework_router
from afterschool.routers import staff as staff_router
from afterschool.routers import students as students_router
from afterschool.routers import tiers as tiers_router
from afterschool.services import homework as homework_service

app = FastAPI(title="After-School Hub API", version="0.1.0")

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(timezone="UTC")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router)
app.include_router(staff_router.router)
app.include_router(students_router.router)
app.include_router(tiers_router.router)
app.include_router(behavior_router.router)
app.include_router(homework_router.router)


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "ok"}


def _run_homework_overdue_check() -> None:
    with SessionLocal() as session:
        updated = homework_service.mark_overdue_homework(session)
        if updated:
            logger.info("homework_overdue_job", extra={"updated": updated})


@app.on_event("startup")
def start_scheduled_jobs() -> None:
    if not settings.ENABLE_SCHEDULER:
        logger.info("scheduler_disabled")
        return
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        _run_homework_overdue_check,
        trigger="cron",
        hour=settings.HOMEWORK_OVERDUE_HOUR,
        minute=0,
        id="homework_overdue_check",
        replace_existing=True,
    )


@app.on_event("shutdown")
def shutdown_scheduler() -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
