"""FastAPI application factory and sync engine wiring."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from spt.codeforces.client import CodeforcesClient
from spt.config import get_settings
from spt.database import close_db, create_tables, get_session_factory, init_db
from spt.email.service import InactivityNotifier, get_email_service
from spt.health.router import router as health_router
from spt.middleware import setup_middleware
from spt.sync.events import SyncEvents
from spt.sync.orchestrator import SyncOrchestrator
from spt.sync.scheduler import Scheduler
from spt.sync.tasks import BackgroundTasks

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.environment == "development":
        # Production schemas come from Alembic
        await create_tables()

    session_factory = get_session_factory()
    client = CodeforcesClient()
    notifier = InactivityNotifier(get_email_service())
    orchestrator = SyncOrchestrator(session_factory, client, notifier)
    tasks = BackgroundTasks()
    scheduler = Scheduler(session_factory, orchestrator, tasks)

    app.state.orchestrator = orchestrator
    app.state.tasks = tasks
    app.state.scheduler = scheduler
    app.state.sync_events = SyncEvents(orchestrator, scheduler, tasks)

    if settings.scheduler_enabled:
        await scheduler.start()
    else:
        logger.info("scheduler_disabled")

    yield

    scheduler.stop()
    await tasks.join()
    await client.aclose()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Student Progress Tracker",
        description="Codeforces sync engine for the student progress dashboard",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])

    return app


app = create_app()
