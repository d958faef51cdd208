"""
release_orchestrator.api.app

FastAPI app factory for the release orchestrator service.

Responsibilities:
- Build the FastAPI application and register routers/middleware/exception handlers.
- Initialize and dispose shared infrastructure (DB engine, deploy store, task registry).
- Provide a single composition root where cross-cutting concerns live.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI

from release_orchestrator import __version__
from release_orchestrator.api.broadcast import DeployBroadcaster
from release_orchestrator.api.errors import register_exception_handlers
from release_orchestrator.api.routers.deploys import router as deploys_router
from release_orchestrator.api.routers.health import router as health_router
from release_orchestrator.api.routers.projects import router as projects_router
from release_orchestrator.api.routers.ws import router as ws_router
from release_orchestrator.db.init_db import init_db
from release_orchestrator.db.session import create_engine, create_sessionmaker
from release_orchestrator.db.store import DeployStore
from release_orchestrator.engine.orchestrator import DeployOrchestrator
from release_orchestrator.engine.tasks import DeployTaskRegistry
from release_orchestrator.gitlab.base import ClientFactory
from release_orchestrator.gitlab.client import connect
from release_orchestrator.observability.logging import configure_logging, get_logger
from release_orchestrator.observability.middleware import RequestContextMiddleware
from release_orchestrator.settings import Settings

log = get_logger(__name__)


def create_app(*, settings: Settings, client_factory: ClientFactory | None = None) -> FastAPI:
    configure_logging(
        service_name=settings.service_name,
        level=settings.log_level,
        pretty=settings.env == "dev",
    )
    factory: ClientFactory = client_factory or partial(
        connect,
        timeout=settings.gitlab_timeout_seconds,
        tag_timezone=settings.tag_timezone,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("startup", env=settings.env)
        engine = create_engine(settings)
        if settings.env in ("dev", "test"):
            # Dev/test convenience: create tables automatically. Prod runs Alembic migrations.
            await init_db(engine)

        sessionmaker = create_sessionmaker(engine)
        store = DeployStore(sessionmaker)
        broadcaster = DeployBroadcaster(send_timeout_seconds=settings.ws_send_timeout_seconds)
        tasks = DeployTaskRegistry()
        app.state.engine = engine
        app.state.sessionmaker = sessionmaker
        app.state.store = store
        app.state.broadcaster = broadcaster
        app.state.tasks = tasks
        app.state.client_factory = factory
        app.state.orchestrator = DeployOrchestrator(
            store=store,
            settings=settings,
            notifier=broadcaster,
            tasks=tasks,
            client_factory=factory,
        )
        try:
            yield
        finally:
            # Running deploys are cancelled; their rows keep the last written state.
            await tasks.shutdown()
            await engine.dispose()
            log.info("shutdown")

    app = FastAPI(
        title="Release Orchestrator",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    register_exception_handlers(app)
    app.include_router(health_router, tags=["health"])
    app.include_router(deploys_router)
    app.include_router(projects_router)
    app.include_router(ws_router)

    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; business logic stays in services and the engine.
