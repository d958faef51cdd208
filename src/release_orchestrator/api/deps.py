"""
release_orchestrator.api.deps

FastAPI dependency wiring for the API layer.

Responsibilities:
- Provide dependency functions for settings, the deploy store and DB sessions.
- Encapsulate app.state access patterns (store/orchestrator/broadcaster).
- Resolve the GitLab target of a request (request body first, settings second).
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from release_orchestrator.api.schemas import GitLabTargetFields
from release_orchestrator.db.store import DeployStore
from release_orchestrator.engine.orchestrator import DeployOrchestrator
from release_orchestrator.errors import ValidationError
from release_orchestrator.gitlab.base import ClientFactory, GitLabTarget
from release_orchestrator.services.deploy_service import DeployService
from release_orchestrator.settings import Settings


def settings_dep(request: Request) -> Settings:
    # Settings are bound at app creation so tests can inject their own.
    return request.app.state.settings  # type: ignore[attr-defined]


def sessionmaker_from_app(request: Request) -> async_sessionmaker[AsyncSession]:
    # The sessionmaker is created on app startup in `release_orchestrator.api.app.create_app`.
    return request.app.state.sessionmaker  # type: ignore[attr-defined]


async def db_session(
    session_factory: async_sessionmaker[AsyncSession] = Depends(sessionmaker_from_app),
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


def store_dep(request: Request) -> DeployStore:
    return request.app.state.store  # type: ignore[attr-defined]


def orchestrator_dep(request: Request) -> DeployOrchestrator:
    return request.app.state.orchestrator  # type: ignore[attr-defined]


def client_factory_dep(request: Request) -> ClientFactory:
    return request.app.state.client_factory  # type: ignore[attr-defined]


def deploy_service_dep(request: Request, store: DeployStore = Depends(store_dep)) -> DeployService:
    return DeployService(store=store, notifier=request.app.state.broadcaster)


def resolve_target(body: GitLabTargetFields, settings: Settings) -> GitLabTarget:
    host = body.host or settings.gitlab_host
    if not host:
        raise ValidationError("no GitLab host given and none configured")
    return GitLabTarget(
        host=host,
        token=body.token if body.token is not None else settings.gitlab_token,
        scheme=body.scheme or settings.gitlab_scheme,
    )


# --- Module Notes -----------------------------------------------------------
# Services are cheap to build, so they are constructed per request; the orchestrator owns
# background tasks and therefore lives on app.state for the whole process.
