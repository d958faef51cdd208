"""
release_orchestrator.db.store

Unit-of-work facade over the repositories (the "Deploy Store").

Responsibilities:
- Open one session per unit of work and expose every repository bound to it.
- Provide the atomic multi-row write primitive (`transaction`).
- Keep transaction boundaries out of the engine's algorithms.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from release_orchestrator.db.repositories.deploys import DeployRepo
from release_orchestrator.db.repositories.groups import GroupRepo
from release_orchestrator.db.repositories.jobs import JobRepo
from release_orchestrator.db.repositories.pipelines import PipelineRepo
from release_orchestrator.db.repositories.projects import DeployProjectRepo
from release_orchestrator.db.repositories.registry import ProjectRegistryRepo


class StoreSession:
    """
    Repositories sharing one `AsyncSession`.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.deploys = DeployRepo(session)
        self.groups = GroupRepo(session)
        self.projects = DeployProjectRepo(session)
        self.pipelines = PipelineRepo(session)
        self.jobs = JobRepo(session)
        self.registry = ProjectRegistryRepo(session)


class DeployStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[StoreSession]:
        """
        Commit everything written inside the block, or nothing if it raises.
        """

        async with self._session_factory() as session:
            async with session.begin():
                yield StoreSession(session)

    @asynccontextmanager
    async def reader(self) -> AsyncIterator[StoreSession]:
        # Read-only scope; the session is closed (and any implicit transaction rolled back) on exit.
        async with self._session_factory() as session:
            yield StoreSession(session)


# --- Module Notes -----------------------------------------------------------
# Engine components never hold a session across an `await` on the release client: each
# step reloads what it needs, which is what makes a crashed deploy resumable.
