"""
tests.conftest

Shared fixtures for engine, service and API tests.

Responsibilities:
- Provide test settings backed by a per-test SQLite file with tiny polling intervals.
- Provide a ready `DeployStore` (tables created, engine disposed after the test).
- Provide an in-memory `ReleaseClient` fake and a recording notifier.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path

import pytest
import pytest_asyncio

from release_orchestrator.db.init_db import init_db
from release_orchestrator.db.session import create_engine, create_sessionmaker
from release_orchestrator.db.store import DeployStore
from release_orchestrator.engine.events import DeployEvent, DeployEventType
from release_orchestrator.errors import RemoteError
from release_orchestrator.gitlab.base import GitLabTarget
from release_orchestrator.gitlab.models import PipelineDetail, PipelineUser, RemoteJob
from release_orchestrator.settings import Settings


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(
        env="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'deploys.db'}",
        gitlab_host="gitlab.test",
        gitlab_token="test-token",
        poll_interval_seconds=0.01,
        max_poll_rounds=300,
        depend_wait_interval_seconds=0.01,
        max_depend_rounds=300,
        pipeline_retry_attempts=3,
        pipeline_retry_delay_seconds=0,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest_asyncio.fixture
async def store(settings: Settings) -> AsyncIterator[DeployStore]:
    engine = create_engine(settings)
    await init_db(engine)
    try:
        yield DeployStore(create_sessionmaker(engine))
    finally:
        await engine.dispose()


def job(job_id: int, name: str, stage: str, status: str) -> RemoteJob:
    return RemoteJob(
        id=job_id,
        name=name,
        stage=stage,
        status=status,
        created_at="2026-01-01T00:00:00Z",
        updated_at="2026-01-01T00:01:00Z",
        web_url=f"https://gitlab.test/jobs/{job_id}",
    )


class FakeReleaseClient:
    """
    In-memory GitLab stand-in.

    Tests register a pipeline per project (`add_pipeline`) and then flip pipeline statuses
    or job lists between rounds.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.targets: list[GitLabTarget] = []
        self.pipeline_for_project: dict[int, int] = {}
        self.pipeline_status: dict[int, str] = {}
        self.pipeline_jobs: dict[int, list[RemoteJob]] = {}
        self.lookup_failures: dict[int, int] = {}
        self.tag_errors: set[int] = set()
        self.detail_errors: set[int] = set()
        self.branches: dict[int, list[str]] = {}

    def add_pipeline(
        self, project_id: int, pipeline_id: int, status: str, jobs: list[RemoteJob] | None = None
    ) -> None:
        self.pipeline_for_project[project_id] = pipeline_id
        self.pipeline_status[pipeline_id] = status
        self.pipeline_jobs[pipeline_id] = list(jobs or [])

    def calls_named(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]

    async def create_tag(self, project_id: int, branch: str, tag_prefix: str) -> str:
        self.calls.append(("create_tag", project_id, branch))
        if project_id in self.tag_errors:
            raise RemoteError("tag rejected", status_code=400)
        return f"{tag_prefix}-202601010800"

    async def get_pipeline_id_by_tag(self, project_id: int, tag: str) -> int:
        self.calls.append(("get_pipeline_id_by_tag", project_id, tag))
        remaining = self.lookup_failures.get(project_id, 0)
        if remaining > 0:
            self.lookup_failures[project_id] = remaining - 1
            raise RemoteError(f"no pipeline found for tag {tag}")
        if project_id not in self.pipeline_for_project:
            raise RemoteError(f"no pipeline found for tag {tag}")
        return self.pipeline_for_project[project_id]

    async def get_pipeline_detail(self, project_id: int, pipeline_id: int) -> PipelineDetail:
        self.calls.append(("get_pipeline_detail", project_id, pipeline_id))
        if pipeline_id in self.detail_errors:
            raise RemoteError("gateway timeout", status_code=504)
        return PipelineDetail(
            id=pipeline_id,
            status=self.pipeline_status.get(pipeline_id, "running"),
            user=PipelineUser(username="release-bot"),
            created_at="2026-01-01T00:00:00Z",
            updated_at="2026-01-01T00:05:00Z",
        )

    async def get_jobs_by_pipeline(self, project_id: int, pipeline_id: int) -> list[RemoteJob]:
        self.calls.append(("get_jobs_by_pipeline", project_id, pipeline_id))
        return list(self.pipeline_jobs.get(pipeline_id, []))

    async def list_branches(self, project_id: int, search: str | None = None) -> list[str]:
        self.calls.append(("list_branches", project_id, search))
        names = self.branches.get(project_id, [])
        return [n for n in names if search is None or search in n]


def client_factory_for(client: FakeReleaseClient):
    @asynccontextmanager
    async def factory(target: GitLabTarget) -> AsyncIterator[FakeReleaseClient]:
        client.targets.append(target)
        yield client

    return factory


@dataclass
class RecordingNotifier:
    events: list[DeployEvent] = field(default_factory=list)

    async def notify(self, deploy_id: int, event: DeployEvent) -> None:
        self.events.append(event)

    def types(self) -> list[DeployEventType]:
        return [e.type for e in self.events]

    def of_type(self, event_type: DeployEventType) -> list[DeployEvent]:
        return [e for e in self.events if e.type is event_type]


@pytest.fixture
def fake_client() -> FakeReleaseClient:
    return FakeReleaseClient()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def target() -> GitLabTarget:
    return GitLabTarget(host="gitlab.test", token="test-token")
