"""
release_orchestrator.gitlab.base

Client boundary consumed by the deploy engine.

Responsibilities:
- Describe the four release operations (+ branch search) as a Protocol.
- Describe how to reach a GitLab instance (`GitLabTarget`).
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from typing import Protocol

from release_orchestrator.gitlab.models import PipelineDetail, RemoteJob


class ReleaseClient(Protocol):
    async def create_tag(self, project_id: int, branch: str, tag_prefix: str) -> str: ...

    async def get_pipeline_id_by_tag(self, project_id: int, tag: str) -> int: ...

    async def get_pipeline_detail(self, project_id: int, pipeline_id: int) -> PipelineDetail: ...

    async def get_jobs_by_pipeline(self, project_id: int, pipeline_id: int) -> list[RemoteJob]: ...

    async def list_branches(self, project_id: int, search: str | None = None) -> list[str]: ...


@dataclass(frozen=True, slots=True)
class GitLabTarget:
    host: str
    token: str = field(repr=False)
    scheme: str = "https"

    @property
    def base_url(self) -> str:
        return f"{self.scheme}://{self.host}/api/v4"


ClientFactory = Callable[[GitLabTarget], AbstractAsyncContextManager[ReleaseClient]]
