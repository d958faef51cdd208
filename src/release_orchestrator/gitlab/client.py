"""
release_orchestrator.gitlab.client

GitLab v4 implementation of the `ReleaseClient` boundary.

Responsibilities:
- Create timestamp-qualified release tags.
- Resolve pipelines for a tag and read pipeline/job state.
- Convert transport errors, non-2xx responses and bad payloads into RemoteError.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from release_orchestrator.errors import RemoteError
from release_orchestrator.gitlab.base import GitLabTarget
from release_orchestrator.gitlab.models import Branch, PipelineDetail, PipelineRef, RemoteJob
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)

_pipelines = TypeAdapter(list[PipelineRef])
_jobs = TypeAdapter(list[RemoteJob])
_branches = TypeAdapter(list[Branch])
_pipeline_detail = TypeAdapter(PipelineDetail)


def build_tag_name(tag_prefix: str, now: datetime, tz: ZoneInfo) -> str:
    # <prefix>-yyyyMMddHHmm in the release team's timezone.
    return f"{tag_prefix}-{now.astimezone(tz):%Y%m%d%H%M}"


class GitLabClient:
    def __init__(
        self,
        *,
        http: httpx.AsyncClient,
        tag_timezone: str = "Asia/Shanghai",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._http = http
        self._tz = ZoneInfo(tag_timezone)
        self._clock = clock or (lambda: datetime.now(UTC))

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            r = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise RemoteError(f"GitLab {method} {path} failed: {e}") from e
        if r.is_error:
            log.error("gitlab_request_failed", method=method, path=path, status=r.status_code)
            raise RemoteError(f"GitLab {method} {path} :: {r.text}", status_code=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise RemoteError(f"GitLab {method} {path} returned a non-JSON body") from e

    async def create_tag(self, project_id: int, branch: str, tag_prefix: str) -> str:
        tag_name = build_tag_name(tag_prefix, self._clock(), self._tz)
        log.info("creating_tag", project_id=project_id, branch=branch, tag=tag_name)
        await self._request(
            "POST",
            f"/projects/{project_id}/repository/tags",
            json={"tag_name": tag_name, "ref": branch},
        )
        return tag_name

    async def get_pipeline_id_by_tag(self, project_id: int, tag: str) -> int:
        data = await self._request("GET", f"/projects/{project_id}/pipelines", params={"ref": tag})
        pipelines = _parse(_pipelines, data, what="pipelines")
        if not pipelines:
            log.warning("pipeline_not_found", project_id=project_id, tag=tag)
            raise RemoteError(f"no pipeline found for tag {tag} in project {project_id}")
        return pipelines[0].id

    async def get_pipeline_detail(self, project_id: int, pipeline_id: int) -> PipelineDetail:
        data = await self._request("GET", f"/projects/{project_id}/pipelines/{pipeline_id}")
        return _parse(_pipeline_detail, data, what="pipeline")

    async def get_jobs_by_pipeline(self, project_id: int, pipeline_id: int) -> list[RemoteJob]:
        data = await self._request(
            "GET",
            f"/projects/{project_id}/pipelines/{pipeline_id}/jobs",
            params={"include_retried": "true", "per_page": 100},
        )
        return _parse(_jobs, data, what="jobs")

    async def list_branches(self, project_id: int, search: str | None = None) -> list[str]:
        params: dict[str, Any] = {"search": search} if search else {"per_page": 100}
        data = await self._request(
            "GET", f"/projects/{project_id}/repository/branches", params=params
        )
        return [b.name for b in _parse(_branches, data, what="branches") if b.name]


def _parse(adapter: TypeAdapter[Any], data: Any, *, what: str) -> Any:
    try:
        return adapter.validate_python(data)
    except PydanticValidationError as e:
        raise RemoteError(f"unexpected GitLab {what} payload: {e.error_count()} errors") from e


@asynccontextmanager
async def connect(
    target: GitLabTarget,
    *,
    timeout: float = 30.0,
    tag_timezone: str = "Asia/Shanghai",
) -> AsyncIterator[GitLabClient]:
    """
    Open a pooled HTTP client for one deploy run (or one synchronous request).
    """

    headers = {"Authorization": f"Bearer {target.token}", "Accept": "application/json"}
    async with httpx.AsyncClient(
        base_url=target.base_url, headers=headers, timeout=timeout
    ) as http:
        yield GitLabClient(http=http, tag_timezone=tag_timezone)


# --- Module Notes -----------------------------------------------------------
# Jobs are requested with include_retried so retried jobs are mirrored too; the dependency
# waiter keeps only the highest id per job name.
