"""
release_orchestrator.engine.runner

Drives one project through tag -> pipeline -> job seed.

Responsibilities:
- Reuse an existing release tag or cut a new one.
- Resolve the tag's pipeline with bounded retry.
- Persist tag/pipeline on the project row and seed the pipeline/job cache.
"""

from __future__ import annotations

import asyncio

from sqlalchemy.exc import IntegrityError

from release_orchestrator.db.models import DeployProject
from release_orchestrator.db.store import DeployStore
from release_orchestrator.engine.mirror import mirror_pipeline
from release_orchestrator.errors import RemoteError, RetryExhausted
from release_orchestrator.gitlab.base import ReleaseClient
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)


class ProjectRunner:
    def __init__(self, *, store: DeployStore, attempts: int = 5, delay_seconds: float = 2.0) -> None:
        self._store = store
        self._attempts = attempts
        self._delay = delay_seconds

    async def run_one_project(self, client: ReleaseClient, project: DeployProject) -> int:
        """
        Returns the pipeline id now recorded on the project row.

        Raises RemoteError from tag creation / pipeline reads and RetryExhausted when the
        pipeline never shows up for the tag.
        """

        plog = log.bind(deploy_id=project.deploy_id, project_id=project.project_id)

        tag = project.actual_tag
        if not tag:
            tag = await client.create_tag(project.project_id, project.branch, project.tag_prefix)
            # Record the tag right away so a retry of this project reuses it.
            async with self._store.transaction() as tx:
                await tx.projects.record_tag(project.id, tag)
            plog.info("tag_created", tag=tag)

        pipeline_id = await self._resolve_pipeline_id(client, project.project_id, tag)
        # Commit the pipeline before any further remote call so retry_fetch can resume from it.
        async with self._store.transaction() as tx:
            await tx.projects.mark_triggered(project.id, actual_tag=tag, pipeline_id=pipeline_id)
        plog.info("project_triggered", tag=tag, pipeline_id=pipeline_id)

        detail = await client.get_pipeline_detail(project.project_id, pipeline_id)
        jobs = await client.get_jobs_by_pipeline(project.project_id, pipeline_id)
        try:
            async with self._store.transaction() as tx:
                await mirror_pipeline(
                    tx,
                    deploy_id=project.deploy_id,
                    project_id=project.project_id,
                    pipeline_id=pipeline_id,
                    detail=detail,
                    jobs=jobs,
                )
        except IntegrityError:
            # A poll round inserted the same pipeline/job rows first; its snapshot stands.
            plog.info("pipeline_cache_seed_skipped", pipeline_id=pipeline_id)
        else:
            plog.info("pipeline_cache_seeded", pipeline_id=pipeline_id, jobs=len(jobs))
        return pipeline_id

    async def _resolve_pipeline_id(self, client: ReleaseClient, project_id: int, tag: str) -> int:
        last_error: RemoteError | None = None
        for attempt in range(1, self._attempts + 1):
            try:
                return await client.get_pipeline_id_by_tag(project_id, tag)
            except RemoteError as e:
                last_error = e
                log.warning(
                    "pipeline_lookup_retry",
                    project_id=project_id,
                    tag=tag,
                    attempt=attempt,
                    error=str(e),
                )
                if attempt < self._attempts:
                    await asyncio.sleep(self._delay)
        raise RetryExhausted(f"pipeline lookup for tag {tag}", self._attempts) from last_error


# --- Module Notes -----------------------------------------------------------
# No rollback: a tag cut for a project that later fails stays on the remote side.
