"""
release_orchestrator.engine.poller

One status-poll pass over every project of a deploy.

Responsibilities:
- Refresh the pipeline/job cache for each project that has a pipeline.
- Converge project statuses from the remote pipeline status.
- Derive the round outcome: next, success or fail.
"""

from __future__ import annotations

import enum

from release_orchestrator.db.models import ProjectStatus
from release_orchestrator.db.store import DeployStore
from release_orchestrator.engine.mirror import mirror_pipeline
from release_orchestrator.gitlab.base import ReleaseClient
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)


class PollOutcome(enum.StrEnum):
    next = "next"
    success = "success"
    fail = "fail"


class StatusPoller:
    def __init__(self, *, store: DeployStore) -> None:
        self._store = store

    async def poll_and_update_projects(self, client: ReleaseClient, deploy_id: int) -> PollOutcome:
        async with self._store.reader() as rd:
            projects = await rd.projects.list_for_deploy(deploy_id)

        all_success = True
        for project in projects:
            if project.pipeline_id is None:
                all_success = False
                continue

            detail = await client.get_pipeline_detail(project.project_id, project.pipeline_id)
            jobs = await client.get_jobs_by_pipeline(project.project_id, project.pipeline_id)

            status = detail.normalized_status
            if status == "success":
                new_status = ProjectStatus.success
            elif status in ("failed", "canceled"):
                new_status = ProjectStatus.failed
            else:
                new_status = ProjectStatus.running

            async with self._store.transaction() as tx:
                await mirror_pipeline(
                    tx,
                    deploy_id=deploy_id,
                    project_id=project.project_id,
                    pipeline_id=project.pipeline_id,
                    detail=detail,
                    jobs=jobs,
                )
                await tx.projects.set_status(project.id, new_status)

            if new_status is ProjectStatus.failed:
                log.info(
                    "project_pipeline_failed",
                    deploy_id=deploy_id,
                    project_id=project.project_id,
                    pipeline_id=project.pipeline_id,
                    remote_status=status,
                )
                return PollOutcome.fail
            if new_status is not ProjectStatus.success:
                all_success = False

        return PollOutcome.success if all_success else PollOutcome.next
