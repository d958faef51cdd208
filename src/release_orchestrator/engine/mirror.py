"""
release_orchestrator.engine.mirror

Write remote pipeline/job snapshots into the local cache.
"""

from __future__ import annotations

from release_orchestrator.db.store import StoreSession
from release_orchestrator.gitlab.models import PipelineDetail, RemoteJob


async def mirror_pipeline(
    tx: StoreSession,
    *,
    deploy_id: int,
    project_id: int,
    pipeline_id: int,
    detail: PipelineDetail,
    jobs: list[RemoteJob],
) -> None:
    await tx.pipelines.upsert(
        pipeline_id=pipeline_id,
        deploy_id=deploy_id,
        project_id=project_id,
        status=detail.status or "",
        user_name=detail.user_name,
        created_at=detail.created_at or "",
        updated_at=detail.updated_at or "",
    )
    for job in jobs:
        await tx.jobs.upsert(
            job_id=job.id,
            deploy_id=deploy_id,
            project_id=project_id,
            pipeline_id=pipeline_id,
            name=job.name or "",
            stage=job.stage or "",
            status=job.status or "",
            created_at=job.created_at or "",
            updated_at=job.last_update,
            web_url=job.web_url or "",
        )
