"""
release_orchestrator.db.repositories.jobs

Repository for cached remote `Job` rows.

Responsibilities:
- Upsert jobs reported by the release client.
- Query a pipeline's jobs by gating stage for the dependency waiter.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from release_orchestrator.db.models import Job


class JobRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        *,
        job_id: int,
        deploy_id: int,
        project_id: int,
        pipeline_id: int,
        name: str,
        stage: str,
        status: str,
        created_at: str,
        updated_at: str,
        web_url: str,
    ) -> Job:
        job = await self._session.get(Job, job_id)
        if job is None:
            job = Job(id=job_id)
            self._session.add(job)
        job.deploy_id = deploy_id
        job.project_id = project_id
        job.pipeline_id = pipeline_id
        job.name = name
        job.stage = stage
        job.status = status
        job.created_at = created_at
        job.updated_at = updated_at
        job.web_url = web_url
        await self._session.flush()
        return job

    async def list_for_stage(self, *, deploy_id: int, pipeline_id: int, stage_like: str) -> list[Job]:
        # Substring match: "deploy" gates both "deploy" and "pre-deploy-check" stages.
        stmt = (
            select(Job)
            .where(
                Job.deploy_id == deploy_id,
                Job.pipeline_id == pipeline_id,
                Job.stage.contains(stage_like),
            )
            .order_by(Job.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_deploy(self, deploy_id: int) -> list[Job]:
        stmt = select(Job).where(Job.deploy_id == deploy_id).order_by(Job.id)
        return list((await self._session.execute(stmt)).scalars().all())
