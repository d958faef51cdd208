from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from release_orchestrator.db.models import Pipeline


class PipelineRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def upsert(
        self,
        *,
        pipeline_id: int,
        deploy_id: int,
        project_id: int,
        status: str,
        user_name: str,
        created_at: str,
        updated_at: str,
    ) -> Pipeline:
        existing = await self._session.get(Pipeline, pipeline_id)
        if existing is not None:
            existing.deploy_id = deploy_id
            existing.status = status
            # Poll responses may omit the user; keep what the first fetch recorded.
            existing.user_name = user_name or existing.user_name
            existing.created_at = created_at or existing.created_at
            existing.updated_at = updated_at
            await self._session.flush()
            return existing

        pipeline = Pipeline(
            id=pipeline_id,
            deploy_id=deploy_id,
            project_id=project_id,
            status=status,
            user_name=user_name,
            created_at=created_at,
            updated_at=updated_at,
        )
        self._session.add(pipeline)
        await self._session.flush()
        return pipeline

    async def get(self, pipeline_id: int) -> Pipeline | None:
        return await self._session.get(Pipeline, pipeline_id)

    async def list_for_deploy(self, deploy_id: int) -> list[Pipeline]:
        stmt = select(Pipeline).where(Pipeline.deploy_id == deploy_id).order_by(Pipeline.id)
        return list((await self._session.execute(stmt)).scalars().all())
