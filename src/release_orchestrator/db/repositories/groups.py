from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from release_orchestrator.db.models import DependType, DeployGroup


class GroupRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        deploy_id: int,
        group_index: int,
        depend_group_index: int | None = None,
        depend_type: DependType | None = None,
    ) -> DeployGroup:
        group = DeployGroup(
            deploy_id=deploy_id,
            group_index=group_index,
            depend_group_index=depend_group_index,
            depend_type=depend_type,
        )
        self._session.add(group)
        await self._session.flush()
        return group

    async def get(self, group_id: int) -> DeployGroup | None:
        return await self._session.get(DeployGroup, group_id)

    async def find_by_index(self, deploy_id: int, group_index: int) -> DeployGroup | None:
        stmt = select(DeployGroup).where(
            DeployGroup.deploy_id == deploy_id, DeployGroup.group_index == group_index
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def list_for_deploy(self, deploy_id: int) -> list[DeployGroup]:
        # Execution order.
        stmt = (
            select(DeployGroup)
            .where(DeployGroup.deploy_id == deploy_id)
            .order_by(DeployGroup.group_index, DeployGroup.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def update(
        self,
        group: DeployGroup,
        *,
        group_index: int,
        depend_group_index: int | None,
        depend_type: DependType | None,
    ) -> None:
        group.group_index = group_index
        group.depend_group_index = depend_group_index
        group.depend_type = depend_type
        await self._session.flush()
