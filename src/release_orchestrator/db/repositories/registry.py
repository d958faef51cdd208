"""
release_orchestrator.db.repositories.registry

Repository for the canonical project registry (`ProjectInfo`).

Responsibilities:
- Resolve project names for new deploys.
- Back the simple list/alias/delete project endpoints.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from release_orchestrator.db.models import ProjectInfo


class ProjectRegistryRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        project_id: int,
        name: str,
        alias: str | None = None,
        group_id: int | None = None,
        branch: str | None = None,
        tag_prefix: str | None = None,
    ) -> ProjectInfo:
        info = ProjectInfo(
            id=project_id,
            name=name,
            alias=alias,
            group_id=group_id,
            branch=branch,
            tag_prefix=tag_prefix,
        )
        self._session.add(info)
        await self._session.flush()
        return info

    async def names_for(self, project_ids: Iterable[int]) -> dict[int, str]:
        ids = sorted(set(project_ids))
        if not ids:
            return {}
        stmt = select(ProjectInfo.id, ProjectInfo.name).where(ProjectInfo.id.in_(ids))
        return {row.id: row.name for row in (await self._session.execute(stmt)).all()}

    async def list_all(self, *, group_id: int | None = None) -> list[ProjectInfo]:
        stmt = select(ProjectInfo).order_by(ProjectInfo.id)
        if group_id is not None:
            stmt = stmt.where(ProjectInfo.group_id == group_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def set_alias(self, project_id: int, alias: str) -> bool:
        info = await self._session.get(ProjectInfo, project_id)
        if info is None:
            return False
        info.alias = alias
        return True

    async def delete(self, project_id: int) -> bool:
        info = await self._session.get(ProjectInfo, project_id)
        if info is None:
            return False
        await self._session.delete(info)
        return True
