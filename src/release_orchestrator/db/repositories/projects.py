"""
release_orchestrator.db.repositories.projects

Repository for `DeployProject` entities (projects inside a deploy).

Responsibilities:
- Insert pending projects and query them in insertion order.
- Record runtime fields (tag, pipeline, status) written by the engine.
- Bulk operations used by cancel and group reconciliation.
"""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from release_orchestrator.db.models import DeployProject, ProjectStatus
from release_orchestrator.errors import NotFoundError


class DeployProjectRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add(
        self,
        *,
        deploy_id: int,
        group_index: int,
        project_id: int,
        project_name: str,
        branch: str,
        tag_prefix: str,
    ) -> DeployProject:
        # Runtime fields always start empty, whatever the caller submitted.
        project = DeployProject(
            deploy_id=deploy_id,
            group_index=group_index,
            project_id=project_id,
            project_name=project_name,
            branch=branch,
            tag_prefix=tag_prefix,
            actual_tag=None,
            pipeline_id=None,
            status=ProjectStatus.pending,
        )
        self._session.add(project)
        await self._session.flush()
        return project

    async def list_for_deploy(self, deploy_id: int) -> list[DeployProject]:
        stmt = (
            select(DeployProject)
            .where(DeployProject.deploy_id == deploy_id)
            .order_by(DeployProject.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def list_for_group(self, deploy_id: int, group_index: int) -> list[DeployProject]:
        stmt = (
            select(DeployProject)
            .where(DeployProject.deploy_id == deploy_id, DeployProject.group_index == group_index)
            .order_by(DeployProject.id)
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def _require(self, row_id: int) -> DeployProject:
        project = await self._session.get(DeployProject, row_id)
        if project is None:
            raise NotFoundError("deploy project", row_id)
        return project

    async def set_status(self, row_id: int, status: ProjectStatus) -> None:
        project = await self._require(row_id)
        project.status = status

    async def record_tag(self, row_id: int, tag: str) -> None:
        project = await self._require(row_id)
        project.actual_tag = tag

    async def mark_triggered(self, row_id: int, *, actual_tag: str, pipeline_id: int) -> None:
        project = await self._require(row_id)
        project.actual_tag = actual_tag
        project.pipeline_id = pipeline_id
        project.status = ProjectStatus.running

    async def update_target(
        self, project: DeployProject, *, group_index: int, branch: str, tag_prefix: str
    ) -> None:
        project.group_index = group_index
        project.branch = branch
        project.tag_prefix = tag_prefix
        await self._session.flush()

    async def set_status_for_deploy(self, deploy_id: int, status: ProjectStatus) -> None:
        stmt = (
            update(DeployProject)
            .where(DeployProject.deploy_id == deploy_id)
            .values(status=status)
        )
        await self._session.execute(stmt)

    async def delete_many(self, row_ids: Iterable[int]) -> None:
        ids = list(row_ids)
        if not ids:
            return
        await self._session.execute(delete(DeployProject).where(DeployProject.id.in_(ids)))


# --- Module Notes -----------------------------------------------------------
# `id` doubles as insertion order; the orchestrator runs projects of a group in that order.
