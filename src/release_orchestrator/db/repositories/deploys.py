"""
release_orchestrator.db.repositories.deploys

Repository for `Deploy` entities.

Responsibilities:
- Create deploys from a submission body.
- Fetch single deploys and newest-first pages.
- Apply status/description updates.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from release_orchestrator.db.models import Deploy, DeployStatus
from release_orchestrator.errors import NotFoundError


class DeployRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, *, description: str, body: dict[str, Any]) -> Deploy:
        deploy = Deploy(status=DeployStatus.pending, description=description, body=body)
        self._session.add(deploy)
        await self._session.flush()
        return deploy

    async def get(self, deploy_id: int) -> Deploy | None:
        return await self._session.get(Deploy, deploy_id)

    async def require(self, deploy_id: int) -> Deploy:
        deploy = await self.get(deploy_id)
        if deploy is None:
            raise NotFoundError("deploy", deploy_id)
        return deploy

    async def list_page(self, *, offset: int = 0, limit: int = 50) -> list[Deploy]:
        stmt = select(Deploy).order_by(desc(Deploy.id)).offset(offset).limit(limit)
        return list((await self._session.execute(stmt)).scalars().all())

    async def set_status(self, deploy_id: int, status: DeployStatus) -> None:
        # Last writer wins: only one orchestrator/poller pair touches a deploy at a time.
        deploy = await self.require(deploy_id)
        deploy.status = status

    async def set_description(self, deploy_id: int, description: str) -> None:
        deploy = await self.require(deploy_id)
        deploy.description = description
