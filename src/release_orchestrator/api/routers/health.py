"""
release_orchestrator.api.routers.health

Liveness and readiness probes.

Responsibilities:
- `/healthz`: process is up; reports how many deploy runs are in flight.
- `/readyz`: the deploy database answers a trivial query.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from release_orchestrator.api.deps import db_session

router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, str | int]:
    return {"status": "ok", "running_deploys": request.app.state.tasks.running_count()}


@router.get("/readyz")
async def readyz(session: AsyncSession = Depends(db_session)) -> dict[str, str]:
    await session.execute(text("SELECT 1"))
    return {"status": "ready"}
