"""
release_orchestrator.api.routers.deploys

Deploy submission, control and read endpoints.

Responsibilities:
- Create, copy, change and cancel deploys (delegated to `DeployService`).
- Start a deploy in the background and run one synchronous status refresh.
- Serve the deploy list and full deploy detail.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from release_orchestrator.api.deps import (
    deploy_service_dep,
    orchestrator_dep,
    resolve_target,
    settings_dep,
)
from release_orchestrator.api.schemas import (
    CancelDeployRequest,
    CopyDeployRequest,
    DeployDetailOut,
    DeployOut,
    GroupDetailOut,
    GroupOut,
    JobOut,
    PipelineOut,
    ProjectOut,
    RetryFetchRequest,
    RunDeployRequest,
)
from release_orchestrator.engine.orchestrator import DeployOrchestrator
from release_orchestrator.services.deploy_service import DeployService
from release_orchestrator.services.schemas import GroupDeployChange, NewFullDeploy
from release_orchestrator.settings import Settings

router = APIRouter(tags=["deploys"])


@router.get("/deploys", response_model=list[DeployOut])
async def list_deploys(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=500),
    svc: DeployService = Depends(deploy_service_dep),
) -> list[DeployOut]:
    rows = await svc.list_deploys(offset=offset, limit=limit)
    return [DeployOut.model_validate(r) for r in rows]


@router.get("/deploy/{deploy_id}", response_model=DeployDetailOut)
async def get_deploy(
    deploy_id: int, svc: DeployService = Depends(deploy_service_dep)
) -> DeployDetailOut:
    detail = await svc.get_deploy_detail(deploy_id)
    return DeployDetailOut(
        deploy=DeployOut.model_validate(detail.deploy),
        body=detail.deploy.body or {},
        groups=[
            GroupDetailOut(
                **GroupOut.model_validate(g).model_dump(),
                projects=[ProjectOut.model_validate(p) for p in detail.projects_in(g.group_index)],
            )
            for g in detail.groups
        ],
        projects=[ProjectOut.model_validate(p) for p in detail.projects],
        pipelines=[PipelineOut.model_validate(p) for p in detail.pipelines],
        jobs=[JobOut.model_validate(j) for j in detail.jobs],
    )


@router.post("/deploy/create")
async def create_deploy(
    body: NewFullDeploy, svc: DeployService = Depends(deploy_service_dep)
) -> dict[str, Any]:
    deploy_id = await svc.add_full_deploy(body)
    return {"id": deploy_id}


@router.post("/deploy/run", status_code=202)
async def run_deploy(
    body: RunDeployRequest,
    orchestrator: DeployOrchestrator = Depends(orchestrator_dep),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    target = resolve_target(body, settings)
    await orchestrator.start_deploy(body.id, target=target)
    return {"ok": True, "id": body.id}


@router.post("/deploy/retry")
async def retry_fetch(
    body: RetryFetchRequest,
    orchestrator: DeployOrchestrator = Depends(orchestrator_dep),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    target = resolve_target(body, settings)
    outcome = await orchestrator.retry_fetch(body.id, target=target)
    return {"ok": True, "id": body.id, "outcome": outcome.value}


@router.post("/deploy/copy")
async def copy_deploy(
    body: CopyDeployRequest, svc: DeployService = Depends(deploy_service_dep)
) -> dict[str, Any]:
    deploy_id = await svc.copy_deploy_from_old(body.from_id, body.description)
    return {"id": deploy_id}


@router.post("/deploy/cancel")
async def cancel_deploy(
    body: CancelDeployRequest, svc: DeployService = Depends(deploy_service_dep)
) -> dict[str, Any]:
    await svc.cancel_deploy(body.id)
    return {"ok": True}


@router.post("/deploy/group/change")
async def change_group(
    body: GroupDeployChange, svc: DeployService = Depends(deploy_service_dep)
) -> dict[str, Any]:
    await svc.change_deploy_group_info(body)
    return {"ok": True}
