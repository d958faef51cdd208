"""
release_orchestrator.api.routers.projects

Project registry endpoints.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request

from release_orchestrator.api.deps import client_factory_dep, resolve_target, settings_dep, store_dep
from release_orchestrator.api.schemas import (
    AliasRequest,
    ProjectSearchRequest,
    RegisteredProjectOut,
    RegisterProjectRequest,
    RemoteTargetRequest,
)
from release_orchestrator.db.store import DeployStore
from release_orchestrator.gitlab.base import ClientFactory
from release_orchestrator.services.project_service import ProjectRegistryService
from release_orchestrator.settings import Settings

router = APIRouter(prefix="/projects", tags=["projects"])


def registry_service_dep(
    store: DeployStore = Depends(store_dep),
    client_factory: ClientFactory = Depends(client_factory_dep),
) -> ProjectRegistryService:
    return ProjectRegistryService(store=store, client_factory=client_factory)


@router.get("", response_model=list[RegisteredProjectOut])
async def list_projects(
    group_id: int | None = Query(default=None),
    svc: ProjectRegistryService = Depends(registry_service_dep),
) -> list[RegisteredProjectOut]:
    rows = await svc.list_projects(group_id=group_id)
    return [RegisteredProjectOut.model_validate(r) for r in rows]


@router.post("", status_code=201, response_model=RegisteredProjectOut)
async def register_project(
    body: RegisterProjectRequest,
    svc: ProjectRegistryService = Depends(registry_service_dep),
) -> RegisteredProjectOut:
    info = await svc.register(
        project_id=body.id,
        name=body.name,
        alias=body.alias,
        group_id=body.group_id,
        branch=body.branch,
        tag_prefix=body.tag_prefix,
    )
    return RegisteredProjectOut.model_validate(info)


@router.post("/search")
async def search_projects(
    body: ProjectSearchRequest,
    svc: ProjectRegistryService = Depends(registry_service_dep),
    settings: Settings = Depends(settings_dep),
) -> list[int]:
    return await svc.filter_by_branch(
        body.project_ids, target=resolve_target(body, settings), branch=body.branch
    )


@router.post("/{project_id}/alias")
async def set_alias(
    project_id: int,
    body: AliasRequest,
    svc: ProjectRegistryService = Depends(registry_service_dep),
) -> dict[str, Any]:
    await svc.set_alias(project_id, body.alias)
    return {"ok": True}


@router.delete("/{project_id}")
async def delete_project(
    project_id: int, svc: ProjectRegistryService = Depends(registry_service_dep)
) -> dict[str, Any]:
    await svc.delete(project_id)
    return {"ok": True}


@router.get("/{project_id}/branches")
async def list_branches(
    request: Request,
    project_id: int,
    branch: str | None = Query(default=None),
    host: str | None = Query(default=None),
    scheme: str | None = Query(default=None),
    svc: ProjectRegistryService = Depends(registry_service_dep),
    settings: Settings = Depends(settings_dep),
) -> dict[str, Any]:
    # Tokens never travel in query strings; accept one via header instead.
    token = request.headers.get("x-gitlab-token")
    target = resolve_target(
        RemoteTargetRequest(id=project_id, host=host, token=token, scheme=scheme), settings
    )
    branches = await svc.list_branches(project_id, target=target, search=branch)
    return {"project_id": project_id, "branches": branches}
