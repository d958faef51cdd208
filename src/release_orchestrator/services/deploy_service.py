"""
release_orchestrator.services.deploy_service

Deploy submission and mutation service (transaction owner).

Responsibilities:
- Create a deploy with its groups and projects atomically.
- Copy a previous deploy into a fresh, re-runnable one.
- Change one group's ordering/dependency and reconcile its projects.
- Cancel a deploy (local bookkeeping only).
- Read APIs: deploy list and full deploy detail.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from release_orchestrator.db.models import (
    Deploy,
    DeployGroup,
    DeployProject,
    DeployStatus,
    Job,
    Pipeline,
    ProjectStatus,
)
from release_orchestrator.db.store import DeployStore, StoreSession
from release_orchestrator.engine.events import DeployEventType, Notifier, NullNotifier, publish
from release_orchestrator.errors import ConflictError, NotFoundError, ValidationError
from release_orchestrator.observability.logging import get_logger
from release_orchestrator.services.schemas import GroupDeployChange, NewFullDeploy, TargetProject

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class DeployDetail:
    deploy: Deploy
    groups: list[DeployGroup]
    projects: list[DeployProject]
    pipelines: list[Pipeline]
    jobs: list[Job]

    def projects_in(self, group_index: int) -> list[DeployProject]:
        return [p for p in self.projects if p.group_index == group_index]


class DeployService:
    def __init__(self, *, store: DeployStore, notifier: Notifier | None = None) -> None:
        self._store = store
        self._notifier = notifier or NullNotifier()

    async def add_full_deploy(self, payload: NewFullDeploy) -> int:
        _validate_full_deploy(payload)

        async with self._store.transaction() as tx:
            deploy = await tx.deploys.create(
                description=payload.description,
                body=payload.model_dump(mode="json"),
            )
            for g in payload.groups:
                await tx.groups.add(
                    deploy_id=deploy.id,
                    group_index=g.group_index,
                    depend_group_index=g.depend_group_index,
                    depend_type=g.depend_type,
                )
            names = await tx.registry.names_for(p.project_id for p in payload.projects)
            for p in payload.projects:
                await tx.projects.add(
                    deploy_id=deploy.id,
                    group_index=p.group_index,
                    project_id=p.project_id,
                    project_name=names.get(p.project_id) or p.project_name or "",
                    branch=p.branch,
                    tag_prefix=p.tag_prefix,
                )

        log.info(
            "deploy_created",
            deploy_id=deploy.id,
            groups=len(payload.groups),
            projects=len(payload.projects),
        )
        return deploy.id

    async def copy_deploy_from_old(self, from_id: int, description: str | None = None) -> int:
        async with self._store.transaction() as tx:
            old = await tx.deploys.require(from_id)
            new = await tx.deploys.create(
                description=description if description is not None else old.description,
                body=dict(old.body or {}),
            )
            for g in await tx.groups.list_for_deploy(from_id):
                await tx.groups.add(
                    deploy_id=new.id,
                    group_index=g.group_index,
                    depend_group_index=g.depend_group_index,
                    depend_type=g.depend_type,
                )
            # `add` resets actual_tag/pipeline_id/status, so the copy is re-runnable.
            for p in await tx.projects.list_for_deploy(from_id):
                await tx.projects.add(
                    deploy_id=new.id,
                    group_index=p.group_index,
                    project_id=p.project_id,
                    project_name=p.project_name,
                    branch=p.branch,
                    tag_prefix=p.tag_prefix,
                )

        log.info("deploy_copied", from_id=from_id, deploy_id=new.id)
        return new.id

    async def change_deploy_group_info(self, change: GroupDeployChange) -> None:
        _validate_group_change(change)

        if change.description is not None:
            async with self._store.transaction() as tx:
                await tx.deploys.set_description(change.deploy_id, change.description)
            log.info("deploy_description_updated", deploy_id=change.deploy_id)

        async with self._store.transaction() as tx:
            await tx.deploys.require(change.deploy_id)
            clash = await tx.groups.find_by_index(change.deploy_id, change.group_index)

            if change.group_id is None:
                if clash is not None:
                    raise ConflictError(
                        f"group with index {change.group_index} already exists "
                        f"for deploy {change.deploy_id}"
                    )
                await tx.groups.add(
                    deploy_id=change.deploy_id,
                    group_index=change.group_index,
                    depend_group_index=change.depend_group_index,
                    depend_type=change.depend_type,
                )
                current: list[DeployProject] = []
            else:
                group = await tx.groups.get(change.group_id)
                if group is None or group.deploy_id != change.deploy_id:
                    raise NotFoundError("group", change.group_id)
                if clash is not None and clash.id != group.id:
                    raise ConflictError(
                        f"group index {change.group_index} is taken by group {clash.id}"
                    )
                current = await tx.projects.list_for_group(change.deploy_id, group.group_index)
                await tx.groups.update(
                    group,
                    group_index=change.group_index,
                    depend_group_index=change.depend_group_index,
                    depend_type=change.depend_type,
                )

            await self._reconcile_projects(tx, change, current)

        log.info(
            "deploy_group_changed",
            deploy_id=change.deploy_id,
            group_id=change.group_id,
            group_index=change.group_index,
        )

    async def _reconcile_projects(
        self, tx: StoreSession, change: GroupDeployChange, current: list[DeployProject]
    ) -> None:
        targets = {p.project_id: p for p in change.projects}
        existing = {p.project_id: p for p in current}

        for project_id, row in existing.items():
            target = targets.get(project_id)
            if target is not None:
                await tx.projects.update_target(
                    row,
                    group_index=change.group_index,
                    branch=target.branch,
                    tag_prefix=target.tag_prefix,
                )
        await tx.projects.delete_many(
            row.id for project_id, row in existing.items() if project_id not in targets
        )

        added: list[TargetProject] = [p for p in change.projects if p.project_id not in existing]
        names = await tx.registry.names_for(p.project_id for p in added)
        for p in added:
            await tx.projects.add(
                deploy_id=change.deploy_id,
                group_index=change.group_index,
                project_id=p.project_id,
                project_name=names.get(p.project_id) or p.project_name or "",
                branch=p.branch,
                tag_prefix=p.tag_prefix,
            )

    async def cancel_deploy(self, deploy_id: int) -> None:
        async with self._store.transaction() as tx:
            await tx.deploys.set_status(deploy_id, DeployStatus.canceled)
            await tx.projects.set_status_for_deploy(deploy_id, ProjectStatus.canceled)
        log.info("deploy_canceled", deploy_id=deploy_id)
        await publish(self._notifier, deploy_id, DeployEventType.deploy_canceled)

    async def list_deploys(self, *, offset: int = 0, limit: int = 50) -> list[Deploy]:
        async with self._store.reader() as rd:
            return await rd.deploys.list_page(offset=offset, limit=limit)

    async def get_deploy_detail(self, deploy_id: int) -> DeployDetail:
        async with self._store.reader() as rd:
            deploy = await rd.deploys.require(deploy_id)
            return DeployDetail(
                deploy=deploy,
                groups=await rd.groups.list_for_deploy(deploy_id),
                projects=await rd.projects.list_for_deploy(deploy_id),
                pipelines=await rd.pipelines.list_for_deploy(deploy_id),
                jobs=await rd.jobs.list_for_deploy(deploy_id),
            )


def _validate_full_deploy(payload: NewFullDeploy) -> None:
    counts = Counter(g.group_index for g in payload.groups)
    dupes = sorted(i for i, n in counts.items() if n > 1)
    if dupes:
        raise ValidationError(f"duplicate group_index values: {dupes}")

    for g in payload.groups:
        _validate_dependency(g.group_index, g.depend_group_index, g.depend_type)

    known = set(counts)
    for p in payload.projects:
        if p.group_index not in known:
            raise ValidationError(
                f"project {p.project_id} references unknown group_index {p.group_index}"
            )
    _reject_duplicate_projects(((p.group_index, p.project_id) for p in payload.projects))


def _validate_group_change(change: GroupDeployChange) -> None:
    _validate_dependency(change.group_index, change.depend_group_index, change.depend_type)
    _reject_duplicate_projects(((change.group_index, p.project_id) for p in change.projects))


def _validate_dependency(group_index: int, depend_group_index: int | None, depend_type) -> None:
    if depend_type is None:
        return
    if depend_group_index is None:
        raise ValidationError(f"group {group_index} sets depend_type without depend_group_index")
    # Groups run in ascending order, so a gate on the same or a later group never opens.
    if depend_group_index >= group_index:
        raise ValidationError(
            f"group {group_index} can only depend on an earlier group, got {depend_group_index}"
        )


def _reject_duplicate_projects(keys: Iterable[tuple[int, int]]) -> None:
    counts = Counter(keys)
    dupes = sorted(k for k, n in counts.items() if n > 1)
    if dupes:
        raise ValidationError(f"duplicate project_id within a group: {dupes}")


# --- Module Notes -----------------------------------------------------------
# Run/retry live on `engine.orchestrator.DeployOrchestrator`; this service never talks to
# GitLab.
