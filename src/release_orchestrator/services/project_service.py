"""
release_orchestrator.services.project_service

Project registry service.

Responsibilities:
- Register, list, alias and delete known GitLab projects.
- Search a registered project's branches on GitLab.
- Filter a set of project ids down to those carrying a given branch.
"""

from __future__ import annotations

from release_orchestrator.db.models import ProjectInfo
from release_orchestrator.db.store import DeployStore
from release_orchestrator.errors import ConflictError, NotFoundError
from release_orchestrator.gitlab.base import ClientFactory, GitLabTarget
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)


class ProjectRegistryService:
    def __init__(self, *, store: DeployStore, client_factory: ClientFactory) -> None:
        self._store = store
        self._client_factory = client_factory

    async def list_projects(self, *, group_id: int | None = None) -> list[ProjectInfo]:
        async with self._store.reader() as rd:
            return await rd.registry.list_all(group_id=group_id)

    async def register(
        self,
        *,
        project_id: int,
        name: str,
        alias: str | None = None,
        group_id: int | None = None,
        branch: str | None = None,
        tag_prefix: str | None = None,
    ) -> ProjectInfo:
        async with self._store.transaction() as tx:
            if (await tx.registry.names_for([project_id])).get(project_id) is not None:
                raise ConflictError(f"project {project_id} is already registered")
            info = await tx.registry.add(
                project_id=project_id,
                name=name,
                alias=alias,
                group_id=group_id,
                branch=branch,
                tag_prefix=tag_prefix,
            )
        log.info("project_registered", project_id=project_id, name=name)
        return info

    async def set_alias(self, project_id: int, alias: str) -> None:
        async with self._store.transaction() as tx:
            if not await tx.registry.set_alias(project_id, alias):
                raise NotFoundError("project", project_id)
        log.info("project_alias_set", project_id=project_id, alias=alias)

    async def delete(self, project_id: int) -> None:
        async with self._store.transaction() as tx:
            if not await tx.registry.delete(project_id):
                raise NotFoundError("project", project_id)
        log.info("project_deleted", project_id=project_id)

    async def list_branches(
        self, project_id: int, *, target: GitLabTarget, search: str | None = None
    ) -> list[str]:
        async with self._client_factory(target) as client:
            return await client.list_branches(project_id, search)

    async def filter_by_branch(
        self, project_ids: list[int], *, target: GitLabTarget, branch: str | None = None
    ) -> list[int]:
        """
        Keep the ids (in request order) whose repository has `branch`; no branch keeps all.
        """

        if not branch:
            return list(project_ids)
        matched: list[int] = []
        async with self._client_factory(target) as client:
            for project_id in project_ids:
                # The remote search is a substring match; require the exact name.
                if branch in await client.list_branches(project_id, branch):
                    matched.append(project_id)
        log.info(
            "projects_filtered_by_branch",
            branch=branch,
            checked=len(project_ids),
            matched=len(matched),
        )
        return matched
