"""
release_orchestrator.api.schemas

Request and response models for the HTTP surface.

Responsibilities:
- Shape run/retry/copy/cancel requests.
- Render ORM rows (deploys, groups, projects, pipelines, jobs) as JSON.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from release_orchestrator.db.models import DependType, DeployStatus, ProjectStatus


class GitLabTargetFields(BaseModel):
    # Fall back to the configured GitLab target when omitted.
    host: str | None = None
    token: str | None = Field(default=None, repr=False)
    scheme: str | None = None


class RemoteTargetRequest(GitLabTargetFields):
    id: int


class RunDeployRequest(RemoteTargetRequest):
    pass


class RetryFetchRequest(RemoteTargetRequest):
    pass


class CopyDeployRequest(BaseModel):
    from_id: int
    description: str | None = None


class CancelDeployRequest(BaseModel):
    id: int


class AliasRequest(BaseModel):
    alias: str = Field(min_length=1)


class RegisterProjectRequest(BaseModel):
    id: int
    name: str = Field(min_length=1)
    alias: str | None = None
    group_id: int | None = None
    branch: str | None = None
    tag_prefix: str | None = None


class ProjectSearchRequest(GitLabTargetFields):
    project_ids: list[int]
    # Omitted: every id matches.
    branch: str | None = None


class _Row(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class DeployOut(_Row):
    id: int
    status: DeployStatus
    description: str
    created_at: datetime
    updated_at: datetime


class GroupOut(_Row):
    id: int
    group_index: int
    depend_group_index: int | None
    depend_type: DependType | None


class ProjectOut(_Row):
    id: int
    group_index: int
    project_id: int
    project_name: str
    branch: str
    tag_prefix: str
    actual_tag: str | None
    pipeline_id: int | None
    status: ProjectStatus


class PipelineOut(_Row):
    id: int
    project_id: int
    status: str
    user_name: str
    created_at: str
    updated_at: str


class JobOut(_Row):
    id: int
    project_id: int
    pipeline_id: int
    name: str
    stage: str
    status: str
    created_at: str
    updated_at: str
    web_url: str


class GroupDetailOut(GroupOut):
    projects: list[ProjectOut] = Field(default_factory=list)


class DeployDetailOut(BaseModel):
    deploy: DeployOut
    body: dict
    groups: list[GroupDetailOut]
    # Flat list in insertion order; the same rows appear under their group.
    projects: list[ProjectOut]
    pipelines: list[PipelineOut]
    jobs: list[JobOut]


class RegisteredProjectOut(_Row):
    id: int
    name: str
    alias: str | None
    group_id: int | None
    branch: str | None
    tag_prefix: str | None
