"""
release_orchestrator.services.schemas

Submission and mutation payloads accepted by the deploy service.

Responsibilities:
- Shape validation (types, required fields) via Pydantic.
- Serialize submissions for the immutable `Deploy.body` snapshot.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from release_orchestrator.db.models import DependType


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GroupSpec(_Payload):
    group_index: int = Field(ge=0)
    depend_group_index: int | None = Field(default=None, ge=0)
    depend_type: DependType | None = None


class TargetProject(_Payload):
    project_id: int
    # Fallback only; the project registry name wins when the id is registered.
    project_name: str | None = None
    branch: str = Field(min_length=1)
    tag_prefix: str = Field(min_length=1)


class ProjectSpec(TargetProject):
    group_index: int = Field(ge=0)


class NewFullDeploy(_Payload):
    description: str = ""
    groups: list[GroupSpec] = Field(default_factory=list)
    projects: list[ProjectSpec] = Field(default_factory=list)


class GroupDeployChange(_Payload):
    deploy_id: int
    # None means "create a new group".
    group_id: int | None = None
    group_index: int = Field(ge=0)
    depend_group_index: int | None = Field(default=None, ge=0)
    depend_type: DependType | None = None
    description: str | None = None
    projects: list[TargetProject] = Field(default_factory=list)
