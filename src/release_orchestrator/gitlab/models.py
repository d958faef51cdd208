"""
release_orchestrator.gitlab.models

Response models for the subset of the GitLab API the engine reads.

Responsibilities:
- Parse pipeline/job payloads, ignoring fields we do not mirror.
- Normalize missing values so callers never branch on None.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class _RemoteModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class PipelineUser(_RemoteModel):
    username: str | None = None


class PipelineRef(_RemoteModel):
    id: int


class PipelineDetail(_RemoteModel):
    id: int | None = None
    status: str | None = None
    user: PipelineUser | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def user_name(self) -> str:
        if self.user is None:
            return ""
        return self.user.username or ""

    @property
    def normalized_status(self) -> str:
        return (self.status or "").lower()


class RemoteJob(_RemoteModel):
    id: int
    name: str | None = None
    stage: str | None = None
    status: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    finished_at: str | None = None
    web_url: str | None = None

    @property
    def last_update(self) -> str:
        # Finished jobs report `finished_at`; running ones only `updated_at`.
        return self.finished_at or self.updated_at or ""


class Branch(_RemoteModel):
    name: str | None = None
