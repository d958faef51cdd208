"""
release_orchestrator.db.models

Persistence schema for deploys and their cached remote CI state.

Responsibilities:
- Define ORM models:
  - Deploy: one release request and its immutable submission body
  - DeployGroup: ordered, optionally gated batch inside a deploy
  - DeployProject: one release unit (project/branch/tag prefix) inside a group
  - Pipeline / Job: local mirror of remote CI state, keyed by remote ids
  - ProjectInfo: canonical project registry used for name resolution
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Enum, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from release_orchestrator.db.base import Base


def _utcnow() -> datetime:
    # Naive UTC keeps SQLite and Postgres round-trips identical.
    return datetime.now(UTC).replace(tzinfo=None)


class DeployStatus(enum.StrEnum):
    pending = "pending"
    running = "running"
    success = "success"
    failed = "failed"
    canceled = "canceled"


class ProjectStatus(enum.StrEnum):
    pending = "pending"
    running = "running"
    success = "success"
    failed = "failed"
    canceled = "canceled"


class DependType(enum.StrEnum):
    # Value is the gate; the gating stage substring lives in `engine.waiter`.
    pre_build_all = "pre_build_all"
    pre_deploy_all = "pre_deploy_all"


class Deploy(Base):
    __tablename__ = "deploys"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    status: Mapped[DeployStatus] = mapped_column(Enum(DeployStatus), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    # Original submission, kept verbatim for copy/replay.
    body: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)


class DeployGroup(Base):
    __tablename__ = "deploy_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deploy_id: Mapped[int] = mapped_column(ForeignKey("deploys.id"), nullable=False, index=True)
    group_index: Mapped[int] = mapped_column(Integer, nullable=False)
    depend_group_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    depend_type: Mapped[DependType | None] = mapped_column(Enum(DependType), nullable=True)

    __table_args__ = (UniqueConstraint("deploy_id", "group_index", name="uq_group_deploy_index"),)


class DeployProject(Base):
    __tablename__ = "deploy_projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deploy_id: Mapped[int] = mapped_column(ForeignKey("deploys.id"), nullable=False)
    group_index: Mapped[int] = mapped_column(Integer, nullable=False)

    project_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    project_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    branch: Mapped[str] = mapped_column(String(256), nullable=False)
    tag_prefix: Mapped[str] = mapped_column(String(128), nullable=False)

    # Runtime fields: written by the project runner, converged by the poller.
    actual_tag: Mapped[str | None] = mapped_column(String(256), nullable=True)
    pipeline_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[ProjectStatus] = mapped_column(Enum(ProjectStatus), nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (Index("ix_deploy_projects_deploy_group", "deploy_id", "group_index"),)


class Pipeline(Base):
    __tablename__ = "pipelines"

    # Remote pipeline id; never generated locally.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    deploy_id: Mapped[int] = mapped_column(ForeignKey("deploys.id"), nullable=False, index=True)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    user_name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    # Remote timestamps are mirrored as received.
    created_at: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    updated_at: Mapped[str] = mapped_column(String(64), nullable=False, default="")


class Job(Base):
    __tablename__ = "jobs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    deploy_id: Mapped[int] = mapped_column(ForeignKey("deploys.id"), nullable=False)
    project_id: Mapped[int] = mapped_column(Integer, nullable=False)
    pipeline_id: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    stage: Mapped[str] = mapped_column(String(256), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    created_at: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    updated_at: Mapped[str] = mapped_column(String(64), nullable=False, default="")
    web_url: Mapped[str] = mapped_column(Text, nullable=False, default="")

    __table_args__ = (Index("ix_jobs_deploy_pipeline", "deploy_id", "pipeline_id"),)


class ProjectInfo(Base):
    __tablename__ = "project_registry"

    # GitLab project id.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    alias: Mapped[str | None] = mapped_column(String(256), nullable=True)
    group_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    branch: Mapped[str | None] = mapped_column(String(256), nullable=True)
    tag_prefix: Mapped[str | None] = mapped_column(String(128), nullable=True)


# --- Module Notes -----------------------------------------------------------
# Pipeline and Job rows are a cache of GitLab; the remote system stays authoritative and
# every poll round overwrites them.
