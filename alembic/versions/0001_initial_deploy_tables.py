"""initial deploy tables

Revision ID: 0001_initial_deploy_tables
Revises:
Create Date: 2026-10-18 00:00:00
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_deploy_tables"
down_revision = None
branch_labels = None
depends_on = None

_run_status = ("pending", "running", "success", "failed", "canceled")
deploy_status = sa.Enum(*_run_status, name="deploystatus")
project_status = sa.Enum(*_run_status, name="projectstatus")
depend_type = sa.Enum("pre_build_all", "pre_deploy_all", name="dependtype")


def upgrade() -> None:
    op.create_table(
        "deploys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("status", deploy_status, nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("body", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_deploys_status", "deploys", ["status"])

    op.create_table(
        "deploy_groups",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deploy_id", sa.Integer(), sa.ForeignKey("deploys.id"), nullable=False),
        sa.Column("group_index", sa.Integer(), nullable=False),
        sa.Column("depend_group_index", sa.Integer(), nullable=True),
        sa.Column("depend_type", depend_type, nullable=True),
        sa.UniqueConstraint("deploy_id", "group_index", name="uq_group_deploy_index"),
    )
    op.create_index("ix_deploy_groups_deploy_id", "deploy_groups", ["deploy_id"])

    op.create_table(
        "deploy_projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("deploy_id", sa.Integer(), sa.ForeignKey("deploys.id"), nullable=False),
        sa.Column("group_index", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("project_name", sa.String(256), nullable=False),
        sa.Column("branch", sa.String(256), nullable=False),
        sa.Column("tag_prefix", sa.String(128), nullable=False),
        sa.Column("actual_tag", sa.String(256), nullable=True),
        sa.Column("pipeline_id", sa.Integer(), nullable=True),
        sa.Column("status", project_status, nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_deploy_projects_project_id", "deploy_projects", ["project_id"])
    op.create_index(
        "ix_deploy_projects_deploy_group", "deploy_projects", ["deploy_id", "group_index"]
    )

    op.create_table(
        "pipelines",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("deploy_id", sa.Integer(), sa.ForeignKey("deploys.id"), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("user_name", sa.String(256), nullable=False),
        sa.Column("created_at", sa.String(64), nullable=False),
        sa.Column("updated_at", sa.String(64), nullable=False),
    )
    op.create_index("ix_pipelines_deploy_id", "pipelines", ["deploy_id"])

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("deploy_id", sa.Integer(), sa.ForeignKey("deploys.id"), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("pipeline_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("stage", sa.String(256), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("created_at", sa.String(64), nullable=False),
        sa.Column("updated_at", sa.String(64), nullable=False),
        sa.Column("web_url", sa.Text(), nullable=False),
    )
    op.create_index("ix_jobs_deploy_pipeline", "jobs", ["deploy_id", "pipeline_id"])

    op.create_table(
        "project_registry",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("alias", sa.String(256), nullable=True),
        sa.Column("group_id", sa.Integer(), nullable=True),
        sa.Column("branch", sa.String(256), nullable=True),
        sa.Column("tag_prefix", sa.String(128), nullable=True),
    )
    op.create_index("ix_project_registry_group_id", "project_registry", ["group_id"])


def downgrade() -> None:
    op.drop_table("project_registry")
    op.drop_table("jobs")
    op.drop_table("pipelines")
    op.drop_table("deploy_projects")
    op.drop_table("deploy_groups")
    op.drop_table("deploys")
    deploy_status.drop(op.get_bind(), checkfirst=True)
    project_status.drop(op.get_bind(), checkfirst=True)
    depend_type.drop(op.get_bind(), checkfirst=True)
