"""Initial schema: users, workspaces, membership, invites, projects, tasks.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_initial_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _uuid() -> postgresql.UUID:
    return postgresql.UUID(as_uuid=True)


def _ts(name: str, nullable: bool = False, default: bool = True) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=nullable,
        server_default=sa.text("now()") if default else None,
    )


def upgrade() -> None:
    # users
    op.create_table(
        "users",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("verification_token", sa.Text(), nullable=True),
        _ts("verification_expires", nullable=True, default=False),
        sa.Column("password_reset_token", sa.Text(), nullable=True),
        _ts("password_reset_expires", nullable=True, default=False),
        _ts("password_changed_at", nullable=True, default=False),
        sa.Column("provider", sa.Text(), nullable=True),
        sa.Column("provider_id", sa.Text(), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        sa.UniqueConstraint("provider", "provider_id", name="uq_users_provider_identity"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_verification_token", "users", ["verification_token"])
    op.create_index("ix_users_password_reset_token", "users", ["password_reset_token"])

    # workspaces
    op.create_table(
        "workspaces",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("image", sa.Text(), nullable=True),
        sa.Column(
            "owner_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_workspaces_name", "workspaces", ["name"])
    op.create_index("ix_workspaces_owner_id", "workspaces", ["owner_id"])

    # workspace_members
    op.create_table(
        "workspace_members",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column(
            "user_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "workspace_id",
            _uuid(),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("role", sa.Text(), nullable=False, server_default="MEMBER"),
        _ts("created_at"),
        sa.UniqueConstraint("user_id", "workspace_id", name="uq_workspace_members_user_workspace"),
        sa.CheckConstraint("role IN ('ADMIN', 'MEMBER')", name="ck_workspace_members_role"),
    )
    op.create_index("ix_workspace_members_user_id", "workspace_members", ["user_id"])
    op.create_index("ix_workspace_members_workspace_id", "workspace_members", ["workspace_id"])

    # workspace_invites
    op.create_table(
        "workspace_invites",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("role", sa.Text(), nullable=False, server_default="MEMBER"),
        sa.Column("token", sa.Text(), nullable=False),
        _ts("expires", default=False),
        sa.Column(
            "workspace_id",
            _uuid(),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "invited_by", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True
        ),
        _ts("created_at"),
        sa.UniqueConstraint("email", "workspace_id", name="uq_workspace_invites_email_workspace"),
        sa.CheckConstraint("role IN ('ADMIN', 'MEMBER')", name="ck_workspace_invites_role"),
    )
    op.create_index("ix_workspace_invites_email", "workspace_invites", ["email"])
    op.create_index("ix_workspace_invites_token", "workspace_invites", ["token"])
    op.create_index("ix_workspace_invites_expires", "workspace_invites", ["expires"])
    op.create_index("ix_workspace_invites_workspace_id", "workspace_invites", ["workspace_id"])

    # projects
    op.create_table(
        "projects",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column(
            "workspace_id",
            _uuid(),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _ts("start_date", nullable=True, default=False),
        _ts("end_date", nullable=True, default=False),
        sa.Column(
            "creator_id", _uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_projects_workspace_id", "projects", ["workspace_id"])

    # tasks
    op.create_table(
        "tasks",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column(
            "project_id", _uuid(), sa.ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "parent_task_id", _uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), nullable=False, server_default="TODO"),
        sa.Column("priority", sa.Text(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False, server_default="[]"),
        _ts("start_date", nullable=True, default=False),
        _ts("due_date", nullable=True, default=False),
        sa.Column("points", sa.Integer(), nullable=True),
        sa.Column(
            "creator_id", _uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        _ts("created_at"),
        _ts("updated_at"),
        sa.CheckConstraint(
            "status IN ('TODO', 'IN_PROGRESS', 'REVIEW', 'DONE', 'CANCELED')",
            name="ck_tasks_status",
        ),
        sa.CheckConstraint(
            "priority IS NULL OR priority IN ('URGENT', 'HIGH', 'NORMAL', 'LOW')",
            name="ck_tasks_priority",
        ),
        sa.CheckConstraint("parent_task_id IS NULL OR parent_task_id <> id", name="ck_tasks_not_own_parent"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_parent_task_id", "tasks", ["parent_task_id"])
    op.create_index("ix_tasks_project_status", "tasks", ["project_id", "status"])

    # task_assignments
    op.create_table(
        "task_assignments",
        sa.Column(
            "task_id", _uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column(
            "user_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
        ),
        _ts("assigned_at"),
    )

    # task_comments
    op.create_table(
        "task_comments",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column(
            "task_id", _uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "user_id", _uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("content", sa.Text(), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_task_comments_task_id", "task_comments", ["task_id"])
    op.create_index("ix_task_comments_user_id", "task_comments", ["user_id"])

    # task_attachments
    op.create_table(
        "task_attachments",
        sa.Column("id", _uuid(), primary_key=True),
        sa.Column(
            "task_id", _uuid(), sa.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("file_url", sa.Text(), nullable=False),
        sa.Column("file_name", sa.Text(), nullable=True),
        sa.Column(
            "uploaded_by", _uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True
        ),
        _ts("created_at"),
    )
    op.create_index("ix_task_attachments_task_id", "task_attachments", ["task_id"])


def downgrade() -> None:
    for table in (
        "task_attachments",
        "task_comments",
        "task_assignments",
        "tasks",
        "projects",
        "workspace_invites",
        "workspace_members",
        "workspaces",
        "users",
    ):
        op.drop_table(table)
