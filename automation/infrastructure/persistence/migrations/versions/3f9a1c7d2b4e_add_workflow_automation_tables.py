"""add_workflow_automation_tables

Revision ID: 3f9a1c7d2b4e
Revises:
Create Date: 2026-10-19 09:12:41.208317

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3f9a1c7d2b4e"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "automation_workflows",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column(
            "is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False
        ),
        sa.Column("trigger_type", sa.String(length=140), nullable=False),
        sa.Column("condition", sa.JSON(), nullable=True),
        sa.Column("actions", sa.JSON(), nullable=False),
        sa.Column("schedule_interval_minutes", sa.Integer(), nullable=True),
        sa.Column("execution_timeout_seconds", sa.Float(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_workflows_tenant_id", "automation_workflows", ["tenant_id"]
    )
    op.create_index(
        "ix_automation_workflows_trigger_type", "automation_workflows", ["trigger_type"]
    )
    op.create_index(
        "ix_automation_workflows_deleted_at", "automation_workflows", ["deleted_at"]
    )
    op.create_index(
        "ix_automation_workflows_trigger_active",
        "automation_workflows",
        ["trigger_type", "is_active"],
    )

    op.create_table(
        "workflow_executions",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("workflow_id", sa.String(), nullable=False),
        sa.Column("triggered_by", sa.String(length=20), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("trigger_payload", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("status_detail", sa.String(length=64), nullable=True),
        sa.Column("cancel_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "actions_executed", sa.Integer(), server_default=sa.text("0"), nullable=False
        ),
        sa.Column(
            "actions_failed", sa.Integer(), server_default=sa.text("0"), nullable=False
        ),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["workflow_id"], ["automation_workflows.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "status IN ('pending', 'running', 'completed', 'failed', 'cancelled')",
            name="workflow_executions_status_check",
        ),
        sa.CheckConstraint(
            "triggered_by IN ('manual', 'event', 'schedule')",
            name="workflow_executions_triggered_by_check",
        ),
    )
    op.create_index(
        "ix_workflow_executions_tenant_id", "workflow_executions", ["tenant_id"]
    )
    op.create_index(
        "ix_workflow_executions_workflow_id", "workflow_executions", ["workflow_id"]
    )
    op.create_index("ix_workflow_executions_status", "workflow_executions", ["status"])
    op.create_index(
        "ix_workflow_executions_tenant_created",
        "workflow_executions",
        ["tenant_id", "created_at"],
    )
    op.create_index(
        "ix_workflow_executions_workflow_origin_created",
        "workflow_executions",
        ["workflow_id", "triggered_by", "created_at"],
    )

    op.create_table(
        "workflow_action_logs",
        sa.Column("id", sa.String(), nullable=False),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("execution_id", sa.String(), nullable=False),
        sa.Column("action_index", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=64), nullable=False),
        sa.Column("action_config", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("output", sa.JSON(), nullable=True),
        sa.Column("error_code", sa.String(length=64), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(
            ["execution_id"], ["workflow_executions.id"], ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "execution_id",
            "action_index",
            name="uq_workflow_action_logs_execution_index",
        ),
        sa.CheckConstraint(
            "status IN ('succeeded', 'failed', 'skipped')",
            name="workflow_action_logs_status_check",
        ),
    )
    op.create_index(
        "ix_workflow_action_logs_tenant_id", "workflow_action_logs", ["tenant_id"]
    )
    op.create_index(
        "ix_workflow_action_logs_execution_id", "workflow_action_logs", ["execution_id"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_workflow_action_logs_execution_id", table_name="workflow_action_logs")
    op.drop_index("ix_workflow_action_logs_tenant_id", table_name="workflow_action_logs")
    op.drop_table("workflow_action_logs")

    op.drop_index(
        "ix_workflow_executions_workflow_origin_created", table_name="workflow_executions"
    )
    op.drop_index("ix_workflow_executions_tenant_created", table_name="workflow_executions")
    op.drop_index("ix_workflow_executions_status", table_name="workflow_executions")
    op.drop_index("ix_workflow_executions_workflow_id", table_name="workflow_executions")
    op.drop_index("ix_workflow_executions_tenant_id", table_name="workflow_executions")
    op.drop_table("workflow_executions")

    op.drop_index("ix_automation_workflows_trigger_active", table_name="automation_workflows")
    op.drop_index("ix_automation_workflows_deleted_at", table_name="automation_workflows")
    op.drop_index("ix_automation_workflows_trigger_type", table_name="automation_workflows")
    op.drop_index("ix_automation_workflows_tenant_id", table_name="automation_workflows")
    op.drop_table("automation_workflows")
