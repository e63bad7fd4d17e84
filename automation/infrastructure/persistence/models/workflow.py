"""Workflow, WorkflowExecution and WorkflowActionLog ORM models."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from automation.infrastructure.persistence.database import Base
from automation.infrastructure.persistence.models.mixins import (
    MultiTenantModel,
    SoftDeleteMultiTenantModel,
)
from automation.shared.enums import (
    ActionLogStatus,
    TriggeredBy,
    WorkflowExecutionStatus,
)


def _in_check(column: str, values: list[str]) -> str:
    return "{} IN ({})".format(
        column, ", ".join("'{}'".format(v.replace("'", "''")) for v in values)
    )


class Workflow(SoftDeleteMultiTenantModel, Base):
    """Workflow definition. Table: automation_workflows. Trigger + condition + ordered actions JSON."""

    __tablename__ = "automation_workflows"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    # 'manual', 'schedule' or 'event:<event-name>'
    trigger_type: Mapped[str] = mapped_column(String(140), nullable=False, index=True)
    condition: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    # [{"index", "type", "params", "timeout_seconds"}], dense indices in list order
    actions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    schedule_interval_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    execution_timeout_seconds: Mapped[float | None] = mapped_column(Float, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    __table_args__ = (
        Index(
            "ix_automation_workflows_trigger_active",
            "trigger_type",
            "is_active",
        ),
    )


class WorkflowExecution(MultiTenantModel, Base):
    """One run of a workflow. Table: workflow_executions. trigger_payload is written once."""

    __tablename__ = "workflow_executions"

    workflow_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("automation_workflows.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    triggered_by: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    trigger_payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WorkflowExecutionStatus.PENDING.value,
        index=True,
    )
    status_detail: Mapped[str | None] = mapped_column(String(64), nullable=True)
    cancel_requested_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    actions_executed: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    actions_failed: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index(
            "ix_workflow_executions_tenant_created",
            "tenant_id",
            "created_at",
        ),
        Index(
            "ix_workflow_executions_workflow_origin_created",
            "workflow_id",
            "triggered_by",
            "created_at",
        ),
        CheckConstraint(
            _in_check("status", WorkflowExecutionStatus.values()),
            name="workflow_executions_status_check",
        ),
        CheckConstraint(
            _in_check("triggered_by", TriggeredBy.values()),
            name="workflow_executions_triggered_by_check",
        ),
    )


class WorkflowActionLog(MultiTenantModel, Base):
    """Outcome of one action in one execution. Table: workflow_action_logs. Append-only."""

    __tablename__ = "workflow_action_logs"

    execution_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow_executions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    action_index: Mapped[int] = mapped_column(Integer, nullable=False)
    action_type: Mapped[str] = mapped_column(String(64), nullable=False)
    # Action spec captured by value at run time.
    action_config: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    output: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(64), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "execution_id",
            "action_index",
            name="uq_workflow_action_logs_execution_index",
        ),
        CheckConstraint(
            _in_check("status", ActionLogStatus.values()),
            name="workflow_action_logs_status_check",
        ),
    )
