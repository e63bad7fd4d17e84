"""Workflow, WorkflowExecution and WorkflowActionLog repositories.

Repositories work on a caller-owned session and return domain entities or
application DTOs. Every execution status change is a single conditional
UPDATE ... WHERE status = <expected> RETURNING, so concurrent workers see
exactly one winner.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from automation.application.dtos.execution import (
    ActionLogCreate,
    ActionLogResult,
    ExecutionCreate,
    ExecutionFilters,
    ExecutionOutcome,
    ExecutionResult,
)
from automation.domain.entities.workflow import ActionSpec, WorkflowEntity
from automation.infrastructure.persistence.models.workflow import (
    Workflow,
    WorkflowActionLog,
    WorkflowExecution,
)
from automation.infrastructure.persistence.repositories.base import BaseRepository
from automation.shared.enums import (
    ActionLogStatus,
    ExecutionStatusDetail,
    TriggeredBy,
    WorkflowExecutionStatus,
)
from automation.shared.utils.datetime import ensure_utc


def _to_action_spec(raw: dict[str, Any], position: int) -> ActionSpec:
    return ActionSpec(
        index=int(raw.get("index", position)),
        type=str(raw.get("type", "")),
        params=dict(raw.get("params") or {}),
        timeout_seconds=raw.get("timeout_seconds"),
    )


def to_workflow_entity(w: Workflow) -> WorkflowEntity:
    """Map Workflow ORM to WorkflowEntity."""
    return WorkflowEntity(
        id=w.id,
        tenant_id=w.tenant_id,
        name=w.name,
        trigger_type=w.trigger_type,
        actions=tuple(_to_action_spec(a, i) for i, a in enumerate(w.actions or [])),
        is_active=w.is_active,
        description=w.description,
        condition=w.condition or None,
        schedule_interval_minutes=w.schedule_interval_minutes,
        execution_timeout_seconds=w.execution_timeout_seconds,
        created_at=ensure_utc(w.created_at),
        updated_at=ensure_utc(w.updated_at),
    )


def to_execution_result(e: WorkflowExecution) -> ExecutionResult:
    """Map WorkflowExecution ORM to ExecutionResult DTO."""
    return ExecutionResult(
        id=e.id,
        tenant_id=e.tenant_id,
        workflow_id=e.workflow_id,
        triggered_by=TriggeredBy(e.triggered_by),
        trigger_payload=dict(e.trigger_payload or {}),
        status=WorkflowExecutionStatus(e.status),
        actor_id=e.actor_id,
        status_detail=e.status_detail,
        error_message=e.error_message,
        actions_executed=e.actions_executed or 0,
        actions_failed=e.actions_failed or 0,
        cancel_requested=e.cancel_requested_at is not None,
        created_at=ensure_utc(e.created_at),
        started_at=ensure_utc(e.started_at),
        finished_at=ensure_utc(e.finished_at),
    )


def to_action_log_result(log: WorkflowActionLog) -> ActionLogResult:
    """Map WorkflowActionLog ORM to ActionLogResult DTO."""
    return ActionLogResult(
        id=log.id,
        execution_id=log.execution_id,
        tenant_id=log.tenant_id,
        action_index=log.action_index,
        action_type=log.action_type,
        action_config=dict(log.action_config or {}),
        status=ActionLogStatus(log.status),
        started_at=ensure_utc(log.started_at),
        finished_at=ensure_utc(log.finished_at),
        output=log.output,
        error_code=log.error_code,
        error_message=log.error_message,
    )


def specs_to_json(actions: tuple[ActionSpec, ...] | list[ActionSpec]) -> list[dict[str, Any]]:
    """Serialize action specs for the actions JSON column, in index order."""
    return [spec.snapshot() for spec in sorted(actions, key=lambda a: a.index)]


class WorkflowRepository(BaseRepository[Workflow]):
    """Workflow definitions. Soft-deleted rows are invisible to every read."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Workflow)

    async def get_by_id_and_tenant(
        self, workflow_id: str, tenant_id: str
    ) -> Workflow | None:
        result = await self.db.execute(
            select(Workflow).where(
                Workflow.id == workflow_id,
                Workflow.tenant_id == tenant_id,
                Workflow.deleted_at.is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def get_active_by_trigger(
        self, trigger_type: str, tenant_id: str | None = None
    ) -> list[Workflow]:
        q = select(Workflow).where(
            Workflow.trigger_type == trigger_type,
            Workflow.is_active.is_(True),
            Workflow.deleted_at.is_(None),
        )
        if tenant_id is not None:
            q = q.where(Workflow.tenant_id == tenant_id)
        result = await self.db.execute(q.order_by(Workflow.created_at.asc(), Workflow.id.asc()))
        return list(result.scalars().all())

    async def get_by_tenant(
        self,
        tenant_id: str,
        *,
        trigger_type: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Workflow]:
        q = select(Workflow).where(
            Workflow.tenant_id == tenant_id,
            Workflow.deleted_at.is_(None),
        )
        if trigger_type is not None:
            q = q.where(Workflow.trigger_type == trigger_type)
        if is_active is not None:
            q = q.where(Workflow.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            q = q.where(or_(Workflow.name.ilike(pattern), Workflow.description.ilike(pattern)))
        q = q.order_by(Workflow.created_at.desc()).offset(skip).limit(limit)
        result = await self.db.execute(q)
        return list(result.scalars().all())


class WorkflowExecutionRepository(BaseRepository[WorkflowExecution]):
    """Execution records. Status only moves through conditional updates."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowExecution)

    async def create_pending(self, data: ExecutionCreate) -> WorkflowExecution:
        execution = WorkflowExecution(
            tenant_id=data.tenant_id,
            workflow_id=data.workflow_id,
            triggered_by=data.triggered_by.value,
            actor_id=data.actor_id,
            trigger_payload=data.trigger_payload,
            status=WorkflowExecutionStatus.PENDING.value,
            actions_executed=0,
            actions_failed=0,
        )
        return await self.create(execution)

    async def get_scoped(
        self, execution_id: str, tenant_id: str | None = None
    ) -> WorkflowExecution | None:
        q = select(WorkflowExecution).where(WorkflowExecution.id == execution_id)
        if tenant_id is not None:
            q = q.where(WorkflowExecution.tenant_id == tenant_id)
        result = await self.db.execute(q)
        return result.scalar_one_or_none()

    async def transition(
        self,
        execution_id: str,
        expected: WorkflowExecutionStatus,
        values: dict[str, Any],
        *,
        tenant_id: str | None = None,
    ) -> WorkflowExecution | None:
        """Apply values only if the row is currently in expected status. Returns the row or None."""
        stmt = (
            update(WorkflowExecution)
            .where(
                WorkflowExecution.id == execution_id,
                WorkflowExecution.status == expected.value,
            )
            .values(**values, updated_at=func.now())
            .returning(WorkflowExecution)
            .execution_options(synchronize_session=False)
        )
        if tenant_id is not None:
            stmt = stmt.where(WorkflowExecution.tenant_id == tenant_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def claim(self, execution_id: str, started_at: datetime) -> WorkflowExecution | None:
        return await self.transition(
            execution_id,
            WorkflowExecutionStatus.PENDING,
            {"status": WorkflowExecutionStatus.RUNNING.value, "started_at": started_at},
        )

    async def finalize(
        self, execution_id: str, outcome: ExecutionOutcome
    ) -> WorkflowExecution | None:
        return await self.transition(
            execution_id,
            WorkflowExecutionStatus.RUNNING,
            {
                "status": outcome.status.value,
                "status_detail": outcome.status_detail,
                "finished_at": outcome.finished_at,
                "error_message": outcome.error_message,
                "actions_executed": outcome.actions_executed,
                "actions_failed": outcome.actions_failed,
            },
        )

    async def cancel_pending(
        self, execution_id: str, tenant_id: str, now: datetime
    ) -> WorkflowExecution | None:
        return await self.transition(
            execution_id,
            WorkflowExecutionStatus.PENDING,
            {
                "status": WorkflowExecutionStatus.CANCELLED.value,
                "status_detail": ExecutionStatusDetail.CANCEL_REQUESTED.value,
                "cancel_requested_at": now,
                "finished_at": now,
            },
            tenant_id=tenant_id,
        )

    async def flag_running(
        self, execution_id: str, tenant_id: str, now: datetime
    ) -> WorkflowExecution | None:
        """Set cancel_requested_at on a running execution (first request wins)."""
        stmt = (
            update(WorkflowExecution)
            .where(
                WorkflowExecution.id == execution_id,
                WorkflowExecution.tenant_id == tenant_id,
                WorkflowExecution.status == WorkflowExecutionStatus.RUNNING.value,
                WorkflowExecution.cancel_requested_at.is_(None),
            )
            .values(cancel_requested_at=now, updated_at=func.now())
            .returning(WorkflowExecution)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def is_cancel_requested(self, execution_id: str) -> bool:
        result = await self.db.execute(
            select(WorkflowExecution.cancel_requested_at, WorkflowExecution.status).where(
                WorkflowExecution.id == execution_id
            )
        )
        row = result.one_or_none()
        if row is None:
            return False
        return row.cancel_requested_at is not None or (
            row.status == WorkflowExecutionStatus.CANCELLED.value
        )

    async def get_status(self, execution_id: str) -> str | None:
        result = await self.db.execute(
            select(WorkflowExecution.status).where(WorkflowExecution.id == execution_id)
        )
        return result.scalar_one_or_none()

    async def last_created_at(
        self, workflow_id: str, triggered_by: TriggeredBy
    ) -> datetime | None:
        result = await self.db.execute(
            select(func.max(WorkflowExecution.created_at)).where(
                WorkflowExecution.workflow_id == workflow_id,
                WorkflowExecution.triggered_by == triggered_by.value,
            )
        )
        return ensure_utc(result.scalar_one_or_none())

    async def list_filtered(
        self, tenant_id: str, filters: ExecutionFilters
    ) -> list[WorkflowExecution]:
        q = select(WorkflowExecution).where(WorkflowExecution.tenant_id == tenant_id)
        if filters.workflow_id:
            q = q.where(WorkflowExecution.workflow_id == filters.workflow_id)
        if filters.status is not None:
            q = q.where(WorkflowExecution.status == filters.status.value)
        if filters.triggered_by is not None:
            q = q.where(WorkflowExecution.triggered_by == filters.triggered_by.value)
        if filters.date_from is not None:
            q = q.where(WorkflowExecution.created_at >= filters.date_from)
        if filters.date_to is not None:
            q = q.where(WorkflowExecution.created_at <= filters.date_to)
        q = (
            q.order_by(WorkflowExecution.created_at.desc(), WorkflowExecution.id.desc())
            .offset(filters.skip)
            .limit(filters.limit)
        )
        result = await self.db.execute(q)
        return list(result.scalars().all())


class WorkflowActionLogRepository(BaseRepository[WorkflowActionLog]):
    """Append-only action logs; (execution_id, action_index) is unique."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowActionLog)

    async def append(self, data: ActionLogCreate) -> WorkflowActionLog:
        log = WorkflowActionLog(
            execution_id=data.execution_id,
            tenant_id=data.tenant_id,
            action_index=data.action_index,
            action_type=data.action_type,
            action_config=data.action_config,
            status=data.status.value,
            output=data.output,
            error_code=data.error_code,
            error_message=data.error_message,
            started_at=data.started_at,
            finished_at=data.finished_at,
        )
        return await self.create(log)

    async def list_for_execution(self, execution_id: str) -> list[WorkflowActionLog]:
        result = await self.db.execute(
            select(WorkflowActionLog)
            .where(WorkflowActionLog.execution_id == execution_id)
            .order_by(WorkflowActionLog.action_index.asc())
        )
        return list(result.scalars().all())
