"""In-memory fakes for the engine ports (store, runner) and workflow builders."""

from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any

from automation.application.dtos.execution import (
    ActionLogCreate,
    ActionLogResult,
    ExecutionCreate,
    ExecutionFilters,
    ExecutionOutcome,
    ExecutionResult,
)
from automation.domain.entities.workflow import ActionSpec, WorkflowEntity
from automation.domain.exceptions import (
    ClaimConflictException,
    InvalidStatusTransitionException,
    ResourceNotFoundException,
)
from automation.shared.enums import (
    ExecutionStatusDetail,
    TriggeredBy,
    WorkflowExecutionStatus,
)
from automation.shared.utils.datetime import utc_now


def make_workflow(
    *actions: tuple[str, dict[str, Any]],
    workflow_id: str = "wf1",
    tenant_id: str = "t1",
    trigger_type: str = "event:lead_created",
    condition: dict[str, Any] | None = None,
    is_active: bool = True,
    **kwargs: Any,
) -> WorkflowEntity:
    """Build a workflow entity; actions are (type, params) pairs indexed in order."""
    return WorkflowEntity(
        id=workflow_id,
        tenant_id=tenant_id,
        name=f"Workflow {workflow_id}",
        trigger_type=trigger_type,
        actions=tuple(
            ActionSpec(index=i, type=action_type, params=params)
            for i, (action_type, params) in enumerate(actions)
        ),
        is_active=is_active,
        condition=condition,
        **kwargs,
    )


class InMemoryWorkflowStore:
    """IWorkflowStore over dicts. Status changes are conditional, as in SQL."""

    def __init__(self, workflows: list[WorkflowEntity] | None = None) -> None:
        self.workflows: dict[str, WorkflowEntity] = {w.id: w for w in workflows or []}
        self.executions: dict[str, ExecutionResult] = {}
        self.logs: dict[str, list[ActionLogResult]] = {}
        self.cancel_flags: set[str] = set()
        self._ids = itertools.count(1)
        self._clock = utc_now()

    def add_workflow(self, workflow: WorkflowEntity) -> None:
        self.workflows[workflow.id] = workflow

    def _next_created_at(self) -> datetime:
        # Strictly increasing so newest-first ordering is deterministic.
        self._clock += timedelta(milliseconds=1)
        return self._clock

    async def get_workflow(self, workflow_id: str, tenant_id: str) -> WorkflowEntity | None:
        workflow = self.workflows.get(workflow_id)
        if workflow is None or workflow.tenant_id != tenant_id:
            return None
        return workflow

    async def list_active_workflows(
        self, trigger_type: str, tenant_id: str | None = None
    ) -> list[WorkflowEntity]:
        return [
            w
            for w in self.workflows.values()
            if w.is_active
            and w.trigger_type == trigger_type
            and (tenant_id is None or w.tenant_id == tenant_id)
        ]

    async def create_execution(self, data: ExecutionCreate) -> ExecutionResult:
        execution = ExecutionResult(
            id=f"exec-{next(self._ids)}",
            tenant_id=data.tenant_id,
            workflow_id=data.workflow_id,
            triggered_by=data.triggered_by,
            trigger_payload=data.trigger_payload,
            status=WorkflowExecutionStatus.PENDING,
            actor_id=data.actor_id,
            created_at=self._next_created_at(),
        )
        self.executions[execution.id] = execution
        self.logs[execution.id] = []
        return execution

    async def claim_execution(self, execution_id: str, started_at: datetime) -> ExecutionResult:
        current = self.executions.get(execution_id)
        if current is None or current.status != WorkflowExecutionStatus.PENDING:
            raise ClaimConflictException(
                execution_id, current.status.value if current else None
            )
        claimed = replace(current, status=WorkflowExecutionStatus.RUNNING, started_at=started_at)
        self.executions[execution_id] = claimed
        return claimed

    async def finalize_execution(
        self, execution_id: str, outcome: ExecutionOutcome
    ) -> ExecutionResult:
        current = self.executions.get(execution_id)
        if current is None or current.status != WorkflowExecutionStatus.RUNNING:
            raise InvalidStatusTransitionException(
                execution_id,
                current.status.value if current else "unknown",
                outcome.status.value,
            )
        finalized = replace(
            current,
            status=outcome.status,
            status_detail=outcome.status_detail,
            finished_at=outcome.finished_at,
            error_message=outcome.error_message,
            actions_executed=outcome.actions_executed,
            actions_failed=outcome.actions_failed,
        )
        self.executions[execution_id] = finalized
        return finalized

    async def request_cancel(self, execution_id: str, tenant_id: str) -> ExecutionResult:
        current = self.executions.get(execution_id)
        if current is None or current.tenant_id != tenant_id:
            raise ResourceNotFoundException("workflow_execution", execution_id)
        if current.status == WorkflowExecutionStatus.PENDING:
            now = utc_now()
            current = replace(
                current,
                status=WorkflowExecutionStatus.CANCELLED,
                status_detail=ExecutionStatusDetail.CANCEL_REQUESTED.value,
                cancel_requested=True,
                finished_at=now,
            )
            self.cancel_flags.add(execution_id)
        elif current.status == WorkflowExecutionStatus.RUNNING:
            current = replace(current, cancel_requested=True)
            self.cancel_flags.add(execution_id)
        self.executions[execution_id] = current
        return current

    async def is_cancel_requested(self, execution_id: str) -> bool:
        return execution_id in self.cancel_flags

    async def append_action_log(self, data: ActionLogCreate) -> ActionLogResult:
        existing = self.logs.setdefault(data.execution_id, [])
        if any(log.action_index == data.action_index for log in existing):
            raise AssertionError(
                f"duplicate action log for {data.execution_id}[{data.action_index}]"
            )
        log = ActionLogResult(
            id=f"log-{next(self._ids)}",
            execution_id=data.execution_id,
            tenant_id=data.tenant_id,
            action_index=data.action_index,
            action_type=data.action_type,
            action_config=data.action_config,
            status=data.status,
            started_at=data.started_at,
            finished_at=data.finished_at,
            output=data.output,
            error_code=data.error_code,
            error_message=data.error_message,
        )
        existing.append(log)
        return log

    async def get_execution(
        self, execution_id: str, tenant_id: str | None = None
    ) -> ExecutionResult | None:
        execution = self.executions.get(execution_id)
        if execution is None or (tenant_id is not None and execution.tenant_id != tenant_id):
            return None
        return execution

    async def list_action_logs(self, execution_id: str) -> list[ActionLogResult]:
        return sorted(self.logs.get(execution_id, []), key=lambda log: log.action_index)

    async def list_executions(
        self, tenant_id: str, filters: ExecutionFilters
    ) -> list[ExecutionResult]:
        rows = [
            e
            for e in self.executions.values()
            if e.tenant_id == tenant_id
            and (filters.workflow_id is None or e.workflow_id == filters.workflow_id)
            and (filters.status is None or e.status == filters.status)
            and (filters.triggered_by is None or e.triggered_by == filters.triggered_by)
            and (filters.date_from is None or e.created_at >= filters.date_from)
            and (filters.date_to is None or e.created_at <= filters.date_to)
        ]
        rows.sort(key=lambda e: e.created_at, reverse=True)
        return rows[filters.skip : filters.skip + filters.limit]

    async def get_last_execution_created_at(
        self, workflow_id: str, triggered_by: TriggeredBy
    ) -> datetime | None:
        times = [
            e.created_at
            for e in self.executions.values()
            if e.workflow_id == workflow_id and e.triggered_by == triggered_by
        ]
        return max(times) if times else None


class RecordingRunner:
    """IExecutionRunner that records submitted ids instead of running them."""

    def __init__(self) -> None:
        self.submitted: list[str] = []

    def submit(self, execution_id: str) -> None:
        self.submitted.append(execution_id)


