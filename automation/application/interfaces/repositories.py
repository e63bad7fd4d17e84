"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference domain entities or application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from automation.application.dtos.execution import (
        ActionLogCreate,
        ActionLogResult,
        ExecutionCreate,
        ExecutionFilters,
        ExecutionOutcome,
        ExecutionResult,
    )
    from automation.domain.entities.workflow import WorkflowEntity
    from automation.shared.enums import TriggeredBy


class IWorkflowStore(Protocol):
    """Protocol for the workflow store used by the engine and dispatcher (DIP).

    Every write is durable when the call returns. Status changes are
    conditional on the current status; the claim is the only mutual
    exclusion between workers.
    """

    async def get_workflow(
        self, workflow_id: str, tenant_id: str
    ) -> WorkflowEntity | None:
        """Return workflow by id in tenant (soft-deleted workflows are not returned)."""

    async def list_active_workflows(
        self, trigger_type: str, tenant_id: str | None = None
    ) -> list[WorkflowEntity]:
        """Return active workflows with the given trigger type; all tenants when tenant_id is None."""

    async def create_execution(self, data: ExecutionCreate) -> ExecutionResult:
        """Insert a pending execution with its trigger payload snapshot."""

    async def claim_execution(
        self, execution_id: str, started_at: datetime
    ) -> ExecutionResult:
        """Move pending -> running. Raises ClaimConflictException if not pending."""

    async def finalize_execution(
        self, execution_id: str, outcome: ExecutionOutcome
    ) -> ExecutionResult:
        """Move running -> outcome.status. Raises InvalidStatusTransitionException if not running."""

    async def request_cancel(self, execution_id: str, tenant_id: str) -> ExecutionResult:
        """Cancel a pending execution or flag a running one. Terminal executions are returned unchanged."""

    async def is_cancel_requested(self, execution_id: str) -> bool:
        """Return whether cancellation was requested for the execution."""

    async def append_action_log(self, data: ActionLogCreate) -> ActionLogResult:
        """Insert one action log row."""

    async def get_execution(
        self, execution_id: str, tenant_id: str | None = None
    ) -> ExecutionResult | None:
        """Return execution by id (scoped to tenant when given)."""

    async def list_action_logs(self, execution_id: str) -> list[ActionLogResult]:
        """Return action logs for an execution in action-index order."""

    async def list_executions(
        self, tenant_id: str, filters: ExecutionFilters
    ) -> list[ExecutionResult]:
        """Return executions for tenant matching filters, newest first."""

    async def get_last_execution_created_at(
        self, workflow_id: str, triggered_by: TriggeredBy
    ) -> datetime | None:
        """Return creation time of the latest execution of workflow with the given origin."""
