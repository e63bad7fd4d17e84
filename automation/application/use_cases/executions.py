"""Execution query surface: get one execution with its action logs, list, cancel."""

from __future__ import annotations

from automation.application.dtos.execution import (
    ExecutionDetail,
    ExecutionFilters,
    ExecutionResult,
)
from automation.application.interfaces.repositories import IWorkflowStore
from automation.domain.exceptions import ResourceNotFoundException, ValidationException
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import traced

logger = get_logger(__name__)

MAX_LIST_LIMIT = 200


class ExecutionService:
    """Tenant-scoped read and cancel operations for the audit/API layer."""

    def __init__(self, store: IWorkflowStore) -> None:
        self.store = store

    @traced("execution_service.get_execution")
    async def get_execution(self, tenant_id: str, execution_id: str) -> ExecutionDetail:
        """Return execution with its action logs in index order; raise ResourceNotFoundException if absent."""
        execution = await self.store.get_execution(execution_id, tenant_id)
        if execution is None:
            raise ResourceNotFoundException("workflow_execution", execution_id)
        logs = await self.store.list_action_logs(execution_id)
        return ExecutionDetail(execution=execution, action_logs=logs)

    @traced("execution_service.list_executions")
    async def list_executions(
        self, tenant_id: str, filters: ExecutionFilters | None = None
    ) -> list[ExecutionResult]:
        """Return executions for tenant, newest first."""
        filters = filters or ExecutionFilters()
        if filters.skip < 0:
            raise ValidationException("skip must be >= 0", field="skip")
        if not 1 <= filters.limit <= MAX_LIST_LIMIT:
            raise ValidationException(
                f"limit must be between 1 and {MAX_LIST_LIMIT}", field="limit"
            )
        if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
            raise ValidationException("date_from must not be after date_to", field="date_from")
        return await self.store.list_executions(tenant_id, filters)

    @traced("execution_service.request_cancel")
    async def request_cancel(self, tenant_id: str, execution_id: str) -> ExecutionResult:
        """Cancel a pending execution, or flag a running one for the next action boundary.

        Terminal executions are returned unchanged.
        """
        execution = await self.store.request_cancel(execution_id, tenant_id)
        logger.info(
            "Cancel requested for execution %s (status=%s)",
            execution_id,
            execution.status.value,
        )
        return execution
