"""Workflow engine: runs one admitted execution to a terminal status.

State machine: pending -> running -> completed | failed | cancelled.
The claim (pending -> running) is a conditional store update and the only
mutual exclusion between workers; a lost claim is a silent no-op.
Cancellation and the whole-execution ceiling are checked at action
boundaries only, so an in-flight action always finishes and is logged.
"""

from __future__ import annotations

import copy
import time
from collections.abc import Callable
from types import MappingProxyType

from automation.application.dtos.action import ActionResult, RuntimeState, TenantContext
from automation.application.dtos.execution import (
    ActionLogCreate,
    ExecutionOutcome,
    ExecutionResult,
)
from automation.application.interfaces.repositories import IWorkflowStore
from automation.application.services.action_executor import ActionExecutor
from automation.application.services.condition_evaluator import ConditionEvaluator
from automation.domain.entities.workflow import WorkflowEntity
from automation.domain.exceptions import ClaimConflictException, ValidationException
from automation.shared.enums import (
    ActionLogStatus,
    ExecutionStatusDetail,
    WorkflowExecutionStatus,
)
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import add_span_attributes, set_span_error, traced
from automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class _RunTally:
    """Counters for the execution summary columns."""

    def __init__(self) -> None:
        self.executed = 0
        self.failed = 0

    def record(self, status: ActionLogStatus) -> None:
        if status == ActionLogStatus.SUCCEEDED:
            self.executed += 1
        elif status == ActionLogStatus.FAILED:
            self.failed += 1


class WorkflowEngine:
    """Claims a pending execution and runs its workflow (condition gate, then actions in index order)."""

    def __init__(
        self,
        store: IWorkflowStore,
        executor: ActionExecutor,
        evaluator: ConditionEvaluator,
        *,
        execution_timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._executor = executor
        self._evaluator = evaluator
        self._execution_timeout = execution_timeout_seconds
        self._clock = clock

    @traced("workflow_engine.run_execution")
    async def run_execution(self, execution_id: str) -> ExecutionResult | None:
        """Run execution_id to a terminal status.

        Returns the finalized execution, or None when another worker
        already claimed it. Never raises for action or definition errors;
        those end the execution as failed.
        """
        try:
            execution = await self._store.claim_execution(execution_id, utc_now())
        except ClaimConflictException as e:
            logger.info(
                "Execution %s not claimed (status=%s); another worker owns it",
                execution_id,
                e.details.get("current_status"),
            )
            return None

        add_span_attributes(
            tenant_id=execution.tenant_id, workflow_id=execution.workflow_id
        )
        tally = _RunTally()
        try:
            return await self._run_claimed(execution, tally)
        except Exception as e:
            logger.exception(
                "Engine error while running execution %s (workflow_id=%s)",
                execution.id,
                execution.workflow_id,
            )
            set_span_error(e)
            return await self._finalize(
                execution.id,
                WorkflowExecutionStatus.FAILED,
                ExecutionStatusDetail.ENGINE_ERROR,
                tally,
                error_message=str(e) or e.__class__.__name__,
            )

    async def _run_claimed(
        self, execution: ExecutionResult, tally: _RunTally
    ) -> ExecutionResult:
        started = self._clock()
        workflow = await self._store.get_workflow(execution.workflow_id, execution.tenant_id)
        if workflow is None:
            logger.warning(
                "Workflow %s not found for execution %s", execution.workflow_id, execution.id
            )
            return await self._finalize(
                execution.id,
                WorkflowExecutionStatus.FAILED,
                ExecutionStatusDetail.WORKFLOW_NOT_FOUND,
                tally,
                error_message=f"Workflow {execution.workflow_id} not found",
            )

        try:
            matched = self._evaluator.evaluate(workflow.condition, execution.trigger_payload)
        except ValidationException as e:
            return await self._finalize(
                execution.id,
                WorkflowExecutionStatus.FAILED,
                ExecutionStatusDetail.INVALID_DEFINITION,
                tally,
                error_message=e.message,
            )
        if not matched:
            return await self._finalize(
                execution.id,
                WorkflowExecutionStatus.COMPLETED,
                ExecutionStatusDetail.CONDITION_NOT_MATCHED,
                tally,
            )

        context = TenantContext(
            tenant_id=execution.tenant_id,
            workflow_id=execution.workflow_id,
            execution_id=execution.id,
            triggered_by=execution.triggered_by,
            trigger_payload=MappingProxyType(copy.deepcopy(execution.trigger_payload)),
            actor_id=execution.actor_id,
        )
        state = RuntimeState(
            cancel_probe=lambda: self._store.is_cancel_requested(execution.id)
        )
        deadline = self._deadline(started, workflow)

        for spec in workflow.ordered_actions():
            if await self._store.is_cancel_requested(execution.id):
                logger.info(
                    "Execution %s cancelled before action %d", execution.id, spec.index
                )
                return await self._finalize(
                    execution.id,
                    WorkflowExecutionStatus.CANCELLED,
                    ExecutionStatusDetail.CANCEL_REQUESTED,
                    tally,
                )
            if deadline is not None and self._clock() >= deadline:
                logger.warning(
                    "Execution %s exceeded its time ceiling before action %d",
                    execution.id,
                    spec.index,
                )
                return await self._finalize(
                    execution.id,
                    WorkflowExecutionStatus.FAILED,
                    ExecutionStatusDetail.EXECUTION_TIMEOUT,
                    tally,
                    error_message="Execution exceeded its time limit",
                )

            result = await self._executor.execute(spec, context, state)
            await self._append_log(execution, spec.index, spec.type, spec.snapshot(), result)
            tally.record(result.status)
            if result.output is not None:
                state.outputs[spec.index] = result.output

            if result.status == ActionLogStatus.FAILED:
                logger.warning(
                    "Action %d (%s) failed for execution %s: %s %s",
                    spec.index,
                    spec.type,
                    execution.id,
                    result.error_code,
                    result.error_message,
                )
                return await self._finalize(
                    execution.id,
                    WorkflowExecutionStatus.FAILED,
                    ExecutionStatusDetail.ACTION_FAILED,
                    tally,
                    error_message=f"Action {spec.index} ({spec.type}) failed: {result.error_message}",
                )

        # A cancel accepted while the last action ran still wins.
        if await self._store.is_cancel_requested(execution.id):
            logger.info("Execution %s cancelled during its final action", execution.id)
            return await self._finalize(
                execution.id,
                WorkflowExecutionStatus.CANCELLED,
                ExecutionStatusDetail.CANCEL_REQUESTED,
                tally,
            )
        return await self._finalize(
            execution.id,
            WorkflowExecutionStatus.COMPLETED,
            ExecutionStatusDetail.ALL_ACTIONS_COMPLETED,
            tally,
        )

    def _deadline(self, started: float, workflow: WorkflowEntity) -> float | None:
        ceiling = workflow.execution_timeout_seconds or self._execution_timeout
        return started + ceiling if ceiling else None

    async def _append_log(
        self,
        execution: ExecutionResult,
        index: int,
        action_type: str,
        config: dict,
        result: ActionResult,
    ) -> None:
        now = utc_now()
        await self._store.append_action_log(
            ActionLogCreate(
                execution_id=execution.id,
                tenant_id=execution.tenant_id,
                action_index=index,
                action_type=action_type,
                action_config=config,
                status=result.status,
                started_at=result.started_at or now,
                finished_at=result.finished_at or now,
                output=result.output,
                error_code=result.error_code,
                error_message=result.error_message,
            )
        )

    async def _finalize(
        self,
        execution_id: str,
        status: WorkflowExecutionStatus,
        detail: ExecutionStatusDetail,
        tally: _RunTally,
        *,
        error_message: str | None = None,
    ) -> ExecutionResult:
        finalized = await self._store.finalize_execution(
            execution_id,
            ExecutionOutcome(
                status=status,
                status_detail=detail.value,
                finished_at=utc_now(),
                error_message=error_message,
                actions_executed=tally.executed,
                actions_failed=tally.failed,
            ),
        )
        logger.info(
            "Execution %s finished: %s (%s, executed=%d, failed=%d)",
            execution_id,
            status.value,
            detail.value,
            tally.executed,
            tally.failed,
        )
        return finalized
