"""Trigger dispatcher: admits executions for manual, event and schedule triggers.

Admission is synchronous (a pending execution exists before dispatch
returns); completion is asynchronous (the runner owns the run). Each
admitted execution gets its own copy of the trigger payload.
"""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timedelta
from typing import Any

from automation.application.dtos.execution import ExecutionCreate
from automation.application.dtos.trigger import ManualTriggerGrant
from automation.application.interfaces.repositories import IWorkflowStore
from automation.application.interfaces.services import IExecutionRunner
from automation.application.services.condition_evaluator import DEFAULT_MAX_DEPTH
from automation.domain.entities.workflow import (
    WorkflowEntity,
    event_trigger_type,
    is_valid_event_name,
)
from automation.domain.exceptions import (
    AuthorizationException,
    ResourceNotFoundException,
    ValidationException,
)
from automation.schemas.workflow import validate_workflow_entity
from automation.shared.enums import TriggeredBy, TriggerKind
from automation.shared.telemetry.logging import get_logger
from automation.shared.telemetry.tracing import traced
from automation.shared.utils.datetime import ensure_utc, utc_now

logger = get_logger(__name__)


class TriggerDispatcher:
    """Turns trigger signals into pending executions and hands them to the runner."""

    def __init__(
        self,
        store: IWorkflowStore,
        runner: IExecutionRunner,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        default_schedule_interval_minutes: int = 60,
    ) -> None:
        self._store = store
        self._runner = runner
        self._max_depth = max_depth
        self._default_interval = default_schedule_interval_minutes

    @traced("trigger_dispatcher.dispatch_manual")
    async def dispatch_manual(
        self,
        workflow_id: str,
        tenant_id: str,
        payload: dict[str, Any] | None,
        grant: ManualTriggerGrant,
    ) -> str:
        """Admit one manual execution and return its id.

        The grant is the caller's proof of authorization; it must cover
        tenant_id and workflow_id. Raises AuthorizationException,
        ResourceNotFoundException or ValidationException before any
        execution is created.
        """
        if not grant.covers(tenant_id, workflow_id):
            raise AuthorizationException(resource="workflow", action="execute")
        workflow = await self._store.get_workflow(workflow_id, tenant_id)
        if workflow is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        if not workflow.is_active:
            raise ValidationException("Workflow is not active", field="is_active")
        validate_workflow_entity(workflow, self._max_depth)

        execution_id = await self._admit(
            workflow, TriggeredBy.MANUAL, payload or {}, actor_id=grant.actor_id
        )
        logger.info(
            "Manual execution %s admitted for workflow %s by %s",
            execution_id,
            workflow_id,
            grant.actor_id,
        )
        return execution_id

    @traced("trigger_dispatcher.on_event")
    async def on_event(
        self, tenant_id: str, event_name: str, payload: dict[str, Any] | None
    ) -> list[str]:
        """Fan one domain event out to every active workflow listening for it.

        Returns the ids of the admitted executions (possibly empty).
        Workflows whose stored definition no longer validates are skipped.
        """
        if not is_valid_event_name(event_name):
            raise ValidationException(f"Invalid event name: {event_name!r}", field="event_name")
        workflows = await self._store.list_active_workflows(
            event_trigger_type(event_name), tenant_id
        )
        execution_ids: list[str] = []
        for workflow in workflows:
            if not self._is_runnable(workflow):
                continue
            execution_ids.append(
                await self._admit(workflow, TriggeredBy.EVENT, payload or {})
            )
        if execution_ids:
            logger.info(
                "Event %s for tenant %s admitted %d execution(s)",
                event_name,
                tenant_id,
                len(execution_ids),
            )
        return execution_ids

    @traced("trigger_dispatcher.on_schedule")
    async def on_schedule(self, now: datetime | None = None) -> list[str]:
        """Admit one execution per active schedule workflow that is due at now."""
        now = ensure_utc(now) if now is not None else utc_now()
        workflows = await self._store.list_active_workflows(TriggerKind.SCHEDULE.value)
        execution_ids: list[str] = []
        for workflow in workflows:
            interval = workflow.schedule_interval_minutes or self._default_interval
            last = await self._store.get_last_execution_created_at(
                workflow.id, TriggeredBy.SCHEDULE
            )
            if not self.is_due(last, now, interval):
                continue
            if not self._is_runnable(workflow):
                continue
            payload = {"scheduled_at": now.isoformat(), "interval_minutes": interval}
            execution_ids.append(
                await self._admit(workflow, TriggeredBy.SCHEDULE, payload)
            )
        if execution_ids:
            logger.info("Schedule tick admitted %d execution(s)", len(execution_ids))
        return execution_ids

    @staticmethod
    def is_due(last_run: datetime | None, now: datetime, interval_minutes: int) -> bool:
        """Return whether a schedule with the given interval should fire at now."""
        if last_run is None:
            return True
        return ensure_utc(now) - ensure_utc(last_run) >= timedelta(minutes=interval_minutes)

    def _is_runnable(self, workflow: WorkflowEntity) -> bool:
        try:
            validate_workflow_entity(workflow, self._max_depth)
        except ValidationException as e:
            logger.warning(
                "Skipping workflow %s (tenant_id=%s): %s",
                workflow.id,
                workflow.tenant_id,
                e.message,
            )
            return False
        return True

    async def _admit(
        self,
        workflow: WorkflowEntity,
        triggered_by: TriggeredBy,
        payload: dict[str, Any],
        *,
        actor_id: str | None = None,
    ) -> str:
        execution = await self._store.create_execution(
            ExecutionCreate(
                tenant_id=workflow.tenant_id,
                workflow_id=workflow.id,
                triggered_by=triggered_by,
                trigger_payload=copy.deepcopy(payload),
                actor_id=actor_id,
            )
        )
        self._runner.submit(execution.id)
        return execution.id


async def run_schedule_ticks(
    dispatcher: TriggerDispatcher, interval_seconds: float
) -> None:
    """Call on_schedule every interval_seconds until cancelled.

    A failing tick is logged and the loop continues with the next one.
    """
    logger.info("Schedule tick loop started (every %ss)", interval_seconds)
    try:
        while True:
            try:
                await dispatcher.on_schedule(utc_now())
            except Exception:
                logger.exception("Schedule tick failed")
            await asyncio.sleep(interval_seconds)
    except asyncio.CancelledError:
        logger.info("Schedule tick loop cancelled")
        raise
