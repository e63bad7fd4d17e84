"""SQL workflow store (implements IWorkflowStore) plus workflow management.

Each public method runs in its own short transaction and commits before
returning, so an action log is durable before the engine starts the next
action, and a claim is visible to every other worker immediately.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from automation.application.dtos.execution import (
    ActionLogCreate,
    ActionLogResult,
    ExecutionCreate,
    ExecutionFilters,
    ExecutionOutcome,
    ExecutionResult,
)
from automation.application.services.condition_evaluator import (
    DEFAULT_MAX_DEPTH,
    validate_condition,
)
from automation.domain.entities.workflow import ActionSpec, WorkflowEntity
from automation.domain.exceptions import (
    ClaimConflictException,
    InvalidStatusTransitionException,
    ResourceNotFoundException,
)
from automation.infrastructure.persistence.models.workflow import Workflow
from automation.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowActionLogRepository,
    WorkflowExecutionRepository,
    WorkflowRepository,
    specs_to_json,
    to_action_log_result,
    to_execution_result,
    to_workflow_entity,
)
from automation.schemas.workflow import WorkflowDefinition, validate_workflow_entity
from automation.shared.enums import TriggeredBy
from automation.shared.telemetry.logging import get_logger
from automation.shared.utils.datetime import utc_now

logger = get_logger(__name__)


class SqlWorkflowStore:
    """Workflow store over SQLAlchemy async sessions (one transaction per call)."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._session_factory = session_factory
        self._max_depth = max_depth

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield session

    # ---- Engine / dispatcher surface ----

    async def get_workflow(
        self, workflow_id: str, tenant_id: str
    ) -> WorkflowEntity | None:
        async with self._transaction() as session:
            row = await WorkflowRepository(session).get_by_id_and_tenant(workflow_id, tenant_id)
            return to_workflow_entity(row) if row else None

    async def list_active_workflows(
        self, trigger_type: str, tenant_id: str | None = None
    ) -> list[WorkflowEntity]:
        async with self._transaction() as session:
            rows = await WorkflowRepository(session).get_active_by_trigger(trigger_type, tenant_id)
            return [to_workflow_entity(r) for r in rows]

    async def create_execution(self, data: ExecutionCreate) -> ExecutionResult:
        async with self._transaction() as session:
            row = await WorkflowExecutionRepository(session).create_pending(data)
            return to_execution_result(row)

    async def claim_execution(
        self, execution_id: str, started_at: datetime
    ) -> ExecutionResult:
        async with self._transaction() as session:
            repo = WorkflowExecutionRepository(session)
            row = await repo.claim(execution_id, started_at)
            if row is None:
                raise ClaimConflictException(execution_id, await repo.get_status(execution_id))
            return to_execution_result(row)

    async def finalize_execution(
        self, execution_id: str, outcome: ExecutionOutcome
    ) -> ExecutionResult:
        async with self._transaction() as session:
            repo = WorkflowExecutionRepository(session)
            row = await repo.finalize(execution_id, outcome)
            if row is None:
                current = await repo.get_status(execution_id)
                raise InvalidStatusTransitionException(
                    execution_id, current or "unknown", outcome.status.value
                )
            return to_execution_result(row)

    async def request_cancel(self, execution_id: str, tenant_id: str) -> ExecutionResult:
        now = utc_now()
        async with self._transaction() as session:
            repo = WorkflowExecutionRepository(session)
            row = await repo.cancel_pending(execution_id, tenant_id, now)
            if row is None:
                row = await repo.flag_running(execution_id, tenant_id, now)
            if row is None:
                row = await repo.get_scoped(execution_id, tenant_id)
            if row is None:
                raise ResourceNotFoundException("workflow_execution", execution_id)
            return to_execution_result(row)

    async def is_cancel_requested(self, execution_id: str) -> bool:
        async with self._transaction() as session:
            return await WorkflowExecutionRepository(session).is_cancel_requested(execution_id)

    async def append_action_log(self, data: ActionLogCreate) -> ActionLogResult:
        async with self._transaction() as session:
            row = await WorkflowActionLogRepository(session).append(data)
            return to_action_log_result(row)

    async def get_execution(
        self, execution_id: str, tenant_id: str | None = None
    ) -> ExecutionResult | None:
        async with self._transaction() as session:
            row = await WorkflowExecutionRepository(session).get_scoped(execution_id, tenant_id)
            return to_execution_result(row) if row else None

    async def list_action_logs(self, execution_id: str) -> list[ActionLogResult]:
        async with self._transaction() as session:
            rows = await WorkflowActionLogRepository(session).list_for_execution(execution_id)
            return [to_action_log_result(r) for r in rows]

    async def list_executions(
        self, tenant_id: str, filters: ExecutionFilters
    ) -> list[ExecutionResult]:
        async with self._transaction() as session:
            rows = await WorkflowExecutionRepository(session).list_filtered(tenant_id, filters)
            return [to_execution_result(r) for r in rows]

    async def get_last_execution_created_at(
        self, workflow_id: str, triggered_by: TriggeredBy
    ) -> datetime | None:
        async with self._transaction() as session:
            return await WorkflowExecutionRepository(session).last_created_at(
                workflow_id, triggered_by
            )

    # ---- Management surface (used by the admin API layer) ----

    async def create_workflow(
        self,
        tenant_id: str,
        definition: WorkflowDefinition,
        *,
        created_by: str | None = None,
    ) -> WorkflowEntity:
        """Persist a validated definition; action indices are assigned densely in list order.

        The condition is re-checked against this store's depth limit, which may be
        lower than the one the definition was parsed with.
        """
        validate_condition(definition.condition, self._max_depth)
        async with self._transaction() as session:
            row = await WorkflowRepository(session).create(
                Workflow(
                    tenant_id=tenant_id,
                    name=definition.name,
                    description=definition.description,
                    trigger_type=definition.trigger_type,
                    condition=definition.condition,
                    actions=specs_to_json(definition.action_specs()),
                    is_active=definition.is_active,
                    schedule_interval_minutes=definition.schedule_interval_minutes,
                    execution_timeout_seconds=definition.execution_timeout_seconds,
                    created_by=created_by,
                )
            )
            logger.info("Workflow %s created for tenant %s", row.id, tenant_id)
            return to_workflow_entity(row)

    async def replace_actions(
        self, workflow_id: str, tenant_id: str, actions: list[ActionSpec]
    ) -> WorkflowEntity:
        """Replace the action list, re-indexing densely in the given order.

        In-flight executions keep the specs captured on their action logs.
        """
        reindexed = tuple(
            ActionSpec(
                index=i,
                type=spec.type,
                params=dict(spec.params),
                timeout_seconds=spec.timeout_seconds,
            )
            for i, spec in enumerate(actions)
        )
        async with self._transaction() as session:
            repo = WorkflowRepository(session)
            row = await self._require(repo, workflow_id, tenant_id)
            candidate = to_workflow_entity(row)
            if row.is_active or reindexed:
                validate_workflow_entity(
                    WorkflowEntity(
                        id=candidate.id,
                        tenant_id=candidate.tenant_id,
                        name=candidate.name,
                        trigger_type=candidate.trigger_type,
                        actions=reindexed,
                        condition=candidate.condition,
                    ),
                    self._max_depth,
                )
            row.actions = specs_to_json(reindexed)
            return to_workflow_entity(await repo.save(row))

    async def set_active(
        self, workflow_id: str, tenant_id: str, is_active: bool
    ) -> WorkflowEntity:
        """Activate or deactivate. Deactivation only stops new executions."""
        async with self._transaction() as session:
            repo = WorkflowRepository(session)
            row = await self._require(repo, workflow_id, tenant_id)
            if is_active:
                validate_workflow_entity(to_workflow_entity(row), self._max_depth)
            row.is_active = is_active
            logger.info(
                "Workflow %s %s", workflow_id, "activated" if is_active else "deactivated"
            )
            return to_workflow_entity(await repo.save(row))

    async def soft_delete_workflow(self, workflow_id: str, tenant_id: str) -> None:
        """Hide the workflow from every read. Execution history is kept."""
        async with self._transaction() as session:
            repo = WorkflowRepository(session)
            row = await self._require(repo, workflow_id, tenant_id)
            row.is_active = False
            row.deleted_at = utc_now()
            await repo.save(row)

    async def list_workflows(
        self,
        tenant_id: str,
        *,
        trigger_type: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[WorkflowEntity]:
        async with self._transaction() as session:
            rows = await WorkflowRepository(session).get_by_tenant(
                tenant_id,
                trigger_type=trigger_type,
                is_active=is_active,
                search=search,
                skip=skip,
                limit=limit,
            )
            return [to_workflow_entity(r) for r in rows]

    @staticmethod
    async def _require(
        repo: WorkflowRepository, workflow_id: str, tenant_id: str
    ) -> Workflow:
        row = await repo.get_by_id_and_tenant(workflow_id, tenant_id)
        if row is None:
            raise ResourceNotFoundException("workflow", workflow_id)
        return row

