"""SqlWorkflowStore integration tests. Require Postgres with migrations applied."""

import uuid

import pytest

from automation.application.dtos.execution import (
    ActionLogCreate,
    ExecutionCreate,
    ExecutionFilters,
    ExecutionOutcome,
)
from automation.domain.exceptions import (
    ClaimConflictException,
    InvalidStatusTransitionException,
    ResourceNotFoundException,
)
from automation.schemas.workflow import parse_workflow_definition
from automation.shared.enums import (
    ActionLogStatus,
    ExecutionStatusDetail,
    TriggeredBy,
    WorkflowExecutionStatus,
)
from automation.shared.utils.datetime import utc_now


def _tenant() -> str:
    return f"tenant-{uuid.uuid4().hex[:12]}"


async def _workflow(sql_store, tenant_id: str, trigger_type: str = "event:lead_created"):
    definition = parse_workflow_definition(
        {
            "name": "Tag new leads",
            "trigger_type": trigger_type,
            "actions": [{"type": "add_tag", "params": {"entity": "lead", "tag": "new"}}],
        }
    )
    return await sql_store.create_workflow(tenant_id, definition, created_by="user-1")


@pytest.mark.requires_db
async def test_create_and_list_active_workflow(sql_store) -> None:
    tenant_id = _tenant()
    workflow = await _workflow(sql_store, tenant_id)

    found = await sql_store.get_workflow(workflow.id, tenant_id)
    active = await sql_store.list_active_workflows("event:lead_created", tenant_id)

    assert found is not None
    assert found.actions[0].index == 0
    assert [w.id for w in active] == [workflow.id]
    assert await sql_store.get_workflow(workflow.id, _tenant()) is None


@pytest.mark.requires_db
async def test_execution_lifecycle(sql_store) -> None:
    tenant_id = _tenant()
    workflow = await _workflow(sql_store, tenant_id)
    execution = await sql_store.create_execution(
        ExecutionCreate(
            tenant_id=tenant_id,
            workflow_id=workflow.id,
            triggered_by=TriggeredBy.EVENT,
            trigger_payload={"entity_id": "lead-1"},
        )
    )
    assert execution.status == WorkflowExecutionStatus.PENDING

    claimed = await sql_store.claim_execution(execution.id, utc_now())
    assert claimed.status == WorkflowExecutionStatus.RUNNING
    with pytest.raises(ClaimConflictException):
        await sql_store.claim_execution(execution.id, utc_now())

    now = utc_now()
    await sql_store.append_action_log(
        ActionLogCreate(
            execution_id=execution.id,
            tenant_id=tenant_id,
            action_index=0,
            action_type="add_tag",
            action_config={"index": 0, "type": "add_tag"},
            status=ActionLogStatus.SUCCEEDED,
            started_at=now,
            finished_at=now,
            output={"added": True},
        )
    )
    outcome = ExecutionOutcome(
        status=WorkflowExecutionStatus.COMPLETED,
        status_detail=ExecutionStatusDetail.ALL_ACTIONS_COMPLETED.value,
        finished_at=utc_now(),
        actions_executed=1,
    )
    finalized = await sql_store.finalize_execution(execution.id, outcome)
    assert finalized.status == WorkflowExecutionStatus.COMPLETED
    with pytest.raises(InvalidStatusTransitionException):
        await sql_store.finalize_execution(execution.id, outcome)

    # Cancelling a terminal execution returns it unchanged.
    unchanged = await sql_store.request_cancel(execution.id, tenant_id)
    assert unchanged.status == WorkflowExecutionStatus.COMPLETED

    logs = await sql_store.list_action_logs(execution.id)
    assert [log.action_index for log in logs] == [0]
    listed = await sql_store.list_executions(tenant_id, ExecutionFilters())
    assert [e.id for e in listed] == [execution.id]
    assert await sql_store.get_last_execution_created_at(workflow.id, TriggeredBy.EVENT)


@pytest.mark.requires_db
async def test_cancel_pending_and_unknown(sql_store) -> None:
    tenant_id = _tenant()
    workflow = await _workflow(sql_store, tenant_id, trigger_type="manual")
    execution = await sql_store.create_execution(
        ExecutionCreate(
            tenant_id=tenant_id,
            workflow_id=workflow.id,
            triggered_by=TriggeredBy.MANUAL,
            trigger_payload={},
            actor_id="user-1",
        )
    )

    cancelled = await sql_store.request_cancel(execution.id, tenant_id)

    assert cancelled.status == WorkflowExecutionStatus.CANCELLED
    assert await sql_store.is_cancel_requested(execution.id)
    with pytest.raises(ClaimConflictException):
        await sql_store.claim_execution(execution.id, utc_now())
    with pytest.raises(ResourceNotFoundException):
        await sql_store.request_cancel(execution.id, _tenant())


@pytest.mark.requires_db
async def test_deactivate_and_soft_delete(sql_store) -> None:
    tenant_id = _tenant()
    workflow = await _workflow(sql_store, tenant_id)

    await sql_store.set_active(workflow.id, tenant_id, False)
    assert await sql_store.list_active_workflows("event:lead_created", tenant_id) == []

    await sql_store.soft_delete_workflow(workflow.id, tenant_id)
    assert await sql_store.get_workflow(workflow.id, tenant_id) is None


@pytest.mark.requires_db
async def test_list_executions_date_range(sql_store) -> None:
    tenant_id = _tenant()
    workflow = await _workflow(sql_store, tenant_id)
    created = [
        await sql_store.create_execution(
            ExecutionCreate(
                tenant_id=tenant_id,
                workflow_id=workflow.id,
                triggered_by=TriggeredBy.EVENT,
                trigger_payload={"n": n},
            )
        )
        for n in range(3)
    ]
    first, second, third = sorted(created, key=lambda e: e.created_at)

    inside = await sql_store.list_executions(
        tenant_id, ExecutionFilters(date_from=second.created_at, date_to=third.created_at)
    )
    before = await sql_store.list_executions(
        tenant_id, ExecutionFilters(date_to=first.created_at)
    )

    assert [e.id for e in inside] == [third.id, second.id]
    assert [e.id for e in before] == [first.id]
