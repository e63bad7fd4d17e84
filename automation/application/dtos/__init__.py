"""Application DTOs (no ORM dependency)."""

from automation.application.dtos.action import ActionResult, RuntimeState, TenantContext
from automation.application.dtos.execution import (
    ActionLogCreate,
    ActionLogResult,
    ExecutionCreate,
    ExecutionDetail,
    ExecutionFilters,
    ExecutionOutcome,
    ExecutionResult,
)
from automation.application.dtos.trigger import ManualTriggerGrant

__all__ = [
    "ActionLogCreate",
    "ActionLogResult",
    "ActionResult",
    "ExecutionCreate",
    "ExecutionDetail",
    "ExecutionFilters",
    "ExecutionOutcome",
    "ExecutionResult",
    "ManualTriggerGrant",
    "RuntimeState",
    "TenantContext",
]
