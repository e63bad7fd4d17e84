"""Shared utilities: enums, telemetry, and cross-cutting helpers.

Used by domain, application, and infrastructure. No business logic.
"""

from automation.shared.enums import (
    ActionLogStatus,
    ActionType,
    ExecutionStatusDetail,
    TriggeredBy,
    TriggerKind,
    WorkflowExecutionStatus,
)
from automation.shared.utils import (
    ensure_utc,
    generate_cuid,
    idempotency_key,
    utc_now,
)

__all__ = [
    "ActionLogStatus",
    "ActionType",
    "ExecutionStatusDetail",
    "TriggerKind",
    "TriggeredBy",
    "WorkflowExecutionStatus",
    "ensure_utc",
    "generate_cuid",
    "idempotency_key",
    "utc_now",
]
