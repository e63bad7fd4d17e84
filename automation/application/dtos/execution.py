"""DTOs for executions and action logs (no dependency on ORM or presentation schemas)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from automation.shared.enums import (
    ActionLogStatus,
    TriggeredBy,
    WorkflowExecutionStatus,
)


@dataclass(frozen=True)
class ExecutionCreate:
    """Input for admitting a pending execution. trigger_payload is the immutable snapshot."""

    tenant_id: str
    workflow_id: str
    triggered_by: TriggeredBy
    trigger_payload: dict[str, Any]
    actor_id: str | None = None


@dataclass(frozen=True)
class ExecutionResult:
    """Execution read-model (result of create, claim, finalize, get)."""

    id: str
    tenant_id: str
    workflow_id: str
    triggered_by: TriggeredBy
    trigger_payload: dict[str, Any]
    status: WorkflowExecutionStatus
    actor_id: str | None = None
    status_detail: str | None = None
    error_message: str | None = None
    actions_executed: int = 0
    actions_failed: int = 0
    cancel_requested: bool = False
    created_at: datetime | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class ExecutionOutcome:
    """Terminal values written when the engine finalizes a running execution."""

    status: WorkflowExecutionStatus
    status_detail: str
    finished_at: datetime
    error_message: str | None = None
    actions_executed: int = 0
    actions_failed: int = 0


@dataclass(frozen=True)
class ActionLogCreate:
    """Input for appending one action log. action_config is the spec captured by value."""

    execution_id: str
    tenant_id: str
    action_index: int
    action_type: str
    action_config: dict[str, Any]
    status: ActionLogStatus
    started_at: datetime
    finished_at: datetime
    output: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ActionLogResult:
    """Action log read-model."""

    id: str
    execution_id: str
    tenant_id: str
    action_index: int
    action_type: str
    action_config: dict[str, Any]
    status: ActionLogStatus
    started_at: datetime
    finished_at: datetime
    output: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ExecutionDetail:
    """One execution with its action logs in action-index order."""

    execution: ExecutionResult
    action_logs: list[ActionLogResult] = field(default_factory=list)

    @property
    def failed_action(self) -> ActionLogResult | None:
        """Return the log of the action that failed the run, if any."""
        for log in self.action_logs:
            if log.status == ActionLogStatus.FAILED:
                return log
        return None


@dataclass(frozen=True)
class ExecutionFilters:
    """Filters for listing executions (newest first)."""

    workflow_id: str | None = None
    status: WorkflowExecutionStatus | None = None
    triggered_by: TriggeredBy | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    skip: int = 0
    limit: int = 50
