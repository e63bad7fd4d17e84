"""Shared enumerations for the automation engine.

Cross-cutting enums used by application and infrastructure (execution
lifecycle, trigger origin, action types, action log outcome).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class WorkflowExecutionStatus(_ValuesMixin, str, Enum):
    """Workflow execution lifecycle status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Return whether no further transition is allowed from this status."""
        return self in _TERMINAL_STATUSES


_TERMINAL_STATUSES = frozenset(
    {
        WorkflowExecutionStatus.COMPLETED,
        WorkflowExecutionStatus.FAILED,
        WorkflowExecutionStatus.CANCELLED,
    }
)


class TriggerKind(_ValuesMixin, str, Enum):
    """Kind of trigger a workflow listens for (prefix of Workflow.trigger_type)."""

    MANUAL = "manual"
    EVENT = "event"
    SCHEDULE = "schedule"


class TriggeredBy(_ValuesMixin, str, Enum):
    """What started an execution."""

    MANUAL = "manual"
    EVENT = "event"
    SCHEDULE = "schedule"


class ActionType(_ValuesMixin, str, Enum):
    """Closed set of action types a workflow step can use."""

    SEND_NOTIFICATION = "send_notification"
    UPDATE_FIELD = "update_field"
    DELAY = "delay"
    CALL_WEBHOOK = "call_webhook"
    ADD_TAG = "add_tag"
    CHANGE_STATUS = "change_status"


class ActionLogStatus(_ValuesMixin, str, Enum):
    """Outcome of one action within one execution."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class ExecutionStatusDetail(_ValuesMixin, str, Enum):
    """Why an execution reached its terminal status (stored beside status)."""

    ALL_ACTIONS_COMPLETED = "all_actions_completed"
    CONDITION_NOT_MATCHED = "condition_not_matched"
    ACTION_FAILED = "action_failed"
    CANCEL_REQUESTED = "cancel_requested"
    EXECUTION_TIMEOUT = "execution_timeout"
    WORKFLOW_NOT_FOUND = "workflow_not_found"
    INVALID_DEFINITION = "invalid_definition"
    ENGINE_ERROR = "engine_error"
