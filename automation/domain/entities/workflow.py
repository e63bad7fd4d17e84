"""Workflow domain entity.

A workflow is a definition: trigger type, condition over the trigger
payload, and an ordered list of action specifications. The engine only
reads it; edits happen through the management layer.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from automation.shared.enums import TriggerKind

EVENT_TRIGGER_PREFIX = "event:"
_EVENT_NAME_RE = re.compile(r"^[a-z][a-z0-9_.-]{0,127}$")


def is_valid_event_name(event_name: str) -> bool:
    """Return whether event_name is a well-formed domain event name (e.g. lead_created)."""
    return bool(_EVENT_NAME_RE.fullmatch(event_name))


def event_trigger_type(event_name: str) -> str:
    """Return the stored trigger type for an event name ('event:<name>')."""
    return f"{EVENT_TRIGGER_PREFIX}{event_name}"


def parse_trigger_type(trigger_type: str) -> tuple[TriggerKind, str | None]:
    """Split a stored trigger type into (kind, event name).

    Raises ValueError for anything other than 'manual', 'schedule' or
    'event:<event-name>'.
    """
    if trigger_type == TriggerKind.MANUAL.value:
        return TriggerKind.MANUAL, None
    if trigger_type == TriggerKind.SCHEDULE.value:
        return TriggerKind.SCHEDULE, None
    if trigger_type.startswith(EVENT_TRIGGER_PREFIX):
        event_name = trigger_type[len(EVENT_TRIGGER_PREFIX) :]
        if is_valid_event_name(event_name):
            return TriggerKind.EVENT, event_name
    raise ValueError(
        f"trigger_type must be 'manual', 'schedule' or 'event:<event-name>', got {trigger_type!r}"
    )


@dataclass(frozen=True)
class ActionSpec:
    """One step of a workflow. index is the execution order (0..n-1, dense)."""

    index: int
    type: str
    params: dict[str, Any] = field(default_factory=dict)
    timeout_seconds: float | None = None

    def snapshot(self) -> dict[str, Any]:
        """Return the spec by value, as recorded on the action log."""
        return {
            "index": self.index,
            "type": self.type,
            "params": dict(self.params),
            "timeout_seconds": self.timeout_seconds,
        }


@dataclass(frozen=True)
class WorkflowEntity:
    """Domain entity for a workflow definition (trigger + condition + actions)."""

    id: str
    tenant_id: str
    name: str
    trigger_type: str
    actions: tuple[ActionSpec, ...]
    is_active: bool = True
    description: str | None = None
    condition: dict[str, Any] | None = None
    schedule_interval_minutes: int | None = None
    execution_timeout_seconds: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def trigger_kind(self) -> TriggerKind:
        return parse_trigger_type(self.trigger_type)[0]

    def belongs_to_tenant(self, tenant_id: str) -> bool:
        """Return whether this workflow belongs to the given tenant."""
        return self.tenant_id == tenant_id

    def can_trigger_on(self, event_name: str) -> bool:
        """Return whether this workflow is active and listens for the event."""
        return self.is_active and self.trigger_type == event_trigger_type(event_name)

    def ordered_actions(self) -> list[ActionSpec]:
        """Return actions sorted by index (execution order)."""
        return sorted(self.actions, key=lambda a: a.index)

    def has_dense_action_indices(self) -> bool:
        """Return whether action indices are exactly 0..n-1."""
        return sorted(a.index for a in self.actions) == list(range(len(self.actions)))
