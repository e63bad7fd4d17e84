"""Domain entities.

Pure domain models; no ORM or persistence concerns.
"""

from automation.domain.entities.workflow import (
    ActionSpec,
    WorkflowEntity,
    event_trigger_type,
    parse_trigger_type,
)

__all__ = [
    "ActionSpec",
    "WorkflowEntity",
    "event_trigger_type",
    "parse_trigger_type",
]
