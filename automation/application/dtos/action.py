"""DTOs passed into and returned from action handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from automation.domain.exceptions import AutomationException
from automation.shared.enums import ActionLogStatus, TriggeredBy


@dataclass(frozen=True)
class TenantContext:
    """Who and what an action runs for. trigger_payload is a read-only copy of the snapshot."""

    tenant_id: str
    workflow_id: str
    execution_id: str
    triggered_by: TriggeredBy
    trigger_payload: Mapping[str, Any]
    actor_id: str | None = None


@dataclass
class RuntimeState:
    """Per-execution mutable state. Never shared between executions."""

    outputs: dict[int, dict[str, Any]] = field(default_factory=dict)
    cancel_probe: Callable[[], Awaitable[bool]] | None = None

    async def is_cancel_requested(self) -> bool:
        """Return whether cancellation was requested for this execution."""
        if self.cancel_probe is None:
            return False
        return await self.cancel_probe()


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one action: status plus output or error."""

    status: ActionLogStatus
    output: dict[str, Any] | None = None
    error_code: str | None = None
    error_message: str | None = None
    error_details: dict[str, Any] | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @classmethod
    def succeeded(cls, output: dict[str, Any] | None = None) -> ActionResult:
        return cls(status=ActionLogStatus.SUCCEEDED, output=output or {})

    @classmethod
    def skipped(cls, reason: str) -> ActionResult:
        return cls(status=ActionLogStatus.SKIPPED, output={"reason": reason})

    @classmethod
    def failed(cls, exc: AutomationException) -> ActionResult:
        return cls(
            status=ActionLogStatus.FAILED,
            error_code=exc.error_code,
            error_message=exc.message,
            error_details=exc.details or None,
        )

    def timed(self, started_at: datetime, finished_at: datetime) -> ActionResult:
        """Return a copy stamped with start and finish times."""
        return replace(self, started_at=started_at, finished_at=finished_at)
