"""Application layer: DTOs, interfaces, services, use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (store, providers, runner).
"""

from automation.application.dtos import (
    ActionResult,
    ExecutionDetail,
    ExecutionFilters,
    ExecutionResult,
    ManualTriggerGrant,
)
from automation.application.interfaces import IExecutionRunner, IWorkflowStore

__all__ = [
    "ActionResult",
    "ExecutionDetail",
    "ExecutionFilters",
    "ExecutionResult",
    "IExecutionRunner",
    "IWorkflowStore",
    "ManualTriggerGrant",
]
