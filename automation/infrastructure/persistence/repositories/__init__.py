"""Persistence repositories. Re-exports for dependency injection."""

from automation.infrastructure.persistence.repositories.base import BaseRepository
from automation.infrastructure.persistence.repositories.workflow_repo import (
    WorkflowActionLogRepository,
    WorkflowExecutionRepository,
    WorkflowRepository,
)

__all__ = [
    "BaseRepository",
    "WorkflowActionLogRepository",
    "WorkflowExecutionRepository",
    "WorkflowRepository",
]
