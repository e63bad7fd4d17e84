"""Application use cases: one entry point per workflow."""

from automation.application.use_cases.executions import ExecutionService

__all__ = ["ExecutionService"]
