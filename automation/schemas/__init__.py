"""Pydantic schemas for workflow definitions."""

from automation.schemas.workflow import (
    ACTION_PARAMS_MODELS,
    ActionDefinition,
    WorkflowDefinition,
    parse_workflow_definition,
    validate_workflow_entity,
)

__all__ = [
    "ACTION_PARAMS_MODELS",
    "ActionDefinition",
    "WorkflowDefinition",
    "parse_workflow_definition",
    "validate_workflow_entity",
]
