"""Workflow definition schemas: one parameter model per action type.

Actions are a closed, tagged set (discriminated on "type"); definitions
are validated when saved so malformed parameters never reach execution.
The same parameter models are reused by the action executor at run time.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from automation.application.services.condition_evaluator import (
    DEFAULT_MAX_DEPTH,
    validate_condition,
)
from automation.domain.entities.workflow import ActionSpec, WorkflowEntity, parse_trigger_type
from automation.domain.exceptions import ValidationException
from automation.shared.enums import ActionType, TriggerKind

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_FIELD_NAME_PATTERN = r"^[a-z_][a-z0-9_]{0,62}$"
# Keys and ownership columns an action may never rewrite.
_PROTECTED_FIELDS = frozenset({"id", "company_id", "created_at"})

RecordEntity = Literal["company", "lead", "subscription"]
TaggableEntity = Literal["company", "lead"]


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid")


class SendNotificationParams(_Params):
    """Notify a recipient group using a named template."""

    template: str = Field(..., min_length=1, max_length=128)
    recipient: Literal["company_admin", "support_team", "custom"]
    custom_email: str | None = Field(default=None, pattern=_EMAIL_PATTERN)
    variables: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def custom_requires_email(self) -> SendNotificationParams:
        if self.recipient == "custom" and not self.custom_email:
            raise ValueError("custom_email is required when recipient is 'custom'")
        return self


class UpdateFieldParams(_Params):
    """Set one column on the triggering record."""

    entity: RecordEntity
    field: str = Field(..., pattern=_FIELD_NAME_PATTERN)
    value: Any = Field(...)

    @field_validator("field")
    @classmethod
    def not_protected(cls, value: str) -> str:
        if value in _PROTECTED_FIELDS:
            raise ValueError(f"field '{value}' cannot be updated by a workflow")
        return value


class DelayParams(_Params):
    """Suspend the execution cooperatively. Upper bound is enforced from settings."""

    seconds: int = Field(..., gt=0)


class CallWebhookParams(_Params):
    """Send the trigger context to an external URL."""

    url: str = Field(..., min_length=1, max_length=2048)
    method: Literal["POST", "PUT"] = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)


class AddTagParams(_Params):
    entity: TaggableEntity
    tag: str = Field(..., min_length=1, max_length=64)


class ChangeStatusParams(_Params):
    entity: RecordEntity
    status: str = Field(..., min_length=1, max_length=64)


ACTION_PARAMS_MODELS: dict[str, type[_Params]] = {
    ActionType.SEND_NOTIFICATION.value: SendNotificationParams,
    ActionType.UPDATE_FIELD.value: UpdateFieldParams,
    ActionType.DELAY.value: DelayParams,
    ActionType.CALL_WEBHOOK.value: CallWebhookParams,
    ActionType.ADD_TAG.value: AddTagParams,
    ActionType.CHANGE_STATUS.value: ChangeStatusParams,
}


class _ActionBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    timeout_seconds: float | None = Field(default=None, gt=0, le=24 * 60 * 60)


class SendNotificationAction(_ActionBase):
    type: Literal["send_notification"]
    params: SendNotificationParams


class UpdateFieldAction(_ActionBase):
    type: Literal["update_field"]
    params: UpdateFieldParams


class DelayAction(_ActionBase):
    type: Literal["delay"]
    params: DelayParams


class CallWebhookAction(_ActionBase):
    type: Literal["call_webhook"]
    params: CallWebhookParams


class AddTagAction(_ActionBase):
    type: Literal["add_tag"]
    params: AddTagParams


class ChangeStatusAction(_ActionBase):
    type: Literal["change_status"]
    params: ChangeStatusParams


ActionDefinition = Annotated[
    SendNotificationAction
    | UpdateFieldAction
    | DelayAction
    | CallWebhookAction
    | AddTagAction
    | ChangeStatusAction,
    Field(discriminator="type"),
]


class WorkflowDefinition(BaseModel):
    """Workflow as saved by a tenant admin: trigger, condition and ordered actions."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    trigger_type: str = Field(..., min_length=1, max_length=140)
    condition: dict[str, Any] | None = None
    actions: list[ActionDefinition] = Field(default_factory=list)
    is_active: bool = True
    schedule_interval_minutes: int | None = Field(default=None, gt=0)
    execution_timeout_seconds: float | None = Field(default=None, gt=0)

    @field_validator("trigger_type")
    @classmethod
    def check_trigger_type(cls, value: str) -> str:
        parse_trigger_type(value)
        return value

    @field_validator("condition")
    @classmethod
    def check_condition(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        try:
            validate_condition(value, DEFAULT_MAX_DEPTH)
        except ValidationException as e:
            raise ValueError(e.message) from e
        return value or None

    @model_validator(mode="after")
    def check_actions_and_schedule(self) -> WorkflowDefinition:
        if self.is_active and not self.actions:
            raise ValueError("An active workflow must have at least one action")
        kind = parse_trigger_type(self.trigger_type)[0]
        if self.schedule_interval_minutes is not None and kind != TriggerKind.SCHEDULE:
            raise ValueError("schedule_interval_minutes is only valid for schedule triggers")
        return self

    def action_specs(self) -> tuple[ActionSpec, ...]:
        """Return actions as specs with dense indices in list order."""
        return tuple(
            ActionSpec(
                index=i,
                type=action.type,
                params=action.params.model_dump(mode="json"),
                timeout_seconds=action.timeout_seconds,
            )
            for i, action in enumerate(self.actions)
        )


def _errors_summary(exc: ValidationError) -> str:
    first = exc.errors()[0]
    loc = ".".join(str(part) for part in first.get("loc", ()))
    return f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))


def parse_workflow_definition(data: dict[str, Any]) -> WorkflowDefinition:
    """Validate raw workflow input. Raises ValidationException with the first error."""
    try:
        return WorkflowDefinition.model_validate(data)
    except ValidationError as e:
        first_loc = e.errors()[0].get("loc", ())
        raise ValidationException(
            f"Invalid workflow definition: {_errors_summary(e)}",
            field=".".join(str(p) for p in first_loc) or None,
        ) from e


def validate_workflow_entity(
    workflow: WorkflowEntity, max_depth: int = DEFAULT_MAX_DEPTH
) -> None:
    """Re-check a stored workflow before admitting an execution for it.

    Raises ValidationException for an active workflow without actions,
    non-dense action indices, unknown action types, bad parameters or a
    malformed condition.
    """
    if not workflow.actions:
        raise ValidationException("Workflow has no actions", field="actions")
    if not workflow.has_dense_action_indices():
        raise ValidationException(
            "Action indices must be dense and start at 0", field="actions"
        )
    validate_condition(workflow.condition, max_depth)
    for spec in workflow.actions:
        model = ACTION_PARAMS_MODELS.get(spec.type)
        if model is None:
            raise ValidationException(
                f"Unsupported action type: {spec.type}", field=f"actions[{spec.index}].type"
            )
        try:
            model.model_validate(spec.params)
        except ValidationError as e:
            raise ValidationException(
                f"Invalid parameters for {spec.type}: {_errors_summary(e)}",
                field=f"actions[{spec.index}].params",
            ) from e
