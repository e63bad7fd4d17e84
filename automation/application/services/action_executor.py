"""Action executor: runs one workflow action through its handler.

Each action type is a handler behind the same interface (parse params,
check preconditions, run). The executor never raises for action-level
problems; it returns a failed ActionResult with the error code instead.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

from pydantic import BaseModel, ValidationError

from automation.application.dtos.action import ActionResult, RuntimeState, TenantContext
from automation.application.interfaces.services import (
    INotificationService,
    IRecipientResolver,
    IRecordUpdater,
    ITemplateRenderer,
    IWebhookCaller,
)
from automation.domain.entities.workflow import ActionSpec
from automation.domain.exceptions import (
    ActionTimeoutException,
    AutomationException,
    InvalidParametersException,
    ProviderException,
    UnsupportedActionException,
)
from automation.schemas.workflow import (
    AddTagParams,
    CallWebhookParams,
    ChangeStatusParams,
    DelayParams,
    SendNotificationParams,
    UpdateFieldParams,
)
from automation.shared.enums import ActionType
from automation.shared.telemetry.logging import get_logger
from automation.shared.utils.datetime import utc_now
from automation.shared.utils.generators import idempotency_key

logger = get_logger(__name__)

# Payload keys tried in order to find the record an action applies to.
_ENTITY_ID_KEYS = ("entity_id", "company_id", "id")


def resolve_entity_id(payload: Mapping[str, Any]) -> str | None:
    """Return the target record id from the trigger payload, or None."""
    for key in _ENTITY_ID_KEYS:
        value = payload.get(key)
        if value:
            return str(value)
    return None


class ActionHandler(ABC):
    """One action type. Subclasses declare params_model and implement run()."""

    action_type: ClassVar[ActionType]
    params_model: ClassVar[type[BaseModel]]
    provider_name: ClassVar[str] = "action"
    # False for actions whose duration is bounded by their own params (delay).
    uses_default_timeout: ClassVar[bool] = True

    def parse_params(self, params: Mapping[str, Any]) -> Any:
        """Validate raw params into the typed model. Raises InvalidParametersException."""
        try:
            return self.params_model.model_validate(dict(params))
        except ValidationError as e:
            first = e.errors()[0]
            loc = ".".join(str(p) for p in first.get("loc", ()))
            reason = f"{loc}: {first.get('msg')}" if loc else str(first.get("msg"))
            raise InvalidParametersException(
                self.action_type.value,
                reason,
                errors=[{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in e.errors()],
            ) from e

    def check(self, params: Any, context: TenantContext) -> None:
        """Reject params that depend on runtime context. Runs before any side effect."""

    @abstractmethod
    async def run(
        self,
        params: Any,
        context: TenantContext,
        state: RuntimeState,
        key: str,
    ) -> ActionResult:
        """Perform the side effect and return the result."""


class _RecordHandler(ActionHandler):
    """Shared precondition for handlers that mutate the triggering record."""

    provider_name = "record_updater"

    def __init__(self, record_updater: IRecordUpdater) -> None:
        self._records = record_updater

    def check(self, params: Any, context: TenantContext) -> None:
        if resolve_entity_id(context.trigger_payload) is None:
            raise InvalidParametersException(
                self.action_type.value,
                "trigger payload has no entity_id, company_id or id",
            )


class SendNotificationHandler(ActionHandler):
    action_type = ActionType.SEND_NOTIFICATION
    params_model = SendNotificationParams
    provider_name = "notification"

    def __init__(
        self,
        notification_service: INotificationService,
        recipient_resolver: IRecipientResolver,
        template_renderer: ITemplateRenderer,
    ) -> None:
        self._notifications = notification_service
        self._recipients = recipient_resolver
        self._templates = template_renderer

    def check(self, params: SendNotificationParams, context: TenantContext) -> None:
        if not self._templates.has_template(params.template):
            raise InvalidParametersException(
                self.action_type.value, f"unknown template '{params.template}'"
            )

    async def run(
        self,
        params: SendNotificationParams,
        context: TenantContext,
        state: RuntimeState,
        key: str,
    ) -> ActionResult:
        emails = await self._recipients.get_emails(
            context.tenant_id, params.recipient, params.custom_email
        )
        if not emails:
            logger.warning(
                "send_notification skipped: no recipients for %r (tenant_id=%s, execution_id=%s)",
                params.recipient,
                context.tenant_id,
                context.execution_id,
            )
            return ActionResult.skipped(f"no recipients found for '{params.recipient}'")
        subject, body = self._templates.render(
            params.template,
            dict(context.trigger_payload),
            params.variables,
            {"id": context.workflow_id, "execution_id": context.execution_id},
        )
        await self._notifications.send(emails, subject, body, idempotency_key=key)
        return ActionResult.succeeded(
            {"template": params.template, "recipients_count": len(emails)}
        )


class UpdateFieldHandler(_RecordHandler):
    action_type = ActionType.UPDATE_FIELD
    params_model = UpdateFieldParams

    async def run(
        self,
        params: UpdateFieldParams,
        context: TenantContext,
        state: RuntimeState,
        key: str,
    ) -> ActionResult:
        entity_id = resolve_entity_id(context.trigger_payload)
        output = await self._records.update_field(
            context.tenant_id,
            params.entity,
            entity_id,
            params.field,
            params.value,
            idempotency_key=key,
        )
        return ActionResult.succeeded(output)


class ChangeStatusHandler(_RecordHandler):
    action_type = ActionType.CHANGE_STATUS
    params_model = ChangeStatusParams

    async def run(
        self,
        params: ChangeStatusParams,
        context: TenantContext,
        state: RuntimeState,
        key: str,
    ) -> ActionResult:
        entity_id = resolve_entity_id(context.trigger_payload)
        output = await self._records.update_field(
            context.tenant_id,
            params.entity,
            entity_id,
            "status",
            params.status,
            idempotency_key=key,
        )
        return ActionResult.succeeded(output)


class AddTagHandler(_RecordHandler):
    action_type = ActionType.ADD_TAG
    params_model = AddTagParams

    async def run(
        self,
        params: AddTagParams,
        context: TenantContext,
        state: RuntimeState,
        key: str,
    ) -> ActionResult:
        entity_id = resolve_entity_id(context.trigger_payload)
        added = await self._records.add_tag(
            context.tenant_id, params.entity, entity_id, params.tag, idempotency_key=key
        )
        output: dict[str, Any] = {
            "added": added,
            "entity": params.entity,
            "entity_id": entity_id,
            "tag": params.tag,
        }
        if not added:
            output["message"] = "Tag already exists"
        return ActionResult.succeeded(output)


class DelayHandler(ActionHandler):
    """Waits in poll-sized slices so a cancellation request ends the wait early."""

    action_type = ActionType.DELAY
    params_model = DelayParams
    provider_name = "delay"
    uses_default_timeout = False

    def __init__(self, max_delay_seconds: int, poll_interval_seconds: float) -> None:
        self._max_delay = max_delay_seconds
        self._poll_interval = poll_interval_seconds

    def check(self, params: DelayParams, context: TenantContext) -> None:
        if params.seconds > self._max_delay:
            raise InvalidParametersException(
                self.action_type.value,
                f"seconds must not exceed {self._max_delay}",
            )

    async def run(
        self,
        params: DelayParams,
        context: TenantContext,
        state: RuntimeState,
        key: str,
    ) -> ActionResult:
        started = time.monotonic()
        deadline = started + params.seconds
        interrupted = False
        while (remaining := deadline - time.monotonic()) > 0:
            await asyncio.sleep(min(self._poll_interval, remaining))
            if await state.is_cancel_requested():
                interrupted = True
                break
        return ActionResult.succeeded(
            {
                "requested_seconds": params.seconds,
                "waited_seconds": round(time.monotonic() - started, 3),
                "interrupted": interrupted,
            }
        )


class CallWebhookHandler(ActionHandler):
    action_type = ActionType.CALL_WEBHOOK
    params_model = CallWebhookParams
    provider_name = "webhook"

    def __init__(self, webhook_caller: IWebhookCaller, *, require_https: bool = True) -> None:
        self._caller = webhook_caller
        self._require_https = require_https

    def check(self, params: CallWebhookParams, context: TenantContext) -> None:
        if self._require_https and not params.url.startswith("https://"):
            raise InvalidParametersException(
                self.action_type.value, "Webhook URL must use HTTPS"
            )
        if not params.url.startswith(("https://", "http://")):
            raise InvalidParametersException(
                self.action_type.value, "Webhook URL must be http(s)"
            )

    async def run(
        self,
        params: CallWebhookParams,
        context: TenantContext,
        state: RuntimeState,
        key: str,
    ) -> ActionResult:
        body = {
            **params.body,
            "context": dict(context.trigger_payload),
            "timestamp": utc_now().isoformat(),
        }
        output = await self._caller.call(
            params.url, params.method, params.headers, body, idempotency_key=key
        )
        return ActionResult.succeeded(output)


class ActionExecutor:
    """Runs one action spec: handler lookup, param validation, timeout, error capture."""

    def __init__(
        self,
        handlers: Iterable[ActionHandler],
        *,
        default_timeout_seconds: float = 30.0,
    ) -> None:
        self._handlers: dict[str, ActionHandler] = {
            h.action_type.value: h for h in handlers
        }
        self._default_timeout = default_timeout_seconds

    @property
    def supported_types(self) -> frozenset[str]:
        return frozenset(self._handlers)

    def _timeout_for(self, spec: ActionSpec, handler: ActionHandler) -> float | None:
        if spec.timeout_seconds is not None:
            return spec.timeout_seconds
        return self._default_timeout if handler.uses_default_timeout else None

    async def execute(
        self, spec: ActionSpec, context: TenantContext, state: RuntimeState
    ) -> ActionResult:
        """Run spec for context. Always returns a result; only task cancellation propagates."""
        started_at = utc_now()
        handler = self._handlers.get(spec.type)
        if handler is None:
            return ActionResult.failed(UnsupportedActionException(spec.type)).timed(
                started_at, utc_now()
            )

        try:
            params = handler.parse_params(spec.params)
            handler.check(params, context)
        except InvalidParametersException as e:
            return ActionResult.failed(e).timed(started_at, utc_now())

        timeout = self._timeout_for(spec, handler)
        key = idempotency_key(context.execution_id, spec.index)
        try:
            result = await asyncio.wait_for(
                handler.run(params, context, state, key), timeout=timeout
            )
        except TimeoutError:
            # Outcome of the side effect is unknown; report failure, never retry here.
            logger.warning(
                "Action %d (%s) timed out after %ss (execution_id=%s)",
                spec.index,
                spec.type,
                timeout,
                context.execution_id,
            )
            result = ActionResult.failed(ActionTimeoutException(spec.type, timeout or 0))
        except AutomationException as e:
            result = ActionResult.failed(e)
        except Exception as e:
            logger.exception(
                "Action %d (%s) raised (execution_id=%s)",
                spec.index,
                spec.type,
                context.execution_id,
            )
            result = ActionResult.failed(ProviderException(handler.provider_name, str(e)))
        return result.timed(started_at, utc_now())
