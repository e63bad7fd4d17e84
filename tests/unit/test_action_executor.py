"""ActionExecutor and action handler unit tests with fake providers."""

import asyncio
from types import MappingProxyType
from unittest.mock import AsyncMock

import pytest

from automation.application.dtos.action import RuntimeState, TenantContext
from automation.application.services.action_executor import (
    ActionExecutor,
    AddTagHandler,
    CallWebhookHandler,
    ChangeStatusHandler,
    DelayHandler,
    SendNotificationHandler,
    UpdateFieldHandler,
    resolve_entity_id,
)
from automation.domain.entities.workflow import ActionSpec
from automation.domain.exceptions import ProviderException
from automation.infrastructure.services.template_renderer import WorkflowTemplateRenderer
from automation.shared.enums import ActionLogStatus, TriggeredBy
from automation.shared.utils.generators import idempotency_key


def _context(payload: dict | None = None, execution_id: str = "exec-1") -> TenantContext:
    return TenantContext(
        tenant_id="t1",
        workflow_id="wf1",
        execution_id=execution_id,
        triggered_by=TriggeredBy.EVENT,
        trigger_payload=MappingProxyType(payload if payload is not None else {"entity_id": "c1"}),
    )


@pytest.fixture
def providers():
    records = AsyncMock()
    records.update_field = AsyncMock(
        return_value={"entity": "lead", "entity_id": "c1", "field": "score", "value": 5}
    )
    records.add_tag = AsyncMock(return_value=True)
    webhook = AsyncMock()
    webhook.call = AsyncMock(return_value={"status": 200, "ok": True})
    notifications = AsyncMock()
    recipients = AsyncMock()
    recipients.get_emails = AsyncMock(return_value=["admin@example.com"])
    return {
        "records": records,
        "webhook": webhook,
        "notifications": notifications,
        "recipients": recipients,
    }


@pytest.fixture
def executor(providers) -> ActionExecutor:
    return ActionExecutor(
        [
            SendNotificationHandler(
                providers["notifications"], providers["recipients"], WorkflowTemplateRenderer()
            ),
            UpdateFieldHandler(providers["records"]),
            ChangeStatusHandler(providers["records"]),
            AddTagHandler(providers["records"]),
            DelayHandler(max_delay_seconds=60, poll_interval_seconds=0.01),
            CallWebhookHandler(providers["webhook"], require_https=True),
        ],
        default_timeout_seconds=1.0,
    )


def test_resolve_entity_id_order() -> None:
    assert resolve_entity_id({"id": "x", "company_id": "c", "entity_id": "e"}) == "e"
    assert resolve_entity_id({"id": "x", "company_id": "c"}) == "c"
    assert resolve_entity_id({"id": 7}) == "7"
    assert resolve_entity_id({"entity_id": ""}) is None


def test_supported_types(executor: ActionExecutor) -> None:
    assert executor.supported_types == frozenset(
        {"send_notification", "update_field", "delay", "call_webhook", "add_tag", "change_status"}
    )


async def test_unknown_type_fails_without_side_effect(executor, providers) -> None:
    result = await executor.execute(
        ActionSpec(index=0, type="send_sms", params={}), _context(), RuntimeState()
    )
    assert result.status == ActionLogStatus.FAILED
    assert result.error_code == "UNSUPPORTED_ACTION"
    assert result.started_at is not None and result.finished_at is not None


async def test_invalid_params_fail_before_provider_call(executor, providers) -> None:
    result = await executor.execute(
        ActionSpec(index=0, type="update_field", params={"entity": "lead"}),
        _context(),
        RuntimeState(),
    )
    assert result.status == ActionLogStatus.FAILED
    assert result.error_code == "INVALID_PARAMETERS"
    assert result.error_details["errors"]
    providers["records"].update_field.assert_not_awaited()


async def test_record_action_requires_entity_id_in_payload(executor, providers) -> None:
    result = await executor.execute(
        ActionSpec(index=0, type="add_tag", params={"entity": "lead", "tag": "hot"}),
        _context({"email": "a@b.co"}),
        RuntimeState(),
    )
    assert result.error_code == "INVALID_PARAMETERS"
    providers["records"].add_tag.assert_not_awaited()


async def test_update_field_passes_idempotency_key(executor, providers) -> None:
    spec = ActionSpec(
        index=2, type="update_field", params={"entity": "lead", "field": "score", "value": 5}
    )
    result = await executor.execute(spec, _context(), RuntimeState())
    assert result.status == ActionLogStatus.SUCCEEDED
    providers["records"].update_field.assert_awaited_once_with(
        "t1", "lead", "c1", "score", 5, idempotency_key=idempotency_key("exec-1", 2)
    )


async def test_change_status_writes_status_field(executor, providers) -> None:
    await executor.execute(
        ActionSpec(index=0, type="change_status", params={"entity": "lead", "status": "won"}),
        _context(),
        RuntimeState(),
    )
    args = providers["records"].update_field.await_args.args
    assert args[3:] == ("status", "won")


async def test_add_tag_existing_tag_succeeds_with_message(executor, providers) -> None:
    providers["records"].add_tag.return_value = False
    result = await executor.execute(
        ActionSpec(index=0, type="add_tag", params={"entity": "company", "tag": "vip"}),
        _context(),
        RuntimeState(),
    )
    assert result.status == ActionLogStatus.SUCCEEDED
    assert result.output["added"] is False
    assert result.output["message"] == "Tag already exists"


async def test_provider_exception_becomes_failed_result(executor, providers) -> None:
    providers["webhook"].call.side_effect = ProviderException("webhook", "boom", status_code=500)
    result = await executor.execute(
        ActionSpec(index=0, type="call_webhook", params={"url": "https://hooks.example.com/x"}),
        _context(),
        RuntimeState(),
    )
    assert result.status == ActionLogStatus.FAILED
    assert result.error_code == "PROVIDER_ERROR"
    assert result.error_details["status_code"] == 500


async def test_unexpected_exception_is_wrapped_as_provider_error(executor, providers) -> None:
    providers["records"].update_field.side_effect = RuntimeError("connection reset")
    result = await executor.execute(
        ActionSpec(
            index=0, type="update_field", params={"entity": "lead", "field": "score", "value": 1}
        ),
        _context(),
        RuntimeState(),
    )
    assert result.error_code == "PROVIDER_ERROR"
    assert result.error_details["provider"] == "record_updater"
    assert "connection reset" in result.error_message


async def test_action_timeout(executor, providers) -> None:
    async def slow_call(*args, **kwargs):
        await asyncio.sleep(5)

    providers["webhook"].call.side_effect = slow_call
    result = await executor.execute(
        ActionSpec(
            index=1,
            type="call_webhook",
            params={"url": "https://hooks.example.com/x"},
            timeout_seconds=0.05,
        ),
        _context(),
        RuntimeState(),
    )
    assert result.status == ActionLogStatus.FAILED
    assert result.error_code == "TIMEOUT"
    assert result.error_details["timeout_seconds"] == 0.05


@pytest.mark.parametrize("url", ["http://hooks.example.com/x", "ftp://hooks.example.com/x"])
async def test_webhook_requires_https(executor, providers, url) -> None:
    result = await executor.execute(
        ActionSpec(index=0, type="call_webhook", params={"url": url}), _context(), RuntimeState()
    )
    assert result.error_code == "INVALID_PARAMETERS"
    providers["webhook"].call.assert_not_awaited()


async def test_webhook_body_carries_payload_and_timestamp(executor, providers) -> None:
    await executor.execute(
        ActionSpec(
            index=0,
            type="call_webhook",
            params={"url": "https://hooks.example.com/x", "method": "PUT", "body": {"k": "v"}},
        ),
        _context({"entity_id": "c1", "plan": "pro"}),
        RuntimeState(),
    )
    url, method, headers, body = providers["webhook"].call.await_args.args
    assert (url, method, headers) == ("https://hooks.example.com/x", "PUT", {})
    assert body["k"] == "v"
    assert body["context"] == {"entity_id": "c1", "plan": "pro"}
    assert "timestamp" in body


async def test_send_notification_renders_and_sends(executor, providers) -> None:
    result = await executor.execute(
        ActionSpec(
            index=0,
            type="send_notification",
            params={"template": "new_lead_alert", "recipient": "company_admin"},
        ),
        _context({"entity_id": "c1", "email": "lead@example.com"}),
        RuntimeState(),
    )
    assert result.status == ActionLogStatus.SUCCEEDED
    assert result.output == {"template": "new_lead_alert", "recipients_count": 1}
    emails, subject, body = providers["notifications"].send.await_args.args
    assert emails == ["admin@example.com"]
    assert "lead@example.com" in body
    assert providers["notifications"].send.await_args.kwargs["idempotency_key"]


async def test_send_notification_without_recipients_is_skipped(executor, providers) -> None:
    providers["recipients"].get_emails.return_value = []
    result = await executor.execute(
        ActionSpec(
            index=0,
            type="send_notification",
            params={"template": "new_lead_alert", "recipient": "support_team"},
        ),
        _context(),
        RuntimeState(),
    )
    assert result.status == ActionLogStatus.SKIPPED
    providers["notifications"].send.assert_not_awaited()


async def test_send_notification_unknown_template(executor) -> None:
    result = await executor.execute(
        ActionSpec(
            index=0,
            type="send_notification",
            params={"template": "nope", "recipient": "company_admin"},
        ),
        _context(),
        RuntimeState(),
    )
    assert result.error_code == "INVALID_PARAMETERS"


async def test_delay_completes(executor) -> None:
    result = await executor.execute(
        ActionSpec(index=0, type="delay", params={"seconds": 1}, timeout_seconds=None),
        _context(),
        RuntimeState(),
    )
    # Delay is bounded by its own params, not the 1s default timeout.
    assert result.status == ActionLogStatus.SUCCEEDED
    assert result.output["interrupted"] is False


async def test_delay_is_interrupted_by_cancel_request(executor) -> None:
    probe = AsyncMock(return_value=True)
    result = await executor.execute(
        ActionSpec(index=0, type="delay", params={"seconds": 30}),
        _context(),
        RuntimeState(cancel_probe=probe),
    )
    assert result.status == ActionLogStatus.SUCCEEDED
    assert result.output["interrupted"] is True
    assert result.output["waited_seconds"] < 30


async def test_delay_above_max_is_rejected(executor) -> None:
    result = await executor.execute(
        ActionSpec(index=0, type="delay", params={"seconds": 61}), _context(), RuntimeState()
    )
    assert result.error_code == "INVALID_PARAMETERS"
