"""Redis event ingress tests: message parsing and dispatch (no Redis server)."""

import json
from unittest.mock import AsyncMock

import pytest

from automation.domain.exceptions import ValidationException
from automation.infrastructure.messaging.redis_events import (
    DomainEvent,
    WorkflowEventPublisher,
    handle_event_message,
)

PREFIX = "workflow_events"


def _message(data, channel=f"{PREFIX}:t1") -> dict:
    return {"type": "pmessage", "channel": channel, "data": data}


@pytest.fixture
def dispatcher():
    mock = AsyncMock()
    mock.on_event = AsyncMock(return_value=["exec-1"])
    return mock


async def test_event_is_dispatched_to_channel_tenant(dispatcher) -> None:
    data = json.dumps({"event_name": "lead_created", "payload": {"entity_id": "lead-1"}})

    ids = await handle_event_message(dispatcher, _message(data), PREFIX)

    assert ids == ["exec-1"]
    dispatcher.on_event.assert_awaited_once_with("t1", "lead_created", {"entity_id": "lead-1"})


async def test_bytes_channel_is_accepted(dispatcher) -> None:
    data = json.dumps({"event_name": "lead_created"})

    await handle_event_message(dispatcher, _message(data, channel=b"workflow_events:t9"), PREFIX)

    dispatcher.on_event.assert_awaited_once_with("t9", "lead_created", {})


@pytest.mark.parametrize(
    "message",
    [
        _message("not json"),
        _message(json.dumps({"payload": {}})),
        _message(json.dumps({"event_name": 5})),
        _message(json.dumps({"event_name": "x"}), channel="other:t1"),
        _message(json.dumps({"event_name": "x"}), channel=f"{PREFIX}:"),
    ],
)
async def test_malformed_messages_are_dropped(dispatcher, message) -> None:
    assert await handle_event_message(dispatcher, message, PREFIX) == []
    dispatcher.on_event.assert_not_awaited()


async def test_rejected_event_is_dropped(dispatcher) -> None:
    dispatcher.on_event.side_effect = ValidationException("Invalid event name")

    ids = await handle_event_message(
        dispatcher, _message(json.dumps({"event_name": "Bad Name"})), PREFIX
    )

    assert ids == []


def test_domain_event_round_trip() -> None:
    event = DomainEvent(event_name="trial_ending", payload={"company_id": "c1"})
    assert DomainEvent.from_dict(event.to_dict()) == event


async def test_publish_to_tenant_channel() -> None:
    client = AsyncMock()
    publisher = WorkflowEventPublisher(redis_client=client)

    assert await publisher.publish("t1", "lead_created", {"entity_id": "lead-1"})

    channel, raw = client.publish.await_args.args
    assert channel == f"{publisher.channel_prefix}:t1"
    assert json.loads(raw) == {"event_name": "lead_created", "payload": {"entity_id": "lead-1"}}


async def test_publish_without_connection_returns_false() -> None:
    publisher = WorkflowEventPublisher()
    assert await publisher.publish("t1", "lead_created") is False
