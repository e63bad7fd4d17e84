"""Messaging: Redis pub/sub for domain events that trigger workflows."""

from automation.infrastructure.messaging.redis_events import (
    DomainEvent,
    WorkflowEventPublisher,
    handle_event_message,
    run_event_ingress,
)

__all__ = [
    "DomainEvent",
    "WorkflowEventPublisher",
    "handle_event_message",
    "run_event_ingress",
]
