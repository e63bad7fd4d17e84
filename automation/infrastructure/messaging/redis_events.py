"""Redis Pub/Sub for domain events that trigger workflows.

Domain code publishes {"event_name", "payload"} to the tenant channel
<prefix>:<tenant_id>; the ingress loop pattern-subscribes to every tenant
channel and hands each event to the trigger dispatcher.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any

import redis.asyncio as redis

from automation.core.config import get_settings
from automation.domain.exceptions import AutomationException

if TYPE_CHECKING:
    from automation.application.services.trigger_dispatcher import TriggerDispatcher

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Domain event payload for Redis."""

    event_name: str
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON publish."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DomainEvent:
        """Deserialize from Redis message. Raises KeyError/TypeError on bad shape."""
        event_name = data["event_name"]
        payload = data.get("payload") or {}
        if not isinstance(event_name, str) or not isinstance(payload, dict):
            raise TypeError("event_name must be a string and payload an object")
        return cls(event_name=event_name, payload=payload)


class _RedisPubSubBase:
    """Shared Redis connection and channel logic for workflow events."""

    def __init__(self, redis_client: redis.Redis | None = None) -> None:
        """Initialize. Pass redis_client for DI/testing."""
        self.redis = redis_client
        self.settings = get_settings()
        self.channel_prefix = self.settings.event_channel_prefix
        self._connected = redis_client is not None

    async def connect(self) -> None:
        """Establish Redis connection. Call on startup."""
        if self._connected:
            return
        if self.redis is None:
            try:
                self.redis = redis.Redis(
                    host=self.settings.redis_host,
                    port=self.settings.redis_port,
                    db=self.settings.redis_db,
                    password=self.settings.redis_password.get_secret_value() if self.settings.redis_password else None,
                    decode_responses=True,
                    socket_connect_timeout=5,
                )
                await self.redis.ping()
                self._connected = True
                logger.info("Redis pub/sub connected")
            except (redis.ConnectionError, redis.TimeoutError) as e:
                logger.warning("Redis pub/sub connection failed: %s", e)
                self._connected = False
                self.redis = None

    async def disconnect(self) -> None:
        """Close Redis connection. Call on shutdown."""
        if self.redis:
            await self.redis.aclose()
            self._connected = False
            logger.info("Redis pub/sub disconnected")

    def is_available(self) -> bool:
        """Return True if Redis is connected."""
        return self._connected and self.redis is not None

    def _get_channel(self, tenant_id: str) -> str:
        """Channel name for tenant."""
        return f"{self.channel_prefix}:{tenant_id}"


class WorkflowEventPublisher(_RedisPubSubBase):
    """Publishes domain events to the tenant's workflow event channel."""

    async def publish(
        self, tenant_id: str, event_name: str, payload: dict[str, Any] | None = None
    ) -> bool:
        """Publish a domain event.

        Returns:
            True if published, False if Redis unavailable or publish failed.
        """
        if not self.is_available() or self.redis is None:
            logger.debug("Redis not available, skipping publish of %s", event_name)
            return False
        event = DomainEvent(event_name=event_name, payload=payload or {})
        try:
            channel = self._get_channel(tenant_id)
            await self.redis.publish(channel, json.dumps(event.to_dict(), default=str))
            logger.debug("Published %s to %s", event_name, channel)
        except redis.RedisError:
            logger.exception("Failed to publish workflow event %s", event_name)
            return False
        else:
            return True


def _tenant_from_channel(channel: Any, prefix: str) -> str | None:
    channel_str = channel.decode() if isinstance(channel, bytes) else (channel or "")
    head, sep, tenant_id = channel_str.partition(":")
    if not sep or head != prefix or not tenant_id:
        return None
    return tenant_id


async def handle_event_message(
    dispatcher: TriggerDispatcher, message: dict[str, Any], prefix: str
) -> list[str]:
    """Dispatch one pmessage. Malformed messages and rejected events are logged and dropped."""
    tenant_id = _tenant_from_channel(message.get("channel"), prefix)
    if tenant_id is None:
        logger.warning("Ignoring workflow event on unexpected channel %r", message.get("channel"))
        return []
    try:
        event = DomainEvent.from_dict(json.loads(message["data"]))
    except (json.JSONDecodeError, KeyError, TypeError):
        logger.exception("Failed to parse workflow event message")
        return []
    try:
        return await dispatcher.on_event(tenant_id, event.event_name, event.payload)
    except AutomationException as e:
        logger.warning(
            "Workflow event %s for tenant %s rejected: %s", event.event_name, tenant_id, e.message
        )
        return []


async def run_event_ingress(
    dispatcher: TriggerDispatcher, subscriber: _RedisPubSubBase | None = None
) -> None:
    """Pattern-subscribe to <prefix>:* and feed each event to dispatcher.on_event.

    Call as a background task when Redis is enabled. Cancelling the task stops the loop.
    """
    owns_subscriber = subscriber is None
    subscriber = subscriber or _RedisPubSubBase()
    await subscriber.connect()
    if not subscriber.is_available() or subscriber.redis is None:
        logger.warning("Redis not available, workflow event ingress not started")
        return
    prefix = subscriber.channel_prefix
    pubsub = subscriber.redis.pubsub()
    try:
        await pubsub.psubscribe(f"{prefix}:*")
        logger.info("Subscribed to %s:* for workflow events", prefix)
        async for message in pubsub.listen():
            if message["type"] != "pmessage":
                continue
            try:
                await handle_event_message(dispatcher, message, prefix)
            except Exception:
                logger.exception("Failed to dispatch workflow event")
    except asyncio.CancelledError:
        logger.info("Workflow event ingress cancelled")
        raise
    finally:
        await pubsub.punsubscribe()
        await pubsub.aclose()
        if owns_subscriber:
            await subscriber.disconnect()
