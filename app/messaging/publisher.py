"""
Profile Service — RabbitMQ event publisher.

Declares the three downstream queues (tags, photos, ankets) on the default
exchange and publishes JSON-encoded event DTOs to them.  Queues are
non-durable and messages non-persistent; each publish is bounded by a
timeout and any failure surfaces as :class:`MessagingError`.  Nothing is
retried.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import aio_pika
import structlog
from aio_pika import DeliveryMode
from aio_pika.exceptions import AMQPException
from aiormq.exceptions import ChannelInvalidStateError
from pydantic import BaseModel

from app.config import get_settings
from app.errors import MessagingError
from app.schemas.events import AnketEvent, PhotoEvent, TagsEvent

if TYPE_CHECKING:
    from aio_pika.abc import AbstractChannel, AbstractConnection

logger = structlog.get_logger("profile_service.publisher")


class EventPublisher:
    """Publishes profile change events to RabbitMQ."""

    def __init__(
        self,
        amqp_url: str,
        tags_queue: str,
        photos_queue: str,
        ankets_queue: str,
        publish_timeout: float = 5.0,
    ) -> None:
        self._amqp_url = amqp_url
        self.tags_queue = tags_queue
        self.photos_queue = photos_queue
        self.ankets_queue = ankets_queue
        self._publish_timeout = publish_timeout
        self._connection: AbstractConnection | None = None
        self._channel: AbstractChannel | None = None

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.is_closed

    async def connect(self) -> None:
        """Open the connection and declare all three queues."""
        try:
            self._connection = await aio_pika.connect_robust(self._amqp_url)
            self._channel = await self._connection.channel()

            for queue_name in (self.tags_queue, self.photos_queue, self.ankets_queue):
                await self._channel.declare_queue(
                    queue_name,
                    durable=False,
                    auto_delete=False,
                    exclusive=False,
                )
        except (AMQPException, ChannelInvalidStateError, ConnectionError, OSError) as exc:
            logger.error("rabbit_connect_failed", error=str(exc))
            raise MessagingError(f"Failed to connect to RabbitMQ: {exc}") from exc

        logger.info(
            "rabbit_connected",
            queues=[self.tags_queue, self.photos_queue, self.ankets_queue],
        )

    async def close(self) -> None:
        if self._connection is not None and not self._connection.is_closed:
            await self._connection.close()
            logger.info("rabbit_connection_closed")
        self._connection = None
        self._channel = None

    # ── Typed publish helpers ─────────────────────────────────────────────

    async def publish_tags(self, event: TagsEvent) -> None:
        await self._publish(self.tags_queue, event)

    async def publish_photo(self, event: PhotoEvent) -> None:
        await self._publish(self.photos_queue, event)

    async def publish_anket(self, event: AnketEvent) -> None:
        await self._publish(self.ankets_queue, event)

    async def _publish(self, queue_name: str, event: BaseModel) -> None:
        if self._channel is None:
            raise MessagingError("Publisher is not connected")

        message = aio_pika.Message(
            body=event.model_dump_json(by_alias=True).encode("utf-8"),
            content_type="application/json",
            delivery_mode=DeliveryMode.NOT_PERSISTENT,
        )

        try:
            await asyncio.wait_for(
                self._channel.default_exchange.publish(message, routing_key=queue_name),
                timeout=self._publish_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("event_publish_timeout", queue=queue_name, timeout=self._publish_timeout)
            raise MessagingError(f"Publishing to {queue_name} timed out") from exc
        except (AMQPException, ChannelInvalidStateError, ConnectionError, OSError) as exc:
            logger.error("event_publish_failed", queue=queue_name, error=str(exc))
            raise MessagingError(f"Failed to publish to {queue_name}: {exc}") from exc

        logger.info("event_published", queue=queue_name)


# ── Process-wide singleton ────────────────────────────────────────────────────

_publisher: EventPublisher | None = None


def get_publisher() -> EventPublisher:
    """Return the shared publisher, building it from settings on first use.

    The lifespan handler in ``app.main`` connects it at startup.
    """
    global _publisher
    if _publisher is None:
        settings = get_settings()
        _publisher = EventPublisher(
            amqp_url=settings.AMQP_URL,
            tags_queue=settings.RABBIT_TAGS_QUEUE,
            photos_queue=settings.RABBIT_PHOTOS_QUEUE,
            ankets_queue=settings.RABBIT_ANKETS_QUEUE,
            publish_timeout=settings.RABBIT_PUBLISH_TIMEOUT_SECONDS,
        )
    return _publisher
