import asyncio
import logging

import aio_pika

from .config import RABBIT_URL
from .events import to_json

EXCHANGE_NAME = "domain_events"

logger = logging.getLogger(__name__)


class RabbitPublisher:
    def __init__(self, url: str | None = RABBIT_URL):
        self.url = url
        self.enabled = bool(url)
        self._connection: aio_pika.RobustConnection | None = None
        self._channel: aio_pika.abc.AbstractChannel | None = None
        self._exchange: aio_pika.abc.AbstractExchange | None = None

    async def connect(self):
        if not self.enabled:
            return

        if self._connection and not self._connection.is_closed:
            return

        try:
            self._connection = await aio_pika.connect_robust(self.url)
            self._channel = await self._connection.channel()
            self._exchange = await self._channel.declare_exchange(
                EXCHANGE_NAME,
                aio_pika.ExchangeType.TOPIC,
                durable=True,
            )
        except Exception as e:
            logger.warning("RabbitMQ connect failed: %s", e)
            self._connection = None
            self._channel = None
            self._exchange = None
            raise

    async def publish(self, routing_key: str, message_body: str):
        if not self.enabled:
            return

        try:
            await self.connect()
        except Exception:
            return

        if not self._exchange:
            return

        try:
            msg = aio_pika.Message(
                body=message_body.encode("utf-8"),
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            )
            await self._exchange.publish(msg, routing_key=routing_key)
        except Exception as e:
            logger.warning("RabbitMQ publish failed for %s: %s", routing_key, e)

    async def close(self):
        try:
            if self._connection and not self._connection.is_closed:
                await self._connection.close()
        finally:
            self._connection = None
            self._channel = None
            self._exchange = None


class EventQueue:
    """
    Outbound domain events.

    The booking core calls `emit` synchronously; it only enqueues and never
    raises. `drain_loop` hands queued events to the publisher in the
    background, so delivery never sits on a request's path.
    """

    def __init__(self, publisher: RabbitPublisher, maxsize: int = 10000):
        self.publisher = publisher
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def emit(self, event: dict) -> None:
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.error("event queue full, dropping %s %s", event.get("event_type"), event.get("event_id"))

    def pending(self) -> int:
        return self._queue.qsize()

    async def _publish(self, event: dict) -> None:
        try:
            await self.publisher.publish(event["event_type"], to_json(event))
        except Exception:
            logger.exception("failed to publish %s %s", event.get("event_type"), event.get("event_id"))
        finally:
            self._queue.task_done()

    async def flush(self) -> int:
        """Publish everything queued right now; returns how many events were handed on."""
        count = 0
        while not self._queue.empty():
            await self._publish(self._queue.get_nowait())
            count += 1
        return count

    async def drain_loop(self, stop_event: asyncio.Event):
        while not (stop_event.is_set() and self._queue.empty()):
            try:
                event = await asyncio.wait_for(self._queue.get(), timeout=1.0)
            except asyncio.TimeoutError:
                continue
            await self._publish(event)


publisher = RabbitPublisher()
event_queue = EventQueue(publisher)
