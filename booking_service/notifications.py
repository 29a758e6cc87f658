"""
Notification consumer.

Turns booking domain events into notification requests for whoever should
hear about them (club owner or customer) and publishes them as
`notification.requested`. Delivery, push tokens and retries belong to the
notification service downstream.
"""

import json
import logging
from datetime import date
from typing import Optional

import aio_pika
from aio_pika import ExchangeType

from .events import BOOKING_CREATED, BOOKING_STATUS_UPDATED, NOTIFICATION_REQUESTED, build_event, to_json
from .publisher import EXCHANGE_NAME
from .statuses import BookingStatus

QUEUE_NAME = "booking_service_notifications"
ROUTING_KEYS = [BOOKING_CREATED, BOOKING_STATUS_UPDATED]

IDEMPOTENCY_TTL = 3600

logger = logging.getLogger(__name__)


def processed_key(event_id: str) -> str:
    return f"processed_event:{event_id}"


def _when(booking: dict, short: bool = False) -> str:
    d = date.fromisoformat(booking["booking_date"])
    if short:
        return f"{d:%b} {d.day}"
    return f"{d:%b} {d.day}, {d.year}"


def _notification(recipient_id, title, message, ntype, booking: dict, href: str) -> dict:
    return {
        "recipient_id": recipient_id,
        "title": title,
        "message": message,
        "type": ntype,
        "related_entity_id": booking["booking_id"],
        "related_entity_type": "Booking",
        "data": {"booking_id": booking["booking_id"], "href": href},
    }


def build_notification(
    event_type: str,
    data: dict,
    club_owner_id: Optional[str],
    service_name: str = "",
) -> dict | None:
    booking = data.get("booking")
    if not booking:
        return None

    if event_type == BOOKING_CREATED:
        if not club_owner_id:
            return None
        name = (data.get("service") or {}).get("name") or service_name
        return _notification(
            club_owner_id,
            "New Booking Request!",
            f"New booking for {name} ({_when(booking, short=True)}, {booking['start_time']}-{booking['end_time']}).",
            "booking_pending",
            booking,
            "/dashboard/owner",
        )

    if event_type != BOOKING_STATUS_UPDATED:
        return None

    status = data.get("new_status")
    customer_id = booking.get("customer_id")
    on = f"{service_name or 'your service'} on {_when(booking)} at {booking['start_time']}"

    if status == BookingStatus.CONFIRMED.value:
        return _notification(
            customer_id, "Booking Confirmed!", f"Your booking for {on} has been confirmed.",
            "booking_confirmed", booking, "/dashboard/user",
        )
    if status == BookingStatus.CANCELLED_BY_CLUB.value:
        return _notification(
            customer_id, "Booking Cancelled by Club", f"Your booking for {on} has been cancelled by the club.",
            "booking_cancelled", booking, "/dashboard/user",
        )
    if status == BookingStatus.CANCELLED_BY_CUSTOMER.value:
        if not club_owner_id:
            return None
        return _notification(
            club_owner_id, "Booking Cancelled", f"The booking for {on} has been cancelled by the customer.",
            "booking_cancelled", booking, "/dashboard/owner",
        )
    if status == BookingStatus.EXPIRED.value:
        return _notification(
            customer_id, "Booking Expired", f"Your booking for {on} has expired.",
            "booking_expired", booking, "/dashboard/user",
        )
    if status == BookingStatus.REJECTED.value:
        return _notification(
            customer_id, "Booking Rejected", f"Your booking for {on} was not accepted by the club.",
            "booking_rejected", booking, "/dashboard/user",
        )
    return None


class NotificationConsumer:
    def __init__(self, clubs, catalog, publisher, redis=None):
        self.clubs = clubs
        self.catalog = catalog
        self.publisher = publisher
        self.redis = redis

    async def _seen(self, event_id: str) -> bool:
        if self.redis is None:
            return False
        pk = processed_key(event_id)
        if await self.redis.get(pk):
            return True
        await self.redis.set(pk, "1", ex=IDEMPOTENCY_TTL)
        return False

    async def handle_payload(self, payload: dict) -> dict | None:
        event_id = payload.get("event_id")
        event_type = payload.get("event_type")
        data = payload.get("data") or {}

        if not event_id or event_type not in ROUTING_KEYS:
            return None

        # idempotent handling
        if await self._seen(event_id):
            return None

        booking = data.get("booking") or {}
        if not booking:
            logger.error("event %s carries no booking, cannot notify", event_id)
            return None

        club_owner_id = None
        club_id = booking.get("club_id")
        if club_id:
            club = await self.clubs.find_club(club_id)
            club_owner_id = club.owner_id if club else None

        service_name = (data.get("service") or {}).get("name") or ""
        if not service_name and booking.get("service_id"):
            service = await self.catalog.get_service(booking["service_id"])
            service_name = service.name if service else ""

        notification = build_notification(event_type, data, club_owner_id, service_name)
        if notification is None:
            return None

        ev = build_event(NOTIFICATION_REQUESTED, notification)
        await self.publisher.publish(NOTIFICATION_REQUESTED, to_json(ev))
        return notification

    async def handle_message(self, message: aio_pika.IncomingMessage):
        async with message.process(requeue=False):
            try:
                payload = json.loads(message.body.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                logger.warning("dropping malformed message %s", message.message_id)
                return

            try:
                await self.handle_payload(payload)
            except Exception:
                logger.exception("notification handling failed for %s", payload.get("event_id"))

    async def start(self, rabbit_url: str):
        conn = await aio_pika.connect_robust(rabbit_url)
        channel = await conn.channel()
        await channel.set_qos(prefetch_count=50)

        exchange = await channel.declare_exchange(EXCHANGE_NAME, ExchangeType.TOPIC, durable=True)
        queue = await channel.declare_queue(QUEUE_NAME, durable=True)

        for rk in ROUTING_KEYS:
            await queue.bind(exchange, routing_key=rk)

        await queue.consume(self.handle_message)
        logger.info("notification consumer started")
        return conn
