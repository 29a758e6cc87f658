import json
import uuid
from datetime import datetime, timezone

BOOKING_CREATED = "booking.created"
BOOKING_STATUS_UPDATED = "booking.status_updated"
NOTIFICATION_REQUESTED = "notification.requested"


def build_event(event_type: str, data: dict) -> dict:
    return {
        "event_id": str(uuid.uuid4()),
        "event_type": event_type,
        "occurred_at": datetime.now(timezone.utc).isoformat(),
        "data": data,
    }


def to_json(event: dict) -> str:
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False, default=str)


def booking_created(booking, service) -> dict:
    return build_event(
        BOOKING_CREATED,
        {
            "booking": booking.to_dict(),
            "service": service.snapshot() if service is not None else None,
        },
    )


def booking_status_updated(booking_id: str, new_status: str, booking=None) -> dict:
    return build_event(
        BOOKING_STATUS_UPDATED,
        {
            "booking_id": booking_id,
            "new_status": new_status,
            "booking": booking.to_dict() if booking is not None else None,
        },
    )
