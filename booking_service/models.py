from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, String

from .db import Base
from .statuses import BookingStatus, PaymentStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_service_date_status", "service_id", "booking_date", "status"),
    )

    id = Column(Integer, primary_key=True)
    booking_id = Column(String, unique=True, nullable=False, index=True)

    customer_id = Column(String, nullable=False, index=True)
    club_id = Column(String, nullable=False, index=True)
    service_id = Column(String, nullable=False, index=True)
    reschedule_of = Column(String, nullable=True, index=True)  # booking_id of the original

    booking_date = Column(Date, nullable=False)  # local date in the operating timezone
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)  # UTC
    ends_at = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_hours = Column(Float, nullable=False)

    total_price = Column(Float, nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.PENDING.value, index=True)
    payment_status = Column(String, nullable=False, default=PaymentStatus.PENDING.value)
    payment_intent_id = Column(String, nullable=True)
    notes = Column(String(500), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "booking_id": self.booking_id,
            "customer_id": self.customer_id,
            "club_id": self.club_id,
            "service_id": self.service_id,
            "reschedule_of": self.reschedule_of,
            "booking_date": self.booking_date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_hours": self.duration_hours,
            "total_price": self.total_price,
            "status": self.status,
            "payment_status": self.payment_status,
            "notes": self.notes,
        }
