from datetime import date, datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Booking
from .statuses import ACTIVE_STATUSES, CANCELLED_STATUSES, BookingStatus


def _values(statuses: Iterable[BookingStatus]) -> list[str]:
    return [BookingStatus(s).value for s in statuses]


class BookingStore:
    """
    Query shapes the booking core needs over the bookings table.

    Every write commits; there are no long-lived transactions or locks.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, booking: Booking) -> Booking:
        self.db.add(booking)
        await self.db.commit()
        return booking

    async def save(self, booking: Booking) -> Booking:
        await self.db.commit()
        return booking

    async def rollback(self) -> None:
        await self.db.rollback()

    async def get(self, booking_id: str) -> Booking | None:
        res = await self.db.execute(select(Booking).where(Booking.booking_id == booking_id))
        return res.scalar_one_or_none()

    async def get_many(self, booking_ids: list[str]) -> list[Booking]:
        if not booking_ids:
            return []
        res = await self.db.execute(select(Booking).where(Booking.booking_id.in_(booking_ids)))
        return list(res.scalars().all())

    async def get_status(self, booking_id: str) -> str | None:
        res = await self.db.execute(select(Booking.status).where(Booking.booking_id == booking_id))
        return res.scalar_one_or_none()

    async def set_status(self, booking_id: str, status: BookingStatus) -> int:
        res = await self.db.execute(
            update(Booking)
            .where(Booking.booking_id == booking_id)
            .values(status=BookingStatus(status).value, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return res.rowcount

    async def find_overlapping(
        self, service_id: str, booking_date: date, start_time: str, end_time: str
    ) -> Booking | None:
        # zero-padded HH:MM strings compare in time order
        res = await self.db.execute(
            select(Booking)
            .where(
                Booking.service_id == service_id,
                Booking.booking_date == booking_date,
                Booking.status.in_(_values(ACTIVE_STATUSES)),
                Booking.start_time < end_time,
                Booking.end_time > start_time,
            )
            .limit(1)
        )
        return res.scalars().first()

    async def booked_intervals(self, service_id: str, booking_date: date) -> list[tuple[str, str]]:
        res = await self.db.execute(
            select(Booking.start_time, Booking.end_time).where(
                Booking.service_id == service_id,
                Booking.booking_date == booking_date,
                Booking.status.in_(_values(ACTIVE_STATUSES)),
            )
        )
        return [(row.start_time, row.end_time) for row in res.all()]

    async def is_expired(self, booking_id: str, now: datetime) -> bool:
        res = await self.db.execute(
            select(Booking.id).where(
                Booking.booking_id == booking_id,
                Booking.ends_at <= now.astimezone(timezone.utc),
            )
        )
        return res.scalar_one_or_none() is not None

    async def expire_past(self, now: datetime) -> list[str]:
        """Move every active booking that ended at or before `now` to expired."""
        now_utc = now.astimezone(timezone.utc)
        res = await self.db.execute(
            select(Booking.booking_id).where(
                Booking.status.in_(_values(ACTIVE_STATUSES)),
                Booking.ends_at <= now_utc,
            )
        )
        booking_ids = list(res.scalars().all())
        if not booking_ids:
            return []

        await self.db.execute(
            update(Booking)
            .where(
                Booking.booking_id.in_(booking_ids),
                Booking.status.in_(_values(ACTIVE_STATUSES)),
            )
            .values(status=BookingStatus.EXPIRED.value, updated_at=now_utc)
            .execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        return booking_ids

    async def list_for_service_date(self, service_id: str, booking_date: date) -> list[Booking]:
        res = await self.db.execute(
            select(Booking)
            .where(
                Booking.service_id == service_id,
                Booking.booking_date == booking_date,
                Booking.status.not_in(_values(CANCELLED_STATUSES)),
            )
            .order_by(Booking.start_time.asc())
        )
        return list(res.scalars().all())

    async def list_bookings(
        self,
        customer_id: Optional[str] = None,
        club_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> list[Booking]:
        stmt = select(Booking)
        if customer_id is not None:
            stmt = stmt.where(Booking.customer_id == customer_id)
        if club_id is not None:
            stmt = stmt.where(Booking.club_id == club_id)
        if status is not None:
            stmt = stmt.where(Booking.status == BookingStatus(status).value)

        stmt = stmt.order_by(Booking.booking_date.desc(), Booking.start_time.desc())
        if skip:
            stmt = stmt.offset(skip)
        if limit:
            stmt = stmt.limit(limit)

        res = await self.db.execute(stmt)
        return list(res.scalars().all())

    async def distinct_customer_ids(
        self,
        club_id: Optional[str] = None,
        service_id: Optional[str] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[str]:
        stmt = select(Booking.customer_id).distinct()
        if club_id is not None:
            stmt = stmt.where(Booking.club_id == club_id)
        if service_id is not None:
            stmt = stmt.where(Booking.service_id == service_id)
        if statuses:
            stmt = stmt.where(Booking.status.in_(_values(statuses)))
        res = await self.db.execute(stmt.order_by(Booking.customer_id))
        return list(res.scalars().all())
