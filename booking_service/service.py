"""
Booking core.

Orchestrates slot availability, booking creation, status transitions, the
reschedule saga and expiry. Collaborators are injected: the database session,
the service catalog and club directory clients, the outbound event queue and
the operating clock.
"""

import logging
import uuid
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from . import events
from .actors import Actor
from .catalog import ClubDirectoryClient, ServiceCatalogClient
from .clock import OperatingClock, to_minutes, weekday_abbr
from .errors import BadRequest, Conflict, Forbidden, NotFound
from .models import Booking
from .repository import BookingStore
from .reschedule import RescheduleSaga
from .schemas import CreateBookingRequest, RescheduleRequest, UpdateBookingRequest
from .slots import available_slots, generate_slots
from .statuses import RESCHEDULABLE_STATUSES, BookingStatus, PaymentStatus, Role
from .transitions import decide_transition

logger = logging.getLogger(__name__)


class BookingService:
    def __init__(
        self,
        db: AsyncSession,
        catalog: ServiceCatalogClient,
        clubs: ClubDirectoryClient,
        event_sink,
        clock: OperatingClock,
    ):
        self.store = BookingStore(db)
        self.catalog = catalog
        self.clubs = clubs
        self.event_sink = event_sink
        self.clock = clock

    def _emit(self, event: dict) -> None:
        # notification side effects must never fail a booking operation
        try:
            self.event_sink.emit(event)
        except Exception:
            logger.exception("could not enqueue %s", event.get("event_type"))

    # ---- availability ----

    async def get_available_slots(self, service_id: str, date_string: str) -> list[str]:
        service = await self.catalog.get_service(service_id)
        if not service:
            raise NotFound("Sport service not found.")

        day = self.clock.parse_date(date_string)
        if not service.is_active:
            return []

        potential = list(generate_slots(service, day))
        if not potential:
            return []

        booked = await self.store.booked_intervals(service.id, day)
        slots = available_slots(potential, booked)
        logger.debug("%d of %d slots free for service %s on %s", len(slots), len(potential), service_id, day)
        return slots

    # ---- creation ----

    async def create_booking(
        self,
        customer_id: str,
        request: CreateBookingRequest,
        initial_status: BookingStatus = BookingStatus.PENDING,
    ) -> Booking:
        logger.info(
            "creating booking for customer %s, service %s on %s %s-%s",
            customer_id,
            request.service_id,
            request.booking_date,
            request.start_time,
            request.end_time,
        )

        service = await self.catalog.get_service(request.service_id)
        if not service or not service.is_active:
            raise NotFound("Sport service not found or is inactive.")
        if not service.club_id:
            raise NotFound("Sport service is not associated with a club.")

        day = self.clock.parse_date(request.booking_date)
        start = to_minutes(request.start_time)
        end = to_minutes(request.end_time)
        if start >= end:
            raise BadRequest("Invalid start or end time for booking.")

        starts_at = self.clock.at(day, request.start_time)
        if starts_at <= self.clock.now():
            logger.warning("attempt to book in the past: %s %s", request.booking_date, request.start_time)
            raise BadRequest("Bookings can only be made for future slots.")

        day_name = weekday_abbr(day)
        if (
            day_name not in service.available_days
            or start < to_minutes(service.opening_time)
            or end > to_minutes(service.closing_time)
        ):
            raise BadRequest(
                f"Service is not available during the requested time "
                f"({day_name} {request.start_time}-{request.end_time})."
            )

        minutes = end - start
        if service.slot_duration_minutes <= 0 or minutes % service.slot_duration_minutes != 0:
            raise BadRequest(
                f"Booking duration must be in multiples of {service.slot_duration_minutes} minutes "
                f"and at least one slot."
            )
        duration_hours = minutes / 60

        if request.reschedule_of and not await self.store.get(request.reschedule_of):
            raise NotFound("Original booking not found.")

        clash = await self.store.find_overlapping(service.id, day, request.start_time, request.end_time)
        if clash:
            logger.warning(
                "slot conflict for service %s on %s %s-%s with booking %s",
                service.id,
                day,
                request.start_time,
                request.end_time,
                clash.booking_id,
            )
            raise Conflict("The requested time slot is already booked or pending confirmation.")

        booking = Booking(
            booking_id=str(uuid.uuid4()),
            customer_id=customer_id,
            club_id=service.club_id,
            service_id=service.id,
            reschedule_of=request.reschedule_of,
            booking_date=day,
            start_time=request.start_time,
            end_time=request.end_time,
            starts_at=self.clock.at_utc(day, request.start_time),
            ends_at=self.clock.at_utc(day, request.end_time),
            duration_hours=duration_hours,
            total_price=round(service.hourly_price * duration_hours, 2),
            status=BookingStatus(initial_status).value,
            payment_status=PaymentStatus.PENDING.value,
            notes=request.notes,
        )
        await self.store.add(booking)
        logger.info("booking %s created with status %s", booking.booking_id, booking.status)

        self._emit(events.booking_created(booking, service))
        return booking

    # ---- reschedule ----

    async def request_reschedule(self, original_id: str, request: RescheduleRequest, actor: Actor) -> Booking:
        logger.info("user %s requesting reschedule of booking %s", actor.id, original_id)

        original = await self.store.get(original_id)
        if not original:
            raise NotFound("Original booking not found.")
        if original.customer_id != actor.id:
            raise Forbidden("You can only reschedule your own bookings.")
        if original.status not in {s.value for s in RESCHEDULABLE_STATUSES}:
            raise BadRequest(f"Booking with status '{original.status}' cannot be rescheduled.")

        saga = RescheduleSaga(original.booking_id, BookingStatus(original.status))
        await saga.hold(self.store)

        try:
            proposal = await self.create_booking(
                actor.id,
                request.to_booking_request(original.booking_id),
                initial_status=BookingStatus.RESCHEDULE_PENDING,
            )
        except Exception as e:
            logger.error("reschedule proposal for %s failed, restoring original: %s", original_id, e)
            if isinstance(e, SQLAlchemyError):
                await self.store.rollback()
            await saga.compensate(self.store)
            raise

        saga.created(proposal.booking_id)
        return proposal

    # ---- status / notes updates ----

    async def _resolve_role(self, booking: Booking, actor: Actor) -> Optional[Role]:
        if actor.is_admin:
            return Role.ADMIN
        club = await self.clubs.find_club(booking.club_id)
        if club and club.owner_id and club.owner_id == actor.id:
            return Role.OWNER
        if booking.customer_id == actor.id:
            return Role.CUSTOMER
        return None

    async def update_booking(self, booking_id: str, request: UpdateBookingRequest, actor: Actor) -> Booking:
        logger.info("user %s updating booking %s", actor.id, booking_id)

        if request.status is None and request.notes is None:
            raise BadRequest("No update data provided (status or notes).")

        booking = await self.store.get(booking_id)
        if not booking:
            raise NotFound(f"Booking with ID {booking_id} not found.")

        role = await self._resolve_role(booking, actor)

        decision = None
        if request.status is not None:
            requested = BookingStatus(request.status)
            expired = False
            if requested == BookingStatus.EXPIRED and role in (Role.OWNER, Role.ADMIN):
                expired = await self.is_booking_expired(booking_id)
            decision = decide_transition(booking.status, requested, role, is_expired=expired)
            if not decision.allowed:
                logger.warning(
                    "user %s denied %s -> %s on booking %s",
                    actor.id,
                    booking.status,
                    requested.value,
                    booking_id,
                )
                raise Forbidden(decision.reason)

        if request.notes is not None:
            if role is None:
                raise Forbidden("You do not have permission to update notes for this booking.")
            booking.notes = request.notes

        changed = decision is not None and decision.changed
        if changed:
            if decision.original_status and booking.reschedule_of:
                await self.store.set_status(booking.reschedule_of, decision.original_status)
                logger.info(
                    "original booking %s set to %s", booking.reschedule_of, decision.original_status.value
                )
            booking.status = BookingStatus(request.status).value

        await self.store.save(booking)
        logger.info("booking %s updated", booking_id)

        if changed:
            self._emit(events.booking_status_updated(booking.booking_id, booking.status, booking))
        return booking

    # ---- expiry ----

    async def is_booking_expired(self, booking_id: str) -> bool:
        return await self.store.is_expired(booking_id, self.clock.now())

    async def expire_past_bookings(self) -> int:
        now = self.clock.now()
        expired_ids = await self.store.expire_past(now)
        logger.info("expired %d bookings at %s", len(expired_ids), now.isoformat())

        for booking in await self.store.get_many(expired_ids):
            self._emit(events.booking_status_updated(booking.booking_id, BookingStatus.EXPIRED.value, booking))
        return len(expired_ids)

    # ---- queries ----

    async def get_booking(self, booking_id: str) -> Booking:
        booking = await self.store.get(booking_id)
        if not booking:
            raise NotFound(f"Booking with ID {booking_id} not found.")
        return booking

    async def get_booking_status(self, booking_id: str) -> str:
        status = await self.store.get_status(booking_id)
        if status is None:
            raise NotFound(f"Booking with ID {booking_id} not found.")
        return status

    async def get_bookings_by_service_and_date(self, service_id: str, date_string: str) -> list[Booking]:
        service = await self.catalog.get_service(service_id)
        if not service:
            raise NotFound(f"Service with ID {service_id} not found.")
        if not service.club_id:
            raise NotFound("Service is not associated with a club.")
        club = await self.clubs.find_club(service.club_id)
        if not club:
            raise NotFound(f"Club associated with service {service_id} not found.")

        day = self.clock.parse_date(date_string)
        return await self.store.list_for_service_date(service_id, day)

    async def get_bookings_for_customer(
        self,
        customer_id: str,
        status: Optional[BookingStatus] = None,
        limit: int = 10,
        skip: int = 0,
    ) -> list[Booking]:
        _check_page(limit, skip)
        return await self.store.list_bookings(customer_id=customer_id, status=status, limit=limit, skip=skip)

    async def get_bookings_for_club(
        self,
        club_id: str,
        actor: Actor,
        status: Optional[BookingStatus] = None,
        limit: int = 0,
        skip: int = 0,
    ) -> list[Booking]:
        _check_page(limit, skip)
        club = await self.clubs.find_club(club_id)
        if not club:
            raise NotFound(f"Club with ID {club_id} not found.")
        if not actor.is_admin and club.owner_id != actor.id:
            logger.warning("user %s is not the owner of club %s", actor.id, club_id)
            raise Forbidden("You are not authorized to access bookings for this club.")

        return await self.store.list_bookings(club_id=club_id, status=status, limit=limit, skip=skip)

    async def find_distinct_customer_ids(
        self,
        club_id: Optional[str] = None,
        service_id: Optional[str] = None,
        statuses: Optional[Iterable[BookingStatus]] = None,
    ) -> list[str]:
        return await self.store.distinct_customer_ids(club_id=club_id, service_id=service_id, statuses=statuses)


def _check_page(limit: int, skip: int) -> None:
    if limit < 0 or skip < 0:
        raise BadRequest("limit and skip must not be negative.")
