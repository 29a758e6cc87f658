from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from .actors import Actor
from .schemas import (
    AvailableSlotsResponse,
    BookingResponse,
    BookingStatusResponse,
    CreateBookingRequest,
    CreateBookingResponse,
    ExpirySweepResponse,
    RescheduleRequest,
    UpdateBookingRequest,
)
from .security import get_current_actor, require_role
from .service import BookingService
from .statuses import BookingStatus

router = APIRouter()


async def get_db(request: Request):
    async with request.app.state.session_factory() as session:
        yield session


def build_service(app, db: AsyncSession) -> BookingService:
    return BookingService(
        db,
        catalog=app.state.catalog,
        clubs=app.state.clubs,
        event_sink=app.state.event_sink,
        clock=app.state.clock,
    )


def get_booking_service(request: Request, db: AsyncSession = Depends(get_db)) -> BookingService:
    return build_service(request.app, db)


@router.get("/services/{service_id}/slots", response_model=AvailableSlotsResponse)
async def available_slots(
    service_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    svc: BookingService = Depends(get_booking_service),
):
    slots = await svc.get_available_slots(service_id, date)
    return AvailableSlotsResponse(service_id=service_id, date=date, slots=slots)


@router.post("/bookings", response_model=CreateBookingResponse, status_code=201)
async def create_booking(
    data: CreateBookingRequest,
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    require_role(actor, ["user"])
    booking = await svc.create_booking(actor.id, data)
    return CreateBookingResponse(
        message="Booking request submitted successfully. Awaiting club owner confirmation.",
        booking_id=booking.booking_id,
        status=booking.status,
    )


@router.post("/bookings/expire", response_model=ExpirySweepResponse)
async def expire_bookings(
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    require_role(actor, ["admin"])
    return ExpirySweepResponse(expired=await svc.expire_past_bookings())


@router.get("/bookings/me", response_model=List[BookingResponse])
async def my_bookings(
    status: Optional[BookingStatus] = None,
    limit: int = Query(10, ge=0),
    skip: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    return await svc.get_bookings_for_customer(actor.id, status=status, limit=limit, skip=skip)


@router.get("/bookings/service/{service_id}/date/{date_string}", response_model=List[BookingResponse])
async def bookings_for_service_on_date(
    service_id: str,
    date_string: str,
    svc: BookingService = Depends(get_booking_service),
):
    return await svc.get_bookings_by_service_and_date(service_id, date_string)


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    return await svc.get_booking(booking_id)


@router.get("/bookings/{booking_id}/status", response_model=BookingStatusResponse)
async def get_booking_status(
    booking_id: str,
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    return BookingStatusResponse(booking_id=booking_id, status=await svc.get_booking_status(booking_id))


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: str,
    data: UpdateBookingRequest,
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    return await svc.update_booking(booking_id, data, actor)


@router.post("/bookings/{booking_id}/reschedule", response_model=BookingResponse, status_code=201)
async def reschedule_booking(
    booking_id: str,
    data: RescheduleRequest,
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    require_role(actor, ["user"])
    return await svc.request_reschedule(booking_id, data, actor)


@router.get("/clubs/{club_id}/bookings", response_model=List[BookingResponse])
async def club_bookings(
    club_id: str,
    status: Optional[BookingStatus] = None,
    limit: int = Query(0, ge=0),
    skip: int = Query(0, ge=0),
    actor: Actor = Depends(get_current_actor),
    svc: BookingService = Depends(get_booking_service),
):
    require_role(actor, ["owner", "admin"])
    return await svc.get_bookings_for_club(club_id, actor, status=status, limit=limit, skip=skip)
