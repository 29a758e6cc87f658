from __future__ import annotations

import pytest

from booking_service.errors import BadRequest, Forbidden, NotFound
from booking_service.events import BOOKING_STATUS_UPDATED
from booking_service.schemas import UpdateBookingRequest
from booking_service.statuses import BookingStatus
from tests.conftest import ADMIN, CUSTOMER, OTHER_CUSTOMER, OTHER_OWNER, OWNER, booking_request


async def _booking(service, customer="cust-1", start="09:00", end="10:00"):
    return await service.create_booking(customer, booking_request(start, end))


def _status(value):
    return UpdateBookingRequest(status=value)


@pytest.mark.asyncio
async def test_owner_confirms_then_completes(service, clock):
    booking = await _booking(service)

    updated = await service.update_booking(booking.booking_id, _status("confirmed"), OWNER)
    assert updated.status == "confirmed"

    updated = await service.update_booking(booking.booking_id, _status("completed"), OWNER)
    assert updated.status == "completed"


@pytest.mark.asyncio
async def test_customer_cancels_own_booking(service):
    booking = await _booking(service)

    updated = await service.update_booking(booking.booking_id, _status("cancelled_by_customer"), CUSTOMER)

    assert updated.status == "cancelled_by_customer"


@pytest.mark.asyncio
async def test_customer_cannot_confirm(service):
    booking = await _booking(service)

    with pytest.raises(Forbidden):
        await service.update_booking(booking.booking_id, _status("confirmed"), CUSTOMER)
    assert await service.get_booking_status(booking.booking_id) == "pending"


@pytest.mark.asyncio
async def test_unrelated_users_are_forbidden(service):
    booking = await _booking(service)

    with pytest.raises(Forbidden):
        await service.update_booking(booking.booking_id, _status("cancelled_by_customer"), OTHER_CUSTOMER)
    with pytest.raises(Forbidden):
        await service.update_booking(booking.booking_id, _status("confirmed"), OTHER_OWNER)
    with pytest.raises(Forbidden):
        await service.update_booking(booking.booking_id, UpdateBookingRequest(notes="hi"), OTHER_CUSTOMER)


@pytest.mark.asyncio
async def test_owner_cannot_complete_pending_but_admin_can(service):
    booking = await _booking(service)

    with pytest.raises(Forbidden) as exc:
        await service.update_booking(booking.booking_id, _status("completed"), OWNER)
    assert "club owner" in exc.value.detail

    updated = await service.update_booking(booking.booking_id, _status("completed"), ADMIN)
    assert updated.status == "completed"


@pytest.mark.asyncio
async def test_empty_update_is_bad_request(service):
    booking = await _booking(service)

    with pytest.raises(BadRequest):
        await service.update_booking(booking.booking_id, UpdateBookingRequest(), OWNER)


@pytest.mark.asyncio
async def test_unknown_booking_is_not_found(service):
    with pytest.raises(NotFound):
        await service.update_booking("missing", _status("confirmed"), OWNER)


@pytest.mark.asyncio
async def test_notes_update_by_any_party(service):
    booking = await _booking(service)

    for actor, text in [(CUSTOMER, "late by 5"), (OWNER, "court 2 instead"), (ADMIN, "checked")]:
        updated = await service.update_booking(booking.booking_id, UpdateBookingRequest(notes=text), actor)
        assert updated.notes == text
    assert updated.status == "pending"


@pytest.mark.asyncio
async def test_event_emitted_only_when_status_changes(service, sink):
    booking = await _booking(service)

    await service.update_booking(booking.booking_id, UpdateBookingRequest(notes="x"), CUSTOMER)
    await service.update_booking(booking.booking_id, _status("pending"), CUSTOMER)
    assert sink.of_type(BOOKING_STATUS_UPDATED) == []

    await service.update_booking(booking.booking_id, _status("confirmed"), OWNER)
    [event] = sink.of_type(BOOKING_STATUS_UPDATED)
    assert event["data"]["booking_id"] == booking.booking_id
    assert event["data"]["new_status"] == "confirmed"
    assert event["data"]["booking"]["customer_id"] == "cust-1"


@pytest.mark.asyncio
async def test_manual_expire_before_end_is_forbidden_then_allowed(service, clock):
    booking = await _booking(service)
    await service.update_booking(booking.booking_id, _status("confirmed"), OWNER)

    with pytest.raises(Forbidden):
        await service.update_booking(booking.booking_id, _status("expired"), OWNER)
    with pytest.raises(Forbidden):
        await service.update_booking(booking.booking_id, _status("expired"), ADMIN)

    clock.advance(days=1)  # Monday noon, booking ended at 10:00

    with pytest.raises(Forbidden):
        await service.update_booking(booking.booking_id, _status("expired"), CUSTOMER)

    updated = await service.update_booking(booking.booking_id, _status("expired"), OWNER)
    assert updated.status == BookingStatus.EXPIRED.value


@pytest.mark.asyncio
async def test_expiry_point_check_is_inclusive_of_end_instant(service, clock):
    booking = await _booking(service)

    clock.advance(days=1, hours=-2)  # Monday 10:00 exactly
    assert await service.is_booking_expired(booking.booking_id)

    clock.advance(minutes=-1)
    assert not await service.is_booking_expired(booking.booking_id)


@pytest.mark.asyncio
async def test_status_and_notes_in_one_update(service):
    booking = await _booking(service)

    updated = await service.update_booking(
        booking.booking_id, UpdateBookingRequest(status="cancelled_by_club", notes="court flooded"), OWNER
    )

    assert updated.status == "cancelled_by_club"
    assert updated.notes == "court flooded"


@pytest.mark.asyncio
async def test_forbidden_transition_leaves_notes_untouched(service):
    booking = await _booking(service)

    with pytest.raises(Forbidden):
        await service.update_booking(
            booking.booking_id, UpdateBookingRequest(status="confirmed", notes="sneaky"), CUSTOMER
        )

    assert (await service.get_booking(booking.booking_id)).notes is None
