from __future__ import annotations

from datetime import date

import pytest

from booking_service.slots import Slot, available_slots, generate_slots, overlaps
from tests.conftest import make_service

MONDAY = date(2030, 1, 7)
SATURDAY = date(2030, 1, 12)


def test_generates_hourly_slots_between_opening_and_closing():
    slots = [s.display for s in generate_slots(make_service(), MONDAY)]

    assert slots[0] == "09:00-10:00"
    assert slots[-1] == "16:00-17:00"
    assert len(slots) == 8


def test_non_operating_weekday_yields_nothing():
    assert list(generate_slots(make_service(), SATURDAY)) == []


def test_last_slot_is_truncated_at_closing_time():
    service = make_service(opening_time="09:00", closing_time="11:30", slot_duration_minutes=60)

    slots = [s.display for s in generate_slots(service, MONDAY)]

    assert slots == ["09:00-10:00", "10:00-11:00", "11:00-11:30"]


@pytest.mark.parametrize("duration", [15, 30, 45, 60, 90, 120, 500])
def test_slots_are_contiguous_and_full_length_except_last(duration):
    service = make_service(opening_time="08:10", closing_time="21:40", slot_duration_minutes=duration)

    slots = list(generate_slots(service, MONDAY))

    assert slots[0].start == 8 * 60 + 10
    assert slots[-1].end == 21 * 60 + 40
    for prev, nxt in zip(slots, slots[1:]):
        assert prev.end == nxt.start
    for slot in slots[:-1]:
        assert slot.end - slot.start == duration
    assert 0 < slots[-1].end - slots[-1].start <= duration


def test_generation_is_recomputed_on_every_call():
    service = make_service()
    gen = generate_slots(service, MONDAY)
    first = list(gen)

    assert list(gen) == []  # exhausted generator
    assert list(generate_slots(service, MONDAY)) == first


def test_non_positive_duration_or_inverted_hours_yield_nothing():
    assert list(generate_slots(make_service(slot_duration_minutes=0), MONDAY)) == []
    assert list(generate_slots(make_service(opening_time="18:00", closing_time="09:00"), MONDAY)) == []


def test_overlap_is_half_open():
    assert overlaps(540, 600, 570, 630)
    assert overlaps(540, 660, 570, 600)
    assert not overlaps(540, 600, 600, 660)
    assert not overlaps(600, 660, 540, 600)


def test_available_slots_drops_intersecting_but_keeps_touching():
    potential = [Slot(540, 600), Slot(600, 660), Slot(660, 720), Slot(720, 780)]

    free = available_slots(potential, [("10:30", "11:30")])

    assert free == ["09:00-10:00", "12:00-13:00"]


def test_available_slots_with_nothing_booked_returns_all():
    potential = [Slot(540, 600), Slot(600, 660)]
    assert available_slots(potential, []) == ["09:00-10:00", "10:00-11:00"]
