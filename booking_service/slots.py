from datetime import date
from typing import Iterable, Iterator, NamedTuple

from .catalog import ServiceDefinition
from .clock import format_minutes, to_minutes, weekday_abbr


class Slot(NamedTuple):
    start: int  # minutes since local midnight
    end: int

    @property
    def display(self) -> str:
        return f"{format_minutes(self.start)}-{format_minutes(self.end)}"


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    # half-open intervals: touching edges do not overlap
    return a_start < b_end and a_end > b_start


def generate_slots(service: ServiceDefinition, day: date) -> Iterator[Slot]:
    """
    Potential slots of a service on one date, from opening to closing time.

    Each slot is slot_duration_minutes long; the last one is cut at closing
    time. Nothing is yielded when the service does not operate that weekday.
    """
    if weekday_abbr(day) not in service.available_days:
        return

    step = service.slot_duration_minutes
    if step <= 0:
        return

    current = to_minutes(service.opening_time)
    closing = to_minutes(service.closing_time)

    while current < closing:
        end = min(current + step, closing)
        yield Slot(current, end)
        current = end


def available_slots(potential: Iterable[Slot], booked: Iterable[tuple[str, str]]) -> list[str]:
    """Display strings of the potential slots that intersect no booked HH:MM interval."""
    taken = [(to_minutes(s), to_minutes(e)) for s, e in booked]
    return [
        slot.display
        for slot in potential
        if not any(overlaps(bs, be, slot.start, slot.end) for bs, be in taken)
    ]
