import re
from datetime import date, datetime, time, timezone
from dateutil import parser, tz

from .errors import BadRequest

HHMM_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def parse_hhmm(value: str) -> time:
    m = HHMM_RE.match(value or "")
    if not m:
        raise BadRequest(f"Invalid time '{value}', expected HH:MM")
    return time(int(m.group(1)), int(m.group(2)))


def to_minutes(value: str) -> int:
    t = parse_hhmm(value)
    return t.hour * 60 + t.minute


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def weekday_abbr(d: date) -> str:
    return WEEKDAYS[d.weekday()]


class OperatingClock:
    """
    Time source pinned to the platform's operating timezone.

    Every time-sensitive operation of the booking core asks this object for
    "now" and for zoned instants, so tests can pass a clock with a fixed now.
    """

    def __init__(self, timezone_name: str):
        zone = tz.gettz(timezone_name)
        if zone is None:
            raise ValueError(f"Unknown timezone: {timezone_name}")
        self.timezone_name = timezone_name
        self.tz = zone

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def today(self) -> date:
        return self.now().date()

    def parse_date(self, value: str) -> date:
        if not value:
            raise BadRequest("Booking date is required")
        try:
            parsed = parser.isoparse(value)
        except (ValueError, TypeError, OverflowError):
            raise BadRequest(f"Invalid date '{value}', expected YYYY-MM-DD")
        return parsed.date()

    def at(self, day: date, hhmm: str) -> datetime:
        """Zoned instant for a local calendar date and an HH:MM wall time."""
        return datetime.combine(day, parse_hhmm(hhmm), tzinfo=self.tz)

    def at_utc(self, day: date, hhmm: str) -> datetime:
        return self.at(day, hhmm).astimezone(timezone.utc)
