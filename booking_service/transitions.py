"""
Booking status state machine.

The whole transition table lives here as data plus one pure function, so the
rules can be checked without a database:

    decide_transition(current, requested, role, is_expired=...) -> TransitionDecision

`is_expired` must come from the booking store's point check, never from the
caller's request.
"""

from dataclasses import dataclass
from typing import Optional

from .statuses import BookingStatus, Role

S = BookingStatus

# (from, to) pairs an owner or admin may apply
OWNER_TRANSITIONS = frozenset(
    {
        (S.PENDING, S.CONFIRMED),
        (S.PENDING, S.CANCELLED_BY_CLUB),
        (S.CONFIRMED, S.CANCELLED_BY_CLUB),
        (S.CONFIRMED, S.COMPLETED),
        (S.CONFIRMED, S.NO_SHOW),
        (S.RESCHEDULE_PENDING, S.CONFIRMED),
        (S.RESCHEDULE_PENDING, S.REJECTED),
    }
)

CUSTOMER_TRANSITIONS = frozenset(
    {
        (S.PENDING, S.CANCELLED_BY_CUSTOMER),
        (S.CONFIRMED, S.CANCELLED_BY_CUSTOMER),
    }
)

# what happens to the booking referenced by reschedule_of
RESCHEDULE_SIDE_EFFECTS = {
    (S.RESCHEDULE_PENDING, S.CONFIRMED): S.CANCELLED_RESCHEDULED,
    (S.RESCHEDULE_PENDING, S.REJECTED): S.CONFIRMED,
}


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    changed: bool = False
    reason: Optional[str] = None
    original_status: Optional[BookingStatus] = None

    @classmethod
    def allow(cls, current: BookingStatus, requested: BookingStatus) -> "TransitionDecision":
        return cls(
            allowed=True,
            changed=True,
            original_status=RESCHEDULE_SIDE_EFFECTS.get((current, requested)),
        )

    @classmethod
    def deny(cls, reason: str) -> "TransitionDecision":
        return cls(allowed=False, reason=reason)


def decide_transition(
    current: BookingStatus,
    requested: BookingStatus,
    role: Optional[Role],
    is_expired: bool = False,
) -> TransitionDecision:
    current = BookingStatus(current)
    requested = BookingStatus(requested)

    if role is None:
        return TransitionDecision.deny("You do not have permission to update this booking status.")

    if requested == current:
        # lets a caller resend the current status alongside a notes change
        return TransitionDecision(allowed=True, changed=False)

    if role == Role.CUSTOMER:
        if (current, requested) in CUSTOMER_TRANSITIONS:
            return TransitionDecision.allow(current, requested)
        return TransitionDecision.deny(
            f"As a customer, you cannot set the status from '{current.value}' to '{requested.value}'."
        )

    if requested == S.EXPIRED:
        if is_expired:
            return TransitionDecision.allow(current, requested)
        return TransitionDecision.deny(
            f"You cannot set the status to 'expired' from '{current.value}' before the booking has ended."
        )

    if (current, requested) in OWNER_TRANSITIONS:
        return TransitionDecision.allow(current, requested)

    if role == Role.ADMIN:
        return TransitionDecision.allow(current, requested)

    return TransitionDecision.deny(
        f"As a club owner, you cannot set the status from '{current.value}' to '{requested.value}'."
    )
