from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"  # awaiting club owner confirmation
    CONFIRMED = "confirmed"
    CANCELLED_BY_CUSTOMER = "cancelled_by_customer"
    CANCELLED_BY_CLUB = "cancelled_by_club"
    COMPLETED = "completed"
    NO_SHOW = "no_show"
    REJECTED = "rejected"
    EXPIRED = "expired"
    RESCHEDULE_PENDING = "reschedule_pending"  # proposal waiting for the owner
    RESCHEDULE_REQUESTED = "reschedule_requested"  # original on hold
    CANCELLED_RESCHEDULED = "cancelled_rescheduled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"


class Role(str, Enum):
    CUSTOMER = "customer"
    OWNER = "owner"
    ADMIN = "admin"


# statuses that hold a slot for overlap and availability checks
ACTIVE_STATUSES = frozenset({BookingStatus.PENDING, BookingStatus.CONFIRMED})

TERMINAL_STATUSES = frozenset(
    {
        BookingStatus.CANCELLED_BY_CUSTOMER,
        BookingStatus.CANCELLED_BY_CLUB,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
        BookingStatus.REJECTED,
        BookingStatus.EXPIRED,
        BookingStatus.CANCELLED_RESCHEDULED,
    }
)

# hidden from owner day views
CANCELLED_STATUSES = frozenset(
    {
        BookingStatus.CANCELLED_BY_CUSTOMER,
        BookingStatus.CANCELLED_BY_CLUB,
        BookingStatus.CANCELLED_RESCHEDULED,
        BookingStatus.REJECTED,
    }
)

RESCHEDULABLE_STATUSES = ACTIVE_STATUSES
