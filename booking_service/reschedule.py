import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from .statuses import BookingStatus

logger = logging.getLogger(__name__)


class SagaStep(str, Enum):
    STARTED = "started"
    HELD = "held"  # original moved to reschedule_requested
    CREATED = "created"  # proposal stored
    COMPENSATED = "compensated"  # original restored
    COMPENSATION_FAILED = "compensation_failed"


@dataclass
class RescheduleSaga:
    """
    Two writes on two bookings with no shared transaction:

      1. hold       original -> reschedule_requested
      2. create     new booking (reschedule_pending, reschedule_of=original)
      3. compensate original -> previous status, only if step 2 failed

    The hold must be committed before the proposal is attempted, and the
    compensation must finish before the creation error reaches the caller.
    """

    original_id: str
    previous_status: BookingStatus
    step: SagaStep = SagaStep.STARTED
    proposal_id: Optional[str] = None
    compensation_attempts: int = 0
    max_compensation_attempts: int = 2  # first try plus one retry

    async def hold(self, store) -> None:
        await store.set_status(self.original_id, BookingStatus.RESCHEDULE_REQUESTED)
        self.step = SagaStep.HELD
        logger.info("booking %s held for reschedule (was %s)", self.original_id, self.previous_status.value)

    def created(self, proposal_id: str) -> None:
        self.proposal_id = proposal_id
        self.step = SagaStep.CREATED

    async def compensate(self, store) -> bool:
        if self.step != SagaStep.HELD:
            return False

        while self.compensation_attempts < self.max_compensation_attempts:
            self.compensation_attempts += 1
            try:
                if self.compensation_attempts > 1:
                    await store.rollback()
                await store.set_status(self.original_id, self.previous_status)
            except SQLAlchemyError as e:
                logger.warning(
                    "restoring booking %s to %s failed (attempt %d): %s",
                    self.original_id,
                    self.previous_status.value,
                    self.compensation_attempts,
                    e,
                )
                continue

            self.step = SagaStep.COMPENSATED
            logger.info("booking %s restored to %s", self.original_id, self.previous_status.value)
            return True

        self.step = SagaStep.COMPENSATION_FAILED
        logger.error(
            "booking %s left in %s: could not restore %s",
            self.original_id,
            BookingStatus.RESCHEDULE_REQUESTED.value,
            self.previous_status.value,
        )
        return False
