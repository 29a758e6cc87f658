import asyncio
import logging

from .config import EXPIRY_SWEEP_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


async def sweep_once(session_factory, make_service) -> int:
    async with session_factory() as db:
        return await make_service(db).expire_past_bookings()


async def expiry_loop(
    session_factory,
    make_service,
    stop_event: asyncio.Event,
    interval: float = EXPIRY_SWEEP_INTERVAL_SECONDS,
):
    """Run the batch expiry sweep every `interval` seconds until stop_event is set."""
    while not stop_event.is_set():
        try:
            await sweep_once(session_factory, make_service)
        except Exception:
            logger.exception("expiry sweep failed")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            continue
