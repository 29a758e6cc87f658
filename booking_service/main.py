import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import config
from .catalog import ClubDirectoryClient, ServiceCatalogClient
from .clock import OperatingClock
from .db import get_engine, get_session
from .errors import BookingError
from .expiry_worker import expiry_loop
from .logging_setup import configure_logging
from .middleware import RequestLoggingMiddleware
from .notifications import NotificationConsumer
from .publisher import event_queue, publisher
from .redis_client import redis_client
from .routes import build_service, router

logger = logging.getLogger(__name__)

app = FastAPI(title="Booking Service")
app.add_middleware(RequestLoggingMiddleware)
app.include_router(router)

app.state.catalog = ServiceCatalogClient()
app.state.clubs = ClubDirectoryClient()
app.state.clock = OperatingClock(config.APP_TIMEZONE)
app.state.event_sink = event_queue

_consumer_conn = None
_stop_event = asyncio.Event()
_tasks: list[asyncio.Task] = []


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.get("/health")
async def health():
    return {"status": "ok", "service": "booking-service", "events_enabled": publisher.enabled}


@app.on_event("startup")
async def startup():
    global _consumer_conn
    configure_logging()

    engine = get_engine(config.BOOKING_DB)
    app.state.engine = engine
    app.state.session_factory = get_session(engine)

    try:
        await publisher.connect()
    except Exception as e:
        logger.warning("RabbitMQ connect failed at startup; continuing: %s", e)

    # start notification consumer (don't crash service)
    try:
        if config.RABBIT_URL:
            consumer = NotificationConsumer(app.state.clubs, app.state.catalog, publisher, redis_client)
            _consumer_conn = await consumer.start(config.RABBIT_URL)
    except Exception as e:
        _consumer_conn = None
        logger.warning("notification consumer failed to start: %s", e)

    _tasks.append(asyncio.create_task(event_queue.drain_loop(_stop_event)))
    _tasks.append(
        asyncio.create_task(
            expiry_loop(
                app.state.session_factory,
                lambda db: build_service(app, db),
                _stop_event,
            )
        )
    )


@app.on_event("shutdown")
async def shutdown():
    global _consumer_conn
    _stop_event.set()
    for task in _tasks:
        try:
            await task
        except Exception:
            logger.exception("background task failed during shutdown")
    _tasks.clear()

    try:
        if _consumer_conn and not _consumer_conn.is_closed:
            await _consumer_conn.close()
    except Exception as e:
        logger.warning("closing consumer connection failed: %s", e)
    await publisher.close()
    if redis_client is not None:
        await redis_client.aclose()
    await app.state.engine.dispose()
