"""
FastAPI application for court bookings.

The lifespan opens the SQLite storage, builds the reservation gateway on
top of it and keeps both on ``app.state`` for the routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app import config
from app.db import SqliteStorage
from app.errors import BookingError
from app.rate_limit import limiter
from app.routers import availability, health, reservations, users
from app.services.availability import AvailabilityEngine
from app.services.reservations import ReservationGateway
from app.timeutils import WeekdayConvention

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    storage = SqliteStorage(
        config.DB_PATH,
        weekday_convention=WeekdayConvention(config.STORED_WEEKDAY_CONVENTION),
    )
    await storage.open()

    app.state.storage = storage
    app.state.gateway = ReservationGateway(
        storage,
        AvailabilityEngine(config.SLOT_STEP_MINUTES),
        read_retries=config.STORAGE_READ_RETRIES,
        one_pending_per_complex=config.ONE_PENDING_PER_COMPLEX,
        fallback_hours=config.fallback_hours(),
    )
    logger.info("Court booking API started (%s)", config.ENVIRONMENT)

    yield

    await storage.close()


config.configure_logging()

app = FastAPI(
    title="Court Booking API",
    description="Court availability and double-booking-safe reservations",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(health.router)
app.include_router(availability.router)
app.include_router(reservations.router)
app.include_router(users.router)
