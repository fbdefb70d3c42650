"""
Villa Booking API - Main Application Entry Point

Reservation engine for a single villa:
- Half-open date ranges, so same-day turnover is allowed
- Draft -> customer info -> payment -> review -> confirmed lifecycle
- Optimistic locking so overlapping reservations can never both commit
- Lazy payment-window expiry and tiered cancellation refunds
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from villa_booking.api.errors import register_exception_handlers
from villa_booking.api.middleware import RequestLoggingMiddleware
from villa_booking.api.router import api_router
from villa_booking.core.config import get_settings
from villa_booking.core.logging import get_logger, setup_logging
from villa_booking.core.metrics import metrics_endpoint
from villa_booking.db.session import SessionLocal
from villa_booking.repositories.booking_repository import BookingRepository
from villa_booking.services.cache_service import close_redis, get_cache_stats, get_redis

settings = get_settings()


async def ensure_bookable_unit() -> None:
    async with SessionLocal() as session:
        await BookingRepository(session).ensure_unit(settings.UNIT_ID, settings.UNIT_NAME)
        await session.commit()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        unit_id=settings.UNIT_ID,
    )

    try:
        await ensure_bookable_unit()
    except (SQLAlchemyError, OSError) as e:
        logger.error("database_unavailable", error=str(e))

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without calendar cache")

    yield

    await close_redis()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Villa reservations with a concurrency-safe booking lifecycle",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    cache_stats = await get_cache_stats()
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": cache_stats,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
