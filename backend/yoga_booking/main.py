"""
Yoga Booking API - Main Application Entry Point

Bookings for yoga classes with a participant count that stays consistent
with the booking ledger:
- Row-locked, guarded count updates in the same transaction as the booking
- An audit trail for every count change
- Periodic reconciliation that repairs drift
- Redis caching of the class catalog with invalidation on count changes
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession

from yoga_booking.core.config import get_settings
from yoga_booking.core.logging import setup_logging, get_logger
from yoga_booking.core.metrics import metrics_endpoint
from yoga_booking.api.router import api_router
from yoga_booking.api.errors import register_exception_handlers
from yoga_booking.api.middleware import RequestLoggingMiddleware
from yoga_booking.db.session import SessionLocal, engine, get_db
from yoga_booking.scheduler import shutdown_scheduler, start_scheduler
from yoga_booking.services.cache_service import get_redis, close_redis
from yoga_booking.services.health_service import health_report

settings = get_settings()


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
    )

    redis_client = await get_redis()
    if redis_client:
        logger.info("redis_ready")
    else:
        logger.warning("redis_unavailable", message="Running without cache")

    start_scheduler(SessionLocal)

    yield

    shutdown_scheduler()
    await close_redis()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Yoga class booking API with consistent participant counts",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint for Docker and load balancers."""
    return await health_report(db, settings.APP_VERSION, settings.ENVIRONMENT)


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
