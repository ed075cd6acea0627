"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from yoga_booking.api.routes import bookings, classes, teachers

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(classes.router)
api_router.include_router(bookings.router)
api_router.include_router(teachers.router)
