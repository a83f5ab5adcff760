"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from roombook.api.routes import admin, reservations

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(reservations.router)
api_router.include_router(admin.router)
