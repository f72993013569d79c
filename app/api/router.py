"""
Profile Service — Main API Router

Aggregates all sub-routers so that ``app.main`` can mount the entire API
surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from app.api import photos, users

router = APIRouter()

router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(photos.router, prefix="/photos", tags=["Photos"])
