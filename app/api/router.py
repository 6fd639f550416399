"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import health, attendance

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
