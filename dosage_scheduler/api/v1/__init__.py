"""Versioned API router."""

from fastapi import APIRouter

from . import auth, health, prescriptions, scheduler

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(scheduler.router, prefix="/scheduler", tags=["scheduler"])
router.include_router(prescriptions.router, prefix="/prescriptions", tags=["prescriptions"])

__all__ = ["router"]
