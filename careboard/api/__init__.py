# API routes
from fastapi import APIRouter
from careboard.api.auth import router as auth_router
from careboard.api.patients import router as patients_router
from careboard.api.schedule import router as schedule_router

# Combine all routers
router = APIRouter()
router.include_router(auth_router)
router.include_router(patients_router)
router.include_router(schedule_router)

__all__ = ["router"]
