"""API router setup."""
from fastapi import APIRouter

from clinic.api.routes import (
    analytics,
    auth,
    patients,
    payments,
    proposals,
    services,
    sessions,
    therapists,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(therapists.router)
api_router.include_router(patients.router)
api_router.include_router(services.router)
api_router.include_router(sessions.router)
api_router.include_router(payments.router)
api_router.include_router(proposals.router)
api_router.include_router(analytics.router)
