"""
API Router Aggregator.

Combines all v1 API routers into a single router for the main app.
"""

from fastapi import APIRouter

from app.api.v1 import auth, colleges, referrals

api_router = APIRouter()

# Include all v1 routers with their prefixes and tags
api_router.include_router(
    auth.router,
    prefix="/auth",
    tags=["Authentication"],
)

api_router.include_router(
    colleges.router,
    prefix="/colleges",
    tags=["Colleges"],
)

api_router.include_router(
    referrals.router,
    prefix="/referrals",
    tags=["Referrals"],
)
