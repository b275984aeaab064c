"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from insights.api.v1 import health, insights, sessions

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(
    insights.router, prefix="/users/{user_id}/products", tags=["insights"]
)
api_router.include_router(sessions.router, tags=["sessions"])
