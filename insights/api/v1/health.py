"""
Health check endpoint.
"""
from fastapi import APIRouter
from insights.core.datetime_utils import utc_now
from insights.core import settings

router = APIRouter()


@router.get("/health")
def health_check():
    """
    Returns basic health status of the API.
    """
    return {
        "status": "healthy",
        "timestamp": utc_now().isoformat(),
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
    }
