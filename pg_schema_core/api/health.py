"""
Health and status endpoints.
"""

from fastapi import APIRouter

from pg_schema_core.api.models import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health():
    """Get API health status"""
    return HealthResponse(status="healthy", version="0.3.0")
