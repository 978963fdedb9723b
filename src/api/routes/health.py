"""Health check endpoint for the userbase API."""

from fastapi import APIRouter

from src.api.models.health import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return health status.

    Does not touch the Identity Store, so it stays green while store
    configuration is missing.
    """
    return HealthResponse(status="ok")
