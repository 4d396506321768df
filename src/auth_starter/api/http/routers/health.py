"""Health check endpoint for the hosting platform."""

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> str:
    """Liveness check.

    Returns 200 with the JSON string ``"Healthy"`` as long as the process is
    serving requests. Dependencies are not checked.
    """
    return "Healthy"
