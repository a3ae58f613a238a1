"""Health check endpoints."""

from fastapi import APIRouter, Request
from datetime import datetime, timezone

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Basic health check."""
    settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": settings.service_name,
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "handshake_pending": request.app.state.channel.busy,
    }
