"""Health check endpoint.

Liveness only: the service has no database or cache, and Graph reachability
is per-user, so there is nothing meaningful to probe for readiness.
"""

from __future__ import annotations

from fastapi import APIRouter

from src.transcripts.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic liveness check."""
    settings = get_settings()
    return {
        "status": "ok",
        "service": "meeting-transcripts",
        "environment": settings.ENVIRONMENT.value,
    }
