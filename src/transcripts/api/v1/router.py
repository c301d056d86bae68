"""V1 API router -- aggregates all v1 endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from src.transcripts.api.v1 import meetings, transcripts

router = APIRouter(prefix="/api/v1")

router.include_router(meetings.router)
router.include_router(transcripts.router)
