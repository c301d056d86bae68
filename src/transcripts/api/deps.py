"""FastAPI dependency injection for the transcript service and Graph tokens.

The TranscriptService and TokenProvider are built once in the application
lifespan and stored on app.state; these dependencies hand them to
endpoints and turn the caller's bearer assertion into a Graph token.
"""

from __future__ import annotations

import structlog
from fastapi import HTTPException, Request, status

from src.transcripts.meetings.service import TranscriptService
from src.transcripts.services.graph.auth import (
    TokenExchangeError,
    TokenProvider,
    extract_bearer_token,
)

logger = structlog.get_logger(__name__)


def get_transcript_service(request: Request) -> TranscriptService:
    """Retrieve TranscriptService from app.state, 503 if not available."""
    service = getattr(request.app.state, "transcript_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Transcript service not initialized",
        )
    return service


def get_token_provider(request: Request) -> TokenProvider:
    """Retrieve the TokenProvider from app.state, 503 if not available."""
    provider = getattr(request.app.state, "token_provider", None)
    if provider is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Token provider not initialized",
        )
    return provider


async def get_graph_token(request: Request) -> str:
    """Exchange the caller's bearer assertion for a delegated Graph token.

    Raises:
        HTTPException(401): No usable Bearer token in the Authorization header.
        HTTPException(403): The on-behalf-of exchange failed.
    """
    user_token = extract_bearer_token(request.headers.get("Authorization"))
    if not user_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header. Provide a Bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    provider = get_token_provider(request)
    try:
        return await provider.get_graph_token(user_token)
    except TokenExchangeError as exc:
        logger.warning("auth.token_exchange_rejected", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Authentication failed: {exc}",
        ) from exc
