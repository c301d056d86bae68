"""API middleware package."""

from src.transcripts.api.middleware.logging import LoggingMiddleware, configure_structlog

__all__ = ["LoggingMiddleware", "configure_structlog"]
