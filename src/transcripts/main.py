"""FastAPI application factory.

Creates the app with logging middleware, metrics middleware, CORS, the
health route, the v1 API router, and lifespan construction of the shared
collaborators (GraphClient, TokenProvider, TranscriptService).

The collaborators are built once at startup and are read-only afterwards;
requests never mutate them.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from collections.abc import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import Response

from src.transcripts.api.middleware.logging import LoggingMiddleware, configure_structlog
from src.transcripts.api.v1 import health
from src.transcripts.api.v1.router import router as v1_router
from src.transcripts.config import Settings, get_settings
from src.transcripts.core.monitoring import MetricsMiddleware, get_metrics_response
from src.transcripts.meetings.service import TranscriptService
from src.transcripts.services.graph.auth import (
    OnBehalfOfTokenProvider,
    TokenProvider,
    UnconfiguredTokenProvider,
)
from src.transcripts.services.graph.client import GraphClient

logger = structlog.get_logger(__name__)


def build_graph_client(settings: Settings) -> GraphClient:
    return GraphClient(
        base_url=settings.GRAPH_BASE_URL,
        timeout_read=settings.GRAPH_TIMEOUT_READ,
        timeout_content=settings.GRAPH_TIMEOUT_CONTENT,
        max_attempts=settings.GRAPH_MAX_RETRIES,
    )


def build_token_provider(settings: Settings) -> TokenProvider:
    """OBO provider when Azure AD is configured, else one that refuses exchanges."""
    if not settings.azure_configured:
        logger.warning(
            "auth.azure_not_configured",
            missing=[
                name
                for name in ("AZURE_CLIENT_ID", "AZURE_CLIENT_SECRET", "AZURE_TENANT_ID")
                if not getattr(settings, name)
            ],
        )
        return UnconfiguredTokenProvider()
    return OnBehalfOfTokenProvider(
        client_id=settings.AZURE_CLIENT_ID,
        client_secret=settings.AZURE_CLIENT_SECRET,
        tenant_id=settings.AZURE_TENANT_ID,
        scopes=settings.get_graph_scopes(),
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: configure logging and build shared collaborators."""
    settings = get_settings()
    configure_structlog()

    graph_client = build_graph_client(settings)
    app.state.token_provider = build_token_provider(settings)
    app.state.transcript_service = TranscriptService.from_graph_client(graph_client, settings)

    logger.info(
        "app.started",
        environment=settings.ENVIRONMENT.value,
        graph_base_url=settings.GRAPH_BASE_URL,
    )

    yield

    app.state.transcript_service = None
    app.state.token_provider = None
    logger.info("app.stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Meeting Transcripts API",
        version="0.1.0",
        description="Teams meeting transcript retrieval and normalization via Microsoft Graph",
        lifespan=lifespan,
    )

    # Middleware is added in reverse order (last added = outermost)

    if settings.CORS_ALLOWED_ORIGINS == "*":
        origins = ["*"]
    else:
        origins = [o.strip() for o in settings.CORS_ALLOWED_ORIGINS.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Logging middleware (logs every request with timing)
    app.add_middleware(LoggingMiddleware)

    # Metrics middleware (outermost -- records Prometheus metrics for all requests)
    app.add_middleware(MetricsMiddleware)

    app.include_router(health.router)
    app.include_router(v1_router)

    @app.get("/metrics", include_in_schema=False)
    async def metrics(request: Request) -> Response:
        """Prometheus metrics endpoint."""
        return get_metrics_response()

    return app


# Module-level app for uvicorn
app = create_app()


def run() -> None:
    """Serve the module-level app on settings.PORT."""
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)
