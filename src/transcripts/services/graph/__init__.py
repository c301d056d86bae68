"""Microsoft Graph integration: async REST client and delegated token exchange."""

from src.transcripts.services.graph.auth import (
    OnBehalfOfTokenProvider,
    TokenExchangeError,
    TokenProvider,
    extract_bearer_token,
)
from src.transcripts.services.graph.client import (
    GraphAccessDeniedError,
    GraphClient,
    GraphError,
    GraphNotFoundError,
    GraphTransportError,
)

__all__ = [
    "GraphAccessDeniedError",
    "GraphClient",
    "GraphError",
    "GraphNotFoundError",
    "GraphTransportError",
    "OnBehalfOfTokenProvider",
    "TokenExchangeError",
    "TokenProvider",
    "extract_bearer_token",
]
