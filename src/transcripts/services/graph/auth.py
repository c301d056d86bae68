"""Delegated Graph token acquisition via the OAuth 2.0 On-Behalf-Of flow.

Exchanges the caller's bearer assertion for a Microsoft Graph token so the
service only reads what the signed-in user can see (delegated permissions).

The MSAL ConfidentialClientApplication is built once at process start and is
read-only afterwards; nothing about a request is stored on it. MSAL is
synchronous, so the exchange is wrapped in asyncio.to_thread().
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import msal
import structlog

logger = structlog.get_logger(__name__)


class TokenExchangeError(Exception):
    """Raised when the on-behalf-of exchange returns no access token."""


class TokenProvider(Protocol):
    """Anything that turns a user assertion into a Graph access token."""

    async def get_graph_token(self, user_assertion: str) -> str: ...


class OnBehalfOfTokenProvider:
    """MSAL-backed on-behalf-of token exchange.

    Args:
        client_id: Azure AD application (client) ID.
        client_secret: Azure AD application secret.
        tenant_id: Azure AD tenant ID.
        scopes: Delegated Graph scopes to request.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        tenant_id: str,
        scopes: list[str],
    ) -> None:
        self._scopes = list(scopes)
        self._app = msal.ConfidentialClientApplication(
            client_id,
            authority=f"https://login.microsoftonline.com/{tenant_id}",
            client_credential=client_secret,
        )

    async def get_graph_token(self, user_assertion: str) -> str:
        """Exchange a user assertion for a Graph access token.

        Raises:
            TokenExchangeError: MSAL returned an error or no access token.
        """

        def _exchange() -> dict:
            return self._app.acquire_token_on_behalf_of(
                user_assertion=user_assertion,
                scopes=self._scopes,
            )

        result = await asyncio.to_thread(_exchange)
        token = (result or {}).get("access_token")
        if not token:
            error = (result or {}).get("error_description") or (result or {}).get("error")
            logger.warning("auth.obo_exchange_failed", error=error)
            raise TokenExchangeError(
                f"OBO token exchange failed: {error or 'no access token returned'}"
            )
        return token


class UnconfiguredTokenProvider:
    """Stand-in used when Azure AD credentials are missing; refuses every exchange."""

    async def get_graph_token(self, user_assertion: str) -> str:
        raise TokenExchangeError(
            "Azure AD credentials are not configured "
            "(AZURE_CLIENT_ID, AZURE_CLIENT_SECRET, AZURE_TENANT_ID)"
        )


def extract_bearer_token(auth_header: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header.

    Returns None if the header is missing or malformed.
    """
    if not auth_header:
        return None
    parts = auth_header.split(" ")
    if len(parts) == 2 and parts[0].lower() == "bearer" and parts[1]:
        return parts[1]
    return None
