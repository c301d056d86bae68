"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # HTTP server
    PORT: int = 8080
    CORS_ALLOWED_ORIGINS: str = "*"

    # Azure AD app registration (on-behalf-of token exchange)
    AZURE_CLIENT_ID: str = ""
    AZURE_CLIENT_SECRET: str = ""
    AZURE_TENANT_ID: str = ""

    # Microsoft Graph
    GRAPH_BASE_URL: str = "https://graph.microsoft.com/v1.0"
    GRAPH_SCOPES: str = (
        "https://graph.microsoft.com/OnlineMeetings.Read,"
        "https://graph.microsoft.com/OnlineMeetingTranscript.Read.All,"
        "https://graph.microsoft.com/User.Read,"
        "https://graph.microsoft.com/Calendars.Read"
    )
    GRAPH_TIMEOUT_READ: float = 10.0
    GRAPH_TIMEOUT_CONTENT: float = 30.0
    GRAPH_MAX_RETRIES: int = 3

    # Meeting discovery
    CALENDAR_LOOKBACK_DAYS: int = 30
    CALENDAR_LOOKAHEAD_DAYS: int = 7
    RESOLVE_CONCURRENCY: int = 4

    @property
    def azure_configured(self) -> bool:
        """True when all three Azure AD credentials are present."""
        return bool(
            self.AZURE_CLIENT_ID and self.AZURE_CLIENT_SECRET and self.AZURE_TENANT_ID
        )

    def get_graph_scopes(self) -> list[str]:
        """Split the comma-separated GRAPH_SCOPES value into a list."""
        return [s.strip() for s in self.GRAPH_SCOPES.split(",") if s.strip()]


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
