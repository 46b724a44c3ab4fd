"""Process-wide settings, loaded once from the environment at startup."""
from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEV_SIGNING_KEY = "dev-only-signing-key"

# env var -> Settings field
_ENV_FIELDS: dict[str, str] = {
    "SIGNING_KEY": "signing_key",
    "PROVIDER_URL": "provider_url",
    "CALENDAR_AGENT_URL": "calendar_agent_url",
    "GOOGLE_ACCESS_TOKEN": "google_access_token",
    "OPENAI_API_KEY": "openai_api_key",
    "OPENAI_MODEL": "openai_model",
    "CORS_ORIGIN": "cors_origin",
    "FRONTEND_URL": "frontend_url",
    "HTTP_TIMEOUT_SECONDS": "http_timeout",
    "DELEGATED_TOKEN_TTL": "delegated_token_ttl",
    "SESSION_TOKEN_TTL": "session_token_ttl",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    """Configuration shared by both agents and the credential provider.

    Construct directly in tests; use :meth:`from_env` in entry points.
    """

    signing_key: str = DEV_SIGNING_KEY
    provider_url: str = "http://localhost:3000"
    calendar_agent_url: str = "http://localhost:3002"
    google_access_token: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-3.5-turbo"
    cors_origin: str = "http://localhost:5173"
    frontend_url: str = "http://localhost:5173"
    http_timeout: float = Field(default=10.0, gt=0)
    delegated_token_ttl: int = Field(default=300, gt=0)
    session_token_ttl: int = Field(default=3600, gt=0)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from environment variables.

        Empty values are treated as unset so that ``OPENAI_API_KEY=`` keeps
        the mock summarizer active.
        """
        env = os.environ if environ is None else environ
        values = {
            field: env[name]
            for name, field in _ENV_FIELDS.items()
            if env.get(name, "").strip()
        }
        settings = cls.model_validate(values)
        if settings.signing_key == DEV_SIGNING_KEY:
            logger.warning("SIGNING_KEY not set; using the development signing key")
        return settings

    @property
    def signing_key_bytes(self) -> bytes:
        return self.signing_key.encode("utf-8")


__all__ = ["DEV_SIGNING_KEY", "Settings"]
