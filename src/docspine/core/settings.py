"""Client settings.

Every tunable of the HTTP transport can come from ``DOCSPINE_*`` environment
variables or a ``.env`` file, so deployments configure the client without
code changes.

Manifesto:
    - **Pydantic validation:** Bad values fail at construction, not mid-request
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** Only ``api_key`` is usually required

Fields
──────
base_url         : Service root, e.g. ``https://api.idibon.com``
api_key          : Sent as the basic-auth user name
max_connections  : Worker pool size and parallel request limit (1..50)
request_timeout  : Per-request timeout in seconds
verify_tls       : Verify server certificates and host names
proxy            : Optional proxy URL
log_level        : structlog level used by ``configure_logging``
json_logs        : Force JSON (True) / console (False) log rendering

Examples:
    >>> settings = ClientSettings(api_key="secret", max_connections=4)
    >>> settings.max_connections
    4

Tags:
    settings, configuration, pydantic, environment, docspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_BASE_URL = "https://api.idibon.com"
DEFAULT_MAX_CONNECTIONS = 10
MAX_CONNECTIONS_LIMIT = 50


class ClientSettings(BaseSettings):
    """docspine client configuration (``DOCSPINE_*`` environment variables)."""

    model_config = SettingsConfigDict(
        env_prefix="DOCSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Service ──────────────────────────────────────────────────
    base_url: str = DEFAULT_BASE_URL
    api_key: str = ""

    # ── Transport ────────────────────────────────────────────────
    max_connections: int = Field(
        default=DEFAULT_MAX_CONNECTIONS,
        ge=1,
        le=MAX_CONNECTIONS_LIMIT,
        description="Worker pool size and parallel request limit",
    )
    request_timeout: float = Field(default=60.0, gt=0)
    verify_tls: bool = True
    proxy: str | None = None

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")


__all__ = ["ClientSettings", "DEFAULT_BASE_URL", "DEFAULT_MAX_CONNECTIONS", "MAX_CONNECTIONS_LIMIT"]
