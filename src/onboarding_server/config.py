"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Logging
    log_level: str = "INFO"

    # Workflow YAML (None → packaged workflows.yaml)
    workflows_file: str | None = None

    # Create missing tables at startup (development only; no migrations)
    create_tables: bool = False

    # Admin API key, shared secret for admin endpoints (None = disabled)
    admin_api_key: str | None = None

    # Trusted proxy secret: when set, every request that carries
    # X-User-ID must also carry X-Proxy-Secret matching this value.
    trusted_proxy_secret: str | None = None

    # Stage-completion e-mails (None → notifications disabled)
    notifier_url: str | None = None
    notifier_api_key: str | None = None
    notifier_timeout: float = 10.0
    dashboard_url: str | None = None


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` and related environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        workflows_file=os.getenv("ONBOARDING_WORKFLOWS_FILE") or None,
        create_tables=_env_flag("SERVER_CREATE_TABLES"),
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
        notifier_url=os.getenv("NOTIFIER_URL") or None,
        notifier_api_key=os.getenv("NOTIFIER_API_KEY") or None,
        notifier_timeout=float(os.getenv("NOTIFIER_TIMEOUT", "10")),
        dashboard_url=os.getenv("ONBOARDING_DASHBOARD_URL") or None,
    )
