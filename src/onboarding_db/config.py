"""Database configuration — connection URL from the environment.

``DATABASE_URL`` wins when set; otherwise the URL is assembled from the
``PG_*`` variables (handy with docker-compose).  The runtime always talks to
PostgreSQL through the asyncpg driver, so any plain ``postgresql://`` URL is
rewritten to ``postgresql+asyncpg://``.
"""

import os

_ASYNC_PREFIX = "postgresql+asyncpg://"


def _url_from_parts() -> str:
    host = os.getenv("PG_HOST", "localhost")
    port = os.getenv("PG_PORT", "5432")
    user = os.getenv("PG_USER", "onboarding")
    password = os.getenv("PG_PASSWORD", "onboarding")
    database = os.getenv("PG_DATABASE", "onboarding")
    return f"postgresql://{user}:{password}@{host}:{port}/{database}"


def get_async_url() -> str:
    """Return an asyncpg connection URL for the async SQLAlchemy engine."""
    url = os.getenv("DATABASE_URL") or _url_from_parts()
    # Heroku-style URLs still use the legacy scheme
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", _ASYNC_PREFIX, 1)
    return url
