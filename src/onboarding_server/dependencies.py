"""FastAPI dependency injection — provides the engine, registry and user identity.

The engine, orchestrator and session registry are built once in the
lifespan handler and stashed on ``app.state``.  The SQL stores open their
own short database sessions, so routes never see an ``AsyncSession``.
"""

import hmac

from fastapi import Depends, Header, HTTPException, Request

from onboarding_flows.definitions import FlowDefinitionStore
from onboarding_flows.engine import OnboardingEngine
from onboarding_flows.models.session import UserContext
from onboarding_flows.progression import StageProgressionOrchestrator

from onboarding_server.sessions import SessionRegistry


# ------------------------------------------------------------------
# Singletons, stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_onboarding_engine(request: Request) -> OnboardingEngine:
    """Return the engine singleton from ``app.state``."""
    return request.app.state.engine


def get_registry(request: Request) -> SessionRegistry:
    """Return the open-session registry from ``app.state``."""
    return request.app.state.registry


def get_definitions(request: Request) -> FlowDefinitionStore:
    return request.app.state.engine.definitions


def get_progression(request: Request) -> StageProgressionOrchestrator:
    return request.app.state.engine.progression


# ------------------------------------------------------------------
# User identity from the X-User-* headers
# ------------------------------------------------------------------

async def get_user_id(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> str:
    """Extract user identity from the ``X-User-ID`` header.

    Returns 401 if the header is missing.  When ``TRUSTED_PROXY_SECRET`` is
    configured, the request must also carry a matching ``X-Proxy-Secret``
    header, proving the identity was injected by a trusted gateway.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    expected_secret: str | None = request.app.state.settings.trusted_proxy_secret
    if expected_secret:
        if not x_proxy_secret:
            raise HTTPException(
                status_code=403,
                detail="X-Proxy-Secret header is required",
            )
        # Constant-time comparison to prevent timing side-channels.
        if not hmac.compare_digest(x_proxy_secret, expected_secret):
            raise HTTPException(status_code=403, detail="Invalid proxy secret")

    return x_user_id


async def get_user_context(
    user_id: str = Depends(get_user_id),
    x_user_email: str | None = Header(None, alias="X-User-Email"),
    x_user_name: str | None = Header(None, alias="X-User-Name"),
    engine: OnboardingEngine = Depends(get_onboarding_engine),
) -> UserContext:
    """Full caller identity; the role comes from the stored submission."""
    role = await engine.resolve_role(user_id)
    return UserContext(
        user_id=user_id,
        role=role,
        email=x_user_email or None,
        full_name=x_user_name or None,
    )


# ------------------------------------------------------------------
# Admin key
# ------------------------------------------------------------------

async def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> str:
    """Validate the ``X-Admin-Key`` header against ``ADMIN_API_KEY``.

    Raises 403 if no key is configured or the key does not match, 401 if
    the header is missing.
    """
    expected: str | None = request.app.state.settings.admin_api_key
    if not expected:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header is required")
    if not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
    return x_admin_key
