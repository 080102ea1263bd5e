"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from onboarding_server.routes.admin import router as admin_router
from onboarding_server.routes.onboarding import router as onboarding_router
from onboarding_server.routes.stages import router as stages_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(onboarding_router, prefix=API_PREFIX)
    app.include_router(stages_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
