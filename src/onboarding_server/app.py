"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the workflow config and wires the engine once
  - CORS middleware
  - Global exception handlers (ValueError → 404/409/400, configuration
    errors → 500, persistence errors → 503)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``onboarding-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from onboarding_db.engine import create_tables, dispose_engine, get_engine, get_session_factory
from onboarding_db.stores import SqlDefinitionSource, SqlStageProgressStore, SqlSubmissionStore
from onboarding_flows.constants import load_workflow_settings
from onboarding_flows.definitions import FlowDefinitionStore
from onboarding_flows.engine import OnboardingEngine
from onboarding_flows.errors import ConfigurationError, PersistenceError
from onboarding_flows.notifications import EmailNotifier
from onboarding_flows.progression import StageProgressionOrchestrator

from onboarding_server.config import ServerSettings, load_settings
from onboarding_server.errors import (
    configuration_error_handler,
    generic_error_handler,
    key_error_handler,
    persistence_error_handler,
    value_error_handler,
)
from onboarding_server.routes import register_routes
from onboarding_server.sessions import SessionRegistry

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load the workflow YAML (role workflows, flow → stage mapping)
      2. Build the SQL stores, notifier, orchestrator and engine
      3. Stash the engine and an empty session registry on ``app.state``

    Shutdown:
      1. Dispose the database engine's connection pool
    """
    settings: ServerSettings = app.state.settings

    # --- Workflow configuration ---
    workflow = load_workflow_settings(settings.workflows_file)
    logger.info(
        "Workflow config loaded: %d roles, %d flow mappings",
        len(workflow.workflows), len(workflow.flow_stages),
    )

    # --- Storage ---
    if settings.create_tables:
        await create_tables()
        logger.info("Database tables ensured")
    factory = get_session_factory()

    # --- Notifier (optional) ---
    notifier = None
    if settings.notifier_url:
        notifier = EmailNotifier(
            settings.notifier_url,
            workflow.stage_names,
            dashboard_url=settings.dashboard_url,
            api_key=settings.notifier_api_key,
            timeout=settings.notifier_timeout,
        )
    else:
        logger.info("NOTIFIER_URL not set; stage-completion e-mails disabled")

    # --- Engine ---
    progression = StageProgressionOrchestrator(
        workflow, SqlStageProgressStore(factory), notifier=notifier,
    )
    definitions = FlowDefinitionStore(SqlDefinitionSource(factory))
    app.state.engine = OnboardingEngine(definitions, SqlSubmissionStore(factory), progression)
    app.state.registry = SessionRegistry()

    yield

    # --- Shutdown ---
    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Onboarding API Server",
        description="REST API for conditional onboarding flows and stage progression",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — verifies DB connectivity."""
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return {"status": "ok"}
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return {"status": "error", "detail": str(exc)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn onboarding_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``onboarding-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "onboarding_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
