"""Global exception handlers — map SDK exceptions to HTTP status codes.

The SDK raises ``ValueError`` for lookups that miss (flow not found, no open
session, duplicate flow name) and for invalid flow definitions.  Rather than
catching these in every route, global handlers inspect the message and pick
the status code.  Configuration and persistence errors get their own codes.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from onboarding_flows.errors import ConfigurationError, PersistenceError

logger = logging.getLogger(__name__)

# --- Keyword patterns in ValueError messages and their HTTP status codes ---
# Checked in order; first match wins.
_VALUE_ERROR_PATTERNS: list[tuple[str, int]] = [
    # Flow name taken (unique constraint on flow_name)
    ("already exists", 409),
    # Unknown flow, template, question or no open session
    ("not found", 404),
]


# --- Client-safe messages keyed by HTTP status code ---
# Internal details (user ids, flow names) stay in the server log.
_SAFE_MESSAGES: dict[int, str] = {
    404: "Resource not found",
    409: "Resource already exists",
    400: "Invalid request",
}


async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    """Map SDK ``ValueError`` to 404/409, falling back to 400.

    The raw exception message is logged server-side but never sent to the
    client.
    """
    msg = str(exc)
    status = 400
    for pattern, code in _VALUE_ERROR_PATTERNS:
        if pattern in msg.lower():
            status = code
            break

    logger.warning("ValueError [%d] at %s: %s", status, request.url, msg)
    safe_detail = _SAFE_MESSAGES.get(status, "Invalid request")
    return JSONResponse(status_code=status, content={"detail": safe_detail})


async def key_error_handler(request: Request, exc: KeyError) -> JSONResponse:
    """Map a stray ``KeyError`` from a lookup to 404."""
    logger.warning("KeyError at %s: %s", request.url, exc)
    return JSONResponse(status_code=404, content={"detail": "Resource not found"})


async def configuration_error_handler(
    request: Request, exc: ConfigurationError
) -> JSONResponse:
    """Missing flow→stage mapping or role workflow: a deployment problem."""
    logger.error("Configuration error at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Workflow configuration error"},
    )


async def persistence_error_handler(
    request: Request, exc: PersistenceError
) -> JSONResponse:
    logger.error("Persistence error at %s: %s", request.url, exc)
    return JSONResponse(
        status_code=503,
        content={"detail": "Storage temporarily unavailable"},
    )


async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions — log full traceback, return 500."""
    logger.exception("Unhandled exception at %s", request.url)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )
