"""Onboarding endpoints — open a flow, answer, navigate, submit.

All endpoints require the ``X-User-ID`` header.  A user has at most one
open session (see :class:`SessionRegistry`); ``/onboarding/current/...``
addresses it.  Validation failures are part of the response body, never
an HTTP error.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from onboarding_flows.engine import OnboardingEngine, OnboardingSession
from onboarding_flows.models.session import (
    NavigationResult,
    NavigationState,
    StepView,
    SubmitResult,
    SyncResult,
    UserContext,
)

from onboarding_server.dependencies import (
    get_onboarding_engine,
    get_registry,
    get_user_context,
    get_user_id,
)
from onboarding_server.sessions import SessionRegistry

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class OpenFlowRequest(BaseModel):
    """Body for POST /onboarding/{flow_name}/open."""
    editing: bool = False


class SetAnswerRequest(BaseModel):
    value: Any = None


class SetAnswersRequest(BaseModel):
    values: dict[str, Any] = Field(default_factory=dict)


class AdvanceRequest(BaseModel):
    validate_step: bool = True


class GoToRequest(BaseModel):
    """Body for POST /onboarding/current/go-to (e.g. editing from recap)."""
    section_index: int
    step_index: int = 0


class SessionView(BaseModel):
    """Current state of the user's open session."""
    flow_name: str
    editing: bool
    state: NavigationState
    step: StepView | None = None


class AnswerResponse(BaseModel):
    sync: SyncResult
    state: NavigationState


class NavigationResponse(BaseModel):
    result: NavigationResult
    step: StepView | None = None


def _view(session: OnboardingSession) -> SessionView:
    return SessionView(
        flow_name=session.flow_name,
        editing=session.editing,
        state=session.state(),
        step=session.current_step(),
    )


def _current(
    user_id: str = Depends(get_user_id),
    registry: SessionRegistry = Depends(get_registry),
) -> OnboardingSession:
    return registry.get(user_id)


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/{flow_name}/open")
async def open_flow(
    flow_name: str,
    body: OpenFlowRequest | None = None,
    user: UserContext = Depends(get_user_context),
    engine: OnboardingEngine = Depends(get_onboarding_engine),
    registry: SessionRegistry = Depends(get_registry),
) -> SessionView:
    """Open *flow_name* for the caller, replacing any open session.

    Raises 404 if the flow does not exist.
    """
    editing = body.editing if body is not None else False
    session = await engine.open_flow(user, flow_name, editing=editing)
    registry.put(session)
    return _view(session)


@router.get("/current")
async def get_current(
    session: OnboardingSession = Depends(_current),
) -> SessionView:
    """The open session's position, progress and current step."""
    return _view(session)


@router.put("/current/answers/{alias}")
async def set_answer(
    alias: str,
    body: SetAnswerRequest,
    session: OnboardingSession = Depends(_current),
) -> AnswerResponse:
    """Record one answer.  A failed write is reported in ``sync``."""
    sync = await session.set_value(alias, body.value)
    return AnswerResponse(sync=sync, state=session.state())


@router.put("/current/answers")
async def set_answers(
    body: SetAnswersRequest,
    session: OnboardingSession = Depends(_current),
) -> AnswerResponse:
    """Replace the whole answer map."""
    sync = await session.set_values(body.values)
    return AnswerResponse(sync=sync, state=session.state())


@router.post("/current/advance")
async def advance(
    body: AdvanceRequest | None = None,
    session: OnboardingSession = Depends(_current),
) -> NavigationResponse:
    """Move forward.  An invalid current step blocks the move and is
    returned in ``result.validation``."""
    validate = body.validate_step if body is not None else True
    result = session.advance(validate=validate)
    return NavigationResponse(result=result, step=session.current_step())


@router.post("/current/retreat")
async def retreat(
    session: OnboardingSession = Depends(_current),
) -> NavigationResponse:
    result = session.retreat()
    return NavigationResponse(result=result, step=session.current_step())


@router.post("/current/next-section")
async def next_section(
    session: OnboardingSession = Depends(_current),
) -> NavigationResponse:
    result = session.next_section()
    return NavigationResponse(result=result, step=session.current_step())


@router.post("/current/previous-section")
async def previous_section(
    session: OnboardingSession = Depends(_current),
) -> NavigationResponse:
    result = session.previous_section()
    return NavigationResponse(result=result, step=session.current_step())


@router.post("/current/go-to")
async def go_to(
    body: GoToRequest,
    session: OnboardingSession = Depends(_current),
) -> NavigationResponse:
    """Jump to an explicit position and leave recap.

    Raises 400 if the position is outside the flow.
    """
    result = session.go_to(body.section_index, body.step_index)
    return NavigationResponse(result=result, step=session.current_step())


@router.post("/current/submit")
async def submit(
    session: OnboardingSession = Depends(_current),
) -> SubmitResult:
    """Submit the flow.

    An incomplete flow comes back with ``ok=false`` and the first failing
    section.  Storage failures return 503, a missing workflow mapping 500.
    """
    return await session.submit()
