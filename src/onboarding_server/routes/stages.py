"""Stage endpoints — generic workflow advancement for the caller."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from onboarding_flows.models.session import UserContext
from onboarding_flows.models.workflow import CompletionResult
from onboarding_flows.progression import StageProgressionOrchestrator

from onboarding_server.dependencies import get_progression, get_user_context

router = APIRouter(prefix="/stages", tags=["stages"])


class RemainingStages(BaseModel):
    role: str
    current_stage_id: int
    remaining: list[int]


@router.post("/next")
async def move_to_next_stage(
    user: UserContext = Depends(get_user_context),
    progression: StageProgressionOrchestrator = Depends(get_progression),
) -> CompletionResult:
    """Complete the caller's latest stage and create the next one.

    A caller with no stage records gets the role's first stage.
    """
    return await progression.move_to_next_stage(user.user_id, user.role)


@router.get("/remaining")
async def remaining_stages(
    current_stage_id: int = Query(...),
    user: UserContext = Depends(get_user_context),
    progression: StageProgressionOrchestrator = Depends(get_progression),
) -> RemainingStages:
    """Stage ids that follow *current_stage_id* in the caller's workflow."""
    return RemainingStages(
        role=user.role,
        current_stage_id=current_stage_id,
        remaining=progression.remaining_stages(user.role, current_stage_id),
    )
