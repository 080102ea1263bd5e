"""Session-facing models — the contract between the engine and its callers.

These are intentionally decoupled from the ORM models in ``onboarding_db``
so API consumers never see database internals.

  - ValidationResult: outcome of a question/step/section check (never raised)
  - SyncResult: outcome of an optimistic answer write
  - NavigationState: position, recap/complete flags and progress
  - NavigationResult: a navigation attempt (may be blocked by validation)
  - StepView: what the UI needs to render the current step
  - SubmitResult: outcome of submitting the whole flow
  - UserContext: identity supplied by the session collaborator
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

from onboarding_flows.constants import DEFAULT_ROLE
from onboarding_flows.models.workflow import CompletionResult


class ValidationResult(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    # Set by section-level validation: index of the failing step
    step_index: Optional[int] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, error: str, step_index: int | None = None) -> "ValidationResult":
        return cls(is_valid=False, error=error, step_index=step_index)


class SyncResult(BaseModel):
    """Result of persisting the answer map after a local change.

    The local change has already been applied when this is returned; a
    failed sync does not roll it back.
    """

    ok: bool = True
    error: Optional[str] = None


class NavigationState(BaseModel):
    section_index: int = 0
    step_index: int = 0
    recap: bool = False
    complete: bool = False
    progress: float = 0.0


class NavigationResult(BaseModel):
    moved: bool
    state: NavigationState
    validation: Optional[ValidationResult] = None


class StepView(BaseModel):
    """The current step with the answers already given for its questions."""

    section_id: int
    section_name: str
    section_color: str = ""
    step_id: int
    section_index: int
    step_index: int
    # Questions dumped with camelCase keys, exactly as stored
    questions: list[dict[str, Any]]
    answers: dict[str, Any] = Field(default_factory=dict)


class SubmitResult(BaseModel):
    ok: bool
    error: Optional[str] = None
    completion: Optional[CompletionResult] = None
    state: Optional[NavigationState] = None


class UserContext(BaseModel):
    """Identity supplied by the auth/session collaborator."""

    user_id: str
    role: str = DEFAULT_ROLE
    email: Optional[str] = None
    full_name: Optional[str] = None
