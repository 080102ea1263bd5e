"""Public model re-exports for onboarding_flows.

Consumers should import from ``onboarding_flows.models`` rather than
reaching into sub-modules directly.
"""

# --- Questions ---
from onboarding_flows.models.question import (
    BaseQuestion,
    CamelModel,
    DetailFormField,
    DetailFormQuestion,
    EmotiveScaleQuestion,
    MultiSelectionQuestion,
    Question,
    SignalScaleQuestion,
    SingleSelectionQuestion,
    SingleSelectionWithBooleanConditionalQuestion,
    SlidingScaleQuestion,
)

# --- Flow structure ---
from onboarding_flows.models.flow import (
    ConditionalDisplay,
    FlowDefinition,
    HasConditionalDisplay,
    Operator,
    Section,
    Step,
)

# --- Workflow ---
from onboarding_flows.models.workflow import (
    CompletionResult,
    FlowStage,
    InsertOutcome,
    StageRecord,
    SubmissionRecord,
    WorkflowSettings,
)

# --- Session ---
from onboarding_flows.models.session import (
    NavigationResult,
    NavigationState,
    StepView,
    SubmitResult,
    SyncResult,
    UserContext,
    ValidationResult,
)

__all__ = [
    # Questions
    "BaseQuestion",
    "CamelModel",
    "DetailFormField",
    "DetailFormQuestion",
    "EmotiveScaleQuestion",
    "MultiSelectionQuestion",
    "Question",
    "SignalScaleQuestion",
    "SingleSelectionQuestion",
    "SingleSelectionWithBooleanConditionalQuestion",
    "SlidingScaleQuestion",
    # Flow
    "ConditionalDisplay",
    "FlowDefinition",
    "HasConditionalDisplay",
    "Operator",
    "Section",
    "Step",
    # Workflow
    "CompletionResult",
    "FlowStage",
    "InsertOutcome",
    "StageRecord",
    "SubmissionRecord",
    "WorkflowSettings",
    # Session
    "NavigationResult",
    "NavigationState",
    "StepView",
    "SubmitResult",
    "SyncResult",
    "UserContext",
    "ValidationResult",
]
