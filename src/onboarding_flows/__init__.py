"""onboarding_flows — conditional flow and stage-progression SDK.

Public API:
    OnboardingEngine              — opens per-user sessions on a named flow
    OnboardingSession             — answers, navigation and submission for one flow
    FlowDefinitionStore           — loads, sorts and validates flow definitions
    VisibilityEvaluator           — evaluates section/step display rules
    NavigationController          — position state machine with recap
    ProgressCalculator            — 0–100 progress over visible steps
    AnswerStore                   — optimistic answer map with write-through
    StageProgressionOrchestrator  — completes stages and creates the next one
    EmailNotifier                 — stage-completion e-mails over HTTP

Collaborator interfaces:
    DefinitionSource, SubmissionStore, StageProgressStore, Notifier

Validation helpers:
    validate_question_value, validate_step, validate_section

Errors:
    OnboardingError, ConfigurationError, PersistenceError
"""

from onboarding_flows.answers import AnswerStore
from onboarding_flows.constants import DEFAULT_ROLE, load_workflow_settings
from onboarding_flows.definitions import FlowDefinitionStore, merge_section_deltas
from onboarding_flows.engine import OnboardingEngine, OnboardingSession
from onboarding_flows.errors import ConfigurationError, OnboardingError, PersistenceError
from onboarding_flows.evaluator import VisibilityEvaluator
from onboarding_flows.interfaces import (
    DefinitionSource,
    Notifier,
    StageProgressStore,
    SubmissionStore,
)
from onboarding_flows.navigation import NavigationController, ProgressCalculator
from onboarding_flows.notifications import EmailNotifier
from onboarding_flows.progression import StageProgressionOrchestrator
from onboarding_flows.validation import (
    validate_question_value,
    validate_section,
    validate_step,
)

__all__ = [
    # Engine & session
    "OnboardingEngine",
    "OnboardingSession",
    # Components
    "AnswerStore",
    "FlowDefinitionStore",
    "NavigationController",
    "ProgressCalculator",
    "StageProgressionOrchestrator",
    "VisibilityEvaluator",
    "EmailNotifier",
    # Interfaces
    "DefinitionSource",
    "Notifier",
    "StageProgressStore",
    "SubmissionStore",
    # Helpers
    "DEFAULT_ROLE",
    "load_workflow_settings",
    "merge_section_deltas",
    "validate_question_value",
    "validate_section",
    "validate_step",
    # Errors
    "ConfigurationError",
    "OnboardingError",
    "PersistenceError",
]
