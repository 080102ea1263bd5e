"""onboarding_db — PostgreSQL persistence layer for onboarding flows.

This package provides the ORM models, async engine factory, and
repositories for flow definitions, answer submissions and stage progress.
The collaborator adapters consumed by the engine live in
:mod:`onboarding_db.stores` and are imported from there directly.
"""

from onboarding_db.engine import create_tables, dispose_engine, get_engine, get_session_factory
from onboarding_db.models import (
    OnboardingFlow,
    OnboardingSubmission,
    StageStatus,
    SubmissionStatus,
    UserStageProgress,
)
from onboarding_db.repository import (
    FlowRepository,
    StageProgressRepository,
    SubmissionRepository,
)

__all__ = [
    "OnboardingFlow",
    "OnboardingSubmission",
    "UserStageProgress",
    "StageStatus",
    "SubmissionStatus",
    "create_tables",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "FlowRepository",
    "StageProgressRepository",
    "SubmissionRepository",
]
