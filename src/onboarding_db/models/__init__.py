"""ORM models for onboarding_db."""

from onboarding_db.models.base import Base
from onboarding_db.models.enums import StageStatus, SubmissionStatus
from onboarding_db.models.flow import OnboardingFlow
from onboarding_db.models.progress import UserStageProgress
from onboarding_db.models.submission import OnboardingSubmission

__all__ = [
    "Base",
    "StageStatus",
    "SubmissionStatus",
    "OnboardingFlow",
    "OnboardingSubmission",
    "UserStageProgress",
]
