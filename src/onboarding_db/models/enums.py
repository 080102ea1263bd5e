"""Database-level enumerations for onboarding submissions and stages."""

import enum


class StageStatus(str, enum.Enum):
    """Lifecycle states for a user's workflow stage record.

    Transitions:
        not_started -> in_progress  (first answer written for the stage's flow)
        in_progress -> completed    (flow submitted)
        not_started -> completed    (flow submitted without intermediate writes)
    """

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SubmissionStatus(str, enum.Enum):
    """Review status of a user's answer record.

    Transitions:
        in_progress -> in_review  (onboarding submitted)

    Edits made to an already-submitted record leave the status untouched.
    """

    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
