"""OnboardingSubmission ORM model — one answer record per user.

The answer map is flat (``{alias: value}``) and is rewritten as a whole on
every answer change, so a single JSONB column is enough.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_db.models.base import Base
from onboarding_db.models.enums import SubmissionStatus


class OnboardingSubmission(Base):
    """A user's accumulated answers and review status."""

    __tablename__ = "onboarding_submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # External user ID supplied by the auth provider
    user_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    # Workflow role ("seller", "buyer", "ally"); null until the user picks one
    role: Mapped[str | None] = mapped_column(Text, nullable=True)

    data: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SubmissionStatus.IN_PROGRESS,
        server_default=text("'in_progress'"),
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('in_progress', 'in_review')",
            name="ck_submission_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<OnboardingSubmission(user={self.user_id!r}, role={self.role!r}, "
            f"status={self.status!r}, answers={len(self.data or {})})>"
        )
