"""UserStageProgress ORM model — one row per (user, workflow stage).

Rows are created lazily the first time a stage becomes relevant and are
never deleted by the engine.  The ``(user_id, stage_id)`` unique constraint
is what makes next-stage creation idempotent.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, Integer, String, Text, UniqueConstraint, text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_db.models.base import Base
from onboarding_db.models.enums import StageStatus


class UserStageProgress(Base):
    """Progress of one user through one workflow stage."""

    __tablename__ = "user_onboarding_progress"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    stage_id: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=StageStatus.NOT_STARTED,
        server_default=text("'not_started'"),
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
        UniqueConstraint("user_id", "stage_id", name="uq_user_stage"),
        CheckConstraint(
            "status IN ('not_started', 'in_progress', 'completed')",
            name="ck_stage_status",
        ),
        # "Latest stage" lookups order a user's rows by creation time
        Index("ix_progress_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserStageProgress(user={self.user_id!r}, stage={self.stage_id}, "
            f"status={self.status!r})>"
        )
