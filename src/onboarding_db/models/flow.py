"""OnboardingFlow ORM model — one row per named flow definition.

The whole Section/Step/Question tree lives in a single JSONB document
(``{"sections": [...]}``) so that a flow is fetched and replaced atomically.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from onboarding_db.models.base import Base


class OnboardingFlow(Base):
    """A named flow and its section definitions."""

    __tablename__ = "onboarding_flows"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # e.g. "kyc_seller", "tool_questionnaire"
    flow_name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    # Shape: {"sections": [Section, ...]} with camelCase keys
    data: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("""'{"sections": []}'::jsonb"""),
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

    @property
    def sections(self) -> list[dict]:
        return list((self.data or {}).get("sections", []))

    def __repr__(self) -> str:
        return f"<OnboardingFlow(flow_name={self.flow_name!r}, sections={len(self.sections)})>"
