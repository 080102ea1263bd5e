"""Async repositories for flows, submissions and stage progress.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries; they ``flush()`` but never ``commit()``.

The repositories carry no business rules — which stage comes next, when a
status may change — that lives in :mod:`onboarding_flows`.  They do enforce
structural invariants through the database (unique ``flow_name``, unique
``(user_id, stage_id)``).
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from onboarding_db.models.enums import StageStatus, SubmissionStatus
from onboarding_db.models.flow import OnboardingFlow
from onboarding_db.models.progress import UserStageProgress
from onboarding_db.models.submission import OnboardingSubmission


class FlowRepository:
    """Read/write operations on the ``onboarding_flows`` table."""

    async def get_by_name(
        self, db: AsyncSession, flow_name: str
    ) -> OnboardingFlow | None:
        stmt = select(OnboardingFlow).where(OnboardingFlow.flow_name == flow_name)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_names(self, db: AsyncSession) -> list[str]:
        """All flow names, alphabetically."""
        stmt = select(OnboardingFlow.flow_name).order_by(OnboardingFlow.flow_name)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def create(
        self,
        db: AsyncSession,
        flow_name: str,
        sections: list[dict[str, Any]] | None = None,
    ) -> OnboardingFlow:
        """Insert a new flow.

        Raises ``ValueError`` if a flow with the same name already exists.
        """
        flow = OnboardingFlow(flow_name=flow_name, data={"sections": sections or []})
        db.add(flow)
        try:
            await db.flush()
        except IntegrityError as exc:
            raise ValueError(f"Flow already exists: {flow_name}") from exc
        return flow

    async def replace_sections(
        self,
        db: AsyncSession,
        flow: OnboardingFlow,
        sections: list[dict[str, Any]],
    ) -> OnboardingFlow:
        """Overwrite the flow's section list."""
        # New dict so SQLAlchemy sees the JSONB change
        flow.data = {**(flow.data or {}), "sections": sections}
        flow.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return flow

    async def delete_by_name(self, db: AsyncSession, flow_name: str) -> int:
        """Delete a flow; returns the number of rows removed (0 or 1)."""
        stmt = delete(OnboardingFlow).where(OnboardingFlow.flow_name == flow_name)
        result = await db.execute(stmt)
        return result.rowcount or 0


class SubmissionRepository:
    """Read/write operations on the ``onboarding_submissions`` table."""

    async def get_by_user(
        self, db: AsyncSession, user_id: str
    ) -> OnboardingSubmission | None:
        stmt = select(OnboardingSubmission).where(
            OnboardingSubmission.user_id == user_id
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def upsert(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        data: dict[str, Any],
        status: SubmissionStatus | None = None,
    ) -> None:
        """Write the whole answer map, creating the row if needed.

        ``status=None`` leaves the stored status alone (new rows get the
        column default).  This is what "editing mode" relies on.
        """
        now = datetime.now(timezone.utc)
        values: dict[str, Any] = {"user_id": user_id, "data": data, "updated_at": now}
        if status is not None:
            values["status"] = status.value
        stmt = pg_insert(OnboardingSubmission).values(**values)
        set_ = {"data": stmt.excluded.data, "updated_at": now}
        if status is not None:
            set_["status"] = stmt.excluded.status
        stmt = stmt.on_conflict_do_update(index_elements=["user_id"], set_=set_)
        await db.execute(stmt)
        await db.flush()


class StageProgressRepository:
    """Read/write operations on the ``user_onboarding_progress`` table."""

    async def get(
        self, db: AsyncSession, user_id: str, stage_id: int
    ) -> UserStageProgress | None:
        """Fetch the record for the unique ``(user_id, stage_id)`` pair."""
        stmt = select(UserStageProgress).where(
            UserStageProgress.user_id == user_id,
            UserStageProgress.stage_id == stage_id,
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_user(
        self, db: AsyncSession, user_id: str
    ) -> list[UserStageProgress]:
        """All of a user's stage records, oldest first."""
        stmt = (
            select(UserStageProgress)
            .where(UserStageProgress.user_id == user_id)
            .order_by(UserStageProgress.created_at.asc())
        )
        result = await db.execute(stmt)
        return list(result.scalars().all())

    async def set_status(
        self,
        db: AsyncSession,
        user_id: str,
        stage_id: int,
        status: StageStatus,
    ) -> bool:
        """Update an existing record's status.

        Returns ``False`` when no record exists (nothing is inserted).
        """
        stmt = (
            update(UserStageProgress)
            .where(
                UserStageProgress.user_id == user_id,
                UserStageProgress.stage_id == stage_id,
            )
            .values(status=status.value, updated_at=datetime.now(timezone.utc))
        )
        result = await db.execute(stmt)
        return bool(result.rowcount)

    async def insert_if_absent(
        self,
        db: AsyncSession,
        user_id: str,
        stage_id: int,
        status: StageStatus = StageStatus.NOT_STARTED,
    ) -> bool:
        """Insert a record unless ``(user_id, stage_id)`` already exists.

        Returns ``True`` when a row was inserted, ``False`` on conflict.
        """
        stmt = (
            pg_insert(UserStageProgress)
            .values(user_id=user_id, stage_id=stage_id, status=status.value)
            .on_conflict_do_nothing(index_elements=["user_id", "stage_id"])
            .returning(UserStageProgress.id)
        )
        result = await db.execute(stmt)
        inserted = result.scalar_one_or_none() is not None
        await db.flush()
        return inserted
