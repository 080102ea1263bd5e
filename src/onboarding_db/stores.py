"""PostgreSQL implementations of the onboarding_flows collaborator interfaces.

Each store holds the async session factory and opens one short session per
operation, committing on success.  Database failures surface as
:class:`~onboarding_flows.errors.PersistenceError`; lookups that miss raise
``ValueError`` ("not found") like the rest of the stack.

    factory = get_session_factory()
    source = SqlDefinitionSource(factory)
    submissions = SqlSubmissionStore(factory)
    stages = SqlStageProgressStore(factory)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from onboarding_db.models.enums import StageStatus, SubmissionStatus
from onboarding_db.repository import (
    FlowRepository,
    StageProgressRepository,
    SubmissionRepository,
)

from onboarding_flows.definitions import merge_section_deltas
from onboarding_flows.errors import PersistenceError
from onboarding_flows.interfaces import DefinitionSource, StageProgressStore, SubmissionStore
from onboarding_flows.models.workflow import InsertOutcome, StageRecord, SubmissionRecord

logger = logging.getLogger(__name__)


class _SqlStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session, commit on success, wrap database errors."""
        try:
            async with self._session_factory() as db:
                yield db
                await db.commit()
        except SQLAlchemyError as exc:
            logger.error("Database error during %s: %s", operation, exc)
            raise PersistenceError(f"Database error during {operation}") from exc


class SqlDefinitionSource(_SqlStore, DefinitionSource):
    """Flow definitions stored as JSONB in ``onboarding_flows``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self._repo = FlowRepository()

    async def fetch_sections(self, flow_name: str) -> list[dict[str, Any]]:
        async with self._session("fetch_sections") as db:
            flow = await self._repo.get_by_name(db, flow_name)
            if flow is None:
                raise ValueError(f"Flow not found: {flow_name}")
            return list(flow.sections)

    async def update_sections(
        self, flow_name: str, deltas: list[dict[str, Any]]
    ) -> None:
        async with self._session("update_sections") as db:
            flow = await self._repo.get_by_name(db, flow_name)
            if flow is None:
                raise ValueError(f"Flow not found: {flow_name}")
            merged = merge_section_deltas(flow.sections, deltas)
            await self._repo.replace_sections(db, flow, merged)

    async def list_flows(self) -> list[str]:
        async with self._session("list_flows") as db:
            return await self._repo.list_names(db)

    async def create_flow(
        self, flow_name: str, sections: list[dict[str, Any]] | None = None
    ) -> None:
        async with self._session("create_flow") as db:
            await self._repo.create(db, flow_name, sections)

    async def delete_flow(self, flow_name: str) -> None:
        async with self._session("delete_flow") as db:
            deleted = await self._repo.delete_by_name(db, flow_name)
            if not deleted:
                raise ValueError(f"Flow not found: {flow_name}")


class SqlSubmissionStore(_SqlStore, SubmissionStore):
    """One answer record per user in ``onboarding_submissions``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self._repo = SubmissionRepository()

    async def read(self, user_id: str) -> SubmissionRecord | None:
        async with self._session("read_submission") as db:
            row = await self._repo.get_by_user(db, user_id)
            if row is None:
                return None
            return SubmissionRecord(
                user_id=row.user_id,
                role=row.role,
                data=dict(row.data or {}),
                status=SubmissionStatus(row.status) if row.status else None,
            )

    async def upsert(
        self,
        user_id: str,
        data: dict[str, Any],
        status: SubmissionStatus | None = None,
    ) -> None:
        async with self._session("upsert_submission") as db:
            await self._repo.upsert(db, user_id=user_id, data=data, status=status)


class SqlStageProgressStore(_SqlStore, StageProgressStore):
    """Stage records in ``user_onboarding_progress``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        super().__init__(session_factory)
        self._repo = StageProgressRepository()

    @staticmethod
    def _to_record(row) -> StageRecord:
        return StageRecord(
            user_id=row.user_id, stage_id=row.stage_id, status=StageStatus(row.status),
        )

    async def get(self, user_id: str, stage_id: int) -> StageRecord | None:
        async with self._session("get_stage") as db:
            row = await self._repo.get(db, user_id, stage_id)
            return self._to_record(row) if row is not None else None

    async def list_for_user(self, user_id: str) -> list[StageRecord]:
        async with self._session("list_stages") as db:
            rows = await self._repo.list_by_user(db, user_id)
            return [self._to_record(r) for r in rows]

    async def set_status(
        self, user_id: str, stage_id: int, status: StageStatus
    ) -> bool:
        async with self._session("set_stage_status") as db:
            return await self._repo.set_status(db, user_id, stage_id, status)

    async def insert_if_absent(
        self,
        user_id: str,
        stage_id: int,
        status: StageStatus = StageStatus.NOT_STARTED,
    ) -> InsertOutcome:
        async with self._session("insert_stage") as db:
            inserted = await self._repo.insert_if_absent(db, user_id, stage_id, status)
        return InsertOutcome.INSERTED if inserted else InsertOutcome.DUPLICATE
