"""Abstract interfaces for the engine's external collaborators.

The engine owns no storage and sends no messages itself.  It talks to four
collaborators through the ABCs below; ``onboarding_db.stores`` ships the
PostgreSQL implementations and :mod:`onboarding_flows.notifications` ships
an HTTP e-mail notifier.

Typical wiring::

    definitions = FlowDefinitionStore(SqlDefinitionSource(factory))
    progression = StageProgressionOrchestrator(
        settings, SqlStageProgressStore(factory), notifier=EmailNotifier(...),
    )
    engine = OnboardingEngine(definitions, SqlSubmissionStore(factory), progression)
    session = await engine.open_flow(user, "kyc_seller")

Implementations should raise :class:`~onboarding_flows.errors.PersistenceError`
for storage failures so the engine can tell them apart from programming
errors.
"""

from abc import ABC, abstractmethod
from typing import Any

from onboarding_db.models.enums import StageStatus, SubmissionStatus

from onboarding_flows.models.workflow import InsertOutcome, StageRecord, SubmissionRecord


class DefinitionSource(ABC):
    """Where flow definitions are stored and edited."""

    @abstractmethod
    async def fetch_sections(self, flow_name: str) -> list[dict[str, Any]]:
        """Return the raw (camelCase) section dicts of a flow.

        Raises ``ValueError`` ("not found") if the flow does not exist.
        """
        ...

    @abstractmethod
    async def update_sections(
        self, flow_name: str, deltas: list[dict[str, Any]]
    ) -> None:
        """Apply section deltas; see :func:`~onboarding_flows.definitions.merge_section_deltas`."""
        ...

    @abstractmethod
    async def list_flows(self) -> list[str]:
        ...

    @abstractmethod
    async def create_flow(
        self, flow_name: str, sections: list[dict[str, Any]] | None = None
    ) -> None:
        """Create a flow, optionally seeded with sections.

        Raises ``ValueError`` ("already exists") on a duplicate name.
        """
        ...

    @abstractmethod
    async def delete_flow(self, flow_name: str) -> None:
        ...


class SubmissionStore(ABC):
    """Per-user answer record: ``{data, status}``."""

    @abstractmethod
    async def read(self, user_id: str) -> SubmissionRecord | None:
        ...

    @abstractmethod
    async def upsert(
        self,
        user_id: str,
        data: dict[str, Any],
        status: SubmissionStatus | None = None,
    ) -> None:
        """Write the whole answer map; ``status=None`` leaves the status untouched."""
        ...


class StageProgressStore(ABC):
    """Per-user stage records, unique on ``(user_id, stage_id)``."""

    @abstractmethod
    async def get(self, user_id: str, stage_id: int) -> StageRecord | None:
        ...

    @abstractmethod
    async def list_for_user(self, user_id: str) -> list[StageRecord]:
        """All of the user's records in creation order (oldest first)."""
        ...

    @abstractmethod
    async def set_status(
        self, user_id: str, stage_id: int, status: StageStatus
    ) -> bool:
        """Update an existing record; return False if there is none."""
        ...

    @abstractmethod
    async def insert_if_absent(
        self,
        user_id: str,
        stage_id: int,
        status: StageStatus = StageStatus.NOT_STARTED,
    ) -> InsertOutcome:
        """Insert unless the pair exists; a duplicate is reported, not raised."""
        ...


class Notifier(ABC):
    """Best-effort outbound message sender."""

    @abstractmethod
    async def send(
        self,
        stage_id: int,
        recipient_email: str,
        recipient_name: str | None = None,
    ) -> bool:
        """Send a stage-completion message; return True on success."""
        ...
