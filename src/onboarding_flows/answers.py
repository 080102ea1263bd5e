"""AnswerStore — the session's alias → value map and its write-through.

Every mutation is two-phase: the local map changes first, then the whole map
is written to the :class:`SubmissionStore`.  A failed write is reported as
``SyncResult(ok=False)`` and logged; the local change is kept.

In editing mode (revisiting an already-submitted record) only the data is
written; the submission status is left as it is.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from onboarding_db.models.enums import SubmissionStatus

from onboarding_flows.errors import PersistenceError
from onboarding_flows.interfaces import SubmissionStore
from onboarding_flows.models.session import SyncResult

logger = logging.getLogger(__name__)


class AnswerStore:
    """Mutable answer map for one user.

    Args:
        user_id: owner of the submission record
        submissions: persistence collaborator
        editing: True when editing an already-submitted record
    """

    def __init__(
        self,
        user_id: str,
        submissions: SubmissionStore,
        *,
        editing: bool = False,
    ) -> None:
        self.user_id = user_id
        self.editing = editing
        self._submissions = submissions
        self._values: dict[str, Any] = {}

    @property
    def values(self) -> dict[str, Any]:
        """The live map.  Callers must not mutate it directly."""
        return self._values

    def get(self, alias: str, default: Any = None) -> Any:
        return self._values.get(alias, default)

    def hydrate(self, values: Mapping[str, Any]) -> None:
        """Replace the map with previously stored answers, without writing."""
        self._values = dict(values)

    async def set_value(self, alias: str, value: Any) -> SyncResult:
        self._values[alias] = value
        return await self._persist()

    async def set_values(self, values: Mapping[str, Any]) -> SyncResult:
        """Replace the whole map (bulk edit) and write it once."""
        self._values = dict(values)
        return await self._persist()

    async def mark_submitted(self) -> SyncResult:
        """Write the map with status ``in_review``; a no-op status in editing mode."""
        return await self._persist(status=SubmissionStatus.IN_REVIEW)

    async def _persist(
        self, status: SubmissionStatus = SubmissionStatus.IN_PROGRESS
    ) -> SyncResult:
        try:
            await self._submissions.upsert(
                self.user_id,
                dict(self._values),
                status=None if self.editing else status,
            )
        except PersistenceError as exc:
            logger.error("Failed to persist answers for user %s: %s", self.user_id, exc)
            return SyncResult(ok=False, error=str(exc))
        return SyncResult()
