"""StageProgressionOrchestrator — advances a user through their role's workflow.

A role's workflow is an ordered list of stage ids (``seller: [1, 4, 2, 3]``).
Completing a flow completes the stage that flow satisfies and creates the
record for the next stage as ``not_started``.  When that next stage was
already completed through another path, the stage after it is created
instead (skip-forward).

Stage records are only ever inserted through
:meth:`StageProgressStore.insert_if_absent`, so running any of the entry
points twice leaves exactly one record per ``(user_id, stage_id)``.

Entry points:
    complete_flow        — explicit completion of a named flow
    move_to_next_stage   — generic advance from the latest recorded stage
    progress_from_stage  — advance from an explicit stage id
"""

from __future__ import annotations

import logging

from onboarding_db.models.enums import StageStatus

from onboarding_flows.errors import ConfigurationError
from onboarding_flows.interfaces import Notifier, StageProgressStore
from onboarding_flows.models.session import UserContext
from onboarding_flows.models.workflow import (
    CompletionResult,
    FlowStage,
    InsertOutcome,
    WorkflowSettings,
)

logger = logging.getLogger(__name__)


class StageProgressionOrchestrator:
    """Maps flows to stages and writes stage records.

    Args:
        settings: workflows, flow → stage mapping and stage names
        stages: stage-progress collaborator
        notifier: optional best-effort notifier for completed stages
    """

    def __init__(
        self,
        settings: WorkflowSettings,
        stages: StageProgressStore,
        notifier: Notifier | None = None,
    ) -> None:
        self._settings = settings
        self._stages = stages
        self._notifier = notifier

    # ==================================================================
    # Lookups
    # ==================================================================

    def flow_stage(self, flow_name: str) -> FlowStage:
        """Return the stage mapping of a flow.

        Raises:
            ConfigurationError: if the flow has no mapping.
        """
        mapping = self._settings.flow_stages.get(flow_name)
        if mapping is None:
            raise ConfigurationError(f"No stage mapping found for flow: {flow_name}")
        return mapping

    def workflow(self, role: str) -> list[int]:
        """Return the role's ordered stage ids.

        Raises:
            ConfigurationError: if the role has no workflow.
        """
        stages = self._settings.workflows.get(role)
        if not stages:
            raise ConfigurationError(f"No workflow configured for role: {role}")
        return stages

    def remaining_stages(self, role: str, current_stage_id: int) -> list[int]:
        """Stage ids after *current_stage_id* in the role's workflow.

        An unknown current stage yields the whole workflow.
        """
        stages = self.workflow(role)
        if current_stage_id not in stages:
            return list(stages)
        return stages[stages.index(current_stage_id) + 1:]

    def stage_name(self, stage_id: int) -> str | None:
        return self._settings.stage_names.get(stage_id)

    # ==================================================================
    # Writes
    # ==================================================================

    async def complete_flow(
        self,
        user: UserContext,
        flow_name: str,
        *,
        editing: bool = False,
        notify: bool = False,
    ) -> CompletionResult:
        """Complete the stage satisfied by *flow_name* and create the next one.

        In editing mode nothing is written.  Persistence errors propagate;
        notifier errors are logged and swallowed.

        Raises:
            ConfigurationError: missing flow mapping or role workflow.
        """
        if editing:
            logger.info(
                "Skipping stage completion for user %s: editing an existing submission",
                user.user_id,
            )
            return CompletionResult(skipped=True)

        stage_id = self.flow_stage(flow_name).stage_id
        stages = self.workflow(user.role)

        await self._complete_stage(user.user_id, stage_id)

        notified = False
        if notify and user.email:
            notified = await self._notify(stage_id, user)

        next_stage_id, created = await self._create_next_stage(
            user.user_id, stages, stage_id,
        )
        logger.info(
            "User %s completed flow %s (stage %d), next=%s created=%s",
            user.user_id, flow_name, stage_id, next_stage_id, created,
        )
        return CompletionResult(
            stage_id=stage_id,
            next_stage_id=next_stage_id,
            created_stage_id=created,
            notified=notified,
        )

    async def move_to_next_stage(self, user_id: str, role: str) -> CompletionResult:
        """Advance from the user's latest stage record.

        With no records at all, the role's first stage is seeded as
        ``not_started``.
        """
        stages = self.workflow(role)
        records = await self._stages.list_for_user(user_id)

        if not records:
            first = stages[0]
            outcome = await self._stages.insert_if_absent(user_id, first)
            logger.info("Seeded first stage %d for user %s", first, user_id)
            return CompletionResult(
                next_stage_id=first,
                created_stage_id=first if outcome is InsertOutcome.INSERTED else None,
            )

        current = records[-1].stage_id
        return await self.progress_from_stage(user_id, role, current)

    async def progress_from_stage(
        self, user_id: str, role: str, current_stage_id: int
    ) -> CompletionResult:
        """Complete *current_stage_id* and create the next stage record."""
        stages = self.workflow(role)
        await self._complete_stage(user_id, current_stage_id)
        next_stage_id, created = await self._create_next_stage(
            user_id, stages, current_stage_id,
        )
        return CompletionResult(
            stage_id=current_stage_id,
            next_stage_id=next_stage_id,
            created_stage_id=created,
        )

    async def mark_in_progress(self, user_id: str, flow_name: str) -> bool:
        """Move the flow's stage record to ``in_progress``.

        No-op (False) when the flow has no mapping or the user has no
        record for the stage yet, or the stage is already completed.
        """
        mapping = self._settings.flow_stages.get(flow_name)
        if mapping is None:
            return False
        record = await self._stages.get(user_id, mapping.stage_id)
        if record is None or record.status is not StageStatus.NOT_STARTED:
            return False
        return await self._stages.set_status(
            user_id, mapping.stage_id, StageStatus.IN_PROGRESS,
        )

    # ==================================================================
    # Internals
    # ==================================================================

    async def _complete_stage(self, user_id: str, stage_id: int) -> None:
        updated = await self._stages.set_status(user_id, stage_id, StageStatus.COMPLETED)
        if not updated:
            await self._stages.insert_if_absent(user_id, stage_id, StageStatus.COMPLETED)

    async def _create_next_stage(
        self, user_id: str, stages: list[int], stage_id: int
    ) -> tuple[int | None, int | None]:
        """Create the record following *stage_id*; return ``(next_id, created_id)``.

        ``created_id`` is None when no record was inserted (end of workflow,
        next stage already started, or a concurrent duplicate).
        """
        if stage_id not in stages:
            logger.warning(
                "Stage %d is not part of the workflow %s; no next stage", stage_id, stages,
            )
            return None, None

        index = stages.index(stage_id)
        if index + 1 >= len(stages):
            return None, None

        next_stage_id = stages[index + 1]
        existing = await self._stages.get(user_id, next_stage_id)

        target: int | None = None
        if existing is None:
            target = next_stage_id
        elif existing.status is StageStatus.COMPLETED and index + 2 < len(stages):
            target = stages[index + 2]

        if target is None:
            return next_stage_id, None

        outcome = await self._stages.insert_if_absent(user_id, target)
        if outcome is InsertOutcome.DUPLICATE:
            logger.debug("Stage %d already exists for user %s", target, user_id)
            return next_stage_id, None
        return next_stage_id, target

    async def _notify(self, stage_id: int, user: UserContext) -> bool:
        if self._notifier is None:
            return False
        try:
            sent = await self._notifier.send(stage_id, user.email, user.full_name)
        except Exception:
            logger.exception(
                "Stage completion notification failed for user %s", user.user_id,
            )
            return False
        if not sent:
            logger.warning(
                "Stage completion notification for stage %d was not sent", stage_id,
            )
        return sent
