"""OnboardingEngine and OnboardingSession — one user working through one flow.

The engine is stateless and shared; :meth:`OnboardingEngine.open_flow`
returns an :class:`OnboardingSession` that owns everything mutable for that
user and flow (answers, position, onboarding-complete flag).  Opening another
flow means opening a new session; nothing carries over except what the
submission store returns.

Typical use::

    session = await engine.open_flow(user, "kyc_seller")
    await session.set_value("company_stage", "Seed")
    result = await session.advance()
    if not result.moved:
        show(result.validation.error)
    ...
    outcome = await session.submit()

Modes:
    editing  — revisiting an already-submitted record: answers are saved
               but the submission status and stage records are left alone
    admin    — previewing a flow: validation is bypassed
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from onboarding_flows.answers import AnswerStore
from onboarding_flows.constants import DEFAULT_ROLE
from onboarding_flows.definitions import FlowDefinitionStore
from onboarding_flows.errors import PersistenceError
from onboarding_flows.evaluator import VisibilityEvaluator
from onboarding_flows.interfaces import SubmissionStore
from onboarding_flows.models.flow import FlowDefinition, Section, Step
from onboarding_flows.models.session import (
    NavigationResult,
    NavigationState,
    StepView,
    SubmitResult,
    SyncResult,
    UserContext,
    ValidationResult,
)
from onboarding_flows.navigation import NavigationController
from onboarding_flows.progression import StageProgressionOrchestrator
from onboarding_flows.validation import validate_section, validate_step

logger = logging.getLogger(__name__)


class OnboardingSession:
    """Mutable state of one user in one flow.

    Args:
        flow: the loaded, sorted flow definition
        user: identity of the user answering
        answers: the user's answer store (already hydrated)
        progression: stage orchestrator used on answer writes and submit
        editing: editing an already-submitted record
        admin: bypass validation
    """

    def __init__(
        self,
        flow: FlowDefinition,
        user: UserContext,
        answers: AnswerStore,
        progression: StageProgressionOrchestrator,
        *,
        editing: bool = False,
        admin: bool = False,
        evaluator: VisibilityEvaluator | None = None,
    ) -> None:
        self.flow = flow
        self.user = user
        self.editing = editing
        self.admin = admin
        self.onboarding_complete = False
        self._answers = answers
        self._progression = progression
        self._evaluator = evaluator or VisibilityEvaluator()
        self.navigation = NavigationController(
            flow.sections, lambda: self._answers.values, self._evaluator,
        )

    @property
    def flow_name(self) -> str:
        return self.flow.flow_name

    @property
    def answers(self) -> dict[str, Any]:
        return self._answers.values

    # ==================================================================
    # Answers
    # ==================================================================

    async def set_value(self, alias: str, value: Any) -> SyncResult:
        """Record one answer and write the answer map.

        The local change is kept even when the write fails.  Outside editing
        mode the flow's stage record also moves to ``in_progress``.

        Raises:
            ValueError: if no question in the flow has this alias.
        """
        if self.flow.question_position(alias) is None:
            raise ValueError(f"Question not found: {alias}")

        result = await self._answers.set_value(alias, value)
        if self.editing or not result.ok:
            return result

        try:
            await self._progression.mark_in_progress(self.user.user_id, self.flow_name)
        except PersistenceError as exc:
            logger.error(
                "Failed to mark flow %s in progress for user %s: %s",
                self.flow_name, self.user.user_id, exc,
            )
            return SyncResult(ok=False, error=str(exc))
        return result

    async def set_values(self, values: Mapping[str, Any]) -> SyncResult:
        """Replace the whole answer map (bulk edit) and write it once."""
        return await self._answers.set_values(values)

    # ==================================================================
    # Visibility
    # ==================================================================

    def visible_sections(self) -> list[tuple[int, Section]]:
        return self.navigation.visible_sections()

    def visible_steps(self, section_index: int) -> list[tuple[int, Step]]:
        return self.navigation.visible_steps(section_index)

    def is_section_visible(self, section_index: int) -> bool:
        return self._evaluator.is_visible(self.flow.sections[section_index], self.answers)

    # ==================================================================
    # Validation
    # ==================================================================

    def validate_current_step(self) -> ValidationResult:
        if self.admin:
            return ValidationResult.ok()

        nav = self.navigation
        if not 0 <= nav.section_index < len(self.flow.sections):
            return ValidationResult.fail("Section not found")
        if not self.is_section_visible(nav.section_index):
            return ValidationResult.ok()

        steps = self.flow.sections[nav.section_index].steps
        if not 0 <= nav.step_index < len(steps):
            return ValidationResult.fail("Step not found")
        return validate_step(steps[nav.step_index].questions, self.answers)

    def validate_section(self, section_index: int) -> ValidationResult:
        """Validate the visible steps of a section.

        A hidden section is valid.  ``step_index`` in a failure is the
        original index of the failing step.
        """
        if self.admin:
            return ValidationResult.ok()
        if not 0 <= section_index < len(self.flow.sections):
            return ValidationResult.fail("Section not found")
        if not self.is_section_visible(section_index):
            return ValidationResult.ok()

        visible = self.visible_steps(section_index)
        result = validate_section([step for _, step in visible], self.answers)
        if not result.is_valid and result.step_index is not None:
            result.step_index = visible[result.step_index][0]
        return result

    def check_flow_completion(self) -> ValidationResult:
        """Every visible section must validate."""
        for si, section in self.visible_sections():
            result = self.validate_section(si)
            if not result.is_valid:
                return ValidationResult.fail(
                    f"Incomplete section: {section.name} - {result.error}",
                    step_index=result.step_index,
                )
        return ValidationResult.ok()

    # ==================================================================
    # Navigation
    # ==================================================================

    def current_step(self) -> StepView | None:
        """The step to render, or None in recap or for an empty flow."""
        nav = self.navigation
        if nav.recap or not self.flow.sections:
            return None
        section = self.flow.sections[nav.section_index]
        if not section.steps:
            return None
        step = section.steps[nav.step_index]
        return StepView(
            section_id=section.id,
            section_name=section.name,
            section_color=section.color,
            step_id=step.id,
            section_index=nav.section_index,
            step_index=nav.step_index,
            questions=[q.model_dump(by_alias=True) for q in step.questions],
            answers={
                q.alias: self.answers[q.alias]
                for q in step.questions if q.alias in self.answers
            },
        )

    def advance(self, validate: bool = True) -> NavigationResult:
        """Move forward; a failing current step blocks the move."""
        if validate:
            check = self.validate_current_step()
            if not check.is_valid:
                return NavigationResult(moved=False, state=self.state(), validation=check)
        moved = self.navigation.advance()
        return NavigationResult(moved=moved, state=self.state())

    def retreat(self) -> NavigationResult:
        moved = self.navigation.retreat()
        return NavigationResult(moved=moved, state=self.state())

    def next_section(self) -> NavigationResult:
        moved = self.navigation.next_section()
        return NavigationResult(moved=moved, state=self.state())

    def previous_section(self) -> NavigationResult:
        moved = self.navigation.previous_section()
        return NavigationResult(moved=moved, state=self.state())

    def go_to(self, section_index: int, step_index: int = 0) -> NavigationResult:
        self.navigation.go_to(section_index, step_index)
        return NavigationResult(moved=True, state=self.state())

    def progress(self) -> float:
        return self.navigation.progress()

    def state(self) -> NavigationState:
        return self.navigation.snapshot()

    # ==================================================================
    # Completion
    # ==================================================================

    async def set_onboarding_complete(self, complete: bool) -> SyncResult:
        """Flag the onboarding as complete; outside editing mode the
        submission moves to ``in_review``."""
        self.onboarding_complete = complete
        if not complete or self.editing:
            return SyncResult()
        return await self._answers.mark_submitted()

    async def submit(self) -> SubmitResult:
        """Validate the whole flow, then record completion.

        An incomplete flow is reported in the result.  Persistence and
        configuration errors during completion propagate.
        """
        check = self.check_flow_completion()
        if not check.is_valid:
            return SubmitResult(ok=False, error=check.error, state=self.state())

        sync = await self.set_onboarding_complete(True)
        if not sync.ok:
            raise PersistenceError(sync.error or "Failed to submit answers")

        completion = await self._progression.complete_flow(
            self.user,
            self.flow_name,
            editing=self.editing,
            notify=self.onboarding_complete,
        )
        self.navigation.complete = True
        logger.info("User %s submitted flow %s", self.user.user_id, self.flow_name)
        return SubmitResult(ok=True, completion=completion, state=self.state())


class OnboardingEngine:
    """Opens sessions.  Holds no per-user state.

    Args:
        definitions: typed flow definitions
        submissions: the answer-record collaborator
        progression: stage orchestrator shared by all sessions
    """

    def __init__(
        self,
        definitions: FlowDefinitionStore,
        submissions: SubmissionStore,
        progression: StageProgressionOrchestrator,
    ) -> None:
        self.definitions = definitions
        self.submissions = submissions
        self.progression = progression
        self._evaluator = VisibilityEvaluator()

    async def resolve_role(self, user_id: str) -> str:
        """The user's stored role, or the default role if none is stored."""
        record = await self.submissions.read(user_id)
        if record is None or not record.role:
            return DEFAULT_ROLE
        return record.role

    async def open_flow(
        self,
        user: UserContext,
        flow_name: str,
        *,
        editing: bool = False,
        admin: bool = False,
    ) -> OnboardingSession:
        """Load *flow_name* and start a session positioned at its first step.

        Previously stored answers are loaded into the new session.

        Raises:
            ValueError: if the flow does not exist or is invalid.
        """
        flow = await self.definitions.load(flow_name)
        answers = AnswerStore(user.user_id, self.submissions, editing=editing)

        record = await self.submissions.read(user.user_id)
        if record is not None:
            answers.hydrate(record.data)

        session = OnboardingSession(
            flow, user, answers, self.progression,
            editing=editing, admin=admin, evaluator=self._evaluator,
        )
        logger.info(
            "Opened flow %s for user %s (editing=%s, admin=%s)",
            flow_name, user.user_id, editing, admin,
        )
        return session
