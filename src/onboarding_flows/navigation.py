"""NavigationController and ProgressCalculator.

Position is ``(section_index, step_index)`` into the *original* arrays of the
flow definition.  Hidden sections and steps are skipped, but never
renumbered: the visible set is a filtered view recomputed from the live
answer map on every move, so an answer can hide or reveal a section the
user has already passed.

Terminal states:
    recap     — reached by advancing past the last visible step; review
                before submission.  Retreating leaves it.
    complete  — set only by an explicit submission, never by navigation.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping, Sequence

from onboarding_flows.evaluator import VisibilityEvaluator
from onboarding_flows.models.flow import Section, Step
from onboarding_flows.models.session import NavigationState

logger = logging.getLogger(__name__)

AnswerProvider = Callable[[], Mapping[str, Any]]


class ProgressCalculator:
    """Completion percentage over the visible part of a flow."""

    def __init__(self, evaluator: VisibilityEvaluator | None = None) -> None:
        self._evaluator = evaluator or VisibilityEvaluator()

    def progress(
        self,
        sections: Sequence[Section],
        section_index: int,
        step_index: int,
        answers: Mapping[str, Any],
    ) -> float:
        """Return 0–100.

        total     = visible steps of all visible sections
        completed = visible steps of visible sections before the current one
                    + visible steps of the current section up to and
                      including ``step_index``
        """
        total = 0
        completed = 0
        for si, section in enumerate(sections):
            if not self._evaluator.is_visible(section, answers):
                continue
            visible = [ti for ti, _ in self._evaluator.visible(section.steps, answers)]
            total += len(visible)
            if si < section_index:
                completed += len(visible)
            elif si == section_index:
                completed += sum(1 for ti in visible if ti <= step_index)

        if total == 0:
            return 0.0
        return max(0.0, min(100.0, completed / total * 100))


class NavigationController:
    """Owns the current position within one flow.

    Args:
        sections: the flow's sections, already sorted by order
        answers: callable returning the live answer map
        evaluator: shared visibility evaluator
    """

    def __init__(
        self,
        sections: Sequence[Section],
        answers: AnswerProvider,
        evaluator: VisibilityEvaluator | None = None,
    ) -> None:
        self._sections = list(sections)
        self._answers = answers
        self._evaluator = evaluator or VisibilityEvaluator()
        self._progress = ProgressCalculator(self._evaluator)
        self.reset()

    # ------------------------------------------------------------------
    # Visibility views
    # ------------------------------------------------------------------

    def visible_sections(self) -> list[tuple[int, Section]]:
        return self._evaluator.visible(self._sections, self._answers())

    def visible_steps(self, section_index: int) -> list[tuple[int, Step]]:
        """Visible steps of one section as ``(original_index, step)`` pairs."""
        section = self._sections[section_index]
        return self._evaluator.visible(section.steps, self._answers())

    def _visible_step_indices(self, section_index: int) -> list[int]:
        return [ti for ti, _ in self.visible_steps(section_index)]

    def _first_landing(self, candidates: Sequence[int]) -> tuple[int, int] | None:
        """First section among *candidates* with a visible step, and that step."""
        for si in candidates:
            steps = self._visible_step_indices(si)
            if steps:
                return si, steps[0]
        return None

    def _last_landing(self, candidates: Sequence[int]) -> tuple[int, int] | None:
        for si in candidates:
            steps = self._visible_step_indices(si)
            if steps:
                return si, steps[-1]
        return None

    def _move(self, section_index: int, step_index: int) -> None:
        if section_index != self.section_index:
            logger.debug("Entering section %d", section_index)
        self.section_index = section_index
        self.step_index = step_index

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def advance(self) -> bool:
        """Move to the next visible step, the next visible section, or recap.

        Returns True if the position changed or recap was entered.
        """
        if self.recap or self.complete:
            return False
        if not self._sections:
            self.recap = True
            return True

        later = [
            ti for ti in self._visible_step_indices(self.section_index)
            if ti > self.step_index
        ]
        if later:
            self._move(self.section_index, later[0])
            return True

        later_sections = [
            si for si, _ in self.visible_sections() if si > self.section_index
        ]
        landing = self._first_landing(later_sections)
        if landing is not None:
            self._move(*landing)
            return True

        self.recap = True
        return True

    def retreat(self) -> bool:
        """Move to the previous visible step or the previous visible section.

        From recap this only leaves recap, landing on the last visible step.
        At the very first visible step nothing changes.
        """
        if self.complete:
            return False
        if self.recap:
            self.recap = False
            landing = self._last_landing(
                [si for si, _ in reversed(self.visible_sections())]
            )
            if landing is not None:
                self._move(*landing)
            return True
        if not self._sections:
            return False

        earlier = [
            ti for ti in self._visible_step_indices(self.section_index)
            if ti < self.step_index
        ]
        if earlier:
            self._move(self.section_index, earlier[-1])
            return True

        earlier_sections = [
            si for si, _ in reversed(self.visible_sections()) if si < self.section_index
        ]
        landing = self._last_landing(earlier_sections)
        if landing is None:
            return False
        self._move(*landing)
        return True

    def next_section(self) -> bool:
        """Jump to the first visible step of the next visible section.

        Past the last visible section this enters recap.
        """
        if self.recap or self.complete:
            return False
        later_sections = [
            si for si, _ in self.visible_sections() if si > self.section_index
        ]
        landing = self._first_landing(later_sections)
        if landing is None:
            self.recap = True
            return True
        self._move(*landing)
        return True

    def previous_section(self) -> bool:
        """Jump to the first visible step of the previous visible section."""
        if self.complete:
            return False
        if self.recap:
            self.recap = False
        earlier_sections = [
            si for si, _ in reversed(self.visible_sections()) if si < self.section_index
        ]
        landing = self._first_landing(earlier_sections)
        if landing is None:
            return False
        self._move(*landing)
        return True

    def go_to(self, section_index: int, step_index: int = 0) -> None:
        """Jump to an explicit position (e.g. from the recap screen).

        Raises:
            ValueError: if the position is outside the flow.
        """
        if not 0 <= section_index < len(self._sections):
            raise ValueError(f"Section index out of range: {section_index}")
        if not 0 <= step_index < len(self._sections[section_index].steps):
            raise ValueError(f"Step index out of range: {step_index}")
        self.recap = False
        self._move(section_index, step_index)

    def reset(self) -> None:
        """Back to the first visible step of the flow."""
        self.section_index = 0
        self.step_index = 0
        self.recap = False
        self.complete = False
        landing = self._first_landing([si for si, _ in self.visible_sections()])
        if landing is not None:
            self._move(*landing)

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    def progress(self) -> float:
        return self._progress.progress(
            self._sections, self.section_index, self.step_index, self._answers(),
        )

    def snapshot(self) -> NavigationState:
        return NavigationState(
            section_index=self.section_index,
            step_index=self.step_index,
            recap=self.recap,
            complete=self.complete,
            progress=self.progress(),
        )
