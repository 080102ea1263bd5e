"""Flow structure models: Section → Step → Question, plus display rules.

A flow is an ordered list of sections; each section holds ordered steps and
each step holds questions.  Sections and steps may carry a
``conditionalDisplay`` rule that hides them depending on an earlier answer.

``FlowDefinition`` is built once per flow selection by
:class:`~onboarding_flows.definitions.FlowDefinitionStore` and is treated as
read-only for the rest of the session.
"""

from __future__ import annotations

from typing import Any, Iterator, List, Literal, Optional, Protocol

from pydantic import Field, model_validator

from .question import CamelModel, Question

Operator = Literal["equals", "notEquals", "includes", "notIncludes"]


class ConditionalDisplay(CamelModel):
    """Show the owning section/step only when an earlier answer matches.

    Operators:
      - equals, notEquals: (in)equality, case-insensitive for strings
      - includes, notIncludes: membership in a multi-select answer
    """

    question_alias: str
    expected_value: Any = None
    operator: Operator = "equals"


class HasConditionalDisplay(Protocol):
    """Anything that may carry a display rule (sections and steps)."""

    conditional_display: Optional[ConditionalDisplay]


class Step(CamelModel):
    id: int
    order: int = 0
    questions: List[Question] = []
    conditional_display: Optional[ConditionalDisplay] = None


class Section(CamelModel):
    id: int
    name: str = ""
    color: str = ""
    steps: List[Step] = []
    order: Optional[int] = None
    conditional_display: Optional[ConditionalDisplay] = None


class FlowDefinition(CamelModel):
    """All sections of one named flow, in display order.

    Question aliases are the keys of the answer map and the targets of
    display rules, so they must be unique across the whole flow.
    """

    flow_name: str
    sections: List[Section] = Field(default_factory=list)

    @model_validator(mode="after")
    def _chk_unique_aliases(self):
        seen: set[str] = set()
        for _, _, question in self.iter_questions():
            if question.alias in seen:
                raise ValueError(
                    f"Duplicate question alias '{question.alias}' in flow '{self.flow_name}'"
                )
            seen.add(question.alias)
        return self

    def iter_questions(self) -> Iterator[tuple[int, int, Question]]:
        """Yield ``(section_index, step_index, question)`` in flow order."""
        for si, section in enumerate(self.sections):
            for ti, step in enumerate(section.steps):
                for question in step.questions:
                    yield si, ti, question

    def question_position(self, alias: str) -> tuple[int, int] | None:
        """Return ``(section_index, step_index)`` of the question with *alias*."""
        for si, ti, question in self.iter_questions():
            if question.alias == alias:
                return si, ti
        return None

    @property
    def total_steps(self) -> int:
        return sum(len(s.steps) for s in self.sections)
