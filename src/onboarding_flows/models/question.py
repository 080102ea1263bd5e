"""Question type models for onboarding flows.

Each question type maps to one answer widget and one validation rule set:

    - SingleSelection: pick one option (answer: str)
    - SingleSelectionWithBooleanConditional: yes/no style pick that may reveal
      a follow-up in the UI (answer: str)
    - MultiSelection: pick several options, optionally bounded (answer: list)
    - DetailForm: a small form of typed fields (answer: {field_alias: value})
    - SlidingScale: a slider over labelled options (answer: number)
    - EmotiveScale / SignalScale: icon scales (answer: number, 0 allowed)

Stored definitions use camelCase keys (``minSelections``, ``columnSpan``).
Every model accepts both camelCase and snake_case on input and dumps
camelCase with ``model_dump(by_alias=True)``.

The discriminated ``Question`` union uses ``type`` as its discriminator.
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model that reads/writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Props ---

class BaseQuestionProps(CamelModel):
    """Props shared by every question type.

    ``required`` defaults to True: only an explicit ``false`` in the stored
    definition makes a question optional.
    """

    question: str = ""
    required: bool = True
    subtext: Optional[str] = None


class SelectionProps(BaseQuestionProps):
    options: List[str] = []
    other_option: bool = False


class MultiSelectionProps(SelectionProps):
    min_selections: Optional[int] = None
    max_selections: Optional[int] = None

    @model_validator(mode="after")
    def _chk_bounds(self):
        if (
            self.min_selections is not None
            and self.max_selections is not None
            and self.min_selections > self.max_selections
        ):
            raise ValueError("minSelections must be <= maxSelections")
        return self


class DetailFormField(CamelModel):
    """One field inside a DetailForm question."""

    id: str
    label: str = ""
    type: Literal["text", "number", "email", "phone", "select", "url", "textarea"] = "text"
    required: bool = False
    placeholder: Optional[str] = None
    alias: str
    options: Optional[List[str]] = None
    textarea_height: Optional[Literal["small", "medium", "large"]] = None
    column_span: Literal[1, 2] = 1

    @property
    def display_name(self) -> str:
        """Label used in error messages; falls back to the alias."""
        return self.label or self.alias


class DetailFormProps(BaseQuestionProps):
    fields: List[DetailFormField] = []

    @model_validator(mode="after")
    def _chk_unique_aliases(self):
        seen: set[str] = set()
        for f in self.fields:
            if f.alias in seen:
                raise ValueError(f"Duplicate DetailForm field alias: {f.alias}")
            seen.add(f.alias)
        return self


class SlidingScaleProps(BaseQuestionProps):
    options: List[str] = []
    min_label: str = ""
    max_label: str = ""
    initial_value: Optional[float] = None


class ScaleProps(BaseQuestionProps):
    """Props for EmotiveScale and SignalScale."""

    options: List[str] = []


# --- Questions ---

class BaseQuestion(CamelModel):
    """Fields shared by all question types."""

    alias: str
    editable: bool = True

    @property
    def required(self) -> bool:
        return self.props.required  # type: ignore[attr-defined]


class SingleSelectionQuestion(BaseQuestion):
    type: Literal["SingleSelection"] = "SingleSelection"
    props: SelectionProps = Field(default_factory=SelectionProps)


class SingleSelectionWithBooleanConditionalQuestion(BaseQuestion):
    type: Literal["SingleSelectionWithBooleanConditional"] = (
        "SingleSelectionWithBooleanConditional"
    )
    props: SelectionProps = Field(default_factory=SelectionProps)


class MultiSelectionQuestion(BaseQuestion):
    type: Literal["MultiSelection"] = "MultiSelection"
    props: MultiSelectionProps = Field(default_factory=MultiSelectionProps)


class DetailFormQuestion(BaseQuestion):
    type: Literal["DetailForm"] = "DetailForm"
    props: DetailFormProps = Field(default_factory=DetailFormProps)


class SlidingScaleQuestion(BaseQuestion):
    type: Literal["SlidingScale"] = "SlidingScale"
    props: SlidingScaleProps = Field(default_factory=SlidingScaleProps)


class EmotiveScaleQuestion(BaseQuestion):
    type: Literal["EmotiveScale"] = "EmotiveScale"
    props: ScaleProps = Field(default_factory=ScaleProps)


class SignalScaleQuestion(BaseQuestion):
    type: Literal["SignalScale"] = "SignalScale"
    props: ScaleProps = Field(default_factory=ScaleProps)


# --- Discriminated union of all question types ---

Question = Annotated[
    Union[
        SingleSelectionQuestion,
        SingleSelectionWithBooleanConditionalQuestion,
        MultiSelectionQuestion,
        DetailFormQuestion,
        SlidingScaleQuestion,
        EmotiveScaleQuestion,
        SignalScaleQuestion,
    ],
    Field(discriminator="type"),
]
