"""Answer validation at question, step and section granularity.

All checks return a :class:`ValidationResult`; nothing here raises for bad
user input.  The error strings are shown to users verbatim.

Rules per question type:

  - SingleSelection(+WithBooleanConditional): required → non-empty string
  - MultiSelection: required → non-empty list; min/max selection bounds are
    checked whenever they are set
  - EmotiveScale / SignalScale / SlidingScale: required → any non-null value
    (0 is a valid answer)
  - DetailForm: required → a mapping, which may be empty; required fields
    present; every present email/url/phone field must match its format

A question that is not required and has no answer is always valid.
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

from onboarding_flows.models.flow import Step
from onboarding_flows.models.question import (
    DetailFormField,
    DetailFormQuestion,
    EmotiveScaleQuestion,
    MultiSelectionQuestion,
    Question,
    SignalScaleQuestion,
    SingleSelectionQuestion,
    SingleSelectionWithBooleanConditionalQuestion,
    SlidingScaleQuestion,
)
from onboarding_flows.models.session import ValidationResult

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
URL_PATTERN = re.compile(r"(https?://)?([a-z0-9-]+\.)+[a-z]{2,6}(/[^\s]*)?", re.IGNORECASE)
# +<country code> <subscriber number>[x<extension>]
PHONE_PATTERN = re.compile(r"\+\d{1,3}\s\d{4,14}(?:x.+)?")

# field type -> (pattern, error template)
_FORMAT_RULES: dict[str, tuple[re.Pattern[str], str]] = {
    "email": (EMAIL_PATTERN, "Please enter a valid email address for {}"),
    "url": (URL_PATTERN, "Please enter a valid website URL for {}"),
    "phone": (PHONE_PATTERN, "Please enter a valid phone number for {}"),
}


def is_empty(value: Any) -> bool:
    """True for None, "" and empty lists/dicts."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)) and len(value) == 0:
        return True
    return False


def validate_question_value(question: Question, value: Any) -> ValidationResult:
    """Validate one answer against its question definition."""
    required = question.props.required

    if not required and is_empty(value):
        return ValidationResult.ok()

    if isinstance(
        question,
        (SingleSelectionQuestion, SingleSelectionWithBooleanConditionalQuestion),
    ):
        if required and not (isinstance(value, str) and value != ""):
            return ValidationResult.fail("Please select an option.")

    elif isinstance(question, MultiSelectionQuestion):
        return _validate_multi_selection(question, value)

    elif isinstance(question, (EmotiveScaleQuestion, SignalScaleQuestion)):
        if required and value is None:
            return ValidationResult.fail("Please select an option")

    elif isinstance(question, SlidingScaleQuestion):
        if required and value is None:
            return ValidationResult.fail("Please select a value")

    elif isinstance(question, DetailFormQuestion):
        return _validate_detail_form(question, value)

    return ValidationResult.ok()


def _validate_multi_selection(
    question: MultiSelectionQuestion, value: Any
) -> ValidationResult:
    props = question.props
    selected = value if isinstance(value, (list, tuple)) else []

    if props.required and len(selected) == 0:
        return ValidationResult.fail("Please select at least one option")
    if props.min_selections and len(selected) < props.min_selections:
        return ValidationResult.fail(
            f"Please select at least {props.min_selections} options"
        )
    if props.max_selections and len(selected) > props.max_selections:
        return ValidationResult.fail(
            f"Please select no more than {props.max_selections} options"
        )
    return ValidationResult.ok()


def _validate_detail_form(question: DetailFormQuestion, value: Any) -> ValidationResult:
    # An empty mapping still goes through the per-field checks
    if not isinstance(value, Mapping):
        return ValidationResult.fail("Please fill in the required fields.")

    fields = question.props.fields

    # Required fields first, then formats, so a missing field is reported
    # before a malformed one further up the form
    for f in fields:
        if f.required and is_empty(value.get(f.alias)):
            return ValidationResult.fail(f"{f.display_name} is required")

    for f in fields:
        error = _check_field_format(f, value.get(f.alias))
        if error is not None:
            return ValidationResult.fail(error)

    return ValidationResult.ok()


def _check_field_format(field: DetailFormField, raw: Any) -> str | None:
    """Return an error message if a present value has the wrong format."""
    if is_empty(raw):
        return None
    rule = _FORMAT_RULES.get(field.type)
    if rule is None:
        return None
    pattern, template = rule
    if pattern.fullmatch(str(raw)) is None:
        return template.format(field.display_name)
    return None


def validate_step(
    questions: Sequence[Question], answers: Mapping[str, Any]
) -> ValidationResult:
    """Validate every question of a step; the first failure wins."""
    for question in questions:
        result = validate_question_value(question, answers.get(question.alias))
        if not result.is_valid:
            return result
    return ValidationResult.ok()


def validate_section(
    steps: Sequence[Step], answers: Mapping[str, Any]
) -> ValidationResult:
    """Validate steps in order; a failure carries the failing step's index."""
    for index, step in enumerate(steps):
        result = validate_step(step.questions, answers)
        if not result.is_valid:
            return ValidationResult.fail(result.error or "", step_index=index)
    return ValidationResult.ok()
