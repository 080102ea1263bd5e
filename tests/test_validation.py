"""Validation tests — per question type, DetailForm formats, step and section.

Error strings are user-facing and asserted verbatim.
"""

import pytest

from onboarding_flows.models.flow import Step
from onboarding_flows.models.question import (
    DetailFormQuestion,
    EmotiveScaleQuestion,
    MultiSelectionQuestion,
    SignalScaleQuestion,
    SingleSelectionQuestion,
    SingleSelectionWithBooleanConditionalQuestion,
    SlidingScaleQuestion,
)
from onboarding_flows.validation import (
    is_empty,
    validate_question_value,
    validate_section,
    validate_step,
)

# --- Helpers to reduce boilerplate ---


def _single(alias="q", required=True):
    return SingleSelectionQuestion(alias=alias, props={"options": ["a", "b"], "required": required})


def _multi(alias="q", required=True, min_sel=None, max_sel=None):
    return MultiSelectionQuestion(
        alias=alias,
        props={
            "options": ["a", "b", "c", "d", "e"],
            "required": required,
            "minSelections": min_sel,
            "maxSelections": max_sel,
        },
    )


def _form(fields, required=True, alias="contact"):
    return DetailFormQuestion(alias=alias, props={"required": required, "fields": fields})


def _field(alias, ftype="text", label=None, required=False):
    return {
        "id": alias,
        "alias": alias,
        "type": ftype,
        "label": label if label is not None else alias.title(),
        "required": required,
    }


# =====================================================================
# Documented scenarios
# =====================================================================


class TestScenarios:

    def test_multi_selection_below_minimum(self):
        """min 2 / max 4 with one selection fails with the minimum message."""
        q = _multi(min_sel=2, max_sel=4)
        result = validate_question_value(q, ["a"])
        assert result.is_valid is False
        assert result.error == "Please select at least 2 options"

    def test_detail_form_invalid_email(self):
        """The error names the field by its label."""
        q = _form([_field("email", "email", label="Work Email")])
        result = validate_question_value(q, {"email": "not-an-email"})
        assert result.is_valid is False
        assert result.error == "Please enter a valid email address for Work Email"


# =====================================================================
# Non-required questions
# =====================================================================


class TestOptionalQuestions:
    """A non-required question with an empty value is always valid."""

    @pytest.mark.parametrize("question", [
        _single(required=False),
        SingleSelectionWithBooleanConditionalQuestion(alias="q", props={"required": False}),
        _multi(required=False, min_sel=2, max_sel=3),
        _form([_field("email", "email", required=True)], required=False),
        SlidingScaleQuestion(alias="q", props={"required": False}),
        EmotiveScaleQuestion(alias="q", props={"required": False}),
        SignalScaleQuestion(alias="q", props={"required": False}),
    ])
    @pytest.mark.parametrize("value", [None, "", [], {}])
    def test_empty_is_valid(self, question, value):
        result = validate_question_value(question, value)
        assert result.is_valid is True, f"{question.type} with {value!r}: {result.error}"

    def test_required_defaults_to_true(self):
        """Only an explicit required: false makes a question optional."""
        q = SingleSelectionQuestion.model_validate({"alias": "q", "props": {}})
        assert q.required is True
        assert validate_question_value(q, None).error == "Please select an option."

    def test_is_empty(self):
        assert is_empty(None) and is_empty("") and is_empty([]) and is_empty({})
        assert not is_empty(0)
        assert not is_empty(False)


# =====================================================================
# Selection questions
# =====================================================================


class TestSelection:

    @pytest.mark.parametrize("value", [None, "", 3, ["a"]])
    def test_single_requires_non_empty_string(self, value):
        result = validate_question_value(_single(), value)
        assert result.is_valid is False
        assert result.error == "Please select an option."

    def test_single_valid(self):
        assert validate_question_value(_single(), "a").is_valid is True

    def test_boolean_conditional_same_rule(self):
        q = SingleSelectionWithBooleanConditionalQuestion(alias="q", props={"options": ["Yes", "No"]})
        assert validate_question_value(q, "").error == "Please select an option."
        assert validate_question_value(q, "No").is_valid is True

    def test_multi_required_empty(self):
        result = validate_question_value(_multi(), [])
        assert result.error == "Please select at least one option"

    def test_multi_above_maximum(self):
        result = validate_question_value(_multi(min_sel=1, max_sel=2), ["a", "b", "c"])
        assert result.error == "Please select no more than 2 options"

    def test_multi_bounds_apply_when_optional(self):
        """Bounds are checked for a non-empty answer even if not required."""
        q = _multi(required=False, min_sel=2)
        assert validate_question_value(q, ["a"]).error == "Please select at least 2 options"
        assert validate_question_value(q, ["a", "b"]).is_valid is True

    def test_multi_bounds_validated_on_model(self):
        """minSelections > maxSelections is rejected when the model is built."""
        with pytest.raises(ValueError):
            _multi(min_sel=3, max_sel=2)


# =====================================================================
# Scales
# =====================================================================


class TestScales:

    @pytest.mark.parametrize("cls", [EmotiveScaleQuestion, SignalScaleQuestion])
    def test_icon_scales(self, cls):
        q = cls(alias="q")
        assert validate_question_value(q, None).error == "Please select an option"
        assert validate_question_value(q, 0).is_valid is True, "Zero is a valid answer"

    def test_sliding_scale(self):
        q = SlidingScaleQuestion(alias="q")
        assert validate_question_value(q, None).error == "Please select a value"
        assert validate_question_value(q, 0).is_valid is True


# =====================================================================
# DetailForm
# =====================================================================


class TestDetailForm:

    @pytest.mark.parametrize("value", [None, "", ["name"]])
    def test_required_form_missing(self, value):
        """A required form needs a mapping answer."""
        q = _form([_field("name", required=True)])
        assert validate_question_value(q, value).error == "Please fill in the required fields."

    def test_empty_mapping_checks_fields(self):
        """An empty mapping goes on to the per-field checks."""
        q = _form([_field("name", label="Name", required=True)])
        assert validate_question_value(q, {}).error == "Name is required"

    def test_required_form_with_optional_fields_accepts_empty(self):
        """A required form whose fields are all optional can be left empty."""
        q = _form([_field("notes"), _field("site", "url")])
        result = validate_question_value(q, {})
        assert result.is_valid is True, result.error

    def test_required_field_missing(self):
        q = _form([_field("name", label="Full Name", required=True), _field("city")])
        result = validate_question_value(q, {"city": "Oslo", "name": ""})
        assert result.error == "Full Name is required"

    def test_label_falls_back_to_alias(self):
        q = _form([_field("vat_id", label="", required=True)])
        assert validate_question_value(q, {"x": 1}).error == "vat_id is required"

    def test_required_checked_before_format(self):
        """A missing required field is reported before a bad format earlier in the form."""
        q = _form([
            _field("email", "email", label="Email"),
            _field("name", label="Name", required=True),
        ])
        result = validate_question_value(q, {"email": "bad"})
        assert result.error == "Name is required"

    @pytest.mark.parametrize("value", ["a@b.co", "first.last+tag@sub.example.org"])
    def test_valid_email(self, value):
        q = _form([_field("email", "email")])
        assert validate_question_value(q, {"email": value}).is_valid is True

    @pytest.mark.parametrize("value", ["plain", "a@b", "a b@c.de", "@c.de"])
    def test_invalid_email(self, value):
        q = _form([_field("email", "email", label="Email")])
        assert validate_question_value(q, {"email": value}).error == (
            "Please enter a valid email address for Email"
        )

    @pytest.mark.parametrize("value", [
        "example.com", "https://example.com", "http://sub.Example.CO/path?x=1", "my-site.io/",
    ])
    def test_valid_url(self, value):
        q = _form([_field("site", "url")])
        assert validate_question_value(q, {"site": value}).is_valid is True

    @pytest.mark.parametrize("value", ["example", "ftp://example.com", "https://exa mple.com"])
    def test_invalid_url(self, value):
        q = _form([_field("site", "url", label="Website")])
        assert validate_question_value(q, {"site": value}).error == (
            "Please enter a valid website URL for Website"
        )

    @pytest.mark.parametrize("value", ["+1 5551234", "+44 2071234567", "+358 401234567x12"])
    def test_valid_phone(self, value):
        q = _form([_field("phone", "phone")])
        assert validate_question_value(q, {"phone": value}).is_valid is True

    @pytest.mark.parametrize("value", ["5551234", "+1 555", "+12345 5551234", "+1-5551234"])
    def test_invalid_phone(self, value):
        q = _form([_field("phone", "phone", label="Phone")])
        assert validate_question_value(q, {"phone": value}).error == (
            "Please enter a valid phone number for Phone"
        )

    def test_optional_field_format_still_checked(self):
        """Any present value is format-checked, required or not."""
        q = _form([_field("name", required=True), _field("site", "url", label="Website")])
        result = validate_question_value(q, {"name": "Acme", "site": "nope"})
        assert result.error == "Please enter a valid website URL for Website"

    def test_duplicate_field_alias_rejected(self):
        with pytest.raises(ValueError):
            _form([_field("a"), _field("a")])


# =====================================================================
# Step and section
# =====================================================================


class TestStepAndSection:

    def test_step_first_failure_wins(self):
        questions = [_single("a"), _multi("b")]
        result = validate_step(questions, {})
        assert result.error == "Please select an option."

    def test_step_valid(self):
        questions = [_single("a"), _multi("b")]
        assert validate_step(questions, {"a": "a", "b": ["c"]}).is_valid is True

    def test_section_reports_step_index(self):
        steps = [
            Step(id=1, questions=[_single("a")]),
            Step(id=2, questions=[_multi("b", min_sel=2)]),
        ]
        result = validate_section(steps, {"a": "a", "b": ["c"]})
        assert result.is_valid is False
        assert result.step_index == 1
        assert result.error == "Please select at least 2 options"

    def test_section_valid(self):
        steps = [Step(id=1, questions=[_single("a")])]
        result = validate_section(steps, {"a": "b"})
        assert result.is_valid is True
        assert result.step_index is None
