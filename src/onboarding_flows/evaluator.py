"""VisibilityEvaluator — decides whether a section or step is shown.

Sections and steps share one rule shape (:class:`ConditionalDisplay`) and one
evaluation function.  A rule names an earlier question by alias, an expected
value and an operator:

  - **equals / notEquals**: case- and whitespace-insensitive when both sides
    are strings, strict (same type, same value) otherwise
  - **includes / notIncludes**: membership in a list answer (multi-select);
    string elements are compared case-insensitively

An unanswered question (missing or ``None``) makes every operator evaluate
to False except ``notEquals``.  That includes ``notIncludes``: a rule
"show unless X was picked" stays hidden until the question is answered.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Sequence, TypeVar

from onboarding_flows.models.flow import ConditionalDisplay, HasConditionalDisplay

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=HasConditionalDisplay)


def _normalize(value: str) -> str:
    return value.strip().lower()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def strict_equals(a: Any, b: Any) -> bool:
    """Equality without cross-type coercion.

    Ints and floats count as one numeric type; booleans never equal numbers.
    """
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


class VisibilityEvaluator:
    """Evaluates display rules against the live answer map."""

    def evaluate(
        self, rule: ConditionalDisplay | None, answers: dict[str, Any]
    ) -> bool:
        """Return True if the owner of *rule* should be displayed.

        Args:
            rule: the owner's display rule; ``None`` means always visible
            answers: the current answer map keyed by question alias
        """
        if rule is None:
            return True

        operator = rule.operator
        expected = rule.expected_value
        actual = answers.get(rule.question_alias)

        # String vs string: only equals/notEquals are decided here,
        # includes/notIncludes fall through to the operator dispatch below
        if isinstance(expected, str) and isinstance(actual, str):
            if operator == "equals":
                return _normalize(actual) == _normalize(expected)
            if operator == "notEquals":
                return _normalize(actual) != _normalize(expected)

        if actual is None:
            return operator == "notEquals"

        if operator == "equals":
            return strict_equals(actual, expected)

        if operator == "notEquals":
            return not strict_equals(actual, expected)

        if operator == "includes":
            if isinstance(actual, list):
                return self._contains(actual, expected)
            return False

        if operator == "notIncludes":
            if isinstance(actual, list):
                return not self._contains(actual, expected)
            return True

        logger.warning("Unknown conditional operator: %s", operator)
        return True

    def is_visible(self, owner: HasConditionalDisplay, answers: dict[str, Any]) -> bool:
        """Evaluate the rule carried by a section or step."""
        return self.evaluate(owner.conditional_display, answers)

    def visible(
        self, owners: Sequence[T], answers: dict[str, Any]
    ) -> list[tuple[int, T]]:
        """Filter *owners* to the visible ones, keeping their original indices."""
        return [
            (i, owner) for i, owner in enumerate(owners)
            if self.is_visible(owner, answers)
        ]

    @staticmethod
    def _contains(items: Iterable[Any], expected: Any) -> bool:
        if isinstance(expected, str):
            target = _normalize(expected)
            return any(
                isinstance(item, str) and _normalize(item) == target
                for item in items
            )
        return any(strict_equals(item, expected) for item in items)
