"""FlowDefinitionStore — typed, ordered flow definitions.

Wraps a :class:`DefinitionSource` (raw camelCase section dicts) and turns a
flow into a validated :class:`FlowDefinition`:

    store = FlowDefinitionStore(SqlDefinitionSource(factory))
    flow = await store.load("kyc_seller")

Sections are sorted ascending by ``order`` (missing counts as 0) once at
load time; the sort is stable so equal orders keep their stored sequence.

Also hosts the pure section-delta merge used by the storage adapters and
the packaged YAML flow templates (``templates/*.yaml``).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from onboarding_flows.constants import TEMPLATE_DIR
from onboarding_flows.interfaces import DefinitionSource
from onboarding_flows.models.flow import ConditionalDisplay, FlowDefinition

logger = logging.getLogger(__name__)

_DELETE_KEY = "_delete"


# ---------------------------------------------------------------------------
# Section delta merge
# ---------------------------------------------------------------------------

def merge_section_deltas(
    current: list[dict[str, Any]], deltas: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """Apply partial section updates to the stored section list.

    Each delta is a partial section dict keyed by ``id``:

      - ``{"id": 3, "_delete": True}`` removes section 3
      - a delta whose id exists is merged over the stored section; an
        explicit ``"conditionalDisplay": None`` removes the rule
      - a delta with a new id is appended as a new section

    The input lists are not modified.
    """
    deleted = {d.get("id") for d in deltas if d.get(_DELETE_KEY)}
    updates = {d.get("id"): d for d in deltas if not d.get(_DELETE_KEY)}
    existing_ids = {s.get("id") for s in current}

    merged: list[dict[str, Any]] = []
    for section in current:
        if section.get("id") in deleted:
            continue
        delta = updates.get(section.get("id"))
        if delta is None:
            merged.append(dict(section))
            continue
        updated = {**section, **_strip_delete(delta)}
        if "conditionalDisplay" in delta and delta["conditionalDisplay"] is None:
            updated.pop("conditionalDisplay", None)
        merged.append(updated)

    for delta in deltas:
        if delta.get(_DELETE_KEY) or delta.get("id") in existing_ids:
            continue
        new_section = _strip_delete(delta)
        if new_section.get("conditionalDisplay", ...) is None:
            new_section.pop("conditionalDisplay")
        merged.append(new_section)

    return merged


def _strip_delete(delta: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in delta.items() if k != _DELETE_KEY}


def sort_sections(sections: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Stable ascending sort on ``order``; a missing order counts as 0."""
    return sorted(sections, key=lambda s: s.get("order") or 0)


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def list_templates(template_dir: str | Path | None = None) -> list[str]:
    """Names of the available flow templates (YAML file stems)."""
    base = Path(template_dir) if template_dir is not None else TEMPLATE_DIR
    return sorted(p.stem for p in base.glob("*.yaml"))


def load_template(name: str, template_dir: str | Path | None = None) -> dict[str, Any]:
    """Load a flow template: ``{name, description, sections}``.

    Raises ``ValueError`` if no template has this name.
    """
    base = Path(template_dir) if template_dir is not None else TEMPLATE_DIR
    path = base / f"{name}.yaml"
    if not path.exists():
        raise ValueError(f"Template not found: {name}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    data.setdefault("name", name)
    data.setdefault("sections", [])
    return data


# ---------------------------------------------------------------------------
# FlowDefinitionStore
# ---------------------------------------------------------------------------

class FlowDefinitionStore:
    """Typed access to flow definitions.

    Args:
        source: the definition collaborator
        template_dir: directory of YAML flow templates (defaults to the
            packaged ``templates/``)
    """

    def __init__(
        self,
        source: DefinitionSource,
        template_dir: str | Path | None = None,
    ) -> None:
        self._source = source
        self._template_dir = template_dir

    async def load(self, flow_name: str) -> FlowDefinition:
        """Fetch, sort and validate a flow.

        Raises:
            ValueError: if the flow does not exist, or the definition is
                invalid (pydantic's ``ValidationError`` is a ``ValueError``)
        """
        raw = await self._source.fetch_sections(flow_name)
        flow = FlowDefinition(flow_name=flow_name, sections=sort_sections(raw))
        self._check_rule_references(flow)
        logger.info(
            "Loaded flow %s: %d sections, %d steps",
            flow_name, len(flow.sections), flow.total_steps,
        )
        return flow

    async def raw_sections(self, flow_name: str) -> list[dict[str, Any]]:
        """The stored sections, sorted, without model validation."""
        return sort_sections(await self._source.fetch_sections(flow_name))

    async def update_sections(
        self, flow_name: str, deltas: list[dict[str, Any]]
    ) -> FlowDefinition:
        """Validate the merged result, then write the deltas.

        The merged flow must still parse (e.g. unique aliases); otherwise
        nothing is written and the validation error propagates.
        """
        current = await self._source.fetch_sections(flow_name)
        merged = merge_section_deltas(current, deltas)
        flow = FlowDefinition(flow_name=flow_name, sections=sort_sections(merged))
        self._check_rule_references(flow)
        await self._source.update_sections(flow_name, deltas)
        return flow

    async def list_flows(self) -> list[str]:
        return await self._source.list_flows()

    async def create_flow(self, flow_name: str, template: str | None = None) -> None:
        """Create an empty flow, or one seeded from a packaged template."""
        sections = None
        if template is not None:
            sections = load_template(template, self._template_dir)["sections"]
            FlowDefinition(flow_name=flow_name, sections=sections)
        await self._source.create_flow(flow_name, sections)
        logger.info("Created flow %s (template=%s)", flow_name, template)

    async def delete_flow(self, flow_name: str) -> None:
        await self._source.delete_flow(flow_name)
        logger.info("Deleted flow %s", flow_name)

    def list_templates(self) -> list[str]:
        return list_templates(self._template_dir)

    # ------------------------------------------------------------------
    # Rule reference checks
    # ------------------------------------------------------------------

    @staticmethod
    def _check_rule_references(flow: FlowDefinition) -> list[str]:
        """Warn about display rules that do not point at an earlier question.

        Returns the warning messages (also logged).  Not fatal: such rules
        still evaluate, but against answers the user may not have given yet.
        """
        problems: list[str] = []

        def check(rule: ConditionalDisplay | None, where: str, before) -> None:
            if rule is None:
                return
            pos = flow.question_position(rule.question_alias)
            if pos is None:
                problems.append(f"{where}: unknown question '{rule.question_alias}'")
            elif not before(pos):
                problems.append(
                    f"{where}: '{rule.question_alias}' is not in an earlier step"
                )

        for si, section in enumerate(flow.sections):
            check(
                section.conditional_display,
                f"section {section.id}",
                lambda pos, si=si: pos[0] < si,
            )
            for ti, step in enumerate(section.steps):
                check(
                    step.conditional_display,
                    f"section {section.id} step {step.id}",
                    lambda pos, si=si, ti=ti: pos[0] < si or (pos[0] == si and pos[1] < ti),
                )

        for msg in problems:
            logger.warning("Flow %s: %s", flow.flow_name, msg)
        return problems
