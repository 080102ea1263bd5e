"""Onboarding constants shared across the SDK.

Workflow order, the flow → stage mapping and stage display names come from a
YAML file so deployments can change them without code changes.  The packaged
default lives next to this module (``workflows.yaml``); point
``ONBOARDING_WORKFLOWS_FILE`` at another file to override it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from onboarding_flows.models.workflow import WorkflowSettings

# Role assumed when the user has no stored role yet.
DEFAULT_ROLE = os.getenv("DEFAULT_ROLE", "seller")

DEFAULT_WORKFLOWS_FILE = Path(__file__).parent / "workflows.yaml"

# Directory holding the YAML flow templates used by ``create_flow``.
TEMPLATE_DIR = Path(__file__).parent / "templates"


def load_workflow_settings(path: str | Path | None = None) -> WorkflowSettings:
    """Parse the workflow YAML into :class:`WorkflowSettings`.

    Expected shape::

        workflows:
          seller: [1, 4, 2, 3]
        flow_stages:
          kyc_seller: {stage_id: 1, next_flow: tool_questionnaire}
        stage_names:
          1: Get to know you

    Raises ``FileNotFoundError`` if the file does not exist.
    """
    from onboarding_flows.models.workflow import WorkflowSettings

    if path is None:
        path = os.getenv("ONBOARDING_WORKFLOWS_FILE") or DEFAULT_WORKFLOWS_FILE
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing workflow file: {path}")
    with path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    return WorkflowSettings(**raw)
