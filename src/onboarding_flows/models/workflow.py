"""Workflow models — roles, stages and the records the engine reads back.

A *workflow* is the ordered list of stage ids a role goes through
(e.g. ``seller: [1, 4, 2, 3]``).  Each flow satisfies one stage; the
mapping lives in ``flow_stages``.  Both are loaded from YAML (see
:func:`onboarding_flows.constants.load_workflow_settings`).
"""

import enum
from typing import Optional

from pydantic import BaseModel, Field

from onboarding_db.models.enums import StageStatus, SubmissionStatus


class FlowStage(BaseModel):
    """The workflow stage a flow satisfies and, optionally, the flow that follows it.

    ``next_flow`` is only used by callers choosing which flow to open next;
    the engine itself never follows it.
    """

    stage_id: int
    next_flow: Optional[str] = None


class WorkflowSettings(BaseModel):
    """Per-role stage order plus the flow → stage mapping."""

    workflows: dict[str, list[int]] = Field(default_factory=dict)
    flow_stages: dict[str, FlowStage] = Field(default_factory=dict)
    stage_names: dict[int, str] = Field(default_factory=dict)


class InsertOutcome(str, enum.Enum):
    """Result of an idempotent insert: a duplicate is not an error."""

    INSERTED = "inserted"
    DUPLICATE = "duplicate"


class StageRecord(BaseModel):
    """A user's progress through one stage, as returned by the stage store."""

    user_id: str
    stage_id: int
    status: StageStatus


class SubmissionRecord(BaseModel):
    """A user's stored answer map, as returned by the submission store."""

    user_id: str
    role: Optional[str] = None
    data: dict = Field(default_factory=dict)
    status: Optional[SubmissionStatus] = None


class CompletionResult(BaseModel):
    """What ``complete_flow`` did.

    ``stage_id`` is None when nothing was written (editing mode).
    ``created_stage_id`` is the stage record actually inserted, which is the
    stage after ``next_stage_id`` when the latter was already completed.
    """

    stage_id: Optional[int] = None
    next_stage_id: Optional[int] = None
    created_stage_id: Optional[int] = None
    notified: bool = False
    skipped: bool = False
