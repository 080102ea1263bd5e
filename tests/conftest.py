import pytest

from helpers.loader import load_flow_sections

from onboarding_flows.models.flow import FlowDefinition
from onboarding_flows.models.workflow import FlowStage, WorkflowSettings
from onboarding_flows.definitions import sort_sections


@pytest.fixture
def flow_sections():
    """Raw camelCase sections of the test flow, unsorted as stored."""
    return load_flow_sections()


@pytest.fixture
def flow(flow_sections):
    """The test flow as a sorted FlowDefinition."""
    return FlowDefinition(flow_name="kyc_seller", sections=sort_sections(flow_sections))


@pytest.fixture
def workflow_settings():
    return WorkflowSettings(
        workflows={"seller": [1, 4, 2, 3], "buyer": [1, 7, 6]},
        flow_stages={
            "kyc_seller": FlowStage(stage_id=1, next_flow="tool_questionnaire"),
            "tool_questionnaire": FlowStage(stage_id=4),
            "orphan_flow": FlowStage(stage_id=99),
        },
        stage_names={1: "Get to know you", 4: "Solution evaluation"},
    )
