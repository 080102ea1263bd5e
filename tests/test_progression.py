"""StageProgressionOrchestrator tests.

Workflows in the fixture settings:
    seller: [1, 4, 2, 3]
    buyer:  [1, 7, 6]
kyc_seller satisfies stage 1, tool_questionnaire satisfies stage 4.
"""

import pytest

from test_engine import MockNotifier, MockStageProgressStore

from onboarding_db.models.enums import StageStatus
from onboarding_flows.errors import ConfigurationError, PersistenceError
from onboarding_flows.models.session import UserContext
from onboarding_flows.progression import StageProgressionOrchestrator


@pytest.fixture
def stage_store():
    return MockStageProgressStore()


@pytest.fixture
def notifier():
    return MockNotifier()


@pytest.fixture
def orchestrator(workflow_settings, stage_store, notifier):
    return StageProgressionOrchestrator(workflow_settings, stage_store, notifier=notifier)


@pytest.fixture
def seller():
    return UserContext(user_id="u1", role="seller", email="a@b.co", full_name="Ada")


# =====================================================================
# complete_flow
# =====================================================================


class TestCompleteFlow:

    @pytest.mark.asyncio
    async def test_completes_stage_and_creates_next(self, orchestrator, stage_store, seller):
        """Stage 1 becomes completed and stage 4 is created as not_started."""
        stage_store.seed("u1", 1, StageStatus.IN_PROGRESS)

        result = await orchestrator.complete_flow(seller, "kyc_seller")

        assert stage_store.status_of("u1", 1) is StageStatus.COMPLETED
        assert stage_store.status_of("u1", 4) is StageStatus.NOT_STARTED
        assert result.stage_id == 1
        assert result.next_stage_id == 4
        assert result.created_stage_id == 4

    @pytest.mark.asyncio
    async def test_missing_stage_record_is_inserted_completed(
        self, orchestrator, stage_store, seller,
    ):
        await orchestrator.complete_flow(seller, "kyc_seller")
        assert stage_store.status_of("u1", 1) is StageStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_skip_forward(self, orchestrator, stage_store, seller):
        """When stage 4 was already completed, stage 2 is created instead."""
        stage_store.seed("u1", 1, StageStatus.IN_PROGRESS)
        stage_store.seed("u1", 4, StageStatus.COMPLETED)

        result = await orchestrator.complete_flow(seller, "kyc_seller")

        assert stage_store.status_of("u1", 2) is StageStatus.NOT_STARTED
        assert stage_store.status_of("u1", 4) is StageStatus.COMPLETED
        assert result.next_stage_id == 4
        assert result.created_stage_id == 2

    @pytest.mark.asyncio
    async def test_next_stage_already_started(self, orchestrator, stage_store, seller):
        """An existing, unfinished next stage is left alone."""
        stage_store.seed("u1", 4, StageStatus.IN_PROGRESS)

        result = await orchestrator.complete_flow(seller, "kyc_seller")

        assert stage_store.status_of("u1", 4) is StageStatus.IN_PROGRESS
        assert result.created_stage_id is None
        assert ("u1", 2) not in stage_store.records

    @pytest.mark.asyncio
    async def test_idempotent(self, orchestrator, stage_store, seller):
        """Completing twice leaves exactly one record per stage."""
        await orchestrator.complete_flow(seller, "kyc_seller")
        second = await orchestrator.complete_flow(seller, "kyc_seller")

        assert sorted(sid for _, sid in stage_store.records) == [1, 4]
        assert second.created_stage_id is None

    @pytest.mark.asyncio
    async def test_last_stage_has_no_next(self, workflow_settings, stage_store):
        workflow_settings.flow_stages["kyc_seller"].stage_id = 3
        orchestrator = StageProgressionOrchestrator(workflow_settings, stage_store)
        user = UserContext(user_id="u1", role="seller")

        result = await orchestrator.complete_flow(user, "kyc_seller")

        assert result.next_stage_id is None
        assert list(stage_store.records) == [("u1", 3)]

    @pytest.mark.asyncio
    async def test_stage_outside_role_workflow(self, orchestrator, stage_store):
        """Stage 4 is not in the buyer workflow: completed, but nothing follows."""
        buyer = UserContext(user_id="u2", role="buyer")
        result = await orchestrator.complete_flow(buyer, "tool_questionnaire")
        assert stage_store.status_of("u2", 4) is StageStatus.COMPLETED
        assert result.next_stage_id is None

    @pytest.mark.asyncio
    async def test_editing_writes_nothing(self, orchestrator, stage_store, notifier, seller):
        result = await orchestrator.complete_flow(seller, "kyc_seller", editing=True, notify=True)
        assert result.skipped is True
        assert result.stage_id is None
        assert stage_store.records == {}
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_unmapped_flow(self, orchestrator, stage_store, seller):
        with pytest.raises(ConfigurationError, match="No stage mapping found for flow"):
            await orchestrator.complete_flow(seller, "unknown_flow")
        assert stage_store.records == {}

    @pytest.mark.asyncio
    async def test_role_without_workflow(self, orchestrator, stage_store):
        user = UserContext(user_id="u3", role="partner")
        with pytest.raises(ConfigurationError, match="No workflow configured for role"):
            await orchestrator.complete_flow(user, "kyc_seller")
        assert stage_store.records == {}

    @pytest.mark.asyncio
    async def test_persistence_error_propagates(self, orchestrator, stage_store, seller):
        stage_store.fail = True
        with pytest.raises(PersistenceError):
            await orchestrator.complete_flow(seller, "kyc_seller")


# =====================================================================
# Notifications
# =====================================================================


class TestNotify:

    @pytest.mark.asyncio
    async def test_sends_when_requested(self, orchestrator, notifier, seller):
        result = await orchestrator.complete_flow(seller, "kyc_seller", notify=True)
        assert notifier.sent == [(1, "a@b.co", "Ada")]
        assert result.notified is True

    @pytest.mark.asyncio
    async def test_not_requested(self, orchestrator, notifier, seller):
        await orchestrator.complete_flow(seller, "kyc_seller")
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_no_email(self, orchestrator, notifier):
        user = UserContext(user_id="u1", role="seller")
        result = await orchestrator.complete_flow(user, "kyc_seller", notify=True)
        assert notifier.sent == []
        assert result.notified is False

    @pytest.mark.asyncio
    async def test_notifier_error_is_swallowed(self, workflow_settings, stage_store, seller):
        """A raising notifier never fails the completion."""
        orchestrator = StageProgressionOrchestrator(
            workflow_settings, stage_store, notifier=MockNotifier(error=RuntimeError("smtp down")),
        )
        result = await orchestrator.complete_flow(seller, "kyc_seller", notify=True)
        assert result.notified is False
        assert result.created_stage_id == 4, "Next stage is still created"

    @pytest.mark.asyncio
    async def test_notifier_false(self, workflow_settings, stage_store, seller):
        orchestrator = StageProgressionOrchestrator(
            workflow_settings, stage_store, notifier=MockNotifier(result=False),
        )
        result = await orchestrator.complete_flow(seller, "kyc_seller", notify=True)
        assert result.notified is False

    @pytest.mark.asyncio
    async def test_no_notifier_configured(self, workflow_settings, stage_store, seller):
        orchestrator = StageProgressionOrchestrator(workflow_settings, stage_store)
        result = await orchestrator.complete_flow(seller, "kyc_seller", notify=True)
        assert result.notified is False


# =====================================================================
# Generic advancement
# =====================================================================


class TestMoveToNextStage:

    @pytest.mark.asyncio
    async def test_seeds_first_stage(self, orchestrator, stage_store):
        result = await orchestrator.move_to_next_stage("u1", "seller")
        assert stage_store.status_of("u1", 1) is StageStatus.NOT_STARTED
        assert result.created_stage_id == 1
        assert result.stage_id is None

    @pytest.mark.asyncio
    async def test_advances_from_latest_record(self, orchestrator, stage_store):
        stage_store.seed("u1", 1, StageStatus.COMPLETED)
        stage_store.seed("u1", 4, StageStatus.IN_PROGRESS)

        result = await orchestrator.move_to_next_stage("u1", "seller")

        assert result.stage_id == 4
        assert stage_store.status_of("u1", 4) is StageStatus.COMPLETED
        assert stage_store.status_of("u1", 2) is StageStatus.NOT_STARTED

    @pytest.mark.asyncio
    async def test_agrees_with_complete_flow(self, orchestrator, stage_store, seller):
        """Both paths together still leave one record per stage."""
        stage_store.seed("u1", 1, StageStatus.IN_PROGRESS)
        await orchestrator.complete_flow(seller, "kyc_seller")
        await orchestrator.progress_from_stage("u1", "seller", 1)
        assert sorted(sid for _, sid in stage_store.records) == [1, 4]
        assert [sid for _, sid, _ in stage_store.inserts] == [4]

    @pytest.mark.asyncio
    async def test_unknown_role(self, orchestrator):
        with pytest.raises(ConfigurationError):
            await orchestrator.move_to_next_stage("u1", "partner")


# =====================================================================
# Lookups and in-progress marking
# =====================================================================


class TestLookups:

    def test_remaining_stages(self, orchestrator):
        assert orchestrator.remaining_stages("seller", 4) == [2, 3]
        assert orchestrator.remaining_stages("seller", 3) == []

    def test_remaining_stages_unknown_current(self, orchestrator):
        assert orchestrator.remaining_stages("seller", 42) == [1, 4, 2, 3]

    def test_stage_name(self, orchestrator):
        assert orchestrator.stage_name(1) == "Get to know you"
        assert orchestrator.stage_name(2) is None


class TestMarkInProgress:

    @pytest.mark.asyncio
    async def test_promotes_not_started(self, orchestrator, stage_store):
        stage_store.seed("u1", 1)
        assert await orchestrator.mark_in_progress("u1", "kyc_seller") is True
        assert stage_store.status_of("u1", 1) is StageStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_completed_is_not_demoted(self, orchestrator, stage_store):
        stage_store.seed("u1", 1, StageStatus.COMPLETED)
        assert await orchestrator.mark_in_progress("u1", "kyc_seller") is False
        assert stage_store.status_of("u1", 1) is StageStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_no_record_or_mapping(self, orchestrator, stage_store):
        assert await orchestrator.mark_in_progress("u1", "kyc_seller") is False
        assert await orchestrator.mark_in_progress("u1", "unknown_flow") is False
        assert stage_store.records == {}
