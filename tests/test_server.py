"""HTTP layer tests — FastAPI TestClient over in-memory collaborators.

The lifespan handler is not run (the client is not used as a context
manager); the engine and session registry are put on ``app.state`` by the
fixtures instead, so no database is needed.
"""

import pytest
from fastapi.testclient import TestClient

from test_engine import (
    VALID_COMPANY,
    MockDefinitionSource,
    MockNotifier,
    MockStageProgressStore,
    MockSubmissionStore,
)

from onboarding_db.models.enums import StageStatus, SubmissionStatus
from onboarding_flows.definitions import FlowDefinitionStore
from onboarding_flows.engine import OnboardingEngine
from onboarding_flows.models.workflow import SubmissionRecord
from onboarding_flows.progression import StageProgressionOrchestrator
from onboarding_server.app import create_app
from onboarding_server.config import ServerSettings
from onboarding_server.sessions import SessionRegistry

ADMIN_KEY = "admin-secret"
USER = {"X-User-ID": "u1", "X-User-Email": "founder@acme.io", "X-User-Name": "Ada"}
ADMIN = {"X-Admin-Key": ADMIN_KEY}
API = "/api/v1"


@pytest.fixture
def backends(flow_sections, workflow_settings):
    """The mock collaborators, exposed so tests can inspect writes."""
    source = MockDefinitionSource({"kyc_seller": flow_sections})
    submissions = MockSubmissionStore()
    stages = MockStageProgressStore()
    notifier = MockNotifier()
    progression = StageProgressionOrchestrator(workflow_settings, stages, notifier=notifier)
    engine = OnboardingEngine(FlowDefinitionStore(source), submissions, progression)
    return {
        "source": source,
        "submissions": submissions,
        "stages": stages,
        "notifier": notifier,
        "engine": engine,
    }


def _client(backends, **settings):
    app = create_app(ServerSettings(**settings))
    app.state.engine = backends["engine"]
    app.state.registry = SessionRegistry()
    return TestClient(app)


@pytest.fixture
def client(backends):
    return _client(backends, admin_api_key=ADMIN_KEY)


def _open(client, flow_name="kyc_seller", **body):
    return client.post(f"{API}/onboarding/{flow_name}/open", json=body, headers=USER)


# =====================================================================
# Identity
# =====================================================================


class TestIdentity:

    def test_missing_user_header(self, client):
        resp = client.post(f"{API}/onboarding/kyc_seller/open", json={})
        assert resp.status_code == 401

    def test_proxy_secret_required(self, backends):
        client = _client(backends, trusted_proxy_secret="gw")
        assert _open(client).status_code == 403

    def test_proxy_secret_accepted(self, backends):
        client = _client(backends, trusted_proxy_secret="gw")
        resp = client.post(
            f"{API}/onboarding/kyc_seller/open",
            json={},
            headers={**USER, "X-Proxy-Secret": "gw"},
        )
        assert resp.status_code == 200

    def test_wrong_proxy_secret(self, backends):
        client = _client(backends, trusted_proxy_secret="gw")
        resp = client.post(
            f"{API}/onboarding/kyc_seller/open",
            json={},
            headers={**USER, "X-Proxy-Secret": "nope"},
        )
        assert resp.status_code == 403


# =====================================================================
# Onboarding session
# =====================================================================


class TestOnboarding:

    def test_open_flow(self, client):
        resp = _open(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["flow_name"] == "kyc_seller"
        assert body["editing"] is False
        assert body["state"]["section_index"] == 0
        assert body["state"]["progress"] == pytest.approx(20.0)
        assert body["step"]["section_name"] == "Basics"
        assert body["step"]["questions"][0]["alias"] == "role"

    def test_open_unknown_flow(self, client):
        assert _open(client, "missing_flow").status_code == 404

    def test_no_open_session(self, client):
        resp = client.get(f"{API}/onboarding/current", headers=USER)
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Resource not found"}, "No internal details leak"

    def test_answer_and_advance(self, client, backends):
        _open(client)
        resp = client.put(
            f"{API}/onboarding/current/answers/role", json={"value": "Seller"}, headers=USER,
        )
        assert resp.status_code == 200
        assert resp.json()["sync"]["ok"] is True
        assert backends["submissions"].records["u1"].data == {"role": "Seller"}

        resp = client.post(f"{API}/onboarding/current/advance", headers=USER)
        body = resp.json()
        assert body["result"]["moved"] is True
        assert body["step"]["questions"][0]["alias"] == "company"

    def test_advance_blocked_by_validation(self, client):
        _open(client)
        resp = client.post(f"{API}/onboarding/current/advance", json={}, headers=USER)
        assert resp.status_code == 200, "Validation failures are not HTTP errors"
        result = resp.json()["result"]
        assert result["moved"] is False
        assert result["validation"]["error"] == "Please select an option."

    def test_advance_without_validation(self, client):
        _open(client)
        resp = client.post(
            f"{API}/onboarding/current/advance", json={"validate_step": False}, headers=USER,
        )
        assert resp.json()["result"]["moved"] is True

    def test_unknown_question_alias(self, client):
        _open(client)
        resp = client.put(
            f"{API}/onboarding/current/answers/nope", json={"value": 1}, headers=USER,
        )
        assert resp.status_code == 404

    def test_retreat_and_section_jumps(self, client):
        _open(client)
        resp = client.post(f"{API}/onboarding/current/next-section", headers=USER)
        assert resp.json()["step"]["section_name"] == "Markets"
        resp = client.post(f"{API}/onboarding/current/retreat", headers=USER)
        assert resp.json()["result"]["state"]["step_index"] == 1
        resp = client.post(f"{API}/onboarding/current/previous-section", headers=USER)
        assert resp.json()["result"]["moved"] is False

    def test_go_to(self, client):
        """Jumping back from recap to edit an earlier step."""
        _open(client)
        client.post(
            f"{API}/onboarding/current/go-to", json={"section_index": 3}, headers=USER,
        )
        client.post(
            f"{API}/onboarding/current/advance", json={"validate_step": False}, headers=USER,
        )
        assert client.get(f"{API}/onboarding/current", headers=USER).json()["state"]["recap"] is True

        resp = client.post(
            f"{API}/onboarding/current/go-to",
            json={"section_index": 1, "step_index": 2},
            headers=USER,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["result"]["state"]["recap"] is False
        assert (body["result"]["state"]["section_index"], body["result"]["state"]["step_index"]) == (1, 2)
        assert body["step"]["questions"][0]["alias"] == "urgency"

    def test_go_to_out_of_range(self, client):
        _open(client)
        resp = client.post(
            f"{API}/onboarding/current/go-to", json={"section_index": 9}, headers=USER,
        )
        assert resp.status_code == 400

    def test_submit_incomplete(self, client, backends):
        _open(client)
        resp = client.post(f"{API}/onboarding/current/submit", headers=USER)
        body = resp.json()
        assert body["ok"] is False
        assert body["error"].startswith("Incomplete section: Basics")
        assert backends["stages"].records == {}

    def test_submit_complete(self, client, backends):
        _open(client)
        answers = {
            "role": "Seller",
            "company": VALID_COMPANY,
            "markets": ["Finance"],
            "satisfaction": 4,
        }
        client.put(f"{API}/onboarding/current/answers", json={"values": answers}, headers=USER)

        resp = client.post(f"{API}/onboarding/current/submit", headers=USER)
        body = resp.json()
        assert body["ok"] is True
        assert body["completion"]["stage_id"] == 1
        assert body["completion"]["created_stage_id"] == 4
        assert body["state"]["complete"] is True
        assert backends["submissions"].records["u1"].status is SubmissionStatus.IN_REVIEW
        assert backends["notifier"].sent == [(1, "founder@acme.io", "Ada")]

    def test_submit_storage_failure(self, client, backends):
        _open(client)
        answers = {
            "role": "Seller",
            "company": VALID_COMPANY,
            "markets": ["Finance"],
            "satisfaction": 4,
        }
        client.put(f"{API}/onboarding/current/answers", json={"values": answers}, headers=USER)
        backends["stages"].fail = True

        resp = client.post(f"{API}/onboarding/current/submit", headers=USER)
        assert resp.status_code == 503


# =====================================================================
# Stages
# =====================================================================


class TestStages:

    def test_next_seeds_first_stage(self, client, backends):
        resp = client.post(f"{API}/stages/next", headers=USER)
        assert resp.status_code == 200
        assert resp.json()["created_stage_id"] == 1
        assert backends["stages"].status_of("u1", 1) is StageStatus.NOT_STARTED

    def test_remaining(self, client):
        resp = client.get(f"{API}/stages/remaining", params={"current_stage_id": 4}, headers=USER)
        assert resp.json() == {"role": "seller", "current_stage_id": 4, "remaining": [2, 3]}

    def test_unknown_role_is_configuration_error(self, client, backends):
        """A stored role with no workflow is a deployment problem: 500."""
        backends["submissions"].records["u1"] = SubmissionRecord(user_id="u1", role="partner")
        resp = client.post(f"{API}/stages/next", headers=USER)
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Workflow configuration error"}


# =====================================================================
# Admin
# =====================================================================


class TestAdmin:

    def test_missing_key(self, client):
        assert client.get(f"{API}/admin/flows").status_code == 401

    def test_wrong_key(self, client):
        resp = client.get(f"{API}/admin/flows", headers={"X-Admin-Key": "nope"})
        assert resp.status_code == 403

    def test_disabled_without_configured_key(self, backends):
        client = _client(backends)
        assert client.get(f"{API}/admin/flows", headers=ADMIN).status_code == 403

    def test_list_flows(self, client):
        resp = client.get(f"{API}/admin/flows", headers=ADMIN)
        assert resp.json() == {"flows": ["kyc_seller"], "templates": ["basic", "seller"]}

    def test_create_and_delete(self, client, backends):
        resp = client.post(
            f"{API}/admin/flows",
            json={"flow_name": "new_flow", "template_name": "basic"},
            headers=ADMIN,
        )
        assert resp.status_code == 201
        assert backends["source"].flows["new_flow"], "Seeded from the template"

        assert client.delete(f"{API}/admin/flows/new_flow", headers=ADMIN).status_code == 204
        assert "new_flow" not in backends["source"].flows

    def test_create_existing(self, client):
        resp = client.post(f"{API}/admin/flows", json={"flow_name": "kyc_seller"}, headers=ADMIN)
        assert resp.status_code == 409

    def test_create_unknown_template(self, client):
        resp = client.post(
            f"{API}/admin/flows",
            json={"flow_name": "x", "template_name": "missing"},
            headers=ADMIN,
        )
        assert resp.status_code == 404

    def test_delete_unknown(self, client):
        assert client.delete(f"{API}/admin/flows/missing", headers=ADMIN).status_code == 404

    def test_get_sections(self, client):
        resp = client.get(f"{API}/admin/flows/kyc_seller/sections", headers=ADMIN)
        sections = resp.json()["sections"]
        assert [s["id"] for s in sections] == [1, 2, 3, 4]
        assert "conditionalDisplay" in sections[2]

    def test_patch_sections(self, client, backends):
        resp = client.patch(
            f"{API}/admin/flows/kyc_seller/sections",
            json={"sections": [{"id": 3, "_delete": True}, {"id": 1, "name": "About you"}]},
            headers=ADMIN,
        )
        assert resp.status_code == 200
        sections = resp.json()["sections"]
        assert [s["id"] for s in sections] == [1, 2, 4]
        assert sections[0]["name"] == "About you"
        assert len(backends["source"].flows["kyc_seller"]) == 3

    def test_patch_invalid_sections(self, client, backends):
        duplicate = {"id": 9, "order": 9, "steps": [{"id": 1, "questions": [
            {"type": "SlidingScale", "alias": "role"},
        ]}]}
        resp = client.patch(
            f"{API}/admin/flows/kyc_seller/sections",
            json={"sections": [duplicate]},
            headers=ADMIN,
        )
        assert resp.status_code == 400
        assert len(backends["source"].flows["kyc_seller"]) == 4
