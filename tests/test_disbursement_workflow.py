"""
Tests for the Disbursement Workflow

Tests request validation, status transitions, the terminal released state,
the over-commitment policy and optimistic concurrency.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from incubator_finance.grants.exceptions import (
    ConcurrentModificationError,
    DisbursementNotFoundError,
    GrantNotFoundError,
    InvalidAmountError,
    InvalidStatusError,
    MilestoneNotFoundError,
    OverCommitmentError,
    TerminalStateError,
)
from incubator_finance.grants.financial_summary import summarize_grant_financials
from incubator_finance.grants.models import Actor, DisbursementStatus
from incubator_finance.grants.normalizer import catalog_to_payload
from incubator_finance.grants.store import InMemoryCatalogStore
from incubator_finance.grants.workflow import (
    DisbursementRequest,
    DisbursementStatusUpdate,
    DisbursementWorkflow,
)

STARTUP_ID = "startup-1"
GRANT_ID = "grant-1"

REQUESTER = Actor(id="founder-7", name="Asha Rao", email="asha@example.com")
REVIEWER = Actor(id="pm-2", name="Programme Manager", email="pm@example.com")


def stored_payload(store, startup_id=STARTUP_ID) -> dict:
    return catalog_to_payload(store.get(startup_id))


class RacingStore(InMemoryCatalogStore):
    """Store where another writer commits right after every read."""

    def get(self, startup_id):
        catalog = super().get(startup_id)
        if catalog is not None:
            other = super().get(startup_id)
            expected = other.version
            other.version = expected + 1
            self.put(startup_id, other, expected_version=expected)
        return catalog


@pytest.fixture
def workflow(store, milestones, settings, clock) -> DisbursementWorkflow:
    return DisbursementWorkflow(store, milestones, settings, clock)


def request_for(amount, **kwargs) -> DisbursementRequest:
    return DisbursementRequest(grant_id=GRANT_ID, amount=amount, requested_by=REQUESTER, **kwargs)


# =============================================================================
# Request Tests
# =============================================================================

class TestRequestDisbursement:
    """Tests for DisbursementWorkflow.request_disbursement."""

    def test_creates_pending_disbursement(self, workflow, store, clock):
        result = workflow.request_disbursement(STARTUP_ID, request_for("25000", tranche="Tranche 2"))

        disbursement = result.disbursement
        assert result.startup_id == STARTUP_ID
        assert result.grant_id == GRANT_ID
        assert result.grant_name == "Seed Support Grant"
        assert disbursement.status == DisbursementStatus.PENDING
        assert disbursement.amount == Decimal("25000")
        assert disbursement.requested_at == clock()
        assert disbursement.date == clock()
        assert disbursement.requested_by == REQUESTER.id
        assert disbursement.released_at is None
        assert disbursement.metadata == {
            "requestedByName": "Asha Rao",
            "requestedByEmail": "asha@example.com",
        }

        assert len(disbursement.approvals) == 1
        approval = disbursement.approvals[0]
        assert approval.status == DisbursementStatus.PENDING
        assert approval.actor_id == REQUESTER.id
        assert approval.note == "Disbursement requested"

        catalog = store.get(STARTUP_ID)
        assert catalog.version == 2
        assert catalog.updated_at == clock()
        assert catalog.find_grant(GRANT_ID).find_disbursement(disbursement.id) is not None

    def test_target_release_date_sets_nominal_date(self, workflow):
        result = workflow.request_disbursement(
            STARTUP_ID,
            request_for(1000, target_release_date="2024-03-01", notes="Q1 hardware"),
        )

        target = datetime(2024, 3, 1, tzinfo=timezone.utc)
        assert result.disbursement.target_release_date == target
        assert result.disbursement.date == target
        assert result.disbursement.approvals[0].note == "Q1 hardware"

    @pytest.mark.parametrize("amount", [0, -10, "0", "abc", None, float("nan")])
    def test_non_positive_amount_rejected_without_write(self, workflow, store, amount):
        before = stored_payload(store)

        with pytest.raises(InvalidAmountError):
            workflow.request_disbursement(STARTUP_ID, request_for(amount))

        assert stored_payload(store) == before

    def test_amount_checked_before_grant(self, workflow):
        with pytest.raises(InvalidAmountError):
            workflow.request_disbursement(
                STARTUP_ID,
                DisbursementRequest(grant_id="missing", amount=0, requested_by=REQUESTER),
            )

    def test_unknown_milestone_rejected(self, workflow, store):
        before = stored_payload(store)

        with pytest.raises(MilestoneNotFoundError):
            workflow.request_disbursement(STARTUP_ID, request_for(1000, milestone_id="milestone-9"))

        assert stored_payload(store) == before

    def test_known_milestone_linked(self, workflow):
        result = workflow.request_disbursement(STARTUP_ID, request_for(1000, milestone_id="milestone-1"))
        assert result.disbursement.milestone_id == "milestone-1"

    def test_unknown_grant_rejected(self, workflow):
        with pytest.raises(GrantNotFoundError, match="Grant with id grant-9 not found"):
            workflow.request_disbursement(
                STARTUP_ID,
                DisbursementRequest(grant_id="grant-9", amount=100, requested_by=REQUESTER),
            )

    def test_unknown_startup_rejected(self, workflow):
        with pytest.raises(GrantNotFoundError):
            workflow.request_disbursement("startup-404", request_for(100))


class TestOverCommitmentPolicy:
    """Tests for the configurable over-commitment policy."""

    def test_allow_policy_reports_over_commitment(self, workflow, store):
        workflow.request_disbursement(STARTUP_ID, request_for(50000))

        grant = store.get(STARTUP_ID).find_grant(GRANT_ID)
        summary = summarize_grant_financials(STARTUP_ID, grant)
        assert summary.over_committed is True
        assert summary.remaining_sanction_balance == Decimal("0")

    def test_reject_policy_blocks_over_commitment(self, store, milestones, reject_settings, clock):
        workflow = DisbursementWorkflow(store, milestones, reject_settings, clock)
        before = stored_payload(store)

        with pytest.raises(OverCommitmentError):
            workflow.request_disbursement(STARTUP_ID, request_for(50000))

        assert stored_payload(store) == before

    def test_reject_policy_allows_exact_sanction(self, store, milestones, reject_settings, clock):
        workflow = DisbursementWorkflow(store, milestones, reject_settings, clock)

        workflow.request_disbursement(STARTUP_ID, request_for(40000))

        with pytest.raises(OverCommitmentError):
            workflow.request_disbursement(STARTUP_ID, request_for(1))


# =============================================================================
# Status Update Tests
# =============================================================================

class TestUpdateDisbursementStatus:
    """Tests for DisbursementWorkflow.update_disbursement_status."""

    @pytest.fixture
    def pending_id(self, workflow) -> str:
        return workflow.request_disbursement(STARTUP_ID, request_for(30000)).disbursement.id

    def update(self, workflow, disbursement_id, status, **kwargs):
        return workflow.update_disbursement_status(
            STARTUP_ID,
            DisbursementStatusUpdate(
                grant_id=GRANT_ID,
                disbursement_id=disbursement_id,
                status=status,
                actor=REVIEWER,
                **kwargs,
            ),
        )

    def test_approve_appends_to_trail(self, workflow, pending_id, clock):
        result = self.update(workflow, pending_id, "approved", note="Milestone verified")

        disbursement = result.disbursement
        assert disbursement.status == DisbursementStatus.APPROVED
        assert len(disbursement.approvals) == 2
        assert disbursement.approvals[-1].actor_id == REVIEWER.id
        assert disbursement.approvals[-1].note == "Milestone verified"
        assert disbursement.approvals[-1].decided_at == clock()
        assert disbursement.released_at is None

    def test_release_sets_release_fields(self, workflow, store, pending_id):
        self.update(workflow, pending_id, "approved")
        result = self.update(
            workflow, pending_id, "released",
            release_reference="UTR-2024-0042",
            release_date="2024-02-20",
        )

        released_at = datetime(2024, 2, 20, tzinfo=timezone.utc)
        disbursement = result.disbursement
        assert disbursement.status == DisbursementStatus.RELEASED
        assert disbursement.released_at == released_at
        assert disbursement.date == released_at
        assert disbursement.reference == "UTR-2024-0042"
        assert disbursement.approvals[-1].decided_at == released_at
        assert [a.status for a in disbursement.approvals] == [
            DisbursementStatus.PENDING,
            DisbursementStatus.APPROVED,
            DisbursementStatus.RELEASED,
        ]

        stored = store.get(STARTUP_ID).find_grant(GRANT_ID).find_disbursement(pending_id)
        assert stored.released_at == released_at

    def test_release_defaults_to_now(self, workflow, pending_id, clock):
        result = self.update(workflow, pending_id, DisbursementStatus.RELEASED)
        assert result.disbursement.released_at == clock()

    @pytest.mark.parametrize("status", ["draft", "pending", "approved", "rejected", "released"])
    def test_released_is_terminal(self, workflow, store, status):
        before = stored_payload(store)

        with pytest.raises(TerminalStateError):
            self.update(workflow, "disb-1", status)

        assert stored_payload(store) == before

    def test_reject_clears_release_timestamp(self, store, milestones, settings, clock, sample_payload):
        sample_payload["grants"][0]["disbursements"].append({
            "id": "disb-2",
            "amount": 5000,
            "status": "approved",
            "releasedAt": "2024-01-20T00:00:00.000Z",
        })
        store.put_payload(STARTUP_ID, sample_payload)
        workflow = DisbursementWorkflow(store, milestones, settings, clock)

        result = self.update(workflow, "disb-2", "rejected", note="Duplicate request")

        assert result.disbursement.status == DisbursementStatus.REJECTED
        assert result.disbursement.released_at is None

    def test_invalid_status(self, workflow, store, pending_id):
        before = stored_payload(store)

        with pytest.raises(InvalidStatusError):
            self.update(workflow, pending_id, "paid")

        assert stored_payload(store) == before

    def test_unknown_grant(self, workflow, pending_id):
        with pytest.raises(GrantNotFoundError):
            workflow.update_disbursement_status(
                STARTUP_ID,
                DisbursementStatusUpdate(
                    grant_id="grant-9", disbursement_id=pending_id, status="approved", actor=REVIEWER,
                ),
            )

    def test_unknown_disbursement(self, workflow):
        with pytest.raises(DisbursementNotFoundError):
            self.update(workflow, "disb-404", "approved")

    def test_each_write_bumps_version(self, workflow, store, pending_id):
        assert store.get(STARTUP_ID).version == 2
        self.update(workflow, pending_id, "approved")
        assert store.get(STARTUP_ID).version == 3


class TestOptimisticConcurrency:
    """Tests for conflicting read-modify-write cycles."""

    def test_concurrent_write_is_detected(self, sample_payload, milestones, settings, clock):
        store = RacingStore(clock=clock)
        store.put_payload(STARTUP_ID, sample_payload)
        workflow = DisbursementWorkflow(store, milestones, settings, clock)

        with pytest.raises(ConcurrentModificationError):
            workflow.request_disbursement(STARTUP_ID, request_for(1000))

        grant = InMemoryCatalogStore.get(store, STARTUP_ID).find_grant(GRANT_ID)
        assert len(grant.disbursements) == 1
