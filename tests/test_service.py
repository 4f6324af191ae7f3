"""
Tests for the Grant Ledger Service
"""

from decimal import Decimal

import pytest

from incubator_finance.grants.exceptions import (
    CatalogPayloadError,
    GrantNotFoundError,
    NoGrantsConfiguredError,
)
from incubator_finance.grants.models import Actor, DisbursementStatus, GrantCatalog
from incubator_finance.grants.workflow import DisbursementRequest, DisbursementStatusUpdate
from incubator_finance.reports.period import ReportRequest, ReportWindow

FOUNDER = Actor(id="founder-7", name="Asha Rao")
MANAGER = Actor(id="pm-2", name="Programme Manager")


class TestCatalogReads:
    """Tests for catalog and disbursement reads."""

    def test_unknown_startup_has_empty_catalog(self, service):
        assert service.get_catalog("startup-404") == GrantCatalog()
        assert service.list_disbursements("startup-404") == []

    def test_list_disbursements_flattens_grants(self, service, store, sample_payload):
        sample_payload["grants"].append({
            "id": "grant-2",
            "name": "Women Founders Fund",
            "disbursements": [{"id": "disb-9", "amount": 1500, "status": "pending"}],
        })
        store.put_payload("startup-1", sample_payload)

        flattened = service.list_disbursements("startup-1")

        assert [(f.grant_id, f.disbursement.id) for f in flattened] == [
            ("grant-1", "disb-1"),
            ("grant-2", "disb-9"),
        ]
        assert flattened[1].grant_name == "Women Founders Fund"
        assert flattened[1].to_dict()["disbursement"]["amount"] == 1500.0


class TestDisbursementSnapshot:
    """Tests for get_disbursement_snapshot."""

    def test_defaults_to_first_grant(self, service):
        snapshot = service.get_disbursement_snapshot("startup-1")

        assert snapshot.grant.id == "grant-1"
        assert snapshot.grants == [{"id": "grant-1", "name": "Seed Support Grant", "currency": "INR"}]
        assert snapshot.summary.total_released == Decimal("60000")

    def test_newest_first(self, service, store, sample_payload):
        sample_payload["grants"][0]["disbursements"] += [
            {"id": "disb-2", "amount": 100, "status": "pending", "requestedAt": "2024-02-01T00:00:00Z"},
            {"id": "disb-3", "amount": 100, "status": "draft", "date": "2024-01-05T00:00:00Z"},
        ]
        store.put_payload("startup-1", sample_payload)

        snapshot = service.get_disbursement_snapshot("startup-1", "grant-1")

        assert [d.id for d in snapshot.disbursements] == ["disb-2", "disb-3", "disb-1"]

    def test_no_grants(self, service):
        with pytest.raises(NoGrantsConfiguredError):
            service.get_disbursement_snapshot("startup-404")

    def test_unknown_grant(self, service):
        with pytest.raises(GrantNotFoundError):
            service.get_disbursement_snapshot("startup-1", "grant-9")

    def test_to_dict(self, service):
        result = service.get_disbursement_snapshot("startup-1").to_dict()

        assert result["grant"]["total_sanctioned_amount"] == 100000.0
        assert result["summary"]["available_to_utilise"] == 40000.0
        assert result["disbursements"][0]["id"] == "disb-1"


class TestServiceWorkflow:
    """Tests for the workflow and reports through the service."""

    def test_request_approve_release(self, service, clock):
        requested = service.request_disbursement(
            "startup-1",
            DisbursementRequest(grant_id="grant-1", amount=Decimal("15000"), requested_by=FOUNDER),
        )
        disbursement_id = requested.disbursement.id

        for status in ("approved", "released"):
            service.update_disbursement_status(
                "startup-1",
                DisbursementStatusUpdate(
                    grant_id="grant-1", disbursement_id=disbursement_id, status=status, actor=MANAGER,
                ),
            )

        snapshot = service.get_disbursement_snapshot("startup-1")
        assert snapshot.summary.total_released == Decimal("75000")
        assert snapshot.summary.released_disbursement_count == 2

        released = snapshot.grant.find_disbursement(disbursement_id)
        assert released.status == DisbursementStatus.RELEASED
        assert released.released_at == clock()

    def test_financial_overview(self, service):
        overview = service.get_financial_overview()

        assert overview.totals_for("INR").total_sanctioned == Decimal("100000")
        assert overview.grants[0].startup_id == "startup-1"

    def test_financial_overview_skips_corrupt_catalog(self, service, store):
        store.put_payload("startup-2", {"grants": [{"name": "Grant without an id", "totalSanctionedAmount": 5000}]})

        overview = service.get_financial_overview()

        assert [g.startup_id for g in overview.grants] == ["startup-1"]
        assert overview.totals_for("INR").total_sanctioned == Decimal("100000")

        with pytest.raises(CatalogPayloadError):
            service.get_catalog("startup-2")

    def test_generate_reports(self, service):
        request = ReportRequest(grant_id="grant-1", period=ReportWindow("2024-01-01", "2024-01-31"))

        bundle = service.generate_reports("startup-1", request)

        assert bundle.certificate.financials.closing_balance == Decimal("40000")
        assert bundle.compliance_report.executive_summary.utilisation_ratio == Decimal("0.20")

    def test_reports_for_unknown_startup(self, service):
        request = ReportRequest(grant_id="grant-1", period=ReportWindow("2024-01-01", "2024-01-31"))

        with pytest.raises(GrantNotFoundError):
            service.generate_utilization_certificate("startup-404", request)
