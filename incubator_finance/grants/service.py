"""
Grant Ledger Service

Operations exposed to the API layer: catalog reads, disbursement workflow,
grant reports and the incubator-wide financial overview.
"""

import logging
from dataclasses import dataclass, field

from ..reports.certificate import UtilizationCertificate
from ..reports.compliance_report import ComplianceReport
from ..reports.period import ReportRequest
from ..reports.report_generator import GrantReportBundle, GrantReportGenerator
from .coercion import utc_now
from .eligibility import EligibilityPolicy, KeywordEligibilityPolicy
from .exceptions import GrantNotFoundError, NoGrantsConfiguredError
from .financial_summary import GrantFinancialSummary, summarize_grant_financials
from .milestones import MilestoneDirectory
from .models import FlattenedGrantDisbursement, GrantCatalog, GrantDisbursement, GrantRecord
from .normalizer import Clock
from .portfolio import IncubatorFinancialOverview, build_financial_overview
from .settings import GrantLedgerSettings
from .store import CatalogStore
from .workflow import DisbursementRequest, DisbursementStatusUpdate, DisbursementWorkflow

logger = logging.getLogger(__name__)


@dataclass
class DisbursementSnapshot:
    """Financial view of one grant plus the list of the startup's grants."""

    startup_id: str
    grants: list[dict] = field(default_factory=list)
    grant: GrantRecord | None = None
    summary: GrantFinancialSummary | None = None
    disbursements: list[GrantDisbursement] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "startup_id": self.startup_id,
            "grants": self.grants,
            "grant": {
                "id": self.grant.id,
                "name": self.grant.name,
                "currency": self.grant.currency,
                "total_sanctioned_amount": float(self.grant.total_sanctioned_amount),
            } if self.grant else None,
            "summary": self.summary.to_dict() if self.summary else None,
            "disbursements": [d.to_dict() for d in self.disbursements],
        }


def _newest_first_key(disbursement: GrantDisbursement):
    moment = disbursement.requested_at or disbursement.date
    return moment.timestamp() if moment else float("-inf")


class GrantLedgerService:
    """Facade over the catalog store, workflow and report generators."""

    def __init__(
        self,
        store: CatalogStore,
        milestones: MilestoneDirectory,
        settings: GrantLedgerSettings | None = None,
        eligibility: EligibilityPolicy | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize the service.

        Args:
            store: Catalog persistence
            milestones: Milestone existence check
            settings: Ledger settings (loaded from config if None)
            eligibility: Expenditure eligibility policy (keyword policy from settings if None)
            clock: Source of "now"
        """
        self.store = store
        self.settings = settings or GrantLedgerSettings()
        self.clock = clock
        self.workflow = DisbursementWorkflow(store, milestones, self.settings, clock)
        self.reports = GrantReportGenerator(
            settings=self.settings,
            eligibility=eligibility or KeywordEligibilityPolicy(self.settings.risk_keywords),
            clock=clock,
        )

    # =========================================================================
    # Reads
    # =========================================================================

    def get_catalog(self, startup_id: str) -> GrantCatalog:
        """Stored catalog, or an empty default one when nothing is stored yet."""
        return self.store.get(startup_id) or GrantCatalog()

    def list_disbursements(self, startup_id: str) -> list[FlattenedGrantDisbursement]:
        """All disbursements of a startup, flattened across its grants."""
        catalog = self.get_catalog(startup_id)
        return [
            FlattenedGrantDisbursement(
                startup_id=startup_id,
                grant_id=grant.id,
                grant_name=grant.name,
                disbursement=disbursement,
            )
            for grant in catalog.grants
            for disbursement in grant.disbursements
        ]

    def get_disbursement_snapshot(self, startup_id: str, grant_id: str | None = None) -> DisbursementSnapshot:
        """Summary and disbursements (newest first) of one grant, or the first grant.

        Raises:
            NoGrantsConfiguredError: Startup has no grants
            GrantNotFoundError: Requested grant does not exist
        """
        catalog = self.get_catalog(startup_id)
        if not catalog.grants:
            raise NoGrantsConfiguredError(startup_id)

        if grant_id:
            grant = catalog.find_grant(grant_id)
            if grant is None:
                raise GrantNotFoundError(grant_id)
        else:
            grant = catalog.grants[0]

        return DisbursementSnapshot(
            startup_id=startup_id,
            grants=[
                {"id": g.id, "name": g.name, "currency": g.currency}
                for g in catalog.grants
            ],
            grant=grant,
            summary=summarize_grant_financials(startup_id, grant),
            disbursements=sorted(grant.disbursements, key=_newest_first_key, reverse=True),
        )

    def get_financial_overview(self) -> IncubatorFinancialOverview:
        return build_financial_overview(self.store.list_records())

    # =========================================================================
    # Disbursement workflow
    # =========================================================================

    def request_disbursement(self, startup_id: str, request: DisbursementRequest) -> FlattenedGrantDisbursement:
        return self.workflow.request_disbursement(startup_id, request)

    def update_disbursement_status(
        self,
        startup_id: str,
        update: DisbursementStatusUpdate,
    ) -> FlattenedGrantDisbursement:
        return self.workflow.update_disbursement_status(startup_id, update)

    # =========================================================================
    # Reports
    # =========================================================================

    def generate_utilization_certificate(self, startup_id: str, request: ReportRequest) -> UtilizationCertificate:
        return self.reports.utilization_certificate(self.get_catalog(startup_id), request)

    def generate_compliance_report(self, startup_id: str, request: ReportRequest) -> ComplianceReport:
        return self.reports.compliance_report(self.get_catalog(startup_id), request)

    def generate_reports(self, startup_id: str, request: ReportRequest) -> GrantReportBundle:
        bundle = self.reports.generate(self.get_catalog(startup_id), request)
        logger.info(
            f"Generated report bundle {bundle.certificate.certificate_number} for startup {startup_id}"
        )
        return bundle
