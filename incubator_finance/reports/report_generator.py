"""
Grant Report Generator

Produces the utilization certificate and the compliance report for a grant,
individually or as one bundle, using the ledger settings for thresholds and
the eligibility policy.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from ..grants.coercion import utc_now
from ..grants.eligibility import EligibilityPolicy, KeywordEligibilityPolicy
from ..grants.models import GrantCatalog
from ..grants.settings import GrantLedgerSettings
from .certificate import UtilizationCertificate, generate_utilization_certificate
from .compliance_report import ComplianceReport, generate_compliance_report
from .period import ReportRequest

logger = logging.getLogger(__name__)


@dataclass
class GrantReportBundle:
    certificate: UtilizationCertificate
    compliance_report: ComplianceReport

    def to_dict(self) -> dict:
        return {
            "certificate": self.certificate.to_dict(),
            "compliance_report": self.compliance_report.to_dict(),
        }


class GrantReportGenerator:
    """Generates grant reports with configured policies."""

    def __init__(
        self,
        settings: GrantLedgerSettings | None = None,
        eligibility: EligibilityPolicy | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.settings = settings or GrantLedgerSettings()
        self.eligibility = eligibility or KeywordEligibilityPolicy(self.settings.risk_keywords)
        self.clock = clock

    def utilization_certificate(self, catalog: GrantCatalog, request: ReportRequest) -> UtilizationCertificate:
        return generate_utilization_certificate(
            catalog,
            request,
            clock=self.clock,
            certificate_prefix=self.settings.certificate_prefix,
        )

    def compliance_report(self, catalog: GrantCatalog, request: ReportRequest) -> ComplianceReport:
        return generate_compliance_report(
            catalog,
            request,
            eligibility=self.eligibility,
            settings=self.settings,
            clock=self.clock,
        )

    def generate(self, catalog: GrantCatalog, request: ReportRequest) -> GrantReportBundle:
        """Generate both reports for the same grant and period."""
        return GrantReportBundle(
            certificate=self.utilization_certificate(catalog, request),
            compliance_report=self.compliance_report(catalog, request),
        )


def generate_grant_reports(
    catalog: GrantCatalog,
    request: ReportRequest,
    settings: GrantLedgerSettings | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> GrantReportBundle:
    """Generate the certificate and compliance report as a bundle."""
    return GrantReportGenerator(settings=settings, clock=clock).generate(catalog, request)
