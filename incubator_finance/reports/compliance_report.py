"""
Compliance Report Module

Period compliance review of a grant: eligible versus ineligible spend,
compliance item status, documentation gaps, observations and
recommendations.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from ..grants.coercion import format_timestamp, round_money, utc_now
from ..grants.eligibility import EligibilityPolicy, KeywordEligibilityPolicy
from ..grants.models import ComplianceStatus, GrantCatalog
from ..grants.settings import GrantLedgerSettings
from .period import ReportRequest, ReportWindow, find_grant, parse_report_window, tally_compliance, within

logger = logging.getLogger(__name__)

MISSING_DOCUMENTATION_NOTE = "Supporting documentation not linked"

UNDER_SPEND_OBSERVATION = (
    "Utilisation below {threshold}% of sanctioned amount; "
    "consider accelerating project spend or revising milestones."
)
OVER_SPEND_OBSERVATION = (
    "Utilisation exceeds {threshold}% of sanctioned amount; "
    "review additional funding approvals or reallocate budgets."
)
ON_TRACK_OBSERVATION = "Grant utilisation and compliance are on track for the reported period."

ESCALATE_OVERDUE = (
    "Escalate overdue compliance actions to the programme lead and schedule resolution checkpoints."
)
ASSIGN_OWNERS = "Assign responsible owners and target dates for all pending compliance requirements."
COLLECT_DOCUMENTS = (
    "Collect and upload invoices or utilisation proofs for records flagged without documentation."
)
MAINTAIN_CADENCE = "Maintain current monitoring cadence and documentation standards."


@dataclass
class ExecutiveSummary:
    total_expenditure: Decimal
    eligible_expenditure: Decimal
    ineligible_expenditure: Decimal
    utilisation_ratio: Decimal
    observations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total_expenditure": float(self.total_expenditure),
            "eligible_expenditure": float(self.eligible_expenditure),
            "ineligible_expenditure": float(self.ineligible_expenditure),
            "utilisation_ratio": float(self.utilisation_ratio),
            "observations": list(self.observations),
        }


@dataclass
class ComplianceStatusCounts:
    total_items: int = 0
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    overdue: int = 0

    def to_dict(self) -> dict:
        return {
            "total_items": self.total_items,
            "completed": self.completed,
            "in_progress": self.in_progress,
            "pending": self.pending,
            "overdue": self.overdue,
        }


@dataclass
class OutstandingAction:
    id: str
    title: str
    status: ComplianceStatus
    due_date: datetime | None = None
    owner: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "due_date": format_timestamp(self.due_date),
            "owner": self.owner,
            "status": self.status.value,
        }


@dataclass
class DocumentationFinding:
    expenditure_id: str
    amount: Decimal
    description: str | None = None
    missing_documents: bool = True
    notes: str = MISSING_DOCUMENTATION_NOTE

    def to_dict(self) -> dict:
        return {
            "expenditure_id": self.expenditure_id,
            "description": self.description,
            "amount": float(self.amount),
            "missing_documents": self.missing_documents,
            "notes": self.notes,
        }


@dataclass
class ComplianceReport:
    """Grant compliance report for one reporting period."""

    generated_at: datetime
    grant: dict
    period: ReportWindow
    executive_summary: ExecutiveSummary
    compliance_status: ComplianceStatusCounts
    outstanding_actions: list[OutstandingAction] = field(default_factory=list)
    documentation_findings: list[DocumentationFinding] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def currency(self) -> str:
        return self.grant["currency"]

    def to_dict(self) -> dict:
        return {
            "generated_at": format_timestamp(self.generated_at),
            "grant": dict(self.grant),
            "period": self.period.to_dict(),
            "executive_summary": self.executive_summary.to_dict(),
            "compliance_status": self.compliance_status.to_dict(),
            "outstanding_actions": [a.to_dict() for a in self.outstanding_actions],
            "documentation_findings": [f.to_dict() for f in self.documentation_findings],
            "recommendations": list(self.recommendations),
        }


def percent_label(ratio: Decimal) -> str:
    """``Decimal("0.5")`` -> ``"50"``, ``Decimal("0.125")`` -> ``"12.5"``."""
    return f"{(ratio * 100).normalize():f}"


def under_spend_observation(under_utilisation_ratio: Decimal) -> str:
    return UNDER_SPEND_OBSERVATION.format(threshold=percent_label(under_utilisation_ratio))


def over_spend_observation(over_utilisation_ratio: Decimal) -> str:
    return OVER_SPEND_OBSERVATION.format(threshold=percent_label(over_utilisation_ratio))


def build_observations(
    utilisation_ratio: Decimal,
    open_items: int,
    overdue: int,
    documentation_gaps: int,
    under_utilisation_ratio: Decimal = Decimal("0.5"),
    over_utilisation_ratio: Decimal = Decimal("1.0"),
) -> list[str]:
    """Executive summary notes. The under- and over-spend thresholds are checked independently."""
    notes = []

    if utilisation_ratio < under_utilisation_ratio:
        notes.append(under_spend_observation(under_utilisation_ratio))
    if utilisation_ratio > over_utilisation_ratio:
        notes.append(over_spend_observation(over_utilisation_ratio))

    if overdue > 0:
        notes.append(f"{overdue} compliance item(s) overdue require immediate attention.")

    if open_items > 0:
        notes.append(f"{open_items} compliance item(s) remain pending within the reporting window.")

    if documentation_gaps > 0:
        notes.append(f"{documentation_gaps} expenditure record(s) missing supporting documentation.")

    return notes or [ON_TRACK_OBSERVATION]


def build_recommendations(overdue: int, open_items: int, documentation_gaps: int) -> list[str]:
    recommendations = []

    if overdue > 0:
        recommendations.append(ESCALATE_OVERDUE)
    if open_items > 0:
        recommendations.append(ASSIGN_OWNERS)
    if documentation_gaps > 0:
        recommendations.append(COLLECT_DOCUMENTS)

    return recommendations or [MAINTAIN_CADENCE]


def generate_compliance_report(
    catalog: GrantCatalog,
    request: ReportRequest,
    eligibility: EligibilityPolicy | None = None,
    settings: GrantLedgerSettings | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> ComplianceReport:
    """Generate a compliance report.

    Compliance items count toward the period when they have no due date, or
    when their due date or completion date falls inside the window.

    Args:
        catalog: Startup grant catalog
        request: Grant and period
        eligibility: Expenditure classification (keywords from settings by default)
        settings: Ledger settings (utilisation thresholds)
        clock: Source of "now" for generation time and compliance status

    Returns:
        ComplianceReport

    Raises:
        InvalidPeriodError: Period bounds missing, unparsable or inverted
        GrantNotFoundError: Grant not in catalog
    """
    period = parse_report_window(request.period)
    grant = find_grant(catalog, request.grant_id)
    settings = settings or GrantLedgerSettings()
    if eligibility is None:
        eligibility = KeywordEligibilityPolicy(settings.risk_keywords)
    now = clock()

    expenditures = [e for e in grant.expenditures if within(e.date, period)]
    total_expenditure = sum((e.amount for e in expenditures), Decimal("0"))
    ineligible_expenditure = sum(
        (e.amount for e in expenditures if eligibility.is_ineligible(e)),
        Decimal("0"),
    )

    if grant.total_sanctioned_amount > 0:
        utilisation_ratio = round_money(total_expenditure / grant.total_sanctioned_amount)
    else:
        utilisation_ratio = Decimal("0")

    compliance_items = [
        item for item in grant.compliance
        if item.due_date is None or within(item.due_date, period) or within(item.completed_at, period)
    ]
    tally = tally_compliance(compliance_items, now)

    findings = [
        DocumentationFinding(
            expenditure_id=e.id,
            amount=e.amount,
            description=e.description,
        )
        for e in expenditures
        if not e.has_supporting_docs
    ]

    outstanding = []
    for item in compliance_items:
        status = item.resolve_status(now)
        if status != ComplianceStatus.COMPLETED:
            outstanding.append(OutstandingAction(
                id=item.id,
                title=item.title,
                status=status,
                due_date=item.due_date,
                owner=item.owner,
            ))

    report = ComplianceReport(
        generated_at=now,
        grant={
            "id": grant.id,
            "name": grant.name,
            "funding_agency": grant.funding_agency,
            "programme": grant.program,
            "sanction_number": grant.sanction_number,
            "currency": grant.currency,
        },
        period=period,
        executive_summary=ExecutiveSummary(
            total_expenditure=total_expenditure,
            eligible_expenditure=total_expenditure - ineligible_expenditure,
            ineligible_expenditure=ineligible_expenditure,
            utilisation_ratio=utilisation_ratio,
            observations=build_observations(
                utilisation_ratio,
                tally.open_items,
                tally.overdue,
                len(findings),
                settings.under_utilisation_ratio,
                settings.over_utilisation_ratio,
            ),
        ),
        compliance_status=ComplianceStatusCounts(
            total_items=len(compliance_items),
            completed=tally.completed,
            in_progress=tally.in_progress,
            pending=tally.pending,
            overdue=tally.overdue,
        ),
        outstanding_actions=outstanding,
        documentation_findings=findings,
        recommendations=build_recommendations(tally.overdue, tally.open_items, len(findings)),
    )

    logger.info(
        f"Generated compliance report for grant {grant.id}: "
        f"{len(findings)} documentation gaps, {tally.overdue} overdue items"
    )
    return report
