"""
Utilization Certificate Module

Reconciles released funds against spend for a reporting period: opening
balance, spend during the period, closing balance and a category breakdown.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_FLOOR, Decimal

from ..grants.coercion import format_timestamp, parse_timestamp, round_money, utc_now
from ..grants.models import GrantCatalog, GrantExpenditure
from .period import (
    ReportRequest,
    ReportWindow,
    before,
    find_grant,
    on_or_before,
    parse_report_window,
    tally_compliance,
    within,
)

logger = logging.getLogger(__name__)

DEFAULT_CERTIFICATE_PREFIX = "GUC"
HUNDREDTH = Decimal("0.01")


@dataclass
class CertificateFinancials:
    total_sanctioned: Decimal
    total_disbursed_to_date: Decimal
    disbursed_before_period: Decimal
    disbursed_during_period: Decimal
    opening_balance: Decimal
    utilization_during_period: Decimal
    cumulative_utilization: Decimal
    closing_balance: Decimal

    def to_dict(self) -> dict:
        return {
            "total_sanctioned": float(self.total_sanctioned),
            "total_disbursed_to_date": float(self.total_disbursed_to_date),
            "disbursed_before_period": float(self.disbursed_before_period),
            "disbursed_during_period": float(self.disbursed_during_period),
            "opening_balance": float(self.opening_balance),
            "utilization_during_period": float(self.utilization_during_period),
            "cumulative_utilization": float(self.cumulative_utilization),
            "closing_balance": float(self.closing_balance),
        }


@dataclass
class ExpenseBreakdownLine:
    category: str
    amount: Decimal
    percentage: Decimal

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "amount": float(self.amount),
            "percentage": float(self.percentage),
        }


@dataclass
class CertificateComplianceSummary:
    completed: int = 0
    pending: int = 0
    overdue: int = 0
    remarks: str = ""

    def to_dict(self) -> dict:
        return {
            "completed": self.completed,
            "pending": self.pending,
            "overdue": self.overdue,
            "remarks": self.remarks,
        }


@dataclass
class Signatories:
    prepared_by: str | None = None
    verified_by: str | None = None
    authorised_signatory: str | None = None

    def to_dict(self) -> dict:
        return {
            "prepared_by": self.prepared_by,
            "verified_by": self.verified_by,
            "authorised_signatory": self.authorised_signatory,
        }


@dataclass
class UtilizationCertificate:
    """Grant utilization certificate for one reporting period."""

    certificate_number: str
    issued_at: datetime
    issued_by: str | None
    grant: dict
    period: ReportWindow
    financials: CertificateFinancials
    expense_breakdown: list[ExpenseBreakdownLine] = field(default_factory=list)
    compliance_summary: CertificateComplianceSummary = field(default_factory=CertificateComplianceSummary)
    signatories: Signatories = field(default_factory=Signatories)

    @property
    def currency(self) -> str:
        return self.grant["currency"]

    def to_dict(self) -> dict:
        return {
            "certificate_number": self.certificate_number,
            "issued_at": format_timestamp(self.issued_at),
            "issued_by": self.issued_by,
            "grant": {
                key: format_timestamp(value) if isinstance(value, datetime) else value
                for key, value in self.grant.items()
            },
            "period": self.period.to_dict(),
            "financials": self.financials.to_dict(),
            "expense_breakdown": [line.to_dict() for line in self.expense_breakdown],
            "compliance_summary": self.compliance_summary.to_dict(),
            "signatories": self.signatories.to_dict(),
        }


def _total(amounts) -> Decimal:
    return sum(amounts, Decimal("0"))


def build_expense_breakdown(expenditures: list[GrantExpenditure]) -> list[ExpenseBreakdownLine]:
    """Group expenditures by category, in order of first appearance.

    Percentages are each category's share of the grand total at two decimals.
    Shares are rounded down and the leftover hundredths go to the largest
    remainders (earlier categories first on ties), so a non-zero grand total
    always yields exactly 100.00. A zero grand total divides by 1.
    """
    totals: dict[str, Decimal] = {}
    for expenditure in expenditures:
        totals[expenditure.category] = totals.get(expenditure.category, Decimal("0")) + expenditure.amount

    grand_total = _total(totals.values())
    if grand_total == 0:
        return [
            ExpenseBreakdownLine(category=category, amount=amount, percentage=round_money(amount * 100))
            for category, amount in totals.items()
        ]

    shares = [amount / grand_total * 100 for amount in totals.values()]
    percentages = [share.quantize(HUNDREDTH, rounding=ROUND_FLOOR) for share in shares]

    leftover = int((Decimal("100") - sum(percentages, Decimal("0"))) / HUNDREDTH)
    by_remainder = sorted(range(len(shares)), key=lambda i: shares[i] - percentages[i], reverse=True)
    for index in by_remainder[:leftover]:
        percentages[index] += HUNDREDTH

    return [
        ExpenseBreakdownLine(category=category, amount=amount, percentage=percentage)
        for (category, amount), percentage in zip(totals.items(), percentages)
    ]


def compliance_remarks(overdue: int, open_items: int) -> str:
    if overdue > 0:
        return f"{overdue} compliance item(s) overdue"
    if open_items > 0:
        return f"{open_items} compliance item(s) pending"
    return "All compliance requirements are met"


def default_certificate_number(grant_id: str, period_end: datetime, prefix: str = DEFAULT_CERTIFICATE_PREFIX) -> str:
    """Deterministic certificate number, e.g. ``GUC-grant-1-20240131``."""
    return f"{prefix}-{grant_id}-{period_end.strftime('%Y%m%d')}"


def generate_utilization_certificate(
    catalog: GrantCatalog,
    request: ReportRequest,
    clock: Callable[[], datetime] = utc_now,
    certificate_prefix: str = DEFAULT_CERTIFICATE_PREFIX,
) -> UtilizationCertificate:
    """Generate a utilization certificate.

    Released disbursements are dated by their release timestamp (else their
    nominal date). "Before" means strictly before the period start; "during"
    includes both bounds.

    Args:
        catalog: Startup grant catalog
        request: Grant, period and signatories
        clock: Source of "now" for issue date and compliance status
        certificate_prefix: Prefix of generated certificate numbers

    Returns:
        UtilizationCertificate

    Raises:
        InvalidPeriodError: Period bounds missing, unparsable or inverted
        GrantNotFoundError: Grant not in catalog
    """
    period = parse_report_window(request.period)
    grant = find_grant(catalog, request.grant_id)
    now = clock()
    released = grant.released_disbursements

    total_disbursed_to_date = _total(
        d.amount for d in released if on_or_before(d.effective_date, period.end)
    )
    disbursed_before_period = _total(
        d.amount for d in released if before(d.effective_date, period.start)
    )
    disbursed_during_period = _total(
        d.amount for d in released if within(d.effective_date, period)
    )

    spent_before_period = _total(
        e.amount for e in grant.expenditures if before(e.date, period.start)
    )
    expenditures_in_period = [e for e in grant.expenditures if within(e.date, period)]
    utilization_during_period = _total(e.amount for e in expenditures_in_period)
    cumulative_utilization = _total(
        e.amount for e in grant.expenditures if on_or_before(e.date, period.end)
    )

    tally = tally_compliance(grant.compliance, now)

    certificate = UtilizationCertificate(
        certificate_number=request.certificate_number
        or default_certificate_number(grant.id, period.end, certificate_prefix),
        issued_at=parse_timestamp(request.issued_at) or now,
        issued_by=request.issued_by,
        grant={
            "id": grant.id,
            "name": grant.name,
            "funding_agency": grant.funding_agency,
            "sanction_number": grant.sanction_number,
            "sanction_date": grant.sanction_date,
            "currency": grant.currency,
            "managing_department": grant.managing_department,
        },
        period=period,
        financials=CertificateFinancials(
            total_sanctioned=grant.total_sanctioned_amount,
            total_disbursed_to_date=total_disbursed_to_date,
            disbursed_before_period=disbursed_before_period,
            disbursed_during_period=disbursed_during_period,
            opening_balance=disbursed_before_period - spent_before_period,
            utilization_during_period=utilization_during_period,
            cumulative_utilization=cumulative_utilization,
            closing_balance=total_disbursed_to_date - cumulative_utilization,
        ),
        expense_breakdown=build_expense_breakdown(expenditures_in_period),
        compliance_summary=CertificateComplianceSummary(
            completed=tally.completed,
            pending=tally.open_items,
            overdue=tally.overdue,
            remarks=compliance_remarks(tally.overdue, tally.open_items),
        ),
        signatories=Signatories(
            prepared_by=request.prepared_by,
            verified_by=request.verified_by,
            authorised_signatory=request.issued_by,
        ),
    )

    logger.info(f"Generated utilization certificate {certificate.certificate_number}")
    return certificate
