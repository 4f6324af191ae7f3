"""
Grant Financial Summary Module

Aggregates a grant's disbursements and expenditures into a single snapshot of
released, pending, rejected, utilised and remaining money.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from .coercion import format_timestamp, round_money
from .models import DisbursementStatus, GrantRecord


@dataclass
class GrantFinancialSummary:
    """Money position of one grant."""

    startup_id: str
    grant_id: str
    grant_name: str
    currency: str
    total_sanctioned: Decimal
    total_released: Decimal
    total_pending_amount: Decimal
    total_rejected_amount: Decimal
    total_utilised: Decimal
    available_to_utilise: Decimal
    remaining_sanction_balance: Decimal
    pending_disbursement_count: int = 0
    released_disbursement_count: int = 0
    upcoming_target_release: datetime | None = None
    last_disbursement_at: datetime | None = None

    @property
    def over_committed(self) -> bool:
        """Released plus in-flight requests exceed the sanctioned amount."""
        return self.total_released + self.total_pending_amount > self.total_sanctioned

    @property
    def utilisation_percent(self) -> float:
        """Share of released money already spent."""
        if self.total_released <= 0:
            return 0.0
        return float(round_money(self.total_utilised / self.total_released * 100, "0.1"))

    def to_dict(self) -> dict:
        return {
            "startup_id": self.startup_id,
            "grant_id": self.grant_id,
            "grant_name": self.grant_name,
            "currency": self.currency,
            "total_sanctioned": float(self.total_sanctioned),
            "total_released": float(self.total_released),
            "total_pending_amount": float(self.total_pending_amount),
            "total_rejected_amount": float(self.total_rejected_amount),
            "total_utilised": float(self.total_utilised),
            "available_to_utilise": float(self.available_to_utilise),
            "remaining_sanction_balance": float(self.remaining_sanction_balance),
            "pending_disbursement_count": self.pending_disbursement_count,
            "released_disbursement_count": self.released_disbursement_count,
            "upcoming_target_release": format_timestamp(self.upcoming_target_release),
            "last_disbursement_at": format_timestamp(self.last_disbursement_at),
            "over_committed": self.over_committed,
            "utilisation_percent": self.utilisation_percent,
        }


def summarize_grant_financials(startup_id: str, grant: GrantRecord) -> GrantFinancialSummary:
    """Summarize a grant's money position.

    Released disbursements count toward the released total and the latest
    disbursement date; pending and approved ones toward the pending total and
    the earliest upcoming target release; rejected ones only toward the
    rejected total. Drafts are ignored.

    Args:
        startup_id: Owning startup
        grant: Normalized grant record

    Returns:
        GrantFinancialSummary
    """
    total_released = Decimal("0")
    total_pending = Decimal("0")
    total_rejected = Decimal("0")
    released_count = 0
    pending_count = 0
    upcoming_target_release = None
    last_disbursement_at = None

    for disbursement in grant.disbursements:
        amount = disbursement.amount

        if disbursement.status == DisbursementStatus.RELEASED:
            total_released += amount
            released_count += 1
            released_at = disbursement.effective_date
            if released_at and (last_disbursement_at is None or released_at > last_disbursement_at):
                last_disbursement_at = released_at

        elif disbursement.status in (DisbursementStatus.PENDING, DisbursementStatus.APPROVED):
            total_pending += amount
            pending_count += 1
            target = disbursement.target_release_date or disbursement.date
            if target and (upcoming_target_release is None or target < upcoming_target_release):
                upcoming_target_release = target

        elif disbursement.status == DisbursementStatus.REJECTED:
            total_rejected += amount

    total_utilised = sum((e.amount for e in grant.expenditures), Decimal("0"))
    sanctioned = grant.total_sanctioned_amount

    return GrantFinancialSummary(
        startup_id=startup_id,
        grant_id=grant.id,
        grant_name=grant.name,
        currency=grant.currency,
        total_sanctioned=sanctioned,
        total_released=total_released,
        total_pending_amount=total_pending,
        total_rejected_amount=total_rejected,
        total_utilised=total_utilised,
        available_to_utilise=total_released - total_utilised,
        remaining_sanction_balance=max(sanctioned - (total_released + total_pending), Decimal("0")),
        pending_disbursement_count=pending_count,
        released_disbursement_count=released_count,
        upcoming_target_release=upcoming_target_release,
        last_disbursement_at=last_disbursement_at,
    )
