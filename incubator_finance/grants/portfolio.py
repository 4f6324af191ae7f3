"""
Portfolio Aggregator Module

Incubator-wide financial overview across all startups, totalled per currency.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from .coercion import format_timestamp
from .financial_summary import GrantFinancialSummary, summarize_grant_financials
from .store import StoredCatalogRecord

logger = logging.getLogger(__name__)


@dataclass
class CurrencyFinancialTotals:
    """Running totals for all grants in one currency."""

    currency: str
    total_sanctioned: Decimal = Decimal("0")
    total_released: Decimal = Decimal("0")
    total_pending_amount: Decimal = Decimal("0")
    total_rejected_amount: Decimal = Decimal("0")
    total_utilised: Decimal = Decimal("0")
    available_to_utilise: Decimal = Decimal("0")
    remaining_sanction_balance: Decimal = Decimal("0")
    grant_count: int = 0

    def add(self, summary: GrantFinancialSummary) -> None:
        self.total_sanctioned += summary.total_sanctioned
        self.total_released += summary.total_released
        self.total_pending_amount += summary.total_pending_amount
        self.total_rejected_amount += summary.total_rejected_amount
        self.total_utilised += summary.total_utilised
        self.available_to_utilise += summary.available_to_utilise
        self.remaining_sanction_balance += summary.remaining_sanction_balance
        self.grant_count += 1

    def to_dict(self) -> dict:
        return {
            "currency": self.currency,
            "total_sanctioned": float(self.total_sanctioned),
            "total_released": float(self.total_released),
            "total_pending_amount": float(self.total_pending_amount),
            "total_rejected_amount": float(self.total_rejected_amount),
            "total_utilised": float(self.total_utilised),
            "available_to_utilise": float(self.available_to_utilise),
            "remaining_sanction_balance": float(self.remaining_sanction_balance),
            "grant_count": self.grant_count,
        }


@dataclass
class IncubatorFinancialOverview:
    """Per-currency totals plus every per-grant summary."""

    totals_by_currency: list[CurrencyFinancialTotals] = field(default_factory=list)
    grants: list[GrantFinancialSummary] = field(default_factory=list)
    updated_at: datetime | None = None

    def totals_for(self, currency: str) -> CurrencyFinancialTotals | None:
        for totals in self.totals_by_currency:
            if totals.currency == currency:
                return totals
        return None

    def to_dict(self) -> dict:
        return {
            "totals_by_currency": [t.to_dict() for t in self.totals_by_currency],
            "grants": [g.to_dict() for g in self.grants],
            "updated_at": format_timestamp(self.updated_at),
        }


def _latest(current: datetime | None, candidate: datetime | None) -> datetime | None:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current


def build_financial_overview(records: Iterable[StoredCatalogRecord]) -> IncubatorFinancialOverview:
    """Roll up every stored catalog into an incubator-wide overview.

    Args:
        records: Stored catalogs of all startups

    Returns:
        IncubatorFinancialOverview with totals sorted by currency code
    """
    totals: dict[str, CurrencyFinancialTotals] = {}
    summaries: list[GrantFinancialSummary] = []
    updated_at = None
    catalog_count = 0

    for record in records:
        catalog_count += 1
        updated_at = _latest(updated_at, record.updated_at)
        updated_at = _latest(updated_at, record.catalog.updated_at)

        for grant in record.catalog.grants:
            summary = summarize_grant_financials(record.startup_id, grant)
            summaries.append(summary)

            if summary.currency not in totals:
                totals[summary.currency] = CurrencyFinancialTotals(currency=summary.currency)
            totals[summary.currency].add(summary)

    logger.debug(f"Built financial overview over {catalog_count} catalogs and {len(summaries)} grants")

    return IncubatorFinancialOverview(
        totals_by_currency=[totals[currency] for currency in sorted(totals)],
        grants=summaries,
        updated_at=updated_at,
    )
