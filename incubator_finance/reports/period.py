"""
Reporting Period Helpers

Report request inputs, period validation and the date-window predicates shared
by the utilization certificate and the compliance report.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from ..grants.coercion import format_timestamp, parse_timestamp
from ..grants.exceptions import GrantNotFoundError, InvalidPeriodError
from ..grants.models import ComplianceStatus, GrantCatalog, GrantCompliance, GrantRecord


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive reporting window.

    Bounds may be given as datetimes, dates or ISO strings; they are only
    checked by ``parse_report_window``. A date-only bound means midnight UTC.
    """

    start: Any
    end: Any

    def to_dict(self) -> dict:
        return {
            "start": format_timestamp(self.start) if isinstance(self.start, datetime) else self.start,
            "end": format_timestamp(self.end) if isinstance(self.end, datetime) else self.end,
        }


@dataclass
class ReportRequest:
    """Parameters shared by all grant reports."""

    grant_id: str
    period: ReportWindow
    issued_by: str | None = None
    issued_at: Any = None
    certificate_number: str | None = None
    prepared_by: str | None = None
    verified_by: str | None = None


def parse_report_window(window: ReportWindow) -> ReportWindow:
    """Validate a reporting window.

    Returns:
        ReportWindow with aware UTC datetime bounds

    Raises:
        InvalidPeriodError: A bound is missing or unparsable, or start is after end
    """
    start = parse_timestamp(window.start) if window else None
    end = parse_timestamp(window.end) if window else None

    if start is None or end is None:
        raise InvalidPeriodError("A valid reporting period is required")

    if start > end:
        raise InvalidPeriodError("Reporting period end must be after start")

    return ReportWindow(start=start, end=end)


def find_grant(catalog: GrantCatalog | None, grant_id: str) -> GrantRecord:
    grant = catalog.find_grant(grant_id) if catalog else None
    if grant is None:
        raise GrantNotFoundError(grant_id)
    return grant


def within(value: datetime | None, window: ReportWindow) -> bool:
    """True when the value falls inside the window, bounds included."""
    if value is None:
        return False
    return window.start <= value <= window.end


def before(value: datetime | None, reference: datetime) -> bool:
    if value is None:
        return False
    return value < reference


def on_or_before(value: datetime | None, reference: datetime) -> bool:
    """Undated values count as on or before any reference."""
    return value is None or value <= reference


@dataclass
class ComplianceTally:
    completed: int = 0
    in_progress: int = 0
    pending: int = 0
    overdue: int = 0

    @property
    def open_items(self) -> int:
        """Pending plus in-progress."""
        return self.pending + self.in_progress


def tally_compliance(items: list[GrantCompliance], now: datetime) -> ComplianceTally:
    tally = ComplianceTally()
    for item in items:
        status = item.resolve_status(now)
        if status == ComplianceStatus.COMPLETED:
            tally.completed += 1
        elif status == ComplianceStatus.OVERDUE:
            tally.overdue += 1
        elif status == ComplianceStatus.IN_PROGRESS:
            tally.in_progress += 1
        else:
            tally.pending += 1
    return tally
