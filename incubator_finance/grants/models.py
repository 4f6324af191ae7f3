"""
Grant Ledger Domain Models

Typed records for the per-startup grant catalog: grants, disbursement
tranches with their approval trail, expenditures and compliance items.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .coercion import format_timestamp, utc_now


DEFAULT_CURRENCY = "INR"


class DisbursementStatus(str, Enum):
    """Disbursement lifecycle state."""
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RELEASED = "released"

    @classmethod
    def parse(cls, value) -> "DisbursementStatus | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class ComplianceStatus(str, Enum):
    """Compliance requirement state."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    OVERDUE = "overdue"

    @classmethod
    def parse(cls, value) -> "ComplianceStatus | None":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class ExpenditureEligibility(str, Enum):
    """Eligibility decided when the expenditure was recorded."""
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"

    @classmethod
    def parse(cls, value) -> "ExpenditureEligibility | None":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                return None
        return None


@dataclass(frozen=True)
class Actor:
    """Identity of the person requesting or deciding on a disbursement."""

    id: str
    name: str | None = None
    email: str | None = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass(frozen=True)
class GrantDisbursementApproval:
    """One entry in a disbursement's append-only decision trail."""

    id: str
    status: DisbursementStatus
    decided_at: datetime
    actor_id: str | None = None
    actor_name: str | None = None
    actor_email: str | None = None
    note: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "note": self.note,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "actor_email": self.actor_email,
            "decided_at": format_timestamp(self.decided_at),
        }


@dataclass
class GrantDisbursement:
    """A tranche request/release against a grant."""

    id: str
    amount: Decimal
    date: datetime
    status: DisbursementStatus = DisbursementStatus.PENDING
    approvals: list[GrantDisbursementApproval] = field(default_factory=list)
    tranche: str | None = None
    reference: str | None = None
    milestone_id: str | None = None
    requested_by: str | None = None
    requested_at: datetime | None = None
    target_release_date: datetime | None = None
    released_at: datetime | None = None
    notes: str | None = None
    metadata: dict | None = None

    @property
    def effective_date(self) -> datetime | None:
        """Release timestamp when released, otherwise the nominal date."""
        return self.released_at or self.date

    @property
    def is_terminal(self) -> bool:
        return self.status == DisbursementStatus.RELEASED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": float(self.amount),
            "date": format_timestamp(self.date),
            "tranche": self.tranche,
            "reference": self.reference,
            "milestone_id": self.milestone_id,
            "requested_by": self.requested_by,
            "requested_at": format_timestamp(self.requested_at),
            "target_release_date": format_timestamp(self.target_release_date),
            "status": self.status.value,
            "approvals": [a.to_dict() for a in self.approvals],
            "released_at": format_timestamp(self.released_at),
            "notes": self.notes,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class GrantExpenditure:
    """A spend event recorded against released funds."""

    id: str
    amount: Decimal
    date: datetime
    category: str = "Uncategorised"
    description: str | None = None
    vendor: str | None = None
    invoice_number: str | None = None
    supporting_docs: list[str] | None = None
    compliance_tags: list[str] | None = None
    capital_expense: bool = False
    eligibility: ExpenditureEligibility | None = None
    metadata: dict | None = None

    @property
    def has_supporting_docs(self) -> bool:
        return bool(self.supporting_docs)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "description": self.description,
            "amount": float(self.amount),
            "date": format_timestamp(self.date),
            "vendor": self.vendor,
            "invoice_number": self.invoice_number,
            "supporting_docs": self.supporting_docs,
            "compliance_tags": self.compliance_tags,
            "capital_expense": self.capital_expense,
            "eligibility": self.eligibility.value if self.eligibility else None,
            "metadata": self.metadata,
        }


@dataclass
class GrantCompliance:
    """A compliance obligation tied to a grant.

    The status is whatever was set explicitly; otherwise it is derived each
    time it is read, so an item rolls over to ``overdue`` once its due date
    passes and to ``completed`` once ``completed_at`` is filled in.
    """

    id: str
    title: str = "Compliance requirement"
    description: str | None = None
    due_date: datetime | None = None
    completed_at: datetime | None = None
    explicit_status: ComplianceStatus | None = None
    owner: str | None = None
    evidence_urls: list[str] | None = None
    metadata: dict | None = None

    def resolve_status(self, now: datetime | None = None) -> ComplianceStatus:
        if self.explicit_status is not None:
            return self.explicit_status
        if self.completed_at is not None:
            return ComplianceStatus.COMPLETED
        if self.due_date is not None and self.due_date < (now or utc_now()):
            return ComplianceStatus.OVERDUE
        return ComplianceStatus.PENDING

    @property
    def status(self) -> ComplianceStatus:
        return self.resolve_status()

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "due_date": format_timestamp(self.due_date),
            "completed_at": format_timestamp(self.completed_at),
            "status": self.status.value,
            "owner": self.owner,
            "evidence_urls": self.evidence_urls,
            "metadata": self.metadata,
        }


@dataclass
class GrantRecord:
    """A sanctioned grant and everything recorded against it."""

    id: str
    name: str = "Grant"
    total_sanctioned_amount: Decimal = Decimal("0")
    currency: str = DEFAULT_CURRENCY
    funding_agency: str | None = None
    program: str | None = None
    sanction_number: str | None = None
    sanction_date: datetime | None = None
    managing_department: str | None = None
    purpose: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    disbursements: list[GrantDisbursement] = field(default_factory=list)
    expenditures: list[GrantExpenditure] = field(default_factory=list)
    compliance: list[GrantCompliance] = field(default_factory=list)
    metadata: dict | None = None

    def find_disbursement(self, disbursement_id: str) -> GrantDisbursement | None:
        for disbursement in self.disbursements:
            if disbursement.id == disbursement_id:
                return disbursement
        return None

    @property
    def released_disbursements(self) -> list[GrantDisbursement]:
        return [d for d in self.disbursements if d.status == DisbursementStatus.RELEASED]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "funding_agency": self.funding_agency,
            "program": self.program,
            "sanction_number": self.sanction_number,
            "sanction_date": format_timestamp(self.sanction_date),
            "total_sanctioned_amount": float(self.total_sanctioned_amount),
            "currency": self.currency,
            "managing_department": self.managing_department,
            "purpose": self.purpose,
            "start_date": format_timestamp(self.start_date),
            "end_date": format_timestamp(self.end_date),
            "disbursements": [d.to_dict() for d in self.disbursements],
            "expenditures": [e.to_dict() for e in self.expenditures],
            "compliance": [c.to_dict() for c in self.compliance],
            "metadata": self.metadata,
        }


@dataclass
class GrantCatalog:
    """All grants of one startup, persisted as a single versioned document."""

    version: int = 1
    updated_at: datetime | None = None
    grants: list[GrantRecord] = field(default_factory=list)

    def find_grant(self, grant_id: str) -> GrantRecord | None:
        for grant in self.grants:
            if grant.id == grant_id:
                return grant
        return None

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "updated_at": format_timestamp(self.updated_at),
            "grants": [g.to_dict() for g in self.grants],
        }


@dataclass
class FlattenedGrantDisbursement:
    """A disbursement together with the grant and startup that own it."""

    startup_id: str
    grant_id: str
    grant_name: str
    disbursement: GrantDisbursement

    def to_dict(self) -> dict:
        return {
            "startup_id": self.startup_id,
            "grant_id": self.grant_id,
            "grant_name": self.grant_name,
            "disbursement": self.disbursement.to_dict(),
        }
