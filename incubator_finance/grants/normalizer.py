"""
Grant Catalog Normalizer

Parses loosely-typed stored or submitted catalog payloads into typed records,
and projects typed records back into the stored payload form.

Malformed numbers and dates never raise: numbers fall back to a default and
dates become None. A record with no usable ``id`` raises CatalogPayloadError
so that corrupt documents are reported instead of silently rewritten.
"""

import logging
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from .coercion import (
    clean_string,
    clean_string_list,
    format_timestamp,
    parse_amount,
    parse_int,
    parse_timestamp,
    utc_now,
)
from .exceptions import CatalogPayloadError
from .models import (
    DEFAULT_CURRENCY,
    ComplianceStatus,
    DisbursementStatus,
    ExpenditureEligibility,
    GrantCatalog,
    GrantCompliance,
    GrantDisbursement,
    GrantDisbursementApproval,
    GrantExpenditure,
    GrantRecord,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _require_id(payload: Mapping, path: str) -> str:
    record_id = clean_string(payload.get("id"))
    if not record_id:
        raise CatalogPayloadError(path, "record is missing an id")
    return record_id


def _metadata(value: Any) -> dict | None:
    return dict(value) if isinstance(value, Mapping) else None


def _records(payload: Mapping, key: str, path: str) -> list[tuple[str, Mapping]]:
    """Mapping entries of a payload collection with their JSON paths."""
    items = payload.get(key)
    if items is None:
        return []
    if not isinstance(items, list):
        logger.warning(f"{path}.{key} is not a list; treating it as empty")
        return []

    entries = []
    for index, item in enumerate(items):
        item_path = f"{path}.{key}[{index}]" if path else f"{key}[{index}]"
        if not isinstance(item, Mapping):
            logger.warning(f"Skipping malformed entry at {item_path}")
            continue
        entries.append((item_path, item))
    return entries


# =============================================================================
# Payload -> records
# =============================================================================

def normalize_approval(payload: Mapping, clock: Clock = utc_now) -> GrantDisbursementApproval:
    """Normalize one approval-trail entry."""
    return GrantDisbursementApproval(
        id=clean_string(payload.get("id")) or str(uuid.uuid4()),
        status=DisbursementStatus.parse(payload.get("status")) or DisbursementStatus.PENDING,
        decided_at=parse_timestamp(payload.get("decidedAt")) or clock(),
        actor_id=clean_string(payload.get("actorId")),
        actor_name=clean_string(payload.get("actorName")),
        actor_email=clean_string(payload.get("actorEmail")),
        note=clean_string(payload.get("note")),
    )


def normalize_disbursement(
    payload: Mapping,
    path: str = "disbursement",
    clock: Clock = utc_now,
) -> GrantDisbursement:
    """Normalize a disbursement payload.

    The nominal date falls back through releasedAt, targetReleaseDate and
    requestedAt before defaulting to now. A missing or unknown status is
    ``released`` when a release timestamp exists, otherwise ``pending``.
    """
    requested_at = parse_timestamp(payload.get("requestedAt"))
    target_release_date = parse_timestamp(payload.get("targetReleaseDate"))
    released_at = parse_timestamp(payload.get("releasedAt"))
    nominal_date = (
        parse_timestamp(payload.get("date"))
        or released_at
        or target_release_date
        or requested_at
        or clock()
    )
    fallback_status = DisbursementStatus.RELEASED if released_at else DisbursementStatus.PENDING

    return GrantDisbursement(
        id=_require_id(payload, path),
        amount=parse_amount(payload.get("amount"), 0),
        date=nominal_date,
        status=DisbursementStatus.parse(payload.get("status")) or fallback_status,
        approvals=[
            normalize_approval(item, clock)
            for _, item in _records(payload, "approvals", path)
        ],
        tranche=clean_string(payload.get("tranche")),
        reference=clean_string(payload.get("reference")),
        milestone_id=clean_string(payload.get("milestoneId")),
        requested_by=clean_string(payload.get("requestedBy")),
        requested_at=requested_at,
        target_release_date=target_release_date,
        released_at=released_at,
        notes=clean_string(payload.get("notes")),
        metadata=_metadata(payload.get("metadata")),
    )


def normalize_expenditure(
    payload: Mapping,
    path: str = "expenditure",
    clock: Clock = utc_now,
) -> GrantExpenditure:
    """Normalize an expenditure payload."""
    capital_expense = payload.get("capitalExpense")

    return GrantExpenditure(
        id=_require_id(payload, path),
        amount=parse_amount(payload.get("amount"), 0),
        date=parse_timestamp(payload.get("date")) or clock(),
        category=clean_string(payload.get("category")) or "Uncategorised",
        description=clean_string(payload.get("description")),
        vendor=clean_string(payload.get("vendor")),
        invoice_number=clean_string(payload.get("invoiceNumber")),
        supporting_docs=clean_string_list(payload.get("supportingDocs")),
        compliance_tags=clean_string_list(payload.get("complianceTags")),
        capital_expense=capital_expense if isinstance(capital_expense, bool) else False,
        eligibility=ExpenditureEligibility.parse(payload.get("eligibility")),
        metadata=_metadata(payload.get("metadata")),
    )


def normalize_compliance(payload: Mapping, path: str = "compliance") -> GrantCompliance:
    """Normalize a compliance item; only a valid explicit status is kept."""
    return GrantCompliance(
        id=_require_id(payload, path),
        title=clean_string(payload.get("title")) or "Compliance requirement",
        description=clean_string(payload.get("description")),
        due_date=parse_timestamp(payload.get("dueDate")),
        completed_at=parse_timestamp(payload.get("completedAt")),
        explicit_status=ComplianceStatus.parse(payload.get("status")),
        owner=clean_string(payload.get("owner")),
        evidence_urls=clean_string_list(payload.get("evidenceUrls")),
        metadata=_metadata(payload.get("metadata")),
    )


def normalize_grant(
    payload: Mapping,
    path: str = "grant",
    clock: Clock = utc_now,
) -> GrantRecord:
    """Normalize a grant with all of its owned collections."""
    sanctioned = parse_amount(payload.get("totalSanctionedAmount"), 0)
    if sanctioned < 0:
        logger.warning(f"{path} has a negative sanctioned amount; clamping to 0")
        sanctioned = Decimal("0")

    currency = clean_string(payload.get("currency"))

    return GrantRecord(
        id=_require_id(payload, path),
        name=clean_string(payload.get("name")) or "Grant",
        total_sanctioned_amount=sanctioned,
        currency=currency.upper() if currency else DEFAULT_CURRENCY,
        funding_agency=clean_string(payload.get("fundingAgency")),
        program=clean_string(payload.get("program")),
        sanction_number=clean_string(payload.get("sanctionNumber")),
        sanction_date=parse_timestamp(payload.get("sanctionDate")),
        managing_department=clean_string(payload.get("managingDepartment")),
        purpose=clean_string(payload.get("purpose")),
        start_date=parse_timestamp(payload.get("startDate")),
        end_date=parse_timestamp(payload.get("endDate")),
        disbursements=[
            normalize_disbursement(item, item_path, clock)
            for item_path, item in _records(payload, "disbursements", path)
        ],
        expenditures=[
            normalize_expenditure(item, item_path, clock)
            for item_path, item in _records(payload, "expenditures", path)
        ],
        compliance=[
            normalize_compliance(item, item_path)
            for item_path, item in _records(payload, "compliance", path)
        ],
        metadata=_metadata(payload.get("metadata")),
    )


def normalize_catalog(payload: Any, clock: Clock = utc_now) -> GrantCatalog:
    """Normalize a whole stored catalog document.

    Args:
        payload: Stored JSON document (None or non-mapping yields an empty catalog)
        clock: Source of "now" for defaulted timestamps

    Returns:
        GrantCatalog

    Raises:
        CatalogPayloadError: If a record has no id
    """
    if not isinstance(payload, Mapping):
        return GrantCatalog()

    version = parse_int(payload.get("version", 1), 1)

    return GrantCatalog(
        version=version if version >= 0 else 1,
        updated_at=parse_timestamp(payload.get("updatedAt")),
        grants=[
            normalize_grant(item, item_path, clock)
            for item_path, item in _records(payload, "grants", "")
        ],
    )


# =============================================================================
# Records -> payload
# =============================================================================

def _compact(payload: dict) -> dict:
    return {key: value for key, value in payload.items() if value is not None}


def _money(value: Decimal) -> float | int:
    return int(value) if value == value.to_integral_value() else float(value)


def approval_to_payload(approval: GrantDisbursementApproval) -> dict:
    return _compact({
        "id": approval.id,
        "status": approval.status.value,
        "note": approval.note,
        "actorId": approval.actor_id,
        "actorName": approval.actor_name,
        "actorEmail": approval.actor_email,
        "decidedAt": format_timestamp(approval.decided_at),
    })


def disbursement_to_payload(disbursement: GrantDisbursement) -> dict:
    return _compact({
        "id": disbursement.id,
        "amount": _money(disbursement.amount),
        "date": format_timestamp(disbursement.date),
        "tranche": disbursement.tranche,
        "reference": disbursement.reference,
        "milestoneId": disbursement.milestone_id,
        "requestedBy": disbursement.requested_by,
        "requestedAt": format_timestamp(disbursement.requested_at),
        "targetReleaseDate": format_timestamp(disbursement.target_release_date),
        "status": disbursement.status.value,
        "approvals": [approval_to_payload(a) for a in disbursement.approvals],
        "releasedAt": format_timestamp(disbursement.released_at),
        "notes": disbursement.notes,
        "metadata": disbursement.metadata,
    })


def expenditure_to_payload(expenditure: GrantExpenditure) -> dict:
    return _compact({
        "id": expenditure.id,
        "category": expenditure.category,
        "description": expenditure.description,
        "amount": _money(expenditure.amount),
        "date": format_timestamp(expenditure.date),
        "vendor": expenditure.vendor,
        "invoiceNumber": expenditure.invoice_number,
        "supportingDocs": expenditure.supporting_docs,
        "complianceTags": expenditure.compliance_tags,
        "capitalExpense": expenditure.capital_expense,
        "eligibility": expenditure.eligibility.value if expenditure.eligibility else None,
        "metadata": expenditure.metadata,
    })


def compliance_to_payload(compliance: GrantCompliance) -> dict:
    # Derived status is not persisted so it keeps tracking the due date.
    return _compact({
        "id": compliance.id,
        "title": compliance.title,
        "description": compliance.description,
        "dueDate": format_timestamp(compliance.due_date),
        "completedAt": format_timestamp(compliance.completed_at),
        "status": compliance.explicit_status.value if compliance.explicit_status else None,
        "owner": compliance.owner,
        "evidenceUrls": compliance.evidence_urls,
        "metadata": compliance.metadata,
    })


def grant_to_payload(grant: GrantRecord) -> dict:
    return _compact({
        "id": grant.id,
        "name": grant.name,
        "fundingAgency": grant.funding_agency,
        "program": grant.program,
        "sanctionNumber": grant.sanction_number,
        "sanctionDate": format_timestamp(grant.sanction_date),
        "totalSanctionedAmount": _money(grant.total_sanctioned_amount),
        "currency": grant.currency,
        "managingDepartment": grant.managing_department,
        "purpose": grant.purpose,
        "startDate": format_timestamp(grant.start_date),
        "endDate": format_timestamp(grant.end_date),
        "disbursements": [disbursement_to_payload(d) for d in grant.disbursements],
        "expenditures": [expenditure_to_payload(e) for e in grant.expenditures],
        "compliance": [compliance_to_payload(c) for c in grant.compliance],
        "metadata": grant.metadata,
    })


def catalog_to_payload(catalog: GrantCatalog) -> dict:
    """Project a catalog into its stored JSON document form."""
    return _compact({
        "version": catalog.version,
        "updatedAt": format_timestamp(catalog.updated_at),
        "grants": [grant_to_payload(g) for g in catalog.grants],
    })
