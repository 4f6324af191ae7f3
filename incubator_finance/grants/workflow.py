"""
Disbursement Workflow Module

Lifecycle of a grant disbursement: request, approve, reject, release.

A disbursement starts as ``pending`` with a single approval-trail entry from
its requester. Every later decision appends to the trail. ``released`` is an
absorbing state: once money has gone out, the status can no longer change.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from .coercion import clean_string, parse_amount, parse_timestamp, utc_now
from .exceptions import (
    DisbursementNotFoundError,
    GrantNotFoundError,
    InvalidAmountError,
    InvalidStatusError,
    MilestoneNotFoundError,
    OverCommitmentError,
    TerminalStateError,
)
from .financial_summary import summarize_grant_financials
from .milestones import MilestoneDirectory
from .models import (
    Actor,
    DisbursementStatus,
    FlattenedGrantDisbursement,
    GrantCatalog,
    GrantDisbursement,
    GrantDisbursementApproval,
    GrantRecord,
)
from .normalizer import Clock
from .settings import GrantLedgerSettings
from .store import CatalogStore

logger = logging.getLogger(__name__)

DEFAULT_REQUEST_NOTE = "Disbursement requested"


@dataclass
class DisbursementRequest:
    """Input for a new disbursement request."""

    grant_id: str
    amount: Any
    requested_by: Actor
    milestone_id: str | None = None
    target_release_date: Any = None
    tranche: str | None = None
    reference: str | None = None
    notes: str | None = None


@dataclass
class DisbursementStatusUpdate:
    """Input for a status decision on an existing disbursement."""

    grant_id: str
    disbursement_id: str
    status: Any
    actor: Actor
    note: str | None = None
    release_reference: str | None = None
    release_date: Any = None


class DisbursementWorkflow:
    """Validates and applies disbursement mutations against the catalog store."""

    def __init__(
        self,
        store: CatalogStore,
        milestones: MilestoneDirectory,
        settings: GrantLedgerSettings | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize the workflow.

        Args:
            store: Catalog persistence
            milestones: Milestone existence check
            settings: Ledger settings (over-commitment policy)
            clock: Source of "now"
        """
        self.store = store
        self.milestones = milestones
        self.settings = settings or GrantLedgerSettings()
        self.clock = clock

    def request_disbursement(
        self,
        startup_id: str,
        request: DisbursementRequest,
    ) -> FlattenedGrantDisbursement:
        """Create a pending disbursement on a grant.

        Args:
            startup_id: Owning startup
            request: Request details

        Returns:
            The new disbursement with its grant and startup

        Raises:
            InvalidAmountError: Amount is missing or not positive
            MilestoneNotFoundError: Referenced milestone does not exist
            GrantNotFoundError: Grant does not exist for the startup
            OverCommitmentError: Policy is ``reject`` and the sanction would be exceeded
        """
        amount = parse_amount(request.amount, 0)
        if amount <= 0:
            raise InvalidAmountError(request.amount)

        milestone_id = clean_string(request.milestone_id)
        if milestone_id and not self.milestones.exists(startup_id, milestone_id):
            raise MilestoneNotFoundError(startup_id, milestone_id)

        catalog, grant = self._load_grant(startup_id, request.grant_id)
        self._check_commitment(startup_id, grant, amount)

        now = self.clock()
        target_release_date = parse_timestamp(request.target_release_date)
        requester = request.requested_by
        request_note = clean_string(request.notes)

        metadata = {
            key: value
            for key, value in {
                "requestedByName": requester.name,
                "requestedByEmail": requester.email,
            }.items()
            if value
        }

        disbursement = GrantDisbursement(
            id=str(uuid.uuid4()),
            amount=amount,
            date=target_release_date or now,
            status=DisbursementStatus.PENDING,
            approvals=[
                GrantDisbursementApproval(
                    id=str(uuid.uuid4()),
                    status=DisbursementStatus.PENDING,
                    decided_at=now,
                    actor_id=requester.id,
                    actor_name=requester.name,
                    actor_email=requester.email,
                    note=request_note or DEFAULT_REQUEST_NOTE,
                )
            ],
            tranche=clean_string(request.tranche),
            reference=clean_string(request.reference),
            milestone_id=milestone_id,
            requested_by=requester.id,
            requested_at=now,
            target_release_date=target_release_date,
            notes=request_note,
            metadata=metadata or None,
        )
        grant.disbursements.append(disbursement)

        self._save(startup_id, catalog, now)
        logger.info(
            f"Disbursement {disbursement.id} requested on grant {grant.id} "
            f"for startup {startup_id}: {amount} {grant.currency}"
        )

        return FlattenedGrantDisbursement(
            startup_id=startup_id,
            grant_id=grant.id,
            grant_name=grant.name,
            disbursement=disbursement,
        )

    def update_disbursement_status(
        self,
        startup_id: str,
        update: DisbursementStatusUpdate,
    ) -> FlattenedGrantDisbursement:
        """Record a status decision on a disbursement.

        Raises:
            InvalidStatusError: Status is not a known disbursement status
            GrantNotFoundError: Grant does not exist for the startup
            DisbursementNotFoundError: Disbursement does not exist on the grant
            TerminalStateError: Disbursement has already been released
        """
        status = DisbursementStatus.parse(update.status)
        if status is None:
            raise InvalidStatusError(update.status)

        catalog, grant = self._load_grant(startup_id, update.grant_id)
        disbursement = grant.find_disbursement(update.disbursement_id)
        if disbursement is None:
            raise DisbursementNotFoundError(grant.id, update.disbursement_id)

        if disbursement.is_terminal:
            raise TerminalStateError(disbursement.id, status.value)

        now = self.clock()
        release_date = parse_timestamp(update.release_date)
        actor = update.actor
        previous_status = disbursement.status

        disbursement.approvals.append(
            GrantDisbursementApproval(
                id=str(uuid.uuid4()),
                status=status,
                decided_at=release_date or now,
                actor_id=actor.id,
                actor_name=actor.name,
                actor_email=actor.email,
                note=clean_string(update.note),
            )
        )
        disbursement.status = status

        if status == DisbursementStatus.RELEASED:
            released_at = release_date or now
            disbursement.released_at = released_at
            disbursement.date = released_at
            release_reference = clean_string(update.release_reference)
            if release_reference:
                disbursement.reference = release_reference
        elif status == DisbursementStatus.REJECTED:
            disbursement.released_at = None

        self._save(startup_id, catalog, now)
        logger.info(
            f"Disbursement {disbursement.id} on grant {grant.id} moved "
            f"{previous_status.value} -> {status.value} by {actor.id}"
        )

        return FlattenedGrantDisbursement(
            startup_id=startup_id,
            grant_id=grant.id,
            grant_name=grant.name,
            disbursement=disbursement,
        )

    def _load_grant(self, startup_id: str, grant_id: str) -> tuple[GrantCatalog, GrantRecord]:
        catalog = self.store.get(startup_id)
        grant = catalog.find_grant(grant_id) if catalog else None
        if grant is None:
            raise GrantNotFoundError(grant_id)
        return catalog, grant

    def _check_commitment(self, startup_id: str, grant: GrantRecord, amount: Decimal) -> None:
        if self.settings.over_commitment_policy != "reject":
            return

        summary = summarize_grant_financials(startup_id, grant)
        committed = summary.total_released + summary.total_pending_amount
        if committed + amount > summary.total_sanctioned:
            raise OverCommitmentError(grant.id, amount, committed, summary.total_sanctioned)

    def _save(self, startup_id: str, catalog: GrantCatalog, now: datetime) -> None:
        expected_version = catalog.version
        catalog.version = expected_version + 1
        catalog.updated_at = now
        self.store.put(startup_id, catalog, expected_version=expected_version)
