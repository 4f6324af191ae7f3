"""
Disbursements API Routes

Provides endpoints for the grant disbursement workflow.
"""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...grants.models import Actor
from ...grants.service import GrantLedgerService
from ...grants.workflow import DisbursementRequest, DisbursementStatusUpdate
from ..auth import get_current_actor
from ..dependencies import get_ledger_service

router = APIRouter(prefix="/grants", tags=["disbursements"])


class DisbursementCreate(BaseModel):
    """Request body for a new disbursement."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    grant_id: str = Field(min_length=1)
    amount: Decimal
    milestone_id: str | None = None
    target_release_date: str | None = None
    tranche: str | None = None
    reference: str | None = None
    notes: str | None = None


class DisbursementStatusChange(BaseModel):
    """Request body for a status decision."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    grant_id: str = Field(min_length=1)
    disbursement_id: str = Field(min_length=1)
    status: str
    note: str | None = None
    release_reference: str | None = None
    release_date: str | None = None


@router.get("/{startup_id}/disbursements")
async def get_disbursement_snapshot(
    startup_id: str,
    grant_id: str | None = Query(None, alias="grantId"),
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    """Get the financial snapshot and disbursements of one grant.

    Args:
        startup_id: Startup ID
        grant_id: Grant ID (first grant if omitted)
        actor: Acting user
        service: Ledger service

    Returns:
        Grant list, grant summary and disbursements newest first
    """
    return service.get_disbursement_snapshot(startup_id, grant_id).to_dict()


@router.get("/{startup_id}/disbursements/all")
async def list_disbursements(
    startup_id: str,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> list[dict]:
    """List every disbursement of a startup across its grants."""
    return [item.to_dict() for item in service.list_disbursements(startup_id)]


@router.post("/{startup_id}/disbursements", status_code=status.HTTP_201_CREATED)
async def request_disbursement(
    startup_id: str,
    body: DisbursementCreate,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    """Request a new disbursement on a grant."""
    result = service.request_disbursement(
        startup_id,
        DisbursementRequest(
            grant_id=body.grant_id,
            amount=body.amount,
            requested_by=actor,
            milestone_id=body.milestone_id,
            target_release_date=body.target_release_date,
            tranche=body.tranche,
            reference=body.reference,
            notes=body.notes,
        ),
    )
    return {"disbursement": result.to_dict()}


@router.put("/{startup_id}/disbursements")
async def update_disbursement_status(
    startup_id: str,
    body: DisbursementStatusChange,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    """Approve, reject or release a disbursement."""
    result = service.update_disbursement_status(
        startup_id,
        DisbursementStatusUpdate(
            grant_id=body.grant_id,
            disbursement_id=body.disbursement_id,
            status=body.status,
            actor=actor,
            note=body.note,
            release_reference=body.release_reference,
            release_date=body.release_date,
        ),
    )
    return {"disbursement": result.to_dict()}
