"""
Grant Financials API Routes

Provides the incubator-wide financial overview and per-startup catalogs.
"""

from fastapi import APIRouter, Depends

from ...grants.models import Actor
from ...grants.service import GrantLedgerService
from ..auth import get_current_actor
from ..dependencies import get_ledger_service

router = APIRouter(prefix="/grants", tags=["grants"])


@router.get("/financials")
async def get_financial_overview(
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    """Get per-currency totals and per-grant summaries across all startups."""
    return service.get_financial_overview().to_dict()


@router.get("/{startup_id}/catalog")
async def get_catalog(
    startup_id: str,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    """Get a startup's normalized grant catalog.

    Args:
        startup_id: Startup ID
        actor: Acting user
        service: Ledger service

    Returns:
        Catalog with all grants
    """
    catalog = service.get_catalog(startup_id)
    return {"startup_id": startup_id, "catalog": catalog.to_dict()}
