"""
API Routes Package

Contains all route modules for the grant ledger API.
"""

from .financials import router as financials_router
from .disbursements import router as disbursements_router
from .reports import router as reports_router

__all__ = [
    "financials_router",
    "disbursements_router",
    "reports_router",
]
