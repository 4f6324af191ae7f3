"""
Grant Ledger Module

Sanctioned grants per startup, the disbursement approval workflow, financial
summaries and the incubator-wide overview. The service facade lives in
``incubator_finance.grants.service``.
"""

from .exceptions import (
    GrantLedgerError,
    LedgerValidationError,
    LedgerNotFoundError,
    LedgerStateError,
)
from .models import (
    Actor,
    ComplianceStatus,
    DisbursementStatus,
    ExpenditureEligibility,
    FlattenedGrantDisbursement,
    GrantCatalog,
    GrantCompliance,
    GrantDisbursement,
    GrantDisbursementApproval,
    GrantExpenditure,
    GrantRecord,
)
from .normalizer import catalog_to_payload, normalize_catalog
from .financial_summary import GrantFinancialSummary, summarize_grant_financials
from .portfolio import IncubatorFinancialOverview, build_financial_overview
from .eligibility import EligibilityPolicy, KeywordEligibilityPolicy
from .settings import GrantLedgerSettings
from .store import CatalogStore, InMemoryCatalogStore, SqlCatalogStore, StoredCatalogRecord
from .milestones import InMemoryMilestoneDirectory, MilestoneDirectory, SqlMilestoneDirectory
from .workflow import DisbursementRequest, DisbursementStatusUpdate, DisbursementWorkflow

__all__ = [
    "GrantLedgerError",
    "LedgerValidationError",
    "LedgerNotFoundError",
    "LedgerStateError",
    "Actor",
    "ComplianceStatus",
    "DisbursementStatus",
    "ExpenditureEligibility",
    "FlattenedGrantDisbursement",
    "GrantCatalog",
    "GrantCompliance",
    "GrantDisbursement",
    "GrantDisbursementApproval",
    "GrantExpenditure",
    "GrantRecord",
    "catalog_to_payload",
    "normalize_catalog",
    "GrantFinancialSummary",
    "summarize_grant_financials",
    "IncubatorFinancialOverview",
    "build_financial_overview",
    "EligibilityPolicy",
    "KeywordEligibilityPolicy",
    "GrantLedgerSettings",
    "CatalogStore",
    "InMemoryCatalogStore",
    "SqlCatalogStore",
    "StoredCatalogRecord",
    "InMemoryMilestoneDirectory",
    "MilestoneDirectory",
    "SqlMilestoneDirectory",
    "DisbursementRequest",
    "DisbursementStatusUpdate",
    "DisbursementWorkflow",
]
