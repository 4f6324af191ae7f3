"""
API Dependencies

Wires the ledger service to the SQL-backed store for FastAPI routes.
"""

from functools import lru_cache

from ..grants.milestones import SqlMilestoneDirectory
from ..grants.service import GrantLedgerService
from ..grants.settings import GrantLedgerSettings
from ..grants.store import SqlCatalogStore
from ..reports.excel_generator import ReportExcelExporter
from ..reports.pdf_generator import CertificatePdfExporter
from .database import get_engine


@lru_cache
def get_settings() -> GrantLedgerSettings:
    return GrantLedgerSettings()


@lru_cache
def get_ledger_service() -> GrantLedgerService:
    """Ledger service over the configured database."""
    engine = get_engine()
    return GrantLedgerService(
        store=SqlCatalogStore(engine),
        milestones=SqlMilestoneDirectory(engine),
        settings=get_settings(),
    )


def get_excel_exporter() -> ReportExcelExporter:
    return ReportExcelExporter(get_settings())


def get_pdf_exporter() -> CertificatePdfExporter:
    return CertificatePdfExporter(get_settings())
