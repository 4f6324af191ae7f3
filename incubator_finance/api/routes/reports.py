"""
Grant Reports API Routes

Provides endpoints for utilization certificates and compliance reports,
as JSON or as downloadable files.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...grants.models import Actor
from ...grants.service import GrantLedgerService
from ...reports.excel_generator import ReportExcelExporter
from ...reports.pdf_generator import CertificatePdfExporter
from ...reports.period import ReportRequest, ReportWindow
from ..auth import get_current_actor
from ..dependencies import get_excel_exporter, get_ledger_service, get_pdf_exporter

router = APIRouter(prefix="/grants", tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class ReportPeriod(BaseModel):
    start: str
    end: str


class ReportCreate(BaseModel):
    """Request body shared by all report endpoints."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    grant_id: str = Field(min_length=1)
    period: ReportPeriod
    issued_by: str | None = None
    issued_at: str | None = None
    certificate_number: str | None = None
    prepared_by: str | None = None
    verified_by: str | None = None


def _report_request(body: ReportCreate, actor: Actor) -> ReportRequest:
    """Build the report request; the issuer defaults to the acting user."""
    return ReportRequest(
        grant_id=body.grant_id.strip(),
        period=ReportWindow(start=body.period.start, end=body.period.end),
        issued_by=body.issued_by or actor.name or actor.email or actor.id,
        issued_at=body.issued_at,
        certificate_number=body.certificate_number,
        prepared_by=body.prepared_by,
        verified_by=body.verified_by,
    )


@router.post("/{startup_id}/reports")
async def generate_reports(
    startup_id: str,
    body: ReportCreate,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    """Generate the utilization certificate and compliance report together."""
    bundle = service.generate_reports(startup_id, _report_request(body, actor))
    return {"reports": bundle.to_dict()}


@router.post("/{startup_id}/reports/certificate")
async def generate_certificate(
    startup_id: str,
    body: ReportCreate,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    certificate = service.generate_utilization_certificate(startup_id, _report_request(body, actor))
    return {"certificate": certificate.to_dict()}


@router.post("/{startup_id}/reports/compliance")
async def generate_compliance_report(
    startup_id: str,
    body: ReportCreate,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
) -> dict:
    report = service.generate_compliance_report(startup_id, _report_request(body, actor))
    return {"compliance_report": report.to_dict()}


@router.post("/{startup_id}/reports/certificate.xlsx")
async def download_report_workbook(
    startup_id: str,
    body: ReportCreate,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
    exporter: ReportExcelExporter = Depends(get_excel_exporter),
) -> FileResponse:
    """Download the report bundle as an Excel workbook."""
    bundle = service.generate_reports(startup_id, _report_request(body, actor))
    path = exporter.export(bundle)
    return FileResponse(path, media_type=XLSX_MEDIA_TYPE, filename=path.name)


@router.post("/{startup_id}/reports/certificate.pdf")
async def download_certificate_pdf(
    startup_id: str,
    body: ReportCreate,
    actor: Actor = Depends(get_current_actor),
    service: GrantLedgerService = Depends(get_ledger_service),
    exporter: CertificatePdfExporter = Depends(get_pdf_exporter),
) -> FileResponse:
    """Download the utilization certificate as a PDF."""
    certificate = service.generate_utilization_certificate(startup_id, _report_request(body, actor))
    path = exporter.export(certificate)
    return FileResponse(path, media_type="application/pdf", filename=path.name)
