"""
Grant Reports Module

Utilization certificates and compliance reports over a reporting period,
with Excel and PDF exports.
"""

from .period import ReportRequest, ReportWindow, parse_report_window
from .certificate import UtilizationCertificate, generate_utilization_certificate
from .compliance_report import ComplianceReport, generate_compliance_report
from .report_generator import GrantReportBundle, GrantReportGenerator, generate_grant_reports
from .excel_generator import ReportExcelExporter
from .pdf_generator import CertificatePdfExporter

__all__ = [
    "ReportRequest",
    "ReportWindow",
    "parse_report_window",
    "UtilizationCertificate",
    "generate_utilization_certificate",
    "ComplianceReport",
    "generate_compliance_report",
    "GrantReportBundle",
    "GrantReportGenerator",
    "generate_grant_reports",
    "ReportExcelExporter",
    "CertificatePdfExporter",
]
