"""
Utilization Certificate PDF Exporter

Renders a utilization certificate as a printable PDF document.
"""

import logging
from pathlib import Path
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..grants.coercion import format_timestamp
from ..grants.settings import GrantLedgerSettings
from .certificate import UtilizationCertificate
from .export_paths import export_file_path

logger = logging.getLogger(__name__)


class CertificatePdfExporter:
    """Exports utilization certificates to PDF."""

    def __init__(self, settings: GrantLedgerSettings | None = None):
        self.settings = settings or GrantLedgerSettings()

    def export(self, certificate: UtilizationCertificate, output_path: Path | str | None = None) -> Path:
        """Write the certificate to a PDF file.

        Args:
            certificate: Certificate to render
            output_path: Output file path (derived from the certificate number if None)

        Returns:
            Path to generated file
        """
        if output_path is None:
            output_dir = self.settings.export_output_dir
            output_dir.mkdir(parents=True, exist_ok=True)
            output_path = export_file_path(output_dir, certificate.certificate_number, ".pdf")
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        doc = SimpleDocTemplate(
            str(output_path),
            pagesize=A4,
            rightMargin=0.75*inch,
            leftMargin=0.75*inch,
            topMargin=0.75*inch,
            bottomMargin=0.75*inch,
        )
        doc.build(self._build_elements(certificate))

        logger.info(f"Generated utilization certificate PDF: {output_path}")
        return output_path

    def _build_elements(self, certificate: UtilizationCertificate) -> list:
        styles = getSampleStyleSheet()
        elements = []
        grant = certificate.grant
        currency = certificate.currency

        elements.append(Paragraph("<b>Grant Utilization Certificate</b>", styles['Heading1']))
        elements.append(Paragraph(
            f"Certificate No. {escape(certificate.certificate_number)}",
            styles['Heading3'],
        ))
        elements.append(Spacer(1, 0.2*inch))

        info_data = [
            ["Grant:", grant["name"]],
            ["Funding Agency:", grant.get("funding_agency") or ""],
            ["Sanction Number:", grant.get("sanction_number") or ""],
            ["Managing Department:", grant.get("managing_department") or ""],
            ["Reporting Period:", (
                f"{format_timestamp(certificate.period.start)[:10]} to "
                f"{format_timestamp(certificate.period.end)[:10]}"
            )],
            ["Issued At:", format_timestamp(certificate.issued_at)],
        ]
        info_table = Table(info_data, colWidths=[1.8*inch, 4.5*inch])
        info_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))
        elements.append(info_table)
        elements.append(Spacer(1, 0.25*inch))

        financials = certificate.financials
        elements.append(Paragraph("<b>STATEMENT OF UTILIZATION</b>", styles['Heading3']))
        financial_data = [
            ["", f"Amount ({currency})"],
            ["Total Sanctioned", f"{financials.total_sanctioned:,.2f}"],
            ["Total Disbursed To Date", f"{financials.total_disbursed_to_date:,.2f}"],
            ["Disbursed During Period", f"{financials.disbursed_during_period:,.2f}"],
            ["Opening Balance", f"{financials.opening_balance:,.2f}"],
            ["Utilization During Period", f"{financials.utilization_during_period:,.2f}"],
            ["Cumulative Utilization", f"{financials.cumulative_utilization:,.2f}"],
            ["Closing Balance", f"{financials.closing_balance:,.2f}"],
        ]
        financial_table = Table(financial_data, colWidths=[4*inch, 2.3*inch])
        financial_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('LINEBELOW', (0, 0), (-1, 0), 1, colors.black),
            ('LINEBELOW', (0, -1), (-1, -1), 2, colors.black),
            ('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
        ]))
        elements.append(financial_table)
        elements.append(Spacer(1, 0.25*inch))

        elements.append(Paragraph("<b>EXPENSE BREAKDOWN</b>", styles['Heading3']))
        breakdown_data = [["Category", f"Amount ({currency})", "%"]]
        for line in certificate.expense_breakdown:
            breakdown_data.append([line.category, f"{line.amount:,.2f}", f"{line.percentage:.2f}"])
        if len(breakdown_data) == 1:
            breakdown_data.append(["No expenditure recorded in period", "", ""])

        breakdown_table = Table(breakdown_data, colWidths=[3.3*inch, 2*inch, 1*inch])
        breakdown_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ]))
        elements.append(breakdown_table)
        elements.append(Spacer(1, 0.25*inch))

        summary = certificate.compliance_summary
        elements.append(Paragraph("<b>COMPLIANCE</b>", styles['Heading3']))
        elements.append(Paragraph(
            f"Completed: {summary.completed} &nbsp; Pending: {summary.pending} &nbsp; Overdue: {summary.overdue}",
            styles['Normal'],
        ))
        elements.append(Paragraph(
            f"<i>{escape(summary.remarks)}</i>",
            ParagraphStyle('Remarks', parent=styles['Normal'],
                           textColor=colors.red if summary.overdue else colors.black),
        ))
        elements.append(Spacer(1, 0.5*inch))

        signatories = certificate.signatories
        signature_table = Table(
            [
                ["Prepared By", "Verified By", "Authorised Signatory"],
                [signatories.prepared_by or "", signatories.verified_by or "", signatories.authorised_signatory or ""],
            ],
            colWidths=[2.1*inch, 2.1*inch, 2.1*inch],
        )
        signature_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
            ('LINEABOVE', (0, 0), (-1, 0), 1, colors.black),
        ]))
        elements.append(signature_table)

        return elements
