"""
Grant Report Excel Exporter

Writes a utilization certificate and compliance report bundle to a formatted
Excel workbook, one sheet per report.
"""

import logging
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from ..grants.coercion import format_timestamp
from ..grants.settings import GrantLedgerSettings
from .certificate import UtilizationCertificate
from .compliance_report import ComplianceReport
from .export_paths import export_file_path
from .report_generator import GrantReportBundle

logger = logging.getLogger(__name__)


class ReportExcelExporter:
    """Exports grant report bundles to Excel."""

    def __init__(self, settings: GrantLedgerSettings | None = None):
        """Initialize the exporter.

        Args:
            settings: Ledger settings (export directory and styles)
        """
        self.settings = settings or GrantLedgerSettings()
        self._setup_styles()

    def _setup_styles(self) -> None:
        """Setup Excel styles from config."""
        styles = self.settings.exports.get("excel", {})
        font_name = styles.get("font", "Arial")
        header_color = styles.get("header_fill", "1F4E78")
        section_color = styles.get("section_fill", "D9E1F2")

        self.header_font = Font(name=font_name, size=14, bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color=header_color, end_color=header_color, fill_type="solid")

        self.section_font = Font(name=font_name, size=11, bold=True)
        self.section_fill = PatternFill(start_color=section_color, end_color=section_color, fill_type="solid")

        self.label_font = Font(name=font_name, size=10, bold=True)
        self.normal_font = Font(name=font_name, size=10)

        thin_border = Side(style="thin", color="000000")
        self.border = Border(left=thin_border, right=thin_border, top=thin_border, bottom=thin_border)

        self.center_align = Alignment(horizontal="center", vertical="center")
        self.right_align = Alignment(horizontal="right", vertical="center")
        self.wrap_align = Alignment(horizontal="left", vertical="top", wrap_text=True)

        self.currency_format = styles.get("currency_format", "#,##0.00")

    def export(self, bundle: GrantReportBundle, output_path: Path | str | None = None) -> Path:
        """Write the bundle to an .xlsx file.

        Args:
            bundle: Certificate and compliance report
            output_path: Output file path (derived from the certificate number if None)

        Returns:
            Path to generated file
        """
        wb = Workbook()
        certificate_sheet = wb.active
        certificate_sheet.title = "Utilization Certificate"
        self._write_certificate(certificate_sheet, bundle.certificate)

        compliance_sheet = wb.create_sheet("Compliance Report")
        self._write_compliance_report(compliance_sheet, bundle.compliance_report)

        if output_path is None:
            output_path = self._generate_output_path(bundle.certificate)
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        wb.save(output_path)
        logger.info(f"Generated grant report workbook: {output_path}")

        return output_path

    def _generate_output_path(self, certificate: UtilizationCertificate) -> Path:
        output_dir = self.settings.export_output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        return export_file_path(output_dir, certificate.certificate_number, ".xlsx")

    def _write_title(self, ws, row: int, title: str) -> int:
        ws.merge_cells(f"A{row}:D{row}")
        cell = ws[f"A{row}"]
        cell.value = title
        cell.font = self.header_font
        cell.fill = self.header_fill
        cell.alignment = self.center_align
        return row + 1

    def _write_section(self, ws, row: int, title: str) -> int:
        ws.merge_cells(f"A{row}:D{row}")
        cell = ws[f"A{row}"]
        cell.value = title
        cell.font = self.section_font
        cell.fill = self.section_fill
        return row + 1

    def _write_pair(self, ws, row: int, label: str, value, money: bool = False) -> int:
        label_cell = ws.cell(row=row, column=1, value=label)
        label_cell.font = self.label_font
        label_cell.border = self.border

        value_cell = ws.cell(row=row, column=2, value=value)
        value_cell.font = self.normal_font
        value_cell.border = self.border
        if money:
            value_cell.number_format = self.currency_format
            value_cell.alignment = self.right_align
        return row + 1

    def _write_lines(self, ws, row: int, lines: list[str]) -> int:
        for line in lines:
            ws.merge_cells(f"A{row}:D{row}")
            cell = ws[f"A{row}"]
            cell.value = f"- {line}"
            cell.font = self.normal_font
            cell.alignment = self.wrap_align
            row += 1
        return row

    def _write_certificate(self, ws, certificate: UtilizationCertificate) -> None:
        for col_letter, width in {"A": 32, "B": 24, "C": 18, "D": 18}.items():
            ws.column_dimensions[col_letter].width = width

        grant = certificate.grant
        financials = certificate.financials
        currency = certificate.currency

        row = self._write_title(ws, 1, "Grant Utilization Certificate")
        row += 1

        row = self._write_pair(ws, row, "Certificate Number", certificate.certificate_number)
        row = self._write_pair(ws, row, "Issued At", format_timestamp(certificate.issued_at))
        row = self._write_pair(ws, row, "Grant", grant["name"])
        row = self._write_pair(ws, row, "Funding Agency", grant.get("funding_agency") or "")
        row = self._write_pair(ws, row, "Sanction Number", grant.get("sanction_number") or "")
        row = self._write_pair(
            ws, row, "Reporting Period",
            f"{format_timestamp(certificate.period.start)} to {format_timestamp(certificate.period.end)}",
        )
        row += 1

        row = self._write_section(ws, row, f"Financials ({currency})")
        for label, amount in [
            ("Total Sanctioned", financials.total_sanctioned),
            ("Total Disbursed To Date", financials.total_disbursed_to_date),
            ("Disbursed During Period", financials.disbursed_during_period),
            ("Opening Balance", financials.opening_balance),
            ("Utilization During Period", financials.utilization_during_period),
            ("Cumulative Utilization", financials.cumulative_utilization),
            ("Closing Balance", financials.closing_balance),
        ]:
            row = self._write_pair(ws, row, label, float(amount), money=True)
        row += 1

        row = self._write_section(ws, row, "Expense Breakdown")
        for col, header in enumerate(["Category", f"Amount ({currency})", "Percentage"], 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.label_font
            cell.border = self.border
            cell.alignment = self.center_align
        row += 1

        for line in certificate.expense_breakdown:
            ws.cell(row=row, column=1, value=line.category).border = self.border
            amount_cell = ws.cell(row=row, column=2, value=float(line.amount))
            amount_cell.number_format = self.currency_format
            amount_cell.border = self.border
            percent_cell = ws.cell(row=row, column=3, value=float(line.percentage) / 100)
            percent_cell.number_format = "0.00%"
            percent_cell.border = self.border
            row += 1
        row += 1

        summary = certificate.compliance_summary
        row = self._write_section(ws, row, "Compliance Summary")
        row = self._write_pair(ws, row, "Completed", summary.completed)
        row = self._write_pair(ws, row, "Pending", summary.pending)
        row = self._write_pair(ws, row, "Overdue", summary.overdue)
        row = self._write_pair(ws, row, "Remarks", summary.remarks)
        row += 1

        signatories = certificate.signatories
        row = self._write_section(ws, row, "Signatories")
        row = self._write_pair(ws, row, "Prepared By", signatories.prepared_by or "")
        row = self._write_pair(ws, row, "Verified By", signatories.verified_by or "")
        self._write_pair(ws, row, "Authorised Signatory", signatories.authorised_signatory or "")

    def _write_compliance_report(self, ws, report: ComplianceReport) -> None:
        for col_letter, width in {"A": 32, "B": 36, "C": 18, "D": 18}.items():
            ws.column_dimensions[col_letter].width = width

        summary = report.executive_summary
        status = report.compliance_status

        row = self._write_title(ws, 1, f"Grant Compliance Report: {report.grant['name']}")
        row += 1
        row = self._write_pair(ws, row, "Generated At", format_timestamp(report.generated_at))
        row += 1

        row = self._write_section(ws, row, "Executive Summary")
        row = self._write_pair(ws, row, "Total Expenditure", float(summary.total_expenditure), money=True)
        row = self._write_pair(ws, row, "Eligible Expenditure", float(summary.eligible_expenditure), money=True)
        row = self._write_pair(ws, row, "Ineligible Expenditure", float(summary.ineligible_expenditure), money=True)
        row = self._write_pair(ws, row, "Utilisation Ratio", float(summary.utilisation_ratio))
        row = self._write_lines(ws, row, summary.observations)
        row += 1

        row = self._write_section(ws, row, "Compliance Status")
        row = self._write_pair(ws, row, "Total Items", status.total_items)
        row = self._write_pair(ws, row, "Completed", status.completed)
        row = self._write_pair(ws, row, "In Progress", status.in_progress)
        row = self._write_pair(ws, row, "Pending", status.pending)
        row = self._write_pair(ws, row, "Overdue", status.overdue)
        row += 1

        row = self._write_section(ws, row, "Outstanding Actions")
        for action in report.outstanding_actions:
            ws.cell(row=row, column=1, value=action.title).border = self.border
            ws.cell(row=row, column=2, value=action.owner or "").border = self.border
            ws.cell(row=row, column=3, value=format_timestamp(action.due_date) or "").border = self.border
            ws.cell(row=row, column=4, value=action.status.value).border = self.border
            row += 1
        row += 1

        row = self._write_section(ws, row, "Documentation Findings")
        for finding in report.documentation_findings:
            ws.cell(row=row, column=1, value=finding.expenditure_id).border = self.border
            ws.cell(row=row, column=2, value=finding.description or finding.notes).border = self.border
            amount_cell = ws.cell(row=row, column=3, value=float(finding.amount))
            amount_cell.number_format = self.currency_format
            amount_cell.border = self.border
            row += 1
        row += 1

        row = self._write_section(ws, row, "Recommendations")
        self._write_lines(ws, row, report.recommendations)
