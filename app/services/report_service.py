"""Expense report PDF and CSV export."""

import csv
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial
from io import BytesIO, StringIO
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch, mm
from reportlab.pdfgen import canvas
from reportlab.platypus import (
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from app.services.budget_service import ExpenseReport
from core.config import config
from core.logging import get_logger

logger = get_logger(__name__)

NO_DATA_MESSAGE = "No expenses match the selected filters"

EMERALD = colors.HexColor("#059669")
TOTAL_ROW_FILL = colors.HexColor("#F3F4F6")
MUTED = colors.HexColor("#646464")

SUMMARY_HEADER = ["Metric", "Value", "Details"]
CATEGORY_HEADER = ["Category", "Count", "Amount", "Percentage"]
DETAIL_HEADER = ["Date", "Program", "Description", "Category", "Amount"]


def format_amount(value) -> str:
    """Two decimals with thousands separators, e.g. ``12,345.60``."""
    return f"{Decimal(value):,.2f}"


def format_count(count: int) -> str:
    return f"{count} {'expense' if count == 1 else 'expenses'}"


@dataclass(frozen=True)
class ReportTables:
    """Row data for every table in the report, headers included."""

    summary: list[list[str]]
    categories: list[list[str]]
    details: list[list[str]]


def build_report_tables(report: ExpenseReport) -> ReportTables:
    """
    Turn a report into plain string rows.

    Pure: identical reports give identical rows. The last detail row is
    the total row.
    """
    summary = [
        SUMMARY_HEADER,
        ["Total Expenses", format_amount(report.total_expenses), format_count(report.expense_count)],
        ["Average Expense", format_amount(report.average_expense), "Per expense"],
        ["Time Period", report.timeframe_label, report.program_label],
        [
            "Budget Utilization",
            format_amount(report.remaining_budget),
            f"{format_amount(report.allocated_budget)} allocated",
        ],
    ]

    categories = [CATEGORY_HEADER]
    for name, group in report.by_category.items():
        categories.append(
            [name, format_count(group.count), format_amount(group.total), f"{group.percentage}%"]
        )

    details = [DETAIL_HEADER]
    for expense in report.expenses:
        details.append(
            [
                expense.date.isoformat(),
                report.program_names.get(expense.program_id, "N/A"),
                expense.description,
                expense.category,
                format_amount(expense.amount),
            ]
        )
    details.append(["", "", "", "Total:", format_amount(report.total_expenses)])

    return ReportTables(summary=summary, categories=categories, details=details)


class NumberedCanvas(canvas.Canvas):
    """Canvas that defers page output so the footer can show the page count."""

    def __init__(self, *args, footer_text: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.footer_text = footer_text
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self.draw_footer(page_count)
            super().showPage()
        super().save()

    def draw_footer(self, page_count: int):
        width, _ = self._pagesize
        self.setFont("Helvetica", 8)
        self.setFillColor(MUTED)
        self.drawCentredString(width / 2, 10 * mm, self.footer_text)
        self.drawRightString(
            width - 14 * mm, 10 * mm, f"Page {self._pageNumber} of {page_count}"
        )


class ReportService:
    """Service for exporting expense reports."""

    @staticmethod
    def filename(generated_at: Optional[datetime] = None) -> str:
        generated_at = generated_at or datetime.now(timezone.utc)
        return f"expenses-report-{generated_at.date().isoformat()}.pdf"

    @staticmethod
    def generate_expense_report_pdf(
        report: ExpenseReport,
        generated_at: Optional[datetime] = None,
        organization_name: Optional[str] = None,
    ) -> BytesIO:
        """
        Render the report as a PDF.

        Args:
            report: Report built by ``build_expense_report``
            generated_at: Timestamp printed under the title; now when omitted
            organization_name: Footer text; defaults to REPORT_ORGANIZATION_NAME

        Returns:
            BytesIO object containing the PDF
        """
        generated_at = generated_at or datetime.now(timezone.utc)
        organization_name = organization_name or config.REPORT_ORGANIZATION_NAME

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=14 * mm,
            rightMargin=14 * mm,
            bottomMargin=20 * mm,
            title="Expenses Report",
            invariant=True,
        )
        styles = getSampleStyleSheet()

        title_style = ParagraphStyle(
            "ReportTitle",
            parent=styles["Heading1"],
            fontSize=20,
            textColor=EMERALD,
            alignment=1,
        )
        subtitle_style = ParagraphStyle(
            "ReportSubtitle",
            parent=styles["Normal"],
            fontSize=10,
            textColor=MUTED,
            alignment=1,
        )
        heading_style = ParagraphStyle(
            "SectionHeading",
            parent=styles["Heading2"],
            fontSize=14,
            textColor=EMERALD,
            spaceAfter=8,
        )
        cell_style = ParagraphStyle("Cell", parent=styles["Normal"], fontSize=8)

        tables = build_report_tables(report)
        story = [
            Paragraph("Expenses Report", title_style),
            Paragraph(
                f"Generated on: {generated_at.strftime('%Y-%m-%d at %H:%M:%S')}",
                subtitle_style,
            ),
            Spacer(1, 0.25 * inch),
        ]

        if not report.has_data:
            story.append(Paragraph(NO_DATA_MESSAGE, heading_style))
            story.append(
                Paragraph(
                    escape(f"Time Period: {report.timeframe_label}, {report.program_label}"),
                    subtitle_style,
                )
            )
        else:
            story.append(Paragraph("Summary Statistics", heading_style))
            story.append(ReportService._table(tables.summary, col_widths=None, font_size=9))
            story.append(Spacer(1, 0.25 * inch))

            story.append(Paragraph("Expenses by Category", heading_style))
            story.append(
                ReportService._table(
                    tables.categories, col_widths=None, font_size=9, striped=True
                )
            )
            story.append(Spacer(1, 0.25 * inch))

            story.append(Paragraph("Detailed Expenses", heading_style))
            detail_rows = [tables.details[0]] + [
                [row[0], Paragraph(escape(row[1]), cell_style),
                 Paragraph(escape(row[2]), cell_style), row[3], row[4]]
                for row in tables.details[1:-1]
            ] + [tables.details[-1]]
            detail_table = ReportService._table(
                detail_rows,
                col_widths=[25 * mm, 35 * mm, 60 * mm, 30 * mm, 30 * mm],
                font_size=8,
                striped=True,
            )
            detail_table.setStyle(
                TableStyle(
                    [
                        ("ALIGN", (4, 1), (4, -1), "RIGHT"),
                        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
                        ("BACKGROUND", (0, -1), (-1, -1), TOTAL_ROW_FILL),
                    ]
                )
            )
            story.append(detail_table)

        footer_text = f"{organization_name} - Expenses Report"
        doc.build(
            story,
            canvasmaker=partial(NumberedCanvas, footer_text=footer_text),
        )
        buffer.seek(0)

        logger.info(
            f"Generated expenses report PDF: {report.expense_count} expenses, "
            f"period {report.timeframe_label}"
        )
        return buffer

    @staticmethod
    def _table(rows, col_widths, font_size: int, striped: bool = False) -> Table:
        table = Table(rows, colWidths=col_widths, repeatRows=1)
        style = [
            ("BACKGROUND", (0, 0), (-1, 0), EMERALD),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
            ("FONTSIZE", (0, 0), (-1, -1), font_size),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("TOPPADDING", (0, 0), (-1, -1), 4),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 4),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#E5E7EB")),
        ]
        if striped:
            style.append(
                ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#F9FAFB")])
            )
        table.setStyle(TableStyle(style))
        return table

    @staticmethod
    def generate_expense_report_csv(report: ExpenseReport) -> str:
        """Detailed expense rows, header and total row included."""
        output = StringIO()
        writer = csv.writer(output)
        for row in build_report_tables(report).details:
            writer.writerow(row)
        return output.getvalue()
