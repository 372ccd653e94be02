"""
EIQ PDF Report Service.
Generates printable PDF reports for EIQ scenario calculations.
"""
import io
from xml.sax.saxutils import escape
from datetime import datetime
from typing import Any, List, Optional
from reportlab.lib.pagesizes import letter, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib.colors import HexColor
from reportlab.platypus import (
    SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
)
from reportlab.lib.enums import TA_LEFT
import logging

from app.services.pdf_branding import (
    PDFBrandingContext,
    draw_professional_letterhead,
    draw_professional_footer,
    BRAND_GREEN
)
from app.services.eiq_calculator import ComputedRow, EIQTotals
from app.services.eiq_rules import (
    EMPTY_PRODUCT_PLACEHOLDER,
    EMPTY_TIER_PLACEHOLDER,
    METHODOLOGY_NOTES,
)

logger = logging.getLogger(__name__)

REPORT_TITLE = "Reporte – Calculadora EIQ (Escenario)"

REPORT_COLUMNS = [
    '#', 'Producto', 'Veces', 'Normal rate', '% Esc.', 'Scenario rate',
    '% Campo', 'Dose EIQ/ha', 'Prod EIQ/ha', 'Field EIQ/ha', 'Default EIQ/ha'
]

EIQ_COLOR = HexColor(BRAND_GREEN)
TEXT_COLOR = HexColor("#374151")
LIGHT_BG = HexColor("#f0fdf4")
HEADER_BG = HexColor("#d1fae5")
GRID_COLOR = HexColor("#d1d5db")
WHITE = HexColor("#ffffff")


def format_number(value: Any) -> str:
    """Plain number text: integral floats without decimals, None as empty."""
    if value is None:
        return ""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def build_report_rows(computed: List[ComputedRow]) -> List[List[str]]:
    """One text row per application, in REPORT_COLUMNS order."""
    body = []
    for idx, c in enumerate(computed, start=1):
        body.append([
            str(idx),
            c.row.product or EMPTY_PRODUCT_PLACEHOLDER,
            format_number(c.row.times),
            format_number(c.normal_rate),
            format_number(c.row.scenario_pct),
            f"{c.scenario_rate:.3f}",
            format_number(c.row.field_pct),
            f"{c.dose_eiq_ha:.2f}",
            f"{c.product_eiq_ha:.2f}",
            f"{c.field_eiq_ha:.2f}",
            f"{c.default_eiq_ha:.2f}",
        ])
    return body


def build_summary_lines(totals: EIQTotals) -> List[str]:
    """The four summary lines printed under the table."""
    return [
        f"Normal field EIQ/ha: {totals.normal_total:.2f}",
        f"Scenario field EIQ/ha: {totals.scenario_total:.2f}",
        f"Change: {totals.change_pct:.1f}%",
        f"Tier: {totals.tier or EMPTY_TIER_PLACEHOLDER}",
    ]


def create_eiq_pdf_report(
    computed: List[ComputedRow],
    totals: EIQTotals,
    title: Optional[str] = None,
    user_name: str = "Usuario",
    generated_at: Optional[datetime] = None
) -> bytes:
    """
    Generate a PDF report for an EIQ scenario calculation.

    Args:
        computed: Computed rows, in worksheet order
        totals: Aggregate totals and tier
        title: Optional report title (defaults to REPORT_TITLE)
        user_name: Name of the user
        generated_at: Timestamp printed on the report (defaults to now)

    Returns:
        PDF file as bytes
    """
    buffer = io.BytesIO()

    branding = PDFBrandingContext()

    def header_footer(canvas, doc):
        draw_professional_letterhead(
            canvas, doc, branding,
            report_title="REPORTE EIQ",
            module_color=EIQ_COLOR
        )
        draw_professional_footer(canvas, doc, branding)

    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(letter),
        rightMargin=0.5*inch,
        leftMargin=0.5*inch,
        topMargin=1.0*inch,
        bottomMargin=0.6*inch,
        title=title or REPORT_TITLE,
    )

    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'EIQTitle',
        parent=styles['Title'],
        fontSize=14,
        textColor=EIQ_COLOR,
        spaceAfter=4,
        alignment=TA_LEFT
    )

    heading_style = ParagraphStyle(
        'EIQHeading',
        parent=styles['Heading2'],
        fontSize=11,
        textColor=EIQ_COLOR,
        spaceBefore=8,
        spaceAfter=4
    )

    body_style = ParagraphStyle(
        'EIQBody',
        parent=styles['Normal'],
        fontSize=10,
        textColor=TEXT_COLOR,
        spaceAfter=2
    )

    small_style = ParagraphStyle(
        'EIQSmall',
        parent=styles['Normal'],
        fontSize=7,
        textColor=TEXT_COLOR,
        spaceAfter=2
    )

    story = []

    story.append(Paragraph(escape(title or REPORT_TITLE), title_style))
    date_str = (generated_at or datetime.now()).strftime("%d/%m/%Y %H:%M")
    story.append(Paragraph(f"Fecha: {date_str} &nbsp;&nbsp; Usuario: {escape(user_name)}", small_style))
    story.append(Spacer(1, 8))

    table_data = [REPORT_COLUMNS] + build_report_rows(computed)
    col_widths = [0.3*inch, 2.3*inch, 0.5*inch, 0.8*inch, 0.55*inch, 0.85*inch,
                  0.6*inch, 0.8*inch, 0.8*inch, 0.8*inch, 0.9*inch]
    rows_table = Table(table_data, colWidths=col_widths, repeatRows=1)
    rows_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_BG),
        ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_COLOR),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 8),
        ('ALIGN', (2, 1), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('GRID', (0, 0), (-1, -1), 0.5, GRID_COLOR),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [WHITE, LIGHT_BG]),
        ('PADDING', (0, 0), (-1, -1), 3),
    ]))
    story.append(rows_table)
    story.append(Spacer(1, 10))

    for line in build_summary_lines(totals):
        story.append(Paragraph(line, body_style))

    story.append(Spacer(1, 6))
    story.append(Paragraph("Notas de equivalencia (vs. Excel)", heading_style))
    for note in METHODOLOGY_NOTES:
        story.append(Paragraph(f"• {escape(note)}", small_style))

    doc.build(story, onFirstPage=header_footer, onLaterPages=header_footer)

    logger.info(f"EIQ PDF report generated: {len(computed)} rows, tier='{totals.tier}'")
    return buffer.getvalue()
