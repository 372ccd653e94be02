"""Branding helpers shared by the PDF reports."""
from dataclasses import dataclass
from typing import Optional
import os

from reportlab.lib.colors import HexColor

BRAND_GREEN = "#16a34a"
TEXT_GRAY = HexColor("#6b7280")

EIQ_COMPANY_NAME = os.environ.get("EIQ_COMPANY_NAME", "Calculadora EIQ")


@dataclass
class PDFBrandingContext:
    company_name: str = EIQ_COMPANY_NAME
    company_tagline: Optional[str] = "Paridad con Excel (solo cálculo) – Catálogo AR."
    company_email: Optional[str] = None
    company_phone: Optional[str] = None


def draw_professional_letterhead(canvas, doc, branding: PDFBrandingContext,
                                 report_title: str = "", module_color=None) -> None:
    """Company name, tagline and report title above a colored rule."""
    color = module_color or HexColor(BRAND_GREEN)
    page_width, page_height = doc.pagesize
    left = doc.leftMargin
    right = page_width - doc.rightMargin
    top = page_height - 0.45 * doc.topMargin

    canvas.saveState()
    canvas.setFillColor(color)
    canvas.setFont("Helvetica-Bold", 13)
    canvas.drawString(left, top, branding.company_name)
    if report_title:
        canvas.setFont("Helvetica-Bold", 9)
        canvas.drawRightString(right, top, report_title)
    if branding.company_tagline:
        canvas.setFillColor(TEXT_GRAY)
        canvas.setFont("Helvetica", 7)
        canvas.drawString(left, top - 11, branding.company_tagline)
    canvas.setStrokeColor(color)
    canvas.setLineWidth(1.2)
    canvas.line(left, top - 17, right, top - 17)
    canvas.restoreState()


def draw_professional_footer(canvas, doc, branding: PDFBrandingContext) -> None:
    """Contact line and page number."""
    page_width, _ = doc.pagesize
    y = 0.45 * doc.bottomMargin
    contact = " | ".join(c for c in (branding.company_email, branding.company_phone) if c)

    canvas.saveState()
    canvas.setFillColor(TEXT_GRAY)
    canvas.setFont("Helvetica", 7)
    if contact:
        canvas.drawString(doc.leftMargin, y, contact)
    canvas.drawRightString(page_width - doc.rightMargin, y, f"Página {canvas.getPageNumber()}")
    canvas.restoreState()
