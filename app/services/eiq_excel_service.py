"""
EIQ Excel Export Service.
Generates Excel workbooks for EIQ scenario calculations.
"""
from io import BytesIO
from datetime import datetime
from typing import Any, List, Mapping, Optional
from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Font, Alignment, PatternFill, Border, Side
from openpyxl.utils import get_column_letter

from app.services.eiq_calculator import ComputedRow, EIQTotals, Product
from app.services.eiq_pdf_service import REPORT_TITLE, REPORT_COLUMNS
from app.services.eiq_rules import (
    EMPTY_PRODUCT_PLACEHOLDER,
    EMPTY_TIER_PLACEHOLDER,
    METHODOLOGY_NOTES,
)

EIQ_GREEN = "16A34A"
EIQ_DARK = "15803D"
HEADER_BG = "D1FAE5"

# Number formats per REPORT_COLUMNS position (None = general)
COLUMN_FORMATS = [None, None, None, None, None, '0.000', None, '0.00', '0.00', '0.00', '0.00']

# Leading characters spreadsheet apps evaluate as a formula
FORMULA_PREFIXES = ("=", "+", "-", "@")


def _cell_text(value: str) -> str:
    """Drop control characters that cannot be stored in a worksheet."""
    return ILLEGAL_CHARACTERS_RE.sub("", value)


class EIQExcelService:
    """Service for generating EIQ Excel reports."""

    def __init__(self):
        self.header_fill = PatternFill(start_color=EIQ_DARK, end_color=EIQ_DARK, fill_type="solid")
        self.header_font = Font(bold=True, color="FFFFFF", size=11)
        self.title_font = Font(bold=True, size=16, color=EIQ_DARK)
        self.subtitle_font = Font(bold=True, size=12, color=EIQ_DARK)
        self.light_fill = PatternFill(start_color=HEADER_BG, end_color=HEADER_BG, fill_type="solid")
        self.border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    def _apply_header_style(self, ws, row_num: int, max_col: int):
        """Apply header styling to a row."""
        for col in range(1, max_col + 1):
            cell = ws.cell(row=row_num, column=col)
            cell.fill = self.header_fill
            cell.font = self.header_font
            cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)
            cell.border = self.border

    def _write_text(self, ws, row: int, column: int, text: str):
        """Write user-supplied text as a literal string cell."""
        cell = ws.cell(row=row, column=column, value=_cell_text(text))
        if cell.value.startswith(FORMULA_PREFIXES):
            cell.data_type = "s"
        return cell

    def _apply_border_to_range(self, ws, start_row: int, start_col: int, end_row: int, end_col: int):
        """Apply borders to a range of cells."""
        for row in range(start_row, end_row + 1):
            for col in range(start_col, end_col + 1):
                ws.cell(row=row, column=col).border = self.border

    def _auto_adjust_columns(self, ws):
        """Auto-adjust column widths."""
        for column in ws.columns:
            max_length = 0
            column_letter = get_column_letter(column[0].column)
            for cell in column:
                if cell.value is not None:
                    max_length = max(max_length, len(str(cell.value)))
            adjusted_width = min(max(max_length + 2, 12), 40)
            ws.column_dimensions[column_letter].width = adjusted_width

    def generate_eiq_excel(
        self,
        computed: List[ComputedRow],
        totals: EIQTotals,
        catalog: Optional[Mapping[str, Product]] = None,
        title: Optional[str] = None,
        user_name: str = "Usuario",
        generated_at: Optional[datetime] = None
    ) -> BytesIO:
        """
        Generate Excel report for an EIQ calculation.

        Args:
            computed: Computed rows, in worksheet order
            totals: Aggregate totals and tier
            catalog: Catalog used for the calculation (products sheet)
            title: Optional report title
            user_name: Name of the user
            generated_at: Timestamp written on the summary sheet

        Returns:
            BytesIO with Excel file content
        """
        wb = Workbook()
        if wb.active:
            wb.remove(wb.active)

        self._create_summary_sheet(wb, totals, title, user_name, generated_at or datetime.now())
        self._create_rows_sheet(wb, computed)
        self._create_catalog_sheet(wb, computed, catalog or {})

        buffer = BytesIO()
        wb.save(buffer)
        buffer.seek(0)
        return buffer

    def _create_summary_sheet(self, wb, totals: EIQTotals, title: Optional[str],
                              user_name: str, generated_at: datetime) -> Any:
        """Create the summary sheet."""
        ws = wb.create_sheet("Resumen")
        row = 1

        self._write_text(ws, row, 1, title or REPORT_TITLE).font = self.title_font
        ws.merge_cells(f'A{row}:D{row}')
        row += 1

        ws.cell(row=row, column=1, value=f"Fecha: {generated_at.strftime('%d/%m/%Y %H:%M')}").font = Font(italic=True)
        row += 1
        self._write_text(ws, row, 1, f"Usuario: {user_name}").font = Font(italic=True)
        row += 2

        ws.cell(row=row, column=1, value="RESULTADOS").font = self.subtitle_font
        row += 1

        summary = [
            ("Normal field EIQ/ha", totals.normal_total, '0.00'),
            ("Scenario field EIQ/ha", totals.scenario_total, '0.00'),
            ("Change", totals.change, '0.0%'),
            ("Tier", totals.tier or EMPTY_TIER_PLACEHOLDER, None),
        ]
        start_row = row
        for label, value, number_format in summary:
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            ws.cell(row=row, column=1).fill = self.light_fill
            cell = ws.cell(row=row, column=2, value=value)
            if number_format:
                cell.number_format = number_format
            row += 1
        self._apply_border_to_range(ws, start_row, 1, row - 1, 2)
        row += 1

        ws.cell(row=row, column=1, value="Notas de equivalencia (vs. Excel)").font = self.subtitle_font
        row += 1
        for note in METHODOLOGY_NOTES:
            ws.cell(row=row, column=1, value=note)
            row += 1

        ws.column_dimensions['A'].width = 26
        ws.column_dimensions['B'].width = 40
        return ws

    def _create_rows_sheet(self, wb, computed: List[ComputedRow]) -> Any:
        """Create the applications sheet, one row per computed row."""
        ws = wb.create_sheet("Aplicaciones")

        for col, header in enumerate(REPORT_COLUMNS, 1):
            ws.cell(row=1, column=col, value=header)
        self._apply_header_style(ws, 1, len(REPORT_COLUMNS))

        for idx, c in enumerate(computed, start=1):
            values = [
                idx,
                c.row.product or EMPTY_PRODUCT_PLACEHOLDER,
                c.row.times,
                c.normal_rate,
                c.row.scenario_pct,
                c.scenario_rate,
                c.row.field_pct,
                c.dose_eiq_ha,
                c.product_eiq_ha,
                c.field_eiq_ha,
                c.default_eiq_ha,
            ]
            row_num = idx + 1
            for col, (value, number_format) in enumerate(zip(values, COLUMN_FORMATS), 1):
                if isinstance(value, str):
                    cell = self._write_text(ws, row_num, col, value)
                else:
                    cell = ws.cell(row=row_num, column=col, value=value)
                if number_format:
                    cell.number_format = number_format

        if computed:
            self._apply_border_to_range(ws, 2, 1, len(computed) + 1, len(REPORT_COLUMNS))
        ws.freeze_panes = "A2"
        self._auto_adjust_columns(ws)
        return ws

    def _create_catalog_sheet(self, wb, computed: List[ComputedRow],
                              catalog: Mapping[str, Product]) -> Any:
        """Create the catalog sheet with the products referenced by the rows."""
        ws = wb.create_sheet("Catálogo")
        headers = ["Producto", "Min rate", "Max rate", "EIQ/ha base"]
        for col, header in enumerate(headers, 1):
            ws.cell(row=1, column=col, value=header)
        self._apply_header_style(ws, 1, len(headers))

        seen = set()
        row_num = 2
        for c in computed:
            name = c.row.product
            if not name or name in seen or name not in catalog:
                continue
            seen.add(name)
            product = catalog[name]
            self._write_text(ws, row_num, 1, product.name)
            ws.cell(row=row_num, column=2, value=product.min_rate)
            ws.cell(row=row_num, column=3, value=product.max_rate)
            ws.cell(row=row_num, column=4, value=product.eiq_per_ha)
            row_num += 1

        if row_num > 2:
            self._apply_border_to_range(ws, 2, 1, row_num - 1, len(headers))
        self._auto_adjust_columns(ws)
        return ws


eiq_excel_service = EIQExcelService()
