"""
Tests for the EIQ PDF and Excel reports.
"""
from datetime import datetime

import pytest
from openpyxl import load_workbook

from app.services.eiq_calculator import EIQRow, eiq_calculator as calculator
from app.services.eiq_excel_service import eiq_excel_service
from app.services.eiq_pdf_service import (
    REPORT_COLUMNS,
    build_report_rows,
    build_summary_lines,
    create_eiq_pdf_report,
    format_number,
)


@pytest.fixture
def computed(catalog):
    rows = [
        EIQRow(product="Test10x20", times=2, scenario_pct=50, field_pct=100),
        EIQRow(product="", times=1),
        EIQRow(product="Glifosato", times=1, normal_rate=1.25, scenario_pct=80, field_pct=60),
    ]
    return calculator.compute_rows(catalog, rows)


class TestReportRows:

    def test_columns_and_rounding(self, computed):
        body = build_report_rows(computed)
        assert len(body) == 3
        assert all(len(line) == len(REPORT_COLUMNS) for line in body)
        assert body[0] == ["1", "Test10x20", "2", "10", "50", "5.000", "100",
                           "10.00", "20.00", "20.00", "40.00"]

    def test_missing_product_placeholder(self, computed):
        body = build_report_rows(computed)
        assert body[1][1] == "-"
        assert body[1][3] == "0"

    def test_override_rate_and_decimals(self, computed):
        line = build_report_rows(computed)[2]
        assert line[3] == "1.25"
        assert line[5] == "1.000"
        assert line[7] == "24.00"
        assert line[9] == "14.40"

    def test_format_number(self):
        assert format_number(None) == ""
        assert format_number(3.0) == "3"
        assert format_number(0.125) == "0.125"
        assert format_number(7) == "7"


class TestSummaryLines:

    def test_lines(self, computed):
        totals = calculator.compute_totals(computed[:1])
        assert build_summary_lines(totals) == [
            "Normal field EIQ/ha: 40.00",
            "Scenario field EIQ/ha: 20.00",
            "Change: -50.0%",
            "Tier: Expert",
        ]

    def test_empty_tier_placeholder(self):
        totals = calculator.compute_totals([])
        lines = build_summary_lines(totals)
        assert lines[2] == "Change: 0.0%"
        assert lines[3] == "Tier: —"


class TestPdfReport:

    def test_generates_pdf(self, computed):
        totals = calculator.compute_totals(computed)
        pdf = create_eiq_pdf_report(computed, totals, user_name="Ana <Campo>",
                                    generated_at=datetime(2025, 3, 1, 10, 30))
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > 1000

    def test_empty_report(self):
        pdf = create_eiq_pdf_report([], calculator.compute_totals([]))
        assert pdf.startswith(b"%PDF")

    def test_many_rows_span_pages(self, catalog):
        rows = [EIQRow(product="Atrazina", times=i % 4) for i in range(120)]
        computed = calculator.compute_rows(catalog, rows)
        pdf = create_eiq_pdf_report(computed, calculator.compute_totals(computed))
        single = create_eiq_pdf_report(computed[:1], calculator.compute_totals(computed[:1]))
        assert pdf.startswith(b"%PDF")
        assert len(pdf) > len(single)


class TestExcelReport:

    def test_sheets_and_values(self, catalog, computed):
        totals = calculator.compute_totals(computed)
        buffer = eiq_excel_service.generate_eiq_excel(
            computed, totals, catalog=catalog, title="Lote 7", user_name="Ana",
            generated_at=datetime(2025, 3, 1, 10, 30)
        )
        wb = load_workbook(buffer)
        assert wb.sheetnames == ["Resumen", "Aplicaciones", "Catálogo"]

        summary = wb["Resumen"]
        assert summary["A1"].value == "Lote 7"
        assert summary["A2"].value == "Fecha: 01/03/2025 10:30"
        labels = {summary.cell(row=r, column=1).value: summary.cell(row=r, column=2).value
                  for r in range(1, summary.max_row + 1)}
        assert labels["Normal field EIQ/ha"] == pytest.approx(totals.normal_total)
        assert labels["Scenario field EIQ/ha"] == pytest.approx(totals.scenario_total)
        assert labels["Change"] == pytest.approx(totals.change)
        assert labels["Tier"] == "Expert"

        rows_ws = wb["Aplicaciones"]
        assert [c.value for c in rows_ws[1]] == REPORT_COLUMNS
        assert rows_ws.max_row == 4
        assert rows_ws["B2"].value == "Test10x20"
        assert rows_ws["F2"].value == pytest.approx(5)
        assert rows_ws["F2"].number_format == "0.000"
        assert rows_ws["K2"].value == pytest.approx(40)
        assert rows_ws["B3"].value == "-"

        catalog_ws = wb["Catálogo"]
        assert [catalog_ws.cell(row=r, column=1).value for r in range(2, catalog_ws.max_row + 1)] == [
            "Test10x20", "Glifosato"
        ]

    def test_empty_workbook(self):
        buffer = eiq_excel_service.generate_eiq_excel([], calculator.compute_totals([]))
        wb = load_workbook(buffer)
        assert wb["Aplicaciones"].max_row == 1
        summary = wb["Resumen"]
        tier_values = [summary.cell(row=r, column=2).value for r in range(1, summary.max_row + 1)
                       if summary.cell(row=r, column=1).value == "Tier"]
        assert tier_values == ["—"]

    def test_user_text_is_not_a_formula(self, catalog):
        computed = calculator.compute_rows(catalog, [
            EIQRow(product='=HYPERLINK("http://x","a")'),
            EIQRow(product="+SUM(1,2)"),
            EIQRow(product="@cmd"),
        ])
        buffer = eiq_excel_service.generate_eiq_excel(
            computed, calculator.compute_totals(computed), title="=1+1", user_name="Ana"
        )
        wb = load_workbook(buffer)
        title_cell = wb["Resumen"]["A1"]
        assert title_cell.value == "=1+1"
        assert title_cell.data_type == "s"

        rows_ws = wb["Aplicaciones"]
        for ref, name in (("B2", '=HYPERLINK("http://x","a")'), ("B3", "+SUM(1,2)"), ("B4", "@cmd")):
            assert rows_ws[ref].value == name
            assert rows_ws[ref].data_type == "s"

    def test_control_characters_are_dropped(self, catalog):
        computed = calculator.compute_rows(catalog, [EIQRow(product="Glifo\x01sato")])
        buffer = eiq_excel_service.generate_eiq_excel(
            computed, calculator.compute_totals(computed),
            title="Lote\x0b 7", user_name="Ana\x02"
        )
        wb = load_workbook(buffer)
        assert wb["Resumen"]["A1"].value == "Lote 7"
        assert wb["Resumen"]["A3"].value == "Usuario: Ana"
        assert wb["Aplicaciones"]["B2"].value == "Glifosato"
