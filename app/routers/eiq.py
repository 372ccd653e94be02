"""
EIQ Calculator Router.
Provides endpoints for the product catalog, EIQ calculations and reports.
"""
from typing import List, Mapping
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
import io
import logging

from app.schemas.eiq_schemas import (
    ProductSchema,
    ProductListResponse,
    TierSchema,
    TierListResponse,
    EIQRowInput,
    EIQCalculateRequest,
    EIQCalculateResponse,
    EIQRowResult,
    EIQTotalsResult,
    EIQReportRequest,
)
from app.services.eiq_calculator import (
    ComputedRow,
    EIQRow,
    EIQTotals,
    Product,
    eiq_calculator,
    new_row_id,
)
from app.services.eiq_catalog_service import load_catalog_file
from app.services.eiq_excel_service import eiq_excel_service
from app.services.eiq_pdf_service import create_eiq_pdf_report
from app.services.eiq_rules import TIER_THRESHOLDS, TIER_TOO_HIGH
from app.services.eiq_worksheet import EIQWorksheet

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/eiq", tags=["eiq"])


def get_catalog(request: Request) -> Mapping[str, Product]:
    """Catalog snapshot loaded at startup; bundled file if startup did not run."""
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        catalog = load_catalog_file()
        request.app.state.catalog = catalog
    return catalog


def _to_row(row_input: EIQRowInput) -> EIQRow:
    return EIQRow(
        id=row_input.id or new_row_id(),
        product=row_input.product,
        times=row_input.times,
        normal_rate=row_input.normal_rate,
        scenario_pct=row_input.scenario_pct,
        field_pct=row_input.field_pct,
    )


def _build_worksheet(rows: List[EIQRowInput], catalog: Mapping[str, Product]) -> EIQWorksheet:
    try:
        return EIQWorksheet(catalog, [_to_row(r) for r in rows])
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _row_result(c: ComputedRow, catalog: Mapping[str, Product]) -> EIQRowResult:
    return EIQRowResult(
        id=c.row.id,
        product=c.row.product,
        times=c.row.times,
        override_rate=c.row.normal_rate,
        normal_rate=c.normal_rate,
        scenario_pct=c.row.scenario_pct,
        scenario_rate=c.scenario_rate,
        field_pct=c.row.field_pct,
        dose_eiq_ha=c.dose_eiq_ha,
        product_eiq_ha=c.product_eiq_ha,
        field_eiq_ha=c.field_eiq_ha,
        default_eiq_ha=c.default_eiq_ha,
        product_found=eiq_calculator.resolve_product(catalog, c.row.product) is not None,
    )


def _totals_result(totals: EIQTotals) -> EIQTotalsResult:
    return EIQTotalsResult(**totals.to_dict())


# ============== Catalog Endpoints ==============

@router.get("/products", response_model=ProductListResponse)
async def list_products(catalog: Mapping[str, Product] = Depends(get_catalog)):
    """List catalog products in catalog order."""
    products = [ProductSchema.model_validate(p) for p in catalog.values()]
    return ProductListResponse(products=products, total=len(products))


@router.get("/products/{name}", response_model=ProductSchema)
async def get_product(name: str, catalog: Mapping[str, Product] = Depends(get_catalog)):
    """Get a single catalog product by exact name."""
    product = catalog.get(name)
    if not product:
        raise HTTPException(status_code=404, detail=f"Producto '{name}' no encontrado")
    return ProductSchema.model_validate(product)


@router.get("/tiers", response_model=TierListResponse)
async def list_tiers():
    """Regenerative tier buckets of the scenario EIQ/ha total."""
    tiers = []
    lower = 0.0
    for upper, label in TIER_THRESHOLDS:
        tiers.append(TierSchema(label=label, min_value=lower, max_value=upper))
        lower = upper
    tiers.append(TierSchema(label=TIER_TOO_HIGH, min_value=lower, max_value=None))
    return TierListResponse(tiers=tiers)


# ============== Calculation Endpoint ==============

@router.post("/calculate", response_model=EIQCalculateResponse)
async def calculate_eiq(
    request: EIQCalculateRequest,
    catalog: Mapping[str, Product] = Depends(get_catalog)
):
    """Compute every row and the normal vs. scenario totals."""
    worksheet = _build_worksheet(request.rows, catalog)
    result = eiq_calculator.calculate(catalog, worksheet.rows)
    computed, totals = result["rows"], result["totals"]

    logger.info(
        f"EIQ calculate: {len(computed)} rows, normal={totals.normal_total:.2f}, "
        f"scenario={totals.scenario_total:.2f}, tier='{totals.tier}'"
    )

    return EIQCalculateResponse(
        rows=[_row_result(c, catalog) for c in computed],
        totals=_totals_result(totals),
    )


# ============== Report Endpoints ==============

@router.post("/pdf")
async def generate_eiq_pdf(
    request: EIQReportRequest,
    catalog: Mapping[str, Product] = Depends(get_catalog)
):
    """
    Generate a PDF report for the submitted rows.

    Returns the PDF file as a downloadable response.
    """
    worksheet = _build_worksheet(request.rows, catalog)
    result = eiq_calculator.calculate(catalog, worksheet.rows)
    computed, totals = result["rows"], result["totals"]

    pdf_bytes = create_eiq_pdf_report(
        computed,
        totals,
        title=request.title,
        user_name=request.user_name,
    )

    return StreamingResponse(
        io.BytesIO(pdf_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": 'attachment; filename="reporte_eiq.pdf"'
        }
    )


@router.post("/excel")
async def generate_eiq_excel(
    request: EIQReportRequest,
    catalog: Mapping[str, Product] = Depends(get_catalog)
):
    """
    Generate an Excel workbook for the submitted rows.

    Returns the Excel file as a downloadable response.
    """
    worksheet = _build_worksheet(request.rows, catalog)
    result = eiq_calculator.calculate(catalog, worksheet.rows)
    computed, totals = result["rows"], result["totals"]

    excel_buffer = eiq_excel_service.generate_eiq_excel(
        computed,
        totals,
        catalog=catalog,
        title=request.title,
        user_name=request.user_name,
    )

    return StreamingResponse(
        excel_buffer,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": 'attachment; filename="reporte_eiq.xlsx"'
        }
    )
