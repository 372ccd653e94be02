"""
Pydantic schemas for the EIQ Calculator Module.
Includes schemas for the product catalog, calculation rows and reports.
"""
from pydantic import BaseModel, Field
from typing import Optional, List

from app.services.eiq_rules import DEFAULT_TIMES, DEFAULT_SCENARIO_PCT, DEFAULT_FIELD_PCT


# ==================== CATALOG SCHEMAS ====================

class ProductSchema(BaseModel):
    """Catalog product with application rates and base EIQ/ha."""
    name: str
    min_rate: Optional[float] = Field(None, description="Minimum application rate (kg or L/ha)")
    max_rate: Optional[float] = Field(None, description="Maximum application rate (kg or L/ha)")
    eiq_per_ha: Optional[float] = Field(None, description="Base EIQ/ha at the reference rate")

    class Config:
        from_attributes = True


class ProductListResponse(BaseModel):
    """Schema for the product catalog listing."""
    products: List[ProductSchema]
    total: int


class TierSchema(BaseModel):
    """One regenerative tier bucket: min_value <= v < max_value."""
    label: str
    min_value: float
    max_value: Optional[float] = None


class TierListResponse(BaseModel):
    tiers: List[TierSchema]


# ==================== CALCULATION SCHEMAS ====================

class EIQRowInput(BaseModel):
    """One application row as entered by the user."""
    id: Optional[str] = Field(None, description="Stable row id; generated when omitted")
    product: Optional[str] = Field("", description="Product name from the catalog")
    times: int = Field(default=DEFAULT_TIMES, description="Number of applications")
    normal_rate: Optional[float] = Field(None, description="Normal rate override; catalog max rate when omitted")
    scenario_pct: float = Field(default=DEFAULT_SCENARIO_PCT, description="Scenario rate as % of normal rate")
    field_pct: float = Field(default=DEFAULT_FIELD_PCT, description="% of the field treated")


class EIQCalculateRequest(BaseModel):
    """Request schema for an EIQ calculation."""
    rows: List[EIQRowInput] = Field(default_factory=list)


class EIQRowResult(BaseModel):
    """A row with every derived EIQ figure."""
    id: str
    product: Optional[str] = ""
    times: int
    override_rate: Optional[float] = Field(None, description="Normal rate override as received")
    normal_rate: float
    scenario_pct: float
    scenario_rate: float
    field_pct: float
    dose_eiq_ha: float
    product_eiq_ha: float
    field_eiq_ha: float
    default_eiq_ha: float
    product_found: bool = Field(description="Whether the product name matched the catalog")


class EIQTotalsResult(BaseModel):
    """Aggregate normal vs. scenario EIQ/ha."""
    normal_total: float
    scenario_total: float
    change: float = Field(description="scenario / normal - 1 (0 when normal is 0)")
    change_pct: float
    tier: str = Field(description="Regenerative tier of the scenario total; empty when none")


class EIQCalculateResponse(BaseModel):
    """Response schema for an EIQ calculation."""
    rows: List[EIQRowResult]
    totals: EIQTotalsResult


class EIQReportRequest(EIQCalculateRequest):
    """Request schema for PDF/Excel exports."""
    title: Optional[str] = Field(None, max_length=200, description="Report title")
    user_name: str = Field(default="Usuario", max_length=100)
