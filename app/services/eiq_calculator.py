"""
EIQ Calculator Service.

Calculates the Environmental Impact Quotient load of a list of
agrochemical applications, comparing the normal (baseline) program
against a user-adjusted scenario:
- Normal rate resolved from the override or the product catalog
- Scenario rate and dose EIQ/ha scaled by the scenario percentage
- Product and field EIQ/ha scaled by repetitions and treated field share
- Aggregate totals, relative change and regenerative tier

All calculations are pure: no I/O, no caching, no exceptions.
"""
from typing import Dict, Iterable, List, Mapping, Optional
from dataclasses import dataclass, field, asdict
import math
import logging
import uuid

from app.services.eiq_rules import (
    DEFAULT_TIMES,
    DEFAULT_SCENARIO_PCT,
    DEFAULT_FIELD_PCT,
    TIER_THRESHOLDS,
    TIER_TOO_HIGH,
)

logger = logging.getLogger(__name__)


def new_row_id() -> str:
    """Generate an opaque row identifier that is never reused."""
    return uuid.uuid4().hex


def _num(value) -> float:
    """Coerce an optional number to a finite float (absent/NaN/inf -> 0)."""
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


@dataclass(frozen=True)
class Product:
    """Catalog product (reference data, immutable for the session)."""
    name: str
    min_rate: Optional[float] = None
    max_rate: Optional[float] = None
    eiq_per_ha: Optional[float] = None

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "minRate": self.min_rate,
            "maxRate": self.max_rate,
            "eiqPerHa": self.eiq_per_ha,
        }


@dataclass
class EIQRow:
    """One application event as entered by the user."""
    id: str = field(default_factory=new_row_id)
    product: Optional[str] = ""
    times: int = DEFAULT_TIMES
    normal_rate: Optional[float] = None  # override; None = use catalog rate
    scenario_pct: float = DEFAULT_SCENARIO_PCT
    field_pct: float = DEFAULT_FIELD_PCT


@dataclass(frozen=True)
class ComputedRow:
    """A row together with every derived EIQ figure."""
    row: EIQRow
    normal_rate: float
    scenario_rate: float
    dose_eiq_ha: float
    product_eiq_ha: float
    field_eiq_ha: float
    default_eiq_ha: float

    def to_dict(self) -> Dict:
        data = asdict(self.row)
        data.update({
            "normal_rate": self.normal_rate,
            "scenario_rate": self.scenario_rate,
            "dose_eiq_ha": self.dose_eiq_ha,
            "product_eiq_ha": self.product_eiq_ha,
            "field_eiq_ha": self.field_eiq_ha,
            "default_eiq_ha": self.default_eiq_ha,
        })
        return data


@dataclass(frozen=True)
class EIQTotals:
    """Aggregate EIQ/ha of the normal program vs. the scenario."""
    normal_total: float = 0.0
    scenario_total: float = 0.0
    change: float = 0.0
    tier: str = ""

    @property
    def change_pct(self) -> float:
        return self.change * 100

    def to_dict(self) -> Dict:
        return {
            "normal_total": self.normal_total,
            "scenario_total": self.scenario_total,
            "change": self.change,
            "change_pct": self.change_pct,
            "tier": self.tier,
        }


def tier_label(value: Optional[float]) -> str:
    """
    Classify a scenario EIQ/ha total into a regenerative tier.

    Non-positive, absent or non-finite values have no tier (empty label).
    Each bucket is closed below and open above; the last one is unbounded.
    """
    if value is None:
        return ""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return ""
    if math.isnan(v) or v <= 0:
        return ""
    for upper_bound, label in TIER_THRESHOLDS:
        if v < upper_bound:
            return label
    return TIER_TOO_HIGH


class EIQCalculator:
    """
    Calculator for EIQ scenario loads.

    Methodology:
    1. Resolve the row's product by exact name in the catalog
    2. Normal rate = override -> product max rate -> product min rate -> 0
    3. Scenario rate = normal rate x scenario %
    4. Dose EIQ/ha = base EIQ/ha scaled by scenario rate / normal rate
    5. Product EIQ/ha = dose x times; field EIQ/ha = product x field %
    6. Default EIQ/ha = base EIQ/ha x times (the normal reference)
    """

    def resolve_product(
        self,
        catalog: Mapping[str, Product],
        name: Optional[str]
    ) -> Optional[Product]:
        """Exact-name lookup; blank or unknown names resolve to no product."""
        if not name:
            return None
        return catalog.get(name)

    def resolve_normal_rate(self, row: EIQRow, product: Optional[Product]) -> float:
        """Override if given, otherwise the product's max rate, then its min rate."""
        if row.normal_rate is not None:
            return _num(row.normal_rate)
        if product is None:
            return 0.0
        if product.max_rate is not None:
            return _num(product.max_rate)
        return _num(product.min_rate)

    def compute_row(self, catalog: Mapping[str, Product], row: EIQRow) -> ComputedRow:
        """Derive all EIQ figures for a single row."""
        product = self.resolve_product(catalog, row.product)

        normal_rate = self.resolve_normal_rate(row, product)
        scenario_rate = normal_rate * (_num(row.scenario_pct) / 100)
        base_eiq = _num(product.eiq_per_ha) if product else 0.0

        # Ratio form keeps the dose tied to whatever normal rate is in effect,
        # including a user override.
        if normal_rate > 0:
            dose_eiq_ha = base_eiq * (scenario_rate / normal_rate)
        else:
            dose_eiq_ha = 0.0

        times = _num(row.times)
        product_eiq_ha = dose_eiq_ha * times
        field_eiq_ha = product_eiq_ha * (_num(row.field_pct) / 100)
        default_eiq_ha = base_eiq * times

        return ComputedRow(
            row=row,
            normal_rate=normal_rate,
            scenario_rate=_num(scenario_rate),
            dose_eiq_ha=_num(dose_eiq_ha),
            product_eiq_ha=_num(product_eiq_ha),
            field_eiq_ha=_num(field_eiq_ha),
            default_eiq_ha=_num(default_eiq_ha),
        )

    def compute_rows(
        self,
        catalog: Mapping[str, Product],
        rows: Iterable[EIQRow]
    ) -> List[ComputedRow]:
        """Compute every row, preserving order."""
        return [self.compute_row(catalog, row) for row in rows]

    def compute_totals(self, computed: Iterable[ComputedRow]) -> EIQTotals:
        """Sum normal and scenario EIQ/ha and derive the relative change and tier."""
        normal_total = 0.0
        scenario_total = 0.0
        for c in computed:
            normal_total += c.default_eiq_ha
            scenario_total += c.field_eiq_ha

        change = (scenario_total / normal_total - 1) if normal_total > 0 else 0.0

        return EIQTotals(
            normal_total=normal_total,
            scenario_total=scenario_total,
            change=change,
            tier=tier_label(scenario_total),
        )

    def calculate(self, catalog: Mapping[str, Product], rows: Iterable[EIQRow]) -> Dict:
        """
        Perform the complete EIQ calculation for a list of rows.

        Returns a dictionary with the computed rows and the totals.
        """
        computed = self.compute_rows(catalog, rows)
        totals = self.compute_totals(computed)

        unresolved = [
            c.row.product for c in computed
            if c.row.product and self.resolve_product(catalog, c.row.product) is None
        ]
        if unresolved:
            logger.debug(f"Rows without catalog match: {unresolved}")

        return {
            "rows": computed,
            "totals": totals,
        }


# Singleton instance
eiq_calculator = EIQCalculator()
