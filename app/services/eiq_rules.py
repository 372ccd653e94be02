"""
Deterministic EIQ rules and thresholds.

This module centralizes constants so the calculator, the reports and
the tests all classify scenario loads the same way.
"""

DEFAULT_TIMES = 1
DEFAULT_SCENARIO_PCT = 100.0
DEFAULT_FIELD_PCT = 100.0

# Upper bounds (exclusive) of each tier, ascending. Values at or above the
# last bound fall into TIER_TOO_HIGH.
TIER_EXPERT = "Expert"
TIER_MASTER = "Master"
TIER_BEGINNER = "Beginner"
TIER_TOO_HIGH = "Too high for Regenerative agriculture"

TIER_THRESHOLDS = (
    (200.0, TIER_EXPERT),
    (500.0, TIER_MASTER),
    (800.0, TIER_BEGINNER),
)

EMPTY_TIER_PLACEHOLDER = "—"
EMPTY_PRODUCT_PLACEHOLDER = "-"

METHODOLOGY_NOTES = [
    "Normal rate = Max rate (75th p histórico) por producto (editable).",
    "Scenario rate = Normal rate × (% escenario/100).",
    "EIQ/ha base proviene de la hoja “EIQ per product” y se escala linealmente por la dosis.",
    "Default EIQ/ha (Normal) = EIQ/ha base × veces.",
    "Field EIQ/ha (Scenario) = Dose EIQ/ha × veces × (% campo/100).",
    "Clasificación: <200 Expert; <500 Master; <800 Beginner; ≥800 Too high for Regenerative agriculture.",
]
