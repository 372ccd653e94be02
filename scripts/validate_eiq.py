#!/usr/bin/env python3
"""
EIQ Calculator Validation Script
Runs randomized scenarios over the bundled catalog to validate the
calculation invariants and tier classification.
"""
import sys
import os
import random
import json
from dataclasses import replace
from typing import List, Dict, Any

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app.services.eiq_calculator import eiq_calculator, tier_label
from app.services.eiq_catalog_service import load_catalog_file
from app.services.eiq_worksheet import EIQWorksheet

SCENARIO_PCTS = [0, 25, 50, 75, 100, 120, 150]
FIELD_PCTS = [0, 30, 50, 80, 100]
TIMES_RANGE = (0, 6)
ROWS_RANGE = (1, 8)
TOLERANCE = 1e-9

TIER_BOUNDARY_CASES = [
    (-5, ""), (0, ""), (199.999, "Expert"), (200, "Master"), (499.999, "Master"),
    (500, "Beginner"), (799.999, "Beginner"), (800, "Too high for Regenerative agriculture"),
]


def build_random_worksheet(catalog, rng: random.Random) -> EIQWorksheet:
    names = list(catalog.keys()) + ["", "Producto inexistente"]
    worksheet = EIQWorksheet(catalog)
    for _ in range(rng.randint(*ROWS_RANGE)):
        override = None
        if rng.random() < 0.2:
            override = round(rng.uniform(0, 4), 3)
        worksheet.add_row(
            product=rng.choice(names),
            times=rng.randint(*TIMES_RANGE),
            normal_rate=override,
            scenario_pct=rng.choice(SCENARIO_PCTS),
            field_pct=rng.choice(FIELD_PCTS),
        )
    return worksheet


def check_worksheet(worksheet: EIQWorksheet) -> List[str]:
    """Return the list of violated invariants for one worksheet."""
    errors = []
    catalog = worksheet.catalog
    computed = worksheet.compute()

    if computed != worksheet.compute():
        errors.append("recomputation is not idempotent")

    for c in computed:
        product = eiq_calculator.resolve_product(catalog, c.row.product)
        base_eiq = (product.eiq_per_ha or 0) if product else 0

        if c.normal_rate == 0 and (c.dose_eiq_ha != 0 or c.product_eiq_ha != 0):
            errors.append(f"row {c.row.id}: dose without normal rate")
        if abs(c.default_eiq_ha - base_eiq * c.row.times) > TOLERANCE:
            errors.append(f"row {c.row.id}: default EIQ/ha != base x times")
        if c.row.scenario_pct == 100 and abs(c.scenario_rate - c.normal_rate) > TOLERANCE:
            errors.append(f"row {c.row.id}: scenario rate != normal rate at 100%")

        for pct in (c.row.scenario_pct + 10, 0):
            varied = eiq_calculator.compute_row(
                catalog, replace(c.row, scenario_pct=pct, field_pct=pct)
            )
            if varied.default_eiq_ha != c.default_eiq_ha:
                errors.append(f"row {c.row.id}: default EIQ/ha depends on percentages")

    totals = eiq_calculator.compute_totals(computed)
    if totals.normal_total == 0 and totals.change != 0:
        errors.append("non-zero change with zero normal total")
    if totals.tier != tier_label(totals.scenario_total):
        errors.append("tier does not match scenario total")

    return errors


def run_validation(num_tests: int = 100, seed: int = 42) -> Dict[str, Any]:
    rng = random.Random(seed)
    catalog = load_catalog_file()

    stats = {
        "total": num_tests,
        "passed": 0,
        "failed": 0,
        "tier_counts": {},
        "errors": [],
        "tier_boundary_errors": [],
    }

    for value, expected in TIER_BOUNDARY_CASES:
        actual = tier_label(value)
        if actual != expected:
            stats["tier_boundary_errors"].append(f"{value}: expected '{expected}', got '{actual}'")

    for i in range(num_tests):
        worksheet = build_random_worksheet(catalog, rng)
        errors = check_worksheet(worksheet)
        tier = worksheet.totals().tier or "(sin tier)"
        stats["tier_counts"][tier] = stats["tier_counts"].get(tier, 0) + 1
        if errors:
            stats["failed"] += 1
            stats["errors"].append({"scenario": i + 1, "errors": errors})
        else:
            stats["passed"] += 1

    return stats


def generate_report(stats: Dict[str, Any]) -> str:
    report = []
    report.append("=" * 80)
    report.append("VALIDACIÓN CALCULADORA EIQ")
    report.append("=" * 80)
    report.append(f"Escenarios: {stats['total']} | OK: {stats['passed']} | Fallidos: {stats['failed']}")
    report.append("")
    report.append("Distribución de tiers:")
    for tier, count in sorted(stats["tier_counts"].items()):
        report.append(f"  - {tier}: {count}")
    report.append("")

    if stats["tier_boundary_errors"]:
        report.append(f"⚠️ {len(stats['tier_boundary_errors'])} límites de tier incorrectos:")
        for err in stats["tier_boundary_errors"]:
            report.append(f"  - {err}")
    else:
        report.append("✓ Límites de tier correctos.")

    if stats["failed"] == 0:
        report.append("✓ Todos los escenarios cumplen los invariantes.")
    else:
        report.append(f"⚠️ {stats['failed']} escenarios con invariantes violados:")
        for entry in stats["errors"][:10]:
            report.append(f"  Escenario {entry['scenario']}: {'; '.join(entry['errors'])}")

    report.append("")
    report.append("=" * 80)
    report.append("FIN DEL REPORTE")
    report.append("=" * 80)

    return "\n".join(report)


if __name__ == "__main__":
    print("Ejecutando validación de la calculadora EIQ (100 escenarios)...")
    print("")

    validation = run_validation(num_tests=100, seed=42)

    report = generate_report(validation)
    print(report)

    with open("eiq_validation_data.json", "w", encoding="utf-8") as f:
        json.dump(validation, f, indent=2, ensure_ascii=False)

    print("\nArchivo generado: eiq_validation_data.json")
    sys.exit(1 if validation["failed"] or validation["tier_boundary_errors"] else 0)
