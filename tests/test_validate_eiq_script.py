import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "scripts"))

from validate_eiq import generate_report, run_validation


def test_randomized_scenarios_hold_invariants():
    stats = run_validation(num_tests=30, seed=7)
    assert stats["tier_boundary_errors"] == []
    assert stats["failed"] == 0, stats["errors"]
    assert stats["passed"] == 30


def test_report_text():
    report = generate_report(run_validation(num_tests=5, seed=1))
    assert "VALIDACIÓN CALCULADORA EIQ" in report
    assert "Escenarios: 5" in report
