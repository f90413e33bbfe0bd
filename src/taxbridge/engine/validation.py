"""Consistency checks and batch totals over calculation results."""

from __future__ import annotations

from typing import Iterable, List

from taxbridge.models import BatchTotals, ExtendedTaxResult, TaxCalculation

TOTAL_TOLERANCE = 0.01
# Two independently rounded amounts feed the value check.
VALUE_TOLERANCE = 0.02


def validate_calculation(calculation: TaxCalculation) -> List[str]:
    """Return the problems found in ``calculation``; empty means consistent."""

    problems: List[str] = []
    if not calculation.product.id:
        problems.append("product id is missing")
    if not calculation.destination_country:
        problems.append("destination country is missing")
    if calculation.duties < 0:
        problems.append("duties are negative")
    if calculation.vat < 0:
        problems.append("vat is negative")
    if calculation.total_tax < 0:
        problems.append("total tax is negative")
    if round(abs(calculation.total_tax - (calculation.duties + calculation.vat)), 6) > TOTAL_TOLERANCE:
        problems.append("total tax does not equal duties plus vat")
    return problems


def validate_extended(result: ExtendedTaxResult) -> List[str]:
    problems = validate_calculation(TaxCalculation.from_extended(result))
    block = result.calculation
    if not 0.0 <= result.confidence <= 1.0:
        problems.append("confidence is outside [0, 1]")
    if round(abs(block.total_value - (block.taxable_value + block.total_tax)), 6) > VALUE_TOLERANCE:
        problems.append("total value does not equal taxable value plus total tax")
    if result.exemptions and any(item.amount != 0 for item in result.exemptions):
        problems.append("full exemptions must carry a zero amount")
    return problems


def summarize_results(results: Iterable[ExtendedTaxResult]) -> BatchTotals:
    """Sum amounts across ``results``; placeholders count as failures."""

    count = failed = 0
    duties = vat = total_tax = total_value = 0.0
    for result in results:
        count += 1
        if result.confidence == 0.0 and result.warnings:
            failed += 1
        duties += result.calculation.duties
        vat += result.calculation.vat
        total_tax += result.calculation.total_tax
        total_value += result.calculation.total_value
    return BatchTotals(
        count=count,
        failed=failed,
        total_duties=round(duties, 2),
        total_vat=round(vat, 2),
        total_tax=round(total_tax, 2),
        total_value=round(total_value, 2),
    )
