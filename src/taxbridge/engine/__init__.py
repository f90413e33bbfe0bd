"""Tax calculation: the per-product engine, batches and result checks."""

from .batch import CalculationOutcome, calculate_batch, calculate_outcomes
from .calculator import TaxCalculationEngine
from .money import convert_currency, round_amount
from .validation import summarize_results, validate_calculation, validate_extended

__all__ = [
    "CalculationOutcome",
    "TaxCalculationEngine",
    "calculate_batch",
    "calculate_outcomes",
    "convert_currency",
    "round_amount",
    "summarize_results",
    "validate_calculation",
    "validate_extended",
]
