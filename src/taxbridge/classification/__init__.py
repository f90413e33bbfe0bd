"""Harmonized code classification."""

from .classifier import HSCodeClassifier, normalize_code
from .dictionary import DEFAULT_DUTY_RATE, HS_CODE_TABLE, PRODUCT_CATEGORIES

__all__ = [
    "DEFAULT_DUTY_RATE",
    "HS_CODE_TABLE",
    "HSCodeClassifier",
    "PRODUCT_CATEGORIES",
    "normalize_code",
]
