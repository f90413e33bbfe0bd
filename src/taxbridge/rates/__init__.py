"""Rate sources, caching and arbitration."""

from .aggregator import RateAggregator, build_default_aggregator
from .cache import RateCache
from .jurisdictions import (
    EU_COUNTRIES,
    SECTION_321_LIMIT,
    jurisdiction_thresholds,
    jurisdiction_vat_rate,
    known_jurisdictions,
    normalize_country,
    special_rules,
)
from .parsing import normalize_rate, parse_rate_string

__all__ = [
    "EU_COUNTRIES",
    "RateAggregator",
    "RateCache",
    "SECTION_321_LIMIT",
    "build_default_aggregator",
    "jurisdiction_thresholds",
    "jurisdiction_vat_rate",
    "known_jurisdictions",
    "normalize_country",
    "normalize_rate",
    "parse_rate_string",
    "special_rules",
]
