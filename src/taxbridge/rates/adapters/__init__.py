"""Rate source adapters, one per provider family."""

from .base import HttpRateSourceAdapter, RateSourceAdapter
from .eu import EURateAdapter, map_eu_payload
from .static import StaticRateAdapter
from .uk import UKRateAdapter, map_uk_payload
from .us import USRateAdapter, map_us_payload

__all__ = [
    "EURateAdapter",
    "HttpRateSourceAdapter",
    "RateSourceAdapter",
    "StaticRateAdapter",
    "UKRateAdapter",
    "USRateAdapter",
    "map_eu_payload",
    "map_uk_payload",
    "map_us_payload",
]
