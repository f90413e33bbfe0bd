"""Currency conversion and output rounding."""

from __future__ import annotations

import math
from typing import Mapping

from taxbridge.config import RoundingPolicy


def _table_rate(rates: Mapping[str, float], currency: str) -> float:
    return rates.get(currency.upper(), 1.0)


def exchange_rate(rates: Mapping[str, float], currency: str, base: str = "USD") -> float:
    """Units of ``currency`` per unit of ``base``; dividing by it converts into ``base``."""
    return _table_rate(rates, currency) / _table_rate(rates, base)


def convert_currency(amount: float, from_currency: str, to_currency: str, rates: Mapping[str, float]) -> float:
    """Convert through the reference currency of ``rates``; unknown currencies count as 1.0."""
    if from_currency.upper() == to_currency.upper():
        return amount
    return amount / _table_rate(rates, from_currency) * _table_rate(rates, to_currency)


def round_amount(amount: float, policy: RoundingPolicy) -> float:
    factor = 10 ** policy.decimals
    scaled = round(amount * factor, 9)
    if policy.method == "floor":
        return math.floor(scaled) / factor
    if policy.method == "ceil":
        return math.ceil(scaled) / factor
    # Half-up, matching the usual commercial convention.
    return math.floor(scaled + 0.5) / factor
