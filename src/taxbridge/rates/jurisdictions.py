"""Built-in jurisdiction defaults.

These tables stand in for a real rate feed: they are used when no rate
source returned a record for a country, and by the static fallbacks of the
EU and UK adapters.  Thresholds are expressed in USD.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

from taxbridge.models import RateThresholds

EU_COUNTRIES: Tuple[str, ...] = (
    "DE", "FR", "IT", "ES", "NL", "BE", "AT", "PL", "CZ", "DK", "FI", "SE",
)

VAT_RATES: Dict[str, float] = {
    "US": 0.0,
    "UK": 0.20,
    "DE": 0.19,
    "FR": 0.20,
    "IT": 0.22,
    "ES": 0.21,
    "NL": 0.21,
    "BE": 0.21,
    "AT": 0.20,
    "PL": 0.23,
    "CZ": 0.21,
    "DK": 0.25,
    "FI": 0.24,
    "SE": 0.25,
    "NO": 0.25,
    "CH": 0.077,
}

SECTION_321_LIMIT = 800.0
EU_LOW_VALUE_LIMIT = 22.0
UK_LOW_VALUE_LIMIT = 135.0

# US de-minimis relief is applied by the Section 321 step, not the generic
# duty-free threshold, so the generic US thresholds are zero.
_THRESHOLDS: Dict[str, RateThresholds] = {
    "US": RateThresholds(duty_free=0.0, vat_free=0.0, special_threshold=SECTION_321_LIMIT),
    "UK": RateThresholds(duty_free=UK_LOW_VALUE_LIMIT, vat_free=UK_LOW_VALUE_LIMIT),
    "NO": RateThresholds(duty_free=25.0, vat_free=25.0),
    "CH": RateThresholds(duty_free=65.0, vat_free=65.0),
}
for _country in EU_COUNTRIES:
    _THRESHOLDS[_country] = RateThresholds(duty_free=EU_LOW_VALUE_LIMIT, vat_free=EU_LOW_VALUE_LIMIT)

_ZERO_THRESHOLDS = RateThresholds()

_COUNTRY_ALIASES: Dict[str, str] = {"GB": "UK"}


def normalize_country(country: str | None) -> str:
    code = (country or "").strip().upper()
    return _COUNTRY_ALIASES.get(code, code)


def is_eu_country(country: str) -> bool:
    return normalize_country(country) in EU_COUNTRIES


def jurisdiction_thresholds(country: str) -> RateThresholds:
    return _THRESHOLDS.get(normalize_country(country), _ZERO_THRESHOLDS)


def jurisdiction_vat_rate(country: str) -> float:
    return VAT_RATES.get(normalize_country(country), 0.0)


def known_jurisdictions() -> Tuple[str, ...]:
    return tuple(sorted(_THRESHOLDS))


def special_rules(country: str) -> List[str]:
    code = normalize_country(country)
    if code == "US":
        return [f"Section 321: shipments up to {SECTION_321_LIMIT:.0f} USD enter duty free"]
    if code == "UK":
        return ["Post-Brexit: UK duty and VAT are set independently of the EU"]
    return []
