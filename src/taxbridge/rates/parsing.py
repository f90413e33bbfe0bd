"""Normalize provider rate strings into fractions.

Providers publish rates in several shapes:
  - "Free"
  - "6.5%"
  - "3.4¢/kg" or "$0.45/kg" (specific duty per unit)
  - "6.5% + 2.1¢/kg" (compound)
  - bare numbers, which are percentages (``19`` means 19%)

Only the ad valorem component can be applied to a declared value, so
specific and unparseable rates normalize to 0 and keep the raw string in a
note for the audit trail.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

_PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_CENTS_PER_UNIT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*¢\s*/\s*(\w+)")
_DOLLAR_PER_UNIT_RE = re.compile(r"\$\s*(\d+(?:\.\d+)?)\s*/\s*(\w+)")
_NUMBER_RE = re.compile(r"^\d+(?:\.\d+)?$")


@dataclass(frozen=True)
class ParsedRate:
    """Structured representation of a provider rate string."""

    raw: str
    ad_valorem_pct: float | None = None  # e.g. 2.5 for "2.5%"
    specific_amount: float | None = None  # dollars per unit
    specific_unit: str | None = None
    is_free: bool = False
    is_compound: bool = False
    is_unknown: bool = False


def parse_rate_string(raw: str) -> ParsedRate:
    """Parse a duty/VAT rate string into structured form."""
    if not raw or not raw.strip():
        return ParsedRate(raw=raw or "", is_unknown=True)

    cleaned = raw.strip()
    lower = cleaned.lower()

    if lower.startswith("free") or lower in ("0", "0%", "0.0%"):
        return ParsedRate(raw=raw, ad_valorem_pct=0.0, is_free=True)

    if _NUMBER_RE.match(cleaned):
        return ParsedRate(raw=raw, ad_valorem_pct=float(cleaned))

    ad_valorem = None
    specific = None
    specific_unit = None

    pct_match = _PERCENT_RE.search(cleaned)
    if pct_match:
        ad_valorem = float(pct_match.group(1))

    cents_match = _CENTS_PER_UNIT_RE.search(cleaned)
    if cents_match:
        specific = float(cents_match.group(1)) / 100.0
        specific_unit = cents_match.group(2).lower()

    dollar_match = _DOLLAR_PER_UNIT_RE.search(cleaned)
    if dollar_match and specific is None:
        specific = float(dollar_match.group(1))
        specific_unit = dollar_match.group(2).lower()

    if ad_valorem is None and specific is None:
        return ParsedRate(raw=raw, is_unknown=True)

    return ParsedRate(
        raw=raw,
        ad_valorem_pct=ad_valorem,
        specific_amount=specific,
        specific_unit=specific_unit,
        is_compound=ad_valorem is not None and specific is not None,
    )


def _clamp(fraction: float) -> float:
    return min(1.0, max(0.0, fraction))


def normalize_rate(value: Union[str, int, float, None]) -> Tuple[float, Optional[str]]:
    """Return ``(fraction, note)`` for a provider rate.

    ``note`` is ``None`` when the rate converted cleanly; otherwise it names
    what was dropped and quotes the original value.
    """
    if value is None:
        return 0.0, None
    if isinstance(value, bool):
        return 0.0, f"Unrecognized rate {value!r}; treated as 0%"
    if isinstance(value, (int, float)):
        return _clamp(float(value) / 100.0), None

    parsed = parse_rate_string(str(value))
    if parsed.is_free:
        return 0.0, None
    if parsed.is_unknown:
        return 0.0, f"Unparseable rate {parsed.raw!r}; treated as 0%"
    if parsed.ad_valorem_pct is None:
        return 0.0, f"Specific rate {parsed.raw!r} has no ad valorem component; treated as 0%"
    fraction = _clamp(parsed.ad_valorem_pct / 100.0)
    if parsed.is_compound:
        return fraction, f"Compound rate {parsed.raw!r}; using ad valorem component only"
    return fraction, None


def join_notes(*notes: Optional[str]) -> Optional[str]:
    kept = [note for note in notes if note]
    return "; ".join(kept) if kept else None
