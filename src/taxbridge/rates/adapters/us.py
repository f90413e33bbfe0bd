"""US tariff-line rate adapter."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.models import RateRecord, RateSource, RateSourceId
from taxbridge.rates.adapters.base import Clock, HttpRateSourceAdapter, parse_timestamp
from taxbridge.rates.jurisdictions import jurisdiction_thresholds, normalize_country
from taxbridge.rates.parsing import join_notes, normalize_rate

logger = logging.getLogger(__name__)

US_TARIFF_URL = "https://api.trade.gov/tariff_rates/search"


def map_us_payload(payload: Any, source: RateSource) -> List[RateRecord]:
    """Map a tariff search response (``{"results": [...]}``) to canonical records.

    The US levies no federal VAT, so every record carries a zero VAT rate.
    A row without ``mfn_rate`` leaves the duty rate unpublished.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected US tariff payload: {type(payload).__name__}")
    thresholds = jurisdiction_thresholds("US")
    records: List[RateRecord] = []
    for row in payload.get("results") or []:
        if not isinstance(row, dict):
            continue
        tariff_line = str(row.get("tariff_line") or "").strip()
        duty_rate, duty_note = normalize_rate(row["mfn_rate"]) if row.get("mfn_rate") is not None else (None, None)
        description = str(row.get("description") or "").strip() or None
        records.append(
            RateRecord(
                id=f"us-{tariff_line or 'general'}",
                country="US",
                hs_code=tariff_line,
                duty_rate=duty_rate,
                vat_rate=0.0,
                thresholds=thresholds,
                effective_date=parse_timestamp(row.get("effective_date"), source.last_updated),
                source=source,
                notes=join_notes(description, duty_note),
            )
        )
    return records


class USRateAdapter(HttpRateSourceAdapter):
    """Fetches MFN duty rates per tariff line.

    There is no safe static table at tariff-line granularity, so transport
    failures raise ``API_ERROR`` instead of falling back.
    """

    source_id = RateSourceId.USCBP
    reliability = 0.98

    def __init__(
        self,
        *,
        base_url: str = US_TARIFF_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(
            ("US",),
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            client=client,
            clock=clock,
        )

    def fetch(self, country: str, hs_code: Optional[str] = None) -> List[RateRecord]:
        if normalize_country(country) != "US":
            return []
        params = {"tariff_line": hs_code or "", "format": "json", "size": 100}
        try:
            payload = self._get_json(params=params)
            return map_us_payload(payload, self._provenance("US"))
        except (httpx.HTTPError, ValueError) as exc:
            raise TaxCalculationError(
                ErrorCode.API_ERROR,
                f"US tariff API call failed: {exc}",
                country="US",
                details={"url": self.base_url, "hs_code": hs_code},
            ) from exc

    def _ping(self) -> None:
        self._get_json(params={"size": 1}, timeout=min(self.timeout, 5.0))
