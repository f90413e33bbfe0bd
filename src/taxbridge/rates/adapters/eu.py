"""EU bloc rate adapter with a static low-value-consignment fallback."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

import httpx

from taxbridge.classification import HSCodeClassifier
from taxbridge.models import RateRecord, RateSource, RateSourceId, RateThresholds
from taxbridge.observability import mask_api_key
from taxbridge.rates.adapters.base import Clock, HttpRateSourceAdapter, parse_timestamp
from taxbridge.rates.jurisdictions import (
    EU_COUNTRIES,
    EU_LOW_VALUE_LIMIT,
    jurisdiction_vat_rate,
    normalize_country,
)
from taxbridge.rates.parsing import join_notes, normalize_rate

logger = logging.getLogger(__name__)

EU_RATES_URL = "https://api.vatsense.eu/v1"
EU_THRESHOLDS = RateThresholds(duty_free=EU_LOW_VALUE_LIMIT, vat_free=EU_LOW_VALUE_LIMIT)
FALLBACK_RELIABILITY = 0.6


def map_eu_payload(payload: Any, country: str, source: RateSource) -> List[RateRecord]:
    """Map an EU rates response (``{"rates": [...]}``) to canonical records.

    ``duty`` and ``vat`` arrive as percentages, numeric or string; an absent
    or null field stays unpublished (``None``).
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected EU rates payload: {type(payload).__name__}")
    rows = payload.get("rates") or []
    records: List[RateRecord] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        commodity = str(row.get("commodity") or "").strip()
        duty_rate, duty_note = normalize_rate(row["duty"]) if row.get("duty") is not None else (None, None)
        vat_rate, vat_note = normalize_rate(row["vat"]) if row.get("vat") is not None else (None, None)
        records.append(
            RateRecord(
                id=f"eu-{country}-{commodity or 'general'}",
                country=country,
                hs_code=commodity,
                duty_rate=duty_rate,
                vat_rate=vat_rate,
                thresholds=EU_THRESHOLDS,
                effective_date=parse_timestamp(row.get("effective_date"), source.last_updated),
                expiry_date=parse_timestamp(row.get("expiry_date"), None),
                source=source,
                notes=join_notes(duty_note, vat_note),
            )
        )
    return records


class EURateAdapter(HttpRateSourceAdapter):
    """Serves every EU member state from one commission-backed rate API.

    When the API cannot be reached the adapter answers from a static table
    (standard VAT rate, the EUR 22 equivalent threshold and the code table's
    duty rate) with reduced reliability, so a transient outage degrades the
    result instead of failing it.
    """

    source_id = RateSourceId.EU_COMMISSION
    reliability = 0.95

    def __init__(
        self,
        api_key: str = "",
        *,
        countries: Iterable[str] = EU_COUNTRIES,
        base_url: str = EU_RATES_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
        classifier: Optional[HSCodeClassifier] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(
            countries,
            base_url=base_url,
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            client=client,
            clock=clock,
        )
        self._classifier = classifier or HSCodeClassifier()
        logger.debug("EU rate adapter configured with key %s", mask_api_key(api_key))

    def fetch(self, country: str, hs_code: Optional[str] = None) -> List[RateRecord]:
        country = normalize_country(country)
        if not self.serves(country):
            return []
        params = {"country": country, "format": "json"}
        if hs_code:
            params["commodity"] = hs_code
        try:
            payload = self._get_json("/rates", params)
            return map_eu_payload(payload, country, self._provenance(country))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("EU rate API unavailable for %s (%s); using static rates", country, exc)
            return self.static_rates(country, hs_code)

    def static_rates(self, country: str, hs_code: Optional[str] = None) -> List[RateRecord]:
        country = normalize_country(country)
        info = self._classifier.lookup(hs_code) if hs_code else None
        return [
            RateRecord(
                id=f"eu-{country}-{hs_code or 'general'}-static",
                country=country,
                hs_code=hs_code or "",
                duty_rate=info.duty_rate if info else None,
                vat_rate=jurisdiction_vat_rate(country),
                thresholds=EU_THRESHOLDS,
                effective_date=self._now(),
                source=self._provenance(country, version="static", reliability=FALLBACK_RELIABILITY),
                notes="Static fallback: EU rate API unavailable",
            )
        ]

    def _ping(self) -> None:
        self._get_json("/status", timeout=min(self.timeout, 5.0))
