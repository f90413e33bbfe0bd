"""UK trade tariff adapter with a built-in default record."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

import httpx

from taxbridge.classification import HSCodeClassifier
from taxbridge.models import RateRecord, RateSource, RateSourceId
from taxbridge.rates.adapters.base import Clock, HttpRateSourceAdapter
from taxbridge.rates.jurisdictions import (
    jurisdiction_thresholds,
    jurisdiction_vat_rate,
    normalize_country,
)
from taxbridge.rates.parsing import join_notes, normalize_rate

logger = logging.getLogger(__name__)

UK_TARIFF_URL = "https://www.trade-tariff.service.gov.uk/api/v2/commodities"
# Long-standing commodity used to check the API answers.
_PING_CODE = "0101210000"


def map_uk_payload(payload: Any, hs_code: str, source: RateSource) -> List[RateRecord]:
    """Map a commodity response to at most one record.

    The third-country duty is read from the first ``duty_expression`` in the
    ``included`` section; VAT is the UK standard rate.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected UK tariff payload: {type(payload).__name__}")
    data = payload.get("data") or {}
    attributes = (data.get("attributes") or {}) if isinstance(data, dict) else {}
    duty_expression = next(
        (
            (item.get("attributes") or {}).get("base")
            for item in payload.get("included") or []
            if isinstance(item, dict) and item.get("type") == "duty_expression"
        ),
        None,
    )
    if duty_expression is None:
        return []
    duty_rate, duty_note = normalize_rate(str(duty_expression))
    code = str(attributes.get("goods_nomenclature_item_id") or hs_code)
    description = str(attributes.get("description") or "").strip() or None
    return [
        RateRecord(
            id=f"uk-{code}",
            country="UK",
            hs_code=code,
            duty_rate=duty_rate,
            vat_rate=jurisdiction_vat_rate("UK"),
            thresholds=jurisdiction_thresholds("UK"),
            effective_date=source.last_updated,
            source=source,
            notes=join_notes(description, duty_note),
        )
    ]


class UKRateAdapter(HttpRateSourceAdapter):
    """Serves the UK; answers with the built-in default when the API is unusable."""

    source_id = RateSourceId.HMRC
    reliability = 0.85

    def __init__(
        self,
        *,
        base_url: str = UK_TARIFF_URL,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
        classifier: Optional[HSCodeClassifier] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(
            ("UK",),
            base_url=base_url,
            timeout=timeout,
            headers={"Accept": "application/json"},
            client=client,
            clock=clock,
        )
        self._classifier = classifier or HSCodeClassifier()

    def fetch(self, country: str, hs_code: Optional[str] = None) -> List[RateRecord]:
        if normalize_country(country) != "UK":
            return []
        if not hs_code:
            return self.default_rates(None)
        try:
            payload = self._get_json(f"/{hs_code}")
            records = map_uk_payload(payload, hs_code, self._provenance("UK"))
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("UK tariff API unavailable for %s (%s); using default rates", hs_code, exc)
            return self.default_rates(hs_code)
        return records or self.default_rates(hs_code)

    def default_rates(self, hs_code: Optional[str]) -> List[RateRecord]:
        info = self._classifier.lookup(hs_code) if hs_code else None
        return [
            RateRecord(
                id=f"uk-{hs_code or 'default'}",
                country="UK",
                hs_code=hs_code or "",
                duty_rate=info.duty_rate if info else None,
                vat_rate=jurisdiction_vat_rate("UK"),
                thresholds=jurisdiction_thresholds("UK"),
                effective_date=self._now(),
                source=self._provenance("UK"),
                notes="Built-in UK default rates",
            )
        ]

    def health_check(self) -> bool:
        # The built-in default always answers.
        return True

    def _ping(self) -> None:
        self._get_json(f"/{_PING_CODE}", timeout=min(self.timeout, 5.0))
