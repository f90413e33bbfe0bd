"""Deterministic clock, offline HTTP handler and an in-memory rate adapter."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import httpx

from taxbridge.models import RateRecord, RateSourceId, RateThresholds
from taxbridge.rates.adapters.base import RateSourceAdapter

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)
US_MFN_RATE = "2.5%"


def fixed_clock() -> datetime:
    return FIXED_NOW


def offline_handler(request: httpx.Request) -> httpx.Response:
    """US tariff search answers; every other provider is down."""

    if request.url.host == "api.trade.gov":
        line = request.url.params.get("tariff_line", "")
        rows = []
        if line:
            rows.append({"tariff_line": line, "mfn_rate": US_MFN_RATE, "description": "Test tariff line"})
        return httpx.Response(200, json={"results": rows})
    return httpx.Response(503, json={"error": "unavailable"})


class RecordingAdapter(RateSourceAdapter):
    """In-memory adapter that counts fetches and can fail for one code."""

    source_id = RateSourceId.WTO
    reliability = 0.9

    def __init__(
        self,
        countries=("DE",),
        *,
        duty_rate: Optional[float] = 0.05,
        vat_rate: Optional[float] = 0.19,
        thresholds: Optional[RateThresholds] = None,
        fail_for: Optional[str] = None,
    ) -> None:
        super().__init__(countries, clock=fixed_clock)
        self.duty_rate = duty_rate
        self.vat_rate = vat_rate
        self.thresholds = thresholds or RateThresholds(duty_free=22.0, vat_free=22.0)
        self.fail_for = fail_for
        self.calls: List[tuple] = []
        self.refreshed = 0

    def fetch(self, country, hs_code=None):
        self.calls.append((country, hs_code))
        if self.fail_for is not None and hs_code == self.fail_for:
            raise RuntimeError("upstream exploded")
        return [
            RateRecord(
                id=f"test-{country}-{hs_code or 'general'}",
                country=country,
                hs_code=hs_code or "",
                duty_rate=self.duty_rate,
                vat_rate=self.vat_rate,
                thresholds=self.thresholds,
                effective_date=FIXED_NOW,
                source=self._provenance(country),
            )
        ]

    def refresh(self) -> None:
        self.refreshed += 1

    def health_check(self) -> bool:
        return True
