"""Offline rate adapter backed by the jurisdiction table or a JSON seed file."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from taxbridge.models import RateRecord, RateSourceId, RateThresholds
from taxbridge.rates.adapters.base import Clock, RateSourceAdapter
from taxbridge.rates.jurisdictions import (
    jurisdiction_thresholds,
    jurisdiction_vat_rate,
    normalize_country,
)
from taxbridge.rates.parsing import join_notes, normalize_rate

logger = logging.getLogger(__name__)

STATIC_COUNTRIES = ("NO", "CH")


class StaticRateAdapter(RateSourceAdapter):
    """Serves rates without I/O.

    Seed rows (``{"rates": [{"country", "hs_code", "duty", "vat", "duty_free",
    "vat_free"}]}``) take precedence; countries without seed rows get one
    general record built from the jurisdiction defaults.
    """

    source_id = RateSourceId.LOCAL
    reliability = 0.5

    def __init__(
        self,
        countries: Iterable[str] = STATIC_COUNTRIES,
        *,
        seed_path: Optional[Path] = None,
        reliability: Optional[float] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(countries, clock=clock)
        if reliability is not None:
            self.reliability = reliability
        self.seed_path = seed_path
        self._seed: Dict[str, List[Dict[str, Any]]] = {}
        if seed_path is not None:
            self.load_seed(seed_path)

    def load_seed(self, path: Path) -> int:
        """Load seed rows from ``path``; returns the number of rows kept."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        seed: Dict[str, List[Dict[str, Any]]] = {}
        count = 0
        for row in data.get("rates", []):
            country = normalize_country(row.get("country"))
            if not country or country not in self.countries:
                continue
            seed.setdefault(country, []).append(dict(row))
            count += 1
        self._seed = seed
        logger.info("Loaded %d static rate rows from %s", count, Path(path).name)
        return count

    def fetch(self, country: str, hs_code: Optional[str] = None) -> List[RateRecord]:
        country = normalize_country(country)
        if not self.serves(country):
            return []
        rows = self._seed.get(country)
        if not rows:
            return [self._default_record(country, hs_code)]
        wanted = hs_code or ""
        matching = [row for row in rows if str(row.get("hs_code") or "") in (wanted, "")]
        return [self._seed_record(country, row) for row in matching]

    def _default_record(self, country: str, hs_code: Optional[str]) -> RateRecord:
        return RateRecord(
            id=f"local-{country}-general",
            country=country,
            hs_code="",
            duty_rate=None,
            vat_rate=jurisdiction_vat_rate(country),
            thresholds=jurisdiction_thresholds(country),
            effective_date=self._now(),
            source=self._provenance(country, version="builtin"),
            notes=f"Jurisdiction defaults for {country}" + (f" (requested {hs_code})" if hs_code else ""),
        )

    def _seed_record(self, country: str, row: Dict[str, Any]) -> RateRecord:
        code = str(row.get("hs_code") or "")
        duty_rate, duty_note = normalize_rate(row["duty"]) if row.get("duty") is not None else (None, None)
        vat_rate, vat_note = normalize_rate(row["vat"]) if row.get("vat") is not None else (None, None)
        defaults = jurisdiction_thresholds(country)
        return RateRecord(
            id=f"local-{country}-{code or 'general'}",
            country=country,
            hs_code=code,
            duty_rate=duty_rate,
            vat_rate=vat_rate,
            thresholds=RateThresholds(
                duty_free=float(row.get("duty_free", defaults.duty_free)),
                vat_free=float(row.get("vat_free", defaults.vat_free)),
                special_threshold=row.get("special_threshold", defaults.special_threshold),
            ),
            effective_date=self._now(),
            source=self._provenance(country, version=str(row.get("version", "seed"))),
            notes=join_notes(row.get("notes"), duty_note, vat_note),
        )

    def refresh(self) -> None:
        if self.seed_path is None:
            return
        try:
            self.load_seed(self.seed_path)
        except (OSError, ValueError):
            logger.exception("Reloading static rate seed %s failed", self.seed_path)
            return
        self.last_refreshed = self._now()

    def health_check(self) -> bool:
        return True
