"""Country routing, caching and best-rate arbitration over rate adapters."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

import httpx

from taxbridge.classification import HSCodeClassifier
from taxbridge.config import EngineConfig, eu_api_key_from_env, http_timeout_from_env
from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.models import RateRecord
from taxbridge.rates.adapters import (
    EURateAdapter,
    RateSourceAdapter,
    StaticRateAdapter,
    UKRateAdapter,
    USRateAdapter,
)
from taxbridge.rates.adapters.base import Clock, utcnow
from taxbridge.rates.cache import RateCache, cache_key
from taxbridge.rates.jurisdictions import normalize_country

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0


class RateAggregator:
    """Owns the adapters and the rate cache.

    Each country is bound to exactly one adapter; binding a country again
    replaces the earlier adapter.
    """

    def __init__(
        self,
        adapters: Iterable[RateSourceAdapter] = (),
        *,
        cache: Optional[RateCache] = None,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        cache_enabled: bool = True,
        clock: Optional[Clock] = None,
    ) -> None:
        self._routes: Dict[str, RateSourceAdapter] = {}
        self._cache = cache if cache is not None else RateCache()
        self.ttl_seconds = ttl_seconds
        self.cache_enabled = cache_enabled
        self._clock = clock or utcnow
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: RateSourceAdapter, countries: Optional[Iterable[str]] = None) -> None:
        for country in countries or adapter.countries:
            country = normalize_country(country)
            previous = self._routes.get(country)
            if previous is not None and previous is not adapter:
                logger.info("Rebinding %s from %s to %s", country, previous.name, adapter.name)
            self._routes[country] = adapter

    @property
    def countries(self) -> List[str]:
        return sorted(self._routes)

    def adapter_for(self, country: str) -> Optional[RateSourceAdapter]:
        return self._routes.get(normalize_country(country))

    def _adapters(self) -> List[RateSourceAdapter]:
        unique: List[RateSourceAdapter] = []
        for adapter in self._routes.values():
            if not any(adapter is seen for seen in unique):
                unique.append(adapter)
        return unique

    def get_rates(self, country: str, hs_code: Optional[str] = None) -> List[RateRecord]:
        country = normalize_country(country)
        key = cache_key(country, hs_code)
        if self.cache_enabled:
            cached = self._cache.get(key, now=self._clock(), ttl_seconds=self.ttl_seconds)
            if cached is not None:
                logger.debug("Rate cache hit for %s", key)
                return cached

        adapter = self._routes.get(country)
        if adapter is None:
            raise TaxCalculationError(
                ErrorCode.RATE_NOT_FOUND,
                f"No rate source is bound to country {country!r}",
                country=country,
            )

        try:
            records = adapter.fetch(country, hs_code)
        except TaxCalculationError:
            raise
        except Exception as exc:
            raise TaxCalculationError(
                ErrorCode.API_ERROR,
                f"Fetching rates from {adapter.name} failed: {exc}",
                country=country,
                details={"hs_code": hs_code},
            ) from exc

        logger.debug("Fetched %d rate records for %s from %s", len(records), key, adapter.name)
        if self.cache_enabled:
            self._cache.put(key, records)
        return list(records)

    @staticmethod
    def select_best(
        records: Sequence[RateRecord],
        hs_code: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Optional[RateRecord]:
        """Pick one record: exact code match first, else the most reliable source.

        ``category`` is accepted for callers that track it; it does not affect
        the choice.  Ties on reliability keep the earliest record.
        """
        if not records:
            return None
        if hs_code:
            for record in records:
                if record.hs_code == hs_code:
                    return record
        best = records[0]
        for record in records[1:]:
            if record.source.reliability > best.source.reliability:
                best = record
        return best

    def update_all(self) -> None:
        for adapter in self._adapters():
            try:
                adapter.refresh()
            except Exception:
                logger.exception("Refreshing %s failed", adapter.name)
        self._cache.clear()

    def validate_all(self) -> Dict[str, bool]:
        results: Dict[str, bool] = {}
        checked: Dict[int, bool] = {}
        for country, adapter in sorted(self._routes.items()):
            if id(adapter) not in checked:
                try:
                    checked[id(adapter)] = bool(adapter.health_check())
                except Exception:
                    logger.exception("Health check of %s raised", adapter.name)
                    checked[id(adapter)] = False
            results[country] = checked[id(adapter)]
        return results

    def clear_cache(self) -> None:
        self._cache.clear()

    def cache_stats(self) -> Dict[str, object]:
        return {"size": len(self._cache), "countries": self._cache.countries()}


def build_default_aggregator(
    config: Optional[EngineConfig] = None,
    *,
    eu_api_key: Optional[str] = None,
    timeout: Optional[float] = None,
    client: Optional[httpx.Client] = None,
    classifier: Optional[HSCodeClassifier] = None,
    cache: Optional[RateCache] = None,
    clock: Optional[Clock] = None,
) -> RateAggregator:
    """Aggregator wired with the EU, US, UK and static adapters."""
    config = config or EngineConfig()
    timeout = timeout if timeout is not None else http_timeout_from_env()
    api_key = eu_api_key if eu_api_key is not None else eu_api_key_from_env()
    classifier = classifier or HSCodeClassifier()
    adapters: List[RateSourceAdapter] = [
        EURateAdapter(api_key, timeout=timeout, client=client, classifier=classifier, clock=clock),
        USRateAdapter(timeout=timeout, client=client, clock=clock),
        UKRateAdapter(timeout=timeout, client=client, classifier=classifier, clock=clock),
        StaticRateAdapter(clock=clock),
    ]
    return RateAggregator(
        adapters,
        cache=cache,
        ttl_seconds=config.caching.ttl_seconds,
        cache_enabled=config.caching.enabled,
        clock=clock,
    )
