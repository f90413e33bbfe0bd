"""Rate source adapter capability and the shared HTTP plumbing."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional

import httpx

from taxbridge.models import RateRecord, RateSource, RateSourceId
from taxbridge.rates.jurisdictions import normalize_country

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: Any, default: Optional[datetime]) -> Optional[datetime]:
    """Parse an ISO date/time from a provider payload, falling back to ``default``."""
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=timezone.utc)
    if not raw:
        return default
    try:
        parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return default
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class RateSourceAdapter(ABC):
    """One rate provider serving one or more destination countries."""

    source_id: RateSourceId = RateSourceId.LOCAL
    reliability: float = 0.5

    def __init__(self, countries: Iterable[str], *, clock: Optional[Clock] = None) -> None:
        self._countries = frozenset(normalize_country(country) for country in countries)
        self._clock = clock or utcnow
        self.last_refreshed: Optional[datetime] = None

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def countries(self) -> frozenset[str]:
        return self._countries

    def serves(self, country: str) -> bool:
        return normalize_country(country) in self._countries

    @abstractmethod
    def fetch(self, country: str, hs_code: Optional[str] = None) -> List[RateRecord]:
        """Return rate records for ``country``; ``[]`` for countries not served."""

    @abstractmethod
    def refresh(self) -> None:
        """Best-effort re-sync with the provider; failures are logged, not raised."""

    @abstractmethod
    def health_check(self) -> bool:
        """Return True when the provider can currently answer."""

    def _now(self) -> datetime:
        return self._clock()

    def _provenance(
        self,
        country: str,
        *,
        version: str = "1.0",
        reliability: Optional[float] = None,
    ) -> RateSource:
        return RateSource(
            country=country,
            source=self.source_id,
            last_updated=self._now(),
            version=version,
            reliability=self.reliability if reliability is None else reliability,
        )


class HttpRateSourceAdapter(RateSourceAdapter):
    """Adapter backed by a JSON HTTP API reached through an ``httpx.Client``.

    A client may be injected (tests use ``httpx.MockTransport``); otherwise the
    adapter owns one and closes it in :meth:`close`.
    """

    def __init__(
        self,
        countries: Iterable[str],
        *,
        base_url: str,
        timeout: float = 10.0,
        headers: Optional[Mapping[str, str]] = None,
        client: Optional[httpx.Client] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        super().__init__(countries, clock=clock)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = dict(headers or {})
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def _url(self, path: str = "") -> str:
        return f"{self.base_url}{path}" if path else self.base_url

    def _get_json(
        self,
        path: str = "",
        params: Optional[Mapping[str, Any]] = None,
        *,
        timeout: Optional[float] = None,
    ) -> Any:
        response = self._client.get(
            self._url(path),
            params=dict(params or {}),
            headers=self._headers,
            timeout=timeout or self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def _ping(self) -> None:
        self._get_json(timeout=min(self.timeout, 5.0))

    def refresh(self) -> None:
        try:
            self._ping()
        except (httpx.HTTPError, ValueError):
            logger.exception("Refresh of %s failed", self.name)
            return
        self.last_refreshed = self._now()
        logger.info("Refreshed %s", self.name)

    def health_check(self) -> bool:
        try:
            self._ping()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Health check of %s failed: %s", self.name, exc)
            return False
        return True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "HttpRateSourceAdapter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
