"""Thread-safe TTL cache for rate lookups."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.models import RateRecord

CacheKey = Tuple[str, str]

ALL_CODES = "all"


def cache_key(country: str, hs_code: Optional[str]) -> CacheKey:
    return (country, hs_code or ALL_CODES)


class RateCache:
    """Maps ``(country, code-or-"all")`` to the records last fetched for it.

    Freshness is judged from the first record's ``source.last_updated``, so
    an empty result is never served; a lookup that finds an empty or expired
    entry evicts it.  A single lock guards the map; a duplicate fetch after a
    race only costs an extra provider call.
    """

    def __init__(self) -> None:
        self._entries: Dict[CacheKey, List[RateRecord]] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey, *, now: datetime, ttl_seconds: float) -> Optional[List[RateRecord]]:
        with self._lock:
            records = self._entries.get(key)
            if records is None:
                return None
            if records and (now - records[0].source.last_updated).total_seconds() < ttl_seconds:
                return list(records)
            del self._entries[key]
        return None

    def put(self, key: CacheKey, records: Sequence[RateRecord]) -> None:
        country = key[0]
        strays = sorted({record.country for record in records if record.country != country})
        if strays:
            raise TaxCalculationError(
                ErrorCode.CACHE_ERROR,
                f"Refusing to cache {', '.join(strays)} rates under {country}",
                country=country,
            )
        with self._lock:
            self._entries[key] = list(records)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def countries(self) -> List[str]:
        """Distinct countries with cached entries, in insertion order."""
        with self._lock:
            keys = list(self._entries)
        seen: List[str] = []
        for country, _ in keys:
            if country not in seen:
                seen.append(country)
        return seen
