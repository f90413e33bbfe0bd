from __future__ import annotations

from datetime import timedelta

import pytest

from tests.helpers.rates import FIXED_NOW, RecordingAdapter
from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.rates.cache import RateCache, cache_key


def _records(country="DE", code="8517120000"):
    return RecordingAdapter((country,)).fetch(country, code)


def test_cache_key_uses_all_for_missing_code():
    assert cache_key("DE", None) == ("DE", "all")
    assert cache_key("DE", "") == ("DE", "all")
    assert cache_key("DE", "8517120000") == ("DE", "8517120000")


def test_fresh_entries_are_served_until_ttl():
    cache = RateCache()
    key = cache_key("DE", "8517120000")
    cache.put(key, _records())

    assert cache.get(key, now=FIXED_NOW + timedelta(seconds=59), ttl_seconds=60) is not None
    assert cache.get(key, now=FIXED_NOW + timedelta(seconds=60), ttl_seconds=60) is None


def test_expired_entries_are_evicted_on_lookup():
    cache = RateCache()
    stale = cache_key("DE", "8517120000")
    fresh = cache_key("DE", "6109100000")
    cache.put(stale, _records())
    cache.put(fresh, _records(code="6109100000"))

    assert cache.get(stale, now=FIXED_NOW + timedelta(seconds=61), ttl_seconds=60) is None
    assert len(cache) == 1
    assert cache.get(fresh, now=FIXED_NOW, ttl_seconds=60) is not None
    assert cache.get(cache_key("FR", None), now=FIXED_NOW, ttl_seconds=60) is None
    assert len(cache) == 1


def test_empty_entries_are_never_served():
    cache = RateCache()
    key = cache_key("DE", None)
    cache.put(key, [])
    assert len(cache) == 1
    assert cache.get(key, now=FIXED_NOW, ttl_seconds=3600) is None
    assert len(cache) == 0


def test_put_rejects_records_for_another_country():
    cache = RateCache()
    with pytest.raises(TaxCalculationError) as excinfo:
        cache.put(cache_key("FR", None), _records("DE"))
    assert excinfo.value.code is ErrorCode.CACHE_ERROR
    assert len(cache) == 0


def test_countries_and_clear():
    cache = RateCache()
    cache.put(cache_key("FR", None), _records("FR", None))
    cache.put(cache_key("DE", "1"), _records("DE", "1"))
    cache.put(cache_key("FR", "2"), _records("FR", "2"))

    assert cache.countries() == ["FR", "DE"]
    assert len(cache) == 3
    cache.clear()
    assert len(cache) == 0
