from __future__ import annotations

from datetime import timedelta

import pytest

from tests.helpers.rates import FIXED_NOW, RecordingAdapter, fixed_clock
from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.models import RateRecord, RateSource, RateSourceId
from taxbridge.rates.aggregator import RateAggregator


def _record(code: str, reliability: float) -> RateRecord:
    return RateRecord(
        id=f"r-{code}-{reliability}",
        country="DE",
        hs_code=code,
        duty_rate=0.01,
        vat_rate=0.19,
        effective_date=FIXED_NOW,
        source=RateSource(
            country="DE",
            source=RateSourceId.WTO,
            last_updated=FIXED_NOW,
            reliability=reliability,
        ),
    )


def test_get_rates_caches_results():
    adapter = RecordingAdapter(("DE",))
    aggregator = RateAggregator([adapter], clock=fixed_clock)

    first = aggregator.get_rates("de", "8517120000")
    second = aggregator.get_rates("DE", "8517120000")

    assert first == second
    assert adapter.calls == [("DE", "8517120000")]
    assert aggregator.cache_stats() == {"size": 1, "countries": ["DE"]}


def test_stale_entries_are_refetched():
    now = [FIXED_NOW]
    adapter = RecordingAdapter(("DE",))
    aggregator = RateAggregator([adapter], ttl_seconds=60, clock=lambda: now[0])

    aggregator.get_rates("DE", None)
    now[0] = FIXED_NOW + timedelta(seconds=61)
    aggregator.get_rates("DE", None)

    assert len(adapter.calls) == 2


def test_cache_can_be_disabled():
    adapter = RecordingAdapter(("DE",))
    aggregator = RateAggregator([adapter], cache_enabled=False, clock=fixed_clock)
    aggregator.get_rates("DE")
    aggregator.get_rates("DE")
    assert len(adapter.calls) == 2
    assert aggregator.cache_stats()["size"] == 0


def test_unbound_country_raises_rate_not_found():
    aggregator = RateAggregator([RecordingAdapter(("DE",))], clock=fixed_clock)
    with pytest.raises(TaxCalculationError) as excinfo:
        aggregator.get_rates("JP", "8517120000")
    assert excinfo.value.code is ErrorCode.RATE_NOT_FOUND
    assert excinfo.value.country == "JP"


def test_adapter_failures_become_api_errors():
    adapter = RecordingAdapter(("DE",), fail_for="9999999999")
    aggregator = RateAggregator([adapter], clock=fixed_clock)
    with pytest.raises(TaxCalculationError) as excinfo:
        aggregator.get_rates("DE", "9999999999")
    assert excinfo.value.code is ErrorCode.API_ERROR
    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert aggregator.cache_stats()["size"] == 0


def test_registering_again_rebinds_country():
    first = RecordingAdapter(("DE", "FR"))
    second = RecordingAdapter(("FR",))
    aggregator = RateAggregator([first, second], clock=fixed_clock)

    assert aggregator.adapter_for("FR") is second
    assert aggregator.adapter_for("de") is first
    assert aggregator.countries == ["DE", "FR"]


def test_select_best_prefers_exact_code_then_reliability():
    records = [_record("", 0.5), _record("8517120000", 0.3), _record("", 0.9)]
    assert RateAggregator.select_best(records, "8517120000").hs_code == "8517120000"
    assert RateAggregator.select_best(records, "6109100000").source.reliability == 0.9
    assert RateAggregator.select_best([], "8517120000") is None


def test_select_best_keeps_first_on_ties():
    records = [_record("a", 0.8), _record("b", 0.8)]
    assert RateAggregator.select_best(records).hs_code == "a"


def test_update_all_refreshes_each_adapter_once_and_clears_cache():
    shared = RecordingAdapter(("DE", "FR"))
    aggregator = RateAggregator([shared], clock=fixed_clock)
    aggregator.get_rates("DE")

    aggregator.update_all()

    assert shared.refreshed == 1
    assert aggregator.cache_stats()["size"] == 0


def test_validate_all_reports_per_country():
    class Broken(RecordingAdapter):
        def health_check(self) -> bool:
            raise RuntimeError("boom")

    aggregator = RateAggregator([RecordingAdapter(("DE",)), Broken(("US",))], clock=fixed_clock)
    assert aggregator.validate_all() == {"DE": True, "US": False}
