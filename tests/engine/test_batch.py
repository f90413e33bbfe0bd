from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pytest

from tests.helpers.rates import FIXED_NOW, RecordingAdapter, fixed_clock
from taxbridge.engine.batch import calculate_outcomes
from taxbridge.engine.calculator import TaxCalculationEngine
from taxbridge.engine.validation import summarize_results
from taxbridge.errors import ErrorCode
from taxbridge.models import RateSourceId
from taxbridge.rates.aggregator import RateAggregator


@pytest.fixture()
def flaky_engine() -> TaxCalculationEngine:
    aggregator = RateAggregator([RecordingAdapter(("DE",), fail_for="9999999999")], clock=fixed_clock)
    return TaxCalculationEngine(aggregator=aggregator, clock=fixed_clock)


PRODUCTS = [
    {"id": "ok", "title": "Phone", "price": 100, "hs_code": "8517120000"},
    {"id": "boom", "title": "Mystery", "price": 40, "hs_code": "9999999999"},
]


def test_failing_item_becomes_placeholder(flaky_engine):
    results = flaky_engine.calculate_batch(PRODUCTS, "DE")

    assert len(results) == 2
    ok, failed = results
    assert ok.product.id == "ok"
    assert ok.calculation.duties == pytest.approx(5.0)
    assert ok.confidence > 0

    assert failed.product.id == "boom"
    assert failed.calculation.duties == 0
    assert failed.calculation.vat == 0
    assert failed.calculation.total_tax == 0
    assert failed.calculation.total_value == pytest.approx(40)
    assert failed.confidence == 0
    assert failed.warnings and failed.warnings[0].startswith("Tax calculation failed:")
    assert failed.source.source is RateSourceId.LOCAL
    assert failed.source.reliability == 0
    assert failed.timestamp == FIXED_NOW


def test_outcomes_keep_the_error(flaky_engine):
    outcomes = calculate_outcomes(flaky_engine, PRODUCTS, "DE")

    assert [outcome.ok for outcome in outcomes] == [True, False]
    assert [outcome.index for outcome in outcomes] == [0, 1]
    assert outcomes[1].result is None
    assert outcomes[1].error.code is ErrorCode.API_ERROR


def test_malformed_products_are_isolated(flaky_engine):
    products = [None, {"price": "abc"}, {"id": "neg", "price": -5}, {"id": "fine", "price": 10}]
    results = flaky_engine.calculate_batch(products, "DE")

    assert len(results) == 4
    assert [result.confidence for result in results[:3]] == [0, 0, 0]
    assert results[1].product.price == 0.0
    assert results[2].product.id == "neg"
    assert results[3].confidence > 0

    outcomes = calculate_outcomes(flaky_engine, products, "DE")
    assert [outcome.error.code for outcome in outcomes[:3]] == [
        ErrorCode.INVALID_PRODUCT,
        ErrorCode.INVALID_PRODUCT,
        ErrorCode.VALIDATION_ERROR,
    ]


def test_unbound_country_fails_every_item_without_raising(flaky_engine):
    results = flaky_engine.calculate_batch(PRODUCTS, "JP")
    assert all(result.confidence == 0 for result in results)
    assert all(result.destination_country == "JP" for result in results)


def test_empty_batch(flaky_engine):
    assert flaky_engine.calculate_batch([], "DE") == []


def test_summarize_results_counts_failures(flaky_engine):
    totals = summarize_results(flaky_engine.calculate_batch(PRODUCTS, "DE"))

    assert totals.count == 2
    assert totals.failed == 1
    assert totals.total_duties == pytest.approx(5.0)
    assert totals.total_vat == pytest.approx(19.95)
    assert totals.total_tax == pytest.approx(24.95)
    assert totals.total_value == pytest.approx(124.95 + 40)


@dataclass
class Item:
    id: str
    title: str
    price: float
    currency: str = "USD"
    hs_code: Optional[str] = None


def test_attribute_products_keep_their_fields_in_placeholders(flaky_engine):
    items = [
        Item("a", "Phone", 100, hs_code="8517120000"),
        Item("boom", "Mystery box", 40, currency="eur", hs_code="9999999999"),
    ]
    ok, failed = flaky_engine.calculate_batch(items, "DE")

    assert ok.product.id == "a"
    assert ok.confidence > 0

    assert failed.confidence == 0
    assert failed.product.id == "boom"
    assert failed.product.title == "Mystery box"
    assert failed.product.price == pytest.approx(40)
    assert failed.product.currency == "EUR"
    assert failed.product.hs_code == "9999999999"
    assert failed.calculation.total_value == pytest.approx(40)
