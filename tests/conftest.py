"""Shared fixtures: an offline HTTP client and an engine wired to it."""

from __future__ import annotations

from typing import Iterator

import httpx
import pytest

from taxbridge.classification import HSCodeClassifier
from taxbridge.config import EngineConfig
from taxbridge.engine.calculator import TaxCalculationEngine
from taxbridge.rates.aggregator import build_default_aggregator
from tests.helpers.rates import fixed_clock, offline_handler


@pytest.fixture()
def offline_client() -> Iterator[httpx.Client]:
    client = httpx.Client(transport=httpx.MockTransport(offline_handler))
    yield client
    client.close()


@pytest.fixture()
def classifier() -> HSCodeClassifier:
    return HSCodeClassifier()


@pytest.fixture()
def engine(offline_client, classifier) -> TaxCalculationEngine:
    config = EngineConfig()
    aggregator = build_default_aggregator(
        config,
        eu_api_key="test-key",
        timeout=2.0,
        client=offline_client,
        classifier=classifier,
        clock=fixed_clock,
    )
    return TaxCalculationEngine(config, aggregator=aggregator, classifier=classifier, clock=fixed_clock)
