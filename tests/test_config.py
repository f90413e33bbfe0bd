from __future__ import annotations

import pytest
from pydantic import ValidationError

from taxbridge.config import (
    EngineConfig,
    RoundingPolicy,
    ValidationBounds,
    eu_api_key_from_env,
    http_timeout_from_env,
    load_config_from_env,
    merge_config,
)


def test_defaults():
    config = EngineConfig()
    assert config.base_currency == "USD"
    assert config.exchange_rates == {"USD": 1.0, "EUR": 0.85, "GBP": 0.75, "CNY": 7.2}
    assert config.rounding.decimals == 2
    assert config.rounding.method == "round"
    assert config.validation.max_value == 100000
    assert config.validation.allow_zero is True
    assert config.caching.enabled is True
    assert config.caching.ttl_seconds == 3600


def test_merge_config_is_deep_except_for_exchange_rates():
    merged = merge_config(
        EngineConfig(),
        rounding={"decimals": 3},
        exchange_rates={"usd": 1, "jpy": 150},
    )
    assert merged.rounding.decimals == 3
    assert merged.rounding.method == "round"
    assert merged.exchange_rates == {"USD": 1.0, "JPY": 150.0}


def test_merge_config_rejects_unknown_keys():
    with pytest.raises(ValidationError):
        merge_config(EngineConfig(), colour="blue")


def test_rounding_method_is_case_insensitive():
    assert RoundingPolicy(method="FLOOR").method == "floor"
    with pytest.raises(ValidationError):
        RoundingPolicy(method="bankers")
    with pytest.raises(ValidationError):
        RoundingPolicy(decimals=7)


def test_invalid_bounds_and_rates_are_rejected():
    with pytest.raises(ValidationError):
        ValidationBounds(min_value=10, max_value=5)
    with pytest.raises(ValidationError):
        EngineConfig(exchange_rates={"EUR": 0})


def test_load_config_from_env(monkeypatch):
    monkeypatch.setenv("TAXBRIDGE_BASE_CURRENCY", "eur")
    monkeypatch.setenv("TAXBRIDGE_ROUNDING_DECIMALS", "3")
    monkeypatch.setenv("TAXBRIDGE_ROUNDING_METHOD", "ceil")
    monkeypatch.setenv("TAXBRIDGE_MAX_VALUE", "5000")
    monkeypatch.setenv("TAXBRIDGE_ALLOW_ZERO", "false")
    monkeypatch.setenv("TAXBRIDGE_CACHE_ENABLED", "0")
    monkeypatch.setenv("TAXBRIDGE_CACHE_TTL", "not-a-number")

    config = load_config_from_env()

    assert config.base_currency == "EUR"
    assert config.rounding.decimals == 3
    assert config.rounding.method == "ceil"
    assert config.validation.max_value == 5000
    assert config.validation.allow_zero is False
    assert config.caching.enabled is False
    assert config.caching.ttl_seconds == 3600


def test_adapter_settings_from_env(monkeypatch):
    monkeypatch.delenv("TAXBRIDGE_HTTP_TIMEOUT", raising=False)
    monkeypatch.delenv("TAXBRIDGE_EU_API_KEY", raising=False)
    assert http_timeout_from_env() == 10.0
    assert eu_api_key_from_env() == ""

    monkeypatch.setenv("TAXBRIDGE_HTTP_TIMEOUT", "2.5")
    monkeypatch.setenv("TAXBRIDGE_EU_API_KEY", "abc123")
    assert http_timeout_from_env() == 2.5
    assert eu_api_key_from_env() == "abc123"
