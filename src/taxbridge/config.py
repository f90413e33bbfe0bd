"""Engine configuration: base currency, exchange table, rounding, bounds, caching.

Values can be supplied directly, partially updated through
:func:`merge_config`, or read from ``TAXBRIDGE_*`` environment variables with
:func:`load_config_from_env`.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DEFAULT_EXCHANGE_RATES: Dict[str, float] = {"USD": 1.0, "EUR": 0.85, "GBP": 0.75, "CNY": 7.2}


class RoundingPolicy(BaseModel):
    """How user-facing monetary amounts are rounded."""

    decimals: int = Field(default=2, ge=0, le=4)
    method: Literal["round", "floor", "ceil"] = "round"

    model_config = ConfigDict(extra="forbid")

    @field_validator("method", mode="before")
    @classmethod
    def _lower_method(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class ValidationBounds(BaseModel):
    """Accepted product price range, in the product's own currency."""

    min_value: float = Field(default=0.0, ge=0.0)
    max_value: float = Field(default=100000.0, ge=0.0)
    allow_zero: bool = True

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_range(self) -> "ValidationBounds":
        if self.min_value > self.max_value:
            raise ValueError("min_value must not exceed max_value")
        return self


class CachingPolicy(BaseModel):
    enabled: bool = True
    ttl_seconds: float = Field(default=3600.0, ge=0.0)

    model_config = ConfigDict(extra="forbid")


class EngineConfig(BaseModel):
    """Complete configuration for :class:`~taxbridge.engine.calculator.TaxCalculationEngine`."""

    base_currency: str = "USD"
    exchange_rates: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_EXCHANGE_RATES))
    rounding: RoundingPolicy = Field(default_factory=RoundingPolicy)
    validation: ValidationBounds = Field(default_factory=ValidationBounds)
    caching: CachingPolicy = Field(default_factory=CachingPolicy)

    model_config = ConfigDict(extra="forbid")

    @field_validator("base_currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("exchange_rates", mode="before")
    @classmethod
    def _normalize_rates(cls, value: Any) -> Any:
        if isinstance(value, Mapping):
            rates = {str(k).strip().upper(): float(v) for k, v in value.items()}
            for currency, rate in rates.items():
                if rate <= 0:
                    raise ValueError(f"exchange rate for {currency} must be positive")
            return rates
        return value


def _deep_merge(base: Dict[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, BaseModel):
            value = value.model_dump()
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict) and key != "exchange_rates":
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_config(current: EngineConfig, **partial: Any) -> EngineConfig:
    """Return a new config with ``partial`` applied on top of ``current``.

    Nested sections merge key by key; ``exchange_rates`` is replaced whole.
    """

    return EngineConfig.model_validate(_deep_merge(current.model_dump(), partial))


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("true", "1", "yes", "on")


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_config_from_env() -> EngineConfig:
    """Build an :class:`EngineConfig` from ``TAXBRIDGE_*`` environment variables."""

    defaults = EngineConfig()
    return EngineConfig(
        base_currency=os.getenv("TAXBRIDGE_BASE_CURRENCY", defaults.base_currency),
        exchange_rates=defaults.exchange_rates,
        rounding=RoundingPolicy(
            decimals=int(_env_float("TAXBRIDGE_ROUNDING_DECIMALS", defaults.rounding.decimals)),
            method=os.getenv("TAXBRIDGE_ROUNDING_METHOD", defaults.rounding.method),
        ),
        validation=ValidationBounds(
            min_value=_env_float("TAXBRIDGE_MIN_VALUE", defaults.validation.min_value),
            max_value=_env_float("TAXBRIDGE_MAX_VALUE", defaults.validation.max_value),
            allow_zero=_env_bool("TAXBRIDGE_ALLOW_ZERO", defaults.validation.allow_zero),
        ),
        caching=CachingPolicy(
            enabled=_env_bool("TAXBRIDGE_CACHE_ENABLED", defaults.caching.enabled),
            ttl_seconds=_env_float("TAXBRIDGE_CACHE_TTL", defaults.caching.ttl_seconds),
        ),
    )


def http_timeout_from_env(default: float = 10.0) -> float:
    return _env_float("TAXBRIDGE_HTTP_TIMEOUT", default)


def eu_api_key_from_env() -> str:
    return os.getenv("TAXBRIDGE_EU_API_KEY", "")
