"""Duty and VAT determination for a single product shipped to one country."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from taxbridge.classification import HSCodeClassifier, normalize_code
from taxbridge.config import EngineConfig, merge_config
from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.models import (
    CalculationBlock,
    CalculationStep,
    CountryRates,
    Exemption,
    ExemptionType,
    ExtendedTaxResult,
    ProductModel,
    ProductSnapshot,
    RateRecord,
    RateSource,
    RateSourceId,
    RateThresholds,
    TaxCalculation,
)
from taxbridge.observability import log_calculation, run_scope
from taxbridge.rates import (
    SECTION_321_LIMIT,
    RateAggregator,
    build_default_aggregator,
    jurisdiction_thresholds,
    jurisdiction_vat_rate,
    known_jurisdictions,
    normalize_country,
    special_rules,
)
from taxbridge.rates.adapters.base import Clock, utcnow
from taxbridge.engine.batch import calculate_batch
from taxbridge.engine.money import convert_currency, exchange_rate, round_amount

logger = logging.getLogger(__name__)

NO_RATE_RELIABILITY = 0.5


@dataclass
class _Stage:
    amount: float = 0.0
    steps: List[CalculationStep] = field(default_factory=list)
    exemptions: List[Exemption] = field(default_factory=list)


def _money(value: float, currency: str) -> str:
    return f"{value:.2f} {currency}"


def _percent(rate: float) -> str:
    return f"{rate * 100:.2f}%"


class TaxCalculationEngine:
    """Computes duty, VAT and an explainable trace for products.

    The engine owns its configuration and delegates rate lookup to a
    :class:`~taxbridge.rates.aggregator.RateAggregator`, whose cache is the
    only state shared between calls.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        *,
        aggregator: Optional[RateAggregator] = None,
        classifier: Optional[HSCodeClassifier] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._classifier = classifier or HSCodeClassifier()
        self._clock = clock or utcnow
        self._aggregator = aggregator or build_default_aggregator(
            self._config, classifier=self._classifier, clock=self._clock
        )
        self._aggregator.ttl_seconds = self._config.caching.ttl_seconds
        self._aggregator.cache_enabled = self._config.caching.enabled
        self._id_factory = id_factory or (lambda: f"tax-calc-{uuid.uuid4().hex[:12]}")

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def aggregator(self) -> RateAggregator:
        return self._aggregator

    @property
    def classifier(self) -> HSCodeClassifier:
        return self._classifier

    @property
    def clock(self) -> Clock:
        return self._clock

    def set_config(self, **partial: Any) -> EngineConfig:
        """Apply a partial update; nested sections merge key by key."""
        self._config = merge_config(self._config, **partial)
        self._aggregator.ttl_seconds = self._config.caching.ttl_seconds
        self._aggregator.cache_enabled = self._config.caching.enabled
        logger.info("Engine configuration updated: %s", sorted(partial))
        return self._config

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------
    def calculate(self, product: Any, country: str) -> ExtendedTaxResult:
        product = self._coerce_product(product)
        country = normalize_country(country)
        self._validate_input(product, country)

        with run_scope():
            try:
                result = self._calculate(product, country)
            except TaxCalculationError:
                raise
            except Exception as exc:
                logger.exception("Tax calculation for %s to %s failed", product.id, country)
                raise TaxCalculationError(
                    ErrorCode.CALCULATION_FAILED,
                    f"Tax calculation failed: {exc}",
                    product_id=product.id,
                    country=country,
                ) from exc
            log_calculation(result)
        return result

    def calculate_summary(self, product: Any, country: str) -> TaxCalculation:
        return TaxCalculation.from_extended(self.calculate(product, country))

    def calculate_batch(self, products: Sequence[Any], country: str) -> List[ExtendedTaxResult]:
        return calculate_batch(self, products, country)

    def update_tax_rates(self) -> None:
        logger.info("Refreshing all rate sources")
        self._aggregator.update_all()

    def clear_cache(self) -> None:
        self._aggregator.clear_cache()

    def get_service_stats(self) -> Dict[str, Any]:
        return {
            "cache": self._aggregator.cache_stats(),
            "service_health": self._aggregator.validate_all(),
        }

    def supported_countries(self) -> List[str]:
        return self._aggregator.countries

    def country_rates(self, country: str) -> CountryRates:
        """Built-in VAT rate and thresholds for ``country``; no provider is queried."""
        code = normalize_country(country)
        if code not in known_jurisdictions():
            raise TaxCalculationError(
                ErrorCode.INVALID_COUNTRY,
                f"No tax rates known for {code or country!r}",
                country=code or None,
            )
        thresholds = jurisdiction_thresholds(code)
        return CountryRates(
            country=code,
            vat_rate=jurisdiction_vat_rate(code),
            duty_free_threshold=thresholds.duty_free,
            vat_free_threshold=thresholds.vat_free,
            special_threshold=thresholds.special_threshold,
            special_rules=special_rules(code),
        )

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------
    @staticmethod
    def _coerce_product(product: Any) -> ProductModel:
        if isinstance(product, ProductModel):
            return product
        if product is None:
            raise TaxCalculationError(ErrorCode.INVALID_PRODUCT, "Product is required")
        try:
            return ProductModel.model_validate(product, from_attributes=not isinstance(product, dict))
        except ValidationError as exc:
            product_id = product.get("id") if isinstance(product, dict) else getattr(product, "id", None)
            raise TaxCalculationError(
                ErrorCode.INVALID_PRODUCT,
                "Product record is malformed",
                product_id=str(product_id) if product_id is not None else None,
                details={"errors": exc.errors(include_url=False, include_input=False)},
            ) from exc

    def _validate_input(self, product: ProductModel, country: str) -> None:
        if not product.id:
            raise TaxCalculationError(ErrorCode.INVALID_PRODUCT, "Product is missing an id")
        bounds = self._config.validation
        price = product.price
        if not math.isfinite(price) or price < bounds.min_value or price > bounds.max_value:
            raise TaxCalculationError(
                ErrorCode.VALIDATION_ERROR,
                f"Product price {price} is outside the accepted range "
                f"[{bounds.min_value}, {bounds.max_value}]",
                product_id=product.id,
                details={"price": price, "min_value": bounds.min_value, "max_value": bounds.max_value},
            )
        if price == 0 and not bounds.allow_zero:
            raise TaxCalculationError(
                ErrorCode.VALIDATION_ERROR,
                "Zero-priced products are not accepted",
                product_id=product.id,
            )
        if not country:
            raise TaxCalculationError(
                ErrorCode.INVALID_COUNTRY,
                "Destination country is required",
                product_id=product.id,
            )

    def _resolve_classification(
        self, product: ProductModel, warnings: List[str]
    ) -> Tuple[Optional[str], Optional[str]]:
        hs_code = normalize_code(product.hs_code) if product.hs_code else None
        if hs_code and not self._classifier.validate_code(hs_code):
            warnings.append(f"HS code {product.hs_code!r} is not a 6-10 digit code; rates may not match")
        category = product.category.strip().lower() if product.category else None

        if not hs_code and product.title:
            suggestion = self._classifier.classify(product.title)
            if suggestion.suggested_code:
                hs_code = suggestion.suggested_code
            category = suggestion.category or category
        if hs_code and not category:
            category = self._classifier.category_for_code(hs_code)
        if not hs_code:
            warnings.append("No HS code provided or inferred; using estimated rates")
        return hs_code, category

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------
    def _calculate(self, product: ProductModel, country: str) -> ExtendedTaxResult:
        config = self._config
        base = config.base_currency
        warnings: List[str] = []

        if product.currency not in config.exchange_rates:
            warnings.append(f"No exchange rate configured for {product.currency}; assuming 1.0")
        price = convert_currency(product.price, product.currency, base, config.exchange_rates)

        hs_code, category = self._resolve_classification(product, warnings)

        records = self._aggregator.get_rates(country, hs_code)
        rate = self._aggregator.select_best(records, hs_code, category)
        if rate is None:
            warnings.append(f"No rate record found for {country}; using default rates")
        thresholds = rate.thresholds if rate is not None else jurisdiction_thresholds(country)

        duty_rate = self._duty_rate(rate, category)
        vat_rate = self._vat_rate(rate, country)
        duty = self._duty_stage(price, base, country, duty_rate, thresholds)
        vat = self._vat_stage(price, base, country, duty.amount, vat_rate, thresholds)

        total_tax = duty.amount + vat.amount
        total_value = price + total_tax
        rounding = config.rounding
        now = self._clock()

        return ExtendedTaxResult(
            id=self._id_factory(),
            timestamp=now,
            product=ProductSnapshot(
                id=product.id or "",
                title=product.title,
                price=product.price,
                currency=product.currency,
                weight=product.weight,
                hs_code=hs_code,
                category=category,
            ),
            destination_country=country,
            calculation=CalculationBlock(
                duties=round_amount(duty.amount, rounding),
                vat=round_amount(vat.amount, rounding),
                total_tax=round_amount(total_tax, rounding),
                total_value=round_amount(total_value, rounding),
                taxable_value=price,
                duty_rate=duty_rate,
                vat_rate=vat_rate,
                exchange_rate=exchange_rate(config.exchange_rates, product.currency, base),
                currency=base,
            ),
            details=duty.steps + vat.steps,
            thresholds=thresholds,
            exemptions=duty.exemptions + vat.exemptions,
            warnings=warnings,
            confidence=self._confidence(hs_code, rate, category),
            source=rate.source if rate is not None else self._local_source(country, now),
        )

    def _duty_rate(self, rate: Optional[RateRecord], category: Optional[str]) -> float:
        if rate is not None and rate.duty_rate is not None:
            return rate.duty_rate
        return self._classifier.category_duty_rate(category)

    @staticmethod
    def _vat_rate(rate: Optional[RateRecord], country: str) -> float:
        if rate is not None and rate.vat_rate is not None:
            return rate.vat_rate
        return jurisdiction_vat_rate(country)

    @staticmethod
    def _duty_stage(
        price: float,
        base: str,
        country: str,
        duty_rate: float,
        thresholds: RateThresholds,
    ) -> _Stage:
        stage = _Stage()
        limit = thresholds.duty_free
        exempt = price <= limit
        stage.steps.append(
            CalculationStep(
                step="duty_threshold_check",
                description="Compare the value with the duty-free threshold",
                value=limit,
                formula=f"{_money(price, base)} <= {_money(limit, base)}",
                variables={"price": price, "threshold": limit},
                applied=exempt,
            )
        )
        if exempt:
            stage.exemptions.append(
                Exemption(
                    type=ExemptionType.DUTY_FREE,
                    description=f"Value at or below the duty-free threshold of {_money(limit, base)}",
                )
            )
            return stage

        if country == "US":
            special = thresholds.special_threshold
            section_321 = special if special is not None else SECTION_321_LIMIT
            if price <= section_321:
                stage.steps.append(
                    CalculationStep(
                        step="section_321_check",
                        description="Section 321 de-minimis entry",
                        value=section_321,
                        formula=f"{_money(price, base)} <= {_money(section_321, base)}",
                        variables={"price": price, "threshold": section_321},
                        applied=True,
                    )
                )
                stage.exemptions.append(
                    Exemption(
                        type=ExemptionType.SECTION_321,
                        description=f"Section 321: shipments up to {_money(section_321, base)} enter duty free",
                    )
                )
                return stage

        stage.amount = price * duty_rate
        stage.steps.append(
            CalculationStep(
                step="duty_calculation",
                description="Apply the ad valorem duty rate",
                value=stage.amount,
                formula=f"{_money(price, base)} x {_percent(duty_rate)}",
                variables={"price": price, "rate": duty_rate, "amount": stage.amount},
                applied=True,
            )
        )
        return stage

    @staticmethod
    def _vat_stage(
        price: float,
        base: str,
        country: str,
        duty: float,
        vat_rate: float,
        thresholds: RateThresholds,
    ) -> _Stage:
        stage = _Stage()
        if country == "US":
            stage.steps.append(
                CalculationStep(
                    step="vat_country_check",
                    description="The US levies no federal VAT",
                    value=0.0,
                    formula="US: no VAT",
                    variables={"country": country},
                    applied=True,
                )
            )
            return stage

        limit = thresholds.vat_free
        exempt = price <= limit
        stage.steps.append(
            CalculationStep(
                step="vat_threshold_check",
                description="Compare the value with the VAT-free threshold",
                value=limit,
                formula=f"{_money(price, base)} <= {_money(limit, base)}",
                variables={"price": price, "threshold": limit},
                applied=exempt,
            )
        )
        if exempt:
            stage.exemptions.append(
                Exemption(
                    type=ExemptionType.VAT_FREE,
                    description=f"Value at or below the VAT-free threshold of {_money(limit, base)}",
                )
            )
            return stage

        taxable = price + duty
        stage.amount = taxable * vat_rate
        stage.steps.append(
            CalculationStep(
                step="vat_calculation",
                description="Apply VAT to the value including duty",
                value=stage.amount,
                formula=f"({_money(price, base)} + {_money(duty, base)}) x {_percent(vat_rate)}",
                variables={
                    "price": price,
                    "duty": duty,
                    "taxable_value": taxable,
                    "rate": vat_rate,
                    "amount": stage.amount,
                },
                applied=True,
            )
        )
        return stage

    @staticmethod
    def _confidence(hs_code: Optional[str], rate: Optional[RateRecord], category: Optional[str]) -> float:
        score = 0.5
        if hs_code:
            score += 0.2
        if rate is not None:
            score += rate.source.reliability * 0.3
        if category:
            score += 0.1
        return max(0.0, min(1.0, score))

    @staticmethod
    def _local_source(country: str, now: datetime) -> RateSource:
        return RateSource(
            country=country,
            source=RateSourceId.LOCAL,
            last_updated=now,
            version="1.0",
            reliability=NO_RATE_RELIABILITY,
        )
