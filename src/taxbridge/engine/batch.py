"""Sequential batch calculation with per-item failure isolation."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence

from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.models import (
    CalculationBlock,
    ExtendedTaxResult,
    ProductSnapshot,
    RateSource,
    RateSourceId,
    RateThresholds,
)
from taxbridge.observability import log_batch, run_scope
from taxbridge.rates.jurisdictions import normalize_country

if TYPE_CHECKING:
    from taxbridge.engine.calculator import TaxCalculationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalculationOutcome:
    """Either a result or the error that replaced it, for one batch item."""

    index: int
    product: Any
    result: Optional[ExtendedTaxResult] = None
    error: Optional[TaxCalculationError] = None

    @property
    def ok(self) -> bool:
        return self.result is not None


def _field(product: Any, name: str) -> Any:
    # Mappings, ProductModel and the attribute objects ``calculate`` accepts.
    if isinstance(product, Mapping):
        return product.get(name)
    return getattr(product, name, None)


def _product_id(product: Any) -> Optional[str]:
    raw = _field(product, "id")
    return str(raw) if raw is not None else None


def calculate_outcomes(
    engine: "TaxCalculationEngine", products: Sequence[Any], country: str
) -> List[CalculationOutcome]:
    """Calculate each product in order, capturing failures instead of raising."""

    outcomes: List[CalculationOutcome] = []
    for index, product in enumerate(products):
        try:
            outcome = CalculationOutcome(index, product, result=engine.calculate(product, country))
        except TaxCalculationError as exc:
            logger.warning("Batch item %d (%s) failed: %s", index, _product_id(product), exc.message)
            outcome = CalculationOutcome(index, product, error=exc)
        except Exception as exc:
            logger.exception("Batch item %d (%s) raised unexpectedly", index, _product_id(product))
            error = TaxCalculationError(
                ErrorCode.CALCULATION_FAILED,
                f"Tax calculation failed: {exc}",
                product_id=_product_id(product),
                country=country,
            )
            outcome = CalculationOutcome(index, product, error=error)
        outcomes.append(outcome)
    return outcomes


def _number(value: Any) -> float:
    try:
        return float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0


def _snapshot(product: Any) -> ProductSnapshot:
    hs_code = _field(product, "hs_code")
    category = _field(product, "category")
    return ProductSnapshot(
        id=_product_id(product) or "",
        title=str(_field(product, "title") or ""),
        price=_number(_field(product, "price")),
        currency=str(_field(product, "currency") or "USD").upper(),
        weight=_number(_field(product, "weight")),
        hs_code=str(hs_code) if hs_code else None,
        category=str(category) if category else None,
    )


def failed_result(
    product: Any,
    country: str,
    error: TaxCalculationError,
    *,
    base_currency: str,
    now: datetime,
) -> ExtendedTaxResult:
    """Zero-tax placeholder standing in for a product whose calculation failed."""

    snapshot = _snapshot(product)
    country = normalize_country(country)
    return ExtendedTaxResult(
        id=f"tax-calc-error-{uuid.uuid4().hex[:12]}",
        timestamp=now,
        product=snapshot,
        destination_country=country,
        calculation=CalculationBlock(
            duties=0.0,
            vat=0.0,
            total_tax=0.0,
            total_value=snapshot.price,
            taxable_value=snapshot.price,
            duty_rate=0.0,
            vat_rate=0.0,
            exchange_rate=1.0,
            currency=base_currency,
        ),
        details=[],
        thresholds=RateThresholds(),
        exemptions=[],
        warnings=[f"Tax calculation failed: {error.message}"],
        confidence=0.0,
        source=RateSource(
            country=country,
            source=RateSourceId.LOCAL,
            last_updated=now,
            version="1.0",
            reliability=0.0,
        ),
    )


def calculate_batch(
    engine: "TaxCalculationEngine", products: Sequence[Any], country: str
) -> List[ExtendedTaxResult]:
    """One result per product, same order; failures become placeholders."""

    with run_scope():
        outcomes = calculate_outcomes(engine, products, country)
        now = engine.clock()
        results = [
            outcome.result
            if outcome.result is not None
            else failed_result(
                outcome.product,
                country,
                outcome.error,
                base_currency=engine.config.base_currency,
                now=now,
            )
            for outcome in outcomes
        ]
        log_batch(
            normalize_country(country),
            count=len(outcomes),
            failed=sum(1 for outcome in outcomes if not outcome.ok),
        )
    return results
