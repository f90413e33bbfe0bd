"""Calculation logging: one structured record per product or batch.

Records carry a ``payload`` dict (run id, country, amounts) for handlers
that ship structured logs; the message itself stays human readable.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional

from taxbridge.models import ExtendedTaxResult

logger = logging.getLogger(__name__)

_calculation_run: ContextVar[Optional[str]] = ContextVar("taxbridge_calculation_run", default=None)


def current_run_id() -> Optional[str]:
    return _calculation_run.get()


@contextmanager
def run_scope(run_id: Optional[str] = None) -> Iterator[str]:
    """Tag every calculation logged inside the block with one run id.

    A batch opens the scope once so its per-product records share the id;
    nested scopes without an explicit id join the enclosing run.
    """
    active = run_id or _calculation_run.get() or uuid.uuid4().hex
    token = _calculation_run.set(active)
    try:
        yield active
    finally:
        _calculation_run.reset(token)


def _emit(message: str, args: tuple, payload: Dict[str, Any]) -> None:
    logger.info(message, *args, extra={"payload": {"run_id": _calculation_run.get(), **payload}})


def log_calculation(result: ExtendedTaxResult) -> None:
    block = result.calculation
    _emit(
        "Calculated %s for %s: duties %.2f, vat %.2f %s",
        (result.product.id, result.destination_country, block.duties, block.vat, block.currency),
        {
            "event": "tax_calculated",
            "product_id": result.product.id,
            "country": result.destination_country,
            "hs_code": result.product.hs_code,
            "rate_source": result.source.source.value,
            "total_tax": block.total_tax,
            "confidence": result.confidence,
            "exemptions": [exemption.type.value for exemption in result.exemptions],
        },
    )


def log_batch(country: str, *, count: int, failed: int) -> None:
    _emit(
        "Batch for %s: %d products, %d failed",
        (country, count, failed),
        {"event": "tax_batch_calculated", "country": country, "count": count, "failed": failed},
    )


def mask_api_key(key: Optional[str]) -> str:
    """Keep only the last four characters of long keys."""
    if not key:
        return "<unset>"
    if len(key) <= 8:
        return "*" * len(key)
    return f"...{key[-4:]}"
