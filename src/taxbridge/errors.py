"""Typed failures raised by the tax determination engine."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    INVALID_PRODUCT = "INVALID_PRODUCT"
    INVALID_COUNTRY = "INVALID_COUNTRY"
    INVALID_HSCODE = "INVALID_HSCODE"
    RATE_NOT_FOUND = "RATE_NOT_FOUND"
    CALCULATION_FAILED = "CALCULATION_FAILED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    API_ERROR = "API_ERROR"
    CACHE_ERROR = "CACHE_ERROR"


# Input violations are reported to the caller as-is and never retried.
INPUT_ERRORS = frozenset(
    {ErrorCode.INVALID_PRODUCT, ErrorCode.VALIDATION_ERROR, ErrorCode.INVALID_COUNTRY}
)


class TaxCalculationError(Exception):
    """Failure carrying a closed error code plus traceability context."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        *,
        product_id: Optional[str] = None,
        country: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = ErrorCode(code)
        self.message = message
        self.product_id = product_id
        self.country = country
        self.details = dict(details or {})
        self.timestamp = datetime.now(timezone.utc)

    @property
    def is_input_error(self) -> bool:
        return self.code in INPUT_ERRORS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "product_id": self.product_id,
            "country": self.country,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"TaxCalculationError({self.code.value!r}, {self.message!r})"
