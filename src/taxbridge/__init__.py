"""taxbridge - cross-border import duty and VAT determination."""

from .config import EngineConfig
from .engine.calculator import TaxCalculationEngine
from .errors import ErrorCode, TaxCalculationError
from .models import ExtendedTaxResult, ProductModel, TaxCalculation
from .version import __version__

__all__ = [
    "EngineConfig",
    "ErrorCode",
    "ExtendedTaxResult",
    "ProductModel",
    "TaxCalculation",
    "TaxCalculationEngine",
    "TaxCalculationError",
    "__version__",
]
