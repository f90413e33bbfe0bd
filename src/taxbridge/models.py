from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductModel(BaseModel):
    """E-commerce line item supplied by the caller."""

    id: Optional[str] = None
    title: str = ""
    price: float
    currency: str = "USD"
    weight: float = 0.0
    hs_code: Optional[str] = None
    category: Optional[str] = None
    origin_country: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True, coerce_numbers_to_str=True)

    @field_validator("currency", mode="before")
    @classmethod
    def _upper_currency(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("title", mode="before")
    @classmethod
    def _null_title(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("hs_code", "category", "origin_country", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ClassificationResult(BaseModel):
    """Outcome of keyword classification for a product title."""

    suggested_code: Optional[str] = None
    category: Optional[str] = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    matched_keywords: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")


class CodeInfo(BaseModel):
    """Entry of the harmonized code table."""

    code: str
    description: str
    category: str
    chapter: str
    duty_rate: float = Field(ge=0.0, le=1.0)
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class CategoryInfo(BaseModel):
    """Product category with its keyword list and heading ranges."""

    id: str
    name: str
    code_ranges: List[str]
    default_duty_rate: float = Field(ge=0.0, le=1.0)
    keywords: List[str]
    level: int = Field(default=1, ge=1, le=3)

    model_config = ConfigDict(extra="forbid", frozen=True)


class RateSourceId(str, Enum):
    WTO = "WTO"
    EU_COMMISSION = "EU_COMMISSION"
    USCBP = "USCBP"
    HMRC = "HMRC"
    LOCAL = "LOCAL"


class RateSource(BaseModel):
    """Provenance of a rate record."""

    country: str
    source: RateSourceId
    last_updated: datetime
    version: str = "1.0"
    reliability: float = Field(ge=0.0, le=1.0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class RateThresholds(BaseModel):
    """De-minimis amounts, expressed in the engine's base currency."""

    duty_free: float = Field(default=0.0, ge=0.0)
    vat_free: float = Field(default=0.0, ge=0.0)
    special_threshold: Optional[float] = Field(default=None, ge=0.0)

    model_config = ConfigDict(extra="forbid", frozen=True)


class RateRecord(BaseModel):
    """Duty/VAT rates for a (country, code) pair from one source.

    ``duty_rate``/``vat_rate`` of ``None`` mean the source did not publish a
    value and the category or jurisdiction default applies.
    """

    id: str
    country: str
    hs_code: str = ""
    duty_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    vat_rate: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    thresholds: RateThresholds = Field(default_factory=RateThresholds)
    effective_date: datetime
    expiry_date: Optional[datetime] = None
    source: RateSource
    notes: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class CalculationStep(BaseModel):
    """One explainable step of the duty/VAT state machine."""

    step: str
    description: str
    value: float
    formula: str
    variables: Dict[str, Union[float, str]] = Field(default_factory=dict)
    applied: bool

    model_config = ConfigDict(extra="forbid", frozen=True)


class ExemptionType(str, Enum):
    DUTY_FREE = "DUTY_FREE"
    VAT_FREE = "VAT_FREE"
    SECTION_321 = "SECTION_321"
    TRADE_AGREEMENT = "TRADE_AGREEMENT"


class Exemption(BaseModel):
    """Why an amount is zero; full exemptions always carry ``amount == 0``."""

    type: ExemptionType
    description: str
    amount: float = 0.0

    model_config = ConfigDict(extra="forbid", frozen=True)


class ProductSnapshot(BaseModel):
    id: str
    title: str
    price: float
    currency: str
    weight: float
    hs_code: Optional[str] = None
    category: Optional[str] = None

    model_config = ConfigDict(extra="forbid", frozen=True)


class CalculationBlock(BaseModel):
    duties: float
    vat: float
    total_tax: float
    total_value: float
    taxable_value: float
    duty_rate: float
    vat_rate: float
    exchange_rate: float
    currency: str

    model_config = ConfigDict(extra="forbid", frozen=True)


class ExtendedTaxResult(BaseModel):
    """Audit-ready result for one product and destination country."""

    id: str
    timestamp: datetime
    product: ProductSnapshot
    destination_country: str
    calculation: CalculationBlock
    details: List[CalculationStep] = Field(default_factory=list)
    thresholds: RateThresholds
    exemptions: List[Exemption] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    source: RateSource

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def exemption_types(self) -> List[ExemptionType]:
        return [item.type for item in self.exemptions]


class RateSummary(BaseModel):
    duty_rate: float
    vat_rate: float
    taxable_value: float

    model_config = ConfigDict(extra="forbid", frozen=True)


class TaxCalculation(BaseModel):
    """Backward-compatible summary without the calculation trace."""

    product: ProductSnapshot
    destination_country: str
    duties: float
    vat: float
    total_tax: float
    threshold: RateThresholds
    calculation: RateSummary

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_extended(cls, result: ExtendedTaxResult) -> "TaxCalculation":
        return cls(
            product=result.product,
            destination_country=result.destination_country,
            duties=result.calculation.duties,
            vat=result.calculation.vat,
            total_tax=result.calculation.total_tax,
            threshold=result.thresholds,
            calculation=RateSummary(
                duty_rate=result.calculation.duty_rate,
                vat_rate=result.calculation.vat_rate,
                taxable_value=result.calculation.taxable_value,
            ),
        )


class BatchTotals(BaseModel):
    """Aggregate amounts over a batch of results."""

    count: int
    failed: int
    total_duties: float
    total_vat: float
    total_tax: float
    total_value: float

    model_config = ConfigDict(extra="forbid", frozen=True)


class CountryRates(BaseModel):
    """Headline VAT rate, de-minimis thresholds and special rules of a country."""

    country: str
    vat_rate: float = Field(ge=0.0, le=1.0)
    duty_free_threshold: float = Field(ge=0.0)
    vat_free_threshold: float = Field(ge=0.0)
    special_threshold: Optional[float] = Field(default=None, ge=0.0)
    special_rules: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)
