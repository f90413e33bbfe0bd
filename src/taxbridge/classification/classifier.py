"""Keyword-based harmonized code classification and code-table lookups."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

from taxbridge.classification.dictionary import (
    DEFAULT_DUTY_RATE,
    HS_CODE_TABLE,
    PRODUCT_CATEGORIES,
)
from taxbridge.errors import ErrorCode, TaxCalculationError
from taxbridge.models import CategoryInfo, ClassificationResult, CodeInfo

logger = logging.getLogger(__name__)

_CODE_RE = re.compile(r"[0-9]{6,10}")
_SEPARATOR_RE = re.compile(r"[\s.\-]")


def normalize_code(code: str) -> str:
    """Strip the dots, dashes and spaces used when printing tariff codes."""
    return _SEPARATOR_RE.sub("", str(code))


def _heading_in_range(heading: int, code_range: str) -> bool:
    start, _, end = code_range.partition("-")
    try:
        low = int(start)
        high = int(end or start)
    except ValueError:
        return False
    return low <= heading <= high


class HSCodeClassifier:
    """Classifies product titles and answers code-table queries.

    The tables are injected so callers can substitute a larger tariff
    dictionary; by default the built-in tables are used.
    """

    def __init__(
        self,
        codes: Sequence[CodeInfo] = HS_CODE_TABLE,
        categories: Sequence[CategoryInfo] = PRODUCT_CATEGORIES,
    ) -> None:
        self._codes = tuple(codes)
        self._categories = tuple(categories)

    @property
    def categories(self) -> tuple[CategoryInfo, ...]:
        return self._categories

    @property
    def codes(self) -> tuple[CodeInfo, ...]:
        return self._codes

    def classify(self, title: str) -> ClassificationResult:
        """Propose a category and code for ``title`` by keyword overlap.

        Category confidence is the share of its keywords found in the title.
        The strictly best category wins, so ties keep the earlier category.
        """
        normalized = (title or "").lower()
        best: Optional[tuple[CategoryInfo, float, List[str]]] = None
        for category in self._categories:
            matched = [kw for kw in category.keywords if kw.lower() in normalized]
            if not matched:
                continue
            confidence = len(matched) / len(category.keywords)
            if best is None or confidence > best[1]:
                best = (category, confidence, matched)

        if best is None:
            return ClassificationResult()

        category, confidence, matched = best
        suggested = next((info.code for info in self._codes if info.category == category.id), None)
        logger.debug(
            "Classified %r as %s (confidence %.3f, code %s)", title, category.id, confidence, suggested
        )
        return ClassificationResult(
            suggested_code=suggested,
            category=category.id,
            confidence=min(1.0, confidence),
            matched_keywords=matched,
        )

    @staticmethod
    def validate_code(code: str) -> bool:
        return isinstance(code, str) and _CODE_RE.fullmatch(code) is not None

    def lookup(self, code: str) -> Optional[CodeInfo]:
        """Exact code match, else the first entry sharing the 4-digit heading."""
        for info in self._codes:
            if info.code == code:
                return info
        heading = code[:4]
        if len(heading) < 4:
            return None
        for info in self._codes:
            if info.code.startswith(heading):
                return info.model_copy(
                    update={
                        "code": code,
                        "description": f"{info.description} (inferred)",
                        "notes": f"Inferred from heading {heading} ({info.code})",
                    }
                )
        return None

    def require(self, code: str) -> CodeInfo:
        """Like :meth:`lookup` but raises ``INVALID_HSCODE`` instead of returning None."""
        normalized = normalize_code(code)
        if not self.validate_code(normalized):
            raise TaxCalculationError(
                ErrorCode.INVALID_HSCODE,
                f"HS code must be 6-10 digits: {code!r}",
                details={"hs_code": code},
            )
        info = self.lookup(normalized)
        if info is None:
            raise TaxCalculationError(
                ErrorCode.INVALID_HSCODE,
                f"HS code {normalized} is not in the code table",
                details={"hs_code": normalized},
            )
        return info

    def lookup_by_chapter(self, chapter: str) -> List[CodeInfo]:
        chapter = str(chapter).zfill(2)
        return [info for info in self._codes if info.chapter == chapter]

    def search(self, query: str) -> List[CodeInfo]:
        needle = (query or "").lower()
        return [
            info
            for info in self._codes
            if needle in info.description.lower() or needle in info.category.lower()
        ]

    def get_category(self, category_id: Optional[str]) -> Optional[CategoryInfo]:
        if not category_id:
            return None
        wanted = category_id.lower()
        return next((cat for cat in self._categories if cat.id == wanted), None)

    def category_duty_rate(self, category_id: Optional[str]) -> float:
        category = self.get_category(category_id)
        return category.default_duty_rate if category else DEFAULT_DUTY_RATE

    def category_for_code(self, code: str) -> Optional[str]:
        """Category whose heading ranges contain ``code``, if any."""
        digits = normalize_code(code)
        if len(digits) < 4 or not digits[:4].isdigit():
            return None
        heading = int(digits[:4])
        for category in self._categories:
            if any(_heading_in_range(heading, code_range) for code_range in category.code_ranges):
                return category.id
        return None
