from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Tuple

UNCATEGORIZED = "uncategorized"


@dataclass(slots=True)
class Transaction:
    """A signed money movement: positive amounts are income, negative are expenses."""

    id: str | None
    amount: float
    category: str
    day: int | None = None
    month: int | None = None
    year: int | None = None
    notes: str | None = None

    @property
    def category_key(self) -> str:
        return category_key(self.category)

    @property
    def period(self) -> Tuple[int, int] | None:
        if self.month is None or self.year is None:
            return None
        return self.month, self.year

    @property
    def sort_key(self) -> Tuple[int, int, int]:
        return self.year or 0, self.month or 0, self.day or 0

    def in_period(self, month: int, year: int) -> bool:
        return self.month == month and self.year == year


@dataclass(slots=True)
class Budget:
    """Planned spending limit for one category in one calendar month."""

    id: str | None
    category: str
    amount: float
    month: int | None = None
    year: int | None = None
    notes: str | None = None

    @property
    def category_key(self) -> str:
        return category_key(self.category)

    def in_period(self, month: int, year: int) -> bool:
        return self.month == month and self.year == year


def category_key(category: Any) -> str:
    """Canonical lookup key for a free-text category label."""
    if category is None:
        return UNCATEGORIZED
    key = str(category).strip().lower()
    return key or UNCATEGORIZED


def coerce_amount(value: Any) -> float:
    """Numeric value of `value`, or 0.0 when it is missing or not a finite number."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(amount) or math.isinf(amount):
        return 0.0
    return amount


def parse_combined_date(value: Any) -> date | None:
    """
    Interpret a combined date value (ISO string, `date`, or `datetime`).

    Returns None for anything that does not parse so callers can treat the
    record as undated instead of failing.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def coerce_transaction(raw: Transaction | Mapping[str, Any]) -> Transaction:
    """
    Build a Transaction from a loosely-typed document.

    Missing or non-numeric amounts become 0, a missing category becomes
    `UNCATEGORIZED`, and day/month/year fall back to a combined `date` field when
    the separate fields are absent.
    """
    if isinstance(raw, Transaction):
        return raw

    day, month, year = _calendar_parts(raw)
    category = raw.get("category")
    return Transaction(
        id=_record_id(raw),
        amount=coerce_amount(raw.get("amount")),
        category=str(category).strip() if category is not None and str(category).strip() else UNCATEGORIZED,
        day=day,
        month=month,
        year=year,
        notes=raw.get("notes"),
    )


def coerce_budget(raw: Budget | Mapping[str, Any]) -> Budget:
    """Build a Budget from a loosely-typed document; amounts are kept non-negative."""
    if isinstance(raw, Budget):
        return raw

    _, month, year = _calendar_parts(raw)
    category = raw.get("category")
    return Budget(
        id=_record_id(raw),
        category=str(category).strip() if category is not None and str(category).strip() else UNCATEGORIZED,
        amount=abs(coerce_amount(raw.get("amount"))),
        month=month,
        year=year,
        notes=raw.get("notes"),
    )


def _record_id(raw: Mapping[str, Any]) -> str | None:
    identifier = raw.get("id", raw.get("_id"))
    return str(identifier) if identifier is not None else None


def _calendar_parts(raw: Mapping[str, Any]) -> Tuple[int | None, int | None, int | None]:
    day = _coerce_int(raw.get("day"))
    month = _coerce_int(raw.get("month"))
    year = _coerce_int(raw.get("year"))

    if month is None or year is None:
        combined = parse_combined_date(raw.get("date"))
        if combined is not None:
            # Explicit fields win; the combined value only fills the gaps.
            day = day if day is not None else combined.day
            month = month if month is not None else combined.month
            year = year if year is not None else combined.year

    return day, month, year


def _coerce_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number) or not number.is_integer():
        return None
    return int(number)
