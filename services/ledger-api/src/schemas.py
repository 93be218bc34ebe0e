"""
Request and response models for the ledger API.

Each record kind has one validating model per write operation. Incoming bodies
are sanitized (operator-style keys are dropped), combined `date` values are
normalized into the canonical day/month/year fields, and budget amounts are
stored as absolute values. Anything that fails validation is rejected before the
store is touched.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, List, Optional, Tuple

from analytics import parse_combined_date
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_CATEGORY_LENGTH = 100
MAX_NOTES_LENGTH = 2000


def strip_operator_keys(value: Any) -> Any:
    """
    Drop mapping keys that start with `$` or contain `.`, recursively.

    Document stores treat such keys as query operators or field paths; they are
    never legitimate record fields.
    """
    if isinstance(value, dict):
        return {
            key: strip_operator_keys(item)
            for key, item in value.items()
            if not (isinstance(key, str) and (key.startswith("$") or "." in key))
        }
    if isinstance(value, list):
        return [strip_operator_keys(item) for item in value]
    return value


def _expand_combined_date(data: Any, parts: Tuple[str, ...]) -> Any:
    """Fill missing calendar fields from a combined `date` value, if one was sent."""
    if not isinstance(data, dict) or data.get("date") in (None, ""):
        return data

    combined = parse_combined_date(data["date"])
    if combined is None:
        raise ValueError("date must be an ISO 8601 date such as 2026-01-31")

    expanded = dict(data)
    for part in parts:
        if expanded.get(part) is None:
            expanded[part] = getattr(combined, part)
    return expanded


class _RecordPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    calendar_parts: ClassVar[Tuple[str, ...]] = ()
    required_when_set: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="before")
    @classmethod
    def _sanitize(cls, data: Any) -> Any:
        data = strip_operator_keys(data)
        return _expand_combined_date(data, cls.calendar_parts)

    @model_validator(mode="after")
    def _reject_nulls(self):
        for name in self.required_when_set:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class TransactionCreate(_RecordPayload):
    calendar_parts: ClassVar[Tuple[str, ...]] = ("day", "month", "year")

    amount: float = Field(allow_inf_nan=False)
    category: str = Field(min_length=1, max_length=MAX_CATEGORY_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    day: int = Field(ge=1, le=31)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1, le=9999)

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump()


class TransactionUpdate(_RecordPayload):
    calendar_parts: ClassVar[Tuple[str, ...]] = ("day", "month", "year")
    required_when_set: ClassVar[Tuple[str, ...]] = ("amount", "category", "day", "month", "year")

    amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    category: Optional[str] = Field(default=None, min_length=1, max_length=MAX_CATEGORY_LENGTH)
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    day: Optional[int] = Field(default=None, ge=1, le=31)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=1, le=9999)


class BudgetCreate(_RecordPayload):
    calendar_parts: ClassVar[Tuple[str, ...]] = ("month", "year")

    category: str = Field(min_length=1, max_length=MAX_CATEGORY_LENGTH)
    amount: float = Field(allow_inf_nan=False)
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=1, le=9999)

    @field_validator("amount")
    @classmethod
    def _absolute_amount(cls, value: float) -> float:
        return abs(value)

    def to_fields(self) -> Dict[str, Any]:
        return self.model_dump()


class BudgetUpdate(_RecordPayload):
    calendar_parts: ClassVar[Tuple[str, ...]] = ("month", "year")
    required_when_set: ClassVar[Tuple[str, ...]] = ("category", "amount", "month", "year")

    category: Optional[str] = Field(default=None, min_length=1, max_length=MAX_CATEGORY_LENGTH)
    amount: Optional[float] = Field(default=None, allow_inf_nan=False)
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=1, le=9999)

    @field_validator("amount")
    @classmethod
    def _absolute_amount(cls, value: Optional[float]) -> Optional[float]:
        return abs(value) if value is not None else None


class TransactionModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    amount: float
    category: str
    notes: Optional[str] = None
    day: int
    month: int
    year: int


class BudgetModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    category: str
    amount: float
    notes: Optional[str] = None
    month: int
    year: int


class DeleteResultModel(BaseModel):
    id: str
    deleted: bool


class RecentTransactionModel(BaseModel):
    id: Optional[str]
    amount: float
    category: str
    category_key: str
    label: str
    notes: Optional[str] = None
    day: Optional[int] = None
    month: Optional[int] = None
    year: Optional[int] = None


class CategoryTotalModel(BaseModel):
    category: str
    label: str
    amount: float
    share: float


class BudgetUtilizationModel(BaseModel):
    budget: BudgetModel
    label: str
    spent: float
    percentage: float
    display_percentage: float
    over_budget: bool


class DashboardResponseModel(BaseModel):
    month: int
    year: int
    language: str
    total_balance: float
    income: float
    expenses: float
    categories: List[CategoryTotalModel] = Field(default_factory=list)
    budgets: List[BudgetUtilizationModel] = Field(default_factory=list)
    recent_transactions: List[RecentTransactionModel] = Field(default_factory=list)


class YearOverviewResponseModel(BaseModel):
    year: int
    months: List[int]
    income: List[float]
    expenses: List[float]
    balance: List[float]


class CategoryOptionModel(BaseModel):
    key: str
    label: str


class CategoriesResponseModel(BaseModel):
    language: str
    labels: Dict[str, str]
    income: List[CategoryOptionModel]
    expense: List[CategoryOptionModel]
