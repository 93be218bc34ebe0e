"""Transaction and budget data access helpers."""

from __future__ import annotations

from typing import Any, Generic, List, Type, TypeVar
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from persistence.models import BudgetRecord, TransactionRecord

RecordT = TypeVar("RecordT", TransactionRecord, BudgetRecord)


def normalize_record_id(value: str | None) -> str | None:
    """
    Return the canonical form of a record identifier, or None when malformed.

    Identifiers are UUIDs; hex strings with or without dashes are accepted.
    """
    if not value:
        return None
    try:
        return str(UUID(value.strip()))
    except (AttributeError, ValueError):
        return None


def new_record_id() -> str:
    return str(uuid4())


class _RecordRepository(Generic[RecordT]):
    """Thin repository that encapsulates persistence operations for one record kind."""

    model: Type[RecordT]

    def __init__(self, db: Session):
        self._db = db

    def list(
        self,
        *,
        month: int | None = None,
        year: int | None = None,
        category: str | None = None,
    ) -> List[RecordT]:
        statement = select(self.model)
        if month is not None:
            statement = statement.where(self.model.month == month)
        if year is not None:
            statement = statement.where(self.model.year == year)
        if category:
            statement = statement.where(func.lower(self.model.category) == category.strip().lower())
        statement = statement.order_by(self.model.seq)
        return list(self._db.scalars(statement))

    def get(self, record_id: str) -> RecordT | None:
        return self._db.scalar(select(self.model).where(self.model.id == record_id))

    def create(self, fields: dict[str, Any]) -> RecordT:
        record = self.model(id=new_record_id(), **fields)
        self._db.add(record)
        self._db.commit()
        self._db.refresh(record)
        return record

    def update(self, record: RecordT, fields: dict[str, Any]) -> RecordT:
        for name, value in fields.items():
            setattr(record, name, value)
        self._db.add(record)
        self._db.commit()
        self._db.refresh(record)
        return record

    def delete(self, record: RecordT) -> None:
        self._db.delete(record)
        self._db.commit()


class TransactionRepository(_RecordRepository[TransactionRecord]):
    model = TransactionRecord


class BudgetRepository(_RecordRepository[BudgetRecord]):
    model = BudgetRecord
