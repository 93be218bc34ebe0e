"""Persistence primitives for the ledger API."""

from persistence.database import Database, build_engine, get_session
from persistence.models import Base, BudgetRecord, TransactionRecord
from persistence.repository import (
    BudgetRepository,
    TransactionRepository,
    new_record_id,
    normalize_record_id,
)

__all__ = [
    "Base",
    "BudgetRecord",
    "BudgetRepository",
    "Database",
    "TransactionRecord",
    "TransactionRepository",
    "build_engine",
    "get_session",
    "new_record_id",
    "normalize_record_id",
]
