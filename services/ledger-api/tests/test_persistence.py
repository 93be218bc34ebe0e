from __future__ import annotations

from pathlib import Path

import pytest
from persistence.database import Database
from persistence.repository import BudgetRepository, TransactionRepository, normalize_record_id


@pytest.fixture
def database(tmp_path: Path):
    db = Database(f"sqlite:///{tmp_path / 'ledger.db'}")
    db.init_schema()
    yield db
    db.dispose()


def test_transactions_survive_new_database_handle(tmp_path: Path) -> None:
    """Stored transactions persist after the handle is disposed and reopened."""
    url = f"sqlite:///{tmp_path / 'reopen.db'}"

    first = Database(url)
    first.init_schema()
    with first.session() as session:
        created = TransactionRepository(session).create(
            {"amount": -120.0, "category": "food", "notes": None, "day": 2, "month": 1, "year": 2026}
        )
    first.dispose()

    second = Database(url)
    with second.session() as session:
        restored = TransactionRepository(session).get(created.id)

    assert restored is not None
    assert restored.to_document() == {
        "id": created.id,
        "amount": -120.0,
        "category": "food",
        "notes": None,
        "day": 2,
        "month": 1,
        "year": 2026,
    }
    second.dispose()


def test_list_preserves_insertion_order_and_filters(database: Database) -> None:
    with database.session() as session:
        repo = TransactionRepository(session)
        first = repo.create({"amount": 10.0, "category": "Job", "day": 1, "month": 1, "year": 2026})
        second = repo.create({"amount": -5.0, "category": "food", "day": 2, "month": 2, "year": 2026})
        third = repo.create({"amount": -7.0, "category": "FOOD", "day": 3, "month": 2, "year": 2026})

        assert [record.id for record in repo.list()] == [first.id, second.id, third.id]
        assert [record.id for record in repo.list(month=2, year=2026)] == [second.id, third.id]
        assert [record.id for record in repo.list(category="Food")] == [second.id, third.id]
        assert repo.list(year=2025) == []


def test_store_assigns_increasing_sequence_across_sessions(database: Database) -> None:
    fields = {"amount": -1.0, "category": "food", "day": 1, "month": 1, "year": 2026}
    with database.session() as first_session, database.session() as second_session:
        first = TransactionRepository(first_session).create(dict(fields))
        second = TransactionRepository(second_session).create(dict(fields))
        third = TransactionRepository(first_session).create(dict(fields))

        assert first.seq < second.seq < third.seq
        assert [record.id for record in TransactionRepository(second_session).list()] == [
            first.id,
            second.id,
            third.id,
        ]


def test_update_replaces_only_given_fields(database: Database) -> None:
    with database.session() as session:
        repo = BudgetRepository(session)
        budget = repo.create({"category": "food", "amount": 1000.0, "notes": "groceries", "month": 1, "year": 2026})

        repo.update(budget, {"amount": 1200.0})
        reloaded = repo.get(budget.id)

    assert reloaded is not None
    assert reloaded.amount == 1200.0
    assert reloaded.notes == "groceries"
    assert reloaded.month == 1


def test_delete_removes_only_the_target(database: Database) -> None:
    with database.session() as session:
        budgets = BudgetRepository(session)
        transactions = TransactionRepository(session)
        budget = budgets.create({"category": "food", "amount": 100.0, "month": 1, "year": 2026})
        tx = transactions.create({"amount": -50.0, "category": "food", "day": 1, "month": 1, "year": 2026})

        budgets.delete(budget)

        assert budgets.get(budget.id) is None
        assert transactions.get(tx.id) is not None


def test_duplicate_budgets_for_same_period_are_allowed(database: Database) -> None:
    with database.session() as session:
        repo = BudgetRepository(session)
        repo.create({"category": "food", "amount": 100.0, "month": 1, "year": 2026})
        repo.create({"category": "Food", "amount": 200.0, "month": 1, "year": 2026})

        assert len(repo.list(month=1, year=2026, category="food")) == 2


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("0f8fad5b-d9cb-469f-a165-70867728950e", "0f8fad5b-d9cb-469f-a165-70867728950e"),
        ("0F8FAD5BD9CB469FA16570867728950E", "0f8fad5b-d9cb-469f-a165-70867728950e"),
        ("65a1f0c2e4b0a1b2c3d4e5f6", None),
        ("not-an-id", None),
        ("", None),
        (None, None),
    ],
)
def test_normalize_record_id(raw, expected) -> None:
    assert normalize_record_id(raw) == expected
