"""
Voyage and Expense Tests
========================

Covers voyage numbering, transaction assignment, expense totals and the
non-atomic voyage delete cascade together with the orphan cleanup sweep.
"""
from datetime import datetime

import pytest
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from cargo.core.errors import PartialFailureError, RecordNotFoundError, ValidationFailure
from cargo.models.voyage import Expense, ExpenseCategory, ExpenseType, VoyageStatus
from cargo.schemas.voyage import ExpenseCreate, ExpenseUpdate, VoyageCreate, VoyageUpdate
from cargo.services.expense import ExpenseService, category_totals
from cargo.services.voyage import VoyageService, merge_ids


@pytest.fixture
def voyages(db, counters) -> VoyageService:
    return VoyageService(db, counters)


@pytest.fixture
def expenses(db) -> ExpenseService:
    return ExpenseService(db)


def voyage_form(**overrides) -> VoyageCreate:
    data = {"departure_date": datetime(2026, 10, 8), "route": "Surabaya - Makassar", "ship_name": "KM Dharma"}
    data.update(overrides)
    return VoyageCreate(**data)


def expense_form(voyage_id=None, **overrides) -> ExpenseCreate:
    data = {
        "type": ExpenseType.VOYAGE if voyage_id else ExpenseType.GENERAL,
        "voyage_id": voyage_id,
        "category": ExpenseCategory.TIKET,
        "amount": 250000,
        "description": "Tiket kapal",
        "date": datetime(2026, 10, 8),
    }
    data.update(overrides)
    return ExpenseCreate(**data)


class TestMergeIds:
    def test_keeps_existing_order_and_dedupes(self) -> None:
        assert merge_ids(["a", "b"], ["b", "c", "a", "d"]) == ["a", "b", "c", "d"]

    def test_dedupes_within_added(self) -> None:
        assert merge_ids([], ["x", "x", "y"]) == ["x", "y"]


class TestVoyages:
    @pytest.mark.asyncio
    async def test_numbered_sequentially(self, voyages) -> None:
        first = await voyages.create_voyage(voyage_form())
        second = await voyages.create_voyage(voyage_form())
        assert (first.voyage_number, second.voyage_number) == ("VOY001", "VOY002")
        assert first.status == VoyageStatus.PLANNED.value
        assert first.transaction_ids == []

    @pytest.mark.asyncio
    async def test_route_required(self, voyages) -> None:
        with pytest.raises(ValidationFailure):
            await voyages.create_voyage(voyage_form(route="  "))

    @pytest.mark.asyncio
    async def test_assign_is_a_set_union(self, voyages) -> None:
        voyage = await voyages.create_voyage(voyage_form())
        await voyages.assign_transactions(voyage.id, ["t1", "t2"])
        voyage = await voyages.assign_transactions(voyage.id, ["t2", "t3", "t1"])
        assert voyage.transaction_ids == ["t1", "t2", "t3"]

    @pytest.mark.asyncio
    async def test_remove_transactions(self, voyages) -> None:
        voyage = await voyages.create_voyage(voyage_form())
        await voyages.assign_transactions(voyage.id, ["t1", "t2", "t3"])
        voyage = await voyages.remove_transactions(voyage.id, ["t2", "unknown"])
        assert voyage.transaction_ids == ["t1", "t3"]

    @pytest.mark.asyncio
    async def test_sparse_update(self, voyages) -> None:
        voyage = await voyages.create_voyage(voyage_form(notes="first trip"))
        voyage = await voyages.update_voyage(voyage.id, VoyageUpdate(status=VoyageStatus.IN_PROGRESS))
        assert voyage.status == "in-progress"
        assert voyage.notes == "first trip"
        assert voyage.ship_name == "KM Dharma"

    @pytest.mark.asyncio
    async def test_explicit_null_clears_optional_fields_only(self, voyages) -> None:
        voyage = await voyages.create_voyage(voyage_form(notes="first trip", arrival_date=datetime(2026, 10, 11)))
        voyage = await voyages.update_voyage(
            voyage.id, VoyageUpdate(notes=None, arrival_date=None, departure_date=None)
        )
        assert voyage.notes is None
        assert voyage.arrival_date is None
        assert voyage.departure_date == datetime(2026, 10, 8)

    @pytest.mark.asyncio
    async def test_missing_voyage(self, voyages) -> None:
        with pytest.raises(RecordNotFoundError):
            await voyages.assign_transactions("nope", ["t1"])


class TestExpenses:
    @pytest.mark.asyncio
    async def test_voyage_expense_requires_voyage_id(self, expenses) -> None:
        with pytest.raises(ValidationFailure) as exc_info:
            await expenses.create_expense(expense_form(type=ExpenseType.VOYAGE))
        assert exc_info.value.field == "voyage_id"

    @pytest.mark.asyncio
    async def test_amount_must_be_positive(self, expenses) -> None:
        with pytest.raises(ValidationFailure):
            await expenses.create_expense(expense_form(amount=0))

    @pytest.mark.asyncio
    async def test_general_expense_drops_voyage_id(self, expenses) -> None:
        expense = await expenses.create_expense(expense_form(type=ExpenseType.GENERAL, voyage_id="v1"))
        assert expense.voyage_id is None

    @pytest.mark.asyncio
    async def test_update_to_general_clears_voyage(self, voyages, expenses) -> None:
        voyage = await voyages.create_voyage(voyage_form())
        expense = await expenses.create_expense(expense_form(voyage.id))
        expense = await expenses.update_expense(expense.id, ExpenseUpdate(type=ExpenseType.GENERAL, amount=1000))
        assert expense.voyage_id is None
        assert expense.amount == 1000

    @pytest.mark.asyncio
    async def test_voyage_totals(self, voyages, expenses) -> None:
        voyage = await voyages.create_voyage(voyage_form())
        await expenses.create_expense(expense_form(voyage.id, amount=100000))
        await expenses.create_expense(expense_form(voyage.id, amount=50000))
        await expenses.create_expense(expense_form(voyage.id, category=ExpenseCategory.TRANSIT, amount=25000))
        await expenses.create_expense(expense_form(amount=999999))

        totals = await expenses.voyage_totals(voyage.id)
        assert totals.total == 175000
        assert totals.by_category["tiket"] == 150000
        assert totals.by_category["transit"] == 25000
        assert totals.by_category["lainnya"] == 0

    def test_unknown_category_counts_as_lainnya(self) -> None:
        totals = category_totals([Expense(category="bensin", amount=7000), Expense(category="tiket", amount=3000)])
        assert totals.by_category["lainnya"] == 7000
        assert totals.total == 10000


class TestVoyageDelete:
    @pytest.mark.asyncio
    async def test_cascade_deletes_expenses(self, voyages, expenses, db) -> None:
        voyage = await voyages.create_voyage(voyage_form())
        created = [await expenses.create_expense(expense_form(voyage.id)) for _ in range(3)]
        kept = await expenses.create_expense(expense_form())

        deleted = await voyages.delete_voyage(voyage.id)

        assert sorted(deleted) == sorted(e.id for e in created)
        remaining = (await db.execute(select(Expense.id))).scalars().all()
        assert remaining == [kept.id]
        with pytest.raises(RecordNotFoundError):
            await voyages.get_voyage(voyage.id)

    @pytest.mark.asyncio
    async def test_failure_midway_keeps_voyage_and_earlier_deletes(self, voyages, expenses, db, monkeypatch) -> None:
        voyage = await voyages.create_voyage(voyage_form())
        for _ in range(3):
            await expenses.create_expense(expense_form(voyage.id))
        voyage_id = voyage.id

        original = voyages.expenses.delete_expense
        calls = []

        async def flaky_delete(expense_id):
            calls.append(expense_id)
            if len(calls) == 2:
                raise SQLAlchemyError("connection dropped")
            await original(expense_id)

        monkeypatch.setattr(voyages.expenses, "delete_expense", flaky_delete)

        with pytest.raises(PartialFailureError) as exc_info:
            await voyages.delete_voyage(voyage_id)

        assert exc_info.value.completed_ids == [calls[0]]
        assert exc_info.value.failed_id == calls[1]
        # rollback() expired the loaded instances; only use ids captured before it
        assert (await voyages.get_voyage(voyage_id)).route == "Surabaya - Makassar"
        assert len(await expenses.list_by_voyage(voyage_id)) == 2

    @pytest.mark.asyncio
    async def test_missing_voyage(self, voyages) -> None:
        with pytest.raises(RecordNotFoundError):
            await voyages.delete_voyage("nope")


class TestOrphanCleanup:
    @pytest.mark.asyncio
    async def test_removes_only_expenses_of_missing_voyages(self, voyages, expenses) -> None:
        voyage = await voyages.create_voyage(voyage_form())
        live = await expenses.create_expense(expense_form(voyage.id))
        orphan_a = await expenses.create_expense(expense_form("deleted-voyage"))
        orphan_b = await expenses.create_expense(expense_form("deleted-voyage"))
        general = await expenses.create_expense(expense_form())

        result = await expenses.cleanup_orphans()

        assert result.deleted_count == 2
        assert sorted(result.orphan_ids) == sorted([orphan_a.id, orphan_b.id])
        remaining = {e.id for e in await expenses.list_expenses()}
        assert remaining == {live.id, general.id}

    @pytest.mark.asyncio
    async def test_nothing_to_clean(self, expenses) -> None:
        result = await expenses.cleanup_orphans()
        assert result.deleted_count == 0
        assert result.orphan_ids == []
