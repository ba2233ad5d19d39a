"""
Read-only aggregation over transactions, expenses and voyages.

Every figure is recomputed from the stored records on each call. Revenue
never includes cancelled (``dibatalkan``) transactions. Clients and routes
are grouped by their display strings, so two clients sharing a name are
reported as one.
"""

from __future__ import annotations

import csv
import io
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.errors import RecordNotFoundError
from cargo.models.transaction import ACTIVE_STATUSES, Settlement, ShipmentTransaction, TransactionStatus
from cargo.models.voyage import EXPENSE_CATEGORY_LABELS, Expense, ExpenseCategory, Voyage, VoyageStatus
from cargo.schemas.reporting import (
    ActivityItem,
    ClientRevenue,
    DashboardStats,
    DestinationRevenue,
    OwnerDashboard,
    PeriodPoint,
    RouteProfitability,
    StatusCount,
    VoyageSummary,
)
from cargo.services.expense import category_totals
from cargo.utils.timeutil import month_bounds, utcnow

CANCELLED = TransactionStatus.DIBATALKAN.value
MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des")
STATUS_LABELS = {
    TransactionStatus.PENDING.value: "Pending",
    TransactionStatus.DIPROSES.value: "Diproses",
    TransactionStatus.DIKIRIM.value: "Dikirim",
    TransactionStatus.SELESAI.value: "Selesai",
    TransactionStatus.DIBATALKAN.value: "Dibatalkan",
}


# Pure folds


def is_revenue(transaction: ShipmentTransaction) -> bool:
    return transaction.status != CANCELLED


def revenue(transactions: Iterable[ShipmentTransaction]) -> int:
    return sum(t.amount or 0 for t in transactions if is_revenue(t))


def expense_total(expenses: Iterable[Expense]) -> int:
    return sum(e.amount or 0 for e in expenses)


def net_profit(revenue_amount: int, expense_amount: int) -> int:
    return revenue_amount - expense_amount


def margin(revenue_amount: int, expense_amount: int) -> float:
    """Net profit as a percentage of revenue; 0 when there is no revenue."""
    if revenue_amount == 0:
        return 0.0
    return net_profit(revenue_amount, expense_amount) / revenue_amount * 100


def growth(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def previous_period(start: datetime, end: datetime) -> Tuple[datetime, datetime]:
    """Equal-length window ending just before ``start``."""
    duration = end - start
    return start - duration, start - timedelta(milliseconds=1)


def _within(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    return value is not None and start <= value <= end


def period_series(
    transactions: Iterable[ShipmentTransaction],
    expenses: Iterable[Expense],
    daily: bool,
) -> List[PeriodPoint]:
    """Sparse revenue/expense series, bucketed per day or per month."""
    buckets: Dict[str, Dict] = {}

    def bucket(at: datetime) -> Dict:
        if daily:
            key, label = at.strftime("%Y-%m-%d"), str(at.day)
        else:
            key, label = at.strftime("%Y-%m"), MONTH_LABELS[at.month - 1]
        return buckets.setdefault(key, {"name": label, "date": key, "revenue": 0, "expenses": 0})

    for transaction in transactions:
        if is_revenue(transaction):
            bucket(transaction.shipment_date)["revenue"] += transaction.amount or 0
    for expense in expenses:
        bucket(expense.date)["expenses"] += expense.amount or 0

    return [PeriodPoint(**buckets[key]) for key in sorted(buckets)]


def top_clients(transactions: Iterable[ShipmentTransaction], limit: int = 5) -> List[ClientRevenue]:
    totals: Dict[str, List[int]] = defaultdict(lambda: [0, 0])
    for transaction in transactions:
        if not is_revenue(transaction):
            continue
        entry = totals[transaction.sender_name or "Unknown"]
        entry[0] += transaction.amount or 0
        entry[1] += 1
    ranked = sorted(totals.items(), key=lambda item: item[1][0], reverse=True)[:limit]
    return [ClientRevenue(name=name, revenue=rev, transaction_count=count) for name, (rev, count) in ranked]


def top_destinations(transactions: Iterable[ShipmentTransaction], limit: int = 3) -> List[DestinationRevenue]:
    totals: Dict[str, List[int]] = defaultdict(lambda: [0, 0])
    for transaction in transactions:
        if not is_revenue(transaction):
            continue
        entry = totals[transaction.destination or "-"]
        entry[0] += transaction.amount or 0
        entry[1] += 1
    ranked = sorted(totals.items(), key=lambda item: item[1][0], reverse=True)[:limit]
    return [
        DestinationRevenue(destination=name, revenue=rev, transaction_count=count)
        for name, (rev, count) in ranked
    ]


def status_counts(transactions: Iterable[ShipmentTransaction]) -> List[StatusCount]:
    counts = {status: 0 for status in STATUS_LABELS}
    for transaction in transactions:
        if transaction.status in counts:
            counts[transaction.status] += 1
    return [StatusCount(name=STATUS_LABELS[s], value=v) for s, v in counts.items() if v > 0]


def route_profitability(
    voyages: Iterable[Voyage],
    transactions_by_id: Dict[str, ShipmentTransaction],
    expenses: Iterable[Expense],
) -> List[RouteProfitability]:
    expenses_by_voyage: Dict[str, int] = defaultdict(int)
    for expense in expenses:
        if expense.voyage_id:
            expenses_by_voyage[expense.voyage_id] += expense.amount or 0

    routes: Dict[str, List[int]] = defaultdict(lambda: [0, 0, 0])
    for voyage in voyages:
        entry = routes[voyage.route]
        for transaction_id in voyage.transaction_ids or []:
            transaction = transactions_by_id.get(transaction_id)
            if transaction is not None and is_revenue(transaction):
                entry[0] += transaction.amount or 0
        entry[1] += expenses_by_voyage.get(voyage.id, 0)
        entry[2] += 1

    rows = [
        RouteProfitability(
            route=route,
            revenue=rev,
            expenses=exp,
            profit=net_profit(rev, exp),
            margin=margin(rev, exp),
            voyage_count=count,
        )
        for route, (rev, exp, count) in routes.items()
    ]
    return sorted(rows, key=lambda row: row.profit, reverse=True)


def recent_activity(
    transactions: Iterable[ShipmentTransaction],
    expenses: Iterable[Expense],
    limit: int = 10,
) -> List[ActivityItem]:
    items = [
        ActivityItem(
            id=t.id,
            type="transaction",
            description=f"Kargo - {t.stt_number}",
            amount=t.amount or 0,
            date=t.shipment_date,
            status=t.status,
        )
        for t in transactions
        if is_revenue(t)
    ]
    for expense in expenses:
        try:
            label = EXPENSE_CATEGORY_LABELS[ExpenseCategory(expense.category)]
        except ValueError:
            label = expense.category
        items.append(
            ActivityItem(
                id=expense.id,
                type="expense",
                description=f"Expense - {label}",
                amount=-(expense.amount or 0),
                date=expense.date,
                status="completed",
            )
        )
    items.sort(key=lambda item: item.date, reverse=True)
    return items[:limit]


def dashboard_csv(stats: DashboardStats, range_label: str) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(["Laporan Dashboard"])
    writer.writerow(["Periode", range_label])
    writer.writerow(["Total Pendapatan", stats.total_revenue])
    writer.writerow(["Total Pengeluaran", stats.total_expenses])
    writer.writerow(["Profit Bersih", stats.net_profit])
    writer.writerow([])

    writer.writerow(["Rincian Per Periode"])
    writer.writerow(["Tanggal/Bulan", "Pendapatan", "Pengeluaran"])
    for point in stats.period_stats:
        writer.writerow([point.name, point.revenue, point.expenses])
    writer.writerow([])

    writer.writerow(["Top 5 Pelanggan"])
    writer.writerow(["Nama", "Jumlah Transaksi", "Total Pendapatan"])
    for client in stats.top_clients:
        writer.writerow([client.name, client.transaction_count, client.revenue])
    writer.writerow([])

    writer.writerow(["Profitabilitas Rute"])
    writer.writerow(["Rute", "Margin (%)", "Profit"])
    for route in stats.route_profitability:
        writer.writerow([route.route, f"{route.margin:.2f}%", route.profit])
    return output.getvalue()


class ReportingService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def dashboard_stats(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> DashboardStats:
        if start is None or end is None:
            start, end = month_bounds(utcnow())
        prev_start, prev_end = previous_period(start, end)

        transactions = await self._transactions()
        expenses = await self._expenses()

        current_tx = [t for t in transactions if _within(t.shipment_date, start, end)]
        current_exp = [e for e in expenses if _within(e.date, start, end)]
        prev_tx = [t for t in transactions if _within(t.shipment_date, prev_start, prev_end)]
        prev_exp = [e for e in expenses if _within(e.date, prev_start, prev_end)]

        total_revenue, previous_revenue = revenue(current_tx), revenue(prev_tx)
        total_expenses, previous_expenses = expense_total(current_exp), expense_total(prev_exp)
        profit = net_profit(total_revenue, total_expenses)
        previous_profit = net_profit(previous_revenue, previous_expenses)

        active_values = {s.value for s in ACTIVE_STATUSES}
        voyages = [v for v in await self._voyages() if _within(v.departure_date, start, end)]
        daily = (end - start).total_seconds() <= 31 * 86400

        return DashboardStats(
            start=start,
            end=end,
            total_revenue=total_revenue,
            previous_revenue=previous_revenue,
            revenue_growth=growth(total_revenue, previous_revenue),
            total_expenses=total_expenses,
            previous_expenses=previous_expenses,
            expenses_growth=growth(total_expenses, previous_expenses),
            net_profit=profit,
            previous_profit=previous_profit,
            profit_growth=growth(profit, previous_profit),
            active_shipments=sum(1 for t in transactions if t.status in active_values),
            shipment_status=status_counts(current_tx),
            period_stats=period_series(current_tx, current_exp, daily),
            top_clients=top_clients(current_tx),
            route_profitability=route_profitability(voyages, {t.id: t for t in transactions}, expenses),
            recent_activity=recent_activity(current_tx, current_exp),
        )

    async def owner_dashboard(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> OwnerDashboard:
        if start is None or end is None:
            start, end = month_bounds(utcnow())

        current_tx = [t for t in await self._transactions() if _within(t.shipment_date, start, end)]
        current_exp = [e for e in await self._expenses() if _within(e.date, start, end)]
        total_revenue = revenue(current_tx)
        total_expenses = expense_total(current_exp)
        unpaid = sum(
            t.amount or 0 for t in current_tx if is_revenue(t) and t.settlement == Settlement.PENDING.value
        )
        open_voyages = {VoyageStatus.PLANNED.value, VoyageStatus.IN_PROGRESS.value}

        return OwnerDashboard(
            start=start,
            end=end,
            revenue=total_revenue,
            expenses=total_expenses,
            net_profit=net_profit(total_revenue, total_expenses),
            margin=margin(total_revenue, total_expenses),
            unpaid_amount=unpaid,
            daily=period_series(current_tx, current_exp, daily=True),
            top_clients=top_clients(current_tx),
            top_destinations=top_destinations(current_tx),
            active_voyages=sum(1 for v in await self._voyages() if v.status in open_voyages),
        )

    async def voyage_summary(self, voyage_id: str) -> VoyageSummary:
        voyage = await self.db.get(Voyage, voyage_id)
        if voyage is None:
            raise RecordNotFoundError("Voyage", voyage_id)
        ids = voyage.transaction_ids or []
        transactions: List[ShipmentTransaction] = []
        if ids:
            result = await self.db.execute(select(ShipmentTransaction).where(ShipmentTransaction.id.in_(ids)))
            transactions = list(result.scalars().all())
        result = await self.db.execute(select(Expense).where(Expense.voyage_id == voyage_id))
        totals = category_totals(list(result.scalars().all()))

        voyage_revenue = revenue(transactions)
        return VoyageSummary(
            voyage_id=voyage.id,
            voyage_number=voyage.voyage_number,
            transaction_count=len(transactions),
            revenue=voyage_revenue,
            expenses=totals.total,
            expenses_by_category=totals.by_category,
            profit=net_profit(voyage_revenue, totals.total),
        )

    async def _transactions(self) -> List[ShipmentTransaction]:
        result = await self.db.execute(select(ShipmentTransaction))
        return list(result.scalars().all())

    async def _expenses(self) -> List[Expense]:
        result = await self.db.execute(select(Expense))
        return list(result.scalars().all())

    async def _voyages(self) -> List[Voyage]:
        result = await self.db.execute(select(Voyage))
        return list(result.scalars().all())
