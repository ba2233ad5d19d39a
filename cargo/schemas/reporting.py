from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel


class PeriodPoint(BaseModel):
    name: str
    date: str  # sort key: YYYY-MM-DD for daily series, YYYY-MM for monthly
    revenue: int
    expenses: int


class StatusCount(BaseModel):
    name: str
    value: int


class ClientRevenue(BaseModel):
    name: str
    revenue: int
    transaction_count: int


class DestinationRevenue(BaseModel):
    destination: str
    revenue: int
    transaction_count: int


class RouteProfitability(BaseModel):
    route: str
    revenue: int
    expenses: int
    profit: int
    margin: float
    voyage_count: int


class ActivityItem(BaseModel):
    id: str
    type: str  # transaction | expense
    description: str
    amount: int  # expenses are negative
    date: datetime
    status: Optional[str] = None


class DashboardStats(BaseModel):
    start: datetime
    end: datetime

    total_revenue: int
    previous_revenue: int
    revenue_growth: float

    total_expenses: int
    previous_expenses: int
    expenses_growth: float

    net_profit: int
    previous_profit: int
    profit_growth: float

    active_shipments: int
    shipment_status: List[StatusCount]
    period_stats: List[PeriodPoint]
    top_clients: List[ClientRevenue]
    route_profitability: List[RouteProfitability]
    recent_activity: List[ActivityItem]


class OwnerDashboard(BaseModel):
    start: datetime
    end: datetime
    revenue: int
    expenses: int
    net_profit: int
    margin: float
    unpaid_amount: int
    daily: List[PeriodPoint]
    top_clients: List[ClientRevenue]
    top_destinations: List[DestinationRevenue]
    active_voyages: int


class VoyageSummary(BaseModel):
    voyage_id: str
    voyage_number: str
    transaction_count: int
    revenue: int
    expenses: int
    expenses_by_category: Dict[str, int]
    profit: int
