from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from cargo.core.db import get_db
from cargo.schemas.reporting import DashboardStats, OwnerDashboard
from cargo.services.reporting import ReportingService, dashboard_csv

router = APIRouter()


async def _service(db: AsyncSession = Depends(get_db)) -> ReportingService:
    return ReportingService(db)


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard_stats(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: ReportingService = Depends(_service),
) -> DashboardStats:
    return await service.dashboard_stats(start, end)


@router.get("/dashboard.csv")
async def export_dashboard_csv(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: ReportingService = Depends(_service),
) -> Response:
    stats = await service.dashboard_stats(start, end)
    label = f"{stats.start:%Y-%m-%d} - {stats.end:%Y-%m-%d}"
    return Response(
        content=dashboard_csv(stats, label),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="dashboard_{stats.start:%Y%m%d}.csv"'},
    )


@router.get("/owner", response_model=OwnerDashboard)
async def get_owner_dashboard(
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    service: ReportingService = Depends(_service),
) -> OwnerDashboard:
    return await service.owner_dashboard(start, end)
