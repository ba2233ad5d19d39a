from fastapi import APIRouter

from cargo.routers import (
    attendance,
    clients,
    counters,
    employees,
    expenses,
    fleets,
    health,
    invoices,
    payroll,
    reports,
    settings,
    transactions,
    voyages,
    websocket,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(clients.router, prefix="/clients", tags=["Clients"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
api_router.include_router(voyages.router, prefix="/voyages", tags=["Voyages"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["Expenses"])
api_router.include_router(fleets.router, prefix="/fleets", tags=["Fleet"])
api_router.include_router(employees.router, prefix="/employees", tags=["Employees"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["Attendance"])
api_router.include_router(payroll.router, prefix="/payroll", tags=["Payroll"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(counters.router, prefix="/counters", tags=["Counters"])
api_router.include_router(reports.router, prefix="/reports", tags=["Reports"])
api_router.include_router(settings.router, prefix="/settings", tags=["Settings"])
api_router.include_router(websocket.router, tags=["WebSocket"])
