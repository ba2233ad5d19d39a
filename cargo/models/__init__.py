"""SQLAlchemy models for the cargo backend."""

from cargo.models.attendance import Attendance, AttendanceStatus, ShiftType  # noqa: F401
from cargo.models.base import Base  # noqa: F401
from cargo.models.client import Client  # noqa: F401
from cargo.models.counter import SequenceCounter  # noqa: F401
from cargo.models.employee import Employee, EmployeeStatus  # noqa: F401
from cargo.models.fleet import Fleet, FleetStatus, MaintenanceLog, ServiceType  # noqa: F401
from cargo.models.invoice import BillingInvoice, InvoiceStatus  # noqa: F401
from cargo.models.payroll import DeductionType, MonthlyPayroll, PayrollStatus  # noqa: F401
from cargo.models.settings import AppSetting  # noqa: F401
from cargo.models.transaction import (  # noqa: F401
    PaymentMethod,
    PricingMode,
    Settlement,
    ShipmentTransaction,
    TransactionStatus,
    WeightUnit,
)
from cargo.models.voyage import Expense, ExpenseCategory, ExpenseType, Voyage, VoyageStatus  # noqa: F401
