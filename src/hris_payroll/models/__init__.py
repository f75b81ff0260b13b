"""ORM models."""

from hris_payroll.models.adjustments import AdjustmentApplication, EmployeeAdjustment
from hris_payroll.models.attendance import DailyTimeRecord, Holiday, OvertimeRequest
from hris_payroll.models.base import Base, TimestampMixin
from hris_payroll.models.employee import Employee, EmployeeCompensation
from hris_payroll.models.loans import EmployeeLoan, LoanPayment
from hris_payroll.models.payroll import (
    AuditEvent,
    PayrollDeduction,
    PayrollEarning,
    PayrollEntry,
    PayrollPeriod,
)

__all__ = [
    "AdjustmentApplication",
    "AuditEvent",
    "Base",
    "DailyTimeRecord",
    "Employee",
    "EmployeeAdjustment",
    "EmployeeCompensation",
    "EmployeeLoan",
    "Holiday",
    "LoanPayment",
    "OvertimeRequest",
    "PayrollDeduction",
    "PayrollEarning",
    "PayrollEntry",
    "PayrollPeriod",
    "TimestampMixin",
]
