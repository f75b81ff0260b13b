"""Payroll services."""

from hris_payroll.services.commit_service import CommitService
from hris_payroll.services.payroll_service import (
    BatchSummary,
    ComputeOutcome,
    EmployeeComputeResult,
    EmployeeNotFoundError,
    EntryNotFoundError,
    PayrollService,
    PeriodNotFoundError,
    PeriodTotals,
)
from hris_payroll.services.posting_service import PostingService, StaleBalanceError
from hris_payroll.services.repository import PayrollRepository
from hris_payroll.services.state_machine import (
    InvalidTransitionError,
    PayrollEntryStateMachine,
    PayrollEntryStatus,
    RecomputeNotAllowedError,
)

__all__ = [
    "BatchSummary",
    "CommitService",
    "ComputeOutcome",
    "EmployeeComputeResult",
    "EmployeeNotFoundError",
    "EntryNotFoundError",
    "InvalidTransitionError",
    "PayrollEntryStateMachine",
    "PayrollEntryStatus",
    "PayrollRepository",
    "PayrollService",
    "PeriodNotFoundError",
    "PeriodTotals",
    "PostingService",
    "RecomputeNotAllowedError",
    "StaleBalanceError",
]
