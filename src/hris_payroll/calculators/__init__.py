"""Pure payroll computation: rates, attendance, earnings and deductions."""

from hris_payroll.calculators.adjustments import AdjustmentResolver
from hris_payroll.calculators.attendance import AttendanceAggregator
from hris_payroll.calculators.contributions import BracketTableLookup, ContributionLookup
from hris_payroll.calculators.deductions import DeductionsComposer
from hris_payroll.calculators.earnings import EarningsComposer
from hris_payroll.calculators.engine import LineValidationError, PayrollEngine
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.loans import LoanAmortizer
from hris_payroll.calculators.rate_calculator import RateCalculator

__all__ = [
    "AdjustmentResolver",
    "AttendanceAggregator",
    "BracketTableLookup",
    "ContributionLookup",
    "DeductionsComposer",
    "EarningsComposer",
    "PayrollEngine",
    "LineItemBuilder",
    "LineValidationError",
    "LoanAmortizer",
    "RateCalculator",
]
