"""Type definitions for the payroll computation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class PayType(str, Enum):
    """How an employee's basic pay is expressed."""

    MONTHLY = "monthly"
    SEMI_MONTHLY = "semi_monthly"
    WEEKLY = "weekly"
    DAILY = "daily"


class CycleType(str, Enum):
    """Payroll cycle of a period."""

    SEMI_MONTHLY = "semi_monthly"
    MONTHLY = "monthly"
    SUPPLEMENTAL = "supplemental"
    THIRTEENTH_MONTH = "thirteenth_month"
    FINAL_PAY = "final_pay"


class DtrStatus(str, Enum):
    """Daily time record status."""

    PRESENT = "present"
    ABSENT = "absent"
    HOLIDAY = "holiday"
    REST_DAY = "rest_day"
    NO_SCHEDULE = "no_schedule"


class HolidayType(str, Enum):
    """Holiday classification."""

    REGULAR = "regular"
    SPECIAL_NON_WORKING = "special_non_working"
    SPECIAL_WORKING = "special_working"
    DOUBLE = "double"

    @property
    def label(self) -> str:
        return _HOLIDAY_LABELS[self]

    @property
    def is_special(self) -> bool:
        return self in (HolidayType.SPECIAL_NON_WORKING, HolidayType.SPECIAL_WORKING)


_HOLIDAY_LABELS = {
    HolidayType.REGULAR: "Regular Holiday",
    HolidayType.SPECIAL_NON_WORKING: "Special Non-Working Holiday",
    HolidayType.SPECIAL_WORKING: "Special Working Holiday",
    HolidayType.DOUBLE: "Double Holiday",
}


class EarningType(str, Enum):
    """Earning line classification."""

    BASIC_PAY = "basic_pay"
    OVERTIME = "overtime"
    NIGHT_DIFFERENTIAL = "night_differential"
    HOLIDAY_PAY = "holiday_pay"
    ALLOWANCE = "allowance"
    BONUS = "bonus"
    ADJUSTMENT = "adjustment"


class DeductionType(str, Enum):
    """Deduction line classification."""

    SSS = "sss"
    PHILHEALTH = "philhealth"
    PAGIBIG = "pagibig"
    WITHHOLDING_TAX = "withholding_tax"
    LOAN = "loan"
    OTHER = "other"


class ContributionScheme(str, Enum):
    """Statutory contribution schemes."""

    SSS = "sss"
    PHILHEALTH = "philhealth"
    PAGIBIG = "pagibig"


class AdjustmentCategory(str, Enum):
    """Adjustment category, derived from the adjustment type prefix."""

    ALLOWANCE = "allowance"
    BONUS = "bonus"
    DEDUCTION = "deduction"
    LOAN = "loan"


class AdjustmentType(str, Enum):
    """Adjustment sub-types. The prefix before the first underscore is the category."""

    ALLOWANCE_TRANSPORTATION = "allowance_transportation"
    ALLOWANCE_MEAL = "allowance_meal"
    ALLOWANCE_PHONE = "allowance_phone"
    ALLOWANCE_HOUSING = "allowance_housing"
    ALLOWANCE_CLOTHING = "allowance_clothing"
    ALLOWANCE_OTHER = "allowance_other"
    BONUS_PERFORMANCE = "bonus_performance"
    BONUS_HOLIDAY = "bonus_holiday"
    BONUS_ATTENDANCE = "bonus_attendance"
    BONUS_INCENTIVE = "bonus_incentive"
    BONUS_OTHER = "bonus_other"
    DEDUCTION_UNPAID_LEAVE = "deduction_unpaid_leave"
    DEDUCTION_TARDINESS = "deduction_tardiness"
    DEDUCTION_ABSENCE = "deduction_absence"
    DEDUCTION_OTHER = "deduction_other"
    LOAN_SALARY_ADVANCE = "loan_salary_advance"
    LOAN_COMPANY_LOAN = "loan_company_loan"
    LOAN_EMERGENCY_LOAN = "loan_emergency_loan"
    LOAN_OTHER = "loan_other"


class AdjustmentFrequency(str, Enum):
    ONE_TIME = "one_time"
    RECURRING = "recurring"


class RecurringInterval(str, Enum):
    """When a recurring adjustment falls due within the payroll calendar."""

    EVERY_PERIOD = "every_period"
    MONTHLY = "monthly"
    FIRST_CUTOFF = "first_cutoff"
    SECOND_CUTOFF = "second_cutoff"


class AdjustmentStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LoanType(str, Enum):
    """Government and company loan types."""

    SSS_SALARY = "sss_salary"
    SSS_CALAMITY = "sss_calamity"
    SSS_EDUCATIONAL = "sss_educational"
    SSS_EMERGENCY = "sss_emergency"
    SSS_STOCK_INVESTMENT = "sss_stock_investment"
    PAGIBIG_MPL = "pagibig_mpl"
    PAGIBIG_CALAMITY = "pagibig_calamity"
    PAGIBIG_HOUSING = "pagibig_housing"
    COMPANY_CASH_ADVANCE = "company_cash_advance"
    COMPANY_EMERGENCY = "company_emergency"

    @property
    def label(self) -> str:
        return _LOAN_LABELS[self]

    @property
    def category(self) -> str:
        """Deduction summary bucket: SSS, Pag-IBIG or Company."""
        if self.value.startswith("sss_"):
            return "SSS"
        if self.value.startswith("pagibig_"):
            return "Pag-IBIG"
        return "Company"


_LOAN_LABELS = {
    LoanType.SSS_SALARY: "SSS Salary Loan",
    LoanType.SSS_CALAMITY: "SSS Calamity Loan",
    LoanType.SSS_EDUCATIONAL: "SSS Educational Loan",
    LoanType.SSS_EMERGENCY: "SSS Emergency Loan",
    LoanType.SSS_STOCK_INVESTMENT: "SSS Stock Investment Loan",
    LoanType.PAGIBIG_MPL: "Pag-IBIG Multi-Purpose Loan",
    LoanType.PAGIBIG_CALAMITY: "Pag-IBIG Calamity Loan",
    LoanType.PAGIBIG_HOUSING: "Pag-IBIG Housing Loan",
    LoanType.COMPANY_CASH_ADVANCE: "Company Cash Advance",
    LoanType.COMPANY_EMERGENCY: "Company Emergency Loan",
}


class LoanStatus(str, Enum):
    ACTIVE = "active"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ===== Input snapshots =====


@dataclass(frozen=True)
class CompensationSnapshot:
    """Compensation profile as of the computation."""

    basic_pay: Decimal
    pay_type: PayType
    currency: str = "PHP"


@dataclass(frozen=True)
class PeriodDescriptor:
    """A payroll period's cutoff window and position in the cycle.

    Odd period numbers are the first half of a month, even numbers the
    second half.
    """

    period_id: UUID
    cutoff_start: date
    cutoff_end: date
    pay_date: date
    period_number: int
    cycle_type: CycleType

    def __post_init__(self) -> None:
        if self.cutoff_start > self.cutoff_end:
            raise ValueError(
                f"Period {self.period_id} cutoff_start {self.cutoff_start} "
                f"is after cutoff_end {self.cutoff_end}"
            )

    @property
    def is_semi_monthly(self) -> bool:
        return self.cycle_type == CycleType.SEMI_MONTHLY

    @property
    def is_first_cutoff(self) -> bool:
        return self.period_number % 2 == 1

    @property
    def is_second_cutoff(self) -> bool:
        return self.period_number % 2 == 0

    @property
    def deducts_monthly_items(self) -> bool:
        """Whether monthly obligations (SSS, Pag-IBIG, loans) fall in this period."""
        return not self.is_semi_monthly or self.is_second_cutoff

    @property
    def tax_pay_period(self) -> str:
        return "semi_monthly" if self.is_semi_monthly else "monthly"

    def contains(self, day: date) -> bool:
        return self.cutoff_start <= day <= self.cutoff_end


@dataclass(frozen=True)
class AttendanceRecord:
    """One daily time record."""

    work_date: date
    status: DtrStatus
    total_work_minutes: int = 0
    late_minutes: int = 0
    undertime_minutes: int = 0
    overtime_minutes: int = 0
    night_diff_minutes: int = 0
    overtime_approved: bool = False
    overtime_request_id: UUID | None = None


@dataclass(frozen=True)
class HolidayInfo:
    """Calendar holiday, national or scoped to a work location."""

    holiday_date: date
    holiday_type: HolidayType
    name: str = ""
    is_national: bool = True
    work_location_id: UUID | None = None


@dataclass(frozen=True)
class HolidayWork:
    """A day worked on a holiday."""

    record: AttendanceRecord
    holiday: HolidayInfo


@dataclass
class AttendanceSummary:
    """Attendance totals for an employee within a cutoff window."""

    days_worked: int = 0
    absent_days: int = 0
    total_regular_minutes: int = 0
    total_late_minutes: int = 0
    total_undertime_minutes: int = 0
    total_overtime_minutes: int = 0
    total_night_diff_minutes: int = 0
    holiday_records: list[HolidayWork] = field(default_factory=list)

    @property
    def holiday_days(self) -> int:
        return len(self.holiday_records)

    def to_dict(self) -> dict[str, Any]:
        return {
            "days_worked": self.days_worked,
            "absent_days": self.absent_days,
            "total_regular_minutes": self.total_regular_minutes,
            "total_late_minutes": self.total_late_minutes,
            "total_undertime_minutes": self.total_undertime_minutes,
            "total_overtime_minutes": self.total_overtime_minutes,
            "total_night_diff_minutes": self.total_night_diff_minutes,
            "holiday_days": self.holiday_days,
        }


@dataclass
class OvertimeBreakdown:
    """Approved overtime minutes by day type."""

    regular: int = 0
    rest_day: int = 0
    special_holiday: int = 0
    regular_holiday: int = 0
    double_holiday: int = 0

    @property
    def total(self) -> int:
        return (
            self.regular
            + self.rest_day
            + self.special_holiday
            + self.regular_holiday
            + self.double_holiday
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "regular": self.regular,
            "rest_day": self.rest_day,
            "special_holiday": self.special_holiday,
            "regular_holiday": self.regular_holiday,
            "double_holiday": self.double_holiday,
        }


@dataclass(frozen=True)
class AdjustmentSnapshot:
    """An employee adjustment as seen by the resolver.

    ``applications`` maps payroll period id to the amount already applied
    in that period.
    """

    adjustment_id: UUID
    employee_id: UUID
    adjustment_type: AdjustmentType
    amount: Decimal
    status: AdjustmentStatus
    frequency: AdjustmentFrequency
    name: str = ""
    is_taxable: bool = True
    target_period_id: UUID | None = None
    recurring_start_date: date | None = None
    recurring_end_date: date | None = None
    recurring_interval: RecurringInterval | None = None
    remaining_occurrences: int | None = None
    has_balance_tracking: bool = False
    total_amount: Decimal | None = None
    total_applied: Decimal = Decimal("0")
    remaining_balance: Decimal | None = None
    applications: dict[UUID, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class LoanSnapshot:
    """An employee loan as seen by the amortizer.

    ``payments`` maps payroll period id to the amount already paid from
    payroll in that period.
    """

    loan_id: UUID
    employee_id: UUID
    loan_type: LoanType
    loan_code: str
    reference_number: str
    monthly_deduction: Decimal
    total_amount: Decimal
    total_paid: Decimal
    remaining_balance: Decimal
    start_date: date
    status: LoanStatus
    principal_amount: Decimal | None = None
    payments: dict[UUID, Decimal] = field(default_factory=dict)


@dataclass
class EmployeePayrollInputs:
    """Everything the engine needs to compute one employee for one period."""

    employee_id: UUID
    period: PeriodDescriptor
    compensation: CompensationSnapshot | None
    attendance: list[AttendanceRecord] = field(default_factory=list)
    holidays: list[HolidayInfo] = field(default_factory=list)
    approved_overtime: dict[UUID, int] = field(default_factory=dict)
    work_location_id: UUID | None = None
    adjustments: list[AdjustmentSnapshot] = field(default_factory=list)
    loans: list[LoanSnapshot] = field(default_factory=list)


# ===== Output lines and results =====


@dataclass
class EarningLine:
    """An earning line item before persistence."""

    earning_type: EarningType
    code: str
    description: str
    quantity: Decimal
    quantity_unit: str
    rate: Decimal
    multiplier: Decimal
    amount: Decimal
    is_taxable: bool = True
    adjustment_id: UUID | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "earning_type": self.earning_type.value,
            "code": self.code,
            "quantity": str(self.quantity),
            "quantity_unit": self.quantity_unit,
            "rate": str(self.rate),
            "multiplier": str(self.multiplier),
            "amount": str(self.amount),
            "is_taxable": self.is_taxable,
            "adjustment_id": str(self.adjustment_id) if self.adjustment_id else None,
        }


@dataclass
class DeductionLine:
    """A deduction line item before persistence."""

    deduction_type: DeductionType
    code: str
    description: str
    basis_amount: Decimal
    rate: Decimal
    amount: Decimal
    is_employee_share: bool = True
    is_employer_share: bool = False
    contribution_table_type: str | None = None
    contribution_table_id: str | None = None
    adjustment_id: UUID | None = None
    loan_id: UUID | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "deduction_type": self.deduction_type.value,
            "code": self.code,
            "basis_amount": str(self.basis_amount),
            "rate": str(self.rate),
            "amount": str(self.amount),
            "is_employee_share": self.is_employee_share,
            "is_employer_share": self.is_employer_share,
            "contribution_table_id": self.contribution_table_id,
            "adjustment_id": str(self.adjustment_id) if self.adjustment_id else None,
            "loan_id": str(self.loan_id) if self.loan_id else None,
        }


@dataclass
class EarningsResult:
    """Gross pay components and their line items."""

    basic_pay: Decimal = Decimal("0")
    absence_deduction: Decimal = Decimal("0")
    tardiness_deduction: Decimal = Decimal("0")
    overtime_pay: Decimal = Decimal("0")
    night_diff_pay: Decimal = Decimal("0")
    holiday_pay: Decimal = Decimal("0")
    allowances_total: Decimal = Decimal("0")
    bonuses_total: Decimal = Decimal("0")
    gross_pay: Decimal = Decimal("0")
    lines: list[EarningLine] = field(default_factory=list)

    @classmethod
    def empty(cls) -> EarningsResult:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "basic_pay": self.basic_pay,
            "absence_deduction": self.absence_deduction,
            "tardiness_deduction": self.tardiness_deduction,
            "overtime_pay": self.overtime_pay,
            "night_diff_pay": self.night_diff_pay,
            "holiday_pay": self.holiday_pay,
            "allowances_total": self.allowances_total,
            "bonuses_total": self.bonuses_total,
            "gross_pay": self.gross_pay,
        }


@dataclass
class DeductionsResult:
    """Statutory and other deductions with their line items."""

    monthly_salary: Decimal = Decimal("0")
    sss_employee: Decimal = Decimal("0")
    sss_employer: Decimal = Decimal("0")
    philhealth_employee: Decimal = Decimal("0")
    philhealth_employer: Decimal = Decimal("0")
    pagibig_employee: Decimal = Decimal("0")
    pagibig_employer: Decimal = Decimal("0")
    taxable_income: Decimal = Decimal("0")
    withholding_tax: Decimal = Decimal("0")
    loan_deductions: Decimal = Decimal("0")
    adjustment_deductions: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    total_employer_contributions: Decimal = Decimal("0")
    lines: list[DeductionLine] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def empty(cls) -> DeductionsResult:
        return cls()

    def to_dict(self) -> dict[str, Any]:
        return {
            "monthly_salary": self.monthly_salary,
            "sss_employee": self.sss_employee,
            "sss_employer": self.sss_employer,
            "philhealth_employee": self.philhealth_employee,
            "philhealth_employer": self.philhealth_employer,
            "pagibig_employee": self.pagibig_employee,
            "pagibig_employer": self.pagibig_employer,
            "taxable_income": self.taxable_income,
            "withholding_tax": self.withholding_tax,
            "loan_deductions": self.loan_deductions,
            "adjustment_deductions": self.adjustment_deductions,
            "other_deductions": self.other_deductions,
            "total_deductions": self.total_deductions,
            "total_employer_contributions": self.total_employer_contributions,
        }


@dataclass
class PayrollComputation:
    """Result of computing one employee for one period."""

    employee_id: UUID
    period_id: UUID
    calculation_id: UUID
    compensation: CompensationSnapshot | None
    attendance: AttendanceSummary
    overtime_breakdown: OvertimeBreakdown
    earnings: EarningsResult
    deductions: DeductionsResult
    net_pay: Decimal
    adjustment_summary: dict[str, Decimal] = field(default_factory=dict)
    loan_summary: dict[str, Decimal] = field(default_factory=dict)

    @property
    def has_compensation(self) -> bool:
        return self.compensation is not None

    @property
    def gross_pay(self) -> Decimal:
        return self.earnings.gross_pay

    @property
    def total_deductions(self) -> Decimal:
        return self.deductions.total_deductions
