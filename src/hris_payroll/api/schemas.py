"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hris_payroll.calculators.types import DeductionLine, EarningLine, PayrollComputation
from hris_payroll.models import PayrollPeriod
from hris_payroll.services import EmployeeComputeResult


# ============================================================================
# Requests
# ============================================================================


class ComputePeriodRequest(BaseModel):
    """Schema for a period batch computation."""

    employee_ids: list[UUID] | None = None
    force_recompute: bool = False


class TransitionRequest(BaseModel):
    """Schema for an entry status transition."""

    to_status: str = Field(min_length=1)


# ============================================================================
# Preview schemas
# ============================================================================


class PreviewEarningLine(BaseModel):
    """Schema for an unpersisted earning line."""

    earning_type: str
    code: str
    description: str
    quantity: Decimal
    quantity_unit: str
    rate: Decimal
    multiplier: Decimal
    amount: Decimal
    is_taxable: bool
    adjustment_id: UUID | None = None

    @classmethod
    def from_line(cls, line: EarningLine) -> "PreviewEarningLine":
        return cls(
            earning_type=line.earning_type.value,
            code=line.code,
            description=line.description,
            quantity=line.quantity,
            quantity_unit=line.quantity_unit,
            rate=line.rate,
            multiplier=line.multiplier,
            amount=line.amount,
            is_taxable=line.is_taxable,
            adjustment_id=line.adjustment_id,
        )


class PreviewDeductionLine(BaseModel):
    """Schema for an unpersisted deduction line."""

    deduction_type: str
    code: str
    description: str
    basis_amount: Decimal
    rate: Decimal
    amount: Decimal
    is_employee_share: bool
    is_employer_share: bool
    contribution_table_id: str | None = None
    adjustment_id: UUID | None = None
    loan_id: UUID | None = None

    @classmethod
    def from_line(cls, line: DeductionLine) -> "PreviewDeductionLine":
        return cls(
            deduction_type=line.deduction_type.value,
            code=line.code,
            description=line.description,
            basis_amount=line.basis_amount,
            rate=line.rate,
            amount=line.amount,
            is_employee_share=line.is_employee_share,
            is_employer_share=line.is_employer_share,
            contribution_table_id=line.contribution_table_id,
            adjustment_id=line.adjustment_id,
            loan_id=line.loan_id,
        )


class PreviewResponse(BaseModel):
    """Schema for a single-employee preview."""

    employee_id: UUID
    period_id: UUID
    calculation_id: UUID
    has_compensation: bool
    attendance: dict[str, int]
    overtime_breakdown: dict[str, int]
    earnings: dict[str, Decimal]
    deductions: dict[str, Decimal]
    adjustment_summary: dict[str, Decimal]
    loan_summary: dict[str, Decimal]
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    earning_lines: list[PreviewEarningLine]
    deduction_lines: list[PreviewDeductionLine]
    warnings: list[str]

    @classmethod
    def from_computation(cls, computation: PayrollComputation) -> "PreviewResponse":
        return cls(
            employee_id=computation.employee_id,
            period_id=computation.period_id,
            calculation_id=computation.calculation_id,
            has_compensation=computation.has_compensation,
            attendance=computation.attendance.to_dict(),
            overtime_breakdown=computation.overtime_breakdown.to_dict(),
            earnings=computation.earnings.to_dict(),
            deductions=computation.deductions.to_dict(),
            adjustment_summary=computation.adjustment_summary,
            loan_summary=computation.loan_summary,
            gross_pay=computation.gross_pay,
            total_deductions=computation.total_deductions,
            net_pay=computation.net_pay,
            earning_lines=[PreviewEarningLine.from_line(line) for line in computation.earnings.lines],
            deduction_lines=[
                PreviewDeductionLine.from_line(line) for line in computation.deductions.lines
            ],
            warnings=list(computation.deductions.warnings),
        )


# ============================================================================
# Computation schemas
# ============================================================================


class ComputeResultResponse(BaseModel):
    """Schema for one employee's computation outcome."""

    employee_id: UUID
    outcome: str
    entry_id: UUID | None = None
    calculation_id: UUID | None = None
    net_pay: Decimal | None = None

    @classmethod
    def from_result(cls, result: EmployeeComputeResult) -> "ComputeResultResponse":
        computation = result.computation
        return cls(
            employee_id=result.employee_id,
            outcome=result.outcome.value,
            entry_id=result.entry_id,
            calculation_id=computation.calculation_id if computation else None,
            net_pay=computation.net_pay if computation else None,
        )


class PeriodTotalsResponse(BaseModel):
    """Schema for re-aggregated period totals."""

    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    employee_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    updated_at: datetime | None = None

    @classmethod
    def from_period(cls, period: PayrollPeriod) -> "PeriodTotalsResponse":
        return cls(
            period_id=period.payroll_period_id,
            employee_count=period.employee_count,
            total_gross=period.total_gross,
            total_deductions=period.total_deductions,
            total_net=period.total_net,
            updated_at=period.totals_updated_at,
        )


class BatchSummaryResponse(BaseModel):
    """Schema for a period batch run."""

    model_config = ConfigDict(from_attributes=True)

    period_id: UUID
    total: int
    computed: int
    skipped_existing: int
    skipped_no_compensation: int
    skipped_not_recomputable: int
    failed: int
    errors: list[str]
    totals: PeriodTotalsResponse | None = None


# ============================================================================
# Entry schemas
# ============================================================================


class PayrollEarningResponse(BaseModel):
    """Schema for a persisted earning line."""

    model_config = ConfigDict(from_attributes=True)

    line_number: int
    earning_type: str
    earning_code: str
    description: str
    quantity: Decimal
    quantity_unit: str
    rate: Decimal
    multiplier: Decimal
    amount: Decimal
    is_taxable: bool
    adjustment_id: UUID | None = None
    line_hash: str


class PayrollDeductionResponse(BaseModel):
    """Schema for a persisted deduction line."""

    model_config = ConfigDict(from_attributes=True)

    payroll_deduction_id: UUID
    line_number: int
    deduction_type: str
    deduction_code: str
    description: str
    basis_amount: Decimal
    rate: Decimal
    amount: Decimal
    is_employee_share: bool
    is_employer_share: bool
    contribution_table_type: str | None = None
    contribution_table_id: str | None = None
    adjustment_id: UUID | None = None
    loan_id: UUID | None = None
    line_hash: str


class PayrollEntryResponse(BaseModel):
    """Schema for a payroll entry."""

    model_config = ConfigDict(from_attributes=True)

    payroll_entry_id: UUID
    payroll_period_id: UUID
    employee_id: UUID
    employee_number: str
    employee_name: str
    department_name: str | None = None
    position_name: str | None = None
    basic_salary_snapshot: Decimal
    pay_type_snapshot: str
    days_worked: int
    absent_days: int
    holiday_days: int
    total_late_minutes: int
    total_undertime_minutes: int
    total_overtime_minutes: int
    total_night_diff_minutes: int
    basic_pay: Decimal
    overtime_pay: Decimal
    night_diff_pay: Decimal
    holiday_pay: Decimal
    allowances_total: Decimal
    bonuses_total: Decimal
    gross_pay: Decimal
    sss_employee: Decimal
    sss_employer: Decimal
    philhealth_employee: Decimal
    philhealth_employer: Decimal
    pagibig_employee: Decimal
    pagibig_employer: Decimal
    withholding_tax: Decimal
    loan_deductions: Decimal
    adjustment_deductions: Decimal
    other_deductions: Decimal
    total_deductions: Decimal
    total_employer_contributions: Decimal
    net_pay: Decimal
    status: str
    calculation_id: UUID | None = None
    computed_at: datetime | None = None
    computed_by: UUID | None = None
    reviewed_at: datetime | None = None
    reviewed_by: UUID | None = None
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    paid_at: datetime | None = None


class PayrollEntryDetailResponse(PayrollEntryResponse):
    """Schema for a payroll entry with its ordered lines."""

    earnings: list[PayrollEarningResponse]
    deductions: list[PayrollDeductionResponse]


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
