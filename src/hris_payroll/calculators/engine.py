"""Payroll computation engine - pure per-employee pipeline."""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from uuid import UUID

from hris_payroll.calculators.adjustments import AdjustmentResolver
from hris_payroll.calculators.attendance import AttendanceAggregator
from hris_payroll.calculators.contributions import ContributionLookup
from hris_payroll.calculators.deductions import DeductionsComposer
from hris_payroll.calculators.earnings import EarningsComposer
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.loans import LoanAmortizer
from hris_payroll.calculators.types import (
    AttendanceSummary,
    DeductionsResult,
    EarningsResult,
    EmployeePayrollInputs,
    OvertimeBreakdown,
    PayrollComputation,
)


class LineValidationError(Exception):
    """Raised when computed lines break sign or reconciliation rules."""

    def __init__(self, employee_id: UUID, errors: list[str]):
        self.employee_id = employee_id
        self.errors = errors
        super().__init__(f"Invalid payroll lines for employee {employee_id}: {'; '.join(errors)}")


class PayrollEngine:
    """Computes one employee's payroll for one period from in-memory inputs.

    Calculation pipeline (stable order per employee):
    1) Aggregate attendance within the cutoff window
    2) Compose earnings (basic pay, overtime, night differential,
       holiday pay, allowances, bonuses) into gross pay
    3) Compose deductions (SSS, PhilHealth, Pag-IBIG, withholding tax,
       loans, deduction adjustments)
    4) Net pay = gross pay - total employee deductions (not clamped)
    5) Validate line signs and that lines reconcile with the totals

    The engine performs no I/O. An employee without a compensation profile
    yields an all-zero result with no lines.
    """

    def __init__(
        self,
        contribution_lookup: ContributionLookup,
        *,
        aggregator: AttendanceAggregator | None = None,
        adjustment_resolver: AdjustmentResolver | None = None,
        loan_amortizer: LoanAmortizer | None = None,
        engine_version: str = "1.0.0",
    ):
        self.aggregator = aggregator or AttendanceAggregator()
        self.adjustment_resolver = adjustment_resolver or AdjustmentResolver()
        self.loan_amortizer = loan_amortizer or LoanAmortizer()
        self.earnings_composer = EarningsComposer(self.adjustment_resolver)
        self.deductions_composer = DeductionsComposer(
            contribution_lookup,
            loan_amortizer=self.loan_amortizer,
            adjustment_resolver=self.adjustment_resolver,
        )
        self.engine_version = engine_version

    def compute(self, inputs: EmployeePayrollInputs) -> PayrollComputation:
        period = inputs.period

        if inputs.compensation is None:
            return PayrollComputation(
                employee_id=inputs.employee_id,
                period_id=period.period_id,
                calculation_id=self._generate_calculation_id(
                    inputs, EarningsResult.empty(), DeductionsResult.empty()
                ),
                compensation=None,
                attendance=AttendanceSummary(),
                overtime_breakdown=OvertimeBreakdown(),
                earnings=EarningsResult.empty(),
                deductions=DeductionsResult.empty(),
                net_pay=Decimal("0"),
            )

        summary = self.aggregator.aggregate(
            period,
            inputs.attendance,
            inputs.holidays,
            inputs.approved_overtime,
            inputs.work_location_id,
        )
        breakdown = self.aggregator.overtime_breakdown(
            period,
            inputs.attendance,
            inputs.holidays,
            inputs.approved_overtime,
            inputs.work_location_id,
        )
        earnings = self.earnings_composer.compose(
            inputs.compensation, period, summary, inputs.adjustments
        )
        deductions = self.deductions_composer.compose(
            inputs.compensation,
            period,
            earnings.gross_pay,
            adjustments=inputs.adjustments,
            loans=inputs.loans,
        )
        net_pay = LineItemBuilder.round_to_cents(earnings.gross_pay - deductions.total_deductions)
        self._validate_lines(inputs, earnings, deductions)

        return PayrollComputation(
            employee_id=inputs.employee_id,
            period_id=period.period_id,
            calculation_id=self._generate_calculation_id(inputs, earnings, deductions),
            compensation=inputs.compensation,
            attendance=summary,
            overtime_breakdown=breakdown,
            earnings=earnings,
            deductions=deductions,
            net_pay=net_pay,
            adjustment_summary=self.adjustment_resolver.summary(inputs.adjustments, period),
            loan_summary=self.loan_amortizer.summary_by_category(inputs.loans, period),
        )

    @staticmethod
    def _validate_lines(
        inputs: EmployeePayrollInputs,
        earnings: EarningsResult,
        deductions: DeductionsResult,
    ) -> None:
        errors = LineItemBuilder.validate_line_signs(earnings.lines, deductions.lines)

        earned = LineItemBuilder.sum_amounts(earnings.lines)
        if earned != earnings.gross_pay:
            errors.append(f"Earning lines sum to {earned}, gross pay is {earnings.gross_pay}")
        withheld = LineItemBuilder.employee_deductions(deductions.lines)
        if withheld != deductions.total_deductions:
            errors.append(
                f"Employee deduction lines sum to {withheld}, "
                f"total deductions are {deductions.total_deductions}"
            )

        if errors:
            raise LineValidationError(inputs.employee_id, errors)

    def _generate_calculation_id(
        self,
        inputs: EmployeePayrollInputs,
        earnings: EarningsResult,
        deductions: DeductionsResult,
    ) -> UUID:
        """Generate deterministic calculation ID from the produced lines."""
        data = {
            "period_id": str(inputs.period.period_id),
            "employee_id": str(inputs.employee_id),
            "engine_version": self.engine_version,
            "lines_fingerprint": self._compute_lines_fingerprint(earnings, deductions),
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    @staticmethod
    def _compute_lines_fingerprint(
        earnings: EarningsResult, deductions: DeductionsResult
    ) -> str:
        """Fingerprint of all line hashes in order."""
        hashes: list[str] = [LineItemBuilder.compute_line_hash(l) for l in earnings.lines]
        hashes.extend(LineItemBuilder.compute_line_hash(l) for l in deductions.lines)
        json_str = json.dumps(hashes)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
