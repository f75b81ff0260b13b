"""Per-employee persistence swap for payroll entries and their line items."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.types import DeductionLine, EarningLine, PayrollComputation
from hris_payroll.models import Employee, PayrollDeduction, PayrollEarning, PayrollEntry
from hris_payroll.services.state_machine import PayrollEntryStateMachine, PayrollEntryStatus


class CommitService:
    """Replaces an entry's lines and totals with a fresh computation.

    Key invariants:
    1. One payroll_entry per (period, employee) (enforced by unique constraint)
    2. Old lines are deleted before new ones are written, so recomputation
       never accumulates
    3. Entries outside draft/computed/reviewed are never touched
    4. The caller owns the transaction: everything here commits or rolls
       back together
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def persist_entry(
        self,
        existing: PayrollEntry | None,
        employee: Employee,
        computation: PayrollComputation,
        actor_id: UUID | None,
        computed_at: datetime,
    ) -> PayrollEntry:
        """Write ``computation`` as the entry for its period and employee.

        ``existing`` must have been loaded with a row lock in the caller's
        transaction.

        Raises:
            RecomputeNotAllowedError: If the existing entry is approved or paid
        """
        if existing is not None:
            PayrollEntryStateMachine.validate_recompute(existing.payroll_entry_id, existing.status)
            await self._delete_lines(existing.payroll_entry_id)
            entry = existing
        else:
            entry = PayrollEntry(
                payroll_entry_id=uuid4(),
                payroll_period_id=computation.period_id,
                employee_id=computation.employee_id,
                status=PayrollEntryStatus.DRAFT.value,
            )
            self.session.add(entry)

        self._apply_snapshot(entry, employee, computation)
        self._apply_totals(entry, computation)

        entry.status = PayrollEntryStatus.COMPUTED.value
        entry.calculation_id = computation.calculation_id
        entry.computed_at = computed_at
        entry.computed_by = actor_id
        entry.reviewed_at = None
        entry.reviewed_by = None

        for line_number, line in enumerate(computation.earnings.lines, start=1):
            self.session.add(self._earning_row(entry.payroll_entry_id, line_number, line))
        for line_number, line in enumerate(computation.deductions.lines, start=1):
            self.session.add(self._deduction_row(entry.payroll_entry_id, line_number, line))

        await self.session.flush()
        return entry

    async def _delete_lines(self, entry_id: UUID) -> None:
        await self.session.execute(
            delete(PayrollEarning).where(PayrollEarning.payroll_entry_id == entry_id)
        )
        await self.session.execute(
            delete(PayrollDeduction).where(PayrollDeduction.payroll_entry_id == entry_id)
        )

    @staticmethod
    def _apply_snapshot(
        entry: PayrollEntry, employee: Employee, computation: PayrollComputation
    ) -> None:
        compensation = computation.compensation
        attendance = computation.attendance

        entry.employee_number = employee.employee_number
        entry.employee_name = employee.full_name
        entry.department_name = employee.department_name
        entry.position_name = employee.position_name
        entry.basic_salary_snapshot = compensation.basic_pay if compensation else 0
        entry.pay_type_snapshot = compensation.pay_type.value if compensation else ""

        entry.days_worked = attendance.days_worked
        entry.absent_days = attendance.absent_days
        entry.holiday_days = attendance.holiday_days
        entry.total_regular_minutes = attendance.total_regular_minutes
        entry.total_late_minutes = attendance.total_late_minutes
        entry.total_undertime_minutes = attendance.total_undertime_minutes
        entry.total_overtime_minutes = attendance.total_overtime_minutes
        entry.total_night_diff_minutes = attendance.total_night_diff_minutes

    @staticmethod
    def _apply_totals(entry: PayrollEntry, computation: PayrollComputation) -> None:
        earnings = computation.earnings
        deductions = computation.deductions

        entry.basic_pay = earnings.basic_pay
        entry.overtime_pay = earnings.overtime_pay
        entry.night_diff_pay = earnings.night_diff_pay
        entry.holiday_pay = earnings.holiday_pay
        entry.allowances_total = earnings.allowances_total
        entry.bonuses_total = earnings.bonuses_total
        entry.gross_pay = earnings.gross_pay

        entry.sss_employee = deductions.sss_employee
        entry.sss_employer = deductions.sss_employer
        entry.philhealth_employee = deductions.philhealth_employee
        entry.philhealth_employer = deductions.philhealth_employer
        entry.pagibig_employee = deductions.pagibig_employee
        entry.pagibig_employer = deductions.pagibig_employer
        entry.withholding_tax = deductions.withholding_tax
        entry.loan_deductions = deductions.loan_deductions
        entry.adjustment_deductions = deductions.adjustment_deductions
        entry.other_deductions = deductions.other_deductions
        entry.total_deductions = deductions.total_deductions
        entry.total_employer_contributions = deductions.total_employer_contributions
        entry.net_pay = computation.net_pay

    @staticmethod
    def _earning_row(entry_id: UUID, line_number: int, line: EarningLine) -> PayrollEarning:
        return PayrollEarning(
            payroll_entry_id=entry_id,
            line_number=line_number,
            earning_type=line.earning_type.value,
            earning_code=line.code,
            description=line.description,
            quantity=line.quantity,
            quantity_unit=line.quantity_unit,
            rate=line.rate,
            multiplier=line.multiplier,
            amount=line.amount,
            is_taxable=line.is_taxable,
            adjustment_id=line.adjustment_id,
            line_hash=LineItemBuilder.compute_line_hash(line),
        )

    @staticmethod
    def _deduction_row(entry_id: UUID, line_number: int, line: DeductionLine) -> PayrollDeduction:
        return PayrollDeduction(
            payroll_entry_id=entry_id,
            line_number=line_number,
            deduction_type=line.deduction_type.value,
            deduction_code=line.code,
            description=line.description,
            basis_amount=line.basis_amount,
            rate=line.rate,
            amount=line.amount,
            is_employee_share=line.is_employee_share,
            is_employer_share=line.is_employer_share,
            contribution_table_type=line.contribution_table_type,
            contribution_table_id=line.contribution_table_id,
            adjustment_id=line.adjustment_id,
            loan_id=line.loan_id,
            line_hash=LineItemBuilder.compute_line_hash(line),
        )
