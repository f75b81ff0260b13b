"""Loads persisted rows and maps them to engine input snapshots."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris_payroll.calculators.types import (
    AdjustmentFrequency,
    AdjustmentSnapshot,
    AdjustmentStatus,
    AdjustmentType,
    AttendanceRecord,
    CompensationSnapshot,
    CycleType,
    DtrStatus,
    EmployeePayrollInputs,
    HolidayInfo,
    HolidayType,
    LoanSnapshot,
    LoanStatus,
    LoanType,
    PayType,
    PeriodDescriptor,
    RecurringInterval,
)
from hris_payroll.models import (
    AdjustmentApplication,
    DailyTimeRecord,
    Employee,
    EmployeeAdjustment,
    EmployeeCompensation,
    EmployeeLoan,
    Holiday,
    LoanPayment,
    OvertimeRequest,
    PayrollEntry,
    PayrollPeriod,
)


class PayrollRepository:
    """Read side of the payroll pipeline.

    Every method returns ORM rows or plain snapshots; applicability rules
    live in the calculators, not in queries.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ----- periods, employees, entries -----

    async def get_period(self, period_id: UUID) -> PayrollPeriod | None:
        return await self.session.get(PayrollPeriod, period_id)

    @staticmethod
    def period_descriptor(period: PayrollPeriod) -> PeriodDescriptor:
        return PeriodDescriptor(
            period_id=period.payroll_period_id,
            cutoff_start=period.cutoff_start,
            cutoff_end=period.cutoff_end,
            pay_date=period.pay_date,
            period_number=period.period_number,
            cycle_type=CycleType(period.cycle_type),
        )

    async def get_employee(self, employee_id: UUID) -> Employee | None:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.employee_id == employee_id)
            .options(selectinload(Employee.compensation))
        )
        return result.scalar_one_or_none()

    async def active_employee_ids(self, employee_ids: Iterable[UUID] | None = None) -> list[UUID]:
        """Active employees with a compensation profile, in employee number order."""
        stmt = (
            select(Employee.employee_id)
            .join(EmployeeCompensation, EmployeeCompensation.employee_id == Employee.employee_id)
            .where(Employee.status == "active")
            .order_by(Employee.employee_number)
        )
        if employee_ids is not None:
            stmt = stmt.where(Employee.employee_id.in_(list(employee_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_entry(self, entry_id: UUID, load_lines: bool = False) -> PayrollEntry | None:
        stmt = select(PayrollEntry).where(PayrollEntry.payroll_entry_id == entry_id)
        if load_lines:
            stmt = stmt.options(
                selectinload(PayrollEntry.earnings),
                selectinload(PayrollEntry.deductions),
            )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_entry(
        self,
        period_id: UUID,
        employee_id: UUID,
        for_update: bool = False,
    ) -> PayrollEntry | None:
        stmt = select(PayrollEntry).where(
            PayrollEntry.payroll_period_id == period_id,
            PayrollEntry.employee_id == employee_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    # ----- engine inputs -----

    async def load_inputs(self, period: PayrollPeriod, employee: Employee) -> EmployeePayrollInputs:
        """Assemble everything the engine needs for one employee and period."""
        descriptor = self.period_descriptor(period)
        compensation = None
        if employee.compensation is not None:
            compensation = CompensationSnapshot(
                basic_pay=employee.compensation.basic_pay,
                pay_type=PayType(employee.compensation.pay_type),
                currency=employee.compensation.currency,
            )

        attendance = await self.attendance(employee.employee_id, descriptor)
        request_ids = {r.overtime_request_id for r in attendance if r.overtime_request_id}

        return EmployeePayrollInputs(
            employee_id=employee.employee_id,
            period=descriptor,
            compensation=compensation,
            attendance=attendance,
            holidays=await self.holidays(descriptor),
            approved_overtime=await self.approved_overtime(request_ids),
            work_location_id=employee.work_location_id,
            adjustments=await self.adjustments(employee_id=employee.employee_id),
            loans=await self.loans(employee_id=employee.employee_id),
        )

    async def attendance(
        self, employee_id: UUID, period: PeriodDescriptor
    ) -> list[AttendanceRecord]:
        result = await self.session.execute(
            select(DailyTimeRecord)
            .where(
                DailyTimeRecord.employee_id == employee_id,
                DailyTimeRecord.work_date >= period.cutoff_start,
                DailyTimeRecord.work_date <= period.cutoff_end,
            )
            .order_by(DailyTimeRecord.work_date)
        )
        return [
            AttendanceRecord(
                work_date=dtr.work_date,
                status=DtrStatus(dtr.status),
                total_work_minutes=dtr.total_work_minutes,
                late_minutes=dtr.late_minutes,
                undertime_minutes=dtr.undertime_minutes,
                overtime_minutes=dtr.overtime_minutes,
                night_diff_minutes=dtr.night_diff_minutes,
                overtime_approved=dtr.overtime_approved,
                overtime_request_id=dtr.overtime_request_id,
            )
            for dtr in result.scalars().all()
        ]

    async def holidays(self, period: PeriodDescriptor) -> list[HolidayInfo]:
        result = await self.session.execute(
            select(Holiday)
            .where(
                Holiday.holiday_date >= period.cutoff_start,
                Holiday.holiday_date <= period.cutoff_end,
            )
            .order_by(Holiday.holiday_date, Holiday.name)
        )
        return [
            HolidayInfo(
                holiday_date=h.holiday_date,
                holiday_type=HolidayType(h.holiday_type),
                name=h.name,
                is_national=h.is_national,
                work_location_id=h.work_location_id,
            )
            for h in result.scalars().all()
        ]

    async def approved_overtime(self, request_ids: Iterable[UUID]) -> dict[UUID, int]:
        """Expected minutes of the approved requests among ``request_ids``."""
        ids = list(request_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(OvertimeRequest.overtime_request_id, OvertimeRequest.expected_minutes).where(
                OvertimeRequest.overtime_request_id.in_(ids),
                OvertimeRequest.status == "approved",
            )
        )
        return {request_id: minutes for request_id, minutes in result.all()}

    # ----- adjustments -----

    async def adjustment_rows(
        self,
        employee_id: UUID | None = None,
        adjustment_ids: Iterable[UUID] | None = None,
    ) -> list[EmployeeAdjustment]:
        stmt = select(EmployeeAdjustment).order_by(
            EmployeeAdjustment.created_at, EmployeeAdjustment.adjustment_id
        )
        if employee_id is not None:
            stmt = stmt.where(EmployeeAdjustment.employee_id == employee_id)
        if adjustment_ids is not None:
            stmt = stmt.where(EmployeeAdjustment.adjustment_id.in_(list(adjustment_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def applications_by_adjustment(
        self, adjustment_ids: Iterable[UUID]
    ) -> dict[UUID, dict[UUID, Decimal]]:
        ids = list(adjustment_ids)
        history: dict[UUID, dict[UUID, Decimal]] = defaultdict(dict)
        if not ids:
            return history
        result = await self.session.execute(
            select(AdjustmentApplication).where(AdjustmentApplication.adjustment_id.in_(ids))
        )
        for application in result.scalars().all():
            history[application.adjustment_id][application.payroll_period_id] = application.amount
        return history

    async def adjustments(
        self,
        employee_id: UUID | None = None,
        adjustment_ids: Iterable[UUID] | None = None,
    ) -> list[AdjustmentSnapshot]:
        rows = await self.adjustment_rows(employee_id, adjustment_ids)
        history = await self.applications_by_adjustment(r.adjustment_id for r in rows)
        return [self.adjustment_snapshot(r, history.get(r.adjustment_id, {})) for r in rows]

    @staticmethod
    def adjustment_snapshot(
        row: EmployeeAdjustment, applications: dict[UUID, Decimal]
    ) -> AdjustmentSnapshot:
        return AdjustmentSnapshot(
            adjustment_id=row.adjustment_id,
            employee_id=row.employee_id,
            adjustment_type=AdjustmentType(row.adjustment_type),
            amount=row.amount,
            status=AdjustmentStatus(row.status),
            frequency=AdjustmentFrequency(row.frequency),
            name=row.name,
            is_taxable=row.is_taxable,
            target_period_id=row.target_payroll_period_id,
            recurring_start_date=row.recurring_start_date,
            recurring_end_date=row.recurring_end_date,
            recurring_interval=(
                RecurringInterval(row.recurring_interval) if row.recurring_interval else None
            ),
            remaining_occurrences=row.remaining_occurrences,
            has_balance_tracking=row.has_balance_tracking,
            total_amount=row.total_amount,
            total_applied=row.total_applied,
            remaining_balance=row.remaining_balance,
            applications=dict(applications),
        )

    # ----- loans -----

    async def loan_rows(
        self,
        employee_id: UUID | None = None,
        loan_ids: Iterable[UUID] | None = None,
    ) -> list[EmployeeLoan]:
        stmt = select(EmployeeLoan).order_by(EmployeeLoan.start_date, EmployeeLoan.loan_id)
        if employee_id is not None:
            stmt = stmt.where(EmployeeLoan.employee_id == employee_id)
        if loan_ids is not None:
            stmt = stmt.where(EmployeeLoan.loan_id.in_(list(loan_ids)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def payments_by_loan(self, loan_ids: Iterable[UUID]) -> dict[UUID, list[LoanPayment]]:
        ids = list(loan_ids)
        history: dict[UUID, list[LoanPayment]] = defaultdict(list)
        if not ids:
            return history
        result = await self.session.execute(
            select(LoanPayment)
            .where(LoanPayment.loan_id.in_(ids))
            .order_by(LoanPayment.payment_date)
        )
        for payment in result.scalars().all():
            history[payment.loan_id].append(payment)
        return history

    async def loans(
        self,
        employee_id: UUID | None = None,
        loan_ids: Iterable[UUID] | None = None,
    ) -> list[LoanSnapshot]:
        rows = await self.loan_rows(employee_id, loan_ids)
        history = await self.payments_by_loan(r.loan_id for r in rows)
        return [self.loan_snapshot(r, history.get(r.loan_id, [])) for r in rows]

    @staticmethod
    def loan_snapshot(row: EmployeeLoan, payments: Iterable[LoanPayment]) -> LoanSnapshot:
        return LoanSnapshot(
            loan_id=row.loan_id,
            employee_id=row.employee_id,
            loan_type=LoanType(row.loan_type),
            loan_code=row.loan_code,
            reference_number=row.reference_number,
            monthly_deduction=row.monthly_deduction,
            total_amount=row.total_amount,
            total_paid=row.total_paid,
            remaining_balance=row.remaining_balance,
            start_date=row.start_date,
            status=LoanStatus(row.status),
            principal_amount=row.principal_amount,
            payments={
                p.payroll_period_id: p.amount
                for p in payments
                if p.payroll_period_id is not None and p.payment_source == "payroll"
            },
        )
