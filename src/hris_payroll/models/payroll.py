"""Payroll period, entry, line item and audit models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin


class PayrollPeriod(Base, TimestampMixin):
    """Payroll period with its cutoff window and re-aggregated totals."""

    __tablename__ = "payroll_period"

    payroll_period_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    cycle_type: Mapped[str] = mapped_column(String, nullable=False, default="semi_monthly")
    period_number: Mapped[int] = mapped_column(Integer, nullable=False)
    cutoff_start: Mapped[date] = mapped_column(Date, nullable=False)
    cutoff_end: Mapped[date] = mapped_column(Date, nullable=False)
    pay_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="open")

    # Totals re-aggregated from computed entries
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gross: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), nullable=False, default=Decimal("0")
    )
    total_net: Mapped[Decimal] = mapped_column(Numeric(16, 2), nullable=False, default=Decimal("0"))
    totals_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "cycle_type IN ('semi_monthly', 'monthly', 'supplemental', 'thirteenth_month', 'final_pay')",
            name="payroll_period_cycle_type_check",
        ),
        CheckConstraint("cutoff_end >= cutoff_start", name="payroll_period_dates_check"),
        CheckConstraint("period_number >= 1", name="payroll_period_number_check"),
    )

    # Relationships
    entries: Mapped[list[PayrollEntry]] = relationship(back_populates="payroll_period")


class PayrollEntry(Base, TimestampMixin):
    """One employee's payroll result for one period."""

    __tablename__ = "payroll_entry"

    payroll_entry_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    payroll_period_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("payroll_period.payroll_period_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )

    # Employee snapshot
    employee_number: Mapped[str] = mapped_column(String, nullable=False)
    employee_name: Mapped[str] = mapped_column(String, nullable=False)
    department_name: Mapped[str | None] = mapped_column(String, nullable=True)
    position_name: Mapped[str | None] = mapped_column(String, nullable=True)
    basic_salary_snapshot: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    pay_type_snapshot: Mapped[str] = mapped_column(String, nullable=False)

    # Attendance snapshot
    days_worked: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    absent_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    holiday_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_regular_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_overtime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_night_diff_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Earnings
    basic_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    overtime_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    night_diff_pay: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    holiday_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    allowances_total: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    bonuses_total: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    # Deductions
    sss_employee: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    sss_employer: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    philhealth_employee: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    philhealth_employer: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    pagibig_employee: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    pagibig_employer: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    withholding_tax: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    loan_deductions: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    adjustment_deductions: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    other_deductions: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    total_deductions: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    total_employer_contributions: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    net_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))

    # Lifecycle
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    calculation_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    computed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    computed_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "payroll_period_id", "employee_id", name="payroll_entry_period_employee_unique"
        ),
        CheckConstraint(
            "status IN ('draft', 'computed', 'reviewed', 'approved', 'paid')",
            name="payroll_entry_status_check",
        ),
    )

    # Relationships
    payroll_period: Mapped[PayrollPeriod] = relationship(back_populates="entries")
    earnings: Mapped[list[PayrollEarning]] = relationship(
        back_populates="payroll_entry",
        order_by="PayrollEarning.line_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    deductions: Mapped[list[PayrollDeduction]] = relationship(
        back_populates="payroll_entry",
        order_by="PayrollDeduction.line_number",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class PayrollEarning(Base):
    """Earning line item of a payroll entry."""

    __tablename__ = "payroll_earning"

    payroll_earning_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    payroll_entry_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("payroll_entry.payroll_entry_id", ondelete="CASCADE"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    earning_type: Mapped[str] = mapped_column(String, nullable=False)
    earning_code: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    quantity_unit: Mapped[str] = mapped_column(String, nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(14, 6), nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    is_taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    adjustment_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    line_hash: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("payroll_entry_id", "line_number", name="payroll_earning_line_unique"),
    )

    # Relationships
    payroll_entry: Mapped[PayrollEntry] = relationship(back_populates="earnings")


class PayrollDeduction(Base):
    """Deduction line item of a payroll entry (employee or employer share)."""

    __tablename__ = "payroll_deduction"

    payroll_deduction_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    payroll_entry_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("payroll_entry.payroll_entry_id", ondelete="CASCADE"),
        nullable=False,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    deduction_type: Mapped[str] = mapped_column(String, nullable=False)
    deduction_code: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False)
    basis_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(8, 4), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    is_employee_share: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_employer_share: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    contribution_table_type: Mapped[str | None] = mapped_column(String, nullable=True)
    contribution_table_id: Mapped[str | None] = mapped_column(String, nullable=True)
    adjustment_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    loan_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    line_hash: Mapped[str] = mapped_column(String(32), nullable=False)

    __table_args__ = (
        UniqueConstraint("payroll_entry_id", "line_number", name="payroll_deduction_line_unique"),
    )

    # Relationships
    payroll_entry: Mapped[PayrollEntry] = relationship(back_populates="deductions")


class AuditEvent(Base):
    """Audit trail entry."""

    __tablename__ = "audit_event"

    audit_event_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    actor_user_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[str] = mapped_column(String, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    details_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
