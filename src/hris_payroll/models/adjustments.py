"""Employee adjustment models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
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

if TYPE_CHECKING:
    from hris_payroll.calculators.adjustments import ApplicationPlan


class EmployeeAdjustment(Base, TimestampMixin):
    """Allowance, bonus, deduction or loan-type adjustment for an employee.

    ``version`` is an optimistic lock: concurrent postings against the same
    balance fail with StaleDataError instead of double-deducting.
    """

    __tablename__ = "employee_adjustment"

    adjustment_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    adjustment_type: Mapped[str] = mapped_column(String, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False, default="")
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    is_taxable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    frequency: Mapped[str] = mapped_column(String, nullable=False, default="one_time")
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    # One-time targeting
    target_payroll_period_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("payroll_period.payroll_period_id", ondelete="SET NULL"),
        nullable=True,
    )

    # Recurrence
    recurring_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    recurring_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    recurring_interval: Mapped[str | None] = mapped_column(String, nullable=True)
    remaining_occurrences: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Balance tracking
    has_balance_tracking: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_applied: Mapped[Decimal] = mapped_column(
        Numeric(14, 2), nullable=False, default=Decimal("0")
    )
    remaining_balance: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("amount >= 0", name="employee_adjustment_amount_check"),
        CheckConstraint(
            "frequency IN ('one_time', 'recurring')",
            name="employee_adjustment_frequency_check",
        ),
        CheckConstraint(
            "status IN ('active', 'on_hold', 'completed', 'cancelled')",
            name="employee_adjustment_status_check",
        ),
        CheckConstraint(
            "recurring_interval IS NULL OR recurring_interval IN "
            "('every_period', 'monthly', 'first_cutoff', 'second_cutoff')",
            name="employee_adjustment_interval_check",
        ),
    )

    # Relationships
    applications: Mapped[list[AdjustmentApplication]] = relationship(
        back_populates="adjustment",
        cascade="all, delete-orphan",
    )

    def record_application(
        self,
        plan: ApplicationPlan,
        payroll_entry_id: UUID,
        applied_at: datetime,
    ) -> AdjustmentApplication:
        """Apply a planned amount: update counters and build the history row."""
        application = AdjustmentApplication(
            adjustment_id=self.adjustment_id,
            payroll_period_id=plan.period_id,
            payroll_entry_id=payroll_entry_id,
            amount=plan.amount,
            balance_before=plan.balance_before,
            balance_after=plan.balance_after,
            applied_at=applied_at,
        )
        self.total_applied = plan.total_applied_after
        if plan.balance_after is not None:
            self.remaining_balance = plan.balance_after
        if plan.remaining_occurrences_after is not None:
            self.remaining_occurrences = plan.remaining_occurrences_after
        if plan.completes:
            self.status = "completed"
        return application


class AdjustmentApplication(Base):
    """Amount of an adjustment applied in one payroll period."""

    __tablename__ = "adjustment_application"

    adjustment_application_id: Mapped[UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid4
    )
    adjustment_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee_adjustment.adjustment_id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_period_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("payroll_period.payroll_period_id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_entry_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("payroll_entry.payroll_entry_id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    balance_before: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    balance_after: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint(
            "adjustment_id", "payroll_period_id", name="adjustment_application_period_unique"
        ),
    )

    # Relationships
    adjustment: Mapped[EmployeeAdjustment] = relationship(back_populates="applications")
