"""Employee loan models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
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
    from hris_payroll.calculators.loans import PaymentPlan


class EmployeeLoan(Base, TimestampMixin):
    """Government or company loan amortized through payroll."""

    __tablename__ = "employee_loan"

    loan_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    loan_type: Mapped[str] = mapped_column(String, nullable=False)
    loan_code: Mapped[str] = mapped_column(String, nullable=False)
    reference_number: Mapped[str] = mapped_column(String, nullable=False)
    principal_amount: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    monthly_deduction: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    remaining_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        CheckConstraint("monthly_deduction >= 0", name="employee_loan_monthly_deduction_check"),
        CheckConstraint("remaining_balance >= 0", name="employee_loan_remaining_balance_check"),
        CheckConstraint(
            "status IN ('active', 'on_hold', 'completed', 'cancelled')",
            name="employee_loan_status_check",
        ),
    )

    # Relationships
    payments: Mapped[list[LoanPayment]] = relationship(
        back_populates="loan",
        cascade="all, delete-orphan",
    )

    def record_payment(
        self,
        plan: PaymentPlan,
        payroll_deduction_id: UUID | None,
        paid_at: datetime,
    ) -> LoanPayment:
        """Record a payroll installment and complete the loan at zero balance."""
        payment = LoanPayment(
            loan_id=self.loan_id,
            payroll_period_id=plan.period_id,
            payroll_deduction_id=payroll_deduction_id,
            amount=plan.amount,
            balance_before=plan.balance_before,
            balance_after=plan.balance_after,
            payment_date=paid_at.date(),
            payment_source="payroll",
        )
        self.total_paid = plan.total_paid_after
        self.remaining_balance = plan.balance_after
        if plan.completes:
            self.status = "completed"
            self.completed_at = paid_at
        return payment


class LoanPayment(Base, TimestampMixin):
    """One installment paid against a loan."""

    __tablename__ = "loan_payment"

    loan_payment_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    loan_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee_loan.loan_id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_period_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("payroll_period.payroll_period_id", ondelete="SET NULL"),
        nullable=True,
    )
    payroll_deduction_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("payroll_deduction.payroll_deduction_id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_source: Mapped[str] = mapped_column(String, nullable=False, default="payroll")

    __table_args__ = (
        UniqueConstraint("loan_id", "payroll_period_id", name="loan_payment_period_unique"),
        CheckConstraint(
            "payment_source IN ('payroll', 'manual', 'adjustment')",
            name="loan_payment_source_check",
        ),
    )

    # Relationships
    loan: Mapped[EmployeeLoan] = relationship(back_populates="payments")
