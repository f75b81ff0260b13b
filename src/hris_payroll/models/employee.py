"""Employee and compensation models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin


class Employee(Base, TimestampMixin):
    """Employee record."""

    __tablename__ = "employee"

    employee_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    employee_number: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    department_name: Mapped[str | None] = mapped_column(String, nullable=True)
    position_name: Mapped[str | None] = mapped_column(String, nullable=True)
    work_location_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'on_leave', 'suspended', 'resigned', 'terminated')",
            name="employee_status_check",
        ),
    )

    # Relationships
    compensation: Mapped[EmployeeCompensation | None] = relationship(
        back_populates="employee", uselist=False
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"


class EmployeeCompensation(Base, TimestampMixin):
    """Current compensation profile of an employee."""

    __tablename__ = "employee_compensation"

    compensation_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    basic_pay: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    pay_type: Mapped[str] = mapped_column(String, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="PHP")
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "pay_type IN ('monthly', 'semi_monthly', 'weekly', 'daily')",
            name="employee_compensation_pay_type_check",
        ),
        CheckConstraint("basic_pay >= 0", name="employee_compensation_basic_pay_check"),
    )

    # Relationships
    employee: Mapped[Employee] = relationship(back_populates="compensation")
