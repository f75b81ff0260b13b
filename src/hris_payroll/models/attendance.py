"""Attendance, holiday calendar and overtime request models."""

from __future__ import annotations

from datetime import date
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from hris_payroll.models.base import Base, TimestampMixin


class OvertimeRequest(Base, TimestampMixin):
    """Overtime pre-approval; expected minutes cap the overtime paid."""

    __tablename__ = "overtime_request"

    overtime_request_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    overtime_date: Mapped[date] = mapped_column(Date, nullable=False)
    expected_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="pending")

    __table_args__ = (
        CheckConstraint("expected_minutes >= 0", name="overtime_request_minutes_check"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'cancelled')",
            name="overtime_request_status_check",
        ),
    )


class DailyTimeRecord(Base, TimestampMixin):
    """One employee's attendance for one calendar day."""

    __tablename__ = "daily_time_record"

    daily_time_record_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)
    total_work_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    night_diff_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    overtime_request_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("overtime_request.overtime_request_id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="daily_time_record_employee_date_unique"),
        CheckConstraint(
            "status IN ('present', 'absent', 'holiday', 'rest_day', 'no_schedule')",
            name="daily_time_record_status_check",
        ),
    )


class Holiday(Base, TimestampMixin):
    """Calendar holiday, national or scoped to a work location."""

    __tablename__ = "holiday"

    holiday_id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    holiday_type: Mapped[str] = mapped_column(String, nullable=False)
    is_national: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    work_location_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "holiday_type IN ('regular', 'special_non_working', 'special_working', 'double')",
            name="holiday_type_check",
        ),
        CheckConstraint(
            "is_national OR work_location_id IS NOT NULL",
            name="holiday_scope_check",
        ),
    )
