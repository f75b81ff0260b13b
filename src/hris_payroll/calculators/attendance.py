"""Attendance aggregation over a cutoff window."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from uuid import UUID

from hris_payroll.calculators.types import (
    AttendanceRecord,
    AttendanceSummary,
    DtrStatus,
    HolidayInfo,
    HolidayType,
    HolidayWork,
    OvertimeBreakdown,
    PeriodDescriptor,
)


class AttendanceAggregator:
    """Folds daily time records into period totals.

    Records outside the cutoff window are ignored. Holidays apply when
    national or scoped to the employee's work location; an employee with no
    work location only observes national holidays.
    """

    WORKED_STATUSES = frozenset({DtrStatus.PRESENT, DtrStatus.HOLIDAY})

    def aggregate(
        self,
        period: PeriodDescriptor,
        records: Iterable[AttendanceRecord],
        holidays: Iterable[HolidayInfo] = (),
        approved_overtime: Mapping[UUID, int] | None = None,
        work_location_id: UUID | None = None,
    ) -> AttendanceSummary:
        approved_overtime = approved_overtime or {}
        in_window = self._records_in_window(period, records)
        holidays_by_date = self.holidays_by_date(period, holidays, work_location_id)

        summary = AttendanceSummary()
        for record in in_window:
            if record.status in self.WORKED_STATUSES:
                summary.days_worked += 1
            elif record.status == DtrStatus.ABSENT:
                summary.absent_days += 1

            summary.total_regular_minutes += record.total_work_minutes
            summary.total_late_minutes += record.late_minutes
            summary.total_undertime_minutes += record.undertime_minutes
            summary.total_night_diff_minutes += record.night_diff_minutes
            summary.total_overtime_minutes += self.approved_overtime_minutes(
                record, approved_overtime
            )

            holiday = holidays_by_date.get(record.work_date)
            if holiday is not None and record.status == DtrStatus.HOLIDAY:
                summary.holiday_records.append(HolidayWork(record=record, holiday=holiday))

        return summary

    def overtime_breakdown(
        self,
        period: PeriodDescriptor,
        records: Iterable[AttendanceRecord],
        holidays: Iterable[HolidayInfo] = (),
        approved_overtime: Mapping[UUID, int] | None = None,
        work_location_id: UUID | None = None,
    ) -> OvertimeBreakdown:
        """Approved overtime minutes classified by the day they were worked."""
        approved_overtime = approved_overtime or {}
        holidays_by_date = self.holidays_by_date(period, holidays, work_location_id)

        breakdown = OvertimeBreakdown()
        for record in self._records_in_window(period, records):
            minutes = self.approved_overtime_minutes(record, approved_overtime)
            if minutes <= 0:
                continue

            holiday = holidays_by_date.get(record.work_date)
            if holiday is not None:
                if holiday.holiday_type == HolidayType.DOUBLE:
                    breakdown.double_holiday += minutes
                elif holiday.holiday_type == HolidayType.REGULAR:
                    breakdown.regular_holiday += minutes
                else:
                    breakdown.special_holiday += minutes
            elif record.status == DtrStatus.REST_DAY:
                breakdown.rest_day += minutes
            else:
                breakdown.regular += minutes

        return breakdown

    @staticmethod
    def approved_overtime_minutes(
        record: AttendanceRecord, approved_overtime: Mapping[UUID, int]
    ) -> int:
        """Overtime counted for a record, capped at the approved request minutes."""
        if not record.overtime_approved or record.overtime_request_id is None:
            return 0
        approved = approved_overtime.get(record.overtime_request_id, 0)
        return max(0, min(record.overtime_minutes, approved))

    @staticmethod
    def applicable_holidays(
        holidays: Iterable[HolidayInfo], work_location_id: UUID | None
    ) -> list[HolidayInfo]:
        if work_location_id is None:
            return [h for h in holidays if h.is_national]
        return [
            h
            for h in holidays
            if h.is_national or h.work_location_id == work_location_id
        ]

    def holidays_by_date(
        self,
        period: PeriodDescriptor,
        holidays: Iterable[HolidayInfo],
        work_location_id: UUID | None,
    ) -> dict[date, HolidayInfo]:
        """Applicable holidays in the window keyed by date; first match wins."""
        by_date: dict[date, HolidayInfo] = {}
        for holiday in self.applicable_holidays(holidays, work_location_id):
            if period.contains(holiday.holiday_date):
                by_date.setdefault(holiday.holiday_date, holiday)
        return by_date

    @staticmethod
    def _records_in_window(
        period: PeriodDescriptor, records: Iterable[AttendanceRecord]
    ) -> Sequence[AttendanceRecord]:
        return sorted(
            (r for r in records if period.contains(r.work_date)),
            key=lambda r: r.work_date,
        )
