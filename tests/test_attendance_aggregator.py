"""Unit tests for AttendanceAggregator."""

from datetime import date
from uuid import uuid4

import pytest

from hris_payroll.calculators.attendance import AttendanceAggregator
from hris_payroll.calculators.types import (
    AttendanceRecord,
    CycleType,
    DtrStatus,
    HolidayInfo,
    HolidayType,
    PeriodDescriptor,
)


@pytest.fixture
def aggregator() -> AttendanceAggregator:
    return AttendanceAggregator()


class TestPeriodDescriptor:
    """Test period window validation and position helpers."""

    def test_start_after_end_rejected(self):
        """A cutoff window that ends before it starts is invalid."""
        with pytest.raises(ValueError):
            PeriodDescriptor(
                period_id=uuid4(),
                cutoff_start=date(2026, 1, 15),
                cutoff_end=date(2026, 1, 1),
                pay_date=date(2026, 1, 20),
                period_number=1,
                cycle_type=CycleType.SEMI_MONTHLY,
            )

    def test_cutoff_position(self, first_cutoff, second_cutoff, monthly_period):
        """Monthly items fall on the second cutoff or on non-semi-monthly cycles."""
        assert first_cutoff.is_first_cutoff
        assert not first_cutoff.deducts_monthly_items
        assert second_cutoff.is_second_cutoff
        assert second_cutoff.deducts_monthly_items
        assert monthly_period.deducts_monthly_items
        assert monthly_period.tax_pay_period == "monthly"
        assert second_cutoff.tax_pay_period == "semi_monthly"


class TestAggregate:
    """Test attendance totals within a cutoff window."""

    def test_counts_only_records_in_window(self, aggregator, second_cutoff):
        """Records outside the cutoff window are ignored."""
        records = [
            AttendanceRecord(date(2026, 1, 15), DtrStatus.PRESENT, total_work_minutes=480),
            AttendanceRecord(date(2026, 1, 16), DtrStatus.PRESENT, total_work_minutes=480),
            AttendanceRecord(date(2026, 2, 1), DtrStatus.PRESENT, total_work_minutes=480),
        ]

        summary = aggregator.aggregate(second_cutoff, records)

        assert summary.days_worked == 1
        assert summary.total_regular_minutes == 480

    def test_status_counts_and_minute_sums(self, aggregator, second_cutoff):
        """Present and holiday count as worked; absent is counted separately."""
        records = [
            AttendanceRecord(date(2026, 1, 19), DtrStatus.PRESENT, 450, late_minutes=30),
            AttendanceRecord(date(2026, 1, 20), DtrStatus.PRESENT, 460, undertime_minutes=20),
            AttendanceRecord(date(2026, 1, 21), DtrStatus.ABSENT),
            AttendanceRecord(date(2026, 1, 22), DtrStatus.HOLIDAY, 480, night_diff_minutes=60),
            AttendanceRecord(date(2026, 1, 24), DtrStatus.REST_DAY),
        ]

        summary = aggregator.aggregate(second_cutoff, records)

        assert summary.days_worked == 3
        assert summary.absent_days == 1
        assert summary.total_regular_minutes == 1390
        assert summary.total_late_minutes == 30
        assert summary.total_undertime_minutes == 20
        assert summary.total_night_diff_minutes == 60

    def test_overtime_capped_by_approved_request(self, aggregator, second_cutoff):
        """Overtime counts only when approved, up to the request's expected minutes."""
        approved = uuid4()
        records = [
            AttendanceRecord(
                date(2026, 1, 19), DtrStatus.PRESENT, 480,
                overtime_minutes=240, overtime_approved=True, overtime_request_id=approved,
            ),
            AttendanceRecord(
                date(2026, 1, 20), DtrStatus.PRESENT, 480,
                overtime_minutes=60, overtime_approved=False, overtime_request_id=approved,
            ),
            AttendanceRecord(
                date(2026, 1, 21), DtrStatus.PRESENT, 480,
                overtime_minutes=60, overtime_approved=True,
            ),
        ]

        summary = aggregator.aggregate(second_cutoff, records, approved_overtime={approved: 180})

        assert summary.total_overtime_minutes == 180

    def test_unapproved_request_counts_zero(self, aggregator, second_cutoff):
        """A linked request missing from the approved map contributes nothing."""
        record = AttendanceRecord(
            date(2026, 1, 19), DtrStatus.PRESENT, 480,
            overtime_minutes=120, overtime_approved=True, overtime_request_id=uuid4(),
        )

        summary = aggregator.aggregate(second_cutoff, [record], approved_overtime={})

        assert summary.total_overtime_minutes == 0


class TestHolidays:
    """Test holiday matching and scoping."""

    def test_holiday_record_requires_holiday_status(self, aggregator, second_cutoff):
        """Only records with status 'holiday' on a holiday date count as holiday work."""
        holiday = HolidayInfo(date(2026, 1, 22), HolidayType.REGULAR, "Test Day")
        records = [
            AttendanceRecord(date(2026, 1, 22), DtrStatus.HOLIDAY, 480),
            AttendanceRecord(date(2026, 1, 23), DtrStatus.HOLIDAY, 480),
        ]

        summary = aggregator.aggregate(second_cutoff, records, [holiday])

        assert summary.holiday_days == 1
        assert summary.holiday_records[0].holiday is holiday

    def test_present_on_holiday_is_not_holiday_work(self, aggregator, second_cutoff):
        """A present record on a holiday date is ordinary attendance."""
        holiday = HolidayInfo(date(2026, 1, 22), HolidayType.REGULAR)
        records = [AttendanceRecord(date(2026, 1, 22), DtrStatus.PRESENT, 480)]

        summary = aggregator.aggregate(second_cutoff, records, [holiday])

        assert summary.holiday_days == 0
        assert summary.days_worked == 1

    def test_location_holidays_need_matching_location(self, aggregator, second_cutoff):
        """Location-scoped holidays apply only to employees at that location."""
        site = uuid4()
        local = HolidayInfo(
            date(2026, 1, 22), HolidayType.SPECIAL_NON_WORKING, is_national=False, work_location_id=site
        )
        records = [AttendanceRecord(date(2026, 1, 22), DtrStatus.HOLIDAY, 480)]

        assert aggregator.aggregate(second_cutoff, records, [local], work_location_id=site).holiday_days == 1
        assert aggregator.aggregate(second_cutoff, records, [local], work_location_id=uuid4()).holiday_days == 0
        assert aggregator.aggregate(second_cutoff, records, [local]).holiday_days == 0

    def test_first_holiday_per_date_wins(self, aggregator, second_cutoff):
        """Two holidays on one date resolve to the first listed."""
        first = HolidayInfo(date(2026, 1, 22), HolidayType.REGULAR, "First")
        second = HolidayInfo(date(2026, 1, 22), HolidayType.SPECIAL_WORKING, "Second")

        by_date = aggregator.holidays_by_date(second_cutoff, [first, second], None)

        assert by_date[date(2026, 1, 22)] is first


class TestOvertimeBreakdown:
    """Test overtime classification by day type."""

    def test_buckets(self, aggregator, second_cutoff):
        """Approved overtime is bucketed by holiday type, then rest day, then regular."""
        request = uuid4()
        holidays = [
            HolidayInfo(date(2026, 1, 22), HolidayType.REGULAR),
            HolidayInfo(date(2026, 1, 23), HolidayType.SPECIAL_NON_WORKING),
            HolidayInfo(date(2026, 1, 26), HolidayType.DOUBLE),
        ]

        def worked(day: int, status: DtrStatus, minutes: int) -> AttendanceRecord:
            return AttendanceRecord(
                date(2026, 1, day), status, 480,
                overtime_minutes=minutes, overtime_approved=True, overtime_request_id=request,
            )

        records = [
            worked(19, DtrStatus.PRESENT, 60),
            worked(22, DtrStatus.HOLIDAY, 30),
            worked(23, DtrStatus.HOLIDAY, 45),
            worked(24, DtrStatus.REST_DAY, 90),
            worked(26, DtrStatus.REST_DAY, 15),
        ]

        breakdown = aggregator.overtime_breakdown(
            second_cutoff, records, holidays, approved_overtime={request: 600}
        )

        assert breakdown.regular == 60
        assert breakdown.regular_holiday == 30
        assert breakdown.special_holiday == 45
        assert breakdown.rest_day == 90
        assert breakdown.double_holiday == 15
        assert breakdown.total == 240
