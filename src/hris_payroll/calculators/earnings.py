"""Gross pay composition."""

from __future__ import annotations

import math
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from hris_payroll.calculators.adjustments import AdjustmentResolver
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.rate_calculator import RateCalculator
from hris_payroll.calculators.types import (
    AdjustmentSnapshot,
    AttendanceSummary,
    CompensationSnapshot,
    EarningsResult,
    EarningType,
    HolidayType,
    PayType,
    PeriodDescriptor,
)


class EarningsComposer:
    """Builds gross pay and its earning lines.

    Line order: BASIC, ABSENT, TARDINESS, OT_REG, ND, HOLIDAY_<TYPE>
    (in holiday type order), allowances, bonuses.

    Absence and tardiness are shown as negative audit lines after the BASIC
    line, so the earning lines always sum to gross pay. Deductions from
    basic pay are capped at the basic amount, keeping basic pay at or
    above zero.
    """

    SALARIED_PAY_TYPES = frozenset({PayType.MONTHLY, PayType.SEMI_MONTHLY})

    def __init__(self, adjustment_resolver: AdjustmentResolver | None = None):
        self.adjustment_resolver = adjustment_resolver or AdjustmentResolver()

    def compose(
        self,
        compensation: CompensationSnapshot | None,
        period: PeriodDescriptor,
        summary: AttendanceSummary,
        adjustments: Sequence[AdjustmentSnapshot] = (),
    ) -> EarningsResult:
        if compensation is None:
            return EarningsResult.empty()

        result = EarningsResult()
        daily_rate = RateCalculator.daily_rate(compensation.basic_pay, compensation.pay_type)
        hourly_rate = RateCalculator.hourly_rate(daily_rate)

        self._add_basic_pay(result, compensation, period, summary, daily_rate)
        self._add_overtime(result, summary, hourly_rate)
        self._add_night_differential(result, summary, hourly_rate)
        self._add_holiday_pay(result, summary, daily_rate)

        for line in self.adjustment_resolver.earning_lines(adjustments, period):
            result.lines.append(line)
            if line.earning_type == EarningType.BONUS:
                result.bonuses_total += line.amount
            else:
                result.allowances_total += line.amount

        result.allowances_total = LineItemBuilder.round_to_cents(result.allowances_total)
        result.bonuses_total = LineItemBuilder.round_to_cents(result.bonuses_total)
        result.gross_pay = (
            result.basic_pay
            + result.overtime_pay
            + result.night_diff_pay
            + result.holiday_pay
            + result.allowances_total
            + result.bonuses_total
        )
        return result

    @staticmethod
    def period_basic_pay(
        compensation: CompensationSnapshot,
        period: PeriodDescriptor,
        days_worked: int,
        daily_rate: Decimal,
    ) -> Decimal:
        """Basic pay for the period before absence and tardiness."""
        pay_type = compensation.pay_type
        basic = compensation.basic_pay
        if pay_type == PayType.MONTHLY:
            return basic / 2 if period.is_semi_monthly else basic
        if pay_type == PayType.SEMI_MONTHLY:
            return basic
        if pay_type == PayType.DAILY:
            return daily_rate * Decimal(days_worked)
        if pay_type == PayType.WEEKLY:
            return basic * Decimal(math.ceil(days_worked / 5))
        raise KeyError(pay_type)

    def _add_basic_pay(
        self,
        result: EarningsResult,
        compensation: CompensationSnapshot,
        period: PeriodDescriptor,
        summary: AttendanceSummary,
        daily_rate: Decimal,
    ) -> None:
        pay_type = compensation.pay_type
        basic = LineItemBuilder.round_to_cents(
            self.period_basic_pay(compensation, period, summary.days_worked, daily_rate)
        )
        is_daily = pay_type == PayType.DAILY
        result.lines.append(
            LineItemBuilder.earning_line(
                earning_type=EarningType.BASIC_PAY,
                code="BASIC",
                description="Basic Pay",
                quantity=Decimal(summary.days_worked) if is_daily else Decimal("1"),
                quantity_unit="days" if is_daily else "period",
                rate=daily_rate if is_daily else basic,
                amount=basic,
            )
        )

        remaining = basic
        if summary.absent_days > 0 and pay_type in self.SALARIED_PAY_TYPES:
            absence = min(
                RateCalculator.absence_deduction(daily_rate, summary.absent_days), remaining
            )
            remaining -= absence
            result.absence_deduction = absence
            result.lines.append(
                LineItemBuilder.reduction_line(
                    code="ABSENT",
                    description="Absence Deduction",
                    quantity=Decimal(summary.absent_days),
                    quantity_unit="days",
                    rate=daily_rate,
                    amount=absence,
                )
            )

        tardy_minutes = summary.total_late_minutes + summary.total_undertime_minutes
        if tardy_minutes > 0:
            minute_rate = RateCalculator.minute_rate(daily_rate)
            tardiness = min(
                RateCalculator.tardiness_deduction(
                    minute_rate, summary.total_late_minutes, summary.total_undertime_minutes
                ),
                remaining,
            )
            remaining -= tardiness
            result.tardiness_deduction = tardiness
            result.lines.append(
                LineItemBuilder.reduction_line(
                    code="TARDINESS",
                    description="Tardiness/Undertime Deduction",
                    quantity=Decimal(tardy_minutes),
                    quantity_unit="minutes",
                    rate=minute_rate,
                    amount=tardiness,
                )
            )

        result.basic_pay = max(Decimal("0"), remaining)

    def _add_overtime(
        self, result: EarningsResult, summary: AttendanceSummary, hourly_rate: Decimal
    ) -> None:
        minutes = summary.total_overtime_minutes
        if minutes <= 0:
            return
        # Day-type premiums are reported by AttendanceAggregator.overtime_breakdown only.
        multiplier = RateCalculator.OVERTIME_REGULAR
        result.overtime_pay = RateCalculator.overtime_pay(minutes, hourly_rate, multiplier)
        result.lines.append(
            LineItemBuilder.earning_line(
                earning_type=EarningType.OVERTIME,
                code="OT_REG",
                description="Regular Overtime",
                quantity=self._hours(minutes),
                quantity_unit="hours",
                rate=hourly_rate,
                multiplier=multiplier,
                amount=result.overtime_pay,
            )
        )

    def _add_night_differential(
        self, result: EarningsResult, summary: AttendanceSummary, hourly_rate: Decimal
    ) -> None:
        minutes = summary.total_night_diff_minutes
        if minutes <= 0:
            return
        result.night_diff_pay = RateCalculator.night_diff_pay(minutes, hourly_rate)
        result.lines.append(
            LineItemBuilder.earning_line(
                earning_type=EarningType.NIGHT_DIFFERENTIAL,
                code="ND",
                description="Night Differential",
                quantity=self._hours(minutes),
                quantity_unit="hours",
                rate=(hourly_rate * RateCalculator.NIGHT_DIFF_RATE).quantize(
                    RateCalculator.RATE_PRECISION, rounding=ROUND_HALF_UP
                ),
                amount=result.night_diff_pay,
            )
        )

    def _add_holiday_pay(
        self, result: EarningsResult, summary: AttendanceSummary, daily_rate: Decimal
    ) -> None:
        days_by_type: dict[HolidayType, int] = {}
        for work in summary.holiday_records:
            holiday_type = work.holiday.holiday_type
            days_by_type[holiday_type] = days_by_type.get(holiday_type, 0) + 1

        total = Decimal("0")
        for holiday_type in HolidayType:
            days = days_by_type.get(holiday_type, 0)
            if days == 0:
                continue
            amount = RateCalculator.holiday_pay(daily_rate, holiday_type, days)
            total += amount
            result.lines.append(
                LineItemBuilder.earning_line(
                    earning_type=EarningType.HOLIDAY_PAY,
                    code=f"HOLIDAY_{holiday_type.name}",
                    description=f"{holiday_type.label} Pay",
                    quantity=Decimal(days),
                    quantity_unit="days",
                    rate=daily_rate,
                    multiplier=RateCalculator.holiday_multiplier(holiday_type),
                    amount=amount,
                )
            )
        result.holiday_pay = total

    @staticmethod
    def _hours(minutes: int) -> Decimal:
        hours = Decimal(minutes) / RateCalculator.MINUTES_PER_HOUR
        return hours.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
