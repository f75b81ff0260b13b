"""Rate derivation and premium multipliers."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from hris_payroll.calculators.types import HolidayType, PayType


class RateCalculator:
    """Derives daily, hourly and per-minute rates from basic pay.

    Conventions:
    - 22 working days per month, 8 hours per day, 480 minutes per day
    - Daily and hourly rates carried at 4 decimals, minute rate at 6
    - Money results rounded ROUND_HALF_UP to 2 decimals
    """

    WORKING_DAYS_PER_MONTH = Decimal("22")
    WORKING_DAYS_PER_WEEK = Decimal("5")
    HOURS_PER_DAY = Decimal("8")
    MINUTES_PER_DAY = Decimal("480")
    MINUTES_PER_HOUR = Decimal("60")

    RATE_PRECISION = Decimal("0.0001")
    MINUTE_RATE_PRECISION = Decimal("0.000001")
    OUTPUT_PRECISION = Decimal("0.01")

    NIGHT_DIFF_RATE = Decimal("0.10")

    OVERTIME_REGULAR = Decimal("1.25")
    OVERTIME_REST_DAY = Decimal("1.30")
    OVERTIME_SPECIAL_HOLIDAY = Decimal("1.30")
    OVERTIME_REGULAR_HOLIDAY = Decimal("2.00")
    OVERTIME_DOUBLE_HOLIDAY = Decimal("3.90")

    HOLIDAY_SPECIAL = Decimal("1.30")
    HOLIDAY_REGULAR = Decimal("2.00")
    HOLIDAY_DOUBLE = Decimal("3.00")

    MONTHLY_FACTORS: dict[PayType, Decimal] = {
        PayType.MONTHLY: Decimal("1"),
        PayType.SEMI_MONTHLY: Decimal("2"),
        PayType.WEEKLY: Decimal("4.33"),
        PayType.DAILY: Decimal("22"),
    }

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        return amount.quantize(RateCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def daily_rate(basic_pay: Decimal, pay_type: PayType) -> Decimal:
        """Daily rate for a compensation profile.

        Raises KeyError for a pay type without a derivation rule.
        """
        divisors = {
            PayType.MONTHLY: (Decimal("1"), RateCalculator.WORKING_DAYS_PER_MONTH),
            PayType.SEMI_MONTHLY: (Decimal("2"), RateCalculator.WORKING_DAYS_PER_MONTH),
            PayType.WEEKLY: (Decimal("1"), RateCalculator.WORKING_DAYS_PER_WEEK),
            PayType.DAILY: (Decimal("1"), Decimal("1")),
        }
        factor, divisor = divisors[pay_type]
        return (basic_pay * factor / divisor).quantize(
            RateCalculator.RATE_PRECISION, rounding=ROUND_HALF_UP
        )

    @staticmethod
    def hourly_rate(daily_rate: Decimal) -> Decimal:
        return (daily_rate / RateCalculator.HOURS_PER_DAY).quantize(
            RateCalculator.RATE_PRECISION, rounding=ROUND_HALF_UP
        )

    @staticmethod
    def minute_rate(daily_rate: Decimal) -> Decimal:
        return (daily_rate / RateCalculator.MINUTES_PER_DAY).quantize(
            RateCalculator.MINUTE_RATE_PRECISION, rounding=ROUND_HALF_UP
        )

    @staticmethod
    def monthly_equivalent(basic_pay: Decimal, pay_type: PayType) -> Decimal:
        """Monthly salary used for contribution bracket lookups."""
        return RateCalculator.round_to_cents(
            basic_pay * RateCalculator.MONTHLY_FACTORS[pay_type]
        )

    @staticmethod
    def overtime_multiplier(
        is_rest_day: bool = False, holiday_type: HolidayType | None = None
    ) -> Decimal:
        """Overtime premium for a day type. A holiday outranks a rest day."""
        if holiday_type == HolidayType.DOUBLE:
            return RateCalculator.OVERTIME_DOUBLE_HOLIDAY
        if holiday_type == HolidayType.REGULAR:
            return RateCalculator.OVERTIME_REGULAR_HOLIDAY
        if holiday_type is not None and holiday_type.is_special:
            return RateCalculator.OVERTIME_SPECIAL_HOLIDAY
        if is_rest_day:
            return RateCalculator.OVERTIME_REST_DAY
        return RateCalculator.OVERTIME_REGULAR

    @staticmethod
    def holiday_multiplier(holiday_type: HolidayType) -> Decimal:
        if holiday_type == HolidayType.DOUBLE:
            return RateCalculator.HOLIDAY_DOUBLE
        if holiday_type == HolidayType.REGULAR:
            return RateCalculator.HOLIDAY_REGULAR
        return RateCalculator.HOLIDAY_SPECIAL

    @staticmethod
    def overtime_pay(minutes: int, hourly_rate: Decimal, multiplier: Decimal) -> Decimal:
        hours = Decimal(minutes) / RateCalculator.MINUTES_PER_HOUR
        return RateCalculator.round_to_cents(hours * hourly_rate * multiplier)

    @staticmethod
    def night_diff_pay(minutes: int, hourly_rate: Decimal) -> Decimal:
        hours = Decimal(minutes) / RateCalculator.MINUTES_PER_HOUR
        return RateCalculator.round_to_cents(
            hours * hourly_rate * RateCalculator.NIGHT_DIFF_RATE
        )

    @staticmethod
    def holiday_pay(daily_rate: Decimal, holiday_type: HolidayType, days: int) -> Decimal:
        multiplier = RateCalculator.holiday_multiplier(holiday_type)
        return RateCalculator.round_to_cents(daily_rate * multiplier * Decimal(days))

    @staticmethod
    def absence_deduction(daily_rate: Decimal, absent_days: int) -> Decimal:
        return RateCalculator.round_to_cents(daily_rate * Decimal(absent_days))

    @staticmethod
    def tardiness_deduction(
        minute_rate: Decimal, late_minutes: int, undertime_minutes: int
    ) -> Decimal:
        total_minutes = Decimal(late_minutes + undertime_minutes)
        return RateCalculator.round_to_cents(minute_rate * total_minutes)
