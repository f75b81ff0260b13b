"""Adjustment applicability, amounts and line items."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from hris_payroll.calculators.types import (
    AdjustmentCategory,
    AdjustmentFrequency,
    AdjustmentSnapshot,
    AdjustmentStatus,
    AdjustmentType,
    DeductionLine,
    DeductionType,
    EarningLine,
    EarningType,
    PeriodDescriptor,
    RecurringInterval,
)


@dataclass(frozen=True)
class AdjustmentTypeInfo:
    """Static classification of an adjustment sub-type."""

    category: AdjustmentCategory
    label: str
    supports_balance_tracking: bool = False

    @property
    def is_earning(self) -> bool:
        return self.category in (AdjustmentCategory.ALLOWANCE, AdjustmentCategory.BONUS)

    @property
    def is_deduction(self) -> bool:
        return not self.is_earning

    @property
    def earning_type(self) -> EarningType | None:
        if self.category == AdjustmentCategory.ALLOWANCE:
            return EarningType.ALLOWANCE
        if self.category == AdjustmentCategory.BONUS:
            return EarningType.BONUS
        return None

    @property
    def deduction_type(self) -> DeductionType | None:
        if self.category == AdjustmentCategory.LOAN:
            return DeductionType.LOAN
        if self.category == AdjustmentCategory.DEDUCTION:
            return DeductionType.OTHER
        return None


def _info(adjustment_type: AdjustmentType, label: str) -> AdjustmentTypeInfo:
    category = AdjustmentCategory(adjustment_type.value.split("_", 1)[0])
    return AdjustmentTypeInfo(
        category=category,
        label=label,
        supports_balance_tracking=category == AdjustmentCategory.LOAN,
    )


ADJUSTMENT_TYPES: dict[AdjustmentType, AdjustmentTypeInfo] = {
    t: _info(t, label)
    for t, label in (
        (AdjustmentType.ALLOWANCE_TRANSPORTATION, "Transportation Allowance"),
        (AdjustmentType.ALLOWANCE_MEAL, "Meal Allowance"),
        (AdjustmentType.ALLOWANCE_PHONE, "Phone Allowance"),
        (AdjustmentType.ALLOWANCE_HOUSING, "Housing Allowance"),
        (AdjustmentType.ALLOWANCE_CLOTHING, "Clothing Allowance"),
        (AdjustmentType.ALLOWANCE_OTHER, "Other Allowance"),
        (AdjustmentType.BONUS_PERFORMANCE, "Performance Bonus"),
        (AdjustmentType.BONUS_HOLIDAY, "Holiday Bonus"),
        (AdjustmentType.BONUS_ATTENDANCE, "Attendance Bonus"),
        (AdjustmentType.BONUS_INCENTIVE, "Incentive"),
        (AdjustmentType.BONUS_OTHER, "Other Bonus"),
        (AdjustmentType.DEDUCTION_UNPAID_LEAVE, "Unpaid Leave"),
        (AdjustmentType.DEDUCTION_TARDINESS, "Tardiness Deduction"),
        (AdjustmentType.DEDUCTION_ABSENCE, "Absence Deduction"),
        (AdjustmentType.DEDUCTION_OTHER, "Other Deduction"),
        (AdjustmentType.LOAN_SALARY_ADVANCE, "Salary Advance"),
        (AdjustmentType.LOAN_COMPANY_LOAN, "Company Loan"),
        (AdjustmentType.LOAN_EMERGENCY_LOAN, "Emergency Loan"),
        (AdjustmentType.LOAN_OTHER, "Other Loan"),
    )
}


@dataclass(frozen=True)
class ApplicationPlan:
    """Balance and counter changes from applying an adjustment to a period."""

    adjustment_id: UUID
    period_id: UUID
    amount: Decimal
    balance_before: Decimal | None
    balance_after: Decimal | None
    total_applied_after: Decimal
    remaining_occurrences_after: int | None
    completes: bool


class AdjustmentResolver:
    """Decides which adjustments fall due in a period and for how much.

    An adjustment already applied to the period is reproduced with the
    recorded amount, whatever its current status or balance, and is never
    planned for application again.
    """

    @staticmethod
    def type_info(adjustment: AdjustmentSnapshot) -> AdjustmentTypeInfo:
        return ADJUSTMENT_TYPES[adjustment.adjustment_type]

    def is_applicable(self, adjustment: AdjustmentSnapshot, period: PeriodDescriptor) -> bool:
        if period.period_id in adjustment.applications:
            return True
        if adjustment.status != AdjustmentStatus.ACTIVE:
            return False
        if adjustment.has_balance_tracking and (
            adjustment.remaining_balance is None or adjustment.remaining_balance <= 0
        ):
            return False

        if adjustment.frequency == AdjustmentFrequency.ONE_TIME:
            return adjustment.target_period_id == period.period_id

        if adjustment.recurring_start_date is None:
            return False
        if adjustment.recurring_start_date > period.cutoff_end:
            return False
        if (
            adjustment.recurring_end_date is not None
            and adjustment.recurring_end_date < period.cutoff_start
        ):
            return False
        if adjustment.remaining_occurrences is not None and adjustment.remaining_occurrences <= 0:
            return False
        return self.interval_matches(adjustment.recurring_interval, period)

    @staticmethod
    def interval_matches(interval: RecurringInterval | None, period: PeriodDescriptor) -> bool:
        """Whether a recurring interval falls due in the period.

        Cutoff-specific intervals only discriminate on semi-monthly cycles;
        every other cycle has a single period per month.
        """
        if interval is None or interval == RecurringInterval.EVERY_PERIOD:
            return True
        if interval == RecurringInterval.MONTHLY:
            return period.deducts_monthly_items
        if not period.is_semi_monthly:
            return True
        if interval == RecurringInterval.FIRST_CUTOFF:
            return period.is_first_cutoff
        return period.is_second_cutoff

    def applicable(
        self,
        adjustments: Iterable[AdjustmentSnapshot],
        period: PeriodDescriptor,
        categories: Iterable[AdjustmentCategory] | None = None,
    ) -> list[AdjustmentSnapshot]:
        wanted = set(categories) if categories is not None else None
        return [
            adj
            for adj in adjustments
            if (wanted is None or self.type_info(adj).category in wanted)
            and self.is_applicable(adj, period)
        ]

    @staticmethod
    def amount_for_period(adjustment: AdjustmentSnapshot, period: PeriodDescriptor) -> Decimal:
        recorded = adjustment.applications.get(period.period_id)
        if recorded is not None:
            return recorded
        if adjustment.has_balance_tracking and adjustment.remaining_balance is not None:
            return min(adjustment.amount, adjustment.remaining_balance)
        return adjustment.amount

    def earning_lines(
        self, adjustments: Iterable[AdjustmentSnapshot], period: PeriodDescriptor
    ) -> list[EarningLine]:
        """Allowance and bonus lines, allowances first."""
        lines: list[EarningLine] = []
        for category in (AdjustmentCategory.ALLOWANCE, AdjustmentCategory.BONUS):
            for adj in self.applicable(adjustments, period, [category]):
                info = self.type_info(adj)
                amount = self.amount_for_period(adj, period)
                if amount <= 0:
                    continue
                lines.append(
                    EarningLine(
                        earning_type=info.earning_type or EarningType.ADJUSTMENT,
                        code=adj.adjustment_type.value.upper(),
                        description=adj.name or info.label,
                        quantity=Decimal("1"),
                        quantity_unit="adjustment",
                        rate=amount,
                        multiplier=Decimal("1.00"),
                        amount=amount,
                        is_taxable=adj.is_taxable,
                        adjustment_id=adj.adjustment_id,
                    )
                )
        return lines

    def deduction_lines(
        self, adjustments: Iterable[AdjustmentSnapshot], period: PeriodDescriptor
    ) -> list[DeductionLine]:
        categories = [AdjustmentCategory.DEDUCTION, AdjustmentCategory.LOAN]
        lines: list[DeductionLine] = []
        for adj in self.applicable(adjustments, period, categories):
            info = self.type_info(adj)
            amount = self.amount_for_period(adj, period)
            if amount <= 0:
                continue
            basis = adj.amount
            if adj.has_balance_tracking and adj.total_amount is not None:
                basis = adj.total_amount
            lines.append(
                DeductionLine(
                    deduction_type=info.deduction_type or DeductionType.OTHER,
                    code=adj.adjustment_type.value.upper(),
                    description=adj.name or info.label,
                    basis_amount=basis,
                    rate=Decimal("0"),
                    amount=amount,
                    adjustment_id=adj.adjustment_id,
                )
            )
        return lines

    def plan_application(
        self, adjustment: AdjustmentSnapshot, period: PeriodDescriptor
    ) -> ApplicationPlan | None:
        """Describe the application to record alongside the entry.

        Returns None when the adjustment was already applied to the period,
        is not due, or has nothing left to apply.
        """
        if period.period_id in adjustment.applications:
            return None
        if not self.is_applicable(adjustment, period):
            return None
        amount = self.amount_for_period(adjustment, period)
        if amount <= 0:
            return None

        balance_before: Decimal | None = None
        balance_after: Decimal | None = None
        completes = False
        if adjustment.has_balance_tracking and adjustment.remaining_balance is not None:
            balance_before = adjustment.remaining_balance
            balance_after = max(Decimal("0"), balance_before - amount)
            completes = balance_after <= 0

        occurrences_after = adjustment.remaining_occurrences
        if occurrences_after is not None:
            occurrences_after = max(0, occurrences_after - 1)
            completes = completes or occurrences_after <= 0

        return ApplicationPlan(
            adjustment_id=adjustment.adjustment_id,
            period_id=period.period_id,
            amount=amount,
            balance_before=balance_before,
            balance_after=balance_after,
            total_applied_after=adjustment.total_applied + amount,
            remaining_occurrences_after=occurrences_after,
            completes=completes,
        )

    def summary(
        self, adjustments: Iterable[AdjustmentSnapshot], period: PeriodDescriptor
    ) -> dict[str, Decimal]:
        """Due totals per category for a period."""
        totals = {c.value: Decimal("0") for c in AdjustmentCategory}
        for adj in self.applicable(adjustments, period):
            totals[self.type_info(adj).category.value] += self.amount_for_period(adj, period)
        return totals
