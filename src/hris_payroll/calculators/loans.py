"""Loan amortization deductions."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from hris_payroll.calculators.types import (
    DeductionLine,
    DeductionType,
    LoanSnapshot,
    LoanStatus,
    PeriodDescriptor,
)


@dataclass(frozen=True)
class PaymentPlan:
    """Balance changes from deducting a loan installment in a period."""

    loan_id: UUID
    period_id: UUID
    amount: Decimal
    balance_before: Decimal
    balance_after: Decimal
    total_paid_after: Decimal
    completes: bool


class LoanAmortizer:
    """Computes loan installments due in a period.

    Installments fall on the same periods as monthly statutory contributions:
    the second cutoff of semi-monthly cycles, every period otherwise.
    """

    def deductible(self, loans: Iterable[LoanSnapshot], period: PeriodDescriptor) -> list[LoanSnapshot]:
        """Loans due this period, oldest first."""
        due = [
            loan
            for loan in loans
            if period.period_id in loan.payments or self.is_deductible(loan)
        ]
        return sorted(due, key=lambda loan: (loan.start_date, str(loan.loan_id)))

    @staticmethod
    def is_deductible(loan: LoanSnapshot) -> bool:
        return loan.status == LoanStatus.ACTIVE and loan.remaining_balance > 0

    @staticmethod
    def amount_due(loan: LoanSnapshot, period: PeriodDescriptor) -> Decimal:
        recorded = loan.payments.get(period.period_id)
        if recorded is not None:
            return recorded
        return min(loan.monthly_deduction, loan.remaining_balance)

    def deduction_lines(
        self, loans: Iterable[LoanSnapshot], period: PeriodDescriptor
    ) -> list[DeductionLine]:
        if not period.deducts_monthly_items:
            return []

        lines: list[DeductionLine] = []
        for loan in self.deductible(loans, period):
            amount = self.amount_due(loan, period)
            if amount <= 0:
                continue
            lines.append(
                DeductionLine(
                    deduction_type=DeductionType.LOAN,
                    code=loan.loan_code,
                    description=f"{loan.loan_type.label} ({loan.reference_number})",
                    basis_amount=loan.total_amount,
                    rate=Decimal("0"),
                    amount=amount,
                    loan_id=loan.loan_id,
                )
            )
        return lines

    def plan_payment(self, loan: LoanSnapshot, period: PeriodDescriptor) -> PaymentPlan | None:
        """Describe the payment to record alongside the entry."""
        if period.period_id in loan.payments:
            return None
        if not period.deducts_monthly_items or not self.is_deductible(loan):
            return None
        amount = self.amount_due(loan, period)
        if amount <= 0:
            return None

        balance_after = max(Decimal("0"), loan.remaining_balance - amount)
        return PaymentPlan(
            loan_id=loan.loan_id,
            period_id=period.period_id,
            amount=amount,
            balance_before=loan.remaining_balance,
            balance_after=balance_after,
            total_paid_after=loan.total_paid + amount,
            completes=balance_after <= 0,
        )

    def summary_by_category(
        self, loans: Iterable[LoanSnapshot], period: PeriodDescriptor
    ) -> dict[str, Decimal]:
        """Installments due this period grouped as SSS, Pag-IBIG and Company."""
        totals = {"SSS": Decimal("0"), "Pag-IBIG": Decimal("0"), "Company": Decimal("0")}
        if not period.deducts_monthly_items:
            return totals
        for loan in self.deductible(loans, period):
            totals[loan.loan_type.category] += self.amount_due(loan, period)
        return totals
