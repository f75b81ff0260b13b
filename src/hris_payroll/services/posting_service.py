"""Posts adjustment applications and loan payments for a persisted entry."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from hris_payroll.calculators.adjustments import AdjustmentResolver
from hris_payroll.calculators.loans import LoanAmortizer
from hris_payroll.calculators.types import PeriodDescriptor
from hris_payroll.models import LoanPayment, PayrollDeduction, PayrollEarning, PayrollEntry
from hris_payroll.services.repository import PayrollRepository

logger = logging.getLogger(__name__)


class StaleBalanceError(Exception):
    """Raised when an adjustment or loan balance changed under a posting."""

    def __init__(self, entry_id: UUID, detail: str):
        self.entry_id = entry_id
        self.detail = detail
        super().__init__(f"Balance changed while posting entry {entry_id}: {detail}")


@dataclass
class PostingResult:
    """What a posting wrote."""

    applications: list[UUID] = field(default_factory=list)
    payments: list[UUID] = field(default_factory=list)
    relinked_payments: int = 0


class PostingService:
    """Records the balance side effects of a persisted payroll entry.

    Runs inside the entry swap transaction once the new lines are flushed,
    never during preview. Only adjustments and loans that appear as lines on
    the entry are posted; those already posted for the period are left
    alone, except that a loan payment is re-pointed at the entry's new
    deduction line.
    """

    def __init__(
        self,
        session: AsyncSession,
        adjustment_resolver: AdjustmentResolver,
        loan_amortizer: LoanAmortizer,
    ):
        self.session = session
        self.repository = PayrollRepository(session)
        self.adjustment_resolver = adjustment_resolver
        self.loan_amortizer = loan_amortizer

    async def post_entry(
        self,
        entry: PayrollEntry,
        period: PeriodDescriptor,
        posted_at: datetime,
    ) -> PostingResult:
        """Post applications and payments for ``entry``.

        Raises:
            StaleBalanceError: If a concurrent writer changed an adjustment or loan
        """
        result = PostingResult()
        entry_id = entry.payroll_entry_id

        adjustment_ids = await self._line_adjustment_ids(entry_id)
        loan_lines = await self._loan_deduction_lines(entry_id)

        try:
            await self._post_adjustments(entry_id, adjustment_ids, period, posted_at, result)
            await self._post_loans(loan_lines, period, posted_at, result)
            await self.session.flush()
        except StaleDataError as exc:
            raise StaleBalanceError(entry_id, str(exc)) from exc

        if result.applications or result.payments:
            logger.info(
                "Posted entry %s: %d adjustment application(s), %d loan payment(s)",
                entry_id,
                len(result.applications),
                len(result.payments),
            )
        return result

    async def _post_adjustments(
        self,
        entry_id: UUID,
        adjustment_ids: set[UUID],
        period: PeriodDescriptor,
        posted_at: datetime,
        result: PostingResult,
    ) -> None:
        if not adjustment_ids:
            return
        rows = await self.repository.adjustment_rows(adjustment_ids=adjustment_ids)
        history = await self.repository.applications_by_adjustment(adjustment_ids)
        for row in rows:
            snapshot = self.repository.adjustment_snapshot(row, history.get(row.adjustment_id, {}))
            plan = self.adjustment_resolver.plan_application(snapshot, period)
            if plan is None:
                continue
            application = row.record_application(plan, entry_id, posted_at)
            self.session.add(application)
            result.applications.append(row.adjustment_id)

    async def _post_loans(
        self,
        loan_lines: dict[UUID, UUID],
        period: PeriodDescriptor,
        posted_at: datetime,
        result: PostingResult,
    ) -> None:
        if not loan_lines:
            return

        existing = await self.session.execute(
            select(LoanPayment).where(
                LoanPayment.loan_id.in_(list(loan_lines)),
                LoanPayment.payroll_period_id == period.period_id,
            )
        )
        for payment in existing.scalars().all():
            deduction_id = loan_lines[payment.loan_id]
            if payment.payroll_deduction_id != deduction_id:
                payment.payroll_deduction_id = deduction_id
                result.relinked_payments += 1

        rows = await self.repository.loan_rows(loan_ids=loan_lines)
        history = await self.repository.payments_by_loan(loan_lines)
        for row in rows:
            snapshot = self.repository.loan_snapshot(row, history.get(row.loan_id, []))
            plan = self.loan_amortizer.plan_payment(snapshot, period)
            if plan is None:
                continue
            payment = row.record_payment(plan, loan_lines[row.loan_id], posted_at)
            self.session.add(payment)
            result.payments.append(row.loan_id)

    async def _line_adjustment_ids(self, entry_id: UUID) -> set[UUID]:
        earnings = await self.session.execute(
            select(PayrollEarning.adjustment_id).where(
                PayrollEarning.payroll_entry_id == entry_id,
                PayrollEarning.adjustment_id.is_not(None),
            )
        )
        deductions = await self.session.execute(
            select(PayrollDeduction.adjustment_id).where(
                PayrollDeduction.payroll_entry_id == entry_id,
                PayrollDeduction.adjustment_id.is_not(None),
            )
        )
        return set(earnings.scalars().all()) | set(deductions.scalars().all())

    async def _loan_deduction_lines(self, entry_id: UUID) -> dict[UUID, UUID]:
        """Map loan id to the entry's deduction line id."""
        result = await self.session.execute(
            select(PayrollDeduction.loan_id, PayrollDeduction.payroll_deduction_id).where(
                PayrollDeduction.payroll_entry_id == entry_id,
                PayrollDeduction.loan_id.is_not(None),
            )
        )
        return {loan_id: deduction_id for loan_id, deduction_id in result.all()}
