"""Payroll service - orchestrates computation, persistence and posting."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from hris_payroll.calculators.engine import PayrollEngine
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.types import PayrollComputation
from hris_payroll.models import AuditEvent, Employee, PayrollEntry, PayrollPeriod
from hris_payroll.services.commit_service import CommitService
from hris_payroll.services.posting_service import PostingService
from hris_payroll.services.repository import PayrollRepository
from hris_payroll.services.state_machine import (
    PayrollEntryStateMachine,
    PayrollEntryStatus,
    RecomputeNotAllowedError,
)

logger = logging.getLogger(__name__)


class PeriodNotFoundError(Exception):
    """Raised when a payroll period does not exist."""

    def __init__(self, period_id: UUID):
        self.period_id = period_id
        super().__init__(f"Payroll period {period_id} not found")


class EmployeeNotFoundError(Exception):
    """Raised when an employee does not exist."""

    def __init__(self, employee_id: UUID):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} not found")


class EntryNotFoundError(Exception):
    """Raised when a payroll entry does not exist."""

    def __init__(self, entry_id: UUID):
        self.entry_id = entry_id
        super().__init__(f"Payroll entry {entry_id} not found")


class ComputeOutcome(str, Enum):
    """Result of computing one employee."""

    COMPUTED = "computed"
    SKIPPED_EXISTING = "skipped_existing"
    SKIPPED_NO_COMPENSATION = "skipped_no_compensation"
    SKIPPED_NOT_RECOMPUTABLE = "skipped_not_recomputable"
    FAILED = "failed"


@dataclass
class EmployeeComputeResult:
    """Outcome of one employee's computation."""

    employee_id: UUID
    outcome: ComputeOutcome
    entry_id: UUID | None = None
    computation: PayrollComputation | None = None
    error: str | None = None


@dataclass
class PeriodTotals:
    """Re-aggregated totals of a period's computed entries."""

    period_id: UUID
    employee_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    updated_at: datetime


@dataclass
class BatchSummary:
    """Counts from a period batch run."""

    period_id: UUID
    total: int = 0
    computed: int = 0
    skipped_existing: int = 0
    skipped_no_compensation: int = 0
    skipped_not_recomputable: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)
    totals: PeriodTotals | None = None

    def record(self, result: EmployeeComputeResult) -> None:
        self.total += 1
        if result.outcome == ComputeOutcome.COMPUTED:
            self.computed += 1
        elif result.outcome == ComputeOutcome.SKIPPED_EXISTING:
            self.skipped_existing += 1
        elif result.outcome == ComputeOutcome.SKIPPED_NO_COMPENSATION:
            self.skipped_no_compensation += 1
        elif result.outcome == ComputeOutcome.SKIPPED_NOT_RECOMPUTABLE:
            self.skipped_not_recomputable += 1
        else:
            self.failed += 1
            self.errors.append(f"{result.employee_id}: {result.error}")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PayrollService:
    """Service for computing and managing payroll entries.

    Operations:
    - preview: Run the engine for one employee without persisting anything
    - compute_for_employee: Compute, swap the entry and post balances in one transaction
    - compute_for_period: Batch over a period's active employees
    - recompute: Recompute an existing entry
    - transition_entry: Move an entry along draft → computed → reviewed → approved → paid
    - update_period_totals: Re-aggregate period totals from committed entries

    ``actor_id`` is passed to every writing operation and ``clock`` supplies
    every timestamp; nothing reads an ambient user or wall clock.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        engine: PayrollEngine,
        *,
        clock: Callable[[], datetime] | None = None,
        max_concurrency: int = 4,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.session_factory = session_factory
        self.engine = engine
        self.clock = clock or _utcnow
        self.max_concurrency = max_concurrency

    async def preview(self, period_id: UUID, employee_id: UUID) -> PayrollComputation:
        """Compute one employee for a period with no persistence of any kind."""
        async with self.session_factory() as session:
            repository = PayrollRepository(session)
            period = await self._require_period(repository, period_id)
            employee = await self._require_employee(repository, employee_id)
            inputs = await repository.load_inputs(period, employee)
        return self.engine.compute(inputs)

    async def compute_for_employee(
        self,
        period_id: UUID,
        employee_id: UUID,
        actor_id: UUID | None = None,
        force: bool = False,
    ) -> EmployeeComputeResult:
        """Compute and persist one employee's entry.

        The entry swap (lock, delete lines, upsert, write lines), the audit
        event and balance posting share one transaction. A failure anywhere
        rolls all of it back and leaves the previous entry in place.

        Raises:
            PeriodNotFoundError: If the period does not exist
            EmployeeNotFoundError: If the employee does not exist
            RecomputeNotAllowedError: If a forced recompute hits an approved/paid entry
            StaleBalanceError: If posting raced another writer
        """
        async with self.session_factory() as session, session.begin():
            repository = PayrollRepository(session)
            period = await self._require_period(repository, period_id)
            employee = await self._require_employee(repository, employee_id)

            existing = await repository.find_entry(period_id, employee_id, for_update=True)
            if existing is not None:
                if not force:
                    return EmployeeComputeResult(
                        employee_id, ComputeOutcome.SKIPPED_EXISTING, existing.payroll_entry_id
                    )
                PayrollEntryStateMachine.validate_recompute(
                    existing.payroll_entry_id, existing.status
                )

            inputs = await repository.load_inputs(period, employee)
            computation = self.engine.compute(inputs)
            if not computation.has_compensation:
                return EmployeeComputeResult(
                    employee_id,
                    ComputeOutcome.SKIPPED_NO_COMPENSATION,
                    computation=computation,
                )

            entry = await CommitService(session).persist_entry(
                existing, employee, computation, actor_id, self.clock()
            )
            self._record_audit(
                session,
                entry.payroll_entry_id,
                action="recomputed" if existing is not None else "computed",
                actor_id=actor_id,
                details={
                    "calculation_id": str(computation.calculation_id),
                    "net_pay": str(computation.net_pay),
                    "warnings": computation.deductions.warnings,
                },
            )
            posting = PostingService(
                session, self.engine.adjustment_resolver, self.engine.loan_amortizer
            )
            await posting.post_entry(entry, inputs.period, self.clock())

        return EmployeeComputeResult(
            employee_id, ComputeOutcome.COMPUTED, entry.payroll_entry_id, computation
        )

    async def compute_for_period(
        self,
        period_id: UUID,
        actor_id: UUID | None = None,
        employee_ids: Iterable[UUID] | None = None,
        force_recompute: bool = False,
    ) -> BatchSummary:
        """Compute every active employee with a compensation profile.

        Employees run independently, at most ``max_concurrency`` at a time.
        A failing employee is logged and counted; the batch carries on.
        Period totals are re-aggregated once every employee has finished.
        """
        async with self.session_factory() as session:
            repository = PayrollRepository(session)
            await self._require_period(repository, period_id)
            targets = await repository.active_employee_ids(employee_ids)

        logger.info(
            "Computing period %s for %d employee(s) (force=%s)",
            period_id,
            len(targets),
            force_recompute,
        )

        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def run(employee_id: UUID) -> EmployeeComputeResult:
            async with semaphore:
                try:
                    return await self.compute_for_employee(
                        period_id, employee_id, actor_id, force=force_recompute
                    )
                except RecomputeNotAllowedError:
                    return EmployeeComputeResult(
                        employee_id, ComputeOutcome.SKIPPED_NOT_RECOMPUTABLE
                    )
                except Exception as exc:
                    logger.exception(
                        "Payroll computation failed for employee %s in period %s",
                        employee_id,
                        period_id,
                    )
                    return EmployeeComputeResult(
                        employee_id, ComputeOutcome.FAILED, error=str(exc) or type(exc).__name__
                    )

        results = await asyncio.gather(*(run(employee_id) for employee_id in targets))

        summary = BatchSummary(period_id=period_id)
        for result in results:
            summary.record(result)
        summary.totals = await self.update_period_totals(period_id)

        logger.info(
            "Period %s done: %d computed, %d skipped, %d failed",
            period_id,
            summary.computed,
            summary.skipped_existing
            + summary.skipped_no_compensation
            + summary.skipped_not_recomputable,
            summary.failed,
        )
        return summary

    async def recompute(self, entry_id: UUID, actor_id: UUID | None = None) -> EmployeeComputeResult:
        """Recompute an existing entry from current inputs.

        Raises:
            EntryNotFoundError: If the entry does not exist
            RecomputeNotAllowedError: If the entry is approved or paid
        """
        async with self.session_factory() as session:
            entry = await PayrollRepository(session).get_entry(entry_id)
            if entry is None:
                raise EntryNotFoundError(entry_id)
            PayrollEntryStateMachine.validate_recompute(entry_id, entry.status)
            period_id, employee_id = entry.payroll_period_id, entry.employee_id

        return await self.compute_for_employee(period_id, employee_id, actor_id, force=True)

    async def transition_entry(
        self,
        entry_id: UUID,
        to_status: str,
        actor_id: UUID | None = None,
    ) -> PayrollEntry:
        """Move an entry to its next status, recording who and when.

        Raises:
            EntryNotFoundError: If the entry does not exist
            InvalidTransitionError: If the transition skips or reverses a step
        """
        async with self.session_factory() as session, session.begin():
            result = await session.execute(
                select(PayrollEntry)
                .where(PayrollEntry.payroll_entry_id == entry_id)
                .with_for_update()
            )
            entry = result.scalar_one_or_none()
            if entry is None:
                raise EntryNotFoundError(entry_id)

            from_status = entry.status
            PayrollEntryStateMachine.validate_transition(from_status, to_status)

            now = self.clock()
            if to_status == PayrollEntryStatus.COMPUTED:
                entry.computed_at = now
                entry.computed_by = actor_id
            elif to_status == PayrollEntryStatus.REVIEWED:
                entry.reviewed_at = now
                entry.reviewed_by = actor_id
            elif to_status == PayrollEntryStatus.APPROVED:
                entry.approved_at = now
                entry.approved_by = actor_id
            elif to_status == PayrollEntryStatus.PAID:
                entry.paid_at = now

            entry.status = PayrollEntryStatus(to_status).value
            self._record_audit(
                session,
                entry_id,
                action=f"status_change:{from_status}:{entry.status}",
                actor_id=actor_id,
            )
            await session.flush()

        return entry

    async def update_period_totals(self, period_id: UUID) -> PeriodTotals:
        """Re-aggregate headcount and money totals from the period's entries.

        Draft entries are not counted.
        """
        async with self.session_factory() as session, session.begin():
            period = await session.get(PayrollPeriod, period_id)
            if period is None:
                raise PeriodNotFoundError(period_id)

            result = await session.execute(
                select(
                    func.count(PayrollEntry.payroll_entry_id),
                    func.coalesce(func.sum(PayrollEntry.gross_pay), 0),
                    func.coalesce(func.sum(PayrollEntry.total_deductions), 0),
                    func.coalesce(func.sum(PayrollEntry.net_pay), 0),
                ).where(
                    PayrollEntry.payroll_period_id == period_id,
                    PayrollEntry.status != PayrollEntryStatus.DRAFT.value,
                )
            )
            count, gross, deductions, net = result.one()

            period.employee_count = count
            period.total_gross = LineItemBuilder.round_to_cents(Decimal(str(gross)))
            period.total_deductions = LineItemBuilder.round_to_cents(Decimal(str(deductions)))
            period.total_net = LineItemBuilder.round_to_cents(Decimal(str(net)))
            period.totals_updated_at = self.clock()

            return PeriodTotals(
                period_id=period_id,
                employee_count=period.employee_count,
                total_gross=period.total_gross,
                total_deductions=period.total_deductions,
                total_net=period.total_net,
                updated_at=period.totals_updated_at,
            )

    async def get_entry(self, entry_id: UUID) -> PayrollEntry:
        """Load an entry with its ordered lines."""
        async with self.session_factory() as session:
            entry = await PayrollRepository(session).get_entry(entry_id, load_lines=True)
        if entry is None:
            raise EntryNotFoundError(entry_id)
        return entry

    async def get_period(self, period_id: UUID) -> PayrollPeriod:
        async with self.session_factory() as session:
            return await self._require_period(PayrollRepository(session), period_id)

    @staticmethod
    async def _require_period(repository: PayrollRepository, period_id: UUID) -> PayrollPeriod:
        period = await repository.get_period(period_id)
        if period is None:
            raise PeriodNotFoundError(period_id)
        return period

    @staticmethod
    async def _require_employee(repository: PayrollRepository, employee_id: UUID) -> Employee:
        employee = await repository.get_employee(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee

    def _record_audit(
        self,
        session: AsyncSession,
        entry_id: UUID,
        action: str,
        actor_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Record an audit event for a payroll entry action."""
        session.add(
            AuditEvent(
                actor_user_id=actor_id,
                entity_type="payroll_entry",
                entity_id=entry_id,
                action=action,
                occurred_at=self.clock(),
                details_json=details,
            )
        )
