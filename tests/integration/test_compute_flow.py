"""Compute, recompute, posting and workflow tests against a real database."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from hris_payroll.models import (
    AdjustmentApplication,
    AuditEvent,
    DailyTimeRecord,
    EmployeeAdjustment,
    EmployeeLoan,
    LoanPayment,
    OvertimeRequest,
    PayrollDeduction,
    PayrollEarning,
    PayrollEntry,
)
from hris_payroll.services import (
    ComputeOutcome,
    EntryNotFoundError,
    InvalidTransitionError,
    PayrollRepository,
    PeriodNotFoundError,
    PostingService,
    RecomputeNotAllowedError,
    StaleBalanceError,
)

pytestmark = pytest.mark.asyncio

ACTOR = uuid4()


async def count_rows(session_factory, model, *criteria) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model).where(*criteria))
        return result.scalar_one()


class TestRepository:
    """Test loading engine inputs from persisted rows."""

    async def test_load_inputs(self, session_factory, seeded):
        """Attendance, holidays, adjustments and loans are loaded for the cutoff."""
        async with session_factory() as session:
            repository = PayrollRepository(session)
            period = await repository.get_period(seeded.second_period_id)
            employee = await repository.get_employee(seeded.alice_id)

            inputs = await repository.load_inputs(period, employee)

        assert inputs.compensation.basic_pay == Decimal("44000.00")
        assert len(inputs.attendance) == 11
        assert [h.holiday_date for h in inputs.holidays] == [date(2026, 1, 31)]
        assert {a.adjustment_id for a in inputs.adjustments} == {
            seeded.salary_advance_id,
            seeded.meal_allowance_id,
        }
        assert [loan.loan_id for loan in inputs.loans] == [seeded.sss_loan_id]
        assert inputs.period.is_second_cutoff

    async def test_active_employee_ids(self, session_factory, seeded):
        """Only active employees with compensation are batch targets."""
        async with session_factory() as session:
            ids = await PayrollRepository(session).active_employee_ids()

        assert ids == [seeded.alice_id, seeded.bob_id]


class TestPreview:
    """Test preview without persistence."""

    async def test_preview_persists_nothing(self, payroll_service, session_factory, seeded):
        """Preview computes the full result but writes no rows."""
        computation = await payroll_service.preview(seeded.second_period_id, seeded.alice_id)

        assert computation.gross_pay == Decimal("23000.00")
        assert computation.net_pay == Decimal("16615.70")
        assert await count_rows(session_factory, PayrollEntry) == 0
        assert await count_rows(session_factory, AdjustmentApplication) == 0
        assert await count_rows(session_factory, LoanPayment) == 0

    async def test_preview_unknown_period(self, payroll_service, seeded):
        """An unknown period is reported as not found."""
        with pytest.raises(PeriodNotFoundError):
            await payroll_service.preview(uuid4(), seeded.alice_id)

    async def test_approved_overtime_only(self, payroll_service, session_factory, seeded):
        """Overtime is paid only against approved requests."""
        approved_id, pending_id = uuid4(), uuid4()
        async with session_factory() as session, session.begin():
            session.add_all(
                [
                    OvertimeRequest(
                        overtime_request_id=approved_id, employee_id=seeded.alice_id,
                        overtime_date=date(2026, 1, 19), expected_minutes=180, status="approved",
                    ),
                    OvertimeRequest(
                        overtime_request_id=pending_id, employee_id=seeded.alice_id,
                        overtime_date=date(2026, 1, 20), expected_minutes=120, status="pending",
                    ),
                ]
            )
            await session.flush()
            records = await session.execute(
                select(DailyTimeRecord).where(
                    DailyTimeRecord.employee_id == seeded.alice_id,
                    DailyTimeRecord.work_date.in_([date(2026, 1, 19), date(2026, 1, 20)]),
                ).order_by(DailyTimeRecord.work_date)
            )
            for record, request_id in zip(records.scalars().all(), [approved_id, pending_id]):
                record.overtime_minutes = 240
                record.overtime_approved = True
                record.overtime_request_id = request_id

        computation = await payroll_service.preview(seeded.second_period_id, seeded.alice_id)

        assert computation.attendance.total_overtime_minutes == 180
        assert computation.earnings.overtime_pay == Decimal("937.50")


class TestComputeForEmployee:
    """Test single-employee compute and commit."""

    async def test_compute_creates_entry(self, payroll_service, seeded):
        """A computed entry carries totals, snapshots and ordered lines."""
        result = await payroll_service.compute_for_employee(
            seeded.second_period_id, seeded.alice_id, actor_id=ACTOR
        )

        assert result.outcome == ComputeOutcome.COMPUTED
        entry = await payroll_service.get_entry(result.entry_id)
        assert entry.status == "computed"
        assert entry.calculation_id == result.computation.calculation_id
        assert entry.computed_by == ACTOR
        assert entry.employee_name == "Alice Reyes"
        assert entry.department_name == "Finance"
        assert entry.days_worked == 11
        assert entry.gross_pay == Decimal("23000.00")
        assert entry.withholding_tax == Decimal("1784.30")
        assert entry.loan_deductions == Decimal("1000.00")
        assert entry.adjustment_deductions == Decimal("1500.00")
        assert entry.total_deductions == Decimal("6384.30")
        assert entry.net_pay == Decimal("16615.70")
        assert [e.earning_code for e in entry.earnings] == ["BASIC", "ALLOWANCE_MEAL"]
        assert [d.deduction_code for d in entry.deductions] == [
            "SSS_EE", "SSS_ER", "PHIC_EE", "PHIC_ER", "HDMF_EE", "HDMF_ER",
            "TAX", "SSS_SALARY", "LOAN_SALARY_ADVANCE",
        ]
        assert [d.line_number for d in entry.deductions] == list(range(1, 10))

    async def test_existing_entry_skipped(self, payroll_service, seeded):
        """Computing again without force leaves the entry alone."""
        first = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)
        second = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)

        assert second.outcome == ComputeOutcome.SKIPPED_EXISTING
        assert second.entry_id == first.entry_id

    async def test_no_compensation_skipped(self, payroll_service, session_factory, seeded):
        """An employee without compensation gets no entry."""
        result = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.carol_id)

        assert result.outcome == ComputeOutcome.SKIPPED_NO_COMPENSATION
        assert result.computation.net_pay == Decimal("0")
        assert await count_rows(session_factory, PayrollEntry) == 0

    async def test_audit_event_recorded(self, payroll_service, session_factory, seeded):
        """Computation is audited with the actor and calculation id."""
        result = await payroll_service.compute_for_employee(
            seeded.second_period_id, seeded.alice_id, actor_id=ACTOR
        )

        async with session_factory() as session:
            events = (
                await session.execute(
                    select(AuditEvent).where(AuditEvent.entity_id == result.entry_id)
                )
            ).scalars().all()

        assert [e.action for e in events] == ["computed"]
        assert events[0].actor_user_id == ACTOR
        assert events[0].details_json["calculation_id"] == str(result.computation.calculation_id)


class TestPosting:
    """Test balance side effects of a persisted entry."""

    async def test_adjustments_and_loans_posted(self, payroll_service, session_factory, seeded):
        """Applications and loan payments are recorded with the entry."""
        result = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)

        async with session_factory() as session:
            advance = await session.get(EmployeeAdjustment, seeded.salary_advance_id)
            meal = await session.get(EmployeeAdjustment, seeded.meal_allowance_id)
            loan = await session.get(EmployeeLoan, seeded.sss_loan_id)
            payment = (await session.execute(select(LoanPayment))).scalar_one()
            loan_line = (
                await session.execute(
                    select(PayrollDeduction).where(
                        PayrollDeduction.payroll_entry_id == result.entry_id,
                        PayrollDeduction.loan_id == seeded.sss_loan_id,
                    )
                )
            ).scalar_one()

        assert advance.remaining_balance == Decimal("0.00")
        assert advance.total_applied == Decimal("5000.00")
        assert advance.status == "completed"
        assert meal.total_applied == Decimal("1000.00")
        assert meal.status == "active"
        assert loan.remaining_balance == Decimal("17000.00")
        assert loan.total_paid == Decimal("7000.00")
        assert loan.status == "active"
        assert payment.amount == Decimal("1000.00")
        assert payment.payment_source == "payroll"
        assert payment.payroll_period_id == seeded.second_period_id
        assert payment.payroll_deduction_id == loan_line.payroll_deduction_id
        assert await count_rows(session_factory, AdjustmentApplication) == 2

    async def test_first_cutoff_posts_allowance_only(self, payroll_service, session_factory, seeded):
        """Second-cutoff adjustments and loans wait for the second half."""
        await payroll_service.compute_for_employee(seeded.first_period_id, seeded.alice_id)

        assert await count_rows(session_factory, LoanPayment) == 0
        assert await count_rows(
            session_factory,
            AdjustmentApplication,
            AdjustmentApplication.adjustment_id == seeded.meal_allowance_id,
        ) == 1
        assert await count_rows(
            session_factory,
            AdjustmentApplication,
            AdjustmentApplication.adjustment_id == seeded.salary_advance_id,
        ) == 0


class TestFailedPosting:
    """Test that a failed posting rolls back the whole entry swap."""

    @pytest.fixture
    def failing_posting(self, monkeypatch):
        async def post_entry(self, entry, period, posted_at):
            raise StaleBalanceError(entry.payroll_entry_id, "loan version moved")

        monkeypatch.setattr(PostingService, "post_entry", post_entry)
        return monkeypatch

    async def test_failed_swap_leaves_nothing(
        self, payroll_service, session_factory, seeded, failing_posting
    ):
        """No entry, lines, audit or balances survive a failed posting."""
        summary = await payroll_service.compute_for_period(
            seeded.second_period_id, employee_ids=[seeded.alice_id]
        )

        assert summary.failed == 1
        assert summary.computed == 0
        assert "loan version moved" in summary.errors[0]
        assert summary.totals.employee_count == 0
        assert await count_rows(session_factory, PayrollEntry) == 0
        assert await count_rows(session_factory, PayrollEarning) == 0
        assert await count_rows(session_factory, PayrollDeduction) == 0
        assert await count_rows(session_factory, AuditEvent) == 0
        assert await count_rows(session_factory, AdjustmentApplication) == 0
        assert await count_rows(session_factory, LoanPayment) == 0

        async with session_factory() as session:
            loan = await session.get(EmployeeLoan, seeded.sss_loan_id)
        assert loan.remaining_balance == Decimal("18000.00")

    async def test_retry_after_failure_posts_once(
        self, payroll_service, session_factory, seeded, failing_posting
    ):
        """A retry after a failed swap computes and posts exactly once."""
        await payroll_service.compute_for_period(
            seeded.second_period_id, employee_ids=[seeded.alice_id]
        )
        failing_posting.undo()

        summary = await payroll_service.compute_for_period(
            seeded.second_period_id, employee_ids=[seeded.alice_id]
        )

        assert summary.computed == 1
        assert summary.failed == 0
        assert await count_rows(session_factory, PayrollEntry) == 1
        assert await count_rows(session_factory, LoanPayment) == 1
        assert await count_rows(session_factory, AdjustmentApplication) == 2

        async with session_factory() as session:
            loan = await session.get(EmployeeLoan, seeded.sss_loan_id)
        assert loan.remaining_balance == Decimal("17000.00")

    async def test_failed_recompute_keeps_previous_entry(
        self, payroll_service, session_factory, seeded, monkeypatch
    ):
        """A recompute whose posting fails leaves the prior lines and audit trail."""
        first = await payroll_service.compute_for_employee(
            seeded.second_period_id, seeded.alice_id, actor_id=ACTOR
        )
        before = await payroll_service.get_entry(first.entry_id)

        async def post_entry(self, entry, period, posted_at):
            raise StaleBalanceError(entry.payroll_entry_id, "adjustment version moved")

        monkeypatch.setattr(PostingService, "post_entry", post_entry)

        with pytest.raises(StaleBalanceError):
            await payroll_service.recompute(first.entry_id, actor_id=ACTOR)

        after = await payroll_service.get_entry(first.entry_id)
        assert [d.payroll_deduction_id for d in after.deductions] == [
            d.payroll_deduction_id for d in before.deductions
        ]
        assert [e.payroll_earning_id for e in after.earnings] == [
            e.payroll_earning_id for e in before.earnings
        ]
        assert await count_rows(
            session_factory, AuditEvent, AuditEvent.entity_id == first.entry_id
        ) == 1
        assert await count_rows(session_factory, LoanPayment) == 1


class TestRecompute:
    """Test idempotent recomputation."""

    async def test_force_recompute_is_idempotent(self, payroll_service, session_factory, seeded):
        """Recomputing reproduces lines and never posts twice."""
        first = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)
        first_entry = await payroll_service.get_entry(first.entry_id)

        second = await payroll_service.compute_for_employee(
            seeded.second_period_id, seeded.alice_id, force=True
        )
        second_entry = await payroll_service.get_entry(second.entry_id)

        assert second.outcome == ComputeOutcome.COMPUTED
        assert second.entry_id == first.entry_id
        assert second.computation.calculation_id == first.computation.calculation_id
        assert [line.line_hash for line in second_entry.earnings] == [
            line.line_hash for line in first_entry.earnings
        ]
        assert [line.line_hash for line in second_entry.deductions] == [
            line.line_hash for line in first_entry.deductions
        ]
        assert second_entry.net_pay == Decimal("16615.70")

        assert await count_rows(session_factory, PayrollEarning) == len(first_entry.earnings)
        assert await count_rows(session_factory, PayrollDeduction) == len(first_entry.deductions)
        assert await count_rows(session_factory, AdjustmentApplication) == 2
        assert await count_rows(session_factory, LoanPayment) == 1

        async with session_factory() as session:
            loan = await session.get(EmployeeLoan, seeded.sss_loan_id)
            payment = (await session.execute(select(LoanPayment))).scalar_one()

        assert loan.remaining_balance == Decimal("17000.00")
        new_loan_line = next(d for d in second_entry.deductions if d.loan_id == seeded.sss_loan_id)
        assert payment.payroll_deduction_id == new_loan_line.payroll_deduction_id

    async def test_recompute_from_reviewed_resets_status(self, payroll_service, seeded):
        """A reviewed entry returns to computed when recomputed."""
        result = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)
        await payroll_service.transition_entry(result.entry_id, "reviewed", actor_id=ACTOR)

        await payroll_service.recompute(result.entry_id, actor_id=ACTOR)

        entry = await payroll_service.get_entry(result.entry_id)
        assert entry.status == "computed"
        assert entry.reviewed_at is None
        assert entry.reviewed_by is None

    async def test_recompute_blocked_after_approval(self, payroll_service, seeded):
        """Approved entries are locked against recomputation."""
        result = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)
        await payroll_service.transition_entry(result.entry_id, "reviewed")
        await payroll_service.transition_entry(result.entry_id, "approved")

        with pytest.raises(RecomputeNotAllowedError):
            await payroll_service.recompute(result.entry_id)
        with pytest.raises(RecomputeNotAllowedError):
            await payroll_service.compute_for_employee(
                seeded.second_period_id, seeded.alice_id, force=True
            )

    async def test_recompute_unknown_entry(self, payroll_service, seeded):
        """Recomputing a missing entry is reported as not found."""
        with pytest.raises(EntryNotFoundError):
            await payroll_service.recompute(uuid4())


class TestTransitions:
    """Test the entry workflow."""

    async def test_full_workflow(self, payroll_service, session_factory, seeded):
        """Each step stamps its actor and time and is audited."""
        result = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)

        reviewed = await payroll_service.transition_entry(result.entry_id, "reviewed", actor_id=ACTOR)
        approved = await payroll_service.transition_entry(result.entry_id, "approved", actor_id=ACTOR)
        paid = await payroll_service.transition_entry(result.entry_id, "paid", actor_id=ACTOR)

        assert reviewed.reviewed_by == ACTOR
        assert approved.approved_by == ACTOR
        assert paid.status == "paid"
        assert paid.paid_at is not None

        async with session_factory() as session:
            actions = set(
                (
                    await session.execute(
                        select(AuditEvent.action).where(AuditEvent.entity_id == result.entry_id)
                    )
                ).scalars().all()
            )
        assert actions == {
            "computed",
            "status_change:computed:reviewed",
            "status_change:reviewed:approved",
            "status_change:approved:paid",
        }

    async def test_skipping_a_step_rejected(self, payroll_service, seeded):
        """Entries cannot skip review."""
        result = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)

        with pytest.raises(InvalidTransitionError):
            await payroll_service.transition_entry(result.entry_id, "approved")

        entry = await payroll_service.get_entry(result.entry_id)
        assert entry.status == "computed"

    async def test_unknown_entry(self, payroll_service, seeded):
        """Transitioning a missing entry is reported as not found."""
        with pytest.raises(EntryNotFoundError):
            await payroll_service.transition_entry(uuid4(), "reviewed")


class TestComputeForPeriod:
    """Test batch computation and period totals."""

    async def test_batch_computes_active_employees(self, payroll_service, seeded):
        """Only active employees with compensation are computed."""
        summary = await payroll_service.compute_for_period(seeded.second_period_id, actor_id=ACTOR)

        assert summary.total == 2
        assert summary.computed == 2
        assert summary.failed == 0
        assert summary.totals.employee_count == 2
        assert summary.totals.total_gross == Decimal("25440.00")
        assert summary.totals.total_deductions == Decimal("7752.05")
        assert summary.totals.total_net == Decimal("17687.95")
        assert summary.totals.updated_at == payroll_service.clock()

    async def test_batch_rerun_skips_existing(self, payroll_service, seeded):
        """A second run without force skips every entry."""
        await payroll_service.compute_for_period(seeded.second_period_id)

        summary = await payroll_service.compute_for_period(seeded.second_period_id)

        assert summary.computed == 0
        assert summary.skipped_existing == 2
        assert summary.totals.employee_count == 2

    async def test_forced_batch_skips_locked_entries(self, payroll_service, seeded):
        """Forced batches recompute open entries and skip approved ones."""
        await payroll_service.compute_for_period(seeded.second_period_id)
        alice = await payroll_service.compute_for_employee(seeded.second_period_id, seeded.alice_id)
        await payroll_service.transition_entry(alice.entry_id, "reviewed")
        await payroll_service.transition_entry(alice.entry_id, "approved")

        summary = await payroll_service.compute_for_period(
            seeded.second_period_id, force_recompute=True
        )

        assert summary.computed == 1
        assert summary.skipped_not_recomputable == 1

    async def test_employee_subset(self, payroll_service, seeded):
        """A batch can be limited to selected employees."""
        summary = await payroll_service.compute_for_period(
            seeded.second_period_id, employee_ids=[seeded.bob_id, seeded.dave_id]
        )

        assert summary.total == 1
        assert summary.totals.total_net == Decimal("1072.25")

    async def test_unknown_period(self, payroll_service, seeded):
        """Batches over a missing period fail fast."""
        with pytest.raises(PeriodNotFoundError):
            await payroll_service.compute_for_period(uuid4())

    async def test_totals_stored_on_period(self, payroll_service, seeded):
        """Totals are persisted on the period row."""
        await payroll_service.compute_for_period(seeded.second_period_id)

        period = await payroll_service.get_period(seeded.second_period_id)

        assert period.employee_count == 2
        assert period.total_net == Decimal("17687.95")
