"""Integration test fixtures with a real (SQLite) database."""

from collections.abc import AsyncGenerator
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from hris_payroll.api.app import create_app
from hris_payroll.api.dependencies import get_db_session, get_payroll_service
from hris_payroll.database import create_schema, create_session_factory, get_engine
from hris_payroll.models import (
    DailyTimeRecord,
    Employee,
    EmployeeAdjustment,
    EmployeeCompensation,
    EmployeeLoan,
    Holiday,
    PayrollPeriod,
)
from hris_payroll.services import PayrollService

FIXED_NOW = datetime(2026, 2, 5, 9, 0, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SeedIds:
    """Primary keys of the seeded rows."""

    first_period_id: UUID
    second_period_id: UUID
    alice_id: UUID
    bob_id: UUID
    carol_id: UUID
    dave_id: UUID
    salary_advance_id: UUID
    meal_allowance_id: UUID
    sss_loan_id: UUID


@pytest_asyncio.fixture
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh database file with the full schema."""
    engine = get_engine(f"sqlite+aiosqlite:///{tmp_path / 'payroll.db'}")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(db_engine)


@pytest.fixture
def payroll_service(session_factory, payroll_engine) -> PayrollService:
    """Service with a fixed clock and one employee at a time."""
    return PayrollService(
        session_factory,
        payroll_engine,
        clock=lambda: FIXED_NOW,
        max_concurrency=1,
    )


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> SeedIds:
    """Seed two January 2026 cutoffs and four employees.

    - Alice: 44,000 monthly, 11 days on the second cutoff, a meal
      allowance, a salary advance with 1,500 left and an SSS loan
    - Bob: 610 daily, 4 days on the second cutoff
    - Carol: active but without a compensation profile
    - Dave: resigned
    """
    ids = SeedIds(
        first_period_id=uuid4(),
        second_period_id=uuid4(),
        alice_id=uuid4(),
        bob_id=uuid4(),
        carol_id=uuid4(),
        dave_id=uuid4(),
        salary_advance_id=uuid4(),
        meal_allowance_id=uuid4(),
        sss_loan_id=uuid4(),
    )

    async with session_factory() as session, session.begin():
        session.add_all(
            [
                PayrollPeriod(
                    payroll_period_id=ids.first_period_id,
                    name="January 2026 - 1st Cutoff",
                    cycle_type="semi_monthly",
                    period_number=1,
                    cutoff_start=date(2026, 1, 1),
                    cutoff_end=date(2026, 1, 15),
                    pay_date=date(2026, 1, 20),
                ),
                PayrollPeriod(
                    payroll_period_id=ids.second_period_id,
                    name="January 2026 - 2nd Cutoff",
                    cycle_type="semi_monthly",
                    period_number=2,
                    cutoff_start=date(2026, 1, 16),
                    cutoff_end=date(2026, 1, 31),
                    pay_date=date(2026, 2, 5),
                ),
                Employee(
                    employee_id=ids.alice_id, employee_number="E-001",
                    first_name="Alice", last_name="Reyes",
                    department_name="Finance", position_name="Analyst",
                ),
                Employee(
                    employee_id=ids.bob_id, employee_number="E-002",
                    first_name="Bob", last_name="Santos",
                ),
                Employee(
                    employee_id=ids.carol_id, employee_number="E-003",
                    first_name="Carol", last_name="Cruz",
                ),
                Employee(
                    employee_id=ids.dave_id, employee_number="E-004",
                    first_name="Dave", last_name="Lim", status="resigned",
                ),
                Holiday(
                    name="Test National Day",
                    holiday_date=date(2026, 1, 31),
                    holiday_type="special_non_working",
                ),
            ]
        )
        await session.flush()

        session.add_all(
            [
                EmployeeCompensation(
                    employee_id=ids.alice_id, basic_pay=Decimal("44000.00"), pay_type="monthly"
                ),
                EmployeeCompensation(
                    employee_id=ids.bob_id, basic_pay=Decimal("610.00"), pay_type="daily"
                ),
                EmployeeCompensation(
                    employee_id=ids.dave_id, basic_pay=Decimal("30000.00"), pay_type="monthly"
                ),
                EmployeeAdjustment(
                    adjustment_id=ids.meal_allowance_id,
                    employee_id=ids.alice_id,
                    adjustment_type="allowance_meal",
                    name="Meal Allowance",
                    amount=Decimal("1000.00"),
                    is_taxable=False,
                    frequency="recurring",
                    recurring_start_date=date(2025, 1, 1),
                    recurring_interval="every_period",
                ),
                EmployeeAdjustment(
                    adjustment_id=ids.salary_advance_id,
                    employee_id=ids.alice_id,
                    adjustment_type="loan_salary_advance",
                    name="Salary Advance",
                    amount=Decimal("2000.00"),
                    frequency="recurring",
                    recurring_start_date=date(2025, 12, 1),
                    recurring_interval="second_cutoff",
                    has_balance_tracking=True,
                    total_amount=Decimal("5000.00"),
                    total_applied=Decimal("3500.00"),
                    remaining_balance=Decimal("1500.00"),
                ),
                EmployeeLoan(
                    loan_id=ids.sss_loan_id,
                    employee_id=ids.alice_id,
                    loan_type="sss_salary",
                    loan_code="SSS_SALARY",
                    reference_number="SSS-2025-001",
                    principal_amount=Decimal("20000.00"),
                    total_amount=Decimal("24000.00"),
                    monthly_deduction=Decimal("1000.00"),
                    total_paid=Decimal("6000.00"),
                    remaining_balance=Decimal("18000.00"),
                    start_date=date(2025, 6, 1),
                ),
            ]
        )
        session.add_all(
            DailyTimeRecord(
                employee_id=ids.alice_id,
                work_date=date(2026, 1, 16) + timedelta(days=i),
                status="present",
                total_work_minutes=480,
            )
            for i in range(11)
        )
        session.add_all(
            DailyTimeRecord(
                employee_id=ids.bob_id,
                work_date=date(2026, 1, 19) + timedelta(days=i),
                status="present",
                total_work_minutes=480,
            )
            for i in range(4)
        )

    return ids


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    payroll_service: PayrollService,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client wired to the test database."""
    app = create_app()

    async def test_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = test_db_session
    app.dependency_overrides[get_payroll_service] = lambda: payroll_service

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
