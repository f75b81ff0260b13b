"""Pytest fixtures for payroll calculator tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest

from hris_payroll.calculators import BracketTableLookup, PayrollEngine
from hris_payroll.calculators.types import (
    CompensationSnapshot,
    CycleType,
    PayType,
    PeriodDescriptor,
)

# Bracket data for tests only; real tables come from CONTRIBUTION_TABLES_PATH.
CONTRIBUTION_TABLES: dict[str, Any] = {
    "contribution_tables": [
        {
            "table_id": "sss-2025",
            "scheme": "sss",
            "effective_from": "2025-01-01",
            "brackets": [
                {"min_salary": "0", "max_salary": "29999.99", "employee_share": "1000.00", "employer_share": "2000.00"},
                {"min_salary": "30000", "max_salary": None, "employee_share": "1350.00", "employer_share": "2850.00"},
            ],
        },
        {
            "table_id": "phic-2025",
            "scheme": "philhealth",
            "effective_from": "2025-01-01",
            "employee_rate": "0.025",
            "employer_rate": "0.025",
            "salary_floor": "10000",
            "salary_ceiling": "100000",
        },
        {
            "table_id": "hdmf-2025",
            "scheme": "pagibig",
            "effective_from": "2025-01-01",
            "employee_rate": "0.02",
            "employer_rate": "0.02",
            "salary_ceiling": "10000",
            "low_salary_threshold": "1500",
            "low_salary_employee_rate": "0.01",
        },
    ],
    "withholding_tax_tables": [
        {
            "table_id": "wtax-semi-2025",
            "pay_period": "semi_monthly",
            "effective_from": "2025-01-01",
            "brackets": [
                {"min_income": "0", "max_income": "10417", "base_tax": "0", "rate": "0"},
                {"min_income": "10417", "max_income": "16666", "base_tax": "0", "rate": "0.15"},
                {"min_income": "16666", "max_income": "33332", "base_tax": "937.50", "rate": "0.20"},
                {"min_income": "33332", "max_income": None, "base_tax": "4270.70", "rate": "0.25"},
            ],
        },
        {
            "table_id": "wtax-monthly-2025",
            "pay_period": "monthly",
            "effective_from": "2025-01-01",
            "brackets": [
                {"min_income": "0", "max_income": "20833", "base_tax": "0", "rate": "0"},
                {"min_income": "20833", "max_income": "33332", "base_tax": "0", "rate": "0.15"},
                {"min_income": "33332", "max_income": None, "base_tax": "1875.00", "rate": "0.20"},
            ],
        },
    ],
}


@pytest.fixture
def contribution_tables_payload() -> dict[str, Any]:
    """The test tables as a parsed JSON document."""
    return CONTRIBUTION_TABLES


@pytest.fixture
def contribution_lookup(contribution_tables_payload: dict[str, Any]) -> BracketTableLookup:
    """Bracket lookup over the test tables."""
    return BracketTableLookup.from_payload(contribution_tables_payload)


@pytest.fixture
def empty_lookup() -> BracketTableLookup:
    """Lookup with no tables: every scheme reports an error."""
    return BracketTableLookup()


@pytest.fixture
def payroll_engine(contribution_lookup: BracketTableLookup) -> PayrollEngine:
    """Engine wired to the test tables."""
    return PayrollEngine(contribution_lookup, engine_version="test")


@pytest.fixture
def first_cutoff() -> PeriodDescriptor:
    """First half of January 2026."""
    return PeriodDescriptor(
        period_id=uuid4(),
        cutoff_start=date(2026, 1, 1),
        cutoff_end=date(2026, 1, 15),
        pay_date=date(2026, 1, 20),
        period_number=1,
        cycle_type=CycleType.SEMI_MONTHLY,
    )


@pytest.fixture
def second_cutoff() -> PeriodDescriptor:
    """Second half of January 2026."""
    return PeriodDescriptor(
        period_id=uuid4(),
        cutoff_start=date(2026, 1, 16),
        cutoff_end=date(2026, 1, 31),
        pay_date=date(2026, 2, 5),
        period_number=2,
        cycle_type=CycleType.SEMI_MONTHLY,
    )


@pytest.fixture
def monthly_period() -> PeriodDescriptor:
    """January 2026 on a monthly cycle."""
    return PeriodDescriptor(
        period_id=uuid4(),
        cutoff_start=date(2026, 1, 1),
        cutoff_end=date(2026, 1, 31),
        pay_date=date(2026, 2, 5),
        period_number=1,
        cycle_type=CycleType.MONTHLY,
    )


@pytest.fixture
def monthly_compensation() -> CompensationSnapshot:
    """44,000 monthly salary (daily rate 2,000)."""
    return CompensationSnapshot(basic_pay=Decimal("44000.00"), pay_type=PayType.MONTHLY)
