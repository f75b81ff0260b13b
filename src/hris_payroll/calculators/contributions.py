"""Statutory contribution and withholding tax lookups.

The engine depends only on the ``ContributionLookup`` protocol. The bundled
implementation, ``BracketTableLookup``, evaluates externally supplied tables
(typically a JSON document maintained by payroll administrators) and never
raises for missing or stale data: it reports an error on the result and the
caller decides how to degrade.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Protocol

from hris_payroll.calculators.types import ContributionScheme

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class ContributionResult:
    """Employee and employer shares for one scheme."""

    employee_share: Decimal = Decimal("0")
    employer_share: Decimal = Decimal("0")
    table_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class TaxResult:
    """Withholding tax due for one pay period."""

    tax_due: Decimal = Decimal("0")
    table_id: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ContributionLookup(Protocol):
    """Bracket services consumed by the deductions composer."""

    def sss(self, monthly_salary: Decimal, effective_date: date) -> ContributionResult: ...

    def philhealth(self, monthly_salary: Decimal, effective_date: date) -> ContributionResult: ...

    def pagibig(self, monthly_salary: Decimal, effective_date: date) -> ContributionResult: ...

    def withholding_tax(
        self, taxable_income: Decimal, effective_date: date, pay_period: str
    ) -> TaxResult: ...


@dataclass(frozen=True)
class ContributionBracket:
    """Fixed shares for a salary range (inclusive bounds)."""

    min_salary: Decimal
    max_salary: Decimal | None  # None = no upper limit
    employee_share: Decimal
    employer_share: Decimal

    def matches(self, salary: Decimal) -> bool:
        if salary < self.min_salary:
            return False
        return self.max_salary is None or salary <= self.max_salary


@dataclass(frozen=True)
class ContributionTable:
    """Contribution rules for one scheme over an effectivity window.

    A table either lists fixed-share brackets or defines rates applied to
    the salary clamped between a floor and a ceiling, with optional caps
    and a reduced employee rate for low salaries.
    """

    table_id: str
    scheme: ContributionScheme
    effective_from: date
    effective_to: date | None = None
    brackets: tuple[ContributionBracket, ...] = ()
    employee_rate: Decimal | None = None
    employer_rate: Decimal | None = None
    salary_floor: Decimal | None = None
    salary_ceiling: Decimal | None = None
    employee_cap: Decimal | None = None
    employer_cap: Decimal | None = None
    low_salary_threshold: Decimal | None = None
    low_salary_employee_rate: Decimal | None = None

    def is_effective_on(self, on: date) -> bool:
        if self.effective_from > on:
            return False
        return self.effective_to is None or self.effective_to >= on

    def shares_for(self, monthly_salary: Decimal) -> tuple[Decimal, Decimal] | None:
        """(employee, employer) shares, or None when no bracket covers the salary."""
        if self.brackets:
            for bracket in self.brackets:
                if bracket.matches(monthly_salary):
                    return bracket.employee_share, bracket.employer_share
            return None

        basis = monthly_salary
        if self.salary_floor is not None and basis < self.salary_floor:
            basis = self.salary_floor
        if self.salary_ceiling is not None and basis > self.salary_ceiling:
            basis = self.salary_ceiling

        employee_rate = self.employee_rate or Decimal("0")
        if (
            self.low_salary_threshold is not None
            and self.low_salary_employee_rate is not None
            and monthly_salary <= self.low_salary_threshold
        ):
            employee_rate = self.low_salary_employee_rate

        employee = _round(basis * employee_rate)
        employer = _round(basis * (self.employer_rate or Decimal("0")))
        if self.employee_cap is not None:
            employee = min(employee, self.employee_cap)
        if self.employer_cap is not None:
            employer = min(employer, self.employer_cap)
        return employee, employer


@dataclass(frozen=True)
class TaxBracket:
    """Progressive withholding bracket.

    Tax = base_tax + (income - min_income) x rate.
    """

    min_income: Decimal
    max_income: Decimal | None  # None = no upper limit
    base_tax: Decimal
    rate: Decimal

    def matches(self, income: Decimal) -> bool:
        if income < self.min_income:
            return False
        return self.max_income is None or income <= self.max_income


@dataclass(frozen=True)
class WithholdingTaxTable:
    """Withholding tax brackets for one pay period length."""

    table_id: str
    pay_period: str  # 'semi_monthly' or 'monthly'
    effective_from: date
    effective_to: date | None
    brackets: tuple[TaxBracket, ...]

    def is_effective_on(self, on: date) -> bool:
        if self.effective_from > on:
            return False
        return self.effective_to is None or self.effective_to >= on

    def tax_for(self, taxable_income: Decimal) -> Decimal | None:
        for bracket in self.brackets:
            if bracket.matches(taxable_income):
                excess = taxable_income - bracket.min_income
                return _round(bracket.base_tax + excess * bracket.rate)
        return None


class BracketTableLookup:
    """``ContributionLookup`` backed by in-memory effective-dated tables."""

    def __init__(
        self,
        contribution_tables: Iterable[ContributionTable] = (),
        tax_tables: Iterable[WithholdingTaxTable] = (),
    ):
        self.contribution_tables = list(contribution_tables)
        self.tax_tables = list(tax_tables)

    def sss(self, monthly_salary: Decimal, effective_date: date) -> ContributionResult:
        return self._contribution(ContributionScheme.SSS, monthly_salary, effective_date)

    def philhealth(self, monthly_salary: Decimal, effective_date: date) -> ContributionResult:
        return self._contribution(ContributionScheme.PHILHEALTH, monthly_salary, effective_date)

    def pagibig(self, monthly_salary: Decimal, effective_date: date) -> ContributionResult:
        return self._contribution(ContributionScheme.PAGIBIG, monthly_salary, effective_date)

    def withholding_tax(
        self, taxable_income: Decimal, effective_date: date, pay_period: str
    ) -> TaxResult:
        candidates = [
            t
            for t in self.tax_tables
            if t.pay_period == pay_period and t.is_effective_on(effective_date)
        ]
        if not candidates:
            return TaxResult(
                error=f"No {pay_period} withholding tax table effective on {effective_date}"
            )

        table = max(candidates, key=lambda t: t.effective_from)
        tax_due = table.tax_for(taxable_income)
        if tax_due is None:
            return TaxResult(
                table_id=table.table_id,
                error=f"No bracket in {table.table_id} covers taxable income {taxable_income}",
            )
        return TaxResult(tax_due=tax_due, table_id=table.table_id)

    def _contribution(
        self, scheme: ContributionScheme, monthly_salary: Decimal, effective_date: date
    ) -> ContributionResult:
        candidates = [
            t
            for t in self.contribution_tables
            if t.scheme == scheme and t.is_effective_on(effective_date)
        ]
        if not candidates:
            return ContributionResult(
                error=f"No {scheme.value} table effective on {effective_date}"
            )

        table = max(candidates, key=lambda t: t.effective_from)
        shares = table.shares_for(monthly_salary)
        if shares is None:
            return ContributionResult(
                table_id=table.table_id,
                error=f"No bracket in {table.table_id} covers salary {monthly_salary}",
            )
        employee, employer = shares
        return ContributionResult(
            employee_share=employee, employer_share=employer, table_id=table.table_id
        )

    # === Loading ===

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> BracketTableLookup:
        """Build a lookup from a parsed JSON document.

        Raises ValueError on malformed table definitions.
        """
        contribution_tables = [
            _parse_contribution_table(raw) for raw in payload.get("contribution_tables", [])
        ]
        tax_tables = [
            _parse_tax_table(raw) for raw in payload.get("withholding_tax_tables", [])
        ]
        return cls(contribution_tables, tax_tables)

    @classmethod
    def from_json_file(cls, path: str | Path) -> BracketTableLookup:
        with open(path, encoding="utf-8") as fh:
            return cls.from_payload(json.load(fh))


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def _decimal(raw: Mapping[str, Any], key: str, required: bool = False) -> Decimal | None:
    value = raw.get(key)
    if value is None:
        if required:
            raise ValueError(f"Missing required field '{key}' in {dict(raw)!r}")
        return None
    return Decimal(str(value))


def _date(raw: Mapping[str, Any], key: str) -> date | None:
    value = raw.get(key)
    return date.fromisoformat(value) if value else None


def _parse_contribution_table(raw: Mapping[str, Any]) -> ContributionTable:
    try:
        scheme = ContributionScheme(raw["scheme"])
        effective_from = date.fromisoformat(raw["effective_from"])
        table_id = str(raw["table_id"])
    except (KeyError, ValueError) as e:
        raise ValueError(f"Invalid contribution table definition: {e}") from e

    brackets = tuple(
        ContributionBracket(
            min_salary=_decimal(b, "min_salary", required=True),
            max_salary=_decimal(b, "max_salary"),
            employee_share=_decimal(b, "employee_share", required=True),
            employer_share=_decimal(b, "employer_share", required=True),
        )
        for b in raw.get("brackets", [])
    )
    if not brackets and raw.get("employee_rate") is None:
        raise ValueError(f"Contribution table {table_id} defines neither brackets nor rates")

    return ContributionTable(
        table_id=table_id,
        scheme=scheme,
        effective_from=effective_from,
        effective_to=_date(raw, "effective_to"),
        brackets=brackets,
        employee_rate=_decimal(raw, "employee_rate"),
        employer_rate=_decimal(raw, "employer_rate"),
        salary_floor=_decimal(raw, "salary_floor"),
        salary_ceiling=_decimal(raw, "salary_ceiling"),
        employee_cap=_decimal(raw, "employee_cap"),
        employer_cap=_decimal(raw, "employer_cap"),
        low_salary_threshold=_decimal(raw, "low_salary_threshold"),
        low_salary_employee_rate=_decimal(raw, "low_salary_employee_rate"),
    )


def _parse_tax_table(raw: Mapping[str, Any]) -> WithholdingTaxTable:
    try:
        table_id = str(raw["table_id"])
        pay_period = str(raw["pay_period"])
        effective_from = date.fromisoformat(raw["effective_from"])
    except (KeyError, ValueError) as e:
        raise ValueError(f"Invalid withholding tax table definition: {e}") from e

    brackets = tuple(
        TaxBracket(
            min_income=_decimal(b, "min_income", required=True),
            max_income=_decimal(b, "max_income"),
            base_tax=_decimal(b, "base_tax") or Decimal("0"),
            rate=_decimal(b, "rate") or Decimal("0"),
        )
        for b in raw.get("brackets", [])
    )
    return WithholdingTaxTable(
        table_id=table_id,
        pay_period=pay_period,
        effective_from=effective_from,
        effective_to=_date(raw, "effective_to"),
        brackets=brackets,
    )
