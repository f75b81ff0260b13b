"""Line item helpers with deterministic hashing."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal

from hris_payroll.calculators.types import (
    DeductionLine,
    DeductionType,
    EarningLine,
    EarningType,
)


class LineItemBuilder:
    """Builds and checks earning and deduction line items.

    Sign conventions:
    - Earning lines are positive, except the ABSENT and TARDINESS audit
      lines, which carry a -1.00 multiplier and a negative amount
    - Deduction lines are positive amounts withheld (or, for employer
      share lines, contributed)

    Rounding:
    - Amounts rounded ROUND_HALF_UP to 2 decimals at line creation
    """

    OUTPUT_PRECISION = Decimal("0.01")
    NEGATIVE_EARNING_CODES = frozenset({"ABSENT", "TARDINESS"})

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: EarningLine | DeductionLine) -> str:
        """Compute deterministic hash for a line item.

        The hash is based on the canonical representation of defining fields,
        so identical inputs produce identical hashes across recomputations.
        """
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def earning_line(
        earning_type: EarningType,
        code: str,
        description: str,
        quantity: Decimal,
        quantity_unit: str,
        rate: Decimal,
        amount: Decimal,
        multiplier: Decimal = Decimal("1.00"),
        is_taxable: bool = True,
    ) -> EarningLine:
        return EarningLine(
            earning_type=earning_type,
            code=code,
            description=description,
            quantity=quantity,
            quantity_unit=quantity_unit,
            rate=rate,
            multiplier=multiplier,
            amount=LineItemBuilder.round_to_cents(amount),
            is_taxable=is_taxable,
        )

    @staticmethod
    def reduction_line(
        code: str,
        description: str,
        quantity: Decimal,
        quantity_unit: str,
        rate: Decimal,
        amount: Decimal,
    ) -> EarningLine:
        """Audit line for pay withheld from basic pay (negative amount)."""
        return EarningLine(
            earning_type=EarningType.ADJUSTMENT,
            code=code,
            description=description,
            quantity=quantity,
            quantity_unit=quantity_unit,
            rate=rate,
            multiplier=Decimal("-1.00"),
            amount=-LineItemBuilder.round_to_cents(abs(amount)),
        )

    @staticmethod
    def contribution_lines(
        deduction_type: DeductionType,
        code_prefix: str,
        label: str,
        basis_amount: Decimal,
        employee_share: Decimal,
        employer_share: Decimal,
        table_type: str,
        table_id: str | None,
    ) -> list[DeductionLine]:
        """Employee and employer share lines for one statutory scheme."""
        lines: list[DeductionLine] = []
        for code_suffix, share, is_employee in (
            ("EE", employee_share, True),
            ("ER", employer_share, False),
        ):
            if share <= 0:
                continue
            rate = Decimal("0")
            if basis_amount > 0:
                rate = (share / basis_amount).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
            lines.append(
                DeductionLine(
                    deduction_type=deduction_type,
                    code=f"{code_prefix}_{code_suffix}",
                    description=f"{label} ({'Employee' if is_employee else 'Employer'} Share)",
                    basis_amount=basis_amount,
                    rate=rate,
                    amount=LineItemBuilder.round_to_cents(share),
                    is_employee_share=is_employee,
                    is_employer_share=not is_employee,
                    contribution_table_type=table_type,
                    contribution_table_id=table_id,
                )
            )
        return lines

    @staticmethod
    def sum_amounts(lines: Iterable[EarningLine | DeductionLine]) -> Decimal:
        total = Decimal("0")
        for line in lines:
            total += line.amount
        return LineItemBuilder.round_to_cents(total)

    @staticmethod
    def employee_deductions(lines: Iterable[DeductionLine]) -> Decimal:
        """Sum of amounts withheld from the employee (employer shares excluded)."""
        return LineItemBuilder.sum_amounts(l for l in lines if l.is_employee_share)

    @staticmethod
    def validate_line_signs(
        earnings: Iterable[EarningLine], deductions: Iterable[DeductionLine]
    ) -> list[str]:
        """Validate sign conventions, returning error messages (empty if valid)."""
        errors: list[str] = []

        for i, line in enumerate(earnings):
            if line.code in LineItemBuilder.NEGATIVE_EARNING_CODES:
                if line.amount > 0:
                    errors.append(
                        f"Earning line {i} ({line.code}) has positive amount {line.amount}, expected negative"
                    )
            elif line.amount < 0:
                errors.append(
                    f"Earning line {i} ({line.code}) has negative amount {line.amount}, expected positive"
                )

        for i, line in enumerate(deductions):
            if line.amount < 0:
                errors.append(
                    f"Deduction line {i} ({line.code}) has negative amount {line.amount}"
                )

        return errors
