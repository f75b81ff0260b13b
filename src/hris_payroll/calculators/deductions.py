"""Statutory contributions, withholding tax and other deductions."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from hris_payroll.calculators.adjustments import AdjustmentResolver
from hris_payroll.calculators.contributions import ContributionLookup, ContributionResult
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.loans import LoanAmortizer
from hris_payroll.calculators.rate_calculator import RateCalculator
from hris_payroll.calculators.types import (
    AdjustmentSnapshot,
    CompensationSnapshot,
    ContributionScheme,
    DeductionLine,
    DeductionsResult,
    DeductionType,
    LoanSnapshot,
    PeriodDescriptor,
)

logger = logging.getLogger(__name__)


class DeductionsComposer:
    """Builds employee deductions and employer contributions for a period.

    Timing on semi-monthly cycles:
    - SSS and Pag-IBIG: full monthly amount on the second cutoff, nothing on the first
    - PhilHealth: half the monthly amount on each cutoff; the second cutoff
      takes the remainder so both halves add up to the monthly share
    Every other cycle deducts full monthly amounts each period.

    A scheme whose lookup reports an error contributes zero and is logged;
    the remaining schemes are unaffected.
    """

    SCHEME_LINES: dict[ContributionScheme, tuple[DeductionType, str, str]] = {
        ContributionScheme.SSS: (DeductionType.SSS, "SSS", "SSS Contribution"),
        ContributionScheme.PHILHEALTH: (DeductionType.PHILHEALTH, "PHIC", "PhilHealth Contribution"),
        ContributionScheme.PAGIBIG: (DeductionType.PAGIBIG, "HDMF", "Pag-IBIG Contribution"),
    }

    def __init__(
        self,
        contribution_lookup: ContributionLookup,
        loan_amortizer: LoanAmortizer | None = None,
        adjustment_resolver: AdjustmentResolver | None = None,
    ):
        self.contribution_lookup = contribution_lookup
        self.loan_amortizer = loan_amortizer or LoanAmortizer()
        self.adjustment_resolver = adjustment_resolver or AdjustmentResolver()

    def compose(
        self,
        compensation: CompensationSnapshot | None,
        period: PeriodDescriptor,
        gross_pay: Decimal,
        adjustments: Sequence[AdjustmentSnapshot] = (),
        loans: Sequence[LoanSnapshot] = (),
    ) -> DeductionsResult:
        result = DeductionsResult()
        result.monthly_salary = self.monthly_salary(compensation, period, gross_pay)
        effective_date = period.cutoff_end

        if period.deducts_monthly_items:
            sss = self._lookup(
                result, ContributionScheme.SSS,
                self.contribution_lookup.sss(result.monthly_salary, effective_date),
            )
            result.sss_employee = sss.employee_share
            result.sss_employer = sss.employer_share
            self._add_scheme_lines(
                result, ContributionScheme.SSS, sss.employee_share, sss.employer_share, sss.table_id
            )

        philhealth = self._lookup(
            result, ContributionScheme.PHILHEALTH,
            self.contribution_lookup.philhealth(result.monthly_salary, effective_date),
        )
        result.philhealth_employee = self.split_for_cutoff(philhealth.employee_share, period)
        result.philhealth_employer = self.split_for_cutoff(philhealth.employer_share, period)
        self._add_scheme_lines(
            result,
            ContributionScheme.PHILHEALTH,
            result.philhealth_employee,
            result.philhealth_employer,
            philhealth.table_id,
        )

        if period.deducts_monthly_items:
            pagibig = self._lookup(
                result, ContributionScheme.PAGIBIG,
                self.contribution_lookup.pagibig(result.monthly_salary, effective_date),
            )
            result.pagibig_employee = pagibig.employee_share
            result.pagibig_employer = pagibig.employer_share
            self._add_scheme_lines(
                result,
                ContributionScheme.PAGIBIG,
                pagibig.employee_share,
                pagibig.employer_share,
                pagibig.table_id,
            )

        self._add_withholding_tax(result, period, gross_pay)

        loan_lines = self.loan_amortizer.deduction_lines(loans, period)
        adjustment_lines = self.adjustment_resolver.deduction_lines(adjustments, period)
        result.lines.extend(loan_lines)
        result.lines.extend(adjustment_lines)
        result.loan_deductions = LineItemBuilder.sum_amounts(loan_lines)
        result.adjustment_deductions = LineItemBuilder.sum_amounts(adjustment_lines)
        result.other_deductions = result.loan_deductions + result.adjustment_deductions

        result.total_deductions = (
            result.sss_employee
            + result.philhealth_employee
            + result.pagibig_employee
            + result.withholding_tax
            + result.other_deductions
        )
        result.total_employer_contributions = (
            result.sss_employer + result.philhealth_employer + result.pagibig_employer
        )
        return result

    @staticmethod
    def monthly_salary(
        compensation: CompensationSnapshot | None,
        period: PeriodDescriptor,
        gross_pay: Decimal,
    ) -> Decimal:
        """Monthly-equivalent salary for bracket lookups."""
        if compensation is not None:
            return RateCalculator.monthly_equivalent(compensation.basic_pay, compensation.pay_type)
        if period.is_semi_monthly:
            return LineItemBuilder.round_to_cents(gross_pay * 2)
        return LineItemBuilder.round_to_cents(gross_pay)

    @staticmethod
    def split_for_cutoff(monthly_share: Decimal, period: PeriodDescriptor) -> Decimal:
        """Portion of a monthly share due this period (halved on semi-monthly cycles)."""
        if not period.is_semi_monthly:
            return monthly_share
        first_half = (monthly_share / 2).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if period.is_first_cutoff:
            return first_half
        return monthly_share - first_half

    def _add_withholding_tax(
        self, result: DeductionsResult, period: PeriodDescriptor, gross_pay: Decimal
    ) -> None:
        pre_tax = result.sss_employee + result.philhealth_employee + result.pagibig_employee
        result.taxable_income = max(Decimal("0"), gross_pay - pre_tax)

        tax = self.contribution_lookup.withholding_tax(
            result.taxable_income, period.cutoff_end, period.tax_pay_period
        )
        if not tax.ok:
            self._warn(result, f"withholding tax lookup failed: {tax.error}")
            return
        if tax.tax_due <= 0:
            return

        result.withholding_tax = LineItemBuilder.round_to_cents(tax.tax_due)
        result.lines.append(
            DeductionLine(
                deduction_type=DeductionType.WITHHOLDING_TAX,
                code="TAX",
                description="Withholding Tax",
                basis_amount=result.taxable_income,
                rate=Decimal("0"),
                amount=result.withholding_tax,
                contribution_table_type="withholding_tax",
                contribution_table_id=tax.table_id,
            )
        )

    def _lookup(
        self,
        result: DeductionsResult,
        scheme: ContributionScheme,
        contribution: ContributionResult,
    ) -> ContributionResult:
        if contribution.ok:
            return contribution
        self._warn(result, f"{scheme.value} lookup failed: {contribution.error}")
        return ContributionResult(table_id=contribution.table_id, error=contribution.error)

    def _add_scheme_lines(
        self,
        result: DeductionsResult,
        scheme: ContributionScheme,
        employee_share: Decimal,
        employer_share: Decimal,
        table_id: str | None,
    ) -> None:
        deduction_type, code_prefix, label = self.SCHEME_LINES[scheme]
        result.lines.extend(
            LineItemBuilder.contribution_lines(
                deduction_type=deduction_type,
                code_prefix=code_prefix,
                label=label,
                basis_amount=result.monthly_salary,
                employee_share=employee_share,
                employer_share=employer_share,
                table_type=scheme.value,
                table_id=table_id,
            )
        )

    @staticmethod
    def _warn(result: DeductionsResult, message: str) -> None:
        logger.warning("Contribution degraded to zero: %s", message)
        result.warnings.append(message)
