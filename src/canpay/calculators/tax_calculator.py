"""Statutory withholding: income tax, CPP/QPP and EI."""

from __future__ import annotations

from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from canpay.calculators.line_builder import LineItemBuilder
from canpay.calculators.rate_tables import RateTable
from canpay.calculators.types import (
    ContributionRule,
    LineCandidate,
    StatutoryBases,
    TaxBracket,
)
from canpay.models.company import DeductionType
from canpay.models.employee import CanadianPayroll, Province
from canpay.models.payroll import YtdTotals

CPP_MINIMUM_AGE = 18
CPP_MAXIMUM_AGE = 70


def age_on(date_of_birth: date, as_of_date: date) -> int:
    """Age in whole years on a date."""
    before_birthday = (as_of_date.month, as_of_date.day) < (
        date_of_birth.month,
        date_of_birth.day,
    )
    return as_of_date.year - date_of_birth.year - int(before_birthday)


class TaxCalculator:
    """Calculates employee withholdings against one year's rate table.

    Income tax uses the annualization method: the period's taxable income is
    projected over the year, progressive brackets applied, the lowest-rate
    credit on TD1 claim plus annualized CPP and EI subtracted, and the result
    divided back to the period. Federal and provincial are computed separately.

    CPP/QPP and EI are capped by the annual maximum less what the employee has
    already contributed this year, so a maxed-out employee withholds zero.
    """

    def __init__(self, rate_table: RateTable):
        self.rate_table = rate_table

    def calculate_employee_withholdings(
        self,
        bases: StatutoryBases,
        province: Province,
        payroll: CanadianPayroll,
        periods_per_year: int,
        ytd: YtdTotals,
        date_of_birth: date | None = None,
        as_of_date: date | None = None,
    ) -> tuple[list[LineCandidate], list[LineCandidate]]:
        """Calculate employee withholding lines and employer contribution lines.

        Returns (employee_lines, employer_lines). The four employee lines are
        always present, even when zero, so every paystub itemizes them.
        """
        pension_rule = self.rate_table.pension_plan_for(province)
        ei_rule = self.rate_table.employment_insurance_for(province)

        if self.is_cpp_exempt(date_of_birth, as_of_date):
            cpp = Decimal("0")
        else:
            cpp = self.calculate_cpp(bases.pensionable, pension_rule, ytd.cpp, periods_per_year)
        ei = self.calculate_ei(bases.insurable, ei_rule, ytd.ei)

        annual_cpp = min(cpp * periods_per_year, pension_rule.max_contribution)
        annual_ei = min(ei * periods_per_year, ei_rule.max_contribution)

        federal = self.calculate_period_income_tax(
            bases.taxable,
            self.rate_table.federal_brackets,
            payroll.td1_federal + annual_cpp + annual_ei,
            periods_per_year,
        )
        provincial = self.calculate_period_income_tax(
            bases.taxable,
            self.rate_table.brackets_for(province),
            payroll.td1_provincial + annual_cpp + annual_ei,
            periods_per_year,
        )

        pension_label = "Quebec Pension Plan" if province == Province.QC else "Canada Pension Plan"
        employee_lines = [
            LineItemBuilder.create_tax_line(
                DeductionType.FEDERAL_TAX, DeductionType.FEDERAL_TAX.value, federal
            ),
            LineItemBuilder.create_tax_line(
                DeductionType.PROVINCIAL_TAX, f"{province.value} Income Tax", provincial
            ),
            LineItemBuilder.create_tax_line(DeductionType.CPP, pension_label, cpp),
            LineItemBuilder.create_tax_line(
                DeductionType.EI, DeductionType.EI.value, ei
            ),
        ]

        employer_lines = [
            LineItemBuilder.create_employer_line(
                DeductionType.CPP,
                f"{pension_label} (Employer)",
                cpp * pension_rule.employer_multiplier,
            ),
            LineItemBuilder.create_employer_line(
                DeductionType.EI,
                "Employment Insurance (Employer)",
                ei * ei_rule.employer_multiplier,
            ),
        ]
        return employee_lines, employer_lines

    @staticmethod
    def is_cpp_exempt(date_of_birth: date | None, as_of_date: date | None) -> bool:
        """Employees under 18 or aged 70 and over do not contribute."""
        if date_of_birth is None or as_of_date is None:
            return False
        age = age_on(date_of_birth, as_of_date)
        return age < CPP_MINIMUM_AGE or age >= CPP_MAXIMUM_AGE

    def calculate_cpp(
        self,
        pensionable: Decimal,
        rule: ContributionRule,
        ytd_contribution: Decimal,
        periods_per_year: int,
    ) -> Decimal:
        """CPP/QPP for the period after the prorated basic exemption."""
        if pensionable <= 0:
            return Decimal("0")
        exemption = rule.basic_exemption / periods_per_year
        contributory = max(Decimal("0"), pensionable - exemption)
        return self.calculate_capped_contribution(contributory, rule, ytd_contribution)

    def calculate_ei(
        self,
        insurable: Decimal,
        rule: ContributionRule,
        ytd_premium: Decimal,
    ) -> Decimal:
        """EI premium for the period."""
        if insurable <= 0:
            return Decimal("0")
        return self.calculate_capped_contribution(insurable, rule, ytd_premium)

    def calculate_capped_contribution(
        self,
        earnings: Decimal,
        rule: ContributionRule,
        ytd_contribution: Decimal = Decimal("0"),
    ) -> Decimal:
        """Calculate a contribution limited by the annual maximum."""
        if earnings <= 0:
            return Decimal("0")

        if ytd_contribution >= rule.max_contribution:
            return Decimal("0")  # Already hit the annual maximum
        remaining = rule.max_contribution - ytd_contribution

        contribution = _round(earnings * rule.employee_rate)
        return min(contribution, remaining)

    def calculate_period_income_tax(
        self,
        period_taxable: Decimal,
        brackets: tuple[TaxBracket, ...],
        credit_base: Decimal,
        periods_per_year: int,
    ) -> Decimal:
        """Income tax for one period by annualizing the period's taxable income."""
        if period_taxable <= 0:
            return Decimal("0")
        annual_income = period_taxable * periods_per_year
        annual_tax = self.calculate_income_tax(annual_income, brackets, credit_base)
        return _round(annual_tax / periods_per_year)

    def calculate_income_tax(
        self,
        annual_income: Decimal,
        brackets: tuple[TaxBracket, ...],
        credit_base: Decimal,
    ) -> Decimal:
        """Annual tax after non-refundable credits at the lowest bracket rate."""
        gross_tax = self.calculate_progressive_tax(annual_income, brackets)
        if not brackets:
            return gross_tax
        lowest_rate = min(b.rate for b in brackets)
        credits = _round(max(Decimal("0"), credit_base) * lowest_rate)
        return max(Decimal("0"), gross_tax - credits)

    def calculate_progressive_tax(
        self,
        wages: Decimal,
        brackets: tuple[TaxBracket, ...],
    ) -> Decimal:
        """Calculate tax using progressive brackets."""
        if wages <= 0:
            return Decimal("0")

        total_tax = Decimal("0")
        remaining = wages

        for bracket in sorted(brackets, key=lambda b: b.min_amount):
            if remaining <= 0:
                break

            bracket_min = bracket.min_amount
            bracket_max = bracket.max_amount if bracket.max_amount is not None else wages + 1

            if wages < bracket_min:
                continue

            taxable_in_bracket = min(remaining, bracket_max - bracket_min)
            if taxable_in_bracket > 0:
                total_tax += bracket.flat_amount + (taxable_in_bracket * bracket.rate)
                remaining -= taxable_in_bracket

        return _round(total_tax)


def _round(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
