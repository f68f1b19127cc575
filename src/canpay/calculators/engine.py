"""Per-employee payroll calculation engine."""

from __future__ import annotations

import hashlib
import json
import logging
from decimal import Decimal
from uuid import UUID

from canpay.calculators.line_builder import LineItemBuilder
from canpay.calculators.rate_tables import RateTableRepository
from canpay.calculators.tax_calculator import TaxCalculator
from canpay.calculators.types import (
    CalculationInput,
    DetailedGarnishment,
    LineCandidate,
    LineType,
    StatutoryBases,
)
from canpay.config import get_settings
from canpay.exceptions import CalculationError, MissingTD1Error, NegativeNetPayError
from canpay.models.company import (
    CalculationMethod,
    DeductionCode,
    DeductionType,
    EarningType,
    GarnishmentCalculationType,
    VacationPayoutMethod,
)
from canpay.models.employee import RecurringDeduction
from canpay.models.payroll import EmployerContributions, Paystub

logger = logging.getLogger(__name__)

VACATION_PAYOUT_CODE = "vacation-payout"


class PayrollEngine:
    """Gross-to-net calculation for one employee and one pay period.

    Calculation pipeline (stable order per employee):
    1) Vacation pay (accrued as a liability, or paid out as an earning)
    2) Gross pay
    3) Pre-tax deductions, reducing the statutory bases per code flags
    4) Income tax, CPP/QPP and EI (employee), plus employer CPP/EI
    5) Post-tax recurring deductions
    6) Garnishments in priority order, limited to remaining net pay
    7) Net pay and sign validation

    The engine is pure: it reads the year-to-date totals handed to it and
    never writes them.
    """

    def __init__(
        self,
        rate_tables: RateTableRepository,
        engine_version: str | None = None,
    ):
        self.rate_tables = rate_tables
        self.engine_version = engine_version or get_settings().engine_version

    def calculate_employee(self, calc: CalculationInput) -> Paystub:
        """Calculate a paystub. Raises CalculationError subclasses on bad input."""
        rate_table = self.rate_tables.get(calc.tax_year)
        province = rate_table.resolve_province(calc.profile.province)
        if calc.payroll is None:
            raise MissingTD1Error(calc.employee_id)

        periods = calc.pay_frequency.periods_per_year
        lines: list[LineCandidate] = list(calc.earnings)

        # 1) Vacation pay
        vacationable = LineItemBuilder.sum_base(lines, "vacationable")
        vacation = LineItemBuilder.round_to_cents(
            vacationable * calc.vacation_accrual_percent / 100
        )
        accrued_vacation = Decimal("0.00")
        vacation_payout = Decimal("0.00")
        if vacation > 0:
            if calc.vacation_payout_method == VacationPayoutMethod.PAYOUT:
                vacation_payout = vacation
                lines.append(
                    LineItemBuilder.create_earning_line(
                        EarningType.VACATION,
                        f"Vacation Pay ({calc.vacation_accrual_percent}%)",
                        vacation,
                        code_id=VACATION_PAYOUT_CODE,
                        taxability_flags={
                            "taxable": True,
                            "pensionable": True,
                            "insurable": True,
                            "vacationable": False,
                        },
                    )
                )
            else:
                accrued_vacation = vacation

        # 2) Gross
        gross = LineItemBuilder.calculate_gross_from_lines(lines)
        bases = StatutoryBases(
            taxable=LineItemBuilder.sum_base(lines, "taxable"),
            pensionable=LineItemBuilder.sum_base(lines, "pensionable"),
            insurable=LineItemBuilder.sum_base(lines, "insurable"),
        )

        # 3) Pre-tax deductions
        pretax, posttax = self._split_deductions(calc.recurring_deductions, calc.deduction_codes)
        for deduction, code in pretax:
            line = self._calculate_deduction(deduction, code, gross)
            if line is None:
                continue
            lines.append(line)
            amount = abs(line.amount)
            if code.reduces_taxable_income:
                bases.taxable -= amount
            if code.reduces_pensionable_earnings:
                bases.pensionable -= amount
            if code.reduces_insurable_earnings:
                bases.insurable -= amount

        bases.taxable = max(Decimal("0"), bases.taxable)
        bases.pensionable = max(Decimal("0"), bases.pensionable)
        bases.insurable = max(Decimal("0"), bases.insurable)

        # 4) Statutory withholdings
        tax_calculator = TaxCalculator(rate_table)
        tax_lines, employer_lines = tax_calculator.calculate_employee_withholdings(
            bases,
            province,
            calc.payroll,
            periods,
            calc.ytd,
            date_of_birth=calc.profile.date_of_birth,
            as_of_date=calc.as_of_date,
        )
        lines.extend(tax_lines)
        net_after_tax = gross + sum((line.amount for line in tax_lines), Decimal("0"))

        # 5) Post-tax deductions
        for deduction, code in posttax:
            line = self._calculate_deduction(deduction, code, gross)
            if line is not None:
                lines.append(line)

        # 6) Garnishments (priority order)
        remaining = LineItemBuilder.calculate_net_from_lines(lines)
        for garnishment in sorted(calc.garnishments, key=lambda g: g.priority):
            line = self._calculate_garnishment(calc, garnishment, net_after_tax, remaining)
            if line is not None:
                lines.append(line)
                remaining += line.amount

        # 7) Net and validation
        sign_errors = LineItemBuilder.validate_line_signs(lines + employer_lines)
        if sign_errors:
            raise CalculationError("; ".join(sign_errors))

        net = LineItemBuilder.calculate_net_from_lines(lines)
        if net < 0:
            raise NegativeNetPayError(calc.employee_id, net)

        employer_cpp = sum(
            (l.amount for l in employer_lines if l.item_type == DeductionType.CPP.value),
            Decimal("0.00"),
        )
        employer_ei = sum(
            (l.amount for l in employer_lines if l.item_type == DeductionType.EI.value),
            Decimal("0.00"),
        )

        earnings = [l for l in lines if l.line_type == LineType.EARNING]
        deductions = [l for l in lines if l.line_type in (LineType.DEDUCTION, LineType.TAX)]

        calculation_id = self._generate_calculation_id(calc, lines + employer_lines)
        logger.debug(
            "Calculated %s for %s: gross=%s net=%s", calc.employee_id, calc.pay_period, gross, net
        )

        return Paystub(
            employee_id=calc.employee_id,
            employee_name=calc.employee_name,
            pay_period=calc.pay_period,
            tax_year=calc.tax_year,
            earnings=tuple(LineItemBuilder.to_paystub_item(l) for l in earnings),
            deductions=tuple(LineItemBuilder.to_paystub_item(l) for l in deductions),
            gross_pay=gross,
            total_deductions=LineItemBuilder.calculate_total_deductions(lines),
            net_pay=net,
            employer_contributions=EmployerContributions(cpp=employer_cpp, ei=employer_ei),
            accrued_vacation_pay=accrued_vacation,
            vacation_payout=vacation_payout,
            taxable_income=LineItemBuilder.round_to_cents(bases.taxable),
            pensionable_earnings=LineItemBuilder.round_to_cents(bases.pensionable),
            insurable_earnings=LineItemBuilder.round_to_cents(bases.insurable),
            calculation_id=calculation_id,
            ytd_basis=calc.ytd,
        )

    @staticmethod
    def _split_deductions(
        deductions: list[RecurringDeduction],
        codes: dict[str, DeductionCode],
    ) -> tuple[list[tuple[RecurringDeduction, DeductionCode]], list[tuple[RecurringDeduction, DeductionCode]]]:
        """Resolve deductions against the catalog and split into pre-tax and post-tax.

        A deduction whose code is not in the catalog is treated as a fixed
        post-tax deduction described by its code ID.
        """
        pretax = []
        posttax = []
        for deduction in deductions:
            code = codes.get(deduction.code_id) or DeductionCode(
                id=deduction.code_id, name=deduction.code_id
            )
            if code.is_pretax:
                pretax.append((deduction, code))
            else:
                posttax.append((deduction, code))
        return pretax, posttax

    @staticmethod
    def _calculate_deduction(
        deduction: RecurringDeduction, code: DeductionCode, gross: Decimal
    ) -> LineCandidate | None:
        """Calculate a single recurring deduction."""
        if code.calculation_method == CalculationMethod.PERCENT_OF_GROSS:
            amount = LineItemBuilder.round_to_cents(gross * deduction.amount / 100)
        else:
            amount = deduction.amount

        if amount <= 0:
            return None

        return LineItemBuilder.create_deduction_line(
            code.type, code.name, amount, code_id=code.id
        )

    @staticmethod
    def _calculate_garnishment(
        calc: CalculationInput,
        garnishment: DetailedGarnishment,
        net_after_tax: Decimal,
        remaining_net: Decimal,
    ) -> LineCandidate | None:
        """Calculate one garnishment, limited to the net pay still available."""
        if garnishment.calculation_type == GarnishmentCalculationType.PERCENT_OF_NET:
            requested = LineItemBuilder.round_to_cents(
                max(Decimal("0"), net_after_tax) * garnishment.amount / 100
            )
        else:
            requested = LineItemBuilder.round_to_cents(garnishment.amount)

        if requested <= 0:
            return None

        applied = min(requested, max(Decimal("0"), remaining_net))
        if applied < requested:
            logger.warning(
                "Garnishment '%s' for %s limited to %s of %s requested (insufficient net pay)",
                garnishment.name,
                calc.employee_id,
                applied,
                requested,
            )
        if applied <= 0:
            return None

        return LineItemBuilder.create_deduction_line(
            DeductionType.GARNISHMENT,
            garnishment.name,
            applied,
            code_id=garnishment.config_id,
        )

    def _generate_calculation_id(
        self, calc: CalculationInput, lines: list[LineCandidate]
    ) -> str:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": calc.employee_id,
            "pay_period": calc.pay_period,
            "tax_year": calc.tax_year,
            "as_of_date": str(calc.as_of_date),
            "engine_version": self.engine_version,
            "ytd": {k: str(v) for k, v in calc.ytd.as_dict().items()},
            "lines": [LineItemBuilder.compute_line_hash(line) for line in lines],
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return str(UUID(bytes=hash_bytes[:16]))
