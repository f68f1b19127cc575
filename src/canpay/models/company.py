"""Company settings, payroll code catalogs and time-off policies."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

from canpay.models.employee import PayFrequency


class EarningType(str, Enum):
    """Earning line item types."""

    REGULAR = "Regular Pay"
    OVERTIME = "Overtime"
    BONUS = "Bonus"
    VACATION = "Vacation Pay"
    STAT_HOLIDAY = "Statutory Holiday Pay"
    # Configurable types
    EARNING = "Earning"
    TAXABLE_BENEFIT = "Taxable Benefit"
    REIMBURSEMENT = "Reimbursement"


class DeductionType(str, Enum):
    """Deduction line item types."""

    FEDERAL_TAX = "Federal Income Tax"
    PROVINCIAL_TAX = "Provincial Income Tax"
    CPP = "Canada Pension Plan"
    EI = "Employment Insurance"
    GARNISHMENT = "Garnishment"
    # Configurable types
    PRE_TAX = "Pre-Tax"
    POST_TAX = "Post-Tax"
    ADVANCE_REPAYMENT = "Off-Cycle Advance Repayment"


class CalculationMethod(str, Enum):
    FIXED_AMOUNT = "Fixed Amount"
    PERCENT_OF_GROSS = "% of Gross Pay"


class GarnishmentCalculationType(str, Enum):
    FIXED_AMOUNT = "Fixed Amount"
    PERCENT_OF_NET = "% of Net Pay"


class VacationPayoutMethod(str, Enum):
    """Whether vacation pay is banked as a liability or paid each period."""

    ACCRUE = "accrue"
    PAYOUT = "payout"


class RemitterType(str, Enum):
    """CRA remitter type, which determines the remittance due date."""

    QUARTERLY = "Quarterly"
    REGULAR = "Monthly (Regular)"
    THRESHOLD_1 = "Threshold 1 (Accelerated)"
    THRESHOLD_2 = "Threshold 2 (Accelerated)"


class AccrualMethod(str, Enum):
    ANNUAL = "Annual"
    PER_PAY_PERIOD = "Per Pay Period"
    UNLIMITED = "Unlimited"


class CarryoverTiming(str, Enum):
    CALENDAR_YEAR_END = "Calendar Year End"
    ANNIVERSARY_DATE = "Anniversary Date"
    CUSTOM_DATE = "Custom Date"


@dataclass(frozen=True)
class EarningCode:
    id: str
    name: str
    type: EarningType = EarningType.EARNING
    is_taxable: bool = True
    is_pensionable: bool = True  # Subject to CPP
    is_insurable: bool = True  # Subject to EI


@dataclass(frozen=True)
class DeductionCode:
    id: str
    name: str
    type: DeductionType = DeductionType.POST_TAX
    calculation_method: CalculationMethod = CalculationMethod.FIXED_AMOUNT
    reduces_taxable_income: bool = False
    # RRSP-style deductions reduce taxable income but not the CPP/EI base
    reduces_pensionable_earnings: bool = False
    reduces_insurable_earnings: bool = False

    @property
    def is_pretax(self) -> bool:
        return self.type == DeductionType.PRE_TAX


@dataclass(frozen=True)
class GarnishmentConfiguration:
    """Garnishment definition. Lower priority numbers are deducted first."""

    id: str
    name: str
    jurisdiction: str  # "Federal" or a province
    calculation_type: GarnishmentCalculationType
    priority: int
    description: str = ""


@dataclass(frozen=True)
class TimeOffPolicy:
    id: str
    name: str
    accrual_method: AccrualMethod = AccrualMethod.ANNUAL
    accrual_rate: Decimal = Decimal("0")
    carryover_limit: Decimal = Decimal("0")
    carryover_timing: CarryoverTiming = CarryoverTiming.CALENDAR_YEAR_END
    is_paid: bool = True
    is_vacation_policy: bool = False
    vacation_pay_accrual_percent: Decimal = Decimal("0")


@dataclass
class CompanySettings:
    """Tenant-level payroll configuration."""

    legal_name: str
    province: str
    business_number: str = ""
    remitter_type: RemitterType = RemitterType.REGULAR
    pay_frequency: PayFrequency = PayFrequency.SEMI_MONTHLY
    vacation_payout_method: VacationPayoutMethod = VacationPayoutMethod.ACCRUE
    earning_codes: list[EarningCode] = field(default_factory=list)
    deduction_codes: list[DeductionCode] = field(default_factory=list)
    garnishment_configs: list[GarnishmentConfiguration] = field(default_factory=list)

    def earning_code_map(self) -> dict[str, EarningCode]:
        return {c.id: c for c in self.earning_codes}

    def deduction_code_map(self) -> dict[str, DeductionCode]:
        return {c.id: c for c in self.deduction_codes}

    def garnishment_config_map(self) -> dict[str, GarnishmentConfiguration]:
        return {g.id: g for g in self.garnishment_configs}
