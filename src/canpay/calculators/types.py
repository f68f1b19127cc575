"""Type definitions for calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

from canpay.models.company import (
    DeductionCode,
    EarningCode,
    GarnishmentCalculationType,
    VacationPayoutMethod,
)
from canpay.models.employee import (
    CanadianPayroll,
    EmployeeProfile,
    PayFrequency,
    RecurringDeduction,
)
from canpay.models.payroll import YtdTotals


class LineType(str, Enum):
    """Pay line item types."""

    EARNING = "EARNING"
    DEDUCTION = "DEDUCTION"
    TAX = "TAX"  # income tax and CPP/EI withholdings
    EMPLOYER_CONTRIBUTION = "EMPLOYER_CONTRIBUTION"


@dataclass
class LineCandidate:
    """A candidate line item before it is placed on a paystub."""

    line_type: LineType
    amount: Decimal  # Final amount (signed per conventions)
    item_type: str  # EarningType / DeductionType value
    description: str
    code_id: str | None = None

    # Quantity/rate (for hourly earnings)
    hours: Decimal | None = None
    rate: Decimal | None = None

    # Which statutory bases an earning counts toward
    taxability_flags: dict[str, bool] = field(default_factory=dict)

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "line_type": self.line_type.value,
            "item_type": self.item_type,
            "description": self.description,
            "code_id": self.code_id,
            "hours": str(self.hours) if self.hours is not None else None,
            "rate": str(self.rate) if self.rate is not None else None,
            "amount": str(self.amount),
        }


@dataclass(frozen=True)
class TaxBracket:
    """Tax bracket for progressive taxation."""

    min_amount: Decimal
    max_amount: Decimal | None  # None = no upper limit
    rate: Decimal  # As decimal, e.g., 0.205 for 20.5%
    flat_amount: Decimal = Decimal("0")  # Flat amount at bracket start


@dataclass(frozen=True)
class ContributionRule:
    """Rate and annual maximum for CPP/QPP or EI."""

    employee_rate: Decimal
    max_contribution: Decimal
    max_earnings: Decimal
    basic_exemption: Decimal = Decimal("0")
    employer_multiplier: Decimal = Decimal("1")


@dataclass(frozen=True)
class DetailedGarnishment:
    """A garnishment flattened from its configuration for calculation."""

    name: str
    calculation_type: GarnishmentCalculationType
    priority: int
    amount: Decimal  # dollars, or percent of net-after-tax pay
    config_id: str | None = None


@dataclass
class CalculationInput:
    """Everything the calculator needs for one employee and one pay period."""

    employee_id: str
    employee_name: str
    pay_period: str
    tax_year: int
    as_of_date: date
    profile: EmployeeProfile
    pay_frequency: PayFrequency
    payroll: CanadianPayroll | None
    earnings: list[LineCandidate]
    recurring_deductions: list[RecurringDeduction] = field(default_factory=list)
    garnishments: list[DetailedGarnishment] = field(default_factory=list)
    earning_codes: dict[str, EarningCode] = field(default_factory=dict)
    deduction_codes: dict[str, DeductionCode] = field(default_factory=dict)
    vacation_accrual_percent: Decimal = Decimal("0")
    vacation_payout_method: VacationPayoutMethod = VacationPayoutMethod.ACCRUE
    ytd: YtdTotals = field(default_factory=YtdTotals)


@dataclass
class StatutoryBases:
    """Per-period income bases after pre-tax deductions."""

    taxable: Decimal = Decimal("0")
    pensionable: Decimal = Decimal("0")
    insurable: Decimal = Decimal("0")
