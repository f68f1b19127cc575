"""Paystubs, pay runs and year-to-date ledger totals."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from decimal import Decimal
from typing import Any

from canpay.models.company import DeductionType, EarningType

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PaystubItem:
    """A single earning or deduction line on a paystub (always positive)."""

    type: str
    description: str
    amount: Decimal
    code_id: str | None = None
    hours: Decimal | None = None
    rate: Decimal | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "description": self.description,
            "amount": str(self.amount),
            "code_id": self.code_id,
            "hours": str(self.hours) if self.hours is not None else None,
            "rate": str(self.rate) if self.rate is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PaystubItem:
        return cls(
            type=data["type"],
            description=data["description"],
            amount=Decimal(data["amount"]),
            code_id=data.get("code_id"),
            hours=Decimal(data["hours"]) if data.get("hours") is not None else None,
            rate=Decimal(data["rate"]) if data.get("rate") is not None else None,
        )


@dataclass(frozen=True)
class EmployerContributions:
    cpp: Decimal = ZERO
    ei: Decimal = ZERO


@dataclass(frozen=True)
class Paystub:
    """One employee's result for one pay period. Immutable once produced."""

    employee_id: str
    employee_name: str
    pay_period: str
    tax_year: int
    earnings: tuple[PaystubItem, ...]
    deductions: tuple[PaystubItem, ...]
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    employer_contributions: EmployerContributions
    accrued_vacation_pay: Decimal = ZERO
    vacation_payout: Decimal = ZERO
    taxable_income: Decimal = ZERO
    pensionable_earnings: Decimal = ZERO
    insurable_earnings: Decimal = ZERO
    calculation_id: str = ""
    # ledger the statutory maximums were applied against; None for hand-built stubs
    ytd_basis: YtdTotals | None = None

    def deduction_amount(self, deduction_type: DeductionType | str) -> Decimal:
        """Sum of deduction lines of a type (zero when absent)."""
        key = deduction_type.value if isinstance(deduction_type, DeductionType) else deduction_type
        return sum((d.amount for d in self.deductions if d.type == key), ZERO)

    def earning_amount(self, earning_type: EarningType | str) -> Decimal:
        key = earning_type.value if isinstance(earning_type, EarningType) else earning_type
        return sum((e.amount for e in self.earnings if e.type == key), ZERO)

    @property
    def income_tax(self) -> Decimal:
        return self.deduction_amount(DeductionType.FEDERAL_TAX) + self.deduction_amount(
            DeductionType.PROVINCIAL_TAX
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "employee_id": self.employee_id,
            "employee_name": self.employee_name,
            "pay_period": self.pay_period,
            "tax_year": self.tax_year,
            "earnings": [e.to_dict() for e in self.earnings],
            "deductions": [d.to_dict() for d in self.deductions],
            "gross_pay": str(self.gross_pay),
            "total_deductions": str(self.total_deductions),
            "net_pay": str(self.net_pay),
            "employer_contributions": {
                "cpp": str(self.employer_contributions.cpp),
                "ei": str(self.employer_contributions.ei),
            },
            "accrued_vacation_pay": str(self.accrued_vacation_pay),
            "vacation_payout": str(self.vacation_payout),
            "taxable_income": str(self.taxable_income),
            "pensionable_earnings": str(self.pensionable_earnings),
            "insurable_earnings": str(self.insurable_earnings),
            "calculation_id": self.calculation_id,
            "ytd_basis": (
                {k: str(v) for k, v in self.ytd_basis.as_dict().items()}
                if self.ytd_basis is not None
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Paystub:
        employer = data["employer_contributions"]
        return cls(
            employee_id=data["employee_id"],
            employee_name=data["employee_name"],
            pay_period=data["pay_period"],
            tax_year=int(data["tax_year"]),
            earnings=tuple(PaystubItem.from_dict(e) for e in data["earnings"]),
            deductions=tuple(PaystubItem.from_dict(d) for d in data["deductions"]),
            gross_pay=Decimal(data["gross_pay"]),
            total_deductions=Decimal(data["total_deductions"]),
            net_pay=Decimal(data["net_pay"]),
            employer_contributions=EmployerContributions(
                cpp=Decimal(employer["cpp"]), ei=Decimal(employer["ei"])
            ),
            accrued_vacation_pay=Decimal(data["accrued_vacation_pay"]),
            vacation_payout=Decimal(data["vacation_payout"]),
            taxable_income=Decimal(data["taxable_income"]),
            pensionable_earnings=Decimal(data["pensionable_earnings"]),
            insurable_earnings=Decimal(data["insurable_earnings"]),
            calculation_id=data.get("calculation_id", ""),
            ytd_basis=(
                YtdTotals(**{k: Decimal(v) for k, v in data["ytd_basis"].items()})
                if data.get("ytd_basis")
                else None
            ),
        )


@dataclass(frozen=True)
class PayRun:
    """A committed pay run. Appended to history and never mutated."""

    run_id: str
    tenant_id: str
    pay_period: str
    tax_year: int
    paystubs: tuple[Paystub, ...]
    committed_at: datetime | None = None

    @property
    def total_gross(self) -> Decimal:
        return sum((p.gross_pay for p in self.paystubs), ZERO)

    @property
    def total_net(self) -> Decimal:
        return sum((p.net_pay for p in self.paystubs), ZERO)


@dataclass(frozen=True)
class YtdTotals:
    """Year-to-date ledger for one employee and tax year."""

    gross_pay: Decimal = ZERO
    cpp: Decimal = ZERO
    ei: Decimal = ZERO
    vacation_pay: Decimal = ZERO  # outstanding vacation pay liability
    income_tax: Decimal = ZERO
    pensionable_earnings: Decimal = ZERO
    insurable_earnings: Decimal = ZERO

    def post(self, paystub: Paystub) -> YtdTotals:
        """Return the totals after posting a committed paystub.

        Accrued vacation adds to the liability; a payout draws it down.
        """
        return replace(
            self,
            gross_pay=self.gross_pay + paystub.gross_pay,
            cpp=self.cpp + paystub.deduction_amount(DeductionType.CPP),
            ei=self.ei + paystub.deduction_amount(DeductionType.EI),
            vacation_pay=(
                self.vacation_pay + paystub.accrued_vacation_pay - paystub.vacation_payout
            ),
            income_tax=self.income_tax + paystub.income_tax,
            pensionable_earnings=self.pensionable_earnings + paystub.pensionable_earnings,
            insurable_earnings=self.insurable_earnings + paystub.insurable_earnings,
        )

    def as_dict(self) -> dict[str, Decimal]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
