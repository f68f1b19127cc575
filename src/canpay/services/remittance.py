"""CRA source deduction remittance summaries and due dates."""

from __future__ import annotations

import calendar
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from canpay.models.company import DeductionType, RemitterType
from canpay.models.payroll import ZERO, Paystub


@dataclass(frozen=True)
class RemittanceSummary:
    """Amounts owed to the CRA for one committed pay run."""

    pay_period: str
    total_employees: int
    total_gross: Decimal
    total_income_tax: Decimal  # federal + provincial
    total_cpp: Decimal  # employee share
    total_ei: Decimal  # employee share
    employer_cpp: Decimal
    employer_ei: Decimal

    @property
    def cpp_remitted(self) -> Decimal:
        return self.total_cpp + self.employer_cpp

    @property
    def ei_remitted(self) -> Decimal:
        return self.total_ei + self.employer_ei

    @property
    def total_remittance(self) -> Decimal:
        return self.total_income_tax + self.cpp_remitted + self.ei_remitted


def summarize_remittance(paystubs: Sequence[Paystub], pay_period: str = "") -> RemittanceSummary:
    """Sum employee and employer statutory amounts across a run's paystubs.

    Pure; recomputed on every call.
    """
    total_gross = ZERO
    income_tax = ZERO
    cpp = ZERO
    ei = ZERO
    employer_cpp = ZERO
    employer_ei = ZERO

    for stub in paystubs:
        total_gross += stub.gross_pay
        income_tax += stub.deduction_amount(DeductionType.FEDERAL_TAX)
        income_tax += stub.deduction_amount(DeductionType.PROVINCIAL_TAX)
        cpp += stub.deduction_amount(DeductionType.CPP)
        ei += stub.deduction_amount(DeductionType.EI)
        employer_cpp += stub.employer_contributions.cpp
        employer_ei += stub.employer_contributions.ei

    if not pay_period and paystubs:
        pay_period = paystubs[0].pay_period

    return RemittanceSummary(
        pay_period=pay_period,
        total_employees=len(paystubs),
        total_gross=total_gross,
        total_income_tax=income_tax,
        total_cpp=cpp,
        total_ei=ei,
        employer_cpp=employer_cpp,
        employer_ei=employer_ei,
    )


def remittance_due_date(paid_on: date, remitter_type: RemitterType) -> date:
    """Date the CRA must receive source deductions for pay issued on ``paid_on``.

    - Quarterly: 15th of the month after the calendar quarter
    - Regular: 15th of the following month
    - Threshold 1: pay issued 1st-15th is due the 25th; 16th-month end is due
      the 10th of the following month
    - Threshold 2: three working days after the end of the period (7th, 14th,
      21st, month end) in which pay was issued

    Due dates landing on a weekend move to the next business day.
    """
    if remitter_type == RemitterType.QUARTERLY:
        quarter_end_month = ((paid_on.month - 1) // 3 + 1) * 3
        due = _fifteenth_of_next_month(paid_on.year, quarter_end_month)

    elif remitter_type == RemitterType.THRESHOLD_1:
        if paid_on.day <= 15:
            due = paid_on.replace(day=25)
        else:
            due = _fifteenth_of_next_month(paid_on.year, paid_on.month).replace(day=10)

    elif remitter_type == RemitterType.THRESHOLD_2:
        last_day = calendar.monthrange(paid_on.year, paid_on.month)[1]
        for boundary in (7, 14, 21, last_day):
            if paid_on.day <= boundary:
                return _add_working_days(paid_on.replace(day=boundary), 3)

    else:
        due = _fifteenth_of_next_month(paid_on.year, paid_on.month)

    return _next_business_day(due)


def _fifteenth_of_next_month(year: int, month: int) -> date:
    if month == 12:
        return date(year + 1, 1, 15)
    return date(year, month + 1, 15)


def _next_business_day(day: date) -> date:
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def _add_working_days(day: date, count: int) -> date:
    while count > 0:
        day += timedelta(days=1)
        if day.weekday() < 5:
            count -= 1
    return day
