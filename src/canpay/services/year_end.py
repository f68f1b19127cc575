"""Year-end projections over the YTD ledger: T4 slips, T4 summary and ROE."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from canpay.calculators.rate_tables import RateTableRepository
from canpay.exceptions import ValidationError
from canpay.models.employee import Employee
from canpay.models.payroll import ZERO
from canpay.services.directory import TenantDirectory
from canpay.store.base import PayrollStore

DEFAULT_WEEKLY_HOURS = Decimal("40")
MAX_INSURABLE_WEEKS = 52


class ROEReasonCode(str, Enum):
    """Reason for issuing a Record of Employment."""

    A = "A - Shortage of work / End of contract or season"
    E = "E - Quit"
    M = "M - Dismissal or termination"
    D = "D - Illness or injury"
    F = "F - Maternity"
    H = "H - Work-sharing"
    K = "K - Other / Change of payroll provider"


@dataclass(frozen=True)
class T4Slip:
    """Statement of remuneration paid for one employee and year."""

    tax_year: int
    employee_id: str
    employee_name: str
    sin: str
    province: str
    employment_income: Decimal  # box 14
    cpp_contributions: Decimal  # box 16
    ei_premiums: Decimal  # box 18
    income_tax_deducted: Decimal  # box 22
    ei_insurable_earnings: Decimal  # box 24
    cpp_pensionable_earnings: Decimal  # box 26

    def boxes(self) -> dict[str, Decimal]:
        return {
            "14": self.employment_income,
            "16": self.cpp_contributions,
            "18": self.ei_premiums,
            "22": self.income_tax_deducted,
            "24": self.ei_insurable_earnings,
            "26": self.cpp_pensionable_earnings,
        }


@dataclass(frozen=True)
class T4Summary:
    tax_year: int
    business_number: str
    slip_count: int
    employment_income: Decimal
    cpp_contributions: Decimal
    ei_premiums: Decimal
    income_tax_deducted: Decimal
    employer_cpp: Decimal
    employer_ei: Decimal

    @property
    def total_deductions_reported(self) -> Decimal:
        return (
            self.cpp_contributions
            + self.employer_cpp
            + self.ei_premiums
            + self.employer_ei
            + self.income_tax_deducted
        )


@dataclass(frozen=True)
class RecordOfEmployment:
    employee_id: str
    employee_name: str
    sin: str
    business_number: str
    pay_period_type: str
    reason_code: ROEReasonCode
    last_day_worked: date
    final_pay_period_end: date
    total_insurable_hours: Decimal  # block 15B
    total_insurable_earnings: Decimal  # block 15C


class YearEndService:
    """Read-only projections. Nothing here writes to the store."""

    def __init__(
        self,
        store: PayrollStore,
        directory: TenantDirectory,
        rate_tables: RateTableRepository,
    ):
        self.store = store
        self.directory = directory
        self.rate_tables = rate_tables

    def _employee(self, tenant_id: str, employee_id: str) -> Employee:
        employee = self.directory.get_employee(tenant_id, employee_id)
        if employee is None:
            raise ValidationError([f"Employee {employee_id} not found"])
        return employee

    async def t4_slip(self, tenant_id: str, employee_id: str, tax_year: int) -> T4Slip:
        employee = self._employee(tenant_id, employee_id)
        profile = employee.current_profile(date(tax_year, 12, 31))
        rate_table = self.rate_tables.get(tax_year)
        province = rate_table.resolve_province(profile.province)
        ytd = await self.store.get_ytd(tenant_id, employee_id, tax_year)

        max_insurable = rate_table.employment_insurance_for(province).max_earnings
        max_pensionable = rate_table.pension_plan_for(province).max_earnings

        return T4Slip(
            tax_year=tax_year,
            employee_id=employee.id,
            employee_name=profile.name,
            sin=employee.payroll.sin if employee.payroll else "",
            province=province.name,
            employment_income=ytd.gross_pay,
            cpp_contributions=ytd.cpp,
            ei_premiums=ytd.ei,
            income_tax_deducted=ytd.income_tax,
            ei_insurable_earnings=min(ytd.insurable_earnings, max_insurable),
            cpp_pensionable_earnings=min(ytd.pensionable_earnings, max_pensionable),
        )

    async def t4_summary(self, tenant_id: str, tax_year: int) -> T4Summary:
        """Totals over every employee paid in the year, plus employer contributions."""
        company = self.directory.get_company_settings(tenant_id)
        slips = []
        for employee in self.directory.list_employees(tenant_id):
            ytd = await self.store.get_ytd(tenant_id, employee.id, tax_year)
            if ytd.gross_pay > 0:
                slips.append(await self.t4_slip(tenant_id, employee.id, tax_year))

        employer_cpp = ZERO
        employer_ei = ZERO
        for run in await self.store.get_history(tenant_id, tax_year):
            for stub in run.paystubs:
                employer_cpp += stub.employer_contributions.cpp
                employer_ei += stub.employer_contributions.ei

        return T4Summary(
            tax_year=tax_year,
            business_number=company.business_number,
            slip_count=len(slips),
            employment_income=sum((s.employment_income for s in slips), ZERO),
            cpp_contributions=sum((s.cpp_contributions for s in slips), ZERO),
            ei_premiums=sum((s.ei_premiums for s in slips), ZERO),
            income_tax_deducted=sum((s.income_tax_deducted for s in slips), ZERO),
            employer_cpp=employer_cpp,
            employer_ei=employer_ei,
        )

    async def record_of_employment(
        self,
        tenant_id: str,
        employee_id: str,
        reason_code: ROEReasonCode,
        last_day_worked: date,
        final_pay_period_end: date,
    ) -> RecordOfEmployment:
        """Project an ROE from the employee's ledger for the year of the last day worked."""
        if last_day_worked > final_pay_period_end:
            raise ValidationError(["Last day worked cannot be after the final pay period end"])

        employee = self._employee(tenant_id, employee_id)
        company = self.directory.get_company_settings(tenant_id)
        profile = employee.current_profile(last_day_worked)
        tax_year = last_day_worked.year
        rate_table = self.rate_tables.get(tax_year)
        province = rate_table.resolve_province(profile.province)
        ytd = await self.store.get_ytd(tenant_id, employee_id, tax_year)

        start = date(tax_year, 1, 1)
        hire_dates = [r.effective_date for r in employee.profile_history]
        if hire_dates and min(hire_dates) > start:
            start = min(hire_dates)
        weeks = min(MAX_INSURABLE_WEEKS, ((last_day_worked - start).days + 7) // 7)
        weekly_hours = profile.weekly_hours or DEFAULT_WEEKLY_HOURS
        max_insurable = rate_table.employment_insurance_for(province).max_earnings

        return RecordOfEmployment(
            employee_id=employee.id,
            employee_name=profile.name,
            sin=employee.payroll.sin if employee.payroll else "",
            business_number=company.business_number,
            pay_period_type=employee.pay_frequency.value,
            reason_code=reason_code,
            last_day_worked=last_day_worked,
            final_pay_period_end=final_pay_period_end,
            total_insurable_hours=weekly_hours * max(weeks, 0),
            total_insurable_earnings=min(ytd.insurable_earnings, max_insurable),
        )
