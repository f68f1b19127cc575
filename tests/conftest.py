"""Pytest fixtures for payroll engine tests."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from canpay.calculators.engine import PayrollEngine
from canpay.calculators.line_builder import LineItemBuilder
from canpay.calculators.rate_tables import RateTableRepository
from canpay.calculators.types import CalculationInput
from canpay.config import Settings
from canpay.database import create_session_factory
from canpay.models import (
    AllocatedBankAccount,
    Base,
    CalculationMethod,
    CanadianPayroll,
    CompanySettings,
    DeductionCode,
    DeductionType,
    EarningCode,
    EarningType,
    Employee,
    EmployeeGarnishment,
    EmployeeProfile,
    EmployeeProfileRecord,
    EmployerContributions,
    GarnishmentCalculationType,
    GarnishmentConfiguration,
    PayFrequency,
    PayType,
    Paystub,
    PaystubItem,
    RemitterType,
    TimeOffPolicy,
    YtdTotals,
)
from canpay.services.directory import TenantDirectory
from canpay.services.pay_run_service import PayRunService
from canpay.store import InMemoryPayrollStore, SqlPayrollStore

TENANT_ID = "tenant-maple"
PAY_PERIOD = "Jan 1 - Jan 31"
TAX_YEAR = 2024

# Use in-memory SQLite for tests (with async support)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# Builders
# ============================================================================


def make_profile(**overrides) -> EmployeeProfile:
    values = {
        "name": "Aisha Khan",
        "role": "Software Engineer",
        "province": "ON",
        "date_of_birth": date(1990, 5, 15),
        "pay_type": PayType.SALARIED,
        "annual_salary": Decimal("60000"),
    }
    values.update(overrides)
    return EmployeeProfile(**values)


def make_employee(
    employee_id: str = "emp-1",
    employee_number: str = "EMP-101",
    pay_frequency: PayFrequency = PayFrequency.MONTHLY,
    profile: EmployeeProfile | None = None,
    **overrides,
) -> Employee:
    values = {
        "id": employee_id,
        "employee_number": employee_number,
        "pay_frequency": pay_frequency,
        "profile_history": [
            EmployeeProfileRecord(date(2023, 1, 1), profile or make_profile(), "Hire")
        ],
        "payroll": CanadianPayroll(
            sin="123456789",
            td1_federal=Decimal("15705"),
            td1_provincial=Decimal("12399"),
        ),
        "bank_accounts": [
            AllocatedBankAccount("001", "12345", "111222333", Decimal("100"), "Chequing")
        ],
    }
    values.update(overrides)
    return Employee(**values)


def make_input(**overrides) -> CalculationInput:
    """Calculation input for a $60,000/year Ontario employee paid monthly."""
    profile = overrides.pop("profile", make_profile())
    values = {
        "employee_id": "emp-1",
        "employee_name": profile.name,
        "pay_period": PAY_PERIOD,
        "tax_year": TAX_YEAR,
        "as_of_date": date(2024, 1, 31),
        "profile": profile,
        "pay_frequency": PayFrequency.MONTHLY,
        "payroll": CanadianPayroll(
            sin="123456789",
            td1_federal=Decimal("15705"),
            td1_provincial=Decimal("12399"),
        ),
        "earnings": [
            LineItemBuilder.create_earning_line(
                EarningType.REGULAR, "Regular Pay", profile.annual_salary / 12
            )
        ],
    }
    values.update(overrides)
    return CalculationInput(**values)


def make_stub(
    employee_id: str,
    gross: str,
    federal: str,
    provincial: str,
    cpp: str,
    ei: str,
    employer_cpp: str,
    employer_ei: str,
    pay_period: str = PAY_PERIOD,
) -> Paystub:
    """Hand-built paystub with known statutory amounts."""
    deductions = (
        PaystubItem(DeductionType.FEDERAL_TAX.value, "Federal Income Tax", Decimal(federal)),
        PaystubItem(DeductionType.PROVINCIAL_TAX.value, "Ontario Income Tax", Decimal(provincial)),
        PaystubItem(DeductionType.CPP.value, "Canada Pension Plan", Decimal(cpp)),
        PaystubItem(DeductionType.EI.value, "Employment Insurance", Decimal(ei)),
    )
    total = sum((d.amount for d in deductions), Decimal("0"))
    return Paystub(
        employee_id=employee_id,
        employee_name=employee_id,
        pay_period=pay_period,
        tax_year=TAX_YEAR,
        earnings=(PaystubItem(EarningType.REGULAR.value, "Regular Pay", Decimal(gross)),),
        deductions=deductions,
        gross_pay=Decimal(gross),
        total_deductions=total,
        net_pay=Decimal(gross) - total,
        employer_contributions=EmployerContributions(
            cpp=Decimal(employer_cpp), ei=Decimal(employer_ei)
        ),
        taxable_income=Decimal(gross),
        pensionable_earnings=Decimal(gross),
        insurable_earnings=Decimal(gross),
        calculation_id=f"calc-{employee_id}",
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="",
        engine_version="test",
        default_tax_year=TAX_YEAR,
        rate_table_dir=None,
        host="127.0.0.1",
        port=8000,
        debug=False,
        log_level="INFO",
    )


@pytest.fixture
def rate_tables() -> RateTableRepository:
    return RateTableRepository()


@pytest.fixture
def engine(rate_tables: RateTableRepository) -> PayrollEngine:
    return PayrollEngine(rate_tables, engine_version="test")


@pytest.fixture
def company() -> CompanySettings:
    return CompanySettings(
        legal_name="Maple Widgets Inc.",
        province="ON",
        business_number="123456789RP0001",
        remitter_type=RemitterType.REGULAR,
        earning_codes=[
            EarningCode("car-allowance", "Car Allowance"),
            EarningCode(
                "phone-reimbursement",
                "Phone Reimbursement",
                type=EarningType.REIMBURSEMENT,
                is_taxable=False,
                is_pensionable=False,
                is_insurable=False,
            ),
        ],
        deduction_codes=[
            DeductionCode(
                "rrsp",
                "Group RRSP",
                type=DeductionType.PRE_TAX,
                reduces_taxable_income=True,
            ),
            DeductionCode("health-dental", "Health & Dental"),
            DeductionCode(
                "union-dues",
                "Union Dues",
                calculation_method=CalculationMethod.PERCENT_OF_GROSS,
            ),
        ],
        garnishment_configs=[
            GarnishmentConfiguration(
                "court-order-on",
                "Ontario Court Order",
                "ON",
                GarnishmentCalculationType.FIXED_AMOUNT,
                priority=1,
            ),
            GarnishmentConfiguration(
                "cra-rtp",
                "CRA Requirement to Pay",
                "Federal",
                GarnishmentCalculationType.PERCENT_OF_NET,
                priority=2,
            ),
        ],
    )


@pytest.fixture
def policies() -> list[TimeOffPolicy]:
    return [
        TimeOffPolicy("sick-on", "Sick Leave"),
        TimeOffPolicy(
            "vac-on",
            "Vacation (ON)",
            is_vacation_policy=True,
            vacation_pay_accrual_percent=Decimal("4"),
        ),
    ]


@pytest.fixture
def employees() -> list[Employee]:
    aisha = make_employee(time_off_balances={"vac-on": Decimal("80")})
    ben = make_employee(
        "emp-2",
        "EMP-102",
        PayFrequency.BIWEEKLY,
        make_profile(
            name="Ben Carter",
            role="Technician",
            province="BC",
            pay_type=PayType.HOURLY,
            annual_salary=Decimal("0"),
            hourly_rate=Decimal("25"),
            weekly_hours=Decimal("40"),
        ),
        bank_accounts=[
            AllocatedBankAccount("002", "54321", "2223334445", Decimal("60")),
            AllocatedBankAccount("003", "67890", "7778889990", Decimal("40")),
        ],
    )
    chloe = make_employee(
        "emp-3",
        "EMP-103",
        PayFrequency.SEMI_MONTHLY,
        make_profile(name="Chloe Davis", role="Designer", province="Quebec"),
        garnishments=[EmployeeGarnishment("court-order-on", Decimal("150"))],
    )
    return [aisha, ben, chloe]


@pytest.fixture
def directory(
    company: CompanySettings,
    policies: list[TimeOffPolicy],
    employees: list[Employee],
) -> TenantDirectory:
    directory = TenantDirectory()
    directory.register_tenant(TENANT_ID, company, policies)
    for employee in employees:
        directory.save_employee(TENANT_ID, employee)
    return directory


@pytest.fixture
def store() -> InMemoryPayrollStore:
    return InMemoryPayrollStore()


@pytest.fixture
def service(
    store: InMemoryPayrollStore,
    directory: TenantDirectory,
    engine: PayrollEngine,
    settings: Settings,
) -> PayRunService:
    return PayRunService(store, directory, engine=engine, settings=settings)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def sql_store(db_engine: AsyncEngine) -> SqlPayrollStore:
    return SqlPayrollStore(create_session_factory(db_engine))


@pytest.fixture
def zero_ytd() -> YtdTotals:
    return YtdTotals()
