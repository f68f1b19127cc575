"""Tests for T4 slips, the T4 summary and Records of Employment."""

from datetime import date
from decimal import Decimal

import pytest

from canpay.exceptions import ValidationError
from canpay.models import EmployeeProfileRecord, YtdTotals
from canpay.services.year_end import ROEReasonCode, YearEndService
from conftest import PAY_PERIOD, TENANT_ID, make_employee, make_profile

pytestmark = pytest.mark.asyncio


@pytest.fixture
def year_end(store, directory, rate_tables):
    return YearEndService(store, directory, rate_tables)


async def _commit_january(service, employees):
    preview = await service.preview_pay_run(TENANT_ID, PAY_PERIOD, employees)
    return await service.commit_pay_run(preview)


class TestT4Slip:
    """Test T4 boxes projected from the YTD ledger."""

    async def test_boxes_after_one_run(self, year_end, service, employees):
        await _commit_january(service, employees[:1])

        slip = await year_end.t4_slip(TENANT_ID, "emp-1", 2024)

        assert slip.boxes() == {
            "14": Decimal("5000.00"),
            "16": Decimal("280.15"),
            "18": Decimal("83.00"),
            "22": Decimal("729.37"),
            "24": Decimal("5000.00"),
            "26": Decimal("5000.00"),
        }
        assert slip.sin == "123456789"
        assert slip.province == "ON"

    async def test_earnings_boxes_capped(self, year_end, store):
        await store.update_ytd(
            TENANT_ID,
            "emp-1",
            2024,
            YtdTotals(
                gross_pay=Decimal("70000"),
                pensionable_earnings=Decimal("70000"),
                insurable_earnings=Decimal("70000"),
            ),
        )

        slip = await year_end.t4_slip(TENANT_ID, "emp-1", 2024)

        assert slip.employment_income == Decimal("70000")
        assert slip.ei_insurable_earnings == Decimal("63200.00")
        assert slip.cpp_pensionable_earnings == Decimal("68500.00")

    async def test_no_pay_is_zero(self, year_end):
        slip = await year_end.t4_slip(TENANT_ID, "emp-2", 2024)
        assert slip.employment_income == Decimal("0")

    async def test_unknown_employee(self, year_end):
        with pytest.raises(ValidationError):
            await year_end.t4_slip(TENANT_ID, "emp-404", 2024)


class TestT4Summary:
    async def test_totals_with_employer_share(self, year_end, service, employees):
        await _commit_january(service, employees[:1])

        summary = await year_end.t4_summary(TENANT_ID, 2024)

        assert summary.slip_count == 1
        assert summary.business_number == "123456789RP0001"
        assert summary.employment_income == Decimal("5000.00")
        assert summary.employer_cpp == Decimal("280.15")
        assert summary.employer_ei == Decimal("116.20")
        assert summary.total_deductions_reported == Decimal("1488.87")

    async def test_every_paid_employee_included(self, year_end, service, employees):
        await _commit_january(service, employees)

        summary = await year_end.t4_summary(TENANT_ID, 2024)

        assert summary.slip_count == 3
        assert summary.employment_income == Decimal("9500.00")

    async def test_other_year_is_empty(self, year_end, service, employees):
        await _commit_january(service, employees)

        summary = await year_end.t4_summary(TENANT_ID, 2023)

        assert summary.slip_count == 0
        assert summary.employer_cpp == Decimal("0")


class TestRecordOfEmployment:
    """Test ROE projection."""

    async def test_insurable_hours_and_earnings(self, year_end, service, employees):
        await _commit_january(service, employees[:1])

        roe = await year_end.record_of_employment(
            TENANT_ID, "emp-1", ROEReasonCode.K, date(2024, 6, 30), date(2024, 6, 30)
        )

        assert roe.total_insurable_hours == Decimal("1040")
        assert roe.total_insurable_earnings == Decimal("5000.00")
        assert roe.pay_period_type == "Monthly"
        assert roe.reason_code == ROEReasonCode.K
        assert roe.business_number == "123456789RP0001"

    async def test_mid_year_hire_counts_from_hire_date(self, year_end, directory):
        directory.save_employee(
            TENANT_ID,
            make_employee(
                "emp-4",
                "EMP-104",
                profile_history=[
                    EmployeeProfileRecord(date(2024, 3, 1), make_profile(name="Dev Patel"), "Hire")
                ],
            ),
        )

        roe = await year_end.record_of_employment(
            TENANT_ID, "emp-4", ROEReasonCode.E, date(2024, 3, 14), date(2024, 3, 15)
        )

        assert roe.total_insurable_hours == Decimal("80")
        assert roe.total_insurable_earnings == Decimal("0")

    async def test_hourly_uses_weekly_hours(self, year_end):
        roe = await year_end.record_of_employment(
            TENANT_ID, "emp-2", ROEReasonCode.A, date(2024, 1, 7), date(2024, 1, 12)
        )
        assert roe.total_insurable_hours == Decimal("40")

    async def test_last_day_after_final_period(self, year_end):
        with pytest.raises(ValidationError):
            await year_end.record_of_employment(
                TENANT_ID, "emp-1", ROEReasonCode.M, date(2024, 7, 1), date(2024, 6, 30)
            )
