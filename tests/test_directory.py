"""Tests for tenant directory validation."""

from datetime import date
from decimal import Decimal

import pytest

from canpay.exceptions import ProfileNotFoundError, TenantNotFoundError, ValidationError
from canpay.models import (
    AllocatedBankAccount,
    CanadianPayroll,
    EmployeeProfileRecord,
    PayType,
    TimeOffPolicy,
)
from canpay.services.directory import (
    validate_bank_allocation,
    validate_employee,
    validate_profile,
)
from conftest import TENANT_ID, make_employee, make_profile


class TestBankAllocation:
    def test_single_account_full_allocation(self):
        accounts = [AllocatedBankAccount("001", "12345", "1234567", Decimal("100"))]
        assert validate_bank_allocation(accounts) == []

    def test_split_must_total_100(self):
        accounts = [
            AllocatedBankAccount("001", "12345", "1234567", Decimal("60")),
            AllocatedBankAccount("002", "54321", "7654321", Decimal("30")),
        ]
        assert validate_bank_allocation(accounts) == [
            "Total bank account allocation must equal 100% (got 90%)"
        ]

    def test_no_accounts_is_valid(self):
        assert validate_bank_allocation([]) == []

    def test_bad_numbers(self):
        accounts = [AllocatedBankAccount("1", "123", "12", Decimal("100"))]

        errors = validate_bank_allocation(accounts)

        assert "Bank account 1: institution number must be 3 digits" in errors
        assert "Bank account 1: transit number must be 5 digits" in errors
        assert "Bank account 1: account number must be 7 to 12 digits" in errors


class TestProfileValidation:
    def test_valid(self):
        assert validate_profile(make_profile()) == []

    def test_missing_fields(self):
        errors = validate_profile(make_profile(name=" ", province="Atlantis", date_of_birth=None))

        assert "Name is required" in errors
        assert "Province 'Atlantis' is not recognized" in errors
        assert "Date of birth is required" in errors

    def test_salaried_requires_salary(self):
        errors = validate_profile(make_profile(annual_salary=Decimal("0")))
        assert errors == ["Salaried employees require a positive annual salary"]

    def test_hourly_requires_rate_and_hours(self):
        errors = validate_profile(make_profile(pay_type=PayType.HOURLY))

        assert errors == [
            "Hourly employees require a positive hourly rate",
            "Hourly employees require positive weekly hours",
        ]


class TestEmployeeValidation:
    def test_duplicate_employee_number(self):
        existing = [make_employee("emp-1", "EMP-101")]
        newcomer = make_employee("emp-2", "EMP-101")

        assert "Employee ID 'EMP-101' is already in use" in validate_employee(newcomer, existing)

    def test_same_employee_can_be_resaved(self):
        employee = make_employee()
        assert validate_employee(employee, [employee]) == []

    def test_sin_format(self):
        employee = make_employee(
            payroll=CanadianPayroll("12345", Decimal("15705"), Decimal("12399"))
        )
        assert validate_employee(employee) == ["SIN must be 9 digits"]

    def test_sin_with_separators(self):
        employee = make_employee(
            payroll=CanadianPayroll("123-456-789", Decimal("15705"), Decimal("12399"))
        )
        assert validate_employee(employee) == []

    def test_requires_profile(self):
        employee = make_employee(profile_history=[])
        assert validate_employee(employee) == ["At least one profile record is required"]

    def test_duplicate_effective_date(self):
        employee = make_employee(
            profile_history=[
                EmployeeProfileRecord(date(2024, 1, 1), make_profile(name="Old")),
                EmployeeProfileRecord(date(2024, 1, 1), make_profile(name="New")),
            ]
        )
        assert validate_employee(employee) == [
            "More than one profile record is effective 2024-01-01"
        ]

    def test_every_profile_record_is_validated(self):
        employee = make_employee(
            profile_history=[
                EmployeeProfileRecord(date(2024, 7, 1), make_profile()),
                EmployeeProfileRecord(date(2023, 1, 1), make_profile(province="Atlantis")),
            ]
        )
        assert validate_employee(employee) == [
            "Profile effective 2023-01-01: Province 'Atlantis' is not recognized"
        ]


class TestTenantDirectory:
    def test_unknown_tenant(self, directory):
        with pytest.raises(TenantNotFoundError):
            directory.get_company_settings("tenant-unknown")

    def test_save_rejects_invalid_employee(self, directory):
        with pytest.raises(ValidationError) as exc_info:
            directory.save_employee(TENANT_ID, make_employee("emp-9", "EMP-101"))
        assert exc_info.value.messages == ["Employee ID 'EMP-101' is already in use"]


    def test_save_rejects_duplicate_effective_date(self, directory):
        employee = make_employee(
            "emp-9",
            "EMP-109",
            profile_history=[
                EmployeeProfileRecord(date(2024, 1, 1), make_profile(name="Old")),
                EmployeeProfileRecord(date(2024, 1, 1), make_profile(name="New")),
            ],
        )

        with pytest.raises(ValidationError):
            directory.save_employee(TENANT_ID, employee)

        assert directory.get_employee(TENANT_ID, "emp-9") is None
    def test_list_employees(self, directory):
        assert [e.id for e in directory.list_employees(TENANT_ID)] == ["emp-1", "emp-2", "emp-3"]

    def test_save_time_off_policy(self, directory):
        directory.save_time_off_policy(TENANT_ID, TimeOffPolicy("pto", "Personal Days"))
        assert "pto" in [p.id for p in directory.get_time_off_policies(TENANT_ID)]

    def test_add_profile_record(self, directory):
        record = EmployeeProfileRecord(
            date(2024, 7, 1), make_profile(role="Senior Engineer"), "Promotion"
        )

        employee = directory.add_profile_record(TENANT_ID, "emp-1", record)

        assert employee.current_profile(date(2024, 6, 30)).role == "Software Engineer"
        assert employee.current_profile(date(2024, 7, 1)).role == "Senior Engineer"

    def test_add_profile_record_same_date_rejected(self, directory):
        record = EmployeeProfileRecord(date(2023, 1, 1), make_profile(), "Hire")

        with pytest.raises(ValidationError):
            directory.add_profile_record(TENANT_ID, "emp-1", record)

    def test_profile_before_hire(self, directory):
        employee = directory.get_employee(TENANT_ID, "emp-1")

        with pytest.raises(ProfileNotFoundError):
            employee.current_profile(date(2022, 12, 31))
