"""Tenant directory: employees, company settings and time-off policies."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from canpay.exceptions import TenantNotFoundError, ValidationError
from canpay.models.company import CompanySettings, TimeOffPolicy
from canpay.models.employee import (
    AllocatedBankAccount,
    Employee,
    EmployeeProfile,
    EmployeeProfileRecord,
    PayType,
    Province,
)

logger = logging.getLogger(__name__)

SIN_PATTERN = re.compile(r"^\d{3}[- ]?\d{3}[- ]?\d{3}$")
INSTITUTION_PATTERN = re.compile(r"^\d{3}$")
TRANSIT_PATTERN = re.compile(r"^\d{5}$")
ACCOUNT_PATTERN = re.compile(r"^\d{7,12}$")


def validate_bank_allocation(accounts: list[AllocatedBankAccount]) -> list[str]:
    """Validate direct deposit accounts.

    Returns list of error messages (empty if valid). An employee with no
    accounts is valid here; missing bank details block finalization instead.
    """
    errors: list[str] = []
    if not accounts:
        return errors

    for i, account in enumerate(accounts, start=1):
        if not INSTITUTION_PATTERN.match(account.institution):
            errors.append(f"Bank account {i}: institution number must be 3 digits")
        if not TRANSIT_PATTERN.match(account.transit):
            errors.append(f"Bank account {i}: transit number must be 5 digits")
        if not ACCOUNT_PATTERN.match(account.account):
            errors.append(f"Bank account {i}: account number must be 7 to 12 digits")
        if account.allocation_percent <= 0:
            errors.append(f"Bank account {i}: allocation must be greater than 0%")

    total = sum((a.allocation_percent for a in accounts), Decimal("0"))
    if total != Decimal("100"):
        errors.append(f"Total bank account allocation must equal 100% (got {total}%)")
    return errors


def validate_profile(profile: EmployeeProfile) -> list[str]:
    """Check required profile fields."""
    errors: list[str] = []
    if not profile.name.strip():
        errors.append("Name is required")
    if Province.parse(profile.province) is None:
        errors.append(f"Province '{profile.province}' is not recognized")
    if profile.date_of_birth is None:
        errors.append("Date of birth is required")

    if profile.pay_type == PayType.SALARIED:
        if profile.annual_salary <= 0:
            errors.append("Salaried employees require a positive annual salary")
    else:
        if not profile.hourly_rate or profile.hourly_rate <= 0:
            errors.append("Hourly employees require a positive hourly rate")
        if not profile.weekly_hours or profile.weekly_hours <= 0:
            errors.append("Hourly employees require positive weekly hours")
    return errors


def validate_employee(employee: Employee, existing: list[Employee] | None = None) -> list[str]:
    """Validate an employee record before it is saved.

    Returns list of error messages (empty if valid).
    """
    errors: list[str] = []

    if not employee.employee_number.strip():
        errors.append("Employee ID is required")
    for other in existing or []:
        if other.id != employee.id and other.employee_number == employee.employee_number:
            errors.append(f"Employee ID '{employee.employee_number}' is already in use")
            break

    if not employee.profile_history:
        errors.append("At least one profile record is required")
    else:
        seen_dates: set[date] = set()
        for record in employee.profile_history:
            if record.effective_date in seen_dates:
                errors.append(
                    f"More than one profile record is effective {record.effective_date}"
                )
                continue
            seen_dates.add(record.effective_date)
            for message in validate_profile(record.profile):
                errors.append(f"Profile effective {record.effective_date}: {message}")

    if employee.payroll is not None and not SIN_PATTERN.match(employee.payroll.sin):
        errors.append("SIN must be 9 digits")

    errors.extend(validate_bank_allocation(employee.bank_accounts))
    return errors


@dataclass
class _Tenant:
    settings: CompanySettings
    employees: dict[str, Employee] = field(default_factory=dict)
    policies: dict[str, TimeOffPolicy] = field(default_factory=dict)


class TenantDirectory:
    """In-process registry of tenant data consumed by payroll.

    Employee saves are validated here so that bad records never reach the
    calculator.
    """

    def __init__(self) -> None:
        self._tenants: dict[str, _Tenant] = {}

    def register_tenant(
        self,
        tenant_id: str,
        settings: CompanySettings,
        policies: list[TimeOffPolicy] | None = None,
    ) -> None:
        self._tenants[tenant_id] = _Tenant(
            settings=settings,
            policies={p.id: p for p in policies or []},
        )
        logger.info("Registered tenant %s (%s)", tenant_id, settings.legal_name)

    def _tenant(self, tenant_id: str) -> _Tenant:
        try:
            return self._tenants[tenant_id]
        except KeyError:
            raise TenantNotFoundError(tenant_id) from None

    def get_company_settings(self, tenant_id: str) -> CompanySettings:
        return self._tenant(tenant_id).settings

    def get_time_off_policies(self, tenant_id: str) -> list[TimeOffPolicy]:
        return list(self._tenant(tenant_id).policies.values())

    def save_time_off_policy(self, tenant_id: str, policy: TimeOffPolicy) -> None:
        self._tenant(tenant_id).policies[policy.id] = policy

    def save_employee(self, tenant_id: str, employee: Employee) -> Employee:
        """Validate and store an employee. Raises ValidationError with every problem found."""
        tenant = self._tenant(tenant_id)
        errors = validate_employee(employee, list(tenant.employees.values()))
        if errors:
            raise ValidationError(errors)
        tenant.employees[employee.id] = employee
        return employee

    def get_employee(self, tenant_id: str, employee_id: str) -> Employee | None:
        return self._tenant(tenant_id).employees.get(employee_id)

    def list_employees(self, tenant_id: str) -> list[Employee]:
        return list(self._tenant(tenant_id).employees.values())

    def add_profile_record(
        self, tenant_id: str, employee_id: str, record: EmployeeProfileRecord
    ) -> Employee:
        """Append an effective-dated profile record to an employee's history."""
        employee = self.get_employee(tenant_id, employee_id)
        if employee is None:
            raise ValidationError([f"Employee {employee_id} not found"])
        errors = validate_profile(record.profile)
        if errors:
            raise ValidationError(errors)
        employee.add_profile_record(record)
        return employee
