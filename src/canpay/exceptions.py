"""Domain exceptions for payroll calculation, validation and commit."""

from __future__ import annotations

from collections.abc import Iterable


class PayrollError(Exception):
    """Base class for all payroll engine errors."""


# ===== Validation =====


class ValidationError(PayrollError):
    """Raised when input data fails validation before calculation or commit."""

    def __init__(self, messages: Iterable[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class FinalizationBlockedError(ValidationError):
    """Raised when a reviewed pay run cannot be finalized (e.g. missing bank details)."""


class TenantNotFoundError(PayrollError):
    """Raised when a tenant has not been registered."""

    def __init__(self, tenant_id: str):
        self.tenant_id = tenant_id
        super().__init__(f"Tenant '{tenant_id}' not found")


# ===== Calculation =====


class CalculationError(PayrollError):
    """Raised when a paystub cannot be calculated. Fatal to the whole pay run."""


class JurisdictionNotFoundError(CalculationError):
    """Raised when a province is not present in the rate table for the tax year."""

    def __init__(self, province: str, tax_year: int):
        self.province = province
        self.tax_year = tax_year
        super().__init__(f"Unrecognized jurisdiction '{province}' for tax year {tax_year}")


class RateTableNotFoundError(CalculationError):
    """Raised when no rate table exists for the requested tax year."""

    def __init__(self, tax_year: int):
        self.tax_year = tax_year
        super().__init__(f"No payroll rate table for tax year {tax_year}")


class MissingTD1Error(CalculationError):
    """Raised when an employee has no TD1 personal tax credit amounts."""

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id} has no TD1 tax credit data")


class ProfileNotFoundError(CalculationError):
    """Raised when no profile record is effective on the requested date."""

    def __init__(self, employee_id: str, as_of_date):
        self.employee_id = employee_id
        self.as_of_date = as_of_date
        super().__init__(f"Employee {employee_id} has no profile effective on {as_of_date}")


class NegativeNetPayError(CalculationError):
    """Raised when deductions exceed gross pay."""

    def __init__(self, employee_id: str, net_pay):
        self.employee_id = employee_id
        self.net_pay = net_pay
        super().__init__(f"Negative net pay {net_pay} for employee {employee_id}")


class PayRunCalculationError(PayrollError):
    """Raised when any employee in a pay run fails; no paystubs are returned."""

    def __init__(self, employee_id: str, employee_name: str, cause: Exception):
        self.employee_id = employee_id
        self.employee_name = employee_name
        self.cause = cause
        super().__init__(
            f"Payroll calculation failed for {employee_name} ({employee_id}): {cause}"
        )


# ===== Commit =====


class CommitError(PayrollError):
    """Raised when a pay run cannot be committed."""


class DuplicateCommitError(CommitError):
    """Raised when a pay run has already been appended to history."""

    def __init__(self, run_id: str):
        self.run_id = run_id
        super().__init__(f"Pay run {run_id} has already been committed")


class InvalidTransitionError(CommitError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class StalePreviewError(CommitError):
    """Raised when a YTD ledger changed after the paystubs were calculated."""

    def __init__(self, run_id: str, employee_ids: Iterable[str]):
        self.run_id = run_id
        self.employee_ids = list(employee_ids)
        super().__init__(
            f"YTD totals for {', '.join(self.employee_ids)} changed after pay run {run_id} "
            "was previewed. Preview the pay run again before committing."
        )
