"""Domain records and ORM models."""

from canpay.models.base import Base
from canpay.models.company import (
    AccrualMethod,
    CalculationMethod,
    CarryoverTiming,
    CompanySettings,
    DeductionCode,
    DeductionType,
    EarningCode,
    EarningType,
    GarnishmentCalculationType,
    GarnishmentConfiguration,
    RemitterType,
    TimeOffPolicy,
    VacationPayoutMethod,
)
from canpay.models.employee import (
    AllocatedBankAccount,
    CanadianPayroll,
    Employee,
    EmployeeGarnishment,
    EmployeeProfile,
    EmployeeProfileRecord,
    PayFrequency,
    PayType,
    Province,
    RecurringDeduction,
    RecurringEarning,
)
from canpay.models.ledger import EmployeeYtdRecord, PayRunRecord, PaystubRecord
from canpay.models.payroll import (
    EmployerContributions,
    PayRun,
    Paystub,
    PaystubItem,
    YtdTotals,
)

__all__ = [
    "AccrualMethod",
    "AllocatedBankAccount",
    "Base",
    "CalculationMethod",
    "CanadianPayroll",
    "CarryoverTiming",
    "CompanySettings",
    "DeductionCode",
    "DeductionType",
    "EarningCode",
    "EarningType",
    "Employee",
    "EmployeeGarnishment",
    "EmployeeProfile",
    "EmployeeProfileRecord",
    "EmployeeYtdRecord",
    "EmployerContributions",
    "GarnishmentCalculationType",
    "GarnishmentConfiguration",
    "PayFrequency",
    "PayRun",
    "PayRunRecord",
    "PayType",
    "Paystub",
    "PaystubItem",
    "PaystubRecord",
    "Province",
    "RecurringDeduction",
    "RecurringEarning",
    "RemitterType",
    "TimeOffPolicy",
    "VacationPayoutMethod",
    "YtdTotals",
]
