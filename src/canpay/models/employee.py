"""Employee records: effective-dated profiles, payroll info, bank accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from canpay.exceptions import ProfileNotFoundError, ValidationError


class PayFrequency(str, Enum):
    """Pay schedule frequency."""

    WEEKLY = "Weekly"
    BIWEEKLY = "Bi-Weekly"
    SEMI_MONTHLY = "Semi-Monthly"
    MONTHLY = "Monthly"

    @property
    def periods_per_year(self) -> int:
        return _PERIODS_PER_YEAR[self]


_PERIODS_PER_YEAR = {
    PayFrequency.WEEKLY: 52,
    PayFrequency.BIWEEKLY: 26,
    PayFrequency.SEMI_MONTHLY: 24,
    PayFrequency.MONTHLY: 12,
}


class Province(str, Enum):
    """Canadian provinces and territories (code -> name)."""

    ON = "Ontario"
    QC = "Quebec"
    BC = "British Columbia"
    AB = "Alberta"
    MB = "Manitoba"
    SK = "Saskatchewan"
    NS = "Nova Scotia"
    NB = "New Brunswick"
    NL = "Newfoundland and Labrador"
    PE = "Prince Edward Island"
    YT = "Yukon"
    NT = "Northwest Territories"
    NU = "Nunavut"

    @classmethod
    def parse(cls, value: str | Province | None) -> Province | None:
        """Resolve a province from its code or full name (case-insensitive)."""
        if value is None:
            return None
        if isinstance(value, Province):
            return value
        key = value.strip()
        if key.upper() in cls.__members__:
            return cls[key.upper()]
        for member in cls:
            if member.value.lower() == key.lower():
                return member
        return None


class PayType(str, Enum):
    SALARIED = "Salaried"
    HOURLY = "Hourly"


@dataclass(frozen=True)
class EmployeeProfile:
    """Snapshot of an employee's data at a point in time."""

    name: str
    role: str
    province: str
    date_of_birth: date | None = None
    pay_type: PayType = PayType.SALARIED
    annual_salary: Decimal = Decimal("0")
    hourly_rate: Decimal | None = None
    weekly_hours: Decimal | None = None
    supervisor_id: str | None = None


@dataclass(frozen=True)
class EmployeeProfileRecord:
    """An effective-dated profile entry in an employee's history."""

    effective_date: date
    profile: EmployeeProfile
    status: str = "Hire"


@dataclass(frozen=True)
class CanadianPayroll:
    """SIN and TD1 personal tax credit claim amounts."""

    sin: str
    td1_federal: Decimal
    td1_provincial: Decimal


@dataclass(frozen=True)
class AllocatedBankAccount:
    """Direct deposit account receiving a percentage of net pay."""

    institution: str  # 3 digits
    transit: str  # 5 digits
    account: str
    allocation_percent: Decimal
    nickname: str | None = None


@dataclass(frozen=True)
class EmployeeGarnishment:
    """A garnishment assigned to an employee (fixed dollars or a percentage)."""

    config_id: str
    amount: Decimal


@dataclass(frozen=True)
class RecurringEarning:
    code_id: str
    amount: Decimal


@dataclass(frozen=True)
class RecurringDeduction:
    code_id: str
    amount: Decimal  # dollars, or percent when the code is % of gross


@dataclass
class Employee:
    """Employee record with append-only, effective-dated profile history.

    Year-to-date totals are not held here; they live in the payroll store's
    ledger keyed by employee ID and tax year, so that committed paystubs never
    hold a live reference to the employee record.
    """

    id: str
    employee_number: str
    pay_frequency: PayFrequency
    profile_history: list[EmployeeProfileRecord] = field(default_factory=list)
    payroll: CanadianPayroll | None = None
    bank_accounts: list[AllocatedBankAccount] = field(default_factory=list)
    garnishments: list[EmployeeGarnishment] = field(default_factory=list)
    recurring_earnings: list[RecurringEarning] = field(default_factory=list)
    recurring_deductions: list[RecurringDeduction] = field(default_factory=list)
    time_off_balances: dict[str, Decimal] = field(default_factory=dict)
    is_admin: bool = False

    def __post_init__(self) -> None:
        self.profile_history = sorted(
            self.profile_history, key=lambda r: r.effective_date, reverse=True
        )

    def current_profile(self, as_of_date: date) -> EmployeeProfile:
        """Return the latest profile effective on or before as_of_date."""
        for record in self.profile_history:
            if record.effective_date <= as_of_date:
                return record.profile
        raise ProfileNotFoundError(self.id, as_of_date)

    def add_profile_record(self, record: EmployeeProfileRecord) -> None:
        """Append a profile record, keeping history sorted newest first."""
        if any(r.effective_date == record.effective_date for r in self.profile_history):
            raise ValidationError(
                [f"A profile record effective {record.effective_date} already exists"]
            )
        self.profile_history = sorted(
            [*self.profile_history, record],
            key=lambda r: r.effective_date,
            reverse=True,
        )

    @property
    def display_name(self) -> str:
        """Name from the most recent profile record."""
        if self.profile_history:
            return self.profile_history[0].profile.name
        return self.employee_number
