"""Pay run service - main orchestrator for payroll operations."""

from __future__ import annotations

import hashlib
import inspect
import json
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from canpay.calculators.engine import PayrollEngine
from canpay.calculators.line_builder import LineItemBuilder
from canpay.calculators.rate_tables import RateTableRepository
from canpay.calculators.types import CalculationInput, DetailedGarnishment, LineCandidate
from canpay.config import Settings, get_settings
from canpay.exceptions import InvalidTransitionError, PayRunCalculationError, ValidationError
from canpay.models.company import CompanySettings, EarningType, TimeOffPolicy
from canpay.models.employee import Employee, EmployeeProfile, PayType
from canpay.models.payroll import PayRun, Paystub
from canpay.services.commit_service import CommitService
from canpay.services.directory import TenantDirectory
from canpay.services.state_machine import PayRunStateMachine, PayRunStatus
from canpay.store.base import PayrollStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], Awaitable[None] | None]

WEEKS_PER_YEAR = 52
_PERIOD_SEPARATOR = re.compile(r"\s*[-–—]\s*|\s+to\s+")
_NOT_VACATIONABLE = {EarningType.REIMBURSEMENT, EarningType.TAXABLE_BENEFIT}


def parse_pay_period(label: str, tax_year: int) -> tuple[date, date]:
    """Parse a pay period label such as "Jan 1 - Jan 15" into (start, end).

    A period whose end falls before its start wraps into the next year
    ("Dec 25 - Jan 7").
    """
    parts = _PERIOD_SEPARATOR.split(label.strip())
    if len(parts) != 2:
        raise ValidationError([f"Pay period '{label}' must look like 'Jan 1 - Jan 15'"])

    start = _parse_period_date(parts[0], tax_year, label)
    end = _parse_period_date(parts[1], tax_year, label)
    if end < start:
        end = _parse_period_date(parts[1], tax_year + 1, label)
    return start, end


def _parse_period_date(value: str, year: int, label: str) -> date:
    text = " ".join(value.replace(",", " ").split())
    for fmt in ("%b %d %Y", "%B %d %Y"):
        try:
            return datetime.strptime(f"{text} {year}", fmt).date()
        except ValueError:
            continue
    raise ValidationError([f"Pay period '{label}' has an unreadable date '{value}'"])


@dataclass
class PayRunPreview:
    """Calculated but uncommitted pay run, held for review."""

    run_id: str
    tenant_id: str
    pay_period: str
    tax_year: int
    period_start: date
    period_end: date
    paystubs: tuple[Paystub, ...]
    status: PayRunStatus = PayRunStatus.PREVIEW

    @property
    def total_gross(self) -> Decimal:
        return sum((p.gross_pay for p in self.paystubs), Decimal("0.00"))

    @property
    def total_net(self) -> Decimal:
        return sum((p.net_pay for p in self.paystubs), Decimal("0.00"))


class PayRunService:
    """Service for managing the pay run lifecycle.

    Operations:
    - preview_pay_run: Calculate paystubs for the selected employees
    - commit_pay_run: Post YTD ledgers and append the run to history
    - discard_pay_run: Drop a preview without side effects

    Previews only read from the store. Employees are processed one at a time
    in input order, and a single failure aborts the whole run.
    """

    def __init__(
        self,
        store: PayrollStore,
        directory: TenantDirectory,
        engine: PayrollEngine | None = None,
        settings: Settings | None = None,
    ):
        self.store = store
        self.directory = directory
        self.settings = settings or get_settings()
        self.engine = engine or PayrollEngine(
            RateTableRepository(self.settings.rate_table_dir),
            engine_version=self.settings.engine_version,
        )
        self.commit_service = CommitService(store, directory)

    async def preview_pay_run(
        self,
        tenant_id: str,
        pay_period_label: str,
        employees: list[Employee],
        on_progress: ProgressCallback | None = None,
        tax_year: int | None = None,
    ) -> PayRunPreview:
        """Calculate a paystub for every selected employee.

        Raises:
            ValidationError: If the selection or pay period label is invalid
            PayRunCalculationError: If any employee fails; no paystubs are returned
        """
        year = tax_year or self.settings.default_tax_year
        company = self.directory.get_company_settings(tenant_id)
        policies = self.directory.get_time_off_policies(tenant_id)

        self._validate_selection(employees)
        period_start, period_end = parse_pay_period(pay_period_label, year)

        logger.info(
            "Previewing pay run for tenant %s, period %s (%d employees)",
            tenant_id,
            pay_period_label,
            len(employees),
        )

        paystubs: list[Paystub] = []
        total = len(employees)
        for index, employee in enumerate(employees):
            try:
                calc = await self._build_input(
                    tenant_id, company, policies, employee, pay_period_label, year, period_end
                )
                paystub = self.engine.calculate_employee(calc)
            except Exception as exc:
                logger.exception(
                    "Pay run for tenant %s aborted at employee %s", tenant_id, employee.id
                )
                raise PayRunCalculationError(employee.id, employee.display_name, exc) from exc

            paystubs.append(paystub)
            logger.debug("Calculated employee %s (%d/%d)", employee.id, index + 1, total)

            if on_progress is not None:
                result = on_progress((index + 1) * 100 / total)
                if inspect.isawaitable(result):
                    await result

        run_id = self._generate_run_id(tenant_id, pay_period_label, year, paystubs)
        preview = PayRunPreview(
            run_id=run_id,
            tenant_id=tenant_id,
            pay_period=pay_period_label,
            tax_year=year,
            period_start=period_start,
            period_end=period_end,
            paystubs=tuple(paystubs),
        )
        logger.info(
            "Previewed pay run %s: gross=%s net=%s", run_id, preview.total_gross, preview.total_net
        )
        return preview

    async def commit_pay_run(self, preview: PayRunPreview) -> PayRun:
        """Commit a reviewed preview.

        Raises InvalidTransitionError if the preview was already committed or
        discarded.
        """
        errors = PayRunStateMachine.validate_preview_for_transition(
            preview, PayRunStatus.COMMITTED
        )
        if errors:
            raise InvalidTransitionError(
                preview.status, PayRunStatus.COMMITTED, "; ".join(errors)
            )

        run = await self.commit_service.commit(
            tenant_id=preview.tenant_id,
            run_id=preview.run_id,
            pay_period=preview.pay_period,
            tax_year=preview.tax_year,
            paystubs=list(preview.paystubs),
        )
        preview.status = PayRunStatus.COMMITTED
        return run

    async def commit_payroll_run(self, paystubs: list[Paystub], tenant_id: str) -> PayRun:
        """Commit paystubs reviewed outside a preview object."""
        if not paystubs:
            raise ValidationError(["Cannot commit an empty pay run"])
        pay_period = paystubs[0].pay_period
        tax_year = paystubs[0].tax_year
        if any(p.pay_period != pay_period or p.tax_year != tax_year for p in paystubs):
            raise ValidationError(["All paystubs in a pay run must share one pay period"])

        run_id = self._generate_run_id(tenant_id, pay_period, tax_year, paystubs)
        return await self.commit_service.commit(
            tenant_id=tenant_id,
            run_id=run_id,
            pay_period=pay_period,
            tax_year=tax_year,
            paystubs=paystubs,
        )

    def discard_pay_run(self, preview: PayRunPreview) -> PayRunPreview:
        """Discard a preview. Nothing was persisted, so only the status changes."""
        PayRunStateMachine.validate_transition(preview.status, PayRunStatus.DISCARDED)
        preview.status = PayRunStatus.DISCARDED
        logger.info("Discarded pay run preview %s", preview.run_id)
        return preview

    async def get_history(self, tenant_id: str, tax_year: int | None = None) -> list[PayRun]:
        return await self.store.get_history(tenant_id, tax_year)

    @staticmethod
    def _validate_selection(employees: list[Employee]) -> None:
        errors: list[str] = []
        if not employees:
            errors.append("No employees selected for this pay run")
        seen: set[str] = set()
        for employee in employees:
            if employee.id in seen:
                errors.append(f"Employee {employee.id} is selected more than once")
            seen.add(employee.id)
        if errors:
            raise ValidationError(errors)

    async def _build_input(
        self,
        tenant_id: str,
        company: CompanySettings,
        policies: list[TimeOffPolicy],
        employee: Employee,
        pay_period: str,
        tax_year: int,
        as_of_date: date,
    ) -> CalculationInput:
        """Assemble the calculator input for one employee."""
        profile = employee.current_profile(as_of_date)
        periods = employee.pay_frequency.periods_per_year

        earnings = [self._regular_pay_line(profile, periods)]
        earnings.extend(self._recurring_earning_lines(employee, company))

        return CalculationInput(
            employee_id=employee.id,
            employee_name=profile.name,
            pay_period=pay_period,
            tax_year=tax_year,
            as_of_date=as_of_date,
            profile=profile,
            pay_frequency=employee.pay_frequency,
            payroll=employee.payroll,
            earnings=earnings,
            recurring_deductions=list(employee.recurring_deductions),
            garnishments=self._detailed_garnishments(employee, company),
            earning_codes=company.earning_code_map(),
            deduction_codes=company.deduction_code_map(),
            vacation_accrual_percent=self._vacation_accrual_percent(employee, policies),
            vacation_payout_method=company.vacation_payout_method,
            ytd=await self.store.get_ytd(tenant_id, employee.id, tax_year),
        )

    @staticmethod
    def _regular_pay_line(profile: EmployeeProfile, periods: int) -> LineCandidate:
        if profile.pay_type == PayType.HOURLY:
            rate = profile.hourly_rate or Decimal("0")
            hours = (profile.weekly_hours or Decimal("0")) * WEEKS_PER_YEAR / periods
            return LineItemBuilder.create_earning_line(
                EarningType.REGULAR,
                EarningType.REGULAR.value,
                hours * rate,
                hours=LineItemBuilder.round_to_cents(hours),
                rate=rate,
            )
        return LineItemBuilder.create_earning_line(
            EarningType.REGULAR,
            EarningType.REGULAR.value,
            profile.annual_salary / periods,
        )

    @staticmethod
    def _recurring_earning_lines(
        employee: Employee, company: CompanySettings
    ) -> list[LineCandidate]:
        codes = company.earning_code_map()
        lines: list[LineCandidate] = []
        for earning in employee.recurring_earnings:
            code = codes.get(earning.code_id)
            if code is None:
                logger.warning(
                    "Employee %s has unknown earning code %s; skipped",
                    employee.id,
                    earning.code_id,
                )
                continue
            lines.append(
                LineItemBuilder.create_earning_line(
                    code.type,
                    code.name,
                    earning.amount,
                    code_id=code.id,
                    taxability_flags={
                        "taxable": code.is_taxable,
                        "pensionable": code.is_pensionable,
                        "insurable": code.is_insurable,
                        "vacationable": code.type not in _NOT_VACATIONABLE,
                    },
                )
            )
        return lines

    @staticmethod
    def _detailed_garnishments(
        employee: Employee, company: CompanySettings
    ) -> list[DetailedGarnishment]:
        configs = company.garnishment_config_map()
        detailed: list[DetailedGarnishment] = []
        for garnishment in employee.garnishments:
            config = configs.get(garnishment.config_id)
            if config is None:
                logger.warning(
                    "Employee %s has unknown garnishment configuration %s; skipped",
                    employee.id,
                    garnishment.config_id,
                )
                continue
            detailed.append(
                DetailedGarnishment(
                    name=config.name,
                    calculation_type=config.calculation_type,
                    priority=config.priority,
                    amount=garnishment.amount,
                    config_id=config.id,
                )
            )
        return detailed

    @staticmethod
    def _vacation_accrual_percent(employee: Employee, policies: list[TimeOffPolicy]) -> Decimal:
        """Accrual percent of the first vacation policy the employee holds a balance in."""
        for policy in policies:
            if policy.is_vacation_policy and policy.id in employee.time_off_balances:
                return policy.vacation_pay_accrual_percent
        return Decimal("0")

    @staticmethod
    def _generate_run_id(
        tenant_id: str, pay_period: str, tax_year: int, paystubs: list[Paystub]
    ) -> str:
        """Generate deterministic run ID from the run's calculations."""
        data = {
            "tenant_id": tenant_id,
            "pay_period": pay_period,
            "tax_year": tax_year,
            "calculations": [p.calculation_id for p in paystubs],
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
