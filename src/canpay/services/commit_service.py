"""Atomic commit of a reviewed pay run into the YTD ledgers and history."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from canpay.exceptions import (
    DuplicateCommitError,
    FinalizationBlockedError,
    StalePreviewError,
)
from canpay.models.payroll import PayRun, Paystub
from canpay.services.directory import TenantDirectory, validate_bank_allocation
from canpay.store.base import PayrollStore

logger = logging.getLogger(__name__)


class CommitService:
    """The only writer of YTD ledgers and pay run history.

    Key invariants:
    1. Finalization checks run before anything is written
    2. Every YTD update and the history append happen in one store transaction
    3. A run ID can be appended once; a second commit raises DuplicateCommitError
       and leaves the ledgers untouched
    4. Paystubs are posted only onto the YTD ledgers they were calculated from;
       a ledger that moved since the preview raises StalePreviewError
    """

    def __init__(self, store: PayrollStore, directory: TenantDirectory):
        self.store = store
        self.directory = directory

    async def commit(
        self,
        tenant_id: str,
        run_id: str,
        pay_period: str,
        tax_year: int,
        paystubs: list[Paystub],
    ) -> PayRun:
        """Post every paystub to its employee's ledger and append the run."""
        errors = self.check_finalization(tenant_id, paystubs)
        if errors:
            raise FinalizationBlockedError(errors)

        run = PayRun(
            run_id=run_id,
            tenant_id=tenant_id,
            pay_period=pay_period,
            tax_year=tax_year,
            paystubs=tuple(paystubs),
            committed_at=datetime.now(timezone.utc),
        )

        async with self.store.atomic():
            if await self.store.get_run(tenant_id, run_id) is not None:
                raise DuplicateCommitError(run_id)

            ledgers = []
            stale: list[str] = []
            for paystub in paystubs:
                ytd = await self.store.get_ytd(
                    tenant_id, paystub.employee_id, paystub.tax_year, for_update=True
                )
                if paystub.ytd_basis is not None and paystub.ytd_basis != ytd:
                    stale.append(paystub.employee_id)
                ledgers.append((paystub, ytd))
            if stale:
                logger.warning(
                    "Pay run %s for tenant %s is stale for employees %s",
                    run_id,
                    tenant_id,
                    stale,
                )
                raise StalePreviewError(run_id, stale)

            for paystub, ytd in ledgers:
                await self.store.update_ytd(
                    tenant_id, paystub.employee_id, paystub.tax_year, ytd.post(paystub)
                )

            await self.store.append_run(run)

        logger.info(
            "Committed pay run %s for tenant %s (%d paystubs, gross=%s)",
            run_id,
            tenant_id,
            len(paystubs),
            run.total_gross,
        )
        return run

    def check_finalization(self, tenant_id: str, paystubs: list[Paystub]) -> list[str]:
        """Return the reasons the run cannot be finalized (empty if it can)."""
        errors: list[str] = []
        seen: set[str] = set()
        for paystub in paystubs:
            if paystub.employee_id in seen:
                errors.append(f"Employee {paystub.employee_id} appears more than once")
                continue
            seen.add(paystub.employee_id)

            employee = self.directory.get_employee(tenant_id, paystub.employee_id)
            if employee is None:
                errors.append(f"Employee {paystub.employee_id} not found")
                continue
            if not employee.bank_accounts:
                errors.append(f"{paystub.employee_name} has no bank account for direct deposit")
                continue
            for message in validate_bank_allocation(employee.bank_accounts):
                errors.append(f"{paystub.employee_name}: {message}")
        return errors
