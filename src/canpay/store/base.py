"""Payroll store interface: YTD ledgers and committed pay run history."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager

from canpay.models.payroll import PayRun, YtdTotals


class PayrollStore(ABC):
    """Persistence boundary for everything a commit mutates.

    Calculation only ever reads from the store. ``update_ytd`` and
    ``append_run`` are called from the commit service inside ``atomic()`` so
    that ledger updates and the history append succeed or fail together.
    """

    @abstractmethod
    async def get_ytd(
        self, tenant_id: str, employee_id: str, tax_year: int, for_update: bool = False
    ) -> YtdTotals:
        """Get YTD totals (zero totals when the employee has none for the year).

        With ``for_update`` inside ``atomic()``, the ledger row stays locked
        against other writers until the transaction ends.
        """

    @abstractmethod
    async def update_ytd(
        self, tenant_id: str, employee_id: str, tax_year: int, totals: YtdTotals
    ) -> None:
        """Replace YTD totals for an employee and year."""

    @abstractmethod
    async def append_run(self, run: PayRun) -> None:
        """Append a committed run to history. Raises DuplicateCommitError if present."""

    @abstractmethod
    async def get_history(self, tenant_id: str, tax_year: int | None = None) -> list[PayRun]:
        """Committed runs for a tenant, newest first."""

    @abstractmethod
    async def get_run(self, tenant_id: str, run_id: str) -> PayRun | None:
        """Get a committed run by ID."""

    @abstractmethod
    def atomic(self) -> AbstractAsyncContextManager[None]:
        """Context manager making the enclosed writes all-or-nothing."""

    async def ping(self) -> bool:
        """Check the backing storage is reachable."""
        return True
