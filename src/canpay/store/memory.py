"""In-memory payroll store for tests and single-process demos."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from canpay.exceptions import DuplicateCommitError
from canpay.models.payroll import PayRun, YtdTotals
from canpay.store.base import PayrollStore


class InMemoryPayrollStore(PayrollStore):
    """Dict-backed store.

    ``atomic()`` serializes writers with an ``asyncio.Lock`` and restores a
    snapshot of the ledgers and history if the enclosed block raises.
    """

    def __init__(self) -> None:
        self._ytd: dict[tuple[str, str, int], YtdTotals] = {}
        self._history: dict[str, list[PayRun]] = {}
        self._lock = asyncio.Lock()

    async def get_ytd(
        self, tenant_id: str, employee_id: str, tax_year: int, for_update: bool = False
    ) -> YtdTotals:
        # atomic() already holds the writer lock
        return self._ytd.get((tenant_id, employee_id, tax_year), YtdTotals())

    async def update_ytd(
        self, tenant_id: str, employee_id: str, tax_year: int, totals: YtdTotals
    ) -> None:
        self._ytd[(tenant_id, employee_id, tax_year)] = totals

    async def append_run(self, run: PayRun) -> None:
        history = self._history.setdefault(run.tenant_id, [])
        if any(r.run_id == run.run_id for r in history):
            raise DuplicateCommitError(run.run_id)
        # Newest first
        history.insert(0, run)

    async def get_history(self, tenant_id: str, tax_year: int | None = None) -> list[PayRun]:
        runs = self._history.get(tenant_id, [])
        if tax_year is not None:
            runs = [r for r in runs if r.tax_year == tax_year]
        return list(runs)

    async def get_run(self, tenant_id: str, run_id: str) -> PayRun | None:
        for run in self._history.get(tenant_id, []):
            if run.run_id == run_id:
                return run
        return None

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        async with self._lock:
            ytd_snapshot = dict(self._ytd)
            history_snapshot = {k: list(v) for k, v in self._history.items()}
            try:
                yield
            except BaseException:
                self._ytd = ytd_snapshot
                self._history = history_snapshot
                raise
