"""SQLAlchemy-backed payroll store (PostgreSQL in production, SQLite in tests)."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import datetime, timezone

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from canpay.exceptions import DuplicateCommitError
from canpay.models.ledger import EmployeeYtdRecord, PayRunRecord, PaystubRecord
from canpay.models.payroll import PayRun, Paystub, YtdTotals
from canpay.store.base import PayrollStore

_YTD_FIELDS = (
    "gross_pay",
    "cpp",
    "ei",
    "vacation_pay",
    "income_tax",
    "pensionable_earnings",
    "insurable_earnings",
)


class SqlPayrollStore(PayrollStore):
    """Store backed by the ``pay_run``, ``paystub`` and ``employee_ytd`` tables.

    Inside ``atomic()`` every call shares one session and one transaction;
    outside it each call runs in its own short transaction.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._current: ContextVar[AsyncSession | None] = ContextVar(
            f"canpay_store_session_{id(self)}", default=None
        )

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        async with self.session_factory() as session:
            async with session.begin():
                token = self._current.set(session)
                try:
                    yield
                finally:
                    self._current.reset(token)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        session = self._current.get()
        if session is not None:
            yield session
            return
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def get_ytd(
        self, tenant_id: str, employee_id: str, tax_year: int, for_update: bool = False
    ) -> YtdTotals:
        async with self._session() as session:
            query = self.ytd_query(tenant_id, employee_id, tax_year, for_update)
            record = (await session.execute(query)).scalar_one_or_none()
            if record is None:
                return YtdTotals()
            return YtdTotals(**{name: getattr(record, name) for name in _YTD_FIELDS})

    @staticmethod
    def ytd_query(tenant_id: str, employee_id: str, tax_year: int, for_update: bool = False):
        query = select(EmployeeYtdRecord).where(
            EmployeeYtdRecord.tenant_id == tenant_id,
            EmployeeYtdRecord.employee_id == employee_id,
            EmployeeYtdRecord.tax_year == tax_year,
        )
        if for_update:
            # Row-level lock on PostgreSQL; SQLite ignores it and serializes writers itself
            query = query.with_for_update().execution_options(populate_existing=True)
        return query

    async def update_ytd(
        self, tenant_id: str, employee_id: str, tax_year: int, totals: YtdTotals
    ) -> None:
        async with self._session() as session:
            record = await session.get(EmployeeYtdRecord, (tenant_id, employee_id, tax_year))
            if record is None:
                record = EmployeeYtdRecord(
                    tenant_id=tenant_id, employee_id=employee_id, tax_year=tax_year
                )
                session.add(record)
            for name in _YTD_FIELDS:
                setattr(record, name, getattr(totals, name))
            await session.flush()

    async def append_run(self, run: PayRun) -> None:
        async with self._session() as session:
            existing = await session.get(PayRunRecord, run.run_id)
            if existing is not None:
                raise DuplicateCommitError(run.run_id)

            record = PayRunRecord(
                run_id=run.run_id,
                tenant_id=run.tenant_id,
                pay_period=run.pay_period,
                tax_year=run.tax_year,
                committed_at=run.committed_at or datetime.now(timezone.utc),
                total_gross=run.total_gross,
                total_net=run.total_net,
            )
            record.paystubs = [
                PaystubRecord(
                    position=position,
                    employee_id=stub.employee_id,
                    gross_pay=stub.gross_pay,
                    net_pay=stub.net_pay,
                    calculation_id=stub.calculation_id,
                    payload_json=stub.to_dict(),
                )
                for position, stub in enumerate(run.paystubs)
            ]
            session.add(record)
            await session.flush()

    async def get_history(self, tenant_id: str, tax_year: int | None = None) -> list[PayRun]:
        async with self._session() as session:
            query = select(PayRunRecord).where(PayRunRecord.tenant_id == tenant_id)
            if tax_year is not None:
                query = query.where(PayRunRecord.tax_year == tax_year)
            query = query.order_by(PayRunRecord.committed_at.desc(), PayRunRecord.run_id)
            result = await session.execute(query)
            return [self._to_pay_run(r) for r in result.scalars().all()]

    async def get_run(self, tenant_id: str, run_id: str) -> PayRun | None:
        async with self._session() as session:
            result = await session.execute(
                select(PayRunRecord).where(
                    PayRunRecord.run_id == run_id,
                    PayRunRecord.tenant_id == tenant_id,
                )
            )
            record = result.scalar_one_or_none()
            return self._to_pay_run(record) if record is not None else None

    async def ping(self) -> bool:
        async with self._session() as session:
            await session.execute(text("SELECT 1"))
        return True

    @staticmethod
    def _to_pay_run(record: PayRunRecord) -> PayRun:
        return PayRun(
            run_id=record.run_id,
            tenant_id=record.tenant_id,
            pay_period=record.pay_period,
            tax_year=record.tax_year,
            paystubs=tuple(Paystub.from_dict(p.payload_json) for p in record.paystubs),
            committed_at=record.committed_at,
        )
