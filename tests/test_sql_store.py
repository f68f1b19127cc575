"""Tests for the SQLAlchemy payroll store against async SQLite."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from canpay.exceptions import DuplicateCommitError, StalePreviewError
from canpay.models import PayRun, YtdTotals
from canpay.services.commit_service import CommitService
from canpay.store import SqlPayrollStore
from conftest import PAY_PERIOD, TENANT_ID, make_stub

pytestmark = pytest.mark.asyncio

COMMITTED_AT = datetime(2024, 1, 31, 17, 0, tzinfo=timezone.utc)


def _run(run_id="run-1", tax_year=2024, committed_at=COMMITTED_AT, tenant_id=TENANT_ID):
    return PayRun(
        run_id=run_id,
        tenant_id=tenant_id,
        pay_period=PAY_PERIOD,
        tax_year=tax_year,
        paystubs=(
            make_stub("emp-1", "2000", "200", "100", "100", "30", "100", "42"),
            make_stub("emp-2", "3000", "300", "150", "150", "45", "150", "63"),
        ),
        committed_at=committed_at,
    )


class TestYtdLedger:
    async def test_missing_ledger_is_zero(self, sql_store):
        assert await sql_store.get_ytd(TENANT_ID, "emp-1", 2024) == YtdTotals()

    async def test_update_and_read(self, sql_store):
        totals = YtdTotals(gross_pay=Decimal("5000.00"), cpp=Decimal("280.15"), ei=Decimal("83.00"))

        await sql_store.update_ytd(TENANT_ID, "emp-1", 2024, totals)
        bonus = make_stub("emp-1", "2000", "0", "0", "0", "0", "0", "0")
        await sql_store.update_ytd(TENANT_ID, "emp-1", 2024, totals.post(bonus))

        ytd = await sql_store.get_ytd(TENANT_ID, "emp-1", 2024)
        assert ytd.gross_pay == Decimal("7000.00")
        assert ytd.cpp == Decimal("280.15")

    async def test_keyed_by_year(self, sql_store):
        await sql_store.update_ytd(TENANT_ID, "emp-1", 2023, YtdTotals(gross_pay=Decimal("100")))

        assert (await sql_store.get_ytd(TENANT_ID, "emp-1", 2024)).gross_pay == Decimal("0")

    async def test_locked_read_inside_transaction(self, sql_store):
        await sql_store.update_ytd(TENANT_ID, "emp-1", 2024, YtdTotals(cpp=Decimal("280.15")))

        async with sql_store.atomic():
            ytd = await sql_store.get_ytd(TENANT_ID, "emp-1", 2024, for_update=True)

        assert ytd == YtdTotals(cpp=Decimal("280.15"))

    async def test_locked_read_is_select_for_update(self):
        query = SqlPayrollStore.ytd_query(TENANT_ID, "emp-1", 2024, for_update=True)
        plain = SqlPayrollStore.ytd_query(TENANT_ID, "emp-1", 2024)

        assert "FOR UPDATE" in str(query.compile(dialect=postgresql.dialect()))
        assert "FOR UPDATE" not in str(plain.compile(dialect=postgresql.dialect()))


class TestHistory:
    """Test pay run persistence."""

    async def test_round_trip(self, sql_store):
        run = _run()
        await sql_store.append_run(run)

        loaded = await sql_store.get_run(TENANT_ID, "run-1")

        assert loaded is not None
        assert loaded.paystubs == run.paystubs
        assert loaded.total_gross == Decimal("5000")

    async def test_round_trip_keeps_ytd_basis(self, sql_store):
        basis = YtdTotals(gross_pay=Decimal("5000.00"), cpp=Decimal("280.15"))
        stub = replace(_run().paystubs[0], ytd_basis=basis)
        await sql_store.append_run(replace(_run(), paystubs=(stub,)))

        loaded = await sql_store.get_run(TENANT_ID, "run-1")

        assert loaded.paystubs[0].ytd_basis == basis

    async def test_duplicate_append(self, sql_store):
        await sql_store.append_run(_run())

        with pytest.raises(DuplicateCommitError):
            await sql_store.append_run(_run())

    async def test_newest_first_and_year_filter(self, sql_store):
        await sql_store.append_run(_run("run-1"))
        await sql_store.append_run(_run("run-2", committed_at=COMMITTED_AT + timedelta(days=14)))
        await sql_store.append_run(
            _run("run-old", tax_year=2023, committed_at=COMMITTED_AT - timedelta(days=60))
        )

        history = await sql_store.get_history(TENANT_ID)
        assert [r.run_id for r in history] == ["run-2", "run-1", "run-old"]

        history_2024 = await sql_store.get_history(TENANT_ID, 2024)
        assert [r.run_id for r in history_2024] == ["run-2", "run-1"]

    async def test_runs_are_tenant_scoped(self, sql_store):
        await sql_store.append_run(_run())

        assert await sql_store.get_run("tenant-other", "run-1") is None
        assert await sql_store.get_history("tenant-other") == []

    async def test_ping(self, sql_store):
        assert await sql_store.ping() is True


class TestAtomic:
    """Test all-or-nothing writes."""

    async def test_rollback_on_error(self, sql_store):
        with pytest.raises(RuntimeError):
            async with sql_store.atomic():
                await sql_store.update_ytd(
                    TENANT_ID, "emp-1", 2024, YtdTotals(gross_pay=Decimal("5000"))
                )
                raise RuntimeError("boom")

        assert (await sql_store.get_ytd(TENANT_ID, "emp-1", 2024)).gross_pay == Decimal("0")

    async def test_commit_service_on_sql(self, sql_store, directory):
        service = CommitService(sql_store, directory)
        paystubs = list(_run().paystubs)

        await service.commit(TENANT_ID, "run-1", PAY_PERIOD, 2024, paystubs)
        with pytest.raises(DuplicateCommitError):
            await service.commit(TENANT_ID, "run-1", PAY_PERIOD, 2024, paystubs)

        ytd = await sql_store.get_ytd(TENANT_ID, "emp-2", 2024)
        assert ytd.gross_pay == Decimal("3000.00")
        assert ytd.ei == Decimal("45.00")
        assert len(await sql_store.get_history(TENANT_ID)) == 1

    async def test_stale_paystubs_rejected_on_sql(self, sql_store, directory):
        service = CommitService(sql_store, directory)
        emp1, emp2 = _run().paystubs
        await service.commit(TENANT_ID, "run-1", PAY_PERIOD, 2024, [emp1, emp2])

        stale = replace(emp1, ytd_basis=YtdTotals())
        with pytest.raises(StalePreviewError):
            await service.commit(TENANT_ID, "run-2", PAY_PERIOD, 2024, [stale])

        ytd = await sql_store.get_ytd(TENANT_ID, "emp-1", 2024)
        assert ytd.gross_pay == Decimal("2000.00")
        assert len(await sql_store.get_history(TENANT_ID)) == 1
