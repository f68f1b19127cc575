"""Tests for atomic pay run commit."""

from dataclasses import replace
from decimal import Decimal

import pytest

from canpay.exceptions import DuplicateCommitError, FinalizationBlockedError, StalePreviewError
from canpay.models import AllocatedBankAccount, PayRun, YtdTotals
from canpay.services.commit_service import CommitService
from canpay.store import InMemoryPayrollStore
from conftest import PAY_PERIOD, TENANT_ID, make_stub

pytestmark = pytest.mark.asyncio


class FailingAppendStore(InMemoryPayrollStore):
    """Store whose history append fails after the ledgers were updated."""

    async def append_run(self, run: PayRun) -> None:
        raise RuntimeError("disk full")


def _stubs():
    return [
        make_stub("emp-1", "2000", "200", "100", "100", "30", "100", "42"),
        make_stub("emp-2", "3000", "300", "150", "150", "45", "150", "63"),
    ]


async def _commit(service, paystubs, run_id="run-1"):
    return await service.commit(TENANT_ID, run_id, PAY_PERIOD, 2024, paystubs)


class TestCommit:
    """Test ledger posting and history append."""

    async def test_posts_each_employee(self, store, directory):
        service = CommitService(store, directory)

        run = await _commit(service, _stubs())

        assert run.committed_at is not None
        assert run.total_gross == Decimal("5000")
        emp1 = await store.get_ytd(TENANT_ID, "emp-1", 2024)
        emp2 = await store.get_ytd(TENANT_ID, "emp-2", 2024)
        assert emp1.gross_pay == Decimal("2000")
        assert emp1.income_tax == Decimal("300")
        assert emp2.cpp == Decimal("150")
        assert emp2.ei == Decimal("45")
        assert emp2.insurable_earnings == Decimal("3000")

    async def test_ledgers_accumulate(self, store, directory):
        service = CommitService(store, directory)

        await _commit(service, _stubs(), "run-1")
        await _commit(service, _stubs(), "run-2")

        ytd = await store.get_ytd(TENANT_ID, "emp-1", 2024)
        assert ytd.gross_pay == Decimal("4000")
        history = await store.get_history(TENANT_ID)
        assert [r.run_id for r in history] == ["run-2", "run-1"]

    async def test_duplicate_run_leaves_ledgers_untouched(self, store, directory):
        service = CommitService(store, directory)
        await _commit(service, _stubs())

        with pytest.raises(DuplicateCommitError) as exc_info:
            await _commit(service, _stubs())

        assert exc_info.value.run_id == "run-1"
        ytd = await store.get_ytd(TENANT_ID, "emp-1", 2024)
        assert ytd.gross_pay == Decimal("2000")

    async def test_failure_rolls_back_ledgers(self, directory):
        store = FailingAppendStore()
        service = CommitService(store, directory)

        with pytest.raises(RuntimeError):
            await _commit(service, _stubs())

        ytd = await store.get_ytd(TENANT_ID, "emp-1", 2024)
        assert ytd.gross_pay == Decimal("0")
        assert await store.get_history(TENANT_ID) == []


class TestYtdBasis:
    """Paystubs are posted only onto the ledgers they were calculated from."""

    async def test_matching_basis_commits(self, store, directory):
        await store.update_ytd(TENANT_ID, "emp-1", 2024, YtdTotals(gross_pay=Decimal("2000.00")))
        service = CommitService(store, directory)
        stub = replace(_stubs()[0], ytd_basis=YtdTotals(gross_pay=Decimal("2000")))

        await _commit(service, [stub])

        ytd = await store.get_ytd(TENANT_ID, "emp-1", 2024)
        assert ytd.gross_pay == Decimal("4000.00")

    async def test_moved_ledger_rejects_whole_run(self, store, directory):
        service = CommitService(store, directory)
        emp1, emp2 = _stubs()
        emp1 = replace(emp1, ytd_basis=YtdTotals())
        emp2 = replace(emp2, ytd_basis=YtdTotals())
        await _commit(service, [_stubs()[1]], "run-0")

        with pytest.raises(StalePreviewError) as exc_info:
            await _commit(service, [emp1, emp2])

        assert exc_info.value.employee_ids == ["emp-2"]
        assert (await store.get_ytd(TENANT_ID, "emp-1", 2024)).gross_pay == Decimal("0")
        assert (await store.get_ytd(TENANT_ID, "emp-2", 2024)).gross_pay == Decimal("3000")
        assert [r.run_id for r in await store.get_history(TENANT_ID)] == ["run-0"]


class TestFinalization:
    """Test checks that block finalization."""

    async def test_missing_bank_account(self, store, directory):
        directory.get_employee(TENANT_ID, "emp-1").bank_accounts = []
        service = CommitService(store, directory)

        with pytest.raises(FinalizationBlockedError) as exc_info:
            await _commit(service, _stubs())

        assert "has no bank account for direct deposit" in exc_info.value.messages[0]
        assert await store.get_history(TENANT_ID) == []

    async def test_bad_allocation(self, store, directory):
        directory.get_employee(TENANT_ID, "emp-2").bank_accounts = [
            AllocatedBankAccount("002", "54321", "2223334445", Decimal("60")),
        ]
        service = CommitService(store, directory)

        errors = service.check_finalization(TENANT_ID, _stubs())

        assert errors == ["emp-2: Total bank account allocation must equal 100% (got 60%)"]

    async def test_unknown_employee(self, store, directory):
        service = CommitService(store, directory)
        stubs = [make_stub("emp-404", "1000", "0", "0", "0", "0", "0", "0")]

        assert service.check_finalization(TENANT_ID, stubs) == ["Employee emp-404 not found"]

    async def test_duplicate_employee(self, store, directory):
        service = CommitService(store, directory)
        stub = _stubs()[0]

        errors = service.check_finalization(TENANT_ID, [stub, stub])

        assert errors == ["Employee emp-1 appears more than once"]
