"""Storage for committed pay runs and year-to-date ledgers."""

from canpay.store.base import PayrollStore
from canpay.store.memory import InMemoryPayrollStore
from canpay.store.sql import SqlPayrollStore

__all__ = ["PayrollStore", "InMemoryPayrollStore", "SqlPayrollStore"]
