"""Payroll calculation engine."""

from canpay.calculators.engine import PayrollEngine
from canpay.calculators.line_builder import LineItemBuilder
from canpay.calculators.rate_tables import RateTable, RateTableRepository
from canpay.calculators.tax_calculator import TaxCalculator

__all__ = [
    "PayrollEngine",
    "LineItemBuilder",
    "RateTable",
    "RateTableRepository",
    "TaxCalculator",
]
