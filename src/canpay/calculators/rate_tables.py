"""Versioned statutory rate tables keyed by tax year.

Rate tables are JSON documents (``canpay/rates/<year>.json``) with structure:
{
    "tax_year": 2024,
    "federal": {"brackets": [{"min": 0, "max": 55867, "rate": 0.15}, ...]},
    "provincial": {"ON": [{"min": 0, "max": 51446, "rate": 0.0505}, ...], ...},
    "cpp": {"employee_rate": 0.0595, "max_contribution": 3867.50,
            "max_earnings": 68500, "basic_exemption": 3500, "employer_multiplier": 1},
    "qpp": {...},
    "ei": {"employee_rate": 0.0166, "max_contribution": 1049.12,
           "max_earnings": 63200, "employer_multiplier": 1.4},
    "ei_quebec": {...}
}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from decimal import Decimal
from importlib import resources
from pathlib import Path
from typing import Any

from canpay.calculators.types import ContributionRule, TaxBracket
from canpay.exceptions import JurisdictionNotFoundError, RateTableNotFoundError
from canpay.models.employee import Province


@dataclass(frozen=True)
class RateTable:
    """All statutory rates for one tax year."""

    tax_year: int
    federal_brackets: tuple[TaxBracket, ...]
    provincial_brackets: dict[str, tuple[TaxBracket, ...]]
    cpp: ContributionRule
    qpp: ContributionRule
    ei: ContributionRule
    ei_quebec: ContributionRule

    def resolve_province(self, value: str) -> Province:
        """Resolve a province code or name, failing if it has no tax table."""
        province = Province.parse(value)
        if province is None or province.name not in self.provincial_brackets:
            raise JurisdictionNotFoundError(str(value), self.tax_year)
        return province

    def brackets_for(self, province: Province) -> tuple[TaxBracket, ...]:
        try:
            return self.provincial_brackets[province.name]
        except KeyError:
            raise JurisdictionNotFoundError(province.value, self.tax_year) from None

    def pension_plan_for(self, province: Province) -> ContributionRule:
        """QPP replaces CPP for Quebec employment."""
        return self.qpp if province == Province.QC else self.cpp

    def employment_insurance_for(self, province: Province) -> ContributionRule:
        """Quebec employees pay the reduced EI rate (QPIP covers parental benefits)."""
        return self.ei_quebec if province == Province.QC else self.ei


class RateTableRepository:
    """Loads and caches rate tables from package resources or an override directory."""

    def __init__(self, override_dir: str | Path | None = None):
        self.override_dir = Path(override_dir) if override_dir else None
        self._cache: dict[int, RateTable] = {}

    def get(self, tax_year: int) -> RateTable:
        """Get the rate table for a tax year."""
        if tax_year in self._cache:
            return self._cache[tax_year]

        payload = self._load_payload(tax_year)
        table = self.parse(payload)
        if table.tax_year != tax_year:
            raise RateTableNotFoundError(tax_year)

        self._cache[tax_year] = table
        return table

    def _load_payload(self, tax_year: int) -> dict[str, Any]:
        filename = f"{tax_year}.json"

        if self.override_dir is not None:
            path = self.override_dir / filename
            if path.is_file():
                return json.loads(path.read_text(encoding="utf-8"))

        resource = resources.files("canpay").joinpath(f"rates/{filename}")
        if not resource.is_file():
            raise RateTableNotFoundError(tax_year)
        return json.loads(resource.read_text(encoding="utf-8"))

    @staticmethod
    def parse(payload: dict[str, Any]) -> RateTable:
        """Parse a rate table document."""
        return RateTable(
            tax_year=int(payload["tax_year"]),
            federal_brackets=_parse_brackets(payload["federal"]["brackets"]),
            provincial_brackets={
                code.upper(): _parse_brackets(brackets)
                for code, brackets in payload.get("provincial", {}).items()
            },
            cpp=_parse_contribution(payload["cpp"]),
            qpp=_parse_contribution(payload.get("qpp", payload["cpp"])),
            ei=_parse_contribution(payload["ei"]),
            ei_quebec=_parse_contribution(payload.get("ei_quebec", payload["ei"])),
        )


def _parse_brackets(raw: list[dict[str, Any]]) -> tuple[TaxBracket, ...]:
    brackets = [
        TaxBracket(
            min_amount=Decimal(str(b["min"])),
            max_amount=Decimal(str(b["max"])) if b.get("max") is not None else None,
            rate=Decimal(str(b["rate"])),
            flat_amount=Decimal(str(b.get("flat", 0))),
        )
        for b in raw
    ]
    return tuple(sorted(brackets, key=lambda b: b.min_amount))


def _parse_contribution(raw: dict[str, Any]) -> ContributionRule:
    return ContributionRule(
        employee_rate=Decimal(str(raw["employee_rate"])),
        max_contribution=Decimal(str(raw["max_contribution"])),
        max_earnings=Decimal(str(raw["max_earnings"])),
        basic_exemption=Decimal(str(raw.get("basic_exemption", 0))),
        employer_multiplier=Decimal(str(raw.get("employer_multiplier", 1))),
    )
