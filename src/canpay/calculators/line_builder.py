"""Line item builder with deterministic hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal

from canpay.calculators.types import LineCandidate, LineType
from canpay.models.company import DeductionType, EarningType
from canpay.models.payroll import PaystubItem

ALL_BASES = {"taxable": True, "pensionable": True, "insurable": True, "vacationable": True}


class LineItemBuilder:
    """Builds line items with deterministic hashing.

    Sign conventions (non-negotiable):
    - EARNING: positive
    - DEDUCTION (employee): negative
    - TAX (employee income tax, CPP, EI): negative
    - EMPLOYER_CONTRIBUTION: positive (liability, not part of net)

    Rounding:
    - CAD to 2 decimals on every line
    - Net is the plain sum of rounded lines, so it always reconciles
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: LineCandidate) -> str:
        """Compute deterministic hash for a line item."""
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def create_earning_line(
        item_type: EarningType | str,
        description: str,
        amount: Decimal,
        code_id: str | None = None,
        hours: Decimal | None = None,
        rate: Decimal | None = None,
        taxability_flags: dict[str, bool] | None = None,
    ) -> LineCandidate:
        """Create an earning line item (positive amount)."""
        return LineCandidate(
            line_type=LineType.EARNING,
            amount=LineItemBuilder.round_to_cents(abs(amount)),  # Ensure positive
            item_type=_value(item_type),
            description=description,
            code_id=code_id,
            hours=hours,
            rate=rate,
            taxability_flags=dict(ALL_BASES if taxability_flags is None else taxability_flags),
        )

    @staticmethod
    def create_deduction_line(
        item_type: DeductionType | str,
        description: str,
        amount: Decimal,
        code_id: str | None = None,
    ) -> LineCandidate:
        """Create a deduction line item (negative amount)."""
        return LineCandidate(
            line_type=LineType.DEDUCTION,
            amount=-LineItemBuilder.round_to_cents(abs(amount)),  # Ensure negative
            item_type=_value(item_type),
            description=description,
            code_id=code_id,
        )

    @staticmethod
    def create_tax_line(
        item_type: DeductionType,
        description: str,
        amount: Decimal,
    ) -> LineCandidate:
        """Create an employee withholding line item (negative amount)."""
        return LineCandidate(
            line_type=LineType.TAX,
            amount=-LineItemBuilder.round_to_cents(abs(amount)),  # Ensure negative
            item_type=item_type.value,
            description=description,
        )

    @staticmethod
    def create_employer_line(
        item_type: DeductionType,
        description: str,
        amount: Decimal,
    ) -> LineCandidate:
        """Create an employer contribution line item (positive amount, liability)."""
        return LineCandidate(
            line_type=LineType.EMPLOYER_CONTRIBUTION,
            amount=LineItemBuilder.round_to_cents(abs(amount)),  # Ensure positive
            item_type=item_type.value,
            description=description,
        )

    @staticmethod
    def calculate_net_from_lines(lines: list[LineCandidate]) -> Decimal:
        """Calculate net pay from line items.

        NET = Σ(EARNING) + Σ(DEDUCTION) + Σ(TAX)

        Note: EMPLOYER_CONTRIBUTION is excluded from net calculation (it's a liability).
        """
        net = Decimal("0")
        for line in lines:
            if line.line_type != LineType.EMPLOYER_CONTRIBUTION:
                net += line.amount
        return LineItemBuilder.round_to_cents(net)

    @staticmethod
    def calculate_gross_from_lines(lines: list[LineCandidate]) -> Decimal:
        """Calculate gross pay from line items.

        GROSS = Σ(EARNING)
        """
        gross = Decimal("0")
        for line in lines:
            if line.line_type == LineType.EARNING:
                gross += line.amount
        return LineItemBuilder.round_to_cents(gross)

    @staticmethod
    def calculate_total_deductions(lines: list[LineCandidate]) -> Decimal:
        """Sum of employee withholdings and deductions, as a positive amount."""
        total = Decimal("0")
        for line in lines:
            if line.line_type in (LineType.DEDUCTION, LineType.TAX):
                total += abs(line.amount)
        return LineItemBuilder.round_to_cents(total)

    @staticmethod
    def sum_base(lines: list[LineCandidate], base: str) -> Decimal:
        """Sum earnings flagged as counting toward a statutory base."""
        total = Decimal("0")
        for line in lines:
            if line.line_type == LineType.EARNING and line.taxability_flags.get(base, False):
                total += line.amount
        return total

    @staticmethod
    def validate_line_signs(lines: list[LineCandidate]) -> list[str]:
        """Validate that all line items have correct signs.

        Returns list of error messages (empty if all valid).
        """
        errors: list[str] = []

        for i, line in enumerate(lines):
            if line.line_type in (LineType.EARNING, LineType.EMPLOYER_CONTRIBUTION):
                if line.amount < 0:
                    errors.append(
                        f"Line {i} ({line.line_type.value}) has negative amount {line.amount}, expected positive"
                    )
            elif line.line_type in (LineType.DEDUCTION, LineType.TAX):
                if line.amount > 0:
                    errors.append(
                        f"Line {i} ({line.line_type.value}) has positive amount {line.amount}, expected negative"
                    )

        return errors

    @staticmethod
    def to_paystub_item(line: LineCandidate) -> PaystubItem:
        """Convert a line to its paystub presentation (positive amount)."""
        return PaystubItem(
            type=line.item_type,
            description=line.description,
            amount=abs(line.amount),
            code_id=line.code_id,
            hours=line.hours,
            rate=line.rate,
        )


def _value(item_type: EarningType | DeductionType | str) -> str:
    return item_type.value if isinstance(item_type, (EarningType, DeductionType)) else item_type
