"""Pay run history and year-to-date ledger tables."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from canpay.models.base import Base, TimestampMixin

MONEY = Numeric(14, 2)


class PayRunRecord(Base, TimestampMixin):
    """A committed pay run. Rows are insert-only."""

    __tablename__ = "pay_run"

    run_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    pay_period: Mapped[str] = mapped_column(String(64), nullable=False)
    tax_year: Mapped[int] = mapped_column(Integer, nullable=False)
    committed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    total_gross: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    total_net: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    # Relationships
    paystubs: Mapped[list[PaystubRecord]] = relationship(
        back_populates="pay_run",
        order_by="PaystubRecord.position",
        lazy="selectin",
    )


class PaystubRecord(Base):
    """One committed paystub, stored with its full line-item payload."""

    __tablename__ = "paystub"

    paystub_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("pay_run.run_id", ondelete="RESTRICT"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    employee_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    net_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    calculation_id: Mapped[str] = mapped_column(String(64), nullable=False)
    payload_json: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("run_id", "employee_id", name="paystub_run_employee_unique"),
    )

    pay_run: Mapped[PayRunRecord] = relationship(back_populates="paystubs")


class EmployeeYtdRecord(Base):
    """Year-to-date totals per tenant, employee and tax year."""

    __tablename__ = "employee_ytd"

    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    employee_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    tax_year: Mapped[int] = mapped_column(Integer, primary_key=True)
    gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    cpp: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    ei: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    vacation_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    income_tax: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"))
    pensionable_earnings: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
    insurable_earnings: Mapped[Decimal] = mapped_column(
        MONEY, nullable=False, default=Decimal("0")
    )
