"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Paystub schemas
# ============================================================================


class PaystubItemResponse(BaseModel):
    """One earning or deduction line."""

    model_config = ConfigDict(from_attributes=True)

    type: str
    description: str
    amount: Decimal
    code_id: str | None = None
    hours: Decimal | None = None
    rate: Decimal | None = None


class EmployerContributionsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cpp: Decimal
    ei: Decimal


class PaystubResponse(BaseModel):
    """Schema for one employee's paystub."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    employee_name: str
    pay_period: str
    tax_year: int
    earnings: list[PaystubItemResponse]
    deductions: list[PaystubItemResponse]
    gross_pay: Decimal
    total_deductions: Decimal
    net_pay: Decimal
    employer_contributions: EmployerContributionsResponse
    accrued_vacation_pay: Decimal
    vacation_payout: Decimal
    taxable_income: Decimal
    pensionable_earnings: Decimal
    insurable_earnings: Decimal
    calculation_id: str


# ============================================================================
# Preview schemas
# ============================================================================


class PreviewRequest(BaseModel):
    """Schema for previewing a pay run."""

    pay_period: str = Field(examples=["Jan 1 - Jan 15"])
    employee_ids: list[str] | None = None  # None selects every employee
    tax_year: int | None = None


class PreviewResponse(BaseModel):
    """Schema for preview response."""

    model_config = ConfigDict(from_attributes=True)

    run_id: str
    tenant_id: str
    pay_period: str
    tax_year: int
    period_start: date
    period_end: date
    status: str
    paystubs: list[PaystubResponse]
    total_gross: Decimal
    total_net: Decimal


# ============================================================================
# Commit schemas
# ============================================================================


class CommitRequest(BaseModel):
    run_id: str


class CommitResponse(BaseModel):
    """Schema for commit response."""

    run_id: str
    status: str
    paystubs_committed: int
    total_gross: Decimal
    total_net: Decimal
    committed_at: datetime


# ============================================================================
# Pay run history schemas
# ============================================================================


class PayRunResponse(BaseModel):
    """Schema for a committed pay run."""

    run_id: str
    pay_period: str
    tax_year: int
    committed_at: datetime | None = None
    employee_count: int
    total_gross: Decimal
    total_net: Decimal
    paystubs: list[PaystubResponse] = []


class PayRunListResponse(BaseModel):
    """Schema for listing pay runs."""

    items: list[PayRunResponse]
    total: int


class RemittanceResponse(BaseModel):
    """CRA remittance summary for one committed pay run."""

    run_id: str
    pay_period: str
    total_employees: int
    total_gross: Decimal
    total_income_tax: Decimal
    total_cpp: Decimal
    total_ei: Decimal
    employer_cpp: Decimal
    employer_ei: Decimal
    cpp_remitted: Decimal
    ei_remitted: Decimal
    total_remittance: Decimal
    remitter_type: str
    due_date: date


# ============================================================================
# Year-end schemas
# ============================================================================


class T4Response(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax_year: int
    employee_id: str
    employee_name: str
    sin: str
    province: str
    employment_income: Decimal
    cpp_contributions: Decimal
    ei_premiums: Decimal
    income_tax_deducted: Decimal
    ei_insurable_earnings: Decimal
    cpp_pensionable_earnings: Decimal


class T4SummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tax_year: int
    business_number: str
    slip_count: int
    employment_income: Decimal
    cpp_contributions: Decimal
    ei_premiums: Decimal
    income_tax_deducted: Decimal
    employer_cpp: Decimal
    employer_ei: Decimal
    total_deductions_reported: Decimal


class ROERequest(BaseModel):
    """Schema for generating a Record of Employment."""

    reason_code: str = Field(examples=["K"])
    last_day_worked: date
    final_pay_period_end: date


class ROEResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: str
    employee_name: str
    sin: str
    business_number: str
    pay_period_type: str
    reason_code: str
    last_day_worked: date
    final_pay_period_end: date
    total_insurable_hours: Decimal
    total_insurable_earnings: Decimal


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
