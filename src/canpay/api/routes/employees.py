"""Year-end reporting endpoints: T4 slips, T4 summary and ROE."""

from typing import Annotated

from fastapi import APIRouter, Path, Query

from canpay.api.dependencies import TenantId, YearEnd
from canpay.api.schemas import (
    ErrorResponse,
    ROERequest,
    ROEResponse,
    T4Response,
    T4SummaryResponse,
)
from canpay.config import settings
from canpay.exceptions import ValidationError
from canpay.services.year_end import ROEReasonCode

router = APIRouter(tags=["year-end"])


@router.get(
    "/employees/{employee_id}/t4",
    response_model=T4Response,
    responses={422: {"model": ErrorResponse}},
)
async def get_t4_slip(
    tenant_id: TenantId,
    employee_id: Annotated[str, Path()],
    service: YearEnd,
    tax_year: Annotated[int | None, Query()] = None,
) -> T4Response:
    """Project a T4 slip from the employee's YTD ledger."""
    slip = await service.t4_slip(tenant_id, employee_id, tax_year or settings.default_tax_year)
    return T4Response.model_validate(slip)


@router.post(
    "/employees/{employee_id}/roe",
    response_model=ROEResponse,
    responses={422: {"model": ErrorResponse}},
)
async def create_roe(
    tenant_id: TenantId,
    employee_id: Annotated[str, Path()],
    payload: ROERequest,
    service: YearEnd,
) -> ROEResponse:
    """Project a Record of Employment."""
    code = payload.reason_code.strip().upper()[:1]
    if code not in ROEReasonCode.__members__:
        raise ValidationError([f"Unknown ROE reason code '{payload.reason_code}'"])

    roe = await service.record_of_employment(
        tenant_id,
        employee_id,
        ROEReasonCode[code],
        payload.last_day_worked,
        payload.final_pay_period_end,
    )
    return ROEResponse(
        employee_id=roe.employee_id,
        employee_name=roe.employee_name,
        sin=roe.sin,
        business_number=roe.business_number,
        pay_period_type=roe.pay_period_type,
        reason_code=roe.reason_code.name,
        last_day_worked=roe.last_day_worked,
        final_pay_period_end=roe.final_pay_period_end,
        total_insurable_hours=roe.total_insurable_hours,
        total_insurable_earnings=roe.total_insurable_earnings,
    )


@router.get(
    "/reports/t4-summary",
    response_model=T4SummaryResponse,
)
async def get_t4_summary(
    tenant_id: TenantId,
    service: YearEnd,
    tax_year: Annotated[int | None, Query()] = None,
) -> T4SummaryResponse:
    """Totals over the tenant's T4 slips plus employer contributions."""
    summary = await service.t4_summary(tenant_id, tax_year or settings.default_tax_year)
    return T4SummaryResponse.model_validate(summary)
