"""Pay run API endpoints."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Path, Query, status

from canpay.api.dependencies import Directory, PayRuns, Previews, Store, TenantId
from canpay.api.schemas import (
    CommitRequest,
    CommitResponse,
    ErrorResponse,
    PayRunListResponse,
    PayRunResponse,
    PaystubResponse,
    PreviewRequest,
    PreviewResponse,
    RemittanceResponse,
)
from canpay.exceptions import StalePreviewError, ValidationError
from canpay.models.payroll import PayRun
from canpay.services.pay_run_service import PayRunPreview, parse_pay_period
from canpay.services.remittance import remittance_due_date, summarize_remittance

router = APIRouter(prefix="/pay-runs", tags=["pay-runs"])


def _preview_response(preview: PayRunPreview) -> PreviewResponse:
    return PreviewResponse(
        run_id=preview.run_id,
        tenant_id=preview.tenant_id,
        pay_period=preview.pay_period,
        tax_year=preview.tax_year,
        period_start=preview.period_start,
        period_end=preview.period_end,
        status=preview.status.value,
        paystubs=[PaystubResponse.model_validate(p) for p in preview.paystubs],
        total_gross=preview.total_gross,
        total_net=preview.total_net,
    )


def _pay_run_response(run: PayRun, include_paystubs: bool = False) -> PayRunResponse:
    return PayRunResponse(
        run_id=run.run_id,
        pay_period=run.pay_period,
        tax_year=run.tax_year,
        committed_at=run.committed_at,
        employee_count=len(run.paystubs),
        total_gross=run.total_gross,
        total_net=run.total_net,
        paystubs=(
            [PaystubResponse.model_validate(p) for p in run.paystubs] if include_paystubs else []
        ),
    )


async def _get_run_or_404(store, tenant_id: str, run_id: str) -> PayRun:
    run = await store.get_run(tenant_id, run_id)
    if run is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Pay run not found",
        )
    return run


# ============================================================================
# Preview / commit
# ============================================================================


@router.post(
    "/preview",
    response_model=PreviewResponse,
    responses={
        400: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def preview_pay_run(
    tenant_id: TenantId,
    payload: PreviewRequest,
    service: PayRuns,
    directory: Directory,
    previews: Previews,
) -> PreviewResponse:
    """Calculate paystubs for the selected employees. Idempotent and side-effect free."""
    if payload.employee_ids is None:
        employees = directory.list_employees(tenant_id)
    else:
        employees = []
        missing = []
        for employee_id in payload.employee_ids:
            employee = directory.get_employee(tenant_id, employee_id)
            if employee is None:
                missing.append(f"Employee {employee_id} not found")
            else:
                employees.append(employee)
        if missing:
            raise ValidationError(missing)

    preview = await service.preview_pay_run(
        tenant_id, payload.pay_period, employees, tax_year=payload.tax_year
    )
    previews[(tenant_id, preview.run_id)] = preview
    return _preview_response(preview)


@router.post(
    "/commit",
    response_model=CommitResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def commit_pay_run(
    tenant_id: TenantId,
    payload: CommitRequest,
    service: PayRuns,
    previews: Previews,
) -> CommitResponse:
    """Commit a previewed pay run, posting YTD ledgers and appending history."""
    preview = previews.get((tenant_id, payload.run_id))
    if preview is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No pending preview with this run ID",
        )

    try:
        run = await service.commit_pay_run(preview)
    except StalePreviewError:
        previews.pop((tenant_id, payload.run_id), None)
        raise
    previews.pop((tenant_id, payload.run_id), None)

    return CommitResponse(
        run_id=run.run_id,
        status=preview.status.value,
        paystubs_committed=len(run.paystubs),
        total_gross=run.total_gross,
        total_net=run.total_net,
        committed_at=run.committed_at,
    )


@router.post(
    "/{run_id}/discard",
    response_model=PreviewResponse,
    responses={404: {"model": ErrorResponse}},
)
async def discard_pay_run(
    tenant_id: TenantId,
    run_id: Annotated[str, Path()],
    service: PayRuns,
    previews: Previews,
) -> PreviewResponse:
    """Discard a pending preview."""
    preview = previews.pop((tenant_id, run_id), None)
    if preview is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No pending preview with this run ID",
        )
    service.discard_pay_run(preview)
    return _preview_response(preview)


# ============================================================================
# History
# ============================================================================


@router.get(
    "",
    response_model=PayRunListResponse,
)
async def list_pay_runs(
    tenant_id: TenantId,
    store: Store,
    tax_year: Annotated[int | None, Query()] = None,
) -> PayRunListResponse:
    """List committed pay runs for a tenant, newest first."""
    runs = await store.get_history(tenant_id, tax_year)
    return PayRunListResponse(
        items=[_pay_run_response(run) for run in runs],
        total=len(runs),
    )


@router.get(
    "/{run_id}",
    response_model=PayRunResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_pay_run(
    tenant_id: TenantId,
    run_id: Annotated[str, Path()],
    store: Store,
) -> PayRunResponse:
    """Get a committed pay run with its paystubs."""
    run = await _get_run_or_404(store, tenant_id, run_id)
    return _pay_run_response(run, include_paystubs=True)


@router.get(
    "/{run_id}/remittance",
    response_model=RemittanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_remittance(
    tenant_id: TenantId,
    run_id: Annotated[str, Path()],
    store: Store,
    directory: Directory,
) -> RemittanceResponse:
    """CRA remittance summary for a committed pay run. Recomputed on every request."""
    run = await _get_run_or_404(store, tenant_id, run_id)
    company = directory.get_company_settings(tenant_id)
    summary = summarize_remittance(run.paystubs, run.pay_period)
    _, period_end = parse_pay_period(run.pay_period, run.tax_year)

    return RemittanceResponse(
        run_id=run.run_id,
        pay_period=summary.pay_period,
        total_employees=summary.total_employees,
        total_gross=summary.total_gross,
        total_income_tax=summary.total_income_tax,
        total_cpp=summary.total_cpp,
        total_ei=summary.total_ei,
        employer_cpp=summary.employer_cpp,
        employer_ei=summary.employer_ei,
        cpp_remitted=summary.cpp_remitted,
        ei_remitted=summary.ei_remitted,
        total_remittance=summary.total_remittance,
        remitter_type=company.remitter_type.value,
        due_date=remittance_due_date(period_end, company.remitter_type),
    )
