"""FastAPI dependencies for dependency injection."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from canpay.services.directory import TenantDirectory
from canpay.services.pay_run_service import PayRunPreview, PayRunService
from canpay.services.year_end import YearEndService
from canpay.store.base import PayrollStore


async def get_tenant_id(
    x_tenant_id: Annotated[str | None, Header()] = None
) -> str:
    """Extract tenant ID from header."""
    if not x_tenant_id or not x_tenant_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Tenant-ID header is required",
        )
    return x_tenant_id.strip()


def get_store(request: Request) -> PayrollStore:
    return request.app.state.store


def get_directory(request: Request) -> TenantDirectory:
    return request.app.state.directory


def get_pay_run_service(request: Request) -> PayRunService:
    return request.app.state.pay_run_service


def get_year_end_service(request: Request) -> YearEndService:
    return request.app.state.year_end_service


def get_previews(request: Request) -> dict[tuple[str, str], PayRunPreview]:
    """Previews awaiting commit, keyed by (tenant ID, run ID)."""
    return request.app.state.previews


# Type aliases for cleaner dependency injection
TenantId = Annotated[str, Depends(get_tenant_id)]
Store = Annotated[PayrollStore, Depends(get_store)]
Directory = Annotated[TenantDirectory, Depends(get_directory)]
PayRuns = Annotated[PayRunService, Depends(get_pay_run_service)]
YearEnd = Annotated[YearEndService, Depends(get_year_end_service)]
Previews = Annotated[dict[tuple[str, str], PayRunPreview], Depends(get_previews)]
