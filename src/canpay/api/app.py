"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from canpay import __version__
from canpay.api.routes import health_router, pay_runs_router, year_end_router
from canpay.calculators.engine import PayrollEngine
from canpay.calculators.rate_tables import RateTableRepository
from canpay.config import Settings, configure_logging, get_settings
from canpay.database import create_session_factory, create_tables, get_engine
from canpay.exceptions import (
    CalculationError,
    CommitError,
    PayrollError,
    PayRunCalculationError,
    StalePreviewError,
    TenantNotFoundError,
    ValidationError,
)
from canpay.services.directory import TenantDirectory
from canpay.services.pay_run_service import PayRunService
from canpay.services.year_end import YearEndService
from canpay.store import InMemoryPayrollStore, PayrollStore, SqlPayrollStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    # Startup
    db_engine = app.state.db_engine
    if db_engine is not None:
        await create_tables(db_engine)
    yield
    # Shutdown
    if db_engine is not None:
        await db_engine.dispose()


def _error(status_code: int, exc: Exception, code: str, **context) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code, "context": context or None},
    )


def create_app(
    store: PayrollStore | None = None,
    directory: TenantDirectory | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without an explicit store, ``DATABASE_URL`` selects the SQL store and an
    empty value selects the in-memory store.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Canadian Payroll Engine API",
        description="Gross-to-net payroll, CRA remittances and year-end reporting",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.db_engine = None
    if store is None:
        if settings.uses_database:
            app.state.db_engine = get_engine(settings.database_url)
            store = SqlPayrollStore(create_session_factory(app.state.db_engine))
        else:
            store = InMemoryPayrollStore()
    directory = directory or TenantDirectory()
    rate_tables = RateTableRepository(settings.rate_table_dir)

    app.state.store = store
    app.state.directory = directory
    app.state.pay_run_service = PayRunService(
        store,
        directory,
        engine=PayrollEngine(rate_tables, engine_version=settings.engine_version),
        settings=settings,
    )
    app.state.year_end_service = YearEndService(store, directory, rate_tables)
    app.state.previews = {}

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            exc,
            "VALIDATION_ERROR",
            messages=exc.messages,
        )

    @app.exception_handler(TenantNotFoundError)
    async def tenant_not_found_handler(
        request: Request, exc: TenantNotFoundError
    ) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc, "TENANT_NOT_FOUND")

    @app.exception_handler(PayRunCalculationError)
    async def pay_run_error_handler(
        request: Request, exc: PayRunCalculationError
    ) -> JSONResponse:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            exc,
            "CALCULATION_ERROR",
            employee_id=exc.employee_id,
            employee_name=exc.employee_name,
            cause=str(exc.cause),
        )

    @app.exception_handler(CalculationError)
    async def calculation_error_handler(request: Request, exc: CalculationError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc, "CALCULATION_ERROR")

    @app.exception_handler(StalePreviewError)
    async def stale_preview_handler(request: Request, exc: StalePreviewError) -> JSONResponse:
        return _error(
            status.HTTP_409_CONFLICT, exc, "STALE_PREVIEW", employee_ids=exc.employee_ids
        )

    @app.exception_handler(CommitError)
    async def commit_error_handler(request: Request, exc: CommitError) -> JSONResponse:
        return _error(status.HTTP_409_CONFLICT, exc, "COMMIT_ERROR")

    @app.exception_handler(PayrollError)
    async def payroll_error_handler(request: Request, exc: PayrollError) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc, "PAYROLL_ERROR")

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "An unexpected error occurred",
                "code": "INTERNAL_ERROR",
            },
        )

    # Include routers
    app.include_router(health_router)
    app.include_router(pay_runs_router, prefix="/api/v1")
    app.include_router(year_end_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
