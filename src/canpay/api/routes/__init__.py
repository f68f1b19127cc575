"""API routes."""

from canpay.api.routes.employees import router as year_end_router
from canpay.api.routes.health import router as health_router
from canpay.api.routes.pay_runs import router as pay_runs_router

__all__ = ["pay_runs_router", "health_router", "year_end_router"]
