"""FastAPI application factory for the payroll API."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from hris_payroll import __version__
from hris_payroll.api.routes import health_router, payroll_router
from hris_payroll.calculators import LineValidationError
from hris_payroll.database import dispose_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    init_db()
    yield
    await dispose_db()


async def invalid_lines_handler(request: Request, exc: LineValidationError) -> JSONResponse:
    """Computed lines that fail sign or reconciliation checks are never persisted."""
    logger.error("Rejected payroll lines on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": str(exc),
            "code": "INVALID_PAYROLL_LINES",
            "employee_id": str(exc.employee_id),
            "errors": exc.errors,
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred", "code": "INTERNAL_ERROR"},
    )


def create_app() -> FastAPI:
    """Build the payroll API: health checks at the root, payroll under /api/v1."""
    app = FastAPI(
        title="HRIS Payroll Engine API",
        description="Payroll computation for semi-monthly and monthly payroll periods",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_exception_handler(LineValidationError, invalid_lines_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(health_router)
    app.include_router(payroll_router, prefix="/api/v1")
    return app


app = create_app()
