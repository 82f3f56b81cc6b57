"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dhanix_payroll.api.routes import (
    employees_router,
    health_router,
    organizations_router,
    payroll_items_router,
    payroll_runs_router,
)
from dhanix_payroll.config import configure_logging, get_settings
from dhanix_payroll.database import create_schema, dispose_db, init_db
from dhanix_payroll.errors import (
    NotFoundError,
    PayrollError,
    PayrollValidationError,
    StateConflictError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    settings = get_settings()
    configure_logging(settings)
    # Startup
    init_db()
    if settings.create_schema:
        await create_schema()
        logger.info("Database schema created")
    yield
    # Shutdown
    await dispose_db()


def _error(status_code: int, exc: PayrollError, field: str | None = None) -> JSONResponse:
    content = {"detail": str(exc), "code": exc.code}
    if field is not None:
        content["field"] = field
    return JSONResponse(status_code=status_code, content=content)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    app = FastAPI(
        title="Dhanix Payroll API",
        description="Indian payroll runs with PF and ESI",
        version=settings.engine_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(status.HTTP_404_NOT_FOUND, exc)

    @app.exception_handler(PayrollValidationError)
    async def validation_handler(
        request: Request, exc: PayrollValidationError
    ) -> JSONResponse:
        return _error(status.HTTP_400_BAD_REQUEST, exc, field=exc.field)

    @app.exception_handler(StateConflictError)
    async def state_conflict_handler(
        request: Request, exc: StateConflictError
    ) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return _error(status.HTTP_409_CONFLICT, exc)

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
    app.include_router(organizations_router, prefix="/api/v1")
    app.include_router(employees_router, prefix="/api/v1")
    app.include_router(payroll_runs_router, prefix="/api/v1")
    app.include_router(payroll_items_router, prefix="/api/v1")

    return app


# Default app instance for uvicorn
app = create_app()
