"""
FastAPI Application Entry Point
===============================

Application factory, lifespan management and error mapping.
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator
from uuid import uuid4

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from supplier_pricing import __version__
from supplier_pricing.api.routes import pricing_router
from supplier_pricing.config.settings import get_settings
from supplier_pricing.services.pipeline import PricingPipeline
from supplier_pricing.utils.errors import (
    InputError,
    MappingError,
    ParsingError,
    PricingPipelineError,
    ProcessingTimeoutError,
)
from supplier_pricing.utils.logger import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)

ERROR_STATUS: list[tuple[type[PricingPipelineError], int]] = [
    (ProcessingTimeoutError, status.HTTP_408_REQUEST_TIMEOUT),
    (InputError, status.HTTP_400_BAD_REQUEST),
    (ParsingError, status.HTTP_400_BAD_REQUEST),
    (MappingError, status.HTTP_422_UNPROCESSABLE_ENTITY),
]


def status_for(exc: PricingPipelineError) -> int:
    for error_type, code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create the pipeline on startup and release its clients on shutdown."""
    settings = get_settings()
    logger.info(
        "supplier-pricing starting",
        version=__version__,
        environment=settings.environment,
        llm_backend=settings.llm_backend if settings.llm_enabled else None,
    )
    if getattr(app.state, "pipeline", None) is None:
        app.state.pipeline = PricingPipeline.from_settings(settings)

    yield

    logger.info("supplier-pricing shutting down")
    await app.state.pipeline.close()


def create_app(pipeline: PricingPipeline | None = None) -> FastAPI:
    """
    FastAPI application factory.

    Args:
        pipeline: Pre-built pipeline (tests); built from settings otherwise

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title="Supplier Pricing API",
        description="Turns supplier spreadsheets into priced retail/wholesale catalogs.",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.pipeline = pipeline

    @app.middleware("http")
    async def log_requests(request: Request, call_next: Any) -> Any:
        """Log each request with timing and a correlation ID."""
        request_id = str(uuid4())
        start_time = time.perf_counter()

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        logger.info(
            "Request completed",
            request_id=request_id,
            method=request.method,
            path=str(request.url.path),
            status_code=response.status_code,
            duration_ms=round(process_time * 1000, 2),
        )
        return response

    @app.exception_handler(PricingPipelineError)
    async def pipeline_error_handler(
        request: Request, exc: PricingPipelineError
    ) -> JSONResponse:
        """Structured error with diagnostics."""
        code = status_for(exc)
        logger.error(
            "Application error",
            error_type=type(exc).__name__,
            message=exc.message,
            status_code=code,
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=code,
            content={
                "error": type(exc).__name__,
                "message": exc.message,
                "details": exc.details,
            },
        )

    @app.get("/health", tags=["Health"], response_model=dict[str, Any])
    async def health_check() -> dict[str, Any]:
        """Service liveness and version."""
        return {
            "status": "healthy",
            "version": __version__,
            "service": "supplier-pricing",
        }

    app.include_router(pricing_router, prefix="/pricing", tags=["Pricing"])
    return app


app = create_app()
