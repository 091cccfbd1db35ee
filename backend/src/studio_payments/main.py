"""FastAPI application entry point."""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Optional
import traceback
import uuid

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
from sqlalchemy.exc import SQLAlchemyError
from stripe import StripeError

from studio_payments.adapters.stripe_adapter import StripeAdapter
from studio_payments.config import settings
from studio_payments.exceptions import ServiceError
from studio_payments.middleware.logging import LoggingMiddleware, setup_logging
from studio_payments.middleware.metrics import MetricsMiddleware
from studio_payments.schemas.error import REMEDIATION_HINTS, ErrorCode, ErrorDetail

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the Stripe client once and report configuration problems at startup."""
    logger.info("application_starting", env=settings.app_env)

    app.state.stripe_adapter = StripeAdapter.from_settings(settings)
    if not settings.stripe_webhook_secret:
        logger.warning(
            "stripe_webhook_secret_missing",
            detail="degraded mode: webhook signatures will not be verified",
        )

    yield

    logger.info("application_shutting_down")


app = FastAPI(
    title="Studio Payments",
    description="Payment intents, Stripe webhook settlement and the invoice/booking ledger",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

if settings.tracing_enabled:
    from studio_payments.tracing import setup_tracing

    setup_tracing(app)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(
        "x-request-id", f"req_{uuid.uuid4().hex[:12]}"
    )


def _error_response(
    request: Request,
    status_code: int,
    error: str,
    message: str,
    code: str,
    detail_message: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "details": [{"code": code, "message": detail_message or message}],
            "remediation": REMEDIATION_HINTS.get(code),
            "request_id": _request_id(request),
            "timestamp": datetime.utcnow().isoformat() + "Z",
        },
        headers=headers,
    )


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render typed service errors with their own status code and error code."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "service_error",
        path=request.url.path,
        method=request.method,
        error_code=exc.code,
        error_message=exc.message,
    )

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return _error_response(request, exc.status_code, exc.error, exc.message, exc.code, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle Pydantic validation errors with structured response.

    Returns 422 with detailed field-level validation errors.
    """
    code_mapping = {
        "missing": ErrorCode.MISSING_REQUIRED_FIELD,
        "value_error": ErrorCode.INVALID_EMAIL,
        "greater_than": ErrorCode.INVALID_AMOUNT,
        "float_parsing": ErrorCode.INVALID_AMOUNT,
        "finite_number": ErrorCode.INVALID_AMOUNT,
    }

    details = []
    for error in exc.errors():
        field_path = ".".join(str(loc) for loc in error["loc"])
        details.append(
            ErrorDetail(
                code=code_mapping.get(error["type"], ErrorCode.VALIDATION_ERROR),
                message=error["msg"],
                field=field_path,
                value=error.get("input") if isinstance(error.get("input"), (str, int, float, bool)) else None,
            ).model_dump()
        )

    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        error_count=len(details),
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "ValidationError",
            "message": "Request validation failed",
            "details": details,
            "remediation": "Check the API documentation for correct request format at /docs",
            "request_id": _request_id(request),
            "timestamp": datetime.utcnow().isoformat() + "Z",
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Database errors are 503 with a retry hint."""
    logger.error(
        "database_error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
        error_message=str(exc),
    )

    detail = "Database temporarily unavailable" if settings.app_env == "production" else str(exc)
    return _error_response(
        request,
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "DatabaseError",
        "A database error occurred",
        ErrorCode.DATABASE_ERROR,
        detail_message=detail,
        headers={"Retry-After": "30"},
    )


@app.exception_handler(StripeError)
async def stripe_exception_handler(request: Request, exc: StripeError) -> JSONResponse:
    """Stripe errors that escaped the adapter are relayed as internal errors."""
    logger.error(
        "stripe_error",
        path=request.url.path,
        method=request.method,
        stripe_code=getattr(exc, "code", None),
        stripe_message=str(exc),
    )

    message = exc.user_message or "Payment gateway error occurred"
    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        message,
        ErrorCode.STRIPE_API_ERROR,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all other uncaught exceptions.

    Logs the stack trace and returns a safe message.
    """
    logger.exception(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        exception_type=type(exc).__name__,
        exception_message=str(exc),
        stack_trace=traceback.format_exc(),
    )

    return _error_response(
        request,
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "InternalServerError",
        "An unexpected error occurred",
        ErrorCode.INTERNAL_ERROR,
        detail_message=str(exc) if settings.debug else "Internal server error",
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with API information."""
    return {
        "service": "Studio Payments",
        "version": "0.1.0",
        "status": "operational",
        "docs": "/docs",
    }


from studio_payments.api.v1 import admin, bookings, health, invoices, payments  # noqa: E402
from studio_payments.api.webhooks import stripe as stripe_webhooks  # noqa: E402

app.include_router(health.router, tags=["Health"])
app.include_router(payments.router, prefix="/v1", tags=["Payments"])
app.include_router(invoices.router, prefix="/v1", tags=["Invoices"])
app.include_router(bookings.router, prefix="/v1", tags=["Bookings"])
app.include_router(admin.router, prefix="/v1", tags=["Admin"])
app.include_router(stripe_webhooks.router, tags=["Webhooks"])
