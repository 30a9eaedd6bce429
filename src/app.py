"""FastAPI application factory for the Pokisham order engine."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from src.config import settings
from src.database.engine import engine
from src.exceptions import AppException
from src.modules.invoice.providers.factory import close_all_providers as close_invoice_providers
from src.modules.notification.providers.factory import (
    close_all_providers as close_notification_providers,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Rate limiter keyed by client IP address
limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Close outbound HTTP clients and dispose the async engine on shutdown."""
    yield
    await close_notification_providers()
    await close_invoice_providers()
    await engine.dispose()


def _get_request_id(request: Request) -> str:
    """Retrieve the request ID stored by RequestIdMiddleware."""
    return getattr(request.state, "request_id", "unknown")


def _error_response(
    status_code: int,
    code: str,
    message: str,
    request_id: str,
    details: list | None = None,
    retryable: bool = False,
) -> JSONResponse:
    """Build the structured error envelope shared by every endpoint."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or [],
                "requestId": request_id,
                "retryable": retryable,
            }
        },
    )


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Pokisham Order Engine",
        description="Order routing, status and commission engine for the Pokisham marketplace.",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # Rate limiter
    application.state.limiter = limiter

    # --- Middleware (last added = outermost in Starlette) ---

    # CORS origins come from the CORS_ORIGINS env var
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID: registered last so it runs first (outermost)
    from src.middleware.request_id import RequestIdMiddleware

    application.add_middleware(RequestIdMiddleware)

    # --- Routers ---
    from src.api.v1 import v1_router

    application.include_router(v1_router)

    # --- Exception Handlers ---

    @application.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.code, exc.message)
        return _error_response(
            status_code=exc.status_code,
            code=exc.code,
            message=exc.message,
            request_id=_get_request_id(request),
            details=exc.details,
            retryable=exc.retryable,
        )

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {"field": ".".join(str(loc) for loc in err.get("loc", [])), "message": err.get("msg", "")}
            for err in exc.errors()
        ]
        return _error_response(
            status_code=422,
            code="VALIDATION_ERROR",
            message="Validation failed",
            request_id=_get_request_id(request),
            details=details,
        )

    @application.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        return _error_response(
            status_code=429,
            code="RATE_LIMITED",
            message=str(exc.detail),
            request_id=_get_request_id(request),
            retryable=True,
        )

    @application.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unhandled exception: %s", exc)
        return _error_response(
            status_code=500,
            code="INTERNAL_ERROR",
            message="An unexpected error occurred.",
            request_id=_get_request_id(request),
        )

    # Health check
    @application.get("/health")
    async def health_check() -> dict:
        return {"status": "ok"}

    return application


app = create_app()
