"""coursegate API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from coursegate.access.router import router as access_router
from coursegate.access.service import AccessService
from coursegate.auth.service import CassandraUserDirectory, CredentialVerifier
from coursegate.config import get_settings
from coursegate.core.context import get_request_id
from coursegate.core.database import init_async_cassandra, shutdown_async_cassandra
from coursegate.core.errors import AuthenticationError, EngineError
from coursegate.core.logging import configure_structlog, get_logger
from coursegate.core.middleware import RequestContextMiddleware
from coursegate.core.redis import init_redis, shutdown_redis
from coursegate.courses.store import CassandraCourseStore
from coursegate.enrollments.gateway import MockPaymentGateway
from coursegate.enrollments.router import admin_router as payments_admin_router
from coursegate.enrollments.router import courses_router as enrollment_router
from coursegate.enrollments.router import router as payments_router
from coursegate.enrollments.service import EnrollmentService
from coursegate.enrollments.store import CassandraPaymentStore
from coursegate.health import router as health_router
from coursegate.progress.ledger import CassandraProgressLedger
from coursegate.progress.router import router as progress_router
from coursegate.stream_tokens import CapabilityTokenCache


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings, log_dir=Path(settings.log_dir))

logger = get_logger(__name__)


# Application state for dependency injection
class AppState:
    """Application state container."""

    cassandra_session: Any = None
    token_cache: CapabilityTokenCache | None = None
    credential_verifier: CredentialVerifier | None = None
    access_service: AccessService | None = None
    enrollment_service: EnrollmentService | None = None


app_state = AppState()


def get_credential_verifier() -> CredentialVerifier:
    """Get CredentialVerifier instance from app state."""
    if app_state.credential_verifier is None:
        msg = "CredentialVerifier not initialized"
        raise RuntimeError(msg)
    return app_state.credential_verifier


def get_access_service() -> AccessService:
    """Get AccessService instance from app state."""
    if app_state.access_service is None:
        msg = "AccessService not initialized"
        raise RuntimeError(msg)
    return app_state.access_service


def get_enrollment_service() -> EnrollmentService:
    """Get EnrollmentService instance from app state."""
    if app_state.enrollment_service is None:
        msg = "EnrollmentService not initialized"
        raise RuntimeError(msg)
    return app_state.enrollment_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Token cache is in-process and needs no external service
    app_state.token_cache = CapabilityTokenCache.from_settings(settings)
    app.state.token_cache = app_state.token_cache
    app_state.token_cache.start()

    # Initialize Redis (non-critical - app works without it)
    redis_client = None
    try:
        redis_client = await init_redis()
        logger.info("redis_initialized")
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - resource metadata cache disabled",
        )

    app.state.database_ready = False
    try:
        app_state.cassandra_session = await init_async_cassandra()
        keyspace = settings.cassandra_keyspace

        app_state.credential_verifier = CredentialVerifier(
            CassandraUserDirectory(session=app_state.cassandra_session, keyspace=keyspace)
        )
        logger.info("credential_verifier_initialized")

        course_store = CassandraCourseStore(
            session=app_state.cassandra_session,
            keyspace=keyspace,
            redis=redis_client,
            cache_ttl_seconds=settings.resource_cache_ttl_seconds,
        )
        progress_ledger = CassandraProgressLedger(
            session=app_state.cassandra_session,
            keyspace=keyspace,
        )
        app.state.progress_ledger = progress_ledger

        app_state.access_service = AccessService(
            courses=course_store,
            tokens=app_state.token_cache,
            verifier=app_state.credential_verifier,
            recheck_principal=settings.stream_token_recheck_principal,
        )
        logger.info(
            "access_service_initialized",
            recheck_principal=settings.stream_token_recheck_principal,
        )

        app_state.enrollment_service = EnrollmentService(
            payments=CassandraPaymentStore(
                session=app_state.cassandra_session, keyspace=keyspace
            ),
            courses=course_store,
            progress=progress_ledger,
            gateway=MockPaymentGateway(
                delay_seconds=settings.payment_gateway_delay_seconds
            ),
            default_currency=settings.payment_default_currency,
            manual_currency=settings.payment_manual_currency,
        )
        logger.info("enrollment_service_initialized")
        app.state.database_ready = True
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    # Shutdown
    logger.info("shutting_down_application")
    await app_state.token_cache.stop()
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Stack traces are logged by the handlers below, never returned
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Course entitlement and access-control API",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        """Get request_id from request state or context."""
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(EngineError)
    async def engine_error_handler(request: Request, exc: EngineError) -> ORJSONResponse:
        """Translate typed engine errors into the error envelope."""
        logger.info(
            "engine_error",
            error_type=type(exc).__name__,
            code=exc.code,
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )

        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "code": exc.code,
                "message": exc.message,
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages."""
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "code": "http_error",
                "message": str(exc.detail)
                if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
                else "Internal server error",
                "status_code": exc.status_code,
                "request_id": _get_request_id_safe(request),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors; field details are safe to expose."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "code": "validation_error",
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler; details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "code": "internal_error",
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(access_router)
    app.include_router(payments_router)
    app.include_router(payments_admin_router)
    app.include_router(enrollment_router)
    app.include_router(progress_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "coursegate API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


# Configure router dependencies before creating app
from coursegate.access.dependencies import set_access_service_getter  # noqa: E402
from coursegate.auth.dependencies import set_verifier_getter  # noqa: E402
from coursegate.enrollments.dependencies import (  # noqa: E402
    set_enrollment_service_getter,
)


set_verifier_getter(get_credential_verifier)
set_access_service_getter(get_access_service)
set_enrollment_service_getter(get_enrollment_service)


app = create_app()


def run() -> None:
    """Serve the app with uvicorn using the API settings."""
    uvicorn.run(
        "coursegate.main:app",
        host=settings.api_host,
        port=settings.api_port,
        workers=settings.api_workers,
        reload=settings.api_reload and settings.is_development,
        log_config=None,
    )
