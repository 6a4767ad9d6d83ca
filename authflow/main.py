"""
FastAPI application entry point for the authflow service.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import structlog
import uvicorn

from .api.auth import router as auth_router
from .api.errors import VALIDATION_MESSAGE, render_error
from .container.container import Container
from .core.config import Settings, get_settings
from .core.exceptions import AuthflowError
from .core.middleware import (
    ErrorHandlingMiddleware,
    RequestTrackingMiddleware,
    SecurityHeadersMiddleware,
)
from .schemas.auth_schemas import ErrorResponse, collect_error_messages

logger = structlog.get_logger()


def configure_logging(debug: bool = False) -> None:
    """Configure structured logging."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if debug else logging.INFO
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[Container] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Configuration, loaded from the environment when omitted
        container: Prebuilt container, mostly for tests

    Returns:
        Configured application; resources are opened by its lifespan
    """
    settings = settings or get_settings()
    configure_logging(settings.DEBUG)
    container = container or Container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting auth service",
            version=settings.VERSION,
            environment=settings.ENVIRONMENT,
        )
        app.state.container = container
        try:
            await container.initialize()
            yield
        finally:
            logger.info("Shutting down auth service")
            await container.cleanup()
            logger.info("Auth service shutdown complete")

    app = FastAPI(
        title=settings.APP_NAME,
        description="User signup, signin and email verification",
        version=settings.VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.container = container

    # Last added runs first
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestTrackingMiddleware)

    @app.exception_handler(AuthflowError)
    async def authflow_exception_handler(request: Request, exc: AuthflowError):
        return render_error(exc, getattr(request.state, "request_id", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle bodies that are not JSON objects."""
        messages = collect_error_messages(exc.errors())
        logger.warning("Validation error", errors=messages, path=request.url.path)
        body = ErrorResponse(
            message=VALIDATION_MESSAGE,
            errors=messages,
            request_id=getattr(request.state, "request_id", None),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=body.model_dump(by_alias=True, exclude_none=True),
        )

    @app.get("/health", tags=["health"])
    async def health_check():
        """Basic health check endpoint."""
        return {"status": "healthy", "service": "authflow", "version": settings.VERSION}

    @app.get("/ready", tags=["health"])
    async def readiness_check():
        """Readiness check with dependency validation."""
        checks = {"database": await container.database.check_connection()}
        ready = all(checks.values())
        return JSONResponse(
            status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if ready else "not_ready",
                "checks": checks,
                "service": "authflow",
                "version": settings.VERSION,
            },
        )

    app.include_router(auth_router)
    return app


def main() -> None:
    """Run the server."""
    settings = get_settings()
    uvicorn.run(
        "authflow.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        access_log=False,
    )


if __name__ == "__main__":
    main()
