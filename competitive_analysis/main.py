"""Competitive analysis API application.

Serves the competitor, analysis and URL tool routes under /api/v1 plus
health checks. The lifespan owns the database engine, the page scraper
and the Claude client.

ERROR LOGGING REQUIREMENTS:
- Every request logged with method, path and request_id, with timing on completion
- The submitted URL of POST bodies logged at DEBUG level, truncated
- Structured error responses: {"error": str, "code": str, "request_id": str}
- 4xx responses at WARNING, 5xx at ERROR
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from competitive_analysis.api.v1 import router as api_v1_router
from competitive_analysis.core.config import get_settings
from competitive_analysis.core.database import db_manager
from competitive_analysis.core.logging import get_logger, setup_logging
from competitive_analysis.integrations.claude import close_claude, get_claude, init_claude
from competitive_analysis.integrations.scraper import close_scraper, init_scraper

setup_logging()
logger = get_logger(__name__)

LOGGED_URL_LENGTH = 200


def submitted_url(body: bytes) -> str | None:
    """Pull the "url" field out of a JSON request body, if there is one."""
    try:
        payload = json.loads(body)
    except (ValueError, RecursionError):
        return None
    if not isinstance(payload, dict) or not isinstance(payload.get("url"), str):
        return None
    return payload["url"][:LOGGED_URL_LENGTH]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Assigns a request_id, logs the request and its outcome with timing."""

    async def dispatch(self, request: Request, call_next: Any) -> Any:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.monotonic()
        method = request.method
        path = request.url.path

        logger.info(
            "Request started",
            extra={"request_id": request_id, "method": method, "path": path},
        )

        if method == "POST" and logger.isEnabledFor(logging.DEBUG):
            body = await request.body()
            if body:
                logger.debug(
                    "Request URL",
                    extra={
                        "request_id": request_id,
                        "url": submitted_url(body),
                        "body_length": len(body),
                    },
                )

        response = await call_next(request)

        duration_ms = (time.monotonic() - start_time) * 1000
        status_code = response.status_code
        response.headers["X-Request-ID"] = request_id

        log_extra = {
            "request_id": request_id,
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
        }

        if status_code >= 500:
            logger.error("Request failed", extra=log_extra)
        elif status_code >= 400:
            logger.warning("Request error", extra=log_extra)
        else:
            logger.info("Request completed", extra=log_extra)

        return response


@asynccontextmanager
async def lifespan(app: FastAPI) -> Any:
    """Open the database, Claude and scraper clients; close them on shutdown."""
    settings = get_settings()
    logger.info(
        "Starting competitive analysis service",
        extra={
            "version": settings.app_version,
            "environment": settings.environment,
        },
    )

    try:
        db_manager.init_db()
    except Exception as e:
        logger.error(
            "Failed to initialize database",
            extra={"error_type": type(e).__name__, "error_message": str(e)},
        )
        raise

    claude_client = await init_claude()
    if claude_client.available:
        logger.info("Claude client initialized", extra={"model": claude_client.model})
    else:
        logger.warning(
            "Claude not configured (missing ANTHROPIC_API_KEY), "
            "analyses will use the deterministic fallback"
        )

    await init_scraper()

    yield

    logger.info("Shutting down competitive analysis service")
    await close_scraper()
    await close_claude()
    await db_manager.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url] if settings.frontend_url else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handlers for structured error responses
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle validation errors with structured response."""
        request_id = getattr(request.state, "request_id", "unknown")
        errors = exc.errors()
        error_msg = "; ".join(
            f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}" for e in errors
        )
        logger.warning(
            "Validation error",
            extra={
                "request_id": request_id,
                "error_message": error_msg,
            },
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": error_msg,
                "code": "VALIDATION_ERROR",
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected errors with structured response."""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(
            "Unhandled exception",
            extra={
                "request_id": request_id,
                "error_type": type(exc).__name__,
                "error_message": str(exc),
            },
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "An internal error occurred. Please try again later.",
                "code": "INTERNAL_ERROR",
                "request_id": request_id,
            },
        )

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint.

        Returns {"status": "ok"} if the service is running.
        """
        return {"status": "ok"}

    @app.get("/health/db", tags=["Health"])
    async def database_health() -> dict[str, str | bool]:
        """Check database connectivity."""
        is_healthy = await db_manager.check_connection()
        return {
            "status": "ok" if is_healthy else "error",
            "database": is_healthy,
        }

    @app.get("/health/integrations", tags=["Health"])
    async def integrations_health() -> dict[str, Any]:
        """Report Claude configuration and circuit breaker state."""
        claude = await get_claude()
        return {
            "claude": {
                "available": claude.available,
                "model": claude.model,
                "circuit_breaker": claude.circuit_breaker.state.value,
            },
        }

    app.include_router(api_v1_router, prefix="/api/v1")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "competitive_analysis.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
