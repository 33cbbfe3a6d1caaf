"""Conversation Relay API - Main Application Module.

This module initializes the FastAPI application with proper configuration,
middleware, routing, and lifecycle management for the conversation backend.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.logging_config import request_id_var, setup_logging
from app.database import engine
from app.services.conversation_gateway import conversation_gateway
from models import Base

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Manage application lifecycle events."""
    setup_logging()
    logger.info("Starting %s (%s)", settings.app_name, settings.environment.value)

    # Development mode: auto-create tables if they don't exist
    if settings.is_development:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified")

    if not settings.has_provider_credentials:
        logger.warning("Twilio credentials missing; conversation endpoints will fail")

    yield

    logger.info("Shutting down %s", settings.app_name)
    await conversation_gateway.close()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        description="Authenticates users and relays conversations to Twilio Conversations",
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    # Add middleware
    setup_middleware(app)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app)

    return app


def setup_middleware(app: FastAPI):
    """Configure application middleware."""
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "error",
                "message": message,
                "error_code": error_code,
                "details": details,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "request_id": getattr(request.state, "request_id", None),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Convert errors to JSON-serializable format
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": error.get("loc", []),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        return JSONResponse(
            status_code=422,
            content={
                "status": "error",
                "message": "Validation error",
                "error_code": "VALIDATION_ERROR",
                "details": errors,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "request_id": getattr(request.state, "request_id", None),
            },
        )


def setup_routers(app: FastAPI):
    """Configure application routers."""
    from app.domains.auth.controller import router as auth_router
    from app.domains.conversation.controller import router as conversation_router

    @app.get("/health")
    async def health_check():
        """Health check endpoint covering the database and provider configuration."""
        db_status = "healthy"
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning("Database health check failed: %s", str(e))
            db_status = "unhealthy"

        provider_status = "configured" if settings.has_provider_credentials else "not_configured"

        return JSONResponse(
            status_code=200 if db_status == "healthy" else 503,
            content={
                "status": "healthy" if db_status == "healthy" else "degraded",
                "version": settings.version,
                "environment": settings.environment.value,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": {
                    "database": db_status,
                    "conversation_provider": provider_status,
                },
            },
        )

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": "Conversation relay backend",
            "docs_url": "/docs" if settings.is_development else None,
        }

    # Include domain routers
    app.include_router(auth_router)
    app.include_router(conversation_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
