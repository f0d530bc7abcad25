"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .core.config import settings
from .core.database import SessionProvider, close_db, create_engine, init_db
from .core.dependencies import create_booking_engine
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    validation_exception_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_structured_logging,
    setup_tracing,
)
from .routers import booking, health, metrics, train
from .services.booking_engine import BookingEngine
from .workers.manager import WorkerManager

SERVICE_NAME = "railbook-api"
VERSION = "1.0.0"

# Configure structured logging
setup_structured_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Builds the booking engine (unless one was injected), creates tables,
    rebuilds the seat inventory from stored bookings and starts the expiry
    worker.
    """
    logger.info(
        "Starting FastAPI application",
        extra={"environment": settings.environment, "debug": settings.debug}
    )

    db_engine = None
    booking_engine: BookingEngine | None = getattr(app.state, "booking_engine", None)

    try:
        setup_tracing(SERVICE_NAME)

        if booking_engine is None:
            db_engine = create_engine(settings.database_url)
            instrument_sqlalchemy(db_engine)
            await init_db(db_engine)
            logger.info("Database initialized successfully")

            booking_engine = create_booking_engine(SessionProvider(db_engine), settings)
            app.state.booking_engine = booking_engine

        restored = await booking_engine.recover()
        logger.info("Seat inventory restored", extra={"reservations": restored})

        workers = WorkerManager(booking_engine, settings)
        await workers.start_all()
        app.state.workers = workers
    except Exception as e:
        logger.error("Failed to initialize application", exc_info=True, extra={"error": str(e)})
        raise

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down FastAPI application")

    try:
        await workers.stop_all()
        if db_engine is not None:
            await close_db(db_engine)
            logger.info("Database connections closed")
    except Exception as e:
        logger.error("Error during application cleanup", exc_info=True, extra={"error": str(e)})

    logger.info("Application shutdown complete")


def create_app(booking_engine: BookingEngine | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        booking_engine: Pre-built engine to serve; built in the lifespan when omitted

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Railbook API",
        description="RPC-over-HTTP API for train search, seat reservation, payment and ticket issuance",
        version=VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )
    if booking_engine is not None:
        app.state.booking_engine = booking_engine

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)

    # Instrument FastAPI with OpenTelemetry
    instrument_fastapi(app)

    # Register exception handlers
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        description="Check if the service is healthy and responsive",
        response_model=dict,
    )
    async def health_check():
        """Liveness: the process is up and serving requests."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": VERSION,
            "environment": settings.environment,
            "debug": settings.debug,
        }

    @app.get(
        "/ready",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Readiness Check",
        description="Check if the service is ready to accept requests",
        response_model=dict,
    )
    async def readiness_check(request: Request):
        """Readiness: the booking engine exists and the database answers."""
        engine: BookingEngine | None = getattr(request.app.state, "booking_engine", None)
        checks = {"booking_engine": "ok" if engine is not None else "unavailable", "database": "unavailable"}

        if engine is not None:
            try:
                async with engine.store.sessions.session() as db:
                    await db.execute(text("SELECT 1"))
                checks["database"] = "ok"
            except Exception as e:
                logger.warning("Readiness database check failed", extra={"error": str(e)})

        ready = all(value == "ok" for value in checks.values())
        return JSONResponse(
            status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "ready" if ready else "not_ready", "service": SERVICE_NAME, "checks": checks},
        )

    @app.get(
        "/info",
        status_code=status.HTTP_200_OK,
        tags=["Info"],
        summary="Service Information",
        description="Get detailed information about the service",
        response_model=dict,
    )
    async def service_info():
        """Service information endpoint."""
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "description": "Train ticket booking and seat reservation engine",
            "environment": settings.environment,
            "debug": settings.debug,
            "booking": {
                "hold_window_seconds": settings.hold_window_seconds,
                "booking_fee_amount": settings.booking_fee_amount,
                "currency": settings.currency,
            },
            "features": {
                "tracing": True,
                "problem_details": True,
                "simulated_payments": True,
            },
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "info": "/info",
                "metrics": "/metrics",
                "docs": "/docs" if settings.debug else None,
            },
        }

    # Register API routers
    app.include_router(health.router)
    app.include_router(train.station_router)
    app.include_router(train.router)
    app.include_router(booking.router)
    app.include_router(metrics.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "railbook.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
