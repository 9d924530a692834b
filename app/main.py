"""
app/main.py

Purpose: Application entry points

- app: payment API, account-creation hook and health probes
- webhook_app: Stripe webhook receiver (deployed separately, route "/")
- Loads configuration and logging
- Manages application lifecycle (startup/shutdown)
- No business logic should be written here
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

from app.core.config import settings, validate_settings
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from app.db.indexes import create_indexes
from app.services.auth_service import init_firebase
from app.api import payments, webhook, auth_hooks

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info(f"Starting {app.title}...")

    try:
        validate_settings()
        logger.info("Configuration validated")

        if not init_firebase():
            logger.warning("Firebase Admin unavailable; bearer tokens will be rejected")

        await connect_to_mongo()
        await create_indexes()

        logger.info(f"{app.title} started (environment={settings.ENVIRONMENT}, debug={settings.DEBUG})")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    logger.info(f"Shutting down {app.title}...")

    try:
        await close_mongo_connection()
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Log slow requests
    if process_time > 5.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


def _base_app(title: str, description: str) -> FastAPI:
    application = FastAPI(
        title=title,
        description=description,
        version=VERSION,
        lifespan=lifespan,
        debug=settings.DEBUG,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.middleware("http")(add_process_time_header)
    add_exception_handlers(application)

    return application


def create_app() -> FastAPI:
    application = _base_app(
        "Alventura API",
        "Payment intents, saved cards and profile provisioning",
    )
    application.include_router(payments.router, prefix=settings.API_PREFIX, tags=["Payments"])
    application.include_router(auth_hooks.router, prefix=settings.API_PREFIX, tags=["Auth hooks"])

    @application.get("/", tags=["Health"])
    async def root():
        """Root endpoint - basic info."""
        return {
            "name": "Alventura API",
            "version": VERSION,
            "status": "running",
            "environment": settings.ENVIRONMENT
        }

    @application.get("/health", tags=["Health"])
    async def health_check():
        """
        Checks database connectivity and Stripe configuration.
        """
        from app.services.stripe_service import get_stripe_service

        health_status = {
            "status": "healthy",
            "timestamp": time.time(),
            "environment": settings.ENVIRONMENT,
            "version": VERSION,
            "checks": {}
        }

        db_healthy = await check_database_health()
        health_status["checks"]["database"] = "healthy" if db_healthy else "unhealthy"
        if not db_healthy:
            health_status["status"] = "degraded"

        health_status["checks"]["stripe"] = "configured" if get_stripe_service().is_configured else "dummy"
        health_status["checks"]["webhook_secret"] = "configured" if settings.STRIPE_WEBHOOK_SECRET else "missing"

        status_code = 200 if health_status["status"] == "healthy" else 503
        return JSONResponse(content=health_status, status_code=status_code)

    @application.get("/ready", tags=["Health"])
    async def readiness_check():
        """
        Readiness probe - indicates if app is ready to receive traffic.
        """
        if await check_database_health():
            return {"status": "ready"}
        return JSONResponse(
            status_code=503,
            content={"status": "not_ready", "reason": "database_unavailable"}
        )

    @application.get("/live", tags=["Health"])
    async def liveness_check():
        """
        Liveness probe - indicates if app is alive.
        """
        return {"status": "alive"}

    return application


def create_webhook_app() -> FastAPI:
    application = _base_app(
        "Alventura Stripe Webhook",
        "Verifies Stripe webhooks and mirrors payments into MongoDB",
    )
    application.include_router(webhook.router, tags=["Webhook"])
    return application


app = create_app()
webhook_app = create_webhook_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
