"""
app/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Builds the shared HTTP client, database handles and services
- Registers API routes (webhook, media)
- Manages application lifecycle (startup/shutdown, background jobs)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

from app.core.config import settings, validate_settings
from app.core.dependencies import build_services, create_http_client
from app.core.errors import add_exception_handlers
from app.core.logging import setup_logging, get_logger
from app.db.mongo import (
    connect_to_mongo,
    close_mongo_connection,
    check_database_health,
    get_conversations_collection,
    get_artifacts_bucket,
)
from app.db.indexes import create_indexes
from app.schemas.response import HealthResponse
from app.api import webhook, media

VERSION = "1.0.0"

# Initialize logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    logger.info("🚀 Starting Dreamr application...")

    try:
        validate_settings()
        logger.info("✅ Configuration validated")

        await connect_to_mongo()
        await create_indexes()

        http_client = create_http_client(settings)
        app.state.services = build_services(
            settings,
            http_client,
            get_conversations_collection(),
            get_artifacts_bucket(),
        )

        logger.info("🎉 Dreamr application started successfully!")
        logger.info(f"Environment: {settings.ENVIRONMENT}")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield

    logger.info("🛑 Shutting down Dreamr application...")

    try:
        services = app.state.services
        await services.jobs.shutdown()
        await services.http.aclose()
        logger.info("✅ HTTP client closed")

        await close_mongo_connection()
        logger.info("👋 Dreamr application shut down successfully")

    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}", exc_info=True)


app = FastAPI(
    title="Dreamr - Image to Video SMS Bot",
    description="Send an image by SMS, edit it with AI, and turn it into a video",
    version=VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

add_exception_handlers(app)


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # Twilio gives up on webhooks after 15 seconds
    if process_time > 5.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


app.include_router(webhook.router, prefix=settings.API_PREFIX, tags=["Webhook"])
app.include_router(media.router, prefix=settings.API_PREFIX, tags=["Media"])


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "Dreamr API",
        "version": VERSION,
        "description": "SMS image editing and video generation bot",
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """
    Checks database connectivity and reports running background jobs.
    """
    health = HealthResponse(
        status="healthy",
        timestamp=time.time(),
        environment=settings.ENVIRONMENT,
        version=VERSION,
    )

    db_healthy = await check_database_health()
    health.checks["database"] = "healthy" if db_healthy else "unhealthy"
    if not db_healthy:
        health.status = "degraded"

    services = getattr(request.app.state, "services", None)
    health.checks["active_jobs"] = services.jobs.active_count if services else 0

    status_code = 200 if health.status == "healthy" else 503
    return JSONResponse(content=health.model_dump(), status_code=status_code)


@app.get("/ready", tags=["Health"])
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


@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
