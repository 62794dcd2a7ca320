"""FastAPI application for the CityWatch backend."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from citywatch.config import get_settings
from citywatch.database import check_db_ready
from citywatch.dependencies import get_detection_client
from citywatch.errors import CityWatchError, DetectionFetchError
from citywatch.routers import geospatial_router, health_router, incidents_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()

# Rate limiter
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.rate_limit_per_minute}/minute"],
)


async def verify_detection_credentials() -> bool:
    """Check the detection API key. A failure is logged, not fatal."""
    client = get_detection_client(settings)
    try:
        await client.verify_credentials()
    except DetectionFetchError as e:
        logger.warning(f"Detection credentials not verified: {e.detail}")
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting CityWatch backend...")

    missing = settings.missing_required()
    if missing:
        logger.error(f"Missing required settings: {', '.join(missing)}")
        raise RuntimeError(f"Missing required settings: {', '.join(missing)}")

    # Verify database is ready
    try:
        await check_db_ready()
        logger.info("Database ready")
    except Exception as e:
        logger.error(f"Database not ready: {e}")
        raise

    await verify_detection_credentials()

    yield

    logger.info("CityWatch backend shut down")


# Create FastAPI app
app = FastAPI(
    title="CityWatch API",
    description="Urban incident reporting with automatic photo classification and heatmaps",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CityWatchError)
async def citywatch_exception_handler(request: Request, exc: CityWatchError):
    """Map pipeline errors to their stable client message."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{request.method} {request.url.path} failed: {type(exc).__name__}: "
        f"{exc.message} ({exc.detail})"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "Internal server error"},
    )


# Include routers
app.include_router(health_router)
app.include_router(incidents_router, prefix=settings.api_v1_prefix)
app.include_router(geospatial_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "CityWatch API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "citywatch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
