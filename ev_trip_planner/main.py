import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .api.v1.endpoints import limiter, router as planner_router
from .config import get_settings, runtime_config_check
from .dependencies import close_service_container, get_service_container, init_service_container
from .logging_config import setup_logging

# Setup structured logging based on environment
setup_logging(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    service_name="ev-trip-planner"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the service container on startup and close provider clients on shutdown."""
    logger.info("Starting EV Trip Planner...", extra={"event": "startup_begin"})

    try:
        settings = get_settings()
        config_status = runtime_config_check(settings)
        init_service_container(settings)

        logger.info(
            "EV Trip Planner started successfully",
            extra={
                "event": "startup_complete",
                "config_health": config_status["overall_health"],
                "fallbacks_active": config_status["fallbacks_active"],
            }
        )
        yield  # App ready for traffic

    except Exception as e:
        logger.error(
            "Failed to start EV Trip Planner",
            extra={"event": "startup_failed", "error_type": type(e).__name__},
            exc_info=True
        )
        raise

    # Shutdown
    logger.info("Shutting down EV Trip Planner...", extra={"event": "shutdown_begin"})
    try:
        await close_service_container()
        logger.info("EV Trip Planner shut down successfully", extra={"event": "shutdown_complete"})
    except Exception:
        logger.error("Error during shutdown", extra={"event": "shutdown_failed"}, exc_info=True)


# Create FastAPI application
app = FastAPI(
    title="EV Trip Planner",
    description="Plans electric-vehicle trips with weather-adjusted energy estimates and charging station discovery",
    version="1.0.0",
    lifespan=lifespan
)

# Add rate limiting error handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
settings = get_settings()
cors_origins = settings.cors_origin_list or ["*"]
logger.info(f"CORS configured for origins: {cors_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS", "HEAD"],
    allow_headers=["Authorization", "Content-Type", "Accept", "Origin", "User-Agent", "X-Requested-With"],
    expose_headers=["Content-Length", "Content-Type"],
    max_age=86400  # 24 hours
)

app.include_router(planner_router)

logger.info("API routes registered: /v1/trips/*, /v1/stations/*, /v1/conditions, /v1/vehicles")


@app.get("/", tags=["health"])
async def root():
    """Health check endpoint."""
    container = get_service_container()
    return {
        "service": "EV Trip Planner",
        "status": "running",
        "version": "1.0.0",
        "providers": {
            "weather": "live" if container.settings.weather_live_enabled else "synthetic",
            "stations": "live" if container.settings.stations_live_enabled else "demo",
        },
        "condition_sampler": container.condition_sampler.get_statistics(),
        "station_aggregator": container.station_aggregator.get_statistics(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
