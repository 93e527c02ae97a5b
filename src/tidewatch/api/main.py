"""
FastAPI Main Application

Tidewatch risk aggregation REST API.
"""
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from src import __version__
from src.tidewatch.api.cache import get_cache_stats
from src.tidewatch.api.routers import risk
from src.tidewatch.api.schemas import ErrorResponse, HealthCheck
from src.tidewatch.errors import ConfigurationError
from src.tidewatch.reference.tables import get_reference_tables
from src.tidewatch.utils.logger import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Tidewatch Risk API",
    description="Composite ocean-health, flood, storm-surge, cyclone and reef-bleaching indices",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(risk.router)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    """Setup failures are reported distinctly from data unavailability."""
    logger.error("configuration_error", path=request.url.path, error=str(exc))
    body = ErrorResponse(error="configuration_error", detail=str(exc))
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True))


@app.get("/health", response_model=HealthCheck, tags=["health"])
def health_check():
    """
    Health check endpoint.

    Returns:
        Health status with reference table and cache checks
    """
    try:
        domains = sorted(d.value for d in get_reference_tables().weights)
        status = "healthy"
    except ConfigurationError as e:
        logger.error("health_reference_tables_invalid", error=str(e))
        domains = []
        status = "degraded"

    cache_stats = get_cache_stats()
    cache_status = "connected" if cache_stats.get("available") else "unavailable"

    return HealthCheck(
        status=status,
        version=__version__,
        cache=cache_status,
        domains=domains,
        timestamp=datetime.now(timezone.utc),
    )


@app.get("/", tags=["root"])
def root():
    """
    Root endpoint.

    Returns:
        API information
    """
    return {
        "name": "Tidewatch Risk API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "domains": [d.value for d in get_reference_tables().weights],
        "notes": [
            "Segment scores are multiplier-scaled approximations, not per-segment measurements",
            "Biodiversity folds in reef health and is an approximation",
        ],
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.tidewatch.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
