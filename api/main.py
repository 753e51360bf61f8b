"""
FastAPI backend for the zonemap delivery zone editor.

Provides REST API endpoints for:
- Delivery zone management (circles and polygons)
- Selected zone on the dashboard map
- Delivery fee quotes for a point

Version: 1.0.0
"""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from api.config import settings
from api.routers import zones as zones_router
from api.state import get_app_state
from zonemap.metrics import get_metrics

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


# =============================================================================
# Application Factory
# =============================================================================

def create_app() -> FastAPI:
    """
    Application factory for the zonemap API.

    Creates and configures the FastAPI application with middleware and routes.

    Returns:
        FastAPI: Configured application instance
    """
    application = FastAPI(
        title="zonemap API",
        description="""
## Delivery Zone API

Delivery zones of a storefront, edited on the dashboard map.

### Features
- Circular (radius) and polygonal zones with fee, ETA and priority
- Selection shared with the map view
- Delivery fee resolution for customer coordinates
        """,
        version=API_VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    # CORS middleware - use configured origins only (NO WILDCARDS)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    @application.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})

    application.include_router(zones_router.router)

    @application.get("/", tags=["System"])
    async def root():
        """
        API root endpoint.

        Returns basic API information and available endpoint categories.
        """
        return {
            "name": "zonemap API",
            "version": API_VERSION,
            "status": "operational",
            "docs": "/api/docs",
            "endpoints": {
                "health": "/api/health",
                "metrics": "/api/metrics",
                "zones": "/api/zones/...",
            }
        }

    @application.get("/api/health", tags=["System"])
    async def health_check():
        """Health check endpoint for load balancers."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": API_VERSION,
            "components": get_app_state().health_check(),
        }

    @application.get("/api/metrics", tags=["System"])
    async def metrics_summary():
        """Engine timings, counters and gauges in JSON format."""
        return get_metrics().get_summary()

    return application


# Create the application
app = create_app()

# Initialize application state (thread-safe singleton)
_ = get_app_state()


# ============================================================================
# Run Server
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level=settings.log_level.lower(),
    )
