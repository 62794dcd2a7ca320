"""API routers."""

from citywatch.routers.geospatial import router as geospatial_router
from citywatch.routers.health import router as health_router
from citywatch.routers.incidents import router as incidents_router

__all__ = ["geospatial_router", "health_router", "incidents_router"]
