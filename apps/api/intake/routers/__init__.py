"""API routers."""

from intake.routers.health import router as health_router
from intake.routers.submissions import router as submissions_router

__all__ = ["health_router", "submissions_router"]
