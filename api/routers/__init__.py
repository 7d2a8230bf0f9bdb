"""API routers package."""

from .common import router as common_router
from .monitoring import router as monitoring_router
from .settings import router as settings_router

__all__ = [
    "common_router",
    "monitoring_router",
    "settings_router",
]
