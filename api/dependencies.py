"""FastAPI dependencies backed by the application state."""

from fastapi import Request

from core.config import Settings
from core.log import get_logger
from core.services.monitoring_service import MonitoringService
from core.services.tray_service import TrayService

logger = get_logger(__name__)


def get_settings(request: Request) -> Settings:
    """Get settings from app state."""
    settings: Settings = request.app.state.settings
    return settings


def get_monitoring_service(request: Request) -> MonitoringService:
    """Get monitoring service from app state."""
    service: MonitoringService = request.app.state.monitoring_service
    return service


def get_tray_service(request: Request) -> TrayService:
    """Get tray service from app state."""
    tray: TrayService = request.app.state.monitoring_service.tray
    return tray
