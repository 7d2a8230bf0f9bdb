"""Core services package."""

from .monitoring_service import MonitoringService
from .tray_service import TrayService, render_tray

__all__ = [
    "MonitoringService",
    "TrayService",
    "render_tray",
]
