"""API router for application settings."""

from fastapi import APIRouter, Depends

from api.dependencies import get_monitoring_service
from api.utils.error_handler import handle_async_api_operation
from core.log import get_logger
from core.models.domain.slot import AppConfig
from core.services.monitoring_service import MonitoringService

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/settings", tags=["settings"])


@router.get("", response_model=AppConfig)
async def get_app_settings(
    service: MonitoringService = Depends(get_monitoring_service),
) -> AppConfig:
    """Get the current application settings."""
    return service.config


@router.put("", response_model=AppConfig)
async def save_app_settings(
    config: AppConfig,
    service: MonitoringService = Depends(get_monitoring_service),
) -> AppConfig:
    """Save settings and apply them to the running engine."""
    return await handle_async_api_operation(
        lambda: service.save_settings(config),
        error_message="Failed to save settings",
    )
