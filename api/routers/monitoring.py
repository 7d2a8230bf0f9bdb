"""API router for monitoring operations."""

from fastapi import APIRouter, Depends

from api.dependencies import get_monitoring_service, get_tray_service
from api.utils.error_handler import handle_async_api_operation
from core.log import get_logger
from core.models.api.responses import (
    MonitoringActionResponse,
    QuotaEventsResponse,
    WarmupResponse,
)
from core.models.domain.status import RuntimeStatus, SlotRuntimeStatus
from core.models.domain.tray import TraySummary
from core.services.monitoring_service import MonitoringService
from core.services.tray_service import TrayService

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/monitoring", tags=["monitoring"])


@router.put("", response_model=MonitoringActionResponse)
async def start_monitoring(
    service: MonitoringService = Depends(get_monitoring_service),
) -> MonitoringActionResponse:
    """Start or restart monitoring."""
    was_running = service.is_running
    await handle_async_api_operation(
        service.start_monitoring, error_message="Failed to start monitoring"
    )
    return MonitoringActionResponse(
        success=True,
        message="Monitoring restarted" if was_running else "Monitoring started",
        monitoring=service.is_running,
        running_slots=service.manager.running_slots,
    )


@router.delete("", response_model=MonitoringActionResponse)
async def stop_monitoring(
    service: MonitoringService = Depends(get_monitoring_service),
) -> MonitoringActionResponse:
    """Stop monitoring."""
    await handle_async_api_operation(
        service.stop_monitoring, error_message="Failed to stop monitoring"
    )
    return MonitoringActionResponse(
        success=True,
        message="Monitoring stopped",
        monitoring=service.is_running,
    )


@router.get("", response_model=RuntimeStatus)
async def get_runtime_status(
    service: MonitoringService = Depends(get_monitoring_service),
) -> RuntimeStatus:
    """Get the runtime status of every slot."""
    return await service.runtime_status()


@router.get("/slots/{slot}", response_model=SlotRuntimeStatus)
async def get_slot_status(
    slot: int,
    service: MonitoringService = Depends(get_monitoring_service),
) -> SlotRuntimeStatus:
    """Get the runtime status of one slot."""
    return await handle_async_api_operation(
        lambda: service.slot_status(slot),
        error_message=f"Failed to read slot {slot}",
    )


@router.get("/tray", response_model=TraySummary)
async def get_tray_summary(
    tray: TrayService = Depends(get_tray_service),
) -> TraySummary:
    """Get the latest tray summary."""
    return tray.summary


@router.get("/events", response_model=QuotaEventsResponse)
async def get_quota_events(
    service: MonitoringService = Depends(get_monitoring_service),
) -> QuotaEventsResponse:
    """Get the latest quota update of each slot."""
    return QuotaEventsResponse(events=service.latest_quota_events())


@router.post("/warmup", response_model=WarmupResponse)
async def warmup_all(
    service: MonitoringService = Depends(get_monitoring_service),
) -> WarmupResponse:
    """Send a warm-up request for every enabled slot."""
    return await handle_async_api_operation(
        service.warmup_all, error_message="Failed to warm up slots"
    )
