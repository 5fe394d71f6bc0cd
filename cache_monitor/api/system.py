import logging

from fastapi import APIRouter, Depends, HTTPException

from cache_monitor.core.exceptions import RegistryIOError
from cache_monitor.dependencies import (
    get_monitor_registry,
    get_platform_capabilities,
    get_scan_coordinator,
    get_websocket_manager,
)
from cache_monitor.models import AppSettings, NotificationTestRequest, PathRequest, ThresholdAlert
from cache_monitor.presentation.websocket_manager import WebSocketManager
from cache_monitor.services.monitor_registry import MonitorRegistry
from cache_monitor.services.platform import PlatformCapabilities
from cache_monitor.services.scan_coordinator import ScanCoordinator

router = APIRouter(prefix="/api", tags=["system"])


@router.get("/settings", response_model=AppSettings)
async def get_settings(registry: MonitorRegistry = Depends(get_monitor_registry)):
    return await registry.load_settings()


@router.put("/settings")
async def save_settings(
    settings: AppSettings,
    registry: MonitorRegistry = Depends(get_monitor_registry),
):
    try:
        await registry.save_settings(settings)
    except RegistryIOError as e:
        raise HTTPException(status_code=500, detail=str(e))
    logging.info(
        f"API: Settings saved (interval {settings.check_interval_minutes} min)",
        extra={"operation": "api_save_settings"},
    )
    return {"success": True}


@router.post("/monitors/open")
async def open_monitor_path(
    request: PathRequest,
    capabilities: PlatformCapabilities = Depends(get_platform_capabilities),
):
    opened = await capabilities.open_path(request.path)
    return {"opened": opened}


@router.post("/config/open-folder")
async def open_config_folder(
    registry: MonitorRegistry = Depends(get_monitor_registry),
    capabilities: PlatformCapabilities = Depends(get_platform_capabilities),
):
    opened = await capabilities.open_path(str(registry.config_dir))
    return {"opened": opened, "path": str(registry.config_dir)}


@router.get("/accent-color")
async def get_accent_color(capabilities: PlatformCapabilities = Depends(get_platform_capabilities)):
    return {"accentColor": capabilities.get_accent_color()}


@router.post("/notifications/test")
async def send_test_notification(
    request: NotificationTestRequest,
    coordinator: ScanCoordinator = Depends(get_scan_coordinator),
):
    """Send a synthetic alert through the configured alert sink."""
    alert = ThresholdAlert(
        monitor_id=request.id,
        name=request.name,
        path=request.path,
        current_size_bytes=int(request.current_mb * 1024 * 1024),
        threshold_mb=request.threshold,
    )
    await coordinator.deliver_alert(alert)
    return {"success": True}


@router.get("/status")
async def get_status(
    coordinator: ScanCoordinator = Depends(get_scan_coordinator),
    capabilities: PlatformCapabilities = Depends(get_platform_capabilities),
    ws_manager: WebSocketManager = Depends(get_websocket_manager),
):
    status = coordinator.get_status()
    status["platform"] = capabilities.get_platform_name()
    status["websocket_clients"] = ws_manager.connection_count
    return status
