"""
Monitor API Router - commands for managing monitors and running scans.

Streaming scan results are not returned here; they are delivered on the
WebSocket as `scan-progress` messages keyed by monitorId.
"""

import logging
from typing import List

import aiofiles
from fastapi import APIRouter, Depends, HTTPException

from cache_monitor.core.exceptions import InvalidConfigError, RegistryIOError
from cache_monitor.dependencies import get_monitor_registry, get_scan_coordinator
from cache_monitor.models import (
    CheckPathRequest,
    MonitorConfig,
    PathRequest,
    ScanResult,
    StreamingCheckRequest,
)
from cache_monitor.services.monitor_registry import MonitorRegistry
from cache_monitor.services.scan_coordinator import ScanCoordinator

router = APIRouter(prefix="/api/monitors", tags=["monitors"])


@router.get("", response_model=List[MonitorConfig])
async def get_monitors(registry: MonitorRegistry = Depends(get_monitor_registry)):
    return await registry.load()


@router.put("")
async def save_monitors(
    monitors: List[MonitorConfig],
    registry: MonitorRegistry = Depends(get_monitor_registry),
):
    try:
        await registry.save(monitors)
    except InvalidConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RegistryIOError as e:
        raise HTTPException(status_code=500, detail=str(e))
    logging.info(f"API: Saved {len(monitors)} monitors", extra={"operation": "api_save_monitors"})
    return {"success": True, "count": len(monitors)}


@router.post("/restore-defaults", response_model=List[MonitorConfig])
async def restore_defaults(registry: MonitorRegistry = Depends(get_monitor_registry)):
    try:
        return await registry.restore_defaults()
    except RegistryIOError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/check", response_model=ScanResult)
async def check_monitor_path(
    request: CheckPathRequest,
    coordinator: ScanCoordinator = Depends(get_scan_coordinator),
):
    """Full synchronous scan of a path; the walk runs off the event loop."""
    logging.info(f"API: Checking path {request.path}")
    return await coordinator.check_path(request.path, request.max_depth)


@router.post("/check-streaming")
async def check_monitor_path_streaming(
    request: StreamingCheckRequest,
    coordinator: ScanCoordinator = Depends(get_scan_coordinator),
):
    started = coordinator.start_streaming_scan(request.monitor_id, request.path, request.max_depth)
    return {"monitorId": request.monitor_id, "started": started}


@router.post("/{monitor_id}/mute")
async def mute_monitor(
    monitor_id: str,
    coordinator: ScanCoordinator = Depends(get_scan_coordinator),
):
    try:
        muted = await coordinator.mute_monitor(monitor_id)
    except RegistryIOError as e:
        raise HTTPException(status_code=500, detail=str(e))
    if not muted:
        raise HTTPException(status_code=404, detail=f"Unknown monitor: {monitor_id}")
    return {"success": True, "monitorId": monitor_id, "notify": False}


@router.post("/export")
async def export_monitors(
    request: PathRequest,
    registry: MonitorRegistry = Depends(get_monitor_registry),
):
    try:
        content = await registry.export_to()
    except RegistryIOError as e:
        raise HTTPException(status_code=500, detail=str(e))
    try:
        async with aiofiles.open(request.path, "w", encoding="utf-8") as f:
            await f.write(content)
    except OSError as e:
        logging.error(f"API: Export to {request.path} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    logging.info(f"API: Monitors exported to {request.path}")
    return {"success": True, "path": request.path}


@router.post("/import")
async def import_monitors(
    request: PathRequest,
    registry: MonitorRegistry = Depends(get_monitor_registry),
):
    try:
        async with aiofiles.open(request.path, "r", encoding="utf-8") as f:
            content = await f.read()
    except (OSError, UnicodeDecodeError) as e:
        logging.error(f"API: Import from {request.path} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    try:
        monitors = await registry.import_from(content)
    except InvalidConfigError as e:
        logging.warning(f"API: Rejected import from {request.path}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    except RegistryIOError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"success": True, "count": len(monitors)}
