import logging
from typing import Any, Dict

from cache_monitor.core.events.domain_event import DomainEvent
from cache_monitor.core.events.event_bus import DomainEventBus
from cache_monitor.core.events.scan_events import (
    BackgroundCheckCompleteEvent,
    MonitorsUpdatedEvent,
    ScanProgressEvent,
    ThresholdExceededEvent,
)
from cache_monitor.presentation.websocket_manager import WebSocketManager


def _message(event: DomainEvent, data: Any) -> Dict[str, Any]:
    return {"type": event.event_name, "data": data}


class PresentationEventHandlers:
    """Translates domain events into WebSocket messages for UI clients."""

    def __init__(self, websocket_manager: WebSocketManager):
        self.websocket_manager = websocket_manager

    async def register(self, event_bus: DomainEventBus) -> None:
        await event_bus.subscribe(ScanProgressEvent, self.handle_scan_progress)
        await event_bus.subscribe(BackgroundCheckCompleteEvent, self.handle_background_check_complete)
        await event_bus.subscribe(MonitorsUpdatedEvent, self.handle_monitors_updated)
        await event_bus.subscribe(ThresholdExceededEvent, self.handle_threshold_exceeded)
        logging.info("Presentation handlers subscribed to DomainEventBus")

    async def handle_scan_progress(self, event: ScanProgressEvent) -> None:
        self.websocket_manager.broadcast_message(
            _message(event, event.progress.model_dump(mode="json", by_alias=True))
        )

    async def handle_background_check_complete(self, event: BackgroundCheckCompleteEvent) -> None:
        self.websocket_manager.broadcast_message(_message(event, event.completed_at))

    async def handle_monitors_updated(self, event: MonitorsUpdatedEvent) -> None:
        self.websocket_manager.broadcast_message(_message(event, {"monitorId": event.monitor_id}))

    async def handle_threshold_exceeded(self, event: ThresholdExceededEvent) -> None:
        data = event.alert.model_dump(mode="json", by_alias=True)
        data["title"] = "Cache Alert"
        data["message"] = event.message
        data["currentMb"] = round(event.alert.current_size_mb, 2)
        self.websocket_manager.broadcast_message(_message(event, data))
