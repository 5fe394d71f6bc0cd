from functools import lru_cache
from typing import Any, Dict

from cache_monitor.core.events.event_bus import DomainEventBus

from .config import Settings
from .presentation.event_handlers import PresentationEventHandlers
from .presentation.websocket_manager import WebSocketManager
from .services.alert_sink import AlertSink, CompositeAlertSink, EventBusAlertSink, LoggingAlertSink
from .services.directory_scanner import DirectoryScannerService
from .services.monitor_registry import MonitorRegistry
from .services.platform import PlatformCapabilities, create_platform_capabilities
from .services.scan_coordinator import ScanCoordinator

# Global singleton instances
_singletons: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    """Hent Settings singleton instance."""
    return Settings()


def get_event_bus() -> DomainEventBus:
    if "event_bus" not in _singletons:
        _singletons["event_bus"] = DomainEventBus()
    return _singletons["event_bus"]


def get_monitor_registry() -> MonitorRegistry:
    if "monitor_registry" not in _singletons:
        _singletons["monitor_registry"] = MonitorRegistry(get_settings().config_path)
    return _singletons["monitor_registry"]


def get_directory_scanner() -> DirectoryScannerService:
    if "directory_scanner" not in _singletons:
        _singletons["directory_scanner"] = DirectoryScannerService(
            progress_interval_files=get_settings().progress_interval_files
        )
    return _singletons["directory_scanner"]


def get_alert_sink() -> AlertSink:
    if "alert_sink" not in _singletons:
        _singletons["alert_sink"] = CompositeAlertSink(
            [LoggingAlertSink(), EventBusAlertSink(get_event_bus())]
        )
    return _singletons["alert_sink"]


def get_scan_coordinator() -> ScanCoordinator:
    if "scan_coordinator" not in _singletons:
        _singletons["scan_coordinator"] = ScanCoordinator(
            registry=get_monitor_registry(),
            scanner=get_directory_scanner(),
            alert_sink=get_alert_sink(),
            event_bus=get_event_bus(),
        )
    return _singletons["scan_coordinator"]


def get_platform_capabilities() -> PlatformCapabilities:
    if "platform_capabilities" not in _singletons:
        _singletons["platform_capabilities"] = create_platform_capabilities()
    return _singletons["platform_capabilities"]


def get_websocket_manager() -> WebSocketManager:
    if "websocket_manager" not in _singletons:
        _singletons["websocket_manager"] = WebSocketManager()
    return _singletons["websocket_manager"]


def get_presentation_event_handlers() -> PresentationEventHandlers:
    if "presentation_event_handlers" not in _singletons:
        _singletons["presentation_event_handlers"] = PresentationEventHandlers(
            websocket_manager=get_websocket_manager()
        )
    return _singletons["presentation_event_handlers"]


def reset_singletons() -> None:
    _singletons.clear()
    get_settings.cache_clear()
