"""
Alert sinks - the notification boundary of the scan coordinator.

The coordinator only knows the abstract AlertSink. Concrete sinks decide how
a threshold breach reaches the user; the interactive "mute" action a client
may offer comes back through ScanCoordinator.mute_monitor, never through the
sink itself.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List

from cache_monitor.core.events.event_bus import DomainEventBus
from cache_monitor.core.events.scan_events import ThresholdExceededEvent
from cache_monitor.models import ThresholdAlert


def format_alert_message(alert: ThresholdAlert) -> str:
    return f"{alert.name} exceeded limit! Current: {alert.current_size_mb:.0f} MB"


class AlertSink(ABC):
    @abstractmethod
    async def notify(self, alert: ThresholdAlert) -> None:
        """Deliver one threshold breach."""


class LoggingAlertSink(AlertSink):
    async def notify(self, alert: ThresholdAlert) -> None:
        logging.warning(
            f"Cache Alert: {format_alert_message(alert)} (threshold {alert.threshold_mb:.0f} MB)",
            extra={
                "operation": "threshold_exceeded",
                "monitor_id": alert.monitor_id,
                "path": alert.path,
                "current_size_bytes": alert.current_size_bytes,
                "threshold_mb": alert.threshold_mb,
            },
        )


class EventBusAlertSink(AlertSink):
    """Publishes a ThresholdExceededEvent that the WebSocket layer forwards as a toast."""

    def __init__(self, event_bus: DomainEventBus):
        self._event_bus = event_bus

    async def notify(self, alert: ThresholdAlert) -> None:
        await self._event_bus.publish(
            ThresholdExceededEvent(alert=alert, message=format_alert_message(alert))
        )


class CompositeAlertSink(AlertSink):
    """Fans an alert out to several sinks; one failing sink does not stop the others."""

    def __init__(self, sinks: Iterable[AlertSink]):
        self._sinks: List[AlertSink] = list(sinks)

    async def notify(self, alert: ThresholdAlert) -> None:
        for sink in self._sinks:
            try:
                await sink.notify(alert)
            except Exception as e:
                logging.error(f"Alert sink {type(sink).__name__} failed for {alert.monitor_id}: {e}")
