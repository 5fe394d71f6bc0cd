# cache_monitor/core/events/scan_events.py
from dataclasses import dataclass
from typing import ClassVar

from cache_monitor.core.events.domain_event import DomainEvent
from cache_monitor.models import ScanProgress, ThresholdAlert


@dataclass(frozen=True)
class ScanProgressEvent(DomainEvent):
    """Event published for every progress snapshot of a sweep or streaming scan."""
    event_name: ClassVar[str] = "scan-progress"
    progress: ScanProgress


@dataclass(frozen=True)
class BackgroundCheckCompleteEvent(DomainEvent):
    """Event published once at the end of every sweep cycle."""
    event_name: ClassVar[str] = "background-check-complete"
    completed_at: int


@dataclass(frozen=True)
class MonitorsUpdatedEvent(DomainEvent):
    """Event published when the registry is mutated out-of-band, e.g. by a mute action."""
    event_name: ClassVar[str] = "monitors-updated"
    monitor_id: str


@dataclass(frozen=True)
class ThresholdExceededEvent(DomainEvent):
    """Event published by the event bus alert sink when a monitor breaches its threshold."""
    event_name: ClassVar[str] = "threshold-exceeded"
    alert: ThresholdAlert
    message: str
