"""
Base class for all domain events.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """
    Something that happened in the monitor core.

    Attributes:
        event_name: Name used when the event is forwarded to UI clients.
        event_id: A unique identifier for the event instance.
        timestamp: The UTC time when the event was created.
    """

    event_name: ClassVar[str] = "domain-event"

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
