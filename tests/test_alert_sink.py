from unittest.mock import AsyncMock, patch

import pytest

from cache_monitor.core.events.event_bus import DomainEventBus
from cache_monitor.core.events.scan_events import ThresholdExceededEvent
from cache_monitor.models import BYTES_PER_MB, ThresholdAlert
from cache_monitor.services.alert_sink import (
    CompositeAlertSink,
    EventBusAlertSink,
    LoggingAlertSink,
    format_alert_message,
)
from conftest import RecordingAlertSink

pytestmark = pytest.mark.asyncio


@pytest.fixture
def alert():
    return ThresholdAlert(
        monitor_id="npm-cache",
        name="npm Cache",
        path="%APPDATA%/npm-cache",
        current_size_bytes=1536 * BYTES_PER_MB,
        threshold_mb=1024.0,
    )


class TestAlertSinks:

    async def test_message_format(self, alert):
        assert format_alert_message(alert) == "npm Cache exceeded limit! Current: 1536 MB"

    async def test_logging_sink_logs_warning(self, alert):
        with patch("logging.warning") as mock_warning:
            await LoggingAlertSink().notify(alert)

        mock_warning.assert_called_once()
        args, kwargs = mock_warning.call_args
        assert "npm Cache exceeded limit!" in args[0]
        assert kwargs["extra"]["monitor_id"] == "npm-cache"

    async def test_event_bus_sink_publishes(self, alert):
        bus = DomainEventBus()
        received = []

        async def handler(event: ThresholdExceededEvent):
            received.append(event)

        await bus.subscribe(ThresholdExceededEvent, handler)
        await EventBusAlertSink(bus).notify(alert)

        assert len(received) == 1
        assert received[0].alert == alert
        assert received[0].message == format_alert_message(alert)

    async def test_composite_isolates_failures(self, alert):
        failing = AsyncMock()
        failing.notify.side_effect = RuntimeError("toast service down")
        recording = RecordingAlertSink()

        with patch("logging.error") as mock_error:
            await CompositeAlertSink([failing, recording]).notify(alert)

        failing.notify.assert_awaited_once_with(alert)
        assert recording.alerts == [alert]
        mock_error.assert_called_once()
