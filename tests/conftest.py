"""
Pytest configuration og shared fixtures.
"""

from pathlib import Path
from unittest.mock import patch

import aiofiles
import pytest

from cache_monitor.dependencies import reset_singletons
from cache_monitor.models import MonitorConfig, ThresholdAlert
from cache_monitor.services.alert_sink import AlertSink


@pytest.fixture(autouse=True)
def clean_singletons():
    """Automatically reset singletons before hver test."""
    reset_singletons()
    yield
    reset_singletons()


class RecordingAlertSink(AlertSink):
    """Alert sink that keeps every alert it receives."""

    def __init__(self):
        self.alerts = []

    async def notify(self, alert: ThresholdAlert) -> None:
        self.alerts.append(alert)


@pytest.fixture
def alert_sink():
    return RecordingAlertSink()


def write_file(path: Path, size: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x" * size)
    return path


@pytest.fixture
def sample_tree(tmp_path):
    """
    root/a.txt              10 bytes  (depth 1)
    root/b.bin              20 bytes  (depth 1)
    root/sub/c.txt          30 bytes  (depth 2)
    root/sub/deeper/d.txt   40 bytes  (depth 3)
    """
    root = tmp_path / "root"
    write_file(root / "a.txt", 10)
    write_file(root / "b.bin", 20)
    write_file(root / "sub" / "c.txt", 30)
    write_file(root / "sub" / "deeper" / "d.txt", 40)
    return root


def make_monitor(monitor_id: str, path, **overrides) -> MonitorConfig:
    values = dict(
        id=monitor_id,
        name=monitor_id.title(),
        path=str(path),
        threshold_mb=1024.0,
        enabled=True,
        notify=True,
    )
    values.update(overrides)
    return MonitorConfig(**values)


def deny_reads(path: Path, after: int = 0):
    """
    Patch aiofiles.open so reading `path` fails with PermissionError once
    `after` reads have succeeded. Writes are not affected.
    """
    real_open = aiofiles.open
    reads = []

    def guarded_open(file, mode="r", *args, **kwargs):
        if Path(file) == Path(path) and "r" in mode:
            reads.append(file)
            if len(reads) > after:
                raise PermissionError(13, "Permission denied", str(file))
        return real_open(file, mode, *args, **kwargs)

    return patch("cache_monitor.services.monitor_registry.aiofiles.open", side_effect=guarded_open)
