"""Seed monitors used on first run and whenever persisted state is missing or corrupt."""

from typing import List

from cache_monitor.models import MonitorConfig

# (id, name, path, threshold in MB)
_SEED = [
    ("temp", "Temp", "%TEMP%", 2048.0),
    ("npm-cache", "npm Cache", "%LOCALAPPDATA%/npm-cache", 1024.0),
    ("pip-cache", "pip Cache", "%LOCALAPPDATA%/pip/Cache", 1024.0),
    ("yarn-cache", "Yarn Cache", "%LOCALAPPDATA%/Yarn/Cache", 2048.0),
    ("gradle-cache", "Gradle Cache", "%USERPROFILE%/.gradle/caches", 4096.0),
    ("nuget-cache", "NuGet Packages", "%USERPROFILE%/.nuget/packages", 4096.0),
    ("chrome-cache", "Chrome Cache", "%LOCALAPPDATA%/Google/Chrome/User Data/Default/Cache", 1024.0),
    ("edge-cache", "Edge Cache", "%LOCALAPPDATA%/Microsoft/Edge/User Data/Default/Cache", 1024.0),
]


def get_default_monitors() -> List[MonitorConfig]:
    """Return a fresh list of the built-in monitors."""
    return [
        MonitorConfig(id=monitor_id, name=name, path=path, threshold_mb=threshold)
        for monitor_id, name, path, threshold in _SEED
    ]
