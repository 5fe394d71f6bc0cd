"""Platform capabilities - opening paths in the file manager and the system accent colour."""

import asyncio
import logging
import platform
from abc import ABC, abstractmethod
from typing import List, Optional

from cache_monitor.utils.path_resolver import resolve


class PlatformCapabilities(ABC):
    """Capability interface for platform-conditional behaviour outside the scan core."""

    @abstractmethod
    async def open_path(self, path: str) -> bool:
        """Open `path` in the platform file manager. Returns False if unsupported or failed."""

    @abstractmethod
    def get_accent_color(self) -> Optional[str]:
        """Return the system accent colour as #RRGGBB, or None when unavailable."""

    @abstractmethod
    def get_platform_name(self) -> str:
        pass


class NullPlatformCapabilities(PlatformCapabilities):
    async def open_path(self, path: str) -> bool:
        logging.debug(f"open_path not supported on this platform: {path}")
        return False

    def get_accent_color(self) -> Optional[str]:
        return None

    def get_platform_name(self) -> str:
        return "none"


class DesktopPlatformCapabilities(PlatformCapabilities):
    """Opens paths with the desktop's file manager command. No accent colour lookup."""

    _OPENERS = {
        "windows": ["explorer"],
        "macos": ["open"],
        "linux": ["xdg-open"],
    }

    def __init__(self, platform_name: str):
        self._platform_name = platform_name

    def get_platform_name(self) -> str:
        return self._platform_name

    def get_accent_color(self) -> Optional[str]:
        return None

    async def open_path(self, path: str) -> bool:
        expanded = resolve(path)
        cmd: List[str] = self._OPENERS[self._platform_name] + [expanded]
        try:
            await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            logging.info(f"Opened {expanded} with {cmd[0]}")
            return True
        except OSError as e:
            logging.warning(f"Could not open {expanded}: {e}")
            return False


def detect_platform() -> str:
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    return system


def create_platform_capabilities() -> PlatformCapabilities:
    platform_name = detect_platform()
    if platform_name in DesktopPlatformCapabilities._OPENERS:
        return DesktopPlatformCapabilities(platform_name)
    logging.info(f"No desktop integration for platform {platform_name}")
    return NullPlatformCapabilities()
