"""
Monitor Registry - the persisted collection of monitor definitions and app settings.

Two independent JSON documents live in the config directory:
- monitors.json: array of MonitorConfig objects (lowerCamelCase fields)
- settings.json: a single AppSettings object

Both degrade to built-in defaults when missing or unparseable and are always
fully overwritten on save. A file that exists but cannot be read is never
replaced: read-modify-write operations raise RegistryReadError instead.

All writes go through one asyncio.Lock; reads are never blocked because
every write lands via an atomic file replace.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Callable, List, Optional, Union

import aiofiles
import aiofiles.os
from pydantic import TypeAdapter, ValidationError

from cache_monitor.core.exceptions import (
    InvalidConfigError,
    RegistryReadError,
    RegistryWriteError,
)
from cache_monitor.models import AppSettings, MonitorConfig
from cache_monitor.services.default_monitors import get_default_monitors

MONITORS_FILE = "monitors.json"
SETTINGS_FILE = "settings.json"

_monitor_list_adapter = TypeAdapter(List[MonitorConfig])

MonitorMutator = Callable[[List[MonitorConfig]], List[MonitorConfig]]


def serialize_monitors(monitors: List[MonitorConfig]) -> str:
    return json.dumps(
        [m.model_dump(mode="json", by_alias=True) for m in monitors], indent=2
    )


def parse_monitors(blob: Union[str, bytes]) -> List[MonitorConfig]:
    """Parse and validate a serialized monitor list, raising InvalidConfigError on any problem."""
    try:
        monitors = _monitor_list_adapter.validate_json(blob)
    except (ValidationError, ValueError) as e:
        raise InvalidConfigError() from e
    _ensure_unique_ids(monitors)
    return monitors


def _ensure_unique_ids(monitors: List[MonitorConfig]) -> None:
    seen = set()
    for monitor in monitors:
        if monitor.id in seen:
            raise InvalidConfigError(f"Duplicate monitor id: {monitor.id}")
        seen.add(monitor.id)


class MonitorRegistry:
    def __init__(self, config_dir: Path):
        self._config_dir = Path(config_dir)
        self._write_lock = asyncio.Lock()
        logging.info(f"MonitorRegistry initialized at {self._config_dir}")

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def monitors_path(self) -> Path:
        return self._config_dir / MONITORS_FILE

    @property
    def settings_path(self) -> Path:
        return self._config_dir / SETTINGS_FILE

    # --- Monitors ---

    async def load(self, strict: bool = False) -> List[MonitorConfig]:
        """
        Return persisted monitors, or the default seed set if the file is
        missing or corrupt.

        An unreadable file also yields the defaults unless `strict` is set, in
        which case RegistryReadError propagates.
        """
        try:
            content = await self._read_text(self.monitors_path)
        except RegistryReadError as e:
            if strict:
                raise
            logging.warning(f"{e} - using defaults")
            return get_default_monitors()
        if content is None:
            return get_default_monitors()
        try:
            return parse_monitors(content)
        except InvalidConfigError as e:
            logging.warning(
                f"Persisted monitors at {self.monitors_path} are corrupt, using defaults: {e.__cause__ or e}"
            )
            return get_default_monitors()

    async def save(self, monitors: List[MonitorConfig]) -> None:
        _ensure_unique_ids(monitors)
        async with self._write_lock:
            await self._write_monitors(monitors)

    async def update(self, mutator: MonitorMutator) -> List[MonitorConfig]:
        """
        Atomic load-modify-save: reads the full list, applies `mutator`, writes
        the full list back, all under the registry write lock.
        """
        async with self._write_lock:
            monitors = await self.load(strict=True)
            updated = mutator(monitors)
            _ensure_unique_ids(updated)
            await self._write_monitors(updated)
            return updated

    async def update_monitor(self, monitor_id: str, **changes) -> Optional[MonitorConfig]:
        """Apply field changes to a single monitor. Returns None for an unknown id."""
        found: List[MonitorConfig] = []

        def _apply(monitors: List[MonitorConfig]) -> List[MonitorConfig]:
            result = []
            for monitor in monitors:
                if monitor.id == monitor_id:
                    monitor = monitor.model_copy(update=changes)
                    found.append(monitor)
                result.append(monitor)
            return result

        async with self._write_lock:
            monitors = _apply(await self.load(strict=True))
            if not found:
                logging.warning(f"Forsøg på at opdatere ukendt monitor ID: {monitor_id}")
                return None
            await self._write_monitors(monitors)
        logging.info(f"Monitor {monitor_id} updated: {changes}")
        return found[0]

    async def restore_defaults(self) -> List[MonitorConfig]:
        async with self._write_lock:
            if await aiofiles.os.path.exists(self.monitors_path):
                try:
                    await aiofiles.os.remove(self.monitors_path)
                except OSError as e:
                    raise RegistryWriteError(str(self.monitors_path), str(e)) from e
        logging.info("Monitors restored to defaults")
        return get_default_monitors()

    async def import_from(self, blob: Union[str, bytes]) -> List[MonitorConfig]:
        """Replace persisted monitors with `blob`. Existing state is untouched if it fails to validate."""
        monitors = parse_monitors(blob)
        async with self._write_lock:
            await self._write_monitors(monitors)
        logging.info(f"Imported {len(monitors)} monitors")
        return monitors

    async def export_to(self) -> str:
        return serialize_monitors(await self.load(strict=True))

    # --- Settings ---

    async def load_settings(self) -> AppSettings:
        try:
            content = await self._read_text(self.settings_path)
        except RegistryReadError as e:
            logging.warning(f"{e} - using default settings")
            return AppSettings()
        if content is None:
            return AppSettings()
        try:
            return AppSettings.model_validate_json(content)
        except (ValidationError, ValueError) as e:
            logging.warning(f"Persisted settings at {self.settings_path} are corrupt, using defaults: {e}")
            return AppSettings()

    async def save_settings(self, settings: AppSettings) -> None:
        async with self._write_lock:
            await self._atomic_write(
                self.settings_path,
                json.dumps(settings.model_dump(mode="json", by_alias=True), indent=2),
            )

    # --- File helpers ---

    async def _write_monitors(self, monitors: List[MonitorConfig]) -> None:
        await self._atomic_write(self.monitors_path, serialize_monitors(monitors))
        logging.debug(f"Saved {len(monitors)} monitors to {self.monitors_path}")

    async def _read_text(self, path: Path) -> Optional[str]:
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return await f.read()
        except FileNotFoundError:
            return None
        except UnicodeDecodeError as e:
            logging.warning(f"{path} is not valid UTF-8: {e}")
            return ""
        except OSError as e:
            logging.error(f"Failed to read {path}: {e}")
            raise RegistryReadError(str(path), str(e)) from e

    async def _atomic_write(self, path: Path, content: str) -> None:
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            await aiofiles.os.makedirs(path.parent, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            logging.error(f"Failed to write {path}: {e}")
            raise RegistryWriteError(str(path), str(e)) from e
