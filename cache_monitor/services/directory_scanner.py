"""
Directory Scanner Service - aggregate size and file count of a directory tree.

Responsibilities:
- Resolve %VAR% placeholders before touching the filesystem
- Walk the tree bounded by an optional depth limit
- Count regular files only; unreadable entries are skipped
- Stream monotonic progress snapshots ending in exactly one terminal event

The walk itself is blocking I/O. The async wrappers run it on a worker thread
so the event loop serving HTTP and WebSocket clients is never blocked.
"""

import asyncio
import logging
import os
import threading
import time
from datetime import datetime
from typing import Callable, Optional

from cache_monitor.core.exceptions import PathNotFoundError
from cache_monitor.models import ScanProgress, ScanResult
from cache_monitor.utils.path_resolver import resolve

PATH_NOT_FOUND = "Path not found"
SCAN_CANCELLED = "Scan cancelled"

ProgressCallback = Callable[[ScanProgress], None]


class _ScanCancelled(Exception):
    pass


class _Totals:
    """Running totals for one walk."""

    __slots__ = ("size_bytes", "file_count")

    def __init__(self) -> None:
        self.size_bytes = 0
        self.file_count = 0


class DirectoryScannerService:
    def __init__(self, progress_interval_files: int = 500):
        if progress_interval_files < 1:
            raise ValueError("progress_interval_files must be >= 1")
        self._progress_interval_files = progress_interval_files
        logging.info(
            f"DirectoryScannerService initialized (progress every {progress_interval_files} files)"
        )

    def scan(
        self,
        root_path: str,
        max_depth: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """Walk `root_path` to completion and return the aggregate totals."""
        resolved = resolve(root_path)
        start_time = datetime.now()
        totals = _Totals()

        try:
            self._walk(resolved, max_depth, totals, cancel_event=cancel_event)
        except PathNotFoundError:
            logging.info(f"Scan skipped, path not found: {resolved}")
            return ScanResult(error=PATH_NOT_FOUND)
        except _ScanCancelled:
            logging.info(f"Scan cancelled: {resolved}")
            return ScanResult(
                size_bytes=totals.size_bytes,
                file_count=totals.file_count,
                error=SCAN_CANCELLED,
            )

        scan_duration = (datetime.now() - start_time).total_seconds()
        logging.debug(
            f"Scan completed: {resolved} - {totals.file_count} files, "
            f"{totals.size_bytes} bytes in {scan_duration:.2f}s"
        )
        return ScanResult(size_bytes=totals.size_bytes, file_count=totals.file_count)

    def scan_streaming(
        self,
        monitor_id: str,
        root_path: str,
        max_depth: Optional[int],
        on_progress: ProgressCallback,
        progress_interval_files: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """
        Walk `root_path` and report partial sums through `on_progress`.

        A snapshot is emitted each time the running file count reaches a
        multiple of the progress interval. Exactly one final event with
        ``done=True`` follows, carrying the totals and a fresh scan timestamp
        (or the error that ended the scan). Nothing is emitted after it.

        Returns:
            The same ScanResult the terminal event describes.
        """
        interval = progress_interval_files or self._progress_interval_files
        resolved = resolve(root_path)
        totals = _Totals()

        def _on_file() -> None:
            if totals.file_count % interval == 0:
                on_progress(
                    ScanProgress(
                        monitor_id=monitor_id,
                        size_bytes=totals.size_bytes,
                        file_count=totals.file_count,
                    )
                )

        error: Optional[str] = None
        try:
            self._walk(resolved, max_depth, totals, on_file=_on_file, cancel_event=cancel_event)
        except PathNotFoundError:
            logging.info(f"Streaming scan for {monitor_id}: path not found: {resolved}")
            totals = _Totals()
            error = PATH_NOT_FOUND
        except _ScanCancelled:
            logging.info(f"Streaming scan for {monitor_id} cancelled")
            error = SCAN_CANCELLED

        result = ScanResult(size_bytes=totals.size_bytes, file_count=totals.file_count, error=error)
        on_progress(
            ScanProgress(
                monitor_id=monitor_id,
                size_bytes=result.size_bytes,
                file_count=result.file_count,
                done=True,
                error=error,
                last_scan_at=int(time.time()),
            )
        )
        return result

    async def scan_async(self, root_path: str, max_depth: Optional[int] = None,
                         cancel_event: Optional[threading.Event] = None) -> ScanResult:
        return await asyncio.to_thread(self.scan, root_path, max_depth, cancel_event)

    async def scan_streaming_async(
        self,
        monitor_id: str,
        root_path: str,
        max_depth: Optional[int],
        on_progress: ProgressCallback,
        progress_interval_files: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ScanResult:
        """Run scan_streaming on a worker thread; `on_progress` is called from that thread."""
        return await asyncio.to_thread(
            self.scan_streaming,
            monitor_id,
            root_path,
            max_depth,
            on_progress,
            progress_interval_files,
            cancel_event,
        )

    def _walk(
        self,
        root: str,
        max_depth: Optional[int],
        totals: _Totals,
        on_file: Optional[Callable[[], None]] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Iterative depth-first walk. The root is depth 0 and its direct
        children are depth 1; with a positive `max_depth` nothing deeper than
        that is visited. Symlinks are never followed below the root.
        """
        if not os.path.exists(root):
            raise PathNotFoundError(root)

        depth_limit = max_depth if max_depth and max_depth > 0 else None

        if not os.path.isdir(root):
            # A plain file as root counts as a single entry at depth 0
            try:
                if os.path.isfile(root):
                    totals.size_bytes += os.stat(root).st_size
                    totals.file_count += 1
                    if on_file:
                        on_file()
            except OSError as e:
                logging.debug(f"Skipping unreadable root {root}: {e}")
            return

        pending = [(root, 0)]
        while pending:
            directory, depth = pending.pop()
            entry_depth = depth + 1
            try:
                with os.scandir(directory) as entries:
                    for entry in entries:
                        if cancel_event is not None and cancel_event.is_set():
                            raise _ScanCancelled()
                        try:
                            if entry.is_dir(follow_symlinks=False):
                                if depth_limit is None or entry_depth < depth_limit:
                                    pending.append((entry.path, entry_depth))
                            elif entry.is_file(follow_symlinks=False):
                                size = entry.stat(follow_symlinks=False).st_size
                                totals.size_bytes += size
                                totals.file_count += 1
                                if on_file:
                                    on_file()
                        except OSError as e:
                            logging.debug(f"Skipping unreadable entry {entry.path}: {e}")
            except OSError as e:
                logging.debug(f"Skipping unreadable directory {directory}: {e}")
