"""
Scan Coordinator - orchestrates on-demand streaming scans and the background sweep.

Entry points:
- request_scan / start_streaming_scan: one streaming scan per user request,
  independent of the sweep and of persisted timestamps
- run_sweep_cycle: one pass over all enabled monitors, batched timestamp
  persistence and threshold alerting
- start / stop: the long-lived background task driving run_sweep_cycle
- mute_monitor: inbound mutation from an alert client
"""

import asyncio
import logging
import threading
import time
from typing import AsyncIterator, Dict, List, Optional

from cache_monitor.core.events.event_bus import DomainEventBus
from cache_monitor.core.events.scan_events import (
    BackgroundCheckCompleteEvent,
    MonitorsUpdatedEvent,
    ScanProgressEvent,
)
from cache_monitor.core.exceptions import RegistryIOError, RegistryReadError
from cache_monitor.models import (
    BYTES_PER_MB,
    MonitorConfig,
    ScanProgress,
    ScanResult,
    ThresholdAlert,
)
from cache_monitor.services.alert_sink import AlertSink
from cache_monitor.services.directory_scanner import DirectoryScannerService
from cache_monitor.services.monitor_registry import MonitorRegistry


def exceeds_threshold(size_bytes: int, threshold_mb: float) -> bool:
    """Strict comparison in 1024-based megabytes."""
    return size_bytes / BYTES_PER_MB > threshold_mb


class ScanCoordinator:
    def __init__(
        self,
        registry: MonitorRegistry,
        scanner: DirectoryScannerService,
        alert_sink: AlertSink,
        event_bus: DomainEventBus,
    ):
        self._registry = registry
        self._scanner = scanner
        self._alert_sink = alert_sink
        self._event_bus = event_bus

        self._streaming_tasks: Dict[str, asyncio.Task] = {}
        self._pending_timestamps: Dict[str, int] = {}
        self._last_sweep_at: Optional[int] = None

        self._is_running = False
        self._sweep_task: Optional[asyncio.Task] = None
        self._wake_event: Optional[asyncio.Event] = None
        self._shutdown = threading.Event()

        logging.info("ScanCoordinator initialized")

    # --- On-demand scans ---

    async def request_scan(
        self, monitor_id: str, path: str, max_depth: Optional[int] = None
    ) -> AsyncIterator[ScanProgress]:
        """
        Stream progress for one scan of `path`, ending with the terminal event.

        The walk runs on a worker thread; its callbacks are handed to the event
        loop through a queue. If the consumer stops iterating early, the walk
        is cancelled at its next entry.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        cancel_event = threading.Event()

        def _on_progress(progress: ScanProgress) -> None:
            loop.call_soon_threadsafe(queue.put_nowait, progress)

        def _on_scan_finished(task: asyncio.Task) -> None:
            # The scanner always emits a terminal event unless it crashed
            if task.cancelled() or task.exception() is not None:
                reason = "Scan cancelled" if task.cancelled() else str(task.exception())
                logging.error(f"Streaming scan for {monitor_id} failed: {reason}")
                queue.put_nowait(ScanProgress(monitor_id=monitor_id, done=True, error=reason))

        scan_task = asyncio.create_task(
            self._scanner.scan_streaming_async(
                monitor_id,
                path,
                max_depth or None,
                _on_progress,
                cancel_event=cancel_event,
            )
        )
        scan_task.add_done_callback(_on_scan_finished)

        try:
            while True:
                progress = await queue.get()
                yield progress
                if progress.done:
                    break
        finally:
            if not scan_task.done():
                cancel_event.set()

    def start_streaming_scan(
        self, monitor_id: str, path: str, max_depth: Optional[int] = None
    ) -> bool:
        """
        Fire-and-forget streaming scan; progress is published as ScanProgressEvent.

        Requests for a monitor that already has a streaming scan in flight are
        coalesced: nothing new is started and False is returned.
        """
        existing = self._streaming_tasks.get(monitor_id)
        if existing is not None and not existing.done():
            logging.info(f"Streaming scan for {monitor_id} already running - request coalesced")
            return False

        task = asyncio.create_task(
            self._run_streaming_scan(monitor_id, path, max_depth),
            name=f"streaming-scan-{monitor_id}",
        )
        self._streaming_tasks[monitor_id] = task

        def _forget(finished: asyncio.Task) -> None:
            if self._streaming_tasks.get(monitor_id) is finished:
                del self._streaming_tasks[monitor_id]

        task.add_done_callback(_forget)
        logging.info(f"Streaming scan started for {monitor_id}: {path}")
        return True

    async def _run_streaming_scan(
        self, monitor_id: str, path: str, max_depth: Optional[int]
    ) -> None:
        try:
            async for progress in self.request_scan(monitor_id, path, max_depth):
                await self._publish_progress(progress)
        except asyncio.CancelledError:
            logging.debug(f"Streaming scan task for {monitor_id} cancelled")
            raise
        except Exception as e:
            logging.error(f"Error in streaming scan for {monitor_id}: {e}", exc_info=True)

    async def check_path(self, path: str, max_depth: Optional[int] = None) -> ScanResult:
        return await self._scanner.scan_async(path, max_depth or None)

    # --- Background sweep ---

    async def run_sweep_cycle(self) -> int:
        """
        Scan every enabled monitor once, persist the new timestamps in one
        write, alert on breaches, and publish the completion event.

        Returns:
            Unix timestamp of the cycle's completion.
        """
        try:
            monitors = await self._registry.load(strict=True)
        except RegistryReadError as e:
            logging.error(f"Sweep cycle skipped, registry unreadable: {e}")
            monitors = []
        timestamps: Dict[str, int] = dict(self._pending_timestamps)
        enabled = [m for m in monitors if m.enabled]

        logging.info(f"Sweep cycle starting: {len(enabled)} of {len(monitors)} monitors enabled")

        alerts = 0
        for monitor in enabled:
            if self._shutdown.is_set():
                logging.info("Shutdown requested - sweep cycle stopped between monitors")
                break
            if await self._sweep_monitor(monitor, timestamps):
                alerts += 1

        await self._persist_timestamps(timestamps)

        completed_at = int(time.time())
        self._last_sweep_at = completed_at
        logging.info(
            f"Sweep cycle complete: {len(enabled)} monitors, {alerts} alert(s)",
            extra={"operation": "sweep_complete", "alerts": alerts, "completed_at": completed_at},
        )
        await self._event_bus.publish(BackgroundCheckCompleteEvent(completed_at=completed_at))
        return completed_at

    async def _sweep_monitor(self, monitor: MonitorConfig, timestamps: Dict[str, int]) -> bool:
        """Scan a single monitor as part of a sweep. Returns True if an alert was raised."""
        await self._publish_progress(ScanProgress(monitor_id=monitor.id))

        try:
            result = await self._scanner.scan_async(monitor.path, monitor.effective_max_depth)
        except Exception as e:
            logging.error(f"Scan of monitor {monitor.id} failed: {e}", exc_info=True)
            result = ScanResult(error=str(e))

        scanned_at = int(time.time())
        timestamps[monitor.id] = scanned_at

        await self._publish_progress(
            ScanProgress(
                monitor_id=monitor.id,
                size_bytes=result.size_bytes,
                file_count=result.file_count,
                done=True,
                error=result.error,
                last_scan_at=scanned_at,
            )
        )

        if result.error:
            logging.warning(f"Monitor {monitor.name} ({monitor.path}): {result.error}")
            return False

        logging.info(
            f"Monitor {monitor.name}: {result.size_mb:.1f} MB in {result.file_count} files "
            f"(threshold {monitor.threshold_mb:.0f} MB)"
        )
        return await self._evaluate_threshold(monitor, result)

    async def _evaluate_threshold(self, monitor: MonitorConfig, result: ScanResult) -> bool:
        if not monitor.notify or not exceeds_threshold(result.size_bytes, monitor.threshold_mb):
            return False

        alert = ThresholdAlert(
            monitor_id=monitor.id,
            name=monitor.name,
            path=monitor.path,
            current_size_bytes=result.size_bytes,
            threshold_mb=monitor.threshold_mb,
        )
        await self.deliver_alert(alert)
        return True

    async def deliver_alert(self, alert: ThresholdAlert) -> None:
        """Hand an alert to the sink. Sink failures are logged, never retried or raised."""
        try:
            await self._alert_sink.notify(alert)
        except Exception as e:
            logging.error(f"Alert sink failed for monitor {alert.monitor_id}: {e}")

    async def _persist_timestamps(self, timestamps: Dict[str, int]) -> None:
        if not timestamps:
            return

        def _apply(monitors: List[MonitorConfig]) -> List[MonitorConfig]:
            return [
                m.model_copy(update={"last_scan_at": timestamps[m.id]}) if m.id in timestamps else m
                for m in monitors
            ]

        try:
            await self._registry.update(_apply)
            self._pending_timestamps.clear()
        except RegistryIOError as e:
            logging.error(f"Could not persist scan timestamps, retrying next cycle: {e}")
            self._pending_timestamps = dict(timestamps)

    async def _publish_progress(self, progress: ScanProgress) -> None:
        await self._event_bus.publish(ScanProgressEvent(progress=progress))

    # --- Lifecycle ---

    async def start(self, run_immediately: bool = True) -> None:
        if self._is_running:
            logging.warning("Background sweep already running")
            return

        self._is_running = True
        self._shutdown.clear()
        self._wake_event = asyncio.Event()
        self._sweep_task = asyncio.create_task(self._sweep_loop(run_immediately))
        logging.info("Background sweep started")

    async def stop(self) -> None:
        if not self._is_running:
            return

        self._is_running = False
        self._shutdown.set()
        if self._wake_event:
            self._wake_event.set()

        if self._sweep_task:
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        for task in list(self._streaming_tasks.values()):
            task.cancel()
        if self._streaming_tasks:
            await asyncio.gather(*self._streaming_tasks.values(), return_exceptions=True)

        logging.info("Background sweep stopped")

    async def _sweep_loop(self, run_immediately: bool) -> None:
        run_cycle = run_immediately
        try:
            while not self._shutdown.is_set():
                if run_cycle:
                    try:
                        await self.run_sweep_cycle()
                    except Exception as e:
                        logging.error(f"Error in sweep cycle: {e}", exc_info=True)
                run_cycle = True

                interval_seconds = await self._get_interval_seconds()
                logging.debug(f"Next sweep in {interval_seconds}s")
                try:
                    await asyncio.wait_for(self._wake_event.wait(), timeout=interval_seconds)
                except asyncio.TimeoutError:
                    pass
        except asyncio.CancelledError:
            logging.debug("Sweep loop cancelled")

    async def _get_interval_seconds(self) -> int:
        settings = await self._registry.load_settings()
        return max(1, settings.check_interval_minutes) * 60

    # --- Inbound mutations ---

    async def mute_monitor(self, monitor_id: str) -> bool:
        """Turn off alerts for a monitor, persist the registry and notify listeners."""
        updated = await self._registry.update_monitor(monitor_id, notify=False)
        if updated is None:
            return False
        logging.info(f"Monitor {monitor_id} muted")
        await self._event_bus.publish(MonitorsUpdatedEvent(monitor_id=monitor_id))
        return True

    # --- Status ---

    def is_running(self) -> bool:
        return self._is_running

    def get_status(self) -> dict:
        return {
            "is_running": self._is_running,
            "last_sweep_at": self._last_sweep_at,
            "active_streaming_scans": sorted(
                monitor_id for monitor_id, task in self._streaming_tasks.items() if not task.done()
            ),
            "pending_timestamps": len(self._pending_timestamps),
        }
