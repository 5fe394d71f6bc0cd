"""
Tests for DirectoryScannerService - totals, depth bounds and streaming progress.
"""

import os
import threading
from unittest.mock import patch

import pytest

from cache_monitor.services.directory_scanner import (
    PATH_NOT_FOUND,
    SCAN_CANCELLED,
    DirectoryScannerService,
)
from conftest import write_file


class TestDirectoryScannerService:

    @pytest.fixture
    def scanner(self):
        return DirectoryScannerService(progress_interval_files=2)

    def test_scan_counts_all_files(self, scanner, sample_tree):
        result = scanner.scan(str(sample_tree))
        assert result.error is None
        assert result.file_count == 4
        assert result.size_bytes == 100

    def test_zero_max_depth_is_unlimited(self, scanner, sample_tree):
        result = scanner.scan(str(sample_tree), max_depth=0)
        assert result.file_count == 4
        assert result.size_bytes == 100

    def test_max_depth_one_counts_root_level_files_only(self, scanner, sample_tree):
        result = scanner.scan(str(sample_tree), max_depth=1)
        assert result.file_count == 2
        assert result.size_bytes == 30

    def test_max_depth_two(self, scanner, sample_tree):
        result = scanner.scan(str(sample_tree), max_depth=2)
        assert result.file_count == 3
        assert result.size_bytes == 60

    def test_missing_path(self, scanner, tmp_path):
        result = scanner.scan(str(tmp_path / "does-not-exist"))
        assert result.error == PATH_NOT_FOUND
        assert result.file_count == 0
        assert result.size_bytes == 0

    def test_empty_directory(self, scanner, tmp_path):
        result = scanner.scan(str(tmp_path))
        assert result.error is None
        assert result.file_count == 0

    def test_root_that_is_a_file(self, scanner, tmp_path):
        single = write_file(tmp_path / "single.log", 123)
        result = scanner.scan(str(single))
        assert result.file_count == 1
        assert result.size_bytes == 123

    def test_placeholder_resolved_before_scan(self, scanner, sample_tree, monkeypatch):
        monkeypatch.setenv("CM_SCAN_ROOT", str(sample_tree))
        result = scanner.scan("%CM_SCAN_ROOT%/sub")
        assert result.file_count == 2
        assert result.size_bytes == 70

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
    def test_symlinks_are_not_counted_or_followed(self, scanner, sample_tree, tmp_path):
        outside = tmp_path / "outside"
        write_file(outside / "big.bin", 5000)
        try:
            os.symlink(outside, sample_tree / "linked_dir", target_is_directory=True)
            os.symlink(sample_tree / "a.txt", sample_tree / "linked_file")
            os.symlink(tmp_path / "nowhere", sample_tree / "broken_link")
        except (OSError, NotImplementedError):
            pytest.skip("cannot create symlinks here")

        result = scanner.scan(str(sample_tree))
        assert result.file_count == 4
        assert result.size_bytes == 100

    def test_unreadable_directory_is_skipped(self, scanner, sample_tree):
        locked = str(sample_tree / "sub")
        real_scandir = os.scandir

        def guarded_scandir(path):
            if str(path) == locked:
                raise PermissionError(13, "Permission denied", path)
            return real_scandir(path)

        with patch("cache_monitor.services.directory_scanner.os.scandir", side_effect=guarded_scandir):
            result = scanner.scan(str(sample_tree))

        assert result.error is None
        assert result.file_count == 2
        assert result.size_bytes == 30

    def test_cancel_event_stops_scan(self, scanner, sample_tree):
        cancel = threading.Event()
        cancel.set()
        result = scanner.scan(str(sample_tree), cancel_event=cancel)
        assert result.error == SCAN_CANCELLED

    def test_invalid_progress_interval(self):
        with pytest.raises(ValueError):
            DirectoryScannerService(progress_interval_files=0)


class TestStreamingScan:

    @pytest.fixture
    def scanner(self):
        return DirectoryScannerService(progress_interval_files=2)

    @pytest.fixture
    def seven_files(self, tmp_path):
        root = tmp_path / "seven"
        for i in range(7):
            write_file(root / f"dir{i % 3}" / f"file{i}.dat", 10 * (i + 1))
        return root

    def test_emits_progress_then_single_terminal_event(self, scanner, seven_files):
        events = []
        result = scanner.scan_streaming("m1", str(seven_files), None, events.append)

        assert [e.file_count for e in events[:-1]] == [2, 4, 6]
        assert all(not e.done for e in events[:-1])
        terminal = events[-1]
        assert terminal.done
        assert terminal.error is None
        assert terminal.file_count == 7
        assert terminal.size_bytes == sum(10 * (i + 1) for i in range(7))
        assert terminal.last_scan_at is not None
        assert result.file_count == terminal.file_count
        assert all(e.monitor_id == "m1" for e in events)

    def test_progress_is_monotonic(self, scanner, seven_files):
        events = []
        scanner.scan_streaming("m1", str(seven_files), None, events.append, progress_interval_files=1)

        counts = [e.file_count for e in events]
        sizes = [e.size_bytes for e in events]
        assert counts == sorted(counts)
        assert sizes == sorted(sizes)
        assert [e.done for e in events].count(True) == 1
        assert events[-1].done

    def test_terminal_totals_match_synchronous_scan(self, scanner, sample_tree):
        for depth in (None, 1, 2, 3):
            events = []
            scanner.scan_streaming("m1", str(sample_tree), depth, events.append)
            expected = scanner.scan(str(sample_tree), depth)
            assert events[-1].size_bytes == expected.size_bytes
            assert events[-1].file_count == expected.file_count

    def test_missing_path_emits_one_error_event(self, scanner, tmp_path):
        events = []
        scanner.scan_streaming("m1", str(tmp_path / "gone"), None, events.append)

        assert len(events) == 1
        assert events[0].done
        assert events[0].error == PATH_NOT_FOUND
        assert events[0].size_bytes == 0
        assert events[0].file_count == 0

    def test_default_interval_used(self, seven_files):
        scanner = DirectoryScannerService(progress_interval_files=500)
        events = []
        scanner.scan_streaming("m1", str(seven_files), None, events.append)
        assert len(events) == 1
        assert events[0].done

    @pytest.mark.asyncio
    async def test_async_wrappers(self, scanner, sample_tree):
        result = await scanner.scan_async(str(sample_tree), 1)
        assert result.file_count == 2

        events = []
        streamed = await scanner.scan_streaming_async("m1", str(sample_tree), None, events.append)
        assert streamed.file_count == 4
        assert events[-1].done
