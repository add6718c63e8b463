#!/usr/bin/env python3
"""
Tests for BufferedLogWriter

Tests cover:
- Flush threshold (strictly more than capacity)
- close() flushing the remainder, idempotence, no empty file
- Append after close
- I/O failure reporting
- Concurrent appends keep per-thread order and lose nothing
"""

import sys
import threading
from pathlib import Path
import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(src_path))

from models.errors import FlushIOError, WriterClosedError
from services.buffered_log_writer import BufferedLogWriter


def read_lines(path: Path):
    return path.read_text(encoding="utf-8").splitlines()


# ============================================================================
# Threshold
# ============================================================================

class TestFlushThreshold:
    """Buffer is written once it holds more than `capacity` lines"""

    def test_capacity_two_scenario(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=2)

        writer.append("L1")
        writer.append("L2")
        assert not out.exists()
        assert writer.pending_count == 2

        writer.append("L3")
        assert read_lines(out) == ["L1", "L2", "L3"]
        assert writer.pending_count == 0
        assert writer.flush_count == 1

        writer.append("L4")
        writer.close()
        assert read_lines(out) == ["L1", "L2", "L3", "L4"]
        assert writer.flush_count == 2
        assert writer.lines_written == 4

    def test_exactly_capacity_lines_do_not_flush(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=5)

        for i in range(5):
            writer.append(f"line {i}")

        assert writer.flush_count == 0
        assert not out.exists()

        writer.append("line 5")
        assert writer.flush_count == 1
        assert len(read_lines(out)) == 6

    def test_capacity_zero_writes_every_line(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=0)

        writer.append("a")
        writer.append("b")

        assert writer.flush_count == 2
        assert read_lines(out) == ["a", "b"]

    def test_negative_capacity_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            BufferedLogWriter(tmp_path / "out.txt", capacity=-1)

    def test_appends_to_existing_file(self, tmp_path):
        out = tmp_path / "out.txt"
        out.write_text("previous run\n", encoding="utf-8")

        writer = BufferedLogWriter(out, capacity=10)
        writer.append("new line")
        writer.close()

        assert read_lines(out) == ["previous run", "new line"]

    def test_manual_flush(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=10)

        assert writer.flush() == 0
        writer.append("x")
        assert writer.flush() == 1
        assert read_lines(out) == ["x"]


# ============================================================================
# Close
# ============================================================================

class TestClose:
    """close() flushes what is left and is safe to repeat"""

    def test_close_flushes_partial_buffer(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=25)

        for i in range(3):
            writer.append(f"line {i}")
        writer.close()

        assert read_lines(out) == ["line 0", "line 1", "line 2"]
        assert writer.closed

    def test_close_with_empty_buffer_creates_no_file(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=25)

        writer.close()

        assert not out.exists()
        assert writer.flush_count == 0

    def test_close_is_idempotent(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=25)
        writer.append("only")

        writer.close()
        writer.close()

        assert read_lines(out) == ["only"]
        assert writer.flush_count == 1

    def test_append_after_close_raises(self, tmp_path):
        writer = BufferedLogWriter(tmp_path / "out.txt", capacity=25)
        writer.close()

        with pytest.raises(WriterClosedError) as exc_info:
            writer.append("late")

        assert exc_info.value.code == "WRITER_CLOSED"


# ============================================================================
# Failures
# ============================================================================

class TestFlushFailure:
    """I/O errors surface with the lines that were not written"""

    def test_unwritable_destination(self, tmp_path):
        # A directory cannot be opened for appending
        writer = BufferedLogWriter(tmp_path, capacity=1)
        writer.append("first")

        with pytest.raises(FlushIOError) as exc_info:
            writer.append("second")

        error = exc_info.value
        assert error.code == "FLUSH_IO_FAILED"
        assert error.lines == ["first", "second"]
        assert error.path == tmp_path
        assert writer.pending_count == 0
        assert writer.flush_count == 0

    def test_close_reports_failure(self, tmp_path):
        writer = BufferedLogWriter(tmp_path / "missing" / "out.txt", capacity=25)
        writer.append("lost")

        with pytest.raises(FlushIOError) as exc_info:
            writer.close()

        assert exc_info.value.lines == ["lost"]
        assert writer.closed


# ============================================================================
# Concurrency
# ============================================================================

class TestConcurrentAppends:
    """Lines from several threads all reach the file, each thread in order"""

    def test_threads_keep_their_order(self, tmp_path):
        out = tmp_path / "out.txt"
        writer = BufferedLogWriter(out, capacity=7)
        threads_count = 4
        per_thread = 200

        def worker(n: int):
            for i in range(per_thread):
                writer.append(f"t{n}:{i}")

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(threads_count)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        writer.close()

        lines = read_lines(out)
        assert len(lines) == threads_count * per_thread
        assert writer.lines_written == threads_count * per_thread

        for n in range(threads_count):
            own = [int(line.split(":")[1]) for line in lines if line.startswith(f"t{n}:")]
            assert own == list(range(per_thread))
