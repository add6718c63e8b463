#!/usr/bin/env python3
"""
Tests for the tracker → writer wiring

Tests cover:
- attach_writer(): inline persistence, close on completion / error
- LogWriterSink: queue-backed persistence driven from another thread
- Failure propagation out of the sink task
- Cancellation persists everything already emitted
"""

import asyncio
import re
import sys
import time
from datetime import datetime
from pathlib import Path
import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(src_path))

from hardware.input.keyboard.adapters.scripted_hook import ScriptedKeyboardHook
from models.enums import TrackerState
from models.errors import FlushIOError, SourceRegistrationError
from models.events import KeyEvent, KeyEventKind
from services.buffered_log_writer import BufferedLogWriter
from services.event_stream import EventStream
from services.keyboard_tracker import KeyboardTracker
from services.log_writer_sink import LogWriterSink, attach_writer

LINE_PATTERN = r"^Key (Pressed|Released): .+\. Time: \d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$"


def read_lines(path: Path):
    return path.read_text(encoding="utf-8").splitlines()


def labels_in(lines):
    """['Key Pressed: A. Time: ...'] -> [('Key Pressed', 'A')]"""
    result = []
    for line in lines:
        head, _ = line.rsplit(". Time: ", 1)
        kind, label = head.split(": ", 1)
        result.append((kind, label))
    return result


class SlowWriter(BufferedLogWriter):
    """Writer whose appends take long enough to be interrupted mid-batch"""

    def append(self, line: str) -> None:
        time.sleep(0.002)
        super().append(line)


# ============================================================================
# attach_writer
# ============================================================================

class TestAttachWriter:

    def test_two_taps_then_escape(self, tmp_path):
        out = tmp_path / "out.txt"
        hook = ScriptedKeyboardHook()
        tracker = KeyboardTracker(hook)
        writer = BufferedLogWriter(out, capacity=25)
        attach_writer(tracker.events, writer)

        tracker.start()
        hook.tap("A")
        hook.tap("B")
        hook.press("Escape")

        lines = read_lines(out)
        assert labels_in(lines) == [
            ("Key Pressed", "A"),
            ("Key Released", "A"),
            ("Key Pressed", "B"),
            ("Key Released", "B"),
        ]
        for line in lines:
            assert re.match(LINE_PATTERN, line)
        assert writer.closed
        assert writer.flush_count == 1

    def test_large_session_flushes_in_batches(self, tmp_path):
        out = tmp_path / "out.txt"
        hook = ScriptedKeyboardHook()
        tracker = KeyboardTracker(hook)
        writer = BufferedLogWriter(out, capacity=2)
        attach_writer(tracker.events, writer)

        tracker.start()
        hook.type_text("abc")  # 6 events
        hook.press("Escape")

        assert len(read_lines(out)) == 6
        # 3rd and 6th append cross the threshold; nothing left for close
        assert writer.flush_count == 2

    def test_escape_first_leaves_no_file(self, tmp_path):
        out = tmp_path / "out.txt"
        hook = ScriptedKeyboardHook()
        tracker = KeyboardTracker(hook)
        writer = BufferedLogWriter(out, capacity=25)
        attach_writer(tracker.events, writer)

        tracker.start()
        hook.press("Escape")

        assert not out.exists()
        assert writer.closed

    def test_registration_failure_reported(self, tmp_path):
        failures = []
        tracker = KeyboardTracker(ScriptedKeyboardHook(fail_with="no display"))
        writer = BufferedLogWriter(tmp_path / "out.txt", capacity=25)
        attach_writer(tracker.events, writer, on_failure=failures.append)

        tracker.start()

        assert len(failures) == 1
        assert isinstance(failures[0], SourceRegistrationError)
        assert writer.closed

    def test_runtime_failure_keeps_buffered_lines(self, tmp_path):
        out = tmp_path / "out.txt"
        failures = []
        hook = ScriptedKeyboardHook()
        tracker = KeyboardTracker(hook)
        writer = BufferedLogWriter(out, capacity=25)
        attach_writer(tracker.events, writer, on_failure=failures.append)

        tracker.start()
        hook.tap("A")
        hook.fail(OSError("device unplugged"))

        assert len(read_lines(out)) == 2
        assert len(failures) == 1

    def test_flush_failure_reported(self, tmp_path):
        failures = []
        stream = EventStream()
        # Destination is a directory: every flush fails
        writer = BufferedLogWriter(tmp_path, capacity=0)
        attach_writer(stream, writer, on_failure=failures.append)

        stream.emit(KeyEvent(KeyEventKind.PRESSED, "A", occurred_at=datetime(2024, 1, 1)))

        assert len(failures) == 1
        assert isinstance(failures[0], FlushIOError)
        assert failures[0].lines == ["Key Pressed: A. Time: 2024-01-01 00:00:00"]

    def test_flush_failure_stops_tracker(self, tmp_path):
        failures = []
        hook = ScriptedKeyboardHook()
        tracker = KeyboardTracker(hook)
        completed = []
        tracker.subscribe(on_complete=lambda: completed.append(True))
        writer = BufferedLogWriter(tmp_path, capacity=0)
        attach_writer(tracker.events, writer, on_failure=failures.append, stop_source=tracker.stop)

        tracker.start()
        hook.press("A")
        hook.press("B")  # delivered after stop, ignored

        assert tracker.state is TrackerState.STOPPED
        assert hook.stop_calls == 1
        assert len(failures) == 1
        assert isinstance(failures[0], FlushIOError)
        assert tracker.events_emitted == 1
        assert completed == [True]
        assert writer.closed

    def test_stream_error_does_not_call_stop_source(self, tmp_path):
        stops = []
        stream = EventStream()
        writer = BufferedLogWriter(tmp_path / "out.txt", capacity=25)
        attach_writer(stream, writer, on_failure=lambda e: None, stop_source=lambda: stops.append(True))

        stream.error(SourceRegistrationError("device unplugged"))

        assert stops == []
        assert writer.closed

    def test_custom_formatter(self, tmp_path):
        out = tmp_path / "out.txt"
        stream = EventStream()
        writer = BufferedLogWriter(out, capacity=25)
        attach_writer(stream, writer, formatter=lambda e: e.key_label)

        stream.emit(KeyEvent(KeyEventKind.PRESSED, "Z"))
        stream.complete()

        assert read_lines(out) == ["Z"]


# ============================================================================
# LogWriterSink (asyncio)
# ============================================================================

class TestLogWriterSink:

    @pytest.mark.asyncio
    async def test_events_from_hook_thread(self, tmp_path):
        out = tmp_path / "out.txt"
        hook = ScriptedKeyboardHook()
        tracker = KeyboardTracker(hook)
        writer = BufferedLogWriter(out, capacity=3)
        sink = LogWriterSink(writer)
        sink.attach(tracker.events)

        task = asyncio.ensure_future(sink.run())

        def session():
            tracker.start()
            hook.type_text("hello")
            hook.press("Escape")

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, session)
        await asyncio.wait_for(task, timeout=5.0)

        lines = read_lines(out)
        assert [label for _, label in labels_in(lines)] == [
            "H", "H", "E", "E", "L", "L", "L", "L", "O", "O"
        ]
        assert sink.events_written == 10
        assert sink.finished
        assert writer.closed

    @pytest.mark.asyncio
    async def test_stream_error_is_raised(self, tmp_path):
        out = tmp_path / "out.txt"
        stream = EventStream()
        writer = BufferedLogWriter(out, capacity=25)
        sink = LogWriterSink(writer)
        sink.attach(stream)
        task = asyncio.ensure_future(sink.run())

        stream.emit(KeyEvent(KeyEventKind.PRESSED, "A"))
        stream.error(SourceRegistrationError("device unplugged"))

        with pytest.raises(SourceRegistrationError):
            await asyncio.wait_for(task, timeout=5.0)

        # Line received before the failure is still persisted
        assert len(read_lines(out)) == 1
        assert writer.closed

    @pytest.mark.asyncio
    async def test_flush_failure_is_raised(self, tmp_path):
        stream = EventStream()
        writer = BufferedLogWriter(tmp_path, capacity=0)
        sink = LogWriterSink(writer)
        sink.attach(stream)
        task = asyncio.ensure_future(sink.run())

        stream.emit(KeyEvent(KeyEventKind.PRESSED, "A"))

        with pytest.raises(FlushIOError):
            await asyncio.wait_for(task, timeout=5.0)

        assert stream.observer_count == 0
        assert writer.closed

    @pytest.mark.asyncio
    async def test_cancel_flushes_buffer(self, tmp_path):
        out = tmp_path / "out.txt"
        stream = EventStream()
        writer = BufferedLogWriter(out, capacity=25)
        sink = LogWriterSink(writer)
        sink.attach(stream)
        task = asyncio.ensure_future(sink.run())

        stream.emit(KeyEvent(KeyEventKind.PRESSED, "A"))
        while sink.events_written < 1:
            await asyncio.sleep(0.01)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert read_lines(out)[0].startswith("Key Pressed: A.")
        assert writer.closed

    @pytest.mark.asyncio
    async def test_cancel_persists_queued_events(self, tmp_path):
        out = tmp_path / "out.txt"
        stream = EventStream()
        writer = BufferedLogWriter(out, capacity=25)
        sink = LogWriterSink(writer)
        sink.attach(stream)
        task = asyncio.ensure_future(sink.run())
        await asyncio.sleep(0)  # worker waiting on the queue

        for i in range(10):
            stream.emit(KeyEvent(KeyEventKind.PRESSED, f"F{i + 1}"))
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert [label for _, label in labels_in(read_lines(out))] == [f"F{i + 1}" for i in range(10)]
        assert sink.events_written == 10
        assert stream.observer_count == 0
        assert writer.closed

    @pytest.mark.asyncio
    async def test_cancel_during_batch_write_loses_and_repeats_nothing(self, tmp_path):
        out = tmp_path / "out.txt"
        stream = EventStream()
        writer = SlowWriter(out, capacity=5)
        sink = LogWriterSink(writer)
        sink.attach(stream)
        task = asyncio.ensure_future(sink.run())
        await asyncio.sleep(0)

        for i in range(30):
            stream.emit(KeyEvent(KeyEventKind.PRESSED, str(i)))
        while sink.events_written < 1:
            await asyncio.sleep(0.001)
        stream.emit(KeyEvent(KeyEventKind.RELEASED, "last"))
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        labels = [label for _, label in labels_in(read_lines(out))]
        assert labels == [str(i) for i in range(30)] + ["last"]
        assert writer.closed

    @pytest.mark.asyncio
    async def test_run_requires_attach(self, tmp_path):
        sink = LogWriterSink(BufferedLogWriter(tmp_path / "out.txt"))

        with pytest.raises(RuntimeError):
            await sink.run()
