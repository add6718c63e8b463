"""
Log Writer Sink - connects the keyboard event stream to a BufferedLogWriter

Two wirings:

- attach_writer(): inline. append/flush run on the thread that emitted the
  event (the hook thread). Completion closes the writer before
  complete() returns.

- LogWriterSink: offloaded. Stream callbacks only enqueue onto an asyncio
  queue; a worker task appends in emission order and runs file I/O in the
  default executor, so the hook thread never waits on the disk.

In both, the subscriber owns close-on-complete: the tracker only signals.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Callable, List, Optional, Tuple

from models.errors import FlushIOError, WriterClosedError
from models.events import KeyEvent
from services.buffered_log_writer import BufferedLogWriter
from services.event_stream import EventStream, Subscription
from services.key_event_formatter import format_event
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.WRITER)

Formatter = Callable[[KeyEvent], str]


def attach_writer(
    stream: EventStream[KeyEvent],
    writer: BufferedLogWriter,
    formatter: Formatter = format_event,
    on_failure: Optional[Callable[[BaseException], None]] = None,
    stop_source: Optional[Callable[[], None]] = None
) -> Subscription:
    """
    Subscribe a writer to the stream, persisting on the emitting thread

    Args:
        stream: Source of KeyEvents (KeyboardTracker.events)
        writer: Destination writer, closed when the stream terminates
        formatter: KeyEvent -> log line
        on_failure: Receives stream errors and FlushIOErrors; defaults to logging
        stop_source: Stops the producer (e.g. KeyboardTracker.stop) once the
                     writer has failed, so no keys are captured without being
                     persisted

    Returns:
        Subscription (dispose() detaches without closing the writer)

    Example:
        attach_writer(tracker.events, writer, stop_source=tracker.stop)
    """

    def report(error: BaseException) -> None:
        if on_failure is not None:
            on_failure(error)
        else:
            log.warn(f"An error occurred: {error}")

    def close_writer() -> None:
        try:
            writer.close()
        except FlushIOError as e:
            report(e)

    def on_next(event: KeyEvent) -> None:
        writer.append(formatter(event))

    def on_error(error: BaseException) -> None:
        if isinstance(error, (FlushIOError, WriterClosedError)):
            # The writer is broken while the stream is still live
            if stop_source is not None:
                stop_source()
            else:
                log.warn("Writer failed but the keyboard source keeps running (no stop_source)")
        # Lines buffered before the failure are still persisted
        close_writer()
        report(error)

    def on_complete() -> None:
        close_writer()
        log.info("Input finished successfully!")

    return stream.subscribe(on_next, on_error, on_complete, name="log_writer")


class _StreamEnd:
    """Queue marker for stream termination"""

    def __init__(self, error: Optional[BaseException] = None):
        self.error = error


class _Batch:
    """Lines handed to the writer in one executor call; resumable after cancellation"""

    def __init__(self, lines: List[str]):
        self.lines = lines
        self.position = 0


class LogWriterSink:
    """
    Queue-backed subscriber that persists events on the asyncio loop

    Flow:
    1. attach(stream) subscribes; callbacks run on the hook thread and
       only hand items to the loop (call_soon_threadsafe)
    2. run() drains the queue in order, writing every event that is ready
       in a single executor call
    3. On completion the writer is closed and run() returns
    4. On stream error the writer is closed and run() re-raises the error,
       so a tracked task reports the failure (the shutdown coordinator
       then stops the tracker)
    5. On cancellation the interrupted batch and everything still queued
       are written before the writer is closed

    Example:
        sink = LogWriterSink(writer)
        sink.attach(tracker.events)
        task = create_tracked_task(sink.run(), category=TaskCategory.PERSISTENCE,
                                   description="Log writer sink")
    """

    def __init__(self, writer: BufferedLogWriter, formatter: Formatter = format_event):
        self.writer = writer
        self.formatter = formatter
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._subscription: Optional[Subscription] = None
        self._finished: Optional[asyncio.Event] = None
        self._events_written = 0
        # Held for the whole of a batch write (executor thread or cancel path)
        self._write_lock = threading.Lock()

    @property
    def events_written(self) -> int:
        return self._events_written

    @property
    def finished(self) -> bool:
        return self._finished is not None and self._finished.is_set()

    def attach(self, stream: EventStream[KeyEvent], loop: Optional[asyncio.AbstractEventLoop] = None) -> Subscription:
        """Subscribe to the stream; must be called with (or given) the loop that runs run()"""
        self._loop = loop or asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._finished = asyncio.Event()
        self._subscription = stream.subscribe(
            self._on_next,
            self._on_error,
            self._on_complete,
            name="log_writer_sink"
        )
        return self._subscription

    # -----------------------------
    # Stream callbacks (emitting thread)
    # -----------------------------

    def _enqueue(self, item) -> None:
        if self._loop is None or self._loop.is_closed():
            log.error("Sink loop is not available, dropping stream item")
            return
        self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    def _on_next(self, event: KeyEvent) -> None:
        self._enqueue(event)

    def _on_error(self, error: BaseException) -> None:
        self._enqueue(_StreamEnd(error))

    def _on_complete(self) -> None:
        self._enqueue(_StreamEnd())

    # -----------------------------
    # Worker
    # -----------------------------

    async def run(self) -> None:
        """
        Drain the queue until the stream terminates

        Raises:
            FlushIOError: a flush failed (writer is closed before raising)
            Exception: the stream's terminal error
        """
        if self._queue is None:
            raise RuntimeError("Call attach() before run()")

        loop = asyncio.get_running_loop()
        log.debug("Log writer sink started", path=self.writer.path)
        batch: Optional[_Batch] = None

        try:
            while True:
                events, end = self._take_ready(await self._queue.get())

                if events:
                    batch = _Batch([self.formatter(e) for e in events])
                    try:
                        await loop.run_in_executor(None, self._write_batch, batch)
                    except FlushIOError:
                        self._detach()
                        await loop.run_in_executor(None, self._close_quietly)
                        raise

                if end is not None:
                    await loop.run_in_executor(None, self.writer.close)
                    if end.error is not None:
                        log.warn(f"An error occurred: {end.error}")
                        raise end.error
                    log.info("Input finished successfully!", lines=self._events_written)
                    return

        except asyncio.CancelledError:
            log.debug("Log writer sink cancelled, persisting queued events")
            self._detach()
            self._persist_remaining(batch)
            raise
        finally:
            self._finished.set()

    def _take_ready(self, first) -> Tuple[List[KeyEvent], Optional[_StreamEnd]]:
        """Collect `first` and every queued event after it, up to a stream end"""
        events: List[KeyEvent] = []
        item = first
        while True:
            if isinstance(item, _StreamEnd):
                return events, item
            events.append(item)
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return events, None

    def _write_batch(self, batch: _Batch) -> None:
        with self._write_lock:
            while batch.position < len(batch.lines):
                line = batch.lines[batch.position]
                batch.position += 1
                self.writer.append(line)
                self._events_written += 1

    def _persist_remaining(self, interrupted: Optional[_Batch]) -> None:
        """Write the interrupted batch and everything still queued, then close"""
        try:
            first = self._queue.get_nowait()
        except asyncio.QueueEmpty:
            queued: List[KeyEvent] = []
        else:
            queued, _ = self._take_ready(first)

        try:
            # Waits for an executor write still in progress, finishes it otherwise
            if interrupted is not None:
                self._write_batch(interrupted)
            if queued:
                self._write_batch(_Batch([self.formatter(e) for e in queued]))
            self.writer.close()
        except (FlushIOError, WriterClosedError) as e:
            log.error("Queued events could not be persisted", reason=e.message, queued=len(queued))
            self._close_quietly()

    def _detach(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()

    def _close_quietly(self) -> None:
        """Close after a failed flush; the original FlushIOError is what gets reported"""
        try:
            self.writer.close()
        except FlushIOError as e:
            log.error("Final flush after failure also failed", reason=e.message)
