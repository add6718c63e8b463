"""
Buffered Log Writer - batched, append-only persistence of log lines

Lines accumulate in memory and are written to the destination file in
batches, so the file is opened once per batch instead of once per line.

Threshold:
    A flush happens when the pending buffer holds MORE than `capacity`
    lines (strictly greater). With capacity=2 the buffer holds two lines
    without touching the disk; the third append flushes all three.
"""

import threading
from pathlib import Path
from typing import List, Union

from models.errors import FlushIOError, WriterClosedError
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.WRITER)


class BufferedLogWriter:
    """
    Accumulates lines and flushes them to a file in batches

    Features:
    - Soft capacity: appends are never rejected, crossing the threshold flushes
    - Pending / transfer split: appends arriving during a flush land in a
      fresh pending buffer instead of racing the batch being written
    - Ordered batches: flushes are serialized, so batches reach disk in the
      order their lines were appended
    - No silent loss: I/O errors raise FlushIOError carrying the unwritten lines

    Example:
        writer = BufferedLogWriter("out.txt", capacity=25)
        writer.append("Key Pressed: A. Time: 2024-01-01 12:00:00")
        writer.close()  # flushes whatever is left
    """

    def __init__(self, path: Union[str, Path], capacity: int = 25, encoding: str = "utf-8"):
        """
        Args:
            path: Destination file (created on first flush, appended to afterwards)
            capacity: Number of lines held in memory before a flush is forced
            encoding: File encoding
        """
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")

        self.path = Path(path)
        self.capacity = capacity
        self.encoding = encoding

        self._pending: List[str] = []
        self._transfer: List[str] = []

        # Guards _pending and _closed
        self._lock = threading.Lock()
        # Serializes flushes (one batch on disk at a time)
        self._flush_lock = threading.Lock()

        self._closed = False
        self._flush_count = 0
        self._lines_written = 0

    # -----------------------------
    # Introspection
    # -----------------------------

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def flush_count(self) -> int:
        """Number of batches written to disk"""
        return self._flush_count

    @property
    def lines_written(self) -> int:
        return self._lines_written

    # -----------------------------
    # Public API
    # -----------------------------

    def append(self, line: str) -> None:
        """
        Buffer a line, flushing when the buffer exceeds capacity

        Raises:
            WriterClosedError: writer already closed
            FlushIOError: the triggered flush failed
        """
        with self._lock:
            if self._closed:
                raise WriterClosedError(self.path)
            self._pending.append(line)
            overflow = len(self._pending) > self.capacity

        if overflow:
            self.flush()

    def close(self) -> None:
        """
        Flush remaining lines and stop accepting new ones

        Idempotent. An empty buffer is not written (the file is not touched).

        Raises:
            FlushIOError: the final flush failed (writer stays closed)
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            remaining = len(self._pending)

        log.debug("Closing log writer", path=self.path, pending=remaining)
        if remaining:
            self.flush()

    def flush(self) -> int:
        """
        Write every pending line to the destination file

        Returns:
            Number of lines written (0 when nothing was pending)

        Raises:
            FlushIOError: opening or writing the file failed
        """
        with self._flush_lock:
            with self._lock:
                if not self._pending:
                    return 0
                self._transfer.extend(self._pending)
                self._pending.clear()

            count = len(self._transfer)
            try:
                with open(self.path, "a", encoding=self.encoding, newline="\n") as out:
                    for line in self._transfer:
                        out.write(line)
                        out.write("\n")
            except OSError as e:
                failed = list(self._transfer)
                log.error(
                    "Flush failed",
                    path=self.path,
                    lines=len(failed),
                    reason=str(e)
                )
                raise FlushIOError(self.path, failed, str(e)) from e
            finally:
                self._transfer.clear()

            self._flush_count += 1
            self._lines_written += count
            log.debug("Flushed batch", path=self.path, lines=count, batch=self._flush_count)
            return count
