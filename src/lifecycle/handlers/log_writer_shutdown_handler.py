from __future__ import annotations

import asyncio
from typing import Optional

from lifecycle.shutdown_protocol import IShutdownHandler
from services.log_writer_sink import LogWriterSink
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class LogWriterShutdownHandler(IShutdownHandler):
    """
    Shutdown handler for log persistence.

    Waits for the sink to drain everything the tracker emitted, then makes
    sure the writer is closed even if the sink task never ran to the end.

    Priority: 80 (after the tracker stopped producing)
    """

    def __init__(self, sink: LogWriterSink, sink_task: Optional[asyncio.Task] = None, drain_timeout: float = 3.0):
        self.sink = sink
        self.sink_task = sink_task
        self.drain_timeout = drain_timeout

    @property
    def shutdown_priority(self) -> int:
        return 80

    async def shutdown(self) -> None:
        if self.sink_task is not None and not self.sink_task.done():
            log.info("Waiting for log writer to drain...")
            try:
                await asyncio.wait_for(asyncio.shield(self.sink_task), timeout=self.drain_timeout)
            except asyncio.TimeoutError:
                log.warn("Log writer did not drain in time, cancelling")
                self.sink_task.cancel()
                await asyncio.gather(self.sink_task, return_exceptions=True)
            except Exception as e:
                # Failure already recorded by the task registry
                log.debug("Log writer sink ended with error", error=str(e))

        if not self.sink.writer.closed:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.sink.writer.close)

        log.info(
            "✓ Log writer closed",
            path=self.sink.writer.path,
            lines=self.sink.writer.lines_written,
            flushes=self.sink.writer.flush_count
        )
