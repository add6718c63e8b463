from __future__ import annotations

from lifecycle.shutdown_protocol import IShutdownHandler
from services.keyboard_tracker import KeyboardTracker
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.SHUTDOWN)


class TrackerShutdownHandler(IShutdownHandler):
    """
    Shutdown handler for the keyboard tracker.

    Releases the global hook and completes the event stream so that
    subscribers start draining. No-op when the termination key already
    stopped the tracker.

    Priority: 100 (shutdown first)
    """

    def __init__(self, tracker: KeyboardTracker):
        self.tracker = tracker

    @property
    def shutdown_priority(self) -> int:
        return 100

    async def shutdown(self) -> None:
        log.info("Stopping keyboard tracker...", state=self.tracker.state.name)
        self.tracker.stop()
