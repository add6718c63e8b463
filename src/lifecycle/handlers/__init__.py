from .log_writer_shutdown_handler import LogWriterShutdownHandler
from .task_cancellation_handler import TaskCancellationHandler
from .tracker_shutdown_handler import TrackerShutdownHandler

__all__ = [
    "LogWriterShutdownHandler",
    "TaskCancellationHandler",
    "TrackerShutdownHandler",
]
