"""Services layer"""

from .event_stream import EventStream, Subscription
from .buffered_log_writer import BufferedLogWriter
from .keyboard_tracker import KeyboardTracker
from .key_event_formatter import format_event, describe_kind
from .log_writer_sink import LogWriterSink, attach_writer

__all__ = [
    "EventStream",
    "Subscription",
    "BufferedLogWriter",
    "KeyboardTracker",
    "format_event",
    "describe_kind",
    "LogWriterSink",
    "attach_writer",
]
