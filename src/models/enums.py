"""
Enums for the keytrace capture pipeline
"""

from enum import Enum, auto


class TrackerState(Enum):
    """
    Keyboard tracker lifecycle

    IDLE: constructed, hook not registered yet
    RUNNING: hook registered, events flowing
    STOPPED: terminal - hook released, stream completed or errored
    """
    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()


class LogLevel(Enum):
    """Log severity levels"""
    DEBUG = auto()
    INFO = auto()
    WARN = auto()
    ERROR = auto()


class LogCategory(Enum):
    """Log categories for grouping related events"""
    CONFIG = auto()      # Configuration loading, validation
    HARDWARE = auto()    # Keyboard hooks, input devices
    EVENT = auto()       # Event stream emissions and subscribers
    WRITER = auto()      # Buffered log writer, flushes
    SYSTEM = auto()      # Startup, shutdown, errors

    SHUTDOWN = auto()
    LIFECYCLE = auto()
    TASK = auto()

    GENERAL = auto()    # Default general category
