"""
Models package - Data models for keyboard capture
"""

from .enums import TrackerState, LogLevel, LogCategory
from .config import AppConfig
from .errors import (
    KeytraceError,
    SourceRegistrationError,
    FlushIOError,
    WriterClosedError,
    InvalidStateError,
    AlreadyRunningError,
    ConfigError,
)

__all__ = [
    'TrackerState',
    'LogLevel',
    'LogCategory',
    'AppConfig',
    'KeytraceError',
    'SourceRegistrationError',
    'FlushIOError',
    'WriterClosedError',
    'InvalidStateError',
    'AlreadyRunningError',
    'ConfigError',
]
