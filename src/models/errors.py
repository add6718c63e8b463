"""
Domain errors for keyboard capture and persistence

Every error carries a machine-readable code, a human message and
optional details so it can be logged with context.
"""

from pathlib import Path
from typing import List, Optional, Sequence


class KeytraceError(Exception):
    """Base class for domain-specific errors"""
    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)


class SourceRegistrationError(KeytraceError):
    """Keyboard hook could not be registered (or failed while running)"""
    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(
            code="SOURCE_REGISTRATION_FAILED",
            message=message,
            details={"source": source} if source else None
        )


class FlushIOError(KeytraceError):
    """Writing a batch of lines to disk failed"""
    def __init__(self, path: Path, lines: Sequence[str], reason: str):
        self.path = Path(path)
        self.lines: List[str] = list(lines)
        super().__init__(
            code="FLUSH_IO_FAILED",
            message=f"Failed to write {len(self.lines)} line(s) to '{path}': {reason}",
            details={"path": str(path), "lines": len(self.lines), "reason": reason}
        )


class WriterClosedError(KeytraceError):
    """append() called after close()"""
    def __init__(self, path: Path):
        super().__init__(
            code="WRITER_CLOSED",
            message=f"Log writer for '{path}' is closed",
            details={"path": str(path)}
        )


class InvalidStateError(KeytraceError):
    """Operation not allowed in the current lifecycle state"""
    def __init__(self, message: str, state: Optional[str] = None, code: str = "INVALID_STATE"):
        super().__init__(
            code=code,
            message=message,
            details={"state": state} if state else None
        )


class AlreadyRunningError(InvalidStateError):
    """start() called on a tracker that is already running"""
    def __init__(self):
        super().__init__(
            "Keyboard tracker is already running",
            state="RUNNING",
            code="ALREADY_RUNNING"
        )


class ConfigError(KeytraceError):
    """Configuration value is missing or malformed"""
    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(
            code="INVALID_CONFIG",
            message=message,
            details={"key": key} if key else None
        )
