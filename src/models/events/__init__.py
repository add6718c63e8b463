"""
Event model for keyboard capture

Raw events come from hook adapters, normalized KeyEvents are published by the tracker.
"""

from models.events.types import KeyEventKind
from models.events.sources import KeyboardSource
from models.events.key_event import KeyEvent, RawKeyEvent

__all__ = [
    "KeyEventKind",
    "KeyboardSource",
    "KeyEvent",
    "RawKeyEvent",
]
