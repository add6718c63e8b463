"""Keyboard events flowing from a hook adapter through the tracker"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.events.sources import KeyboardSource
from models.events.types import KeyEventKind


@dataclass(frozen=True)
class RawKeyEvent:
    """
    Event as delivered by a keyboard hook adapter.

    - kind: press / release discriminator
    - key_text: platform key name already translated to a human label
    - key_code: platform key code (None when the platform has none)
    """
    kind: KeyEventKind
    key_text: str
    key_code: Optional[int] = None


@dataclass(frozen=True)
class KeyEvent:
    """
    Normalized keyboard event published by KeyboardTracker.

    Immutable: subscribers receive the same value and never modify it.
    occurred_at is local time captured when the hook callback fired.
    """
    kind: KeyEventKind
    key_label: str
    occurred_at: datetime = field(default_factory=datetime.now)
    key_code: Optional[int] = None
    source: Optional[KeyboardSource] = None

    @classmethod
    def from_raw(cls, raw: RawKeyEvent, source: Optional[KeyboardSource] = None) -> "KeyEvent":
        return cls(
            kind=raw.kind,
            key_label=raw.key_text,
            occurred_at=datetime.now(),
            key_code=raw.key_code,
            source=source,
        )
