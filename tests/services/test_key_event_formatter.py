#!/usr/bin/env python3
"""Tests for KeyEvent log line formatting"""

import sys
from datetime import datetime
from pathlib import Path

# Add src to path for imports
src_path = Path(__file__).parent.parent.parent / "src"
sys.path.insert(0, str(src_path))

from models.events import KeyEvent, KeyEventKind, RawKeyEvent
from services.key_event_formatter import describe_kind, format_event


class TestFormatEvent:

    def test_pressed_line(self):
        event = KeyEvent(KeyEventKind.PRESSED, "A", occurred_at=datetime(2024, 1, 1, 12, 0, 0))
        assert format_event(event) == "Key Pressed: A. Time: 2024-01-01 12:00:00"

    def test_released_line(self):
        event = KeyEvent(KeyEventKind.RELEASED, "Space", occurred_at=datetime(2023, 12, 31, 23, 59, 7))
        assert format_event(event) == "Key Released: Space. Time: 2023-12-31 23:59:07"

    def test_seconds_precision_only(self):
        event = KeyEvent(KeyEventKind.PRESSED, "B", occurred_at=datetime(2024, 5, 6, 7, 8, 9, 987654))
        assert format_event(event).endswith("Time: 2024-05-06 07:08:09")

    def test_unknown_key_label_passes_through(self):
        event = KeyEvent(KeyEventKind.PRESSED, "Unknown keyCode: 0xE2", occurred_at=datetime(2024, 1, 1))
        assert format_event(event) == "Key Pressed: Unknown keyCode: 0xE2. Time: 2024-01-01 00:00:00"


class TestDescribeKind:

    def test_known_kinds(self):
        assert describe_kind(KeyEventKind.PRESSED) == "Key Pressed"
        assert describe_kind(KeyEventKind.RELEASED) == "Key Released"

    def test_unknown_kind(self):
        assert describe_kind("TYPED") == "Unknown Key Event"
        assert describe_kind(None) == "Unknown Key Event"


class TestKeyEventFromRaw:

    def test_copies_raw_fields(self):
        before = datetime.now().replace(microsecond=0)
        event = KeyEvent.from_raw(RawKeyEvent(KeyEventKind.RELEASED, "Enter", 28))

        assert event.kind is KeyEventKind.RELEASED
        assert event.key_label == "Enter"
        assert event.key_code == 28
        assert event.occurred_at >= before
