"""
Scripted keyboard hook.

Delivers events pushed from code instead of a real device. Used by tests
and dry runs; press()/release() run the callbacks synchronously on the
caller's thread, like a platform hook would on its own thread.
"""

from typing import Iterable, List, Optional, Tuple

from models.errors import SourceRegistrationError
from models.events import KeyboardSource, KeyEventKind, RawKeyEvent
from utils.logger import get_logger, LogCategory
from ..key_labels import label_for_char
from .base import ErrorCallback, IKeyboardHook, KeyCallback

log = get_logger().for_category(LogCategory.HARDWARE)


class ScriptedKeyboardHook(IKeyboardHook):
    """
    In-process keyboard source.

    Unlike a platform hook it keeps delivering after stop() when asked to,
    which lets tests check that late events are ignored downstream.
    """

    source = KeyboardSource.SCRIPTED

    def __init__(self, fail_with: Optional[str] = None):
        """
        Args:
            fail_with: If set, start() raises SourceRegistrationError with this message
        """
        self.fail_with = fail_with
        self._on_press: Optional[KeyCallback] = None
        self._on_release: Optional[KeyCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self.start_calls = 0
        self.stop_calls = 0

    @property
    def registered(self) -> bool:
        return self._on_press is not None and self.stop_calls == 0

    def start(self, on_press: KeyCallback, on_release: KeyCallback, on_error: ErrorCallback) -> None:
        self.start_calls += 1
        if self.fail_with is not None:
            raise SourceRegistrationError(self.fail_with, source=self.source.name)
        self._on_press = on_press
        self._on_release = on_release
        self._on_error = on_error
        log.debug("Scripted keyboard hook registered")

    def stop(self) -> None:
        self.stop_calls += 1
        log.debug("Scripted keyboard hook released")

    # -----------------------------
    # Driving the hook
    # -----------------------------

    def press(self, label: str, key_code: Optional[int] = None) -> None:
        if self._on_press:
            self._on_press(RawKeyEvent(KeyEventKind.PRESSED, label, key_code))

    def release(self, label: str, key_code: Optional[int] = None) -> None:
        if self._on_release:
            self._on_release(RawKeyEvent(KeyEventKind.RELEASED, label, key_code))

    def tap(self, label: str) -> None:
        """Press followed by release"""
        self.press(label)
        self.release(label)

    def play(self, script: Iterable[Tuple[KeyEventKind, str]]) -> None:
        for kind, label in script:
            if kind is KeyEventKind.PRESSED:
                self.press(label)
            else:
                self.release(label)

    def type_text(self, text: str) -> List[str]:
        """Tap one key per character; returns the labels used"""
        labels = [label_for_char(c) for c in text]
        for label in labels:
            self.tap(label)
        return labels

    def fail(self, error: BaseException) -> None:
        """Report a runtime failure through the error channel"""
        if self._on_error:
            self._on_error(error)
