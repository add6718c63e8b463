import threading
from typing import Optional

from pynput import keyboard

from models.errors import SourceRegistrationError
from models.events import KeyboardSource, KeyEventKind, RawKeyEvent
from utils.logger import get_logger, LogCategory
from ..key_labels import label_for_char, label_for_pynput_key, unknown_key_label
from .base import ErrorCallback, IKeyboardHook, KeyCallback

log = get_logger().for_category(LogCategory.HARDWARE)


class PynputKeyboardHook(IKeyboardHook):
    """
    Global keyboard hook via pynput (X11, Windows, macOS).

    pynput runs its own listener thread; callbacks are invoked there in
    delivery order. Exceptions raised by our callbacks would stop the
    listener silently, so they are caught and forwarded to on_error.
    """

    source = KeyboardSource.PYNPUT

    def __init__(self, start_timeout: float = 2.0):
        self.start_timeout = start_timeout
        self._listener: Optional[keyboard.Listener] = None
        self._on_press: Optional[KeyCallback] = None
        self._on_release: Optional[KeyCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._lock = threading.Lock()

    def start(self, on_press: KeyCallback, on_release: KeyCallback, on_error: ErrorCallback) -> None:
        with self._lock:
            if self._listener is not None:
                raise SourceRegistrationError("pynput listener already registered", source=self.source.name)

            self._on_press = on_press
            self._on_release = on_release
            self._on_error = on_error

            try:
                listener = keyboard.Listener(on_press=self._handle_press, on_release=self._handle_release)
                listener.start()
                self._wait_ready(listener)
            except SourceRegistrationError:
                raise
            except Exception as e:
                log.error("Cannot register pynput keyboard listener", reason=str(e))
                raise SourceRegistrationError(str(e), source=self.source.name) from e

            if not listener.is_alive():
                raise SourceRegistrationError("pynput listener exited during startup", source=self.source.name)

            self._listener = listener

        log.info("Global keyboard hook registered", source=self.source.name)

    def _wait_ready(self, listener: "keyboard.Listener") -> None:
        """
        Block until the listener is ready or start_timeout expires.

        Listener.wait() never returns when the backend dies before it is
        ready (e.g. no X display), so it runs in a helper thread.
        """
        waiter = threading.Thread(target=listener.wait, name="pynput-ready", daemon=True)
        waiter.start()
        waiter.join(self.start_timeout)
        if waiter.is_alive():
            listener.stop()
            raise SourceRegistrationError(
                f"pynput listener not ready after {self.start_timeout}s",
                source=self.source.name
            )

    def stop(self) -> None:
        with self._lock:
            listener, self._listener = self._listener, None
        if listener is None:
            return

        listener.stop()
        # Joining from inside a callback would deadlock the listener thread
        if threading.current_thread() is not listener:
            listener.join(timeout=self.start_timeout)
        log.info("Global keyboard hook released", source=self.source.name)

    # -----------------------------
    # Listener callbacks
    # -----------------------------

    def _handle_press(self, key) -> None:
        self._dispatch(self._on_press, KeyEventKind.PRESSED, key)

    def _handle_release(self, key) -> None:
        self._dispatch(self._on_release, KeyEventKind.RELEASED, key)

    def _dispatch(self, callback: Optional[KeyCallback], kind: KeyEventKind, key) -> None:
        if callback is None or key is None:
            return
        try:
            callback(self.translate(kind, key))
        except Exception as e:
            log.error("Keyboard callback failed", reason=str(e))
            if self._on_error:
                self._on_error(e)

    @staticmethod
    def translate(kind: KeyEventKind, key) -> RawKeyEvent:
        """Convert a pynput Key / KeyCode into a RawKeyEvent"""
        if isinstance(key, keyboard.Key):
            key_code = getattr(key.value, "vk", None)
            return RawKeyEvent(kind, label_for_pynput_key(key.name), key_code)

        key_code = getattr(key, "vk", None)
        char = getattr(key, "char", None)
        if char:
            return RawKeyEvent(kind, label_for_char(char, key_code), key_code)
        return RawKeyEvent(kind, unknown_key_label(key_code), key_code)
