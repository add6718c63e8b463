import select
import threading
from typing import Optional

from evdev import InputDevice, list_devices, ecodes

from models.errors import SourceRegistrationError
from models.events import KeyboardSource, KeyEventKind, RawKeyEvent
from utils.logger import get_logger, LogCategory
from ..key_labels import label_for_evdev_name, unknown_key_label
from .base import ErrorCallback, IKeyboardHook, KeyCallback

log = get_logger().for_category(LogCategory.HARDWARE)

# evdev EV_KEY values
KEY_UP = 0
KEY_DOWN = 1
KEY_HOLD = 2


class EvdevKeyboardHook(IKeyboardHook):
    """
    Keyboard hook via Linux evdev (/dev/input/event*)

    Reads the device on a dedicated thread regardless of which window has
    focus (needs read access to the device node, usually root or the
    'input' group).

    - Selects the device with the most keys that has letters, space and enter
    - Maps keycodes via ecodes.KEY
    - Autorepeat (value=2) is reported as a press, like a platform hook does
    """

    source = KeyboardSource.EVDEV

    def __init__(self, device_path: Optional[str] = None, poll_interval: float = 0.1):
        self.device_path = device_path
        self.poll_interval = poll_interval
        self.device: Optional[InputDevice] = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._on_press: Optional[KeyCallback] = None
        self._on_release: Optional[KeyCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    @staticmethod
    def find_keyboard_device() -> Optional[str]:
        """
        Detect the best keyboard input device.

        Returns:
            Path to the /dev/input/eventX device that looks like a full keyboard
        """
        candidates = []

        for path in list_devices():
            try:
                device = InputDevice(path)
                caps = device.capabilities()
            except OSError as e:
                log.debug(f"Cannot inspect {path}: {e}")
                continue

            try:
                if ecodes.EV_KEY not in caps:
                    continue

                raw_keys = caps.get(ecodes.EV_KEY, [])
                key_codes = [code if isinstance(code, int) else code[0] for code in raw_keys]

                has_letters = any(ecodes.KEY_A <= code <= ecodes.KEY_Z for code in key_codes)
                has_space = ecodes.KEY_SPACE in key_codes
                has_enter = ecodes.KEY_ENTER in key_codes

                if has_letters and has_space and has_enter:
                    candidates.append((path, device.name, len(key_codes)))
            finally:
                device.close()

        if not candidates:
            return None

        # More keys = more likely a full keyboard
        candidates.sort(key=lambda x: -x[2])
        best_path, best_name, num_keys = candidates[0]

        log.info(
            "Selected keyboard device",
            name=best_name,
            path=best_path,
            total_keys=num_keys
        )
        return best_path

    def start(self, on_press: KeyCallback, on_release: KeyCallback, on_error: ErrorCallback) -> None:
        if self._thread is not None:
            raise SourceRegistrationError("evdev hook already registered", source=self.source.name)

        path = self.device_path or self.find_keyboard_device()
        if not path:
            raise SourceRegistrationError(
                "No keyboard input device found (check permissions on /dev/input)",
                source=self.source.name
            )

        try:
            self.device = InputDevice(path)
        except OSError as e:
            raise SourceRegistrationError(f"Cannot open keyboard device {path}: {e}", source=self.source.name) from e

        self.device_path = path
        self._on_press = on_press
        self._on_release = on_release
        self._on_error = on_error
        self._stop_event.clear()

        self._thread = threading.Thread(target=self._read_loop, name="evdev-keyboard", daemon=True)
        self._thread.start()
        log.info("Listening for keyboard input", device=self.device.name, path=path)

    def stop(self) -> None:
        thread, self._thread = self._thread, None
        if thread is None:
            return

        self._stop_event.set()
        if threading.current_thread() is not thread:
            thread.join(timeout=self.poll_interval * 10)
        log.info("Keyboard device released", path=self.device_path)

    # -----------------------------
    # Reader thread
    # -----------------------------

    def _read_loop(self) -> None:
        device = self.device
        try:
            while not self._stop_event.is_set():
                ready, _, _ = select.select([device], [], [], self.poll_interval)
                if not ready:
                    continue
                for event in device.read():
                    if self._stop_event.is_set():
                        return
                    if event.type == ecodes.EV_KEY:
                        self._handle_key_event(event)
        except OSError as e:
            # Device unplugged or read failure
            if not self._stop_event.is_set():
                log.error(f"Keyboard device read failed: {e}")
                if self._on_error:
                    self._on_error(SourceRegistrationError(str(e), source=self.source.name))
        finally:
            try:
                device.close()
            except OSError:
                pass
            log.debug("Evdev reader thread finished")

    def _handle_key_event(self, event) -> None:
        if event.value == KEY_UP:
            callback, kind = self._on_release, KeyEventKind.RELEASED
        elif event.value in (KEY_DOWN, KEY_HOLD):
            callback, kind = self._on_press, KeyEventKind.PRESSED
        else:
            return

        if callback is None:
            return
        try:
            callback(self.translate(kind, event.code))
        except Exception as e:
            log.error("Keyboard callback failed", reason=str(e))
            if self._on_error:
                self._on_error(e)

    @staticmethod
    def translate(kind: KeyEventKind, code: int) -> RawKeyEvent:
        """Convert an evdev key code into a RawKeyEvent"""
        key_name = ecodes.KEY.get(code)
        if isinstance(key_name, (list, tuple)):
            key_name = key_name[0]
        if not key_name:
            return RawKeyEvent(kind, unknown_key_label(code), code)
        return RawKeyEvent(kind, label_for_evdev_name(key_name), code)
