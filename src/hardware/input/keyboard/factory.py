from typing import List, Tuple

from models.errors import SourceRegistrationError
from runtime.runtime_info import RuntimeInfo
from utils.logger import get_logger, LogCategory
from .adapters.base import IKeyboardHook

log = get_logger().for_category(LogCategory.HARDWARE)


def create_keyboard_hook() -> IKeyboardHook:
    """
    Keyboard hook factory.

    Priority:
    1. pynput (global hook on X11 / Windows / macOS)
    2. evdev (Linux input devices, works without a display server)

    There is no silent fallback: capturing nothing while pretending to
    run would lose data, so an unusable platform raises instead.

    Raises:
        SourceRegistrationError: no hook implementation is usable
    """
    reasons: List[Tuple[str, str]] = []

    if RuntimeInfo.has_pynput() and RuntimeInfo.has_display():
        try:
            from .adapters.pynput_hook import PynputKeyboardHook
            log.info("Using pynput keyboard hook")
            return PynputKeyboardHook()
        except Exception as e:
            log.info("pynput not available, falling back", reason=str(e))
            reasons.append(("pynput", str(e)))
    else:
        reasons.append(("pynput", "module or display missing"))

    if RuntimeInfo.has_evdev():
        try:
            from .adapters.evdev_hook import EvdevKeyboardHook
            log.info("Using evdev keyboard hook")
            return EvdevKeyboardHook()
        except Exception as e:
            log.info("evdev not available", reason=str(e))
            reasons.append(("evdev", str(e)))
    else:
        reasons.append(("evdev", "module missing or not Linux"))

    summary = "; ".join(f"{name}: {reason}" for name, reason in reasons)
    log.error("No keyboard hook could be created", reasons=summary)
    raise SourceRegistrationError(f"Keyboard input unavailable ({summary})")
