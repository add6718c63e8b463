from typing import Callable, Protocol

from models.events import KeyboardSource, RawKeyEvent

KeyCallback = Callable[[RawKeyEvent], None]
ErrorCallback = Callable[[BaseException], None]


class IKeyboardHook(Protocol):
    """
    Global keyboard hook abstraction.

    Implementations:
    - register with the platform in start(), raising on failure
    - invoke on_press / on_release from their own thread, in the order
      the platform delivered the events
    - report failures after registration through on_error (best effort)
    - stop() releases the platform registration and is idempotent
    """

    source: KeyboardSource

    def start(self, on_press: KeyCallback, on_release: KeyCallback, on_error: ErrorCallback) -> None:
        ...

    def stop(self) -> None:
        ...
