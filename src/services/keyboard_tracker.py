"""
Keyboard Tracker - bridges a global keyboard hook to a terminable event stream

State machine:
    IDLE --start()--> RUNNING
    RUNNING --press(Escape) / stop()--> STOPPED
    RUNNING --registration or source failure--> STOPPED (stream error)
    STOPPED is terminal

The tracker never touches downstream sinks. Termination completes the
stream; whatever must happen on completion (closing a writer) belongs to
the subscriber's on_complete callback.
"""

import threading
from typing import Callable, Optional

from hardware.input.keyboard.adapters.base import IKeyboardHook
from hardware.input.keyboard.key_labels import ESCAPE
from models.enums import TrackerState
from models.errors import AlreadyRunningError, InvalidStateError, KeytraceError, SourceRegistrationError
from models.events import KeyEvent, RawKeyEvent
from services.event_stream import EventStream, Subscription
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.EVENT)


class KeyboardTracker:
    """
    Publishes KeyEvents from a keyboard hook until the termination key

    Hook callbacks arrive on the hook's own thread. State changes and
    emissions share one re-entrant lock, so once stop() returns no further
    event reaches subscribers, even if the platform keeps delivering.

    Example:
        tracker = KeyboardTracker(create_keyboard_hook())
        tracker.subscribe(
            on_next=lambda e: writer.append(format_event(e)),
            on_complete=writer.close
        )
        tracker.start()
    """

    def __init__(self, hook: IKeyboardHook, termination_key: str = ESCAPE):
        """
        Args:
            hook: Keyboard hook implementation (pynput, evdev, scripted)
            termination_key: Normalized key label that ends tracking
        """
        self._hook = hook
        self.termination_key = termination_key
        self._stream: EventStream[KeyEvent] = EventStream(name="keyboard")
        self._state = TrackerState.IDLE
        self._lock = threading.RLock()
        self._hook_registered = False
        self._events_emitted = 0

    # -----------------------------
    # State
    # -----------------------------

    @property
    def state(self) -> TrackerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is TrackerState.RUNNING

    @property
    def events(self) -> EventStream[KeyEvent]:
        """Multicast stream of KeyEvents"""
        return self._stream

    @property
    def events_emitted(self) -> int:
        return self._events_emitted

    def subscribe(
        self,
        on_next: Optional[Callable[[KeyEvent], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
        name: Optional[str] = None
    ) -> Subscription:
        """Subscribe to key events (legal before start(); no replay)"""
        return self._stream.subscribe(on_next, on_error, on_complete, name=name)

    # -----------------------------
    # Lifecycle
    # -----------------------------

    def start(self) -> None:
        """
        Register the keyboard hook and begin publishing events

        Registration failures do not raise here: they terminate the stream
        with SourceRegistrationError so subscribers observe them.

        Raises:
            AlreadyRunningError: tracker already running
            InvalidStateError: tracker already stopped (STOPPED is terminal)
        """
        with self._lock:
            if self._state is TrackerState.RUNNING:
                raise AlreadyRunningError()
            if self._state is TrackerState.STOPPED:
                raise InvalidStateError("Keyboard tracker is stopped and cannot be restarted", state="STOPPED")
            self._state = TrackerState.RUNNING

            log.info(
                "Starting keyboard tracking",
                source=getattr(self._hook.source, "name", type(self._hook).__name__),
                termination_key=self.termination_key
            )
            try:
                self._hook.start(self._on_press, self._on_release, self._on_source_error)
            except Exception as e:
                error = e if isinstance(e, SourceRegistrationError) else SourceRegistrationError(str(e))
                log.error("Keyboard hook registration failed", reason=error.message)
                self._fail(error)
                return
            self._hook_registered = True
            # Termination key delivered synchronously during registration
            if self._state is not TrackerState.RUNNING:
                self._release_hook()

    def stop(self) -> None:
        """Stop tracking and complete the stream (no-op when already stopped)"""
        with self._lock:
            if self._state is TrackerState.STOPPED:
                return
            self._state = TrackerState.STOPPED
            self._release_hook()
            log.info("Keyboard tracking stopped", events=self._events_emitted)
            self._stream.complete()

    def _fail(self, error: KeytraceError) -> None:
        with self._lock:
            if self._state is TrackerState.STOPPED:
                return
            self._state = TrackerState.STOPPED
            self._release_hook()
            self._stream.error(error)

    def _release_hook(self) -> None:
        if not self._hook_registered:
            return
        self._hook_registered = False
        try:
            self._hook.stop()
        except Exception as e:
            log.warn("Keyboard hook did not stop cleanly", reason=str(e))

    # -----------------------------
    # Hook callbacks (hook thread)
    # -----------------------------

    def _on_press(self, raw: RawKeyEvent) -> None:
        with self._lock:
            if self._state is not TrackerState.RUNNING:
                return
            if raw.key_text == self.termination_key:
                log.info("Termination key pressed", key=raw.key_text)
                self.stop()
                return
            self._emit(raw)

    def _on_release(self, raw: RawKeyEvent) -> None:
        with self._lock:
            if self._state is not TrackerState.RUNNING:
                return
            self._emit(raw)

    def _on_source_error(self, error: BaseException) -> None:
        log.error("Keyboard source failed", reason=str(error))
        if not isinstance(error, KeytraceError):
            error = SourceRegistrationError(str(error))
        self._fail(error)

    def _emit(self, raw: RawKeyEvent) -> None:
        event = KeyEvent.from_raw(raw, source=getattr(self._hook, "source", None))
        self._events_emitted += 1
        self._stream.emit(event)
