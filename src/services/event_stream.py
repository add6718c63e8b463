"""
Event Stream - multicast channel for keyboard events

Implements publish/subscribe with terminal signals:
- Publishers: emit(event), error(exc), complete()
- Subscribers: subscribe(on_next, on_error, on_complete)

Semantics:
- Every subscriber sees every event, in emission order
- Late subscribers miss earlier events (no replay)
- error() / complete() are terminal: nothing is emitted afterwards
"""

import threading
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.EVENT)

T = TypeVar("T")


@dataclass
class StreamObserver(Generic[T]):
    """Subscriber registration"""
    on_next: Optional[Callable[[T], None]]
    on_error: Optional[Callable[[BaseException], None]]
    on_complete: Optional[Callable[[], None]]
    name: str


class Subscription:
    """Handle returned by subscribe(); dispose() detaches the observer"""

    def __init__(self, stream: Optional["EventStream"], observer: Optional[StreamObserver]):
        self._stream = stream
        self._observer = observer

    @property
    def disposed(self) -> bool:
        return self._observer is None

    def dispose(self) -> None:
        if self._stream is not None and self._observer is not None:
            self._stream._remove(self._observer)
        self._stream = None
        self._observer = None


class EventStream(Generic[T]):
    """
    Thread-safe multicast stream

    Emission is serialized with a re-entrant lock, so a subscriber may
    call complete() from inside its own on_next without deadlocking.

    A failing on_next does not reach the publisher: the exception is
    delivered to that subscriber's on_error and the subscriber is dropped.
    Other subscribers keep receiving events.

    Example:
        stream = EventStream()
        sub = stream.subscribe(
            on_next=lambda e: print(e),
            on_complete=lambda: print("done")
        )
        stream.emit(event)
        stream.complete()
    """

    def __init__(self, name: str = "events"):
        self.name = name
        self._observers: List[StreamObserver[T]] = []
        self._lock = threading.RLock()
        self._completed = False
        self._error: Optional[BaseException] = None

    # -----------------------------
    # State
    # -----------------------------

    @property
    def is_terminated(self) -> bool:
        return self._completed or self._error is not None

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def error_value(self) -> Optional[BaseException]:
        return self._error

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    # -----------------------------
    # Subscribers
    # -----------------------------

    def subscribe(
        self,
        on_next: Optional[Callable[[T], None]] = None,
        on_error: Optional[Callable[[BaseException], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
        name: Optional[str] = None
    ) -> Subscription:
        """
        Subscribe to the stream

        Subscribing to a terminated stream immediately delivers the
        terminal signal and returns an already disposed subscription.

        Args:
            on_next: Called with every event
            on_error: Called once with the terminal error
            on_complete: Called once when the stream completes
            name: Label used in log output
        """
        observer = StreamObserver(
            on_next=on_next,
            on_error=on_error,
            on_complete=on_complete,
            name=name or getattr(on_next, "__name__", "observer"),
        )

        with self._lock:
            if not self.is_terminated:
                self._observers.append(observer)
                log.debug(
                    "Stream observer subscribed",
                    stream=self.name,
                    observer=observer.name,
                    observers=len(self._observers)
                )
                return Subscription(self, observer)

        # Already terminated - replay only the terminal signal
        if self._error is not None:
            self._notify_error(observer, self._error)
        else:
            self._notify_complete(observer)
        return Subscription(None, None)

    def _remove(self, observer: StreamObserver[T]) -> None:
        with self._lock:
            if observer in self._observers:
                self._observers.remove(observer)
                log.debug("Stream observer disposed", stream=self.name, observer=observer.name)

    # -----------------------------
    # Publishing
    # -----------------------------

    def emit(self, event: T) -> bool:
        """
        Publish event to all subscribers

        Returns:
            False if the stream is already terminated (event dropped)
        """
        with self._lock:
            if self.is_terminated:
                log.debug("Event dropped, stream terminated", stream=self.name)
                return False

            for observer in list(self._observers):
                # An observer may terminate the stream from inside its callbacks
                if self.is_terminated:
                    break
                if observer.on_next is None:
                    continue
                try:
                    observer.on_next(event)
                except Exception as e:
                    log.error(
                        f"Stream observer failed: {observer.name}",
                        stream=self.name,
                        exception=repr(e)
                    )
                    self._remove(observer)
                    self._notify_error(observer, e)
            return True

    def error(self, exc: BaseException) -> None:
        """Terminate the stream with an error (no-op if already terminated)"""
        with self._lock:
            if self.is_terminated:
                return
            self._error = exc
            observers, self._observers = self._observers, []

            log.debug("Stream errored", stream=self.name, error=str(exc))
            for observer in observers:
                self._notify_error(observer, exc)

    def complete(self) -> None:
        """Complete the stream (no-op if already terminated)"""
        with self._lock:
            if self.is_terminated:
                return
            self._completed = True
            observers, self._observers = self._observers, []

            log.debug("Stream completed", stream=self.name, observers=len(observers))
            for observer in observers:
                self._notify_complete(observer)

    # -----------------------------
    # Terminal notifications
    # -----------------------------

    def _notify_error(self, observer: StreamObserver[T], exc: BaseException) -> None:
        if observer.on_error is None:
            log.warn(
                "Unhandled stream error",
                stream=self.name,
                observer=observer.name,
                error=str(exc)
            )
            return
        try:
            observer.on_error(exc)
        except Exception as e:
            log.error(
                f"Error handler failed: {observer.name}",
                stream=self.name,
                exception=repr(e)
            )

    def _notify_complete(self, observer: StreamObserver[T]) -> None:
        if observer.on_complete is None:
            return
        try:
            observer.on_complete()
        except Exception as e:
            log.error(
                f"Completion handler failed: {observer.name}",
                stream=self.name,
                exception=repr(e)
            )
