"""Event channels and debounced change notification."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_DEBOUNCE_SECONDS = 0.5


class Disposable:
    """Releases a resource (listener, watcher, timer) exactly once."""

    def __init__(self, on_dispose: Callable[[], Any]):
        self._on_dispose: Optional[Callable[[], Any]] = on_dispose

    @property
    def disposed(self) -> bool:
        return self._on_dispose is None

    def dispose(self) -> None:
        callback, self._on_dispose = self._on_dispose, None
        if callback is not None:
            callback()


class EventChannel(Generic[T]):
    """A named multi-listener event.

    Listeners are called synchronously on the thread that fires. A failing
    listener is logged and does not prevent delivery to the others.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._listeners: list[Callable[[T], Any]] = []

    def subscribe(self, listener: Callable[[T], Any]) -> Disposable:
        with self._lock:
            self._listeners.append(listener)

        def _remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return Disposable(_remove)

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    def fire(self, payload: T) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for '%s' failed", self.name)


class Debouncer:
    """Runs a callback once a burst of triggers has been quiet for ``delay``.

    Every trigger cancels the pending timer and schedules a new one, so the
    callback runs ``delay`` seconds after the *last* trigger. The callback
    takes no arguments: it reads whatever state is current when it runs.
    """

    def __init__(self, delay: float, callback: Callable[[], Any], name: str = "debounce"):
        self.delay = delay
        self._callback = callback
        self._name = name
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._closed = False

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def trigger(self) -> None:
        with self._lock:
            if self._closed:
                return
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = threading.Timer(self.delay, self._run, args=(self._generation,))
            self._timer.name = f"{self._name}-timer"
            self._timer.daemon = True
            self._timer.start()

    def _run(self, generation: int) -> None:
        with self._lock:
            # A newer trigger superseded this timer after it started running
            if generation != self._generation or self._timer is None:
                return
            self._timer = None
        self._callback()

    def flush(self) -> bool:
        """Run the pending callback now. Returns False if nothing was pending."""
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            self._timer = None
            self._generation += 1
        self._callback()
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1

    def close(self) -> None:
        """Cancel any pending run and ignore all later triggers."""
        self.cancel()
        with self._lock:
            self._closed = True


class ChangeNotifier:
    """Debounced "catalog changed" and "locations changed" notifications.

    Mutations call :meth:`catalog_did_change` / :meth:`locations_did_change`.
    Nothing is delivered while suspended (the initial bulk load); inside a
    :meth:`batch` requests are collected and issued once when it exits.
    Each delivery carries the snapshot taken at dispatch time.
    """

    CATALOG = "catalog"
    LOCATIONS = "locations"

    def __init__(
        self,
        catalog_snapshot: Callable[[], Any],
        locations_snapshot: Callable[[], Any],
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
    ):
        self.catalog_changed: EventChannel[Any] = EventChannel("catalog changed")
        self.locations_changed: EventChannel[Any] = EventChannel("locations changed")
        self._catalog_snapshot = catalog_snapshot
        self._locations_snapshot = locations_snapshot
        self._debouncers = {
            self.CATALOG: Debouncer(delay, self._dispatch_catalog, name="catalog-changed"),
            self.LOCATIONS: Debouncer(delay, self._dispatch_locations, name="locations-changed"),
        }
        self._lock = threading.Lock()
        self._suspended = True
        self._batch_depth = 0
        self._batched: set[str] = set()

    @property
    def suspended(self) -> bool:
        with self._lock:
            return self._suspended

    def suspend(self) -> None:
        with self._lock:
            self._suspended = True

    def resume(self, announce: bool = True) -> None:
        """Start delivering notifications, announcing the current state once."""
        with self._lock:
            self._suspended = False
        if announce:
            self._request(self.CATALOG)
            self._request(self.LOCATIONS)

    def catalog_did_change(self) -> None:
        self._request(self.CATALOG)

    def locations_did_change(self) -> None:
        self._request(self.LOCATIONS)

    def _request(self, channel: str) -> None:
        with self._lock:
            if self._suspended:
                return
            if self._batch_depth:
                self._batched.add(channel)
                return
        self._debouncers[channel].trigger()

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Coalesce every request made inside the block into one per channel."""
        with self._lock:
            self._batch_depth += 1
        try:
            yield
        finally:
            with self._lock:
                self._batch_depth -= 1
                released = self._batched if self._batch_depth == 0 else set()
                if self._batch_depth == 0:
                    self._batched = set()
            for channel in sorted(released):
                self._request(channel)

    def flush(self) -> None:
        """Deliver pending notifications immediately."""
        for debouncer in self._debouncers.values():
            debouncer.flush()

    def dispose(self) -> None:
        for debouncer in self._debouncers.values():
            debouncer.close()

    def _dispatch_catalog(self) -> None:
        self.catalog_changed.fire(self._catalog_snapshot())

    def _dispatch_locations(self) -> None:
        self.locations_changed.fire(self._locations_snapshot())
