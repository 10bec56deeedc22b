"""Frame-coalescing schedulers for redraws and high-frequency input."""

from __future__ import annotations

import logging
from typing import Callable, Generic, Optional, TypeVar

from PyQt6.QtCore import QObject, QTimer

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Roughly one display frame at 60 Hz
FRAME_INTERVAL_MS = 16


class FrameScheduler(QObject):
    """
    Dirty flag plus a single-shot timer.

    Any number of `request()` calls before the timer fires collapse into
    one callback invocation on the next tick.
    """

    def __init__(
        self,
        callback: Callable[[], None],
        interval_ms: int = FRAME_INTERVAL_MS,
        parent: Optional[QObject] = None
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            callback: Function run once per coalesced burst of requests
            interval_ms: Delay before a requested callback runs
            parent: Optional Qt parent
        """
        super().__init__(parent)
        self._callback = callback
        self._pending = False
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(interval_ms)
        self._timer.timeout.connect(self._run)

    @property
    def pending(self) -> bool:
        """True if a callback is scheduled and has not run yet."""
        return self._pending

    def request(self) -> None:
        """Schedule the callback for the next tick unless already scheduled."""
        if self._pending:
            return
        self._pending = True
        self._timer.start()

    def restart(self) -> None:
        """Schedule the callback a full interval from now, dropping the earlier tick."""
        self._pending = True
        self._timer.start()

    def cancel(self) -> None:
        """Drop a scheduled callback without running it."""
        self._pending = False
        self._timer.stop()

    def flush(self) -> None:
        """Run a scheduled callback immediately."""
        if self._pending:
            self._timer.stop()
            self._run()

    def _run(self) -> None:
        if not self._pending:
            return
        self._pending = False
        self._callback()


class LatestValueLatch(Generic[T]):
    """
    Hands only the most recent pushed value to a consumer, once per tick.

    Each `push()` overwrites the stored value; the consumer never sees
    intermediate values pushed within the same frame.
    """

    def __init__(
        self,
        consumer: Callable[[T], None],
        interval_ms: int = FRAME_INTERVAL_MS,
        parent: Optional[QObject] = None
    ) -> None:
        self._consumer = consumer
        self._value: Optional[T] = None
        self._has_value = False
        self._scheduler = FrameScheduler(self._deliver, interval_ms, parent)

    @property
    def pending(self) -> bool:
        return self._scheduler.pending

    def push(self, value: T) -> None:
        """Store a value and schedule its delivery."""
        self._value = value
        self._has_value = True
        self._scheduler.request()

    def flush(self) -> None:
        """Deliver a pending value immediately."""
        self._scheduler.flush()

    def cancel(self) -> None:
        """Discard a pending value."""
        self._scheduler.cancel()
        self._value = None
        self._has_value = False

    def _deliver(self) -> None:
        if not self._has_value:
            return
        value = self._value
        self._value = None
        self._has_value = False
        self._consumer(value)
