"""
Coalesce bursts of calls into one.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Tuple


logger = logging.getLogger(__name__)


class Debouncer:
    """Run ``func`` once calls have stopped arriving for ``delay`` seconds.

    Only the arguments of the last call are used.
    """

    def __init__(self, delay: float, func: Callable[..., Any]) -> None:
        if delay < 0:
            raise ValueError(f"delay must not be negative, got {delay}")
        self.delay = delay
        self.func = func
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self._pending: Optional[Tuple[tuple, dict]] = None

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def call(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = (args, kwargs)
            if self.delay == 0:
                self._timer = None
                generation = self._generation
            else:
                self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
                self._timer.daemon = True
                self._timer.start()
                return
        self._fire(generation)

    def flush(self) -> bool:
        """Run a pending call now. Returns False if nothing was pending."""
        with self._lock:
            if self._pending is None:
                return False
            if self._timer is not None:
                self._timer.cancel()
            generation = self._generation
        self._fire(generation)
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
            self._generation += 1

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._pending is None:
                return
            args, kwargs = self._pending
            self._pending = None
            self._timer = None
        try:
            self.func(*args, **kwargs)
        except Exception:
            logger.exception("Debounced call to %r failed", self.func)
