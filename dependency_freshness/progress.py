"""
Console progress bar for lookup runs.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Optional

from tqdm import tqdm

from .coordinator import LookupCoordinator
from .models import LookupOutcome, LookupProgress


class TqdmProgressObserver:
    """Mirror a coordinator's progress onto a tqdm bar.

    A new bar is opened whenever a run starts and closed when it finishes.
    """

    def __init__(self, desc: str = "Fetching packages", **tqdm_kwargs: Any) -> None:
        self.desc = desc
        self.tqdm_kwargs = tqdm_kwargs
        self._bar: Optional[tqdm] = None
        self._count = 0
        self._lock = threading.Lock()
        self._unsubscribe: Optional[Callable[[], None]] = None

    def attach(self, coordinator: LookupCoordinator) -> "TqdmProgressObserver":
        self._unsubscribe = coordinator.subscribe(self)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.close()

    def __call__(self, results: Dict[str, LookupOutcome], progress: LookupProgress) -> None:
        with self._lock:
            if progress.fulfilled == 0:
                self._close_bar()
                if progress.total > 0:
                    self._open_bar(progress.total)
                return
            if self._bar is None:
                self._open_bar(progress.total)
            self._bar.update(progress.fulfilled - self._count)
            self._count = progress.fulfilled
            if progress.done:
                self._close_bar()

    def close(self) -> None:
        with self._lock:
            self._close_bar()

    def _open_bar(self, total: int) -> None:
        self._bar = tqdm(total=total, desc=self.desc, unit="pkg", **self.tqdm_kwargs)
        self._count = 0

    def _close_bar(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
