"""
Debounced lookups that restart whenever the input changes.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Iterable, Optional, Tuple

import pandas as pd

from .config import LookupSettings
from .coordinator import LookupCoordinator
from .debounce import Debouncer
from .models import Dependency, LookupProgress, StatsReport
from .progress import TqdmProgressObserver
from .reporting import log_summary, stats_to_dataframe
from .stats import compute_stats_report


logger = logging.getLogger(__name__)


class FreshnessPipeline:
    """Feed dependency list and registry changes into a coordinator.

    Each change to the dependency list or registry URL schedules a new lookup
    run after ``settings.debounce_delay`` seconds; a run still in flight is
    cancelled when the new one starts. With ``progress_bar=True`` each run
    is mirrored on a tqdm bar.
    """

    def __init__(
        self,
        coordinator: Optional[LookupCoordinator] = None,
        settings: Optional[LookupSettings] = None,
        progress_bar: bool = False,
    ) -> None:
        if settings is None:
            settings = coordinator.settings if coordinator is not None else LookupSettings()
        self.settings = settings
        self.coordinator = coordinator or LookupCoordinator(settings=settings)
        self._lock = threading.Lock()
        self._dependencies: Tuple[Dependency, ...] = ()
        self._registry_url = self.coordinator.settings.registry_url
        self._active_dependencies: Tuple[Dependency, ...] = ()
        self._debouncer = Debouncer(settings.debounce_delay, self._start_run)
        self._progress_bar: Optional[TqdmProgressObserver] = None
        if progress_bar:
            self._progress_bar = TqdmProgressObserver().attach(self.coordinator)

    @property
    def dependencies(self) -> Tuple[Dependency, ...]:
        with self._lock:
            return self._dependencies

    @property
    def registry_url(self) -> str:
        with self._lock:
            return self._registry_url

    @property
    def progress(self) -> LookupProgress:
        return self.coordinator.progress

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def update(
        self,
        dependencies: Optional[Iterable[Dependency]] = None,
        registry_url: Optional[str] = None,
    ) -> bool:
        """Record new input. Returns True if a run was scheduled."""
        with self._lock:
            changed = False
            if dependencies is not None:
                dependencies = tuple(dependencies)
                if dependencies != self._dependencies:
                    self._dependencies = dependencies
                    changed = True
            if registry_url is not None:
                registry_url = registry_url.rstrip("/")
                if registry_url != self._registry_url:
                    self._registry_url = registry_url
                    changed = True
            if not changed:
                return False
            scheduled = (self._dependencies, self._registry_url)
        logger.debug("Input changed, scheduling lookup of %d dependencies", len(scheduled[0]))
        self._debouncer.call(*scheduled)
        return True

    def flush(self) -> bool:
        """Start a scheduled run immediately."""
        return self._debouncer.flush()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Start any scheduled run and block until the current run settles."""
        self.flush()
        return self.coordinator.wait(timeout)

    def stats(self, now: Optional[datetime] = None) -> StatsReport:
        """Freshness report for the dependencies of the latest run."""
        with self._lock:
            dependencies = self._active_dependencies
        return compute_stats_report(
            dependencies, self.coordinator.results, now, self.settings.latest_policy
        )

    def dataframe(self, now: Optional[datetime] = None) -> pd.DataFrame:
        """Freshness rows of the latest run as a DataFrame."""
        return stats_to_dataframe(self.stats(now).rows)

    def summarize(self, now: Optional[datetime] = None) -> StatsReport:
        """Compute the report and write its summary to the log."""
        report = self.stats(now)
        log_summary(report)
        return report

    def close(self) -> None:
        self._debouncer.cancel()
        if self._progress_bar is not None:
            self._progress_bar.detach()
            self._progress_bar = None
        self.coordinator.close()

    def __enter__(self) -> "FreshnessPipeline":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _start_run(self, dependencies: Tuple[Dependency, ...], registry_url: str) -> None:
        if registry_url != self.coordinator.settings.registry_url:
            self.coordinator.set_registry_url(registry_url)
        with self._lock:
            self._active_dependencies = dependencies
        self.coordinator.lookup(dependencies)
