"""
Concurrent registry lookups for a dependency list.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .config import LookupSettings
from .interfaces import ClientFactory, LookupObserver, RegistryClient
from .models import Dependency, LookupOutcome, LookupProgress, TransportError
from .registry import NpmRegistryClient


logger = logging.getLogger(__name__)


def unique_names(dependencies: Iterable[Dependency]) -> Tuple[str, ...]:
    """Distinct package names in first-seen order."""
    return tuple(dict.fromkeys(dep.name for dep in dependencies))


def _default_client_factory(settings: LookupSettings) -> RegistryClient:
    return NpmRegistryClient(settings=settings)


def _close_client(client: RegistryClient) -> None:
    close = getattr(client, "close", None)
    if close is not None:
        close()


class LookupRun:
    """Handle for one lookup run.

    The ``token`` event is the run's cancellation token: once set, outcomes
    produced for the run are discarded.
    """

    def __init__(self, run_id: int, names: Tuple[str, ...]) -> None:
        self.run_id = run_id
        self.names = names
        self.token = threading.Event()
        self._finished = threading.Event()
        self._futures: List[Future] = []

    @property
    def cancelled(self) -> bool:
        return self.token.is_set()

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def cancel(self) -> None:
        self.token.set()
        # Fetches already running finish on the network; their outcomes are dropped.
        for future in self._futures:
            future.cancel()
        self._finished.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the run settles or is cancelled."""
        return self._finished.wait(timeout)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "finished" if self.finished else "running"
        return f"<LookupRun {self.run_id} {state} packages={len(self.names)}>"


class LookupCoordinator:
    """Fan out one metadata fetch per distinct package, with bounded concurrency.

    Only one run is active at a time: calling :meth:`lookup` again cancels the
    previous run and starts over with fresh results and progress.
    """

    def __init__(
        self,
        client: Optional[RegistryClient] = None,
        settings: Optional[LookupSettings] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.settings = settings or LookupSettings()
        self._client_factory = client_factory or _default_client_factory
        self.client = client or self._client_factory(self.settings)
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.max_in_flight,
            thread_name_prefix="registry-lookup",
        )
        # Reentrant so observers may read state from inside a notification.
        self._lock = threading.RLock()
        self._run_ids = itertools.count(1)
        self._run: Optional[LookupRun] = None
        self._results: Dict[str, LookupOutcome] = {}
        self._progress = LookupProgress()
        self._observers: List[LookupObserver] = []
        self._closed = False

    @property
    def results(self) -> Dict[str, LookupOutcome]:
        with self._lock:
            return dict(self._results)

    @property
    def progress(self) -> LookupProgress:
        with self._lock:
            return self._progress

    @property
    def current_run(self) -> Optional[LookupRun]:
        with self._lock:
            return self._run

    @property
    def is_fetching(self) -> bool:
        with self._lock:
            return self._run is not None and not self._run.finished

    def snapshot(self) -> Tuple[Dict[str, LookupOutcome], LookupProgress]:
        """Results and progress read together."""
        with self._lock:
            return dict(self._results), self._progress

    def subscribe(self, observer: LookupObserver) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def lookup(self, dependencies: Iterable[Dependency]) -> LookupRun:
        """Start a new run for ``dependencies``, cancelling any active run."""
        names = unique_names(dependencies)
        with self._lock:
            if self._closed:
                raise RuntimeError("LookupCoordinator is closed")
            previous = self._run
            if previous is not None and not previous.finished:
                logger.info("Cancelling lookup run %d", previous.run_id)
                previous.cancel()

            run = LookupRun(next(self._run_ids), names)
            self._run = run
            self._results = {}
            self._progress = LookupProgress(total=len(names), fulfilled=0)
            self._notify()

            if not names:
                logger.debug("Lookup run %d has no packages", run.run_id)
                run._finished.set()
                return run

            logger.info("Starting lookup run %d for %d packages", run.run_id, len(names))
            client = self.client
            for name in names:
                run._futures.append(self._executor.submit(self._fetch, run, client, name))
        return run

    def cancel(self) -> None:
        """Cancel the active run without starting another one."""
        with self._lock:
            if self._run is not None and not self._run.finished:
                logger.info("Cancelling lookup run %d", self._run.run_id)
                self._run.cancel()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run settles.

        Returns False if ``timeout`` expired first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                run = self._run
            if run is None:
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            if not run.wait(remaining):
                return False
            with self._lock:
                if self._run is run:
                    return True

    def set_registry_url(self, registry_url: str) -> None:
        """Point subsequent runs at another registry."""
        with self._lock:
            self.settings = self.settings.with_registry_url(registry_url)
            previous, self.client = self.client, self._client_factory(self.settings)
        logger.info("Registry set to %s", self.settings.registry_url)
        _close_client(previous)

    def close(self) -> None:
        with self._lock:
            self._closed = True
            if self._run is not None:
                self._run.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
        _close_client(self.client)

    def __enter__(self) -> "LookupCoordinator":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _fetch(self, run: LookupRun, client: RegistryClient, name: str) -> None:
        if run.cancelled:
            return
        try:
            outcome = client.fetch_metadata(name)
        except Exception as e:
            logger.exception("Unexpected error fetching %s", name)
            outcome = TransportError(name, f"unexpected error: {e}")
        self._apply(run, name, outcome)

    def _apply(self, run: LookupRun, name: str, outcome: LookupOutcome) -> None:
        with self._lock:
            if run.cancelled or run is not self._run:
                logger.debug("Dropping %s outcome from superseded run %d", name, run.run_id)
                return
            if name in self._results:
                return
            self._results[name] = outcome
            self._progress = LookupProgress(
                total=self._progress.total, fulfilled=self._progress.fulfilled + 1
            )
            self._notify()
            if self._progress.fulfilled >= self._progress.total:
                failed = sum(1 for item in self._results.values() if not item.ok)
                logger.info(
                    "Lookup run %d finished: %d packages, %d failed",
                    run.run_id, self._progress.total, failed,
                )
                run._finished.set()

    def _notify(self) -> None:
        # Called with the lock held so observers see snapshots in order.
        results, progress = dict(self._results), self._progress
        for observer in list(self._observers):
            try:
                observer(results, progress)
            except Exception:
                logger.exception("Lookup observer %r failed", observer)
