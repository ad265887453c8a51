import io

from dependency_freshness.models import LookupProgress
from dependency_freshness.progress import TqdmProgressObserver


class FakeCoordinator:
    def __init__(self):
        self.observers = []

    def subscribe(self, observer):
        self.observers.append(observer)
        return lambda: self.observers.remove(observer)


def _observer(stream):
    return TqdmProgressObserver(file=stream, mininterval=0)


def test_bar_follows_progress():
    stream = io.StringIO()
    observer = _observer(stream)

    observer({}, LookupProgress(total=3, fulfilled=0))
    bar = observer._bar
    assert bar is not None and bar.total == 3

    observer({}, LookupProgress(total=3, fulfilled=2))
    assert bar.n == 2

    observer({}, LookupProgress(total=3, fulfilled=3))
    assert bar.n == 3
    assert observer._bar is None
    assert "3/3" in stream.getvalue()


def test_new_run_replaces_bar():
    observer = _observer(io.StringIO())

    observer({}, LookupProgress(total=3, fulfilled=1))
    first = observer._bar
    observer({}, LookupProgress(total=5, fulfilled=0))

    assert observer._bar is not first
    assert observer._bar.total == 5
    observer.close()
    assert observer._bar is None


def test_empty_run_opens_no_bar():
    observer = _observer(io.StringIO())

    observer({}, LookupProgress(total=0, fulfilled=0))

    assert observer._bar is None


def test_attach_and_detach():
    coordinator = FakeCoordinator()
    observer = _observer(io.StringIO()).attach(coordinator)

    assert coordinator.observers == [observer]
    observer.detach()
    assert coordinator.observers == []
