"""
Interfaces for registry clients and lookup observers.
"""

from __future__ import annotations

from typing import Callable, Dict, Protocol

from .config import LookupSettings
from .models import LookupOutcome, LookupProgress


class RegistryClient(Protocol):
    """Fetch one package's metadata from a registry."""

    registry_url: str

    def fetch_metadata(self, package_name: str) -> LookupOutcome:
        ...


class LookupObserver(Protocol):
    """Receive a results snapshot and progress after every change."""

    def __call__(self, results: Dict[str, LookupOutcome], progress: LookupProgress) -> None:
        ...


ClientFactory = Callable[[LookupSettings], RegistryClient]
