"""
Dependency Freshness

Report how far the versions allowed by a project's dependency ranges lag
behind each package's latest release.
"""

__version__ = "0.1.0"

from .config import LookupSettings
from .coordinator import LookupCoordinator, LookupRun
from .models import (
    Dependency,
    LookupOutcome,
    LookupProgress,
    NotFound,
    PackageMetadata,
    ParseError,
    PublishedVersion,
    StatRow,
    StatsReport,
    Success,
    TransportError,
)
from .pipeline import FreshnessPipeline
from .progress import TqdmProgressObserver
from .registry import NpmRegistryClient
from .reporting import log_summary, stats_to_dataframe
from .resolvers import LatestPolicy, resolve_latest, resolve_max_satisfying
from .stats import compute_stats, compute_stats_report
from .time_utils import age_seconds

__all__ = [
    "Dependency",
    "FreshnessPipeline",
    "LatestPolicy",
    "LookupCoordinator",
    "LookupOutcome",
    "LookupProgress",
    "LookupRun",
    "LookupSettings",
    "NotFound",
    "NpmRegistryClient",
    "PackageMetadata",
    "ParseError",
    "PublishedVersion",
    "StatRow",
    "StatsReport",
    "Success",
    "TqdmProgressObserver",
    "TransportError",
    "age_seconds",
    "compute_stats",
    "compute_stats_report",
    "log_summary",
    "resolve_latest",
    "resolve_max_satisfying",
    "stats_to_dataframe",
]
