"""
Core data models for dependency freshness.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class Dependency:
    """A dependency as declared in a project manifest."""

    name: str
    requested_range: str
    is_dev: bool = False


@dataclass(frozen=True)
class PublishedVersion:
    """A package version with its publish date."""

    version: str
    published_at: datetime


@dataclass(frozen=True)
class PackageMetadata:
    """Published versions and dist-tags of a single package."""

    name: str
    versions: Tuple[PublishedVersion, ...]
    dist_tags: Mapping[str, str] = field(default_factory=dict)
    latest: Optional[str] = None

    def get(self, version: str) -> Optional[PublishedVersion]:
        for published in self.versions:
            if published.version == version:
                return published
        return None


@dataclass(frozen=True)
class Success:
    """Metadata was fetched and parsed."""

    metadata: PackageMetadata
    ok = True

    @property
    def name(self) -> str:
        return self.metadata.name


@dataclass(frozen=True)
class NotFound:
    """The registry does not know the package."""

    name: str
    ok = False


@dataclass(frozen=True)
class TransportError:
    """Network, timeout or unexpected HTTP failure."""

    name: str
    detail: str
    ok = False


@dataclass(frozen=True)
class ParseError:
    """The registry answered with a document we could not read."""

    name: str
    detail: str
    ok = False


LookupOutcome = Union[Success, NotFound, TransportError, ParseError]


@dataclass(frozen=True)
class LookupProgress:
    """Snapshot of a lookup run's progress."""

    total: int = 0
    fulfilled: int = 0

    @property
    def done(self) -> bool:
        return self.total > 0 and self.fulfilled >= self.total

    @property
    def ratio(self) -> float:
        if self.total == 0:
            return 0.0
        return self.fulfilled / self.total


@dataclass(frozen=True)
class StatRow:
    """Freshness of one dependency."""

    package: str
    is_dev: bool
    target_version: str
    max_satisfied_version: str
    max_satisfied_published_at: datetime
    max_satisfied_age: int
    latest_version: str
    latest_published_at: datetime
    latest_age: int

    def to_dict(self) -> Dict:
        return asdict(self)


class UnresolvedReason(str, Enum):
    """Why a dependency produced no row."""

    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"
    PARSE_ERROR = "parse_error"
    RANGE_UNSATISFIABLE = "range_unsatisfiable"
    LATEST_UNKNOWN = "latest_unknown"
    NO_OUTCOME = "no_outcome"


@dataclass(frozen=True)
class UnresolvedDependency:
    """A dependency left out of the stat rows."""

    dependency: Dependency
    reason: UnresolvedReason
    detail: str = ""


@dataclass(frozen=True)
class DependencyCounters:
    """How many dependencies were declared, split by kind."""

    total: int = 0
    dev: int = 0
    regular: int = 0


@dataclass(frozen=True)
class StatsReport:
    """Rows plus the dependencies that could not be resolved."""

    rows: List[StatRow]
    unresolved: List[UnresolvedDependency]
    counters: DependencyCounters
