"""
Join dependencies with lookup outcomes into freshness rows.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from .models import (
    Dependency,
    DependencyCounters,
    LookupOutcome,
    NotFound,
    ParseError,
    StatRow,
    StatsReport,
    Success,
    TransportError,
    UnresolvedDependency,
    UnresolvedReason,
)
from .resolvers import LatestPolicy, resolve_latest, resolve_max_satisfying
from .time_utils import age_seconds, ensure_utc, utc_now


logger = logging.getLogger(__name__)

_FAILURE_REASONS = {
    NotFound: UnresolvedReason.NOT_FOUND,
    TransportError: UnresolvedReason.TRANSPORT_ERROR,
    ParseError: UnresolvedReason.PARSE_ERROR,
}


def count_dependencies(dependencies: Iterable[Dependency]) -> DependencyCounters:
    """Count declared dependencies, split into dev and regular."""
    total = dev = 0
    for dep in dependencies:
        total += 1
        if dep.is_dev:
            dev += 1
    return DependencyCounters(total=total, dev=dev, regular=total - dev)


def _describe(dep: Dependency) -> str:
    return f"{dep.requested_range} dev" if dep.is_dev else dep.requested_range


def _unique_dependencies(dependencies: Iterable[Dependency]) -> List[Dependency]:
    # Last declaration wins; the row keeps the position of the first one.
    by_name: Dict[str, Dependency] = {}
    for dep in dependencies:
        existing = by_name.get(dep.name)
        if existing is not None and existing != dep:
            logger.warning(
                "Dependency %s declared twice (%s, %s), using %s",
                dep.name, _describe(existing), _describe(dep), _describe(dep),
            )
        by_name[dep.name] = dep
    return list(by_name.values())


def compute_stats_report(
    dependencies: Iterable[Dependency],
    outcomes: Mapping[str, LookupOutcome],
    now: Optional[datetime] = None,
    latest_policy: LatestPolicy = LatestPolicy.DIST_TAG,
) -> StatsReport:
    """Compute stat rows and report the dependencies that were left out.

    All ages are computed against the same ``now``.
    """
    dependencies = list(dependencies)
    now = ensure_utc(now) if now is not None else utc_now()
    rows: List[StatRow] = []
    unresolved: List[UnresolvedDependency] = []

    for dep in _unique_dependencies(dependencies):
        outcome = outcomes.get(dep.name)
        if outcome is None:
            unresolved.append(UnresolvedDependency(dep, UnresolvedReason.NO_OUTCOME))
            continue
        if not isinstance(outcome, Success):
            detail = getattr(outcome, "detail", "")
            unresolved.append(UnresolvedDependency(dep, _FAILURE_REASONS[type(outcome)], detail))
            continue

        metadata = outcome.metadata
        max_satisfied = resolve_max_satisfying(metadata.versions, dep.requested_range)
        if max_satisfied is None:
            logger.debug("No version of %s satisfies %s", dep.name, dep.requested_range)
            unresolved.append(
                UnresolvedDependency(
                    dep, UnresolvedReason.RANGE_UNSATISFIABLE, dep.requested_range
                )
            )
            continue

        latest = resolve_latest(metadata, latest_policy)
        if latest is None:
            unresolved.append(UnresolvedDependency(dep, UnresolvedReason.LATEST_UNKNOWN))
            continue

        rows.append(StatRow(
            package=dep.name,
            is_dev=dep.is_dev,
            target_version=dep.requested_range,
            max_satisfied_version=max_satisfied.version,
            max_satisfied_published_at=max_satisfied.published_at,
            max_satisfied_age=age_seconds(max_satisfied.published_at, now),
            latest_version=latest.version,
            latest_published_at=latest.published_at,
            latest_age=age_seconds(latest.published_at, now),
        ))

    logger.info("Computed %d stat rows, %d dependencies unresolved", len(rows), len(unresolved))
    return StatsReport(
        rows=rows,
        unresolved=unresolved,
        counters=count_dependencies(dependencies),
    )


def compute_stats(
    dependencies: Iterable[Dependency],
    outcomes: Mapping[str, LookupOutcome],
    now: Optional[datetime] = None,
    latest_policy: LatestPolicy = LatestPolicy.DIST_TAG,
) -> List[StatRow]:
    """Stat rows in input order; unresolvable dependencies are omitted."""
    return compute_stats_report(dependencies, outcomes, now, latest_policy).rows
