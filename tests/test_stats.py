"""Tests for the stats aggregator and the end-to-end pipeline."""

import logging
from datetime import datetime, timedelta, timezone

from dependency_freshness.coordinator import LookupCoordinator
from dependency_freshness.models import (
    Dependency,
    DependencyCounters,
    NotFound,
    PackageMetadata,
    ParseError,
    PublishedVersion,
    Success,
    TransportError,
    UnresolvedReason,
)
from dependency_freshness.registry import parse_package_metadata
from dependency_freshness.resolvers import LatestPolicy
from dependency_freshness.stats import compute_stats, compute_stats_report, count_dependencies


NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
T0 = NOW - timedelta(days=2000)
T1 = NOW - timedelta(days=1000)
T2 = NOW - timedelta(days=100)


def _metadata(name, versions, latest=None):
    published = tuple(PublishedVersion(v, at) for v, at in versions)
    tags = {"latest": latest} if latest else {}
    return PackageMetadata(name, published, tags, latest)


LEFTPAD = _metadata("leftpad", [("1.0.0", T0), ("1.3.0", T1), ("2.0.0", T2)], latest="2.0.0")


def test_leftpad_row():
    deps = [Dependency("leftpad", "^1.0.0", False)]

    rows = compute_stats(deps, {"leftpad": Success(LEFTPAD)}, NOW)

    assert len(rows) == 1
    row = rows[0]
    assert row.package == "leftpad"
    assert row.is_dev is False
    assert row.target_version == "^1.0.0"
    assert row.max_satisfied_version == "1.3.0"
    assert row.max_satisfied_published_at == T1
    assert row.max_satisfied_age == 1000 * 86400
    assert row.latest_version == "2.0.0"
    assert row.latest_published_at == T2
    assert row.latest_age == 100 * 86400


def test_failed_and_unsatisfiable_dependencies_are_dropped():
    deps = [
        Dependency("missing", "^1.0.0"),
        Dependency("leftpad", "^1.0.0"),
        Dependency("too-new", "^3.0.0"),
        Dependency("offline", "*"),
        Dependency("garbled", "*"),
        Dependency("never-fetched", "*"),
    ]
    outcomes = {
        "missing": NotFound("missing"),
        "leftpad": Success(LEFTPAD),
        "too-new": Success(_metadata("too-new", [("1.0.0", T0), ("2.0.0", T1)])),
        "offline": TransportError("offline", "timeout"),
        "garbled": ParseError("garbled", "invalid JSON"),
    }

    report = compute_stats_report(deps, outcomes, NOW)

    assert [row.package for row in report.rows] == ["leftpad"]
    reasons = {item.dependency.name: item.reason for item in report.unresolved}
    assert reasons == {
        "missing": UnresolvedReason.NOT_FOUND,
        "too-new": UnresolvedReason.RANGE_UNSATISFIABLE,
        "offline": UnresolvedReason.TRANSPORT_ERROR,
        "garbled": UnresolvedReason.PARSE_ERROR,
        "never-fetched": UnresolvedReason.NO_OUTCOME,
    }
    assert compute_stats(deps, outcomes, NOW) == report.rows


def test_rows_keep_input_order():
    deps = [Dependency(name, "*") for name in ["c", "a", "b"]]
    outcomes = {
        name: Success(_metadata(name, [("1.0.0", T1)], latest="1.0.0")) for name in "abc"
    }

    rows = compute_stats(deps, outcomes, NOW)

    assert [row.package for row in rows] == ["c", "a", "b"]


def test_duplicate_dependency_last_declaration_wins(caplog):
    deps = [
        Dependency("leftpad", "^1.0.0", False),
        Dependency("other", "*"),
        Dependency("leftpad", "^2.0.0", True),
    ]
    outcomes = {
        "leftpad": Success(LEFTPAD),
        "other": Success(_metadata("other", [("1.0.0", T1)])),
    }

    with caplog.at_level(logging.WARNING):
        rows = compute_stats(deps, outcomes, NOW)

    assert [row.package for row in rows] == ["leftpad", "other"]
    assert rows[0].target_version == "^2.0.0"
    assert rows[0].is_dev is True
    assert rows[0].max_satisfied_version == "2.0.0"
    assert "declared twice" in caplog.text


def test_ages_are_clamped_for_future_publish_dates():
    future = _metadata("future", [("1.0.0", NOW + timedelta(minutes=5))], latest="1.0.0")

    rows = compute_stats([Dependency("future", "*")], {"future": Success(future)}, NOW)

    assert rows[0].max_satisfied_age == 0
    assert rows[0].latest_age == 0


def test_latest_policy_is_applied():
    metadata = _metadata("demo", [("1.0.0", T0), ("2.0.0", T1)], latest="1.0.0")
    deps = [Dependency("demo", "^1.0.0")]

    default = compute_stats(deps, {"demo": Success(metadata)}, NOW)
    max_stable = compute_stats(deps, {"demo": Success(metadata)}, NOW, LatestPolicy.MAX_STABLE)

    assert default[0].latest_version == "1.0.0"
    assert max_stable[0].latest_version == "2.0.0"


def test_package_without_publish_dates_is_unresolved():
    deps = [Dependency("empty", "*")]

    report = compute_stats_report(deps, {"empty": Success(_metadata("empty", []))}, NOW)

    assert report.rows == []
    assert report.unresolved[0].reason is UnresolvedReason.RANGE_UNSATISFIABLE


def test_count_dependencies():
    deps = [Dependency("a", "*"), Dependency("b", "*", True), Dependency("c", "*", True)]

    assert count_dependencies(deps) == DependencyCounters(total=3, dev=2, regular=1)
    assert compute_stats_report(deps, {}, NOW).counters.dev == 2


def test_end_to_end_with_registry_documents():
    documents = {
        "leftpad": {
            "dist-tags": {"latest": "2.0.0"},
            "time": {
                "1.0.0": T0.isoformat(),
                "1.3.0": T1.isoformat(),
                "2.0.0": T2.isoformat(),
            },
        },
    }

    class DocumentClient:
        registry_url = "https://registry.test"

        def fetch_metadata(self, name):
            if name not in documents:
                return NotFound(name)
            return Success(parse_package_metadata(name, documents[name]))

    deps = [Dependency("leftpad", "^1.0.0"), Dependency("ghost", "^1.0.0", True)]

    with LookupCoordinator(client=DocumentClient()) as coordinator:
        coordinator.lookup(deps)
        assert coordinator.wait(5)
        assert coordinator.progress.fulfilled == coordinator.progress.total == 2
        rows = compute_stats(deps, coordinator.results, NOW)

    assert len(rows) == 1
    assert rows[0].max_satisfied_version == "1.3.0"
    assert rows[0].latest_version == "2.0.0"
    assert rows[0].max_satisfied_age == int((NOW - T1).total_seconds())
    assert rows[0].latest_age == int((NOW - T2).total_seconds())


def test_duplicate_warning_shows_dev_flag(caplog):
    deps = [Dependency("leftpad", "^1.0.0", False), Dependency("leftpad", "^1.0.0", True)]

    with caplog.at_level(logging.WARNING):
        rows = compute_stats(deps, {"leftpad": Success(LEFTPAD)}, NOW)

    assert rows[0].is_dev is True
    assert "(^1.0.0, ^1.0.0 dev), using ^1.0.0 dev" in caplog.text
