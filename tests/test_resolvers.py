"""Tests for max-satisfying and latest version resolution."""

import itertools
from datetime import datetime, timedelta, timezone

from dependency_freshness.models import PackageMetadata, PublishedVersion
from dependency_freshness.resolvers import LatestPolicy, resolve_latest, resolve_max_satisfying


BASE = datetime(2020, 1, 1, tzinfo=timezone.utc)


def _versions(*names):
    return [
        PublishedVersion(version=name, published_at=BASE + timedelta(days=i))
        for i, name in enumerate(names)
    ]


def test_caret_range_picks_highest_compatible():
    versions = _versions("1.1.0", "1.2.0", "1.3.5", "2.0.0")

    resolved = resolve_max_satisfying(versions, "^1.2.0")

    assert resolved is not None
    assert resolved.version == "1.3.5"
    assert resolved.published_at == BASE + timedelta(days=2)


def test_unsatisfiable_range_returns_none():
    versions = _versions("1.1.0", "1.2.0", "1.3.5", "2.0.0")

    assert resolve_max_satisfying(versions, "^3.0.0") is None


def test_invalid_range_returns_none():
    versions = _versions("1.0.0")

    assert resolve_max_satisfying(versions, "github:user/repo") is None
    assert resolve_max_satisfying(versions, "latest") is None


def test_resolution_is_order_independent():
    versions = _versions("1.1.0", "1.2.0", "1.3.5", "2.0.0")

    results = {
        resolve_max_satisfying(list(order), "^1.2.0")
        for order in itertools.permutations(versions)
    }

    assert len(results) == 1
    assert results.pop().version == "1.3.5"


def test_resolution_is_idempotent():
    versions = _versions("0.9.0", "1.0.0", "1.0.1")

    first = resolve_max_satisfying(versions, "~1.0.0")
    second = resolve_max_satisfying(versions, "~1.0.0")

    assert first == second
    assert first.version == "1.0.1"


def test_prerelease_is_not_picked_for_release_range():
    versions = _versions("1.2.0", "1.3.0-beta.1")

    assert resolve_max_satisfying(versions, "^1.2.0").version == "1.2.0"
    assert resolve_max_satisfying(versions, "1.3.0-beta.1").version == "1.3.0-beta.1"


def test_non_semver_versions_are_skipped():
    versions = _versions("1.0.0", "garbage", "1.0.5")

    assert resolve_max_satisfying(versions, "*").version == "1.0.5"


def test_latest_uses_dist_tag():
    versions = _versions("1.0.0", "2.0.0", "3.0.0-rc.1")
    metadata = PackageMetadata("demo", tuple(versions), {"latest": "1.0.0"}, "1.0.0")

    assert resolve_latest(metadata).version == "1.0.0"
    assert resolve_latest(metadata, LatestPolicy.MAX_STABLE).version == "2.0.0"
    assert resolve_latest(metadata, LatestPolicy.MAX_VERSION).version == "3.0.0-rc.1"
    assert resolve_latest(metadata, LatestPolicy.NEWEST_PUBLISHED).version == "3.0.0-rc.1"


def test_latest_falls_back_to_max_stable_without_tag():
    versions = _versions("1.0.0", "2.0.0", "3.0.0-rc.1")
    metadata = PackageMetadata("demo", tuple(versions))

    assert resolve_latest(metadata).version == "2.0.0"


def test_latest_falls_back_when_tag_is_unknown():
    versions = _versions("1.0.0", "2.0.0")
    metadata = PackageMetadata("demo", tuple(versions), {"latest": "9.9.9"}, "9.9.9")

    assert resolve_latest(metadata).version == "2.0.0"


def test_latest_for_prerelease_only_package():
    versions = _versions("1.0.0-alpha", "1.0.0-beta")
    metadata = PackageMetadata("demo", tuple(versions))

    assert resolve_latest(metadata).version == "1.0.0-beta"
    assert resolve_latest(metadata, "max-stable").version == "1.0.0-beta"


def test_latest_without_versions():
    metadata = PackageMetadata("demo", ())

    assert resolve_latest(metadata) is None
    assert resolve_latest(metadata, LatestPolicy.NEWEST_PUBLISHED) is None
