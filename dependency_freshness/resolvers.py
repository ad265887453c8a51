"""
Version resolution over a package's published versions.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from .errors import InvalidRange
from .models import PackageMetadata, PublishedVersion
from .semver import SemVer, parse_range, parse_version


logger = logging.getLogger(__name__)


class LatestPolicy(str, Enum):
    """How the globally latest version of a package is chosen."""

    DIST_TAG = "dist-tag"
    MAX_STABLE = "max-stable"
    MAX_VERSION = "max-version"
    NEWEST_PUBLISHED = "newest-published"


def _parsed(versions: Iterable[PublishedVersion]) -> List[Tuple[SemVer, PublishedVersion]]:
    parsed = []
    for published in versions:
        semver = parse_version(published.version)
        if semver is None:
            logger.debug("Skipping non-semver version %s", published.version)
            continue
        parsed.append((semver, published))
    return parsed


def _max_by_semver(
    candidates: List[Tuple[SemVer, PublishedVersion]]
) -> Optional[PublishedVersion]:
    if not candidates:
        return None
    # Ties on precedence (build metadata only) fall back to the version string.
    return max(candidates, key=lambda item: (item[0], item[1].version))[1]


def resolve_max_satisfying(
    versions: Iterable[PublishedVersion], range_text: str
) -> Optional[PublishedVersion]:
    """Return the highest version satisfying ``range_text``.

    Returns None when no version satisfies the range or the range cannot be
    parsed.
    """
    try:
        version_range = parse_range(range_text)
    except InvalidRange as e:
        logger.debug("Unresolvable range: %s", e)
        return None

    matching = [item for item in _parsed(versions) if version_range.test(item[0])]
    return _max_by_semver(matching)


def resolve_latest(
    metadata: PackageMetadata, policy: LatestPolicy = LatestPolicy.DIST_TAG
) -> Optional[PublishedVersion]:
    """Return the latest version of a package according to ``policy``.

    ``DIST_TAG`` trusts the registry's ``latest`` tag and falls back to the
    highest stable version, then to the highest prerelease.
    """
    policy = LatestPolicy(policy)

    if policy is LatestPolicy.NEWEST_PUBLISHED:
        if not metadata.versions:
            return None
        return max(metadata.versions, key=lambda item: (item.published_at, item.version))

    if policy is LatestPolicy.DIST_TAG and metadata.latest:
        tagged = metadata.get(metadata.latest)
        if tagged is not None:
            return tagged
        logger.debug(
            "Latest tag %s of %s has no publish date, falling back",
            metadata.latest, metadata.name,
        )

    parsed = _parsed(metadata.versions)
    if policy is LatestPolicy.MAX_VERSION:
        return _max_by_semver(parsed)

    stable = [item for item in parsed if not item[0].is_prerelease]
    return _max_by_semver(stable) or _max_by_semver(parsed)
