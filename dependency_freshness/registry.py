"""
Registry client for npm-compatible package metadata.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import requests

from .config import LookupSettings
from .errors import RegistryParseError
from .models import (
    LookupOutcome,
    NotFound,
    PackageMetadata,
    ParseError,
    PublishedVersion,
    Success,
    TransportError,
)
from .time_utils import parse_timestamp


logger = logging.getLogger(__name__)

# Keys of the npm "time" object that are not versions.
_TIME_META_KEYS = frozenset({"created", "modified", "unpublished"})


def _require_mapping(package: str, value: Any, what: str) -> Mapping:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise RegistryParseError(package, f"'{what}' is {type(value).__name__}, expected object")
    return value


def parse_package_metadata(package: str, document: Any) -> PackageMetadata:
    """Turn a registry package document into :class:`PackageMetadata`.

    Publish dates come from the ``time`` object, falling back to
    ``versions[v].dist.published``. When the document lists ``versions``,
    only those are kept so unpublished versions still present in ``time``
    are ignored.

    Raises:
        RegistryParseError: if the document does not look like package metadata.
    """
    if not isinstance(document, Mapping):
        raise RegistryParseError(package, f"document is {type(document).__name__}, expected object")

    time_data = _require_mapping(package, document.get("time"), "time")
    versions_data = _require_mapping(package, document.get("versions"), "versions")
    dist_tags = _require_mapping(package, document.get("dist-tags"), "dist-tags")

    if "time" not in document and "versions" not in document:
        raise RegistryParseError(package, "neither 'time' nor 'versions' present")

    if versions_data:
        candidates = list(versions_data.keys())
    else:
        candidates = [key for key in time_data.keys() if key not in _TIME_META_KEYS]

    published: List[PublishedVersion] = []
    for ver in candidates:
        timestamp = time_data.get(ver)
        if not timestamp:
            ver_data = versions_data.get(ver)
            if isinstance(ver_data, Mapping):
                dist = ver_data.get("dist")
                if isinstance(dist, Mapping):
                    timestamp = dist.get("published")
        pub_date = parse_timestamp(timestamp) if isinstance(timestamp, str) else None
        if pub_date is None:
            logger.debug("No publish date for %s@%s, skipping", package, ver)
            continue
        published.append(PublishedVersion(version=ver, published_at=pub_date))

    tags: Dict[str, str] = {
        str(tag): value for tag, value in dist_tags.items() if isinstance(value, str)
    }
    return PackageMetadata(
        name=package,
        versions=tuple(published),
        dist_tags=tags,
        latest=tags.get("latest"),
    )


class NpmRegistryClient:
    """Fetch package metadata documents from an npm-compatible registry."""

    def __init__(
        self,
        registry_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
        settings: Optional[LookupSettings] = None,
    ) -> None:
        settings = settings or LookupSettings()
        self.registry_url = (registry_url or settings.registry_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.timeout
        self.session = session or requests.Session()
        # Per-request headers; the session's own headers are not modified.
        self.headers = {"Accept": "application/json", "User-Agent": settings.user_agent}

    def package_url(self, package_name: str) -> str:
        # Scoped packages are requested as @scope%2Fname.
        return f"{self.registry_url}/{quote(package_name, safe='@')}"

    def fetch_metadata(self, package_name: str) -> LookupOutcome:
        """Fetch and parse metadata for one package. Never raises for I/O errors."""
        url = self.package_url(package_name)
        logger.info("Fetching metadata for %s", package_name)
        try:
            with self.session.get(url, headers=self.headers, timeout=self.timeout) as response:
                if response.status_code == 404:
                    logger.warning("Package %s not found at %s", package_name, self.registry_url)
                    return NotFound(package_name)
                if not 200 <= response.status_code < 300:
                    detail = f"HTTP {response.status_code} from {url}"
                    logger.warning("Failed to fetch %s: %s", package_name, detail)
                    return TransportError(package_name, detail)
                try:
                    document = response.json()
                except ValueError as e:
                    logger.warning("Invalid JSON for %s: %s", package_name, e)
                    return ParseError(package_name, f"invalid JSON: {e}")
        except requests.Timeout as e:
            logger.warning("Timed out fetching %s after %ss", package_name, self.timeout)
            return TransportError(package_name, f"timeout after {self.timeout}s: {e}")
        except requests.RequestException as e:
            logger.warning("Error fetching %s: %s", package_name, e)
            return TransportError(package_name, str(e))

        try:
            metadata = parse_package_metadata(package_name, document)
        except RegistryParseError as e:
            logger.warning("%s", e)
            return ParseError(package_name, e.detail)
        logger.debug("Fetched %d versions of %s", len(metadata.versions), package_name)
        return Success(metadata)

    def close(self) -> None:
        self.session.close()
