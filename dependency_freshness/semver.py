"""
Semantic versions and npm-style version ranges.

Ranges follow the grammar used by npm's ``node-semver``: ``||`` separated
comparator sets, primitive comparators (``<``, ``<=``, ``>``, ``>=``, ``=``),
X-ranges (``1.x``, ``1.2.*``, ``*``), partial versions, tilde and caret
ranges and hyphen ranges. Prerelease versions only satisfy a comparator set
that explicitly mentions a prerelease of the same ``major.minor.patch``.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from .errors import InvalidRange


_NUMBER = r"0|[1-9]\d*"
_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_X_NUMBER = r"0|[1-9]\d*|[xX*]"

_VERSION_RE = re.compile(
    rf"^[v=\s]*(?P<major>{_NUMBER})\.(?P<minor>{_NUMBER})\.(?P<patch>{_NUMBER})"
    rf"(?:-(?P<pre>{_IDENT}))?(?:\+(?P<build>{_IDENT}))?\s*$"
)
_PARTIAL_RE = re.compile(
    rf"^v?(?P<major>{_X_NUMBER})"
    rf"(?:\.(?P<minor>{_X_NUMBER})"
    rf"(?:\.(?P<patch>{_X_NUMBER})"
    rf"(?:-(?P<pre>{_IDENT}))?(?:\+(?P<build>{_IDENT}))?)?)?$"
)
_HYPHEN_RE = re.compile(r"^\s*(?P<low>\S+)\s+-\s+(?P<high>\S+)\s*$")
_OPERATOR_SPACE_RE = re.compile(r"(<=|>=|<|>|=|\^|~>|~)\s+")
_TOKEN_RE = re.compile(r"^(?P<op><=|>=|<|>|=|\^|~>|~)?(?P<version>.+)$")

PrereleaseId = Union[int, str]


def _split_prerelease(text: Optional[str]) -> Tuple[PrereleaseId, ...]:
    if not text:
        return ()
    return tuple(int(part) if part.isdigit() else part for part in text.split("."))


def _prerelease_key(prerelease: Tuple[PrereleaseId, ...]) -> Tuple:
    # A release sorts above every prerelease of the same version, and
    # numeric identifiers sort below alphanumeric ones.
    if not prerelease:
        return (1,)
    return (0,) + tuple(
        (0, part, "") if isinstance(part, int) else (1, 0, part) for part in prerelease
    )


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class SemVer:
    """A parsed semantic version. Build metadata does not affect ordering."""

    major: int
    minor: int
    patch: int
    prerelease: Tuple[PrereleaseId, ...] = ()
    build: Tuple[str, ...] = ()

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def release(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def sort_key(self) -> Tuple:
        return (self.major, self.minor, self.patch, _prerelease_key(self.prerelease))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: "SemVer") -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(part) for part in self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text


def parse_version(text: Optional[str]) -> Optional[SemVer]:
    """Parse a version string, tolerating a leading ``v`` or ``=``."""
    if not text or not isinstance(text, str):
        return None
    match = _VERSION_RE.match(text)
    if match is None:
        return None
    build = match.group("build")
    return SemVer(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=_split_prerelease(match.group("pre")),
        build=tuple(build.split(".")) if build else (),
    )


def npm_semver_key(text: str) -> Optional[Tuple]:
    """Return a sortable key for an npm version string, or None if invalid."""
    parsed = parse_version(text)
    if parsed is None:
        return None
    return parsed.sort_key()


@dataclass(frozen=True)
class Comparator:
    """A single ``<op> <version>`` constraint."""

    operator: str
    version: SemVer

    def test(self, version: SemVer) -> bool:
        if self.operator == "<":
            return version < self.version
        if self.operator == "<=":
            return version <= self.version
        if self.operator == ">":
            return version > self.version
        if self.operator == ">=":
            return version >= self.version
        return version == self.version

    def __str__(self) -> str:
        op = "" if self.operator == "=" else self.operator
        return f"{op}{self.version}"


ComparatorSet = Tuple[Comparator, ...]

# Nothing sorts below 0.0.0-0.
_NOTHING = Comparator("<", SemVer(0, 0, 0, (0,)))


@dataclass(frozen=True)
class _Partial:
    major: Optional[int]
    minor: Optional[int]
    patch: Optional[int]
    prerelease: Tuple[PrereleaseId, ...] = ()


def _is_x(part: Optional[str]) -> bool:
    return part is None or part in ("x", "X", "*")


def _parse_partial(text: str, range_text: str) -> _Partial:
    match = _PARTIAL_RE.match(text)
    if match is None:
        raise InvalidRange(range_text, f"bad version {text!r}")
    major, minor, patch = match.group("major"), match.group("minor"), match.group("patch")
    # Anything after an x is an x too: 1.x.3 means 1.x.x.
    if _is_x(major):
        return _Partial(None, None, None)
    if _is_x(minor):
        return _Partial(int(major), None, None)
    if _is_x(patch):
        return _Partial(int(major), int(minor), None)
    return _Partial(int(major), int(minor), int(patch), _split_prerelease(match.group("pre")))


def _lower(op: str, major: int, minor: int, patch: int, prerelease=()) -> Comparator:
    return Comparator(op, SemVer(major, minor, patch, tuple(prerelease)))


def _upper_exclusive(major: int, minor: int, patch: int) -> Comparator:
    # The -0 suffix keeps prereleases of the bound itself out of the range.
    return Comparator("<", SemVer(major, minor, patch, (0,)))


def _expand_tilde(p: _Partial) -> List[Comparator]:
    if p.major is None:
        return []
    if p.minor is None:
        return [_lower(">=", p.major, 0, 0), _upper_exclusive(p.major + 1, 0, 0)]
    if p.patch is None:
        return [_lower(">=", p.major, p.minor, 0), _upper_exclusive(p.major, p.minor + 1, 0)]
    return [
        _lower(">=", p.major, p.minor, p.patch, p.prerelease),
        _upper_exclusive(p.major, p.minor + 1, 0),
    ]


def _expand_caret(p: _Partial) -> List[Comparator]:
    if p.major is None:
        return []
    if p.minor is None:
        return [_lower(">=", p.major, 0, 0), _upper_exclusive(p.major + 1, 0, 0)]
    if p.patch is None:
        low = _lower(">=", p.major, p.minor, 0)
        if p.major == 0:
            return [low, _upper_exclusive(0, p.minor + 1, 0)]
        return [low, _upper_exclusive(p.major + 1, 0, 0)]

    low = _lower(">=", p.major, p.minor, p.patch, p.prerelease)
    if p.major == 0:
        if p.minor == 0:
            return [low, _upper_exclusive(0, 0, p.patch + 1)]
        return [low, _upper_exclusive(0, p.minor + 1, 0)]
    return [low, _upper_exclusive(p.major + 1, 0, 0)]


def _expand_xrange(op: str, p: _Partial) -> List[Comparator]:
    if p.patch is not None:
        return [Comparator(op or "=", SemVer(p.major, p.minor, p.patch, p.prerelease))]

    if op == "=":
        op = ""
    if p.major is None:
        if op in (">", "<"):
            return [_NOTHING]
        return []

    if op:
        major = p.major
        minor = p.minor if p.minor is not None else 0
        if op == ">":
            # >1 is >=2.0.0, >1.2 is >=1.3.0
            op = ">="
            if p.minor is None:
                major, minor = major + 1, 0
            else:
                minor += 1
        elif op == "<=":
            # <=0.7.x is <0.8.0
            op = "<"
            if p.minor is None:
                major += 1
            else:
                minor += 1
        if op == "<":
            return [_upper_exclusive(major, minor, 0)]
        return [_lower(op, major, minor, 0)]

    if p.minor is None:
        return [_lower(">=", p.major, 0, 0), _upper_exclusive(p.major + 1, 0, 0)]
    return [_lower(">=", p.major, p.minor, 0), _upper_exclusive(p.major, p.minor + 1, 0)]


def _expand_hyphen(low: _Partial, high: _Partial) -> List[Comparator]:
    comparators: List[Comparator] = []
    if low.major is not None:
        comparators.append(
            _lower(">=", low.major, low.minor or 0, low.patch or 0, low.prerelease)
        )
    if high.major is None:
        pass
    elif high.minor is None:
        comparators.append(_upper_exclusive(high.major + 1, 0, 0))
    elif high.patch is None:
        comparators.append(_upper_exclusive(high.major, high.minor + 1, 0))
    else:
        comparators.append(
            _lower("<=", high.major, high.minor, high.patch, high.prerelease)
        )
    return comparators


def _parse_token(token: str, range_text: str) -> List[Comparator]:
    match = _TOKEN_RE.match(token)
    if match is None:
        raise InvalidRange(range_text, f"bad comparator {token!r}")
    op = match.group("op") or ""
    partial = _parse_partial(match.group("version"), range_text)
    if op == "^":
        return _expand_caret(partial)
    if op in ("~", "~>"):
        return _expand_tilde(partial)
    return _expand_xrange(op, partial)


def _parse_set(text: str, range_text: str) -> ComparatorSet:
    text = text.strip()
    if not text:
        return ()

    hyphen = _HYPHEN_RE.match(text)
    if hyphen:
        return tuple(
            _expand_hyphen(
                _parse_partial(hyphen.group("low"), range_text),
                _parse_partial(hyphen.group("high"), range_text),
            )
        )

    text = _OPERATOR_SPACE_RE.sub(r"\1", text)
    comparators: List[Comparator] = []
    for token in text.split():
        comparators.extend(_parse_token(token, range_text))
    return tuple(comparators)


def _test_set(comparators: ComparatorSet, version: SemVer) -> bool:
    for comparator in comparators:
        if not comparator.test(version):
            return False

    if version.is_prerelease:
        for comparator in comparators:
            if comparator.version.is_prerelease and comparator.version.release == version.release:
                return True
        return False
    return True


@dataclass(frozen=True)
class Range:
    """A parsed version range: a union of comparator sets."""

    raw: str
    sets: Tuple[ComparatorSet, ...]

    def test(self, version: Union[SemVer, str]) -> bool:
        if isinstance(version, str):
            parsed = parse_version(version)
            if parsed is None:
                return False
            version = parsed
        return any(_test_set(comparators, version) for comparators in self.sets)

    def __str__(self) -> str:
        parts = []
        for comparators in self.sets:
            parts.append(" ".join(str(c) for c in comparators) or "*")
        return " || ".join(parts)


def parse_range(text: str) -> Range:
    """Parse an npm version range.

    Raises:
        InvalidRange: if the text is not a valid range.
    """
    if text is None or not isinstance(text, str):
        raise InvalidRange(str(text), "not a string")
    sets = tuple(_parse_set(part, text) for part in text.split("||"))
    return Range(raw=text, sets=sets)


def satisfies(version: Union[SemVer, str], range_text: str) -> bool:
    """Return True if the version satisfies the range; False on invalid input."""
    try:
        return parse_range(range_text).test(version)
    except InvalidRange:
        return False

