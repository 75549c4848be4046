"""Version parsing and matching for manifest releases (PEP 440 and the manifest's semver pre-releases)."""

from __future__ import annotations

import contextlib
import operator
import re
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

_DC_KW = {"frozen": True, "kw_only": True, "slots": True} if sys.version_info >= (3, 10) else {"frozen": True}

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

_VERSION_RE: Final[re.Pattern[str]] = re.compile(
    r"""
    ^
    (\d+)                               # major
    (?:\.(\d+))?                        # optional minor
    (?:\.(\d+))?                        # optional micro
    (?:-?(a|b|rc|alpha|beta)\.?(\d+))?  # optional pre-release, 3.14.0a1 or 3.14.0-alpha.1
    $
    """,
    re.VERBOSE,
)
_SPECIFIER_RE: Final[re.Pattern[str]] = re.compile(
    r"""
    ^
    (===|==|~=|!=|<=|>=|<|>)  # operator
    \s*
    (.+)                       # version string
    $
    """,
    re.VERBOSE,
)
_PARTIAL_RE: Final[re.Pattern[str]] = re.compile(
    r"""
    ^
    (?:\d+|[xX*])              # major, or a wildcard
    (?:\.(?:\d+|[xX*])){0,2}   # minor and micro, each a number or a wildcard
    $
    """,
    re.VERBOSE,
)
_COMPARATOR_RE: Final[re.Pattern[str]] = re.compile(
    r"""
    ^
    (\^|~|>=|<=|>|<|=)?  # node-semver operator, plain equality when missing
    (.+)                  # full or partial version
    $
    """,
    re.VERBOSE,
)
_OPERATOR_GAP_RE: Final[re.Pattern[str]] = re.compile(r"([<>=^~]+)\s+")
_PRE_ORDER: Final[dict[str, int]] = {"a": 1, "b": 2, "rc": 3}
_PRE_ALIASES: Final[dict[str, str]] = {"alpha": "a", "beta": "b"}
_WILDCARDS: Final[frozenset[str]] = frozenset({"x", "X", "*"})
_COMPARATORS: Final[dict[str, Callable[[object, object], bool]]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
}
_DEV_SUFFIX: Final[str] = "-dev"
_OPERATOR_START: Final[str] = "<>=!~"
_PEP440_OPERATORS: Final[tuple[str, ...]] = ("==", "!=", "~=")
_RANGE_START: Final[frozenset[str]] = frozenset("^~<>=")
_UNION: Final[str] = "||"
_FULL_RELEASE_PARTS: Final[int] = 3


@dataclass(**_DC_KW)
class SimpleVersion:
    """A ``major.minor.micro`` version with an optional alpha, beta or release-candidate suffix."""

    version_str: str
    major: int
    minor: int
    micro: int
    pre_type: str | None
    pre_num: int | None
    release: tuple[int, int, int]

    @classmethod
    def from_string(cls, version_str: str) -> SimpleVersion:
        stripped = version_str.strip()
        if not (match := _VERSION_RE.match(stripped)):
            msg = f"Invalid version: {version_str}"
            raise ValueError(msg)
        major = int(match.group(1))
        minor = int(match.group(2)) if match.group(2) else 0
        micro = int(match.group(3)) if match.group(3) else 0
        pre_type = match.group(4)
        return cls(
            version_str=stripped,
            major=major,
            minor=minor,
            micro=micro,
            pre_type=_PRE_ALIASES.get(pre_type, pre_type),
            pre_num=int(match.group(5)) if match.group(5) else None,
            release=(major, minor, micro),
        )

    @property
    def is_prerelease(self) -> bool:
        return self.pre_type is not None

    def _key(self) -> tuple[tuple[int, int, int], int, int]:
        # a final release sorts after every pre-release of the same release tuple
        if self.pre_type is None:
            return self.release, len(_PRE_ORDER) + 1, 0
        return self.release, _PRE_ORDER[self.pre_type], self.pre_num or 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SimpleVersion):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SimpleVersion):
            return NotImplemented
        return self._key() < other._key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, SimpleVersion):
            return NotImplemented
        return self._key() <= other._key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, SimpleVersion):
            return NotImplemented
        return self._key() > other._key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, SimpleVersion):
            return NotImplemented
        return self._key() >= other._key()

    def __str__(self) -> str:
        return self.version_str

    def __repr__(self) -> str:
        return f"SimpleVersion('{self.version_str}')"


def _as_version(value: str | SimpleVersion) -> SimpleVersion | None:
    if isinstance(value, SimpleVersion):
        return value
    try:
        return SimpleVersion.from_string(value)
    except ValueError:
        return None


@dataclass(**_DC_KW)
class SimpleSpecifier:
    """A single PEP 440 clause such as ``>=3.9`` or ``==3.12.*``."""

    spec_str: str
    operator: str
    version_str: str
    is_wildcard: bool
    wildcard_precision: int | None
    version: SimpleVersion | None

    @classmethod
    def from_string(cls, spec_str: str) -> SimpleSpecifier:
        stripped = spec_str.strip()
        if not (match := _SPECIFIER_RE.match(stripped)):
            msg = f"Invalid specifier: {spec_str}"
            raise ValueError(msg)
        version_str = match.group(2).strip()
        wildcard_precision: int | None = None
        if is_wildcard := version_str.endswith(".*"):
            version_str = version_str[:-2]
            wildcard_precision = len(version_str.split("."))
        return cls(
            spec_str=stripped,
            operator=match.group(1),
            version_str=version_str,
            is_wildcard=is_wildcard,
            wildcard_precision=wildcard_precision,
            version=_as_version(version_str),
        )

    def contains(self, version: str | SimpleVersion) -> bool:
        """Check if a version satisfies this clause; unparseable versions never do."""
        if (candidate := _as_version(version)) is None or self.version is None:
            return False
        if self.is_wildcard:
            prefix_equal = candidate.release[: self.wildcard_precision] == self.version.release[: self.wildcard_precision]
            if self.operator == "==":
                return prefix_equal
            if self.operator == "!=":
                return not prefix_equal
            return False
        if self.operator == "===":
            return str(candidate) == str(self.version)
        if self.operator == "~=":
            return self._check_compatible_release(candidate)
        if compare := _COMPARATORS.get(self.operator):
            return compare(candidate, self.version)
        return False

    def _check_compatible_release(self, candidate: SimpleVersion) -> bool:
        if self.version is None or candidate < self.version:
            return False
        significant = [int(part) for part in self.version_str.split(".") if part.isdigit()]
        if len(significant) < 2:  # noqa: PLR2004
            return candidate.major == self.version.major
        upper = [*significant[:-1]]
        upper[-1] += 1
        return candidate < SimpleVersion.from_string(".".join(str(part) for part in upper))

    def __str__(self) -> str:
        return self.spec_str

    def __repr__(self) -> str:
        return f"SimpleSpecifier('{self.spec_str}')"


@dataclass(**_DC_KW)
class SimpleSpecifierSet:
    """Comma separated PEP 440 clauses, all of which must hold."""

    specifiers_str: str
    specifiers: tuple[SimpleSpecifier, ...]

    @classmethod
    def from_string(cls, specifiers_str: str = "") -> SimpleSpecifierSet:
        stripped = specifiers_str.strip()
        specs: list[SimpleSpecifier] = []
        for item in (part.strip() for part in stripped.split(",")):
            if item:
                with contextlib.suppress(ValueError):
                    specs.append(SimpleSpecifier.from_string(item))
        return cls(specifiers_str=stripped, specifiers=tuple(specs))

    @property
    def mentions_prerelease(self) -> bool:
        return any(spec.version is not None and spec.version.is_prerelease for spec in self.specifiers)

    def contains(self, version: str | SimpleVersion) -> bool:
        return all(spec.contains(version) for spec in self.specifiers)

    def __iter__(self) -> Iterator[SimpleSpecifier]:
        return iter(self.specifiers)

    def __str__(self) -> str:
        return self.specifiers_str

    def __repr__(self) -> str:
        return f"SimpleSpecifierSet('{self.specifiers_str}')"


@dataclass(**_DC_KW)
class VersionSpec:
    """
    A requested Python version, as written by the user of the installer.

    Accepted shapes:

    - an exact version, ``3.12.1`` or ``3.14.0-beta.2``
    - a partial version or x-range, ``3``, ``3.12``, ``3.x``, ``3.12.x``, ``3.12.*``
    - a partial version with a ``-dev`` suffix, ``3.14-dev``, which also admits pre-releases
    - node-semver ranges: caret ``^3.12``, tilde ``~3.12``, comparators joined by spaces ``>=3.10 <3.13``,
      hyphen ranges ``3.10 - 3.12`` and unions of any of these ``3.12.x || 3.11.x``
    - PEP 440 specifier sets, comma separated or starting with ``==``, ``!=`` or ``~=``, ``>=3.9,<3.13``

    Pre-releases only match when the requested version names one or uses ``-dev``.
    """

    spec_str: str
    exact: SimpleVersion | None = None
    prefix: tuple[int, ...] | None = None
    specifiers: SimpleSpecifierSet | None = None
    allow_prereleases: bool = False
    alternatives: tuple[VersionSpec, ...] = ()

    @classmethod
    def from_string(cls, spec_str: str) -> VersionSpec:
        stripped = spec_str.strip()
        if _UNION in stripped:
            return cls(
                spec_str=stripped,
                alternatives=tuple(cls.from_string(part) for part in stripped.split(_UNION)),
            )
        if "," in stripped or stripped.startswith(_PEP440_OPERATORS):
            specifiers = SimpleSpecifierSet.from_string(stripped)
            if (
                not stripped[:1]
                or stripped[0] not in _OPERATOR_START
                or not specifiers.specifiers
                or any(spec.version is None for spec in specifiers)
            ):
                msg = f"Invalid version spec: {spec_str}"
                raise ValueError(msg)
            return cls(spec_str=stripped, specifiers=specifiers, allow_prereleases=specifiers.mentions_prerelease)
        if len(stripped.split()) > 1 or stripped[:1] in _RANGE_START:
            try:
                clauses = _range_clauses(stripped)
                specifiers = SimpleSpecifierSet(
                    specifiers_str=stripped,
                    specifiers=tuple(SimpleSpecifier.from_string(clause) for clause in clauses),
                )
            except ValueError as exc:
                msg = f"Invalid version spec: {spec_str}"
                raise ValueError(msg) from exc
            return cls(spec_str=stripped, specifiers=specifiers, allow_prereleases=specifiers.mentions_prerelease)
        dev = stripped.endswith(_DEV_SUFFIX)
        body = stripped[: -len(_DEV_SUFFIX)] if dev else stripped
        if _PARTIAL_RE.match(body):
            parts = body.split(".")
            numeric = [part for part in parts if part not in _WILDCARDS]
            if len(numeric) == _FULL_RELEASE_PARTS and not dev:
                return cls(spec_str=stripped, exact=SimpleVersion.from_string(body))
            if parts[: len(numeric)] != numeric:
                msg = f"Invalid version spec, a number follows a wildcard: {spec_str}"
                raise ValueError(msg)
            return cls(spec_str=stripped, prefix=tuple(int(part) for part in numeric), allow_prereleases=dev)
        if not dev and (version := _as_version(body)) is not None:
            return cls(spec_str=stripped, exact=version, allow_prereleases=version.is_prerelease)
        msg = f"Invalid version spec: {spec_str}"
        raise ValueError(msg)

    def contains(self, version: str | SimpleVersion) -> bool:
        if (candidate := _as_version(version)) is None:
            return False
        if self.alternatives:
            return any(alternative.contains(candidate) for alternative in self.alternatives)
        if candidate.is_prerelease and not self.allow_prereleases:
            return False
        if self.exact is not None:
            return candidate == self.exact
        if self.prefix is not None:
            return candidate.release[: len(self.prefix)] == self.prefix
        return self.specifiers is not None and self.specifiers.contains(candidate)

    def __str__(self) -> str:
        return self.spec_str


def _bound(text: str) -> tuple[tuple[int, ...], SimpleVersion | None]:
    """Leading release numbers of a range operand, and the version itself when it is complete."""
    if _PARTIAL_RE.match(text):
        parts = text.split(".")
        numeric = [part for part in parts if part not in _WILDCARDS]
        if parts[: len(numeric)] != numeric:
            msg = f"a number follows a wildcard: {text}"
            raise ValueError(msg)
        release = tuple(int(part) for part in numeric)
        return release, SimpleVersion.from_string(text) if len(release) == _FULL_RELEASE_PARTS else None
    version = SimpleVersion.from_string(text)
    return version.release, version


def _pad(release: tuple[int, ...]) -> str:
    return ".".join(str(part) for part in (*release, 0, 0, 0)[:_FULL_RELEASE_PARTS])


def _bump(release: tuple[int, ...], index: int) -> str:
    head = [*release[: index + 1]]
    head[-1] += 1
    return _pad(tuple(head))


def _comparator_clauses(comparator: str) -> list[str]:
    if not (match := _COMPARATOR_RE.match(comparator)):
        msg = f"Invalid comparator: {comparator}"
        raise ValueError(msg)
    op, operand = match.group(1) or "=", match.group(2)
    release, full = _bound(operand)
    lower = _pad(release) if full is None else str(full)
    if op in {"^", "~"}:
        if not release:
            return []
        if op == "^":
            # the first non-zero part is the one allowed to move
            index = next((at for at, part in enumerate(release) if part), len(release) - 1)
        else:
            index = min(len(release), 2) - 1
        return [f">={lower}", f"<{_bump(release, index)}"]
    if full is not None:
        return [f"{'==' if op == '=' else op}{full}"]
    if not release:
        if op in {"=", ">=", "<="}:
            return []
        msg = f"Invalid comparator: {comparator}"
        raise ValueError(msg)
    upper = _bump(release, len(release) - 1)
    return {
        "=": [f">={lower}", f"<{upper}"],
        ">=": [f">={lower}"],
        "<": [f"<{lower}"],
        ">": [f">={upper}"],
        "<=": [f"<{upper}"],
    }[op]


def _range_clauses(text: str) -> list[str]:
    """Translate one node-semver range (no ``||``) into PEP 440 clauses that must all hold."""
    comparators = _OPERATOR_GAP_RE.sub(r"\1", text).split()
    if not comparators:
        msg = "empty range"
        raise ValueError(msg)
    if len(comparators) == 3 and comparators[1] == "-":  # noqa: PLR2004
        low, _, high = comparators
        low_release, low_full = _bound(low)
        high_release, high_full = _bound(high)
        clauses = [f">={_pad(low_release) if low_full is None else low_full}"] if low_release else []
        if high_full is not None:
            clauses.append(f"<={high_full}")
        elif high_release:
            clauses.append(f"<{_bump(high_release, len(high_release) - 1)}")
        return clauses
    return [clause for comparator in comparators for clause in _comparator_clauses(comparator)]


__all__ = [
    "SimpleSpecifier",
    "SimpleSpecifierSet",
    "SimpleVersion",
    "VersionSpec",
]
