"""Parse ``owner/repo@ref`` manifest references and derive the manifest location."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import Final

_DC_KW = {"frozen": True, "kw_only": True, "slots": True} if sys.version_info >= (3, 10) else {"frozen": True}

MANIFEST_REPO_DEFAULT: Final[str] = "actions/python-versions@main"
MANIFEST_FILE_NAME: Final[str] = "versions-manifest.json"
RAW_CONTENT_HOST: Final[str] = "https://raw.githubusercontent.com"

# a small subset of the ``jobs.<job_id>.steps[*].uses`` syntax of GitHub workflows
_USES_RE: Final[re.Pattern[str]] = re.compile(
    r"""
    (?P<owner>[^/@]+)  # owner, a single path segment
    /
    (?P<repo>[^/@]+)   # repository, a single path segment
    @
    (?P<ref>[^@]+)     # branch, tag or commit; may contain slashes
    """,
    re.VERBOSE,
)


class FormatError(ValueError):
    """The manifest reference does not follow the ``{{owner}}/{{repo}}@{{ref}}`` template."""


@dataclass(**_DC_KW)
class RepositoryReference:
    owner: str
    repo: str
    ref: str

    def __str__(self) -> str:
        return f"{self.owner}/{self.repo}@{self.ref}"


def parse_uses_manifest(value: str) -> RepositoryReference:
    """
    Split *value* into its owner, repository and ref parts.

    :raises FormatError: when *value* is not of the form ``owner/repo@ref``
    """
    if not (match := _USES_RE.fullmatch(value)):
        msg = (
            "Expected uses-cpython-manifest to have format {{owner}}/{{repo}}@{{ref}} (owner/repo@ref), "
            f"got {value!r}"
        )
        raise FormatError(msg)
    return RepositoryReference(owner=match["owner"], repo=match["repo"], ref=match["ref"])


def get_manifest_reference(uses_manifest: str | None = None) -> RepositoryReference:
    return parse_uses_manifest(uses_manifest or MANIFEST_REPO_DEFAULT)


def get_manifest_raw_url(reference: RepositoryReference) -> str:
    return f"{RAW_CONTENT_HOST}/{reference.owner}/{reference.repo}/{reference.ref}/{MANIFEST_FILE_NAME}"


__all__ = [
    "MANIFEST_FILE_NAME",
    "MANIFEST_REPO_DEFAULT",
    "FormatError",
    "RepositoryReference",
    "get_manifest_raw_url",
    "get_manifest_reference",
    "parse_uses_manifest",
]
