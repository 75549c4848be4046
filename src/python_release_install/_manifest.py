"""Release manifest model, retrieval from a GitHub repository, and release selection."""

from __future__ import annotations

import contextlib
import json
import logging
import sys
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, Final

import requests

from ._platform import PlatformKind, host_architecture, os_version
from ._reference import MANIFEST_FILE_NAME
from ._specifier import VersionSpec

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_DC_KW = {"frozen": True, "kw_only": True, "slots": True} if sys.version_info >= (3, 10) else {"frozen": True}
_LOGGER: Final[logging.Logger] = logging.getLogger(__name__)

GITHUB_API: Final[str] = "https://api.github.com"
RAW_ACCEPT: Final[str] = "application/vnd.github.VERSION.raw"
REQUEST_TIMEOUT: Final[float] = 30.0
_BOM: Final[str] = "\ufeff"


@dataclass(**_DC_KW)
class ReleaseFile:
    filename: str
    arch: str
    platform: str
    download_url: str
    platform_version: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ReleaseFile:
        return cls(
            filename=data["filename"],
            arch=data["arch"],
            platform=data["platform"],
            download_url=data["download_url"],
            platform_version=data.get("platform_version"),
        )


@dataclass(**_DC_KW)
class ToolRelease:
    """One interpreter build listed in the versions manifest, with its downloadable archives."""

    version: str
    stable: bool = True
    release_url: str = ""
    files: tuple[ReleaseFile, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolRelease:
        return cls(
            version=data["version"],
            stable=bool(data.get("stable", True)),
            release_url=data.get("release_url", ""),
            files=tuple(ReleaseFile.from_dict(item) for item in data.get("files", ())),
        )


def parse_manifest(raw: str) -> list[ToolRelease]:
    """
    Build the release list from the text of a versions manifest.

    :raises ValueError: when *raw* is not a JSON list of releases
    """
    data = json.loads(raw.lstrip(_BOM))
    if not isinstance(data, list):
        msg = f"expected a list of releases, got {type(data).__name__}"
        raise ValueError(msg)  # noqa: TRY004
    try:
        return [ToolRelease.from_dict(item) for item in data]
    except (KeyError, TypeError) as exc:
        msg = f"malformed release entry: {exc!r}"
        raise ValueError(msg) from exc


def get_manifest_from_repo(
    owner: str,
    repo: str,
    auth: str | None = None,
    branch: str = "master",
) -> list[ToolRelease]:
    """Fetch ``versions-manifest.json`` at *branch* through the git trees API of ``owner/repo``."""
    headers: dict[str, str] = {}
    if auth:
        headers["authorization"] = auth
    tree_url = f"{GITHUB_API}/repos/{owner}/{repo}/git/trees/{branch}"
    _LOGGER.debug("listing %s", tree_url)
    response = requests.get(tree_url, headers=headers, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    manifest_url = next(
        (item["url"] for item in response.json().get("tree", ()) if item.get("path") == MANIFEST_FILE_NAME),
        None,
    )
    if manifest_url is None:
        msg = f"{MANIFEST_FILE_NAME} not found in {owner}/{repo}@{branch}"
        raise FileNotFoundError(msg)

    headers = {**headers, "accept": RAW_ACCEPT}
    response = requests.get(manifest_url, headers=headers, timeout=REQUEST_TIMEOUT)
    response.raise_for_status()
    try:
        releases = parse_manifest(response.text)
    except ValueError:
        _LOGGER.debug("invalid manifest json at %s", manifest_url, exc_info=True)
        return []
    _LOGGER.debug("manifest lists %d releases", len(releases))
    return releases


def _platform_version_matches(required: str, current: str) -> bool:
    if required == current:
        return True
    with contextlib.suppress(ValueError):
        return VersionSpec.from_string(required).contains(current)
    return False


def find_from_manifest(  # noqa: PLR0913
    version_spec: str,
    stable: bool,  # noqa: FBT001
    manifest: Iterable[ToolRelease],
    arch_filter: str | None = None,
    platform: PlatformKind | None = None,
    current_os_version: str | None = None,
) -> ToolRelease | None:
    """
    Select the first release, in manifest order, satisfying *version_spec* with a file for this host.

    :param version_spec: the requested version, see :class:`VersionSpec`
    :param stable: only consider releases flagged stable
    :param manifest: releases to choose from, newest first as published
    :param arch_filter: manifest ``arch`` tag, defaults to the host architecture
    :param platform: platform family, defaults to the running one
    :param current_os_version: OS release matched against ``platform_version``, detected when needed
    :return: a copy of the release carrying only the matching file, or ``None``
    :raises ValueError: when *version_spec* cannot be parsed
    """
    spec = VersionSpec.from_string(version_spec)
    arch = host_architecture() if arch_filter is None else arch_filter
    kind = PlatformKind.current() if platform is None else platform

    for candidate in manifest:
        if not spec.contains(candidate.version) or (stable and not candidate.stable):
            continue
        for item in candidate.files:
            if item.arch != arch or item.platform != kind.value:
                continue
            if item.platform_version:
                if current_os_version is None:
                    current_os_version = os_version(kind)
                if not _platform_version_matches(item.platform_version, current_os_version):
                    continue
            _LOGGER.debug("matched %s with %s", candidate.version, item.filename)
            return replace(candidate, files=(item,))
    _LOGGER.debug("no release matches %s for %s-%s", version_spec, kind.value, arch)
    return None


__all__ = [
    "ReleaseFile",
    "ToolRelease",
    "find_from_manifest",
    "get_manifest_from_repo",
    "parse_manifest",
]
