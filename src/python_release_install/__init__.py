"""Install prebuilt CPython releases listed in a versions manifest."""

from __future__ import annotations

from importlib.metadata import version

from ._config import InstallerConfig
from ._download import HTTPError, download_tool, extract_archive, extract_tar, extract_zip
from ._install import ExecutionError, find_release_from_manifest, get_manifest, install_cpython_from_release
from ._manifest import ReleaseFile, ToolRelease, find_from_manifest, get_manifest_from_repo, parse_manifest
from ._platform import PLATFORM_BEHAVIORS, ArchiveFormat, PlatformBehavior, PlatformKind, host_architecture
from ._reference import (
    MANIFEST_REPO_DEFAULT,
    FormatError,
    RepositoryReference,
    get_manifest_raw_url,
    get_manifest_reference,
    parse_uses_manifest,
)
from ._specifier import SimpleSpecifier, SimpleSpecifierSet, SimpleVersion, VersionSpec

__version__ = version("python-release-install")

__all__ = [
    "MANIFEST_REPO_DEFAULT",
    "PLATFORM_BEHAVIORS",
    "ArchiveFormat",
    "ExecutionError",
    "FormatError",
    "HTTPError",
    "InstallerConfig",
    "PlatformBehavior",
    "PlatformKind",
    "ReleaseFile",
    "RepositoryReference",
    "SimpleSpecifier",
    "SimpleSpecifierSet",
    "SimpleVersion",
    "ToolRelease",
    "VersionSpec",
    "__version__",
    "download_tool",
    "extract_archive",
    "extract_tar",
    "extract_zip",
    "find_from_manifest",
    "find_release_from_manifest",
    "get_manifest",
    "get_manifest_from_repo",
    "get_manifest_raw_url",
    "get_manifest_reference",
    "host_architecture",
    "install_cpython_from_release",
    "parse_manifest",
    "parse_uses_manifest",
]
