"""Command line entry point: ``python -m python_release_install 3.12``."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Final

from ._config import InstallerConfig
from ._install import find_release_from_manifest, install_cpython_from_release
from ._manifest import parse_manifest
from ._platform import host_architecture
from ._reference import FormatError
from ._specifier import VersionSpec

if TYPE_CHECKING:
    from collections.abc import Sequence

_LOGGER: Final[logging.Logger] = logging.getLogger(__name__)

EXIT_NOT_FOUND: Final[int] = 1
EXIT_CONFIG_ERROR: Final[int] = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python-release-install",
        description="Install a prebuilt CPython release from a versions manifest.",
    )
    parser.add_argument("version_spec", help='requested version, e.g. 3.12, 3.12.1, 3.14-dev, ^3.12 or ">=3.10 <3.13"')
    parser.add_argument(
        "--architecture",
        default=host_architecture(),
        help="manifest architecture tag (default: %(default)s)",
    )
    parser.add_argument("--manifest-file", type=Path, help="read releases from this file instead of fetching them")
    parser.add_argument("--dry-run", action="store_true", help="only report the release that would be installed")
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug messages")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")
    config = InstallerConfig.from_env()
    _LOGGER.debug("%r", config)

    try:
        VersionSpec.from_string(args.version_spec)
        manifest = None if args.manifest_file is None else parse_manifest(args.manifest_file.read_text(encoding="utf-8"))
    except ValueError as exc:  # malformed version spec or manifest file
        _LOGGER.error("%s", exc)  # noqa: TRY400
        return EXIT_CONFIG_ERROR
    try:
        release = find_release_from_manifest(args.version_spec, args.architecture, manifest, config)
    except FormatError as exc:
        _LOGGER.error("%s", exc)  # noqa: TRY400
        return EXIT_CONFIG_ERROR
    if release is None:
        _LOGGER.error("Version %s with arch %s not found in the manifest", args.version_spec, args.architecture)
        return EXIT_NOT_FOUND

    print(f"{release.version} {release.files[0].download_url}")  # noqa: T201
    if not args.dry_run:
        install_cpython_from_release(release, config)
    return 0


if __name__ == "__main__":
    sys.exit(main())
