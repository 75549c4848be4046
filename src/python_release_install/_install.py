"""Resolve a release from the versions manifest and install it on this machine."""

from __future__ import annotations

import logging
import os
import subprocess  # noqa: S404
import threading
from subprocess import Popen  # noqa: S404
from typing import IO, TYPE_CHECKING, Final

from ._config import InstallerConfig
from ._download import HTTPError, download_tool, extract_archive
from ._manifest import find_from_manifest, get_manifest_from_repo
from ._platform import PLATFORM_BEHAVIORS, PlatformKind
from ._reference import get_manifest_raw_url, get_manifest_reference

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from pathlib import Path

    from ._manifest import ToolRelease

_LOGGER: Final[logging.Logger] = logging.getLogger(__name__)
_RATE_LIMIT_CODES: Final[frozenset[int]] = frozenset({403, 429})


class ExecutionError(RuntimeError):
    """The installation script exited with a non-zero status."""

    def __init__(self, command: Sequence[str], returncode: int) -> None:
        super().__init__(f"The process '{command[0]}' failed with exit code {returncode}")
        self.command = tuple(command)
        self.returncode = returncode


def get_manifest(config: InstallerConfig | None = None) -> list[ToolRelease]:
    config = InstallerConfig.from_env() if config is None else config
    reference = get_manifest_reference(config.uses_manifest)
    _LOGGER.debug("Getting manifest from %s", get_manifest_raw_url(reference))
    return get_manifest_from_repo(reference.owner, reference.repo, config.auth, reference.ref)


def find_release_from_manifest(
    version_spec: str,
    architecture: str,
    manifest: Sequence[ToolRelease] | None = None,
    config: InstallerConfig | None = None,
) -> ToolRelease | None:
    """
    Pick the release to install for *version_spec* on *architecture*.

    The manifest is fetched from the configured reference when *manifest* is not given. Pre-releases are considered.
    """
    if manifest is None:
        manifest = get_manifest(config)
    return find_from_manifest(version_spec, False, manifest, architecture)  # noqa: FBT003


def _pump(stream: IO[str], level: int) -> None:
    for line in stream:
        if text := line.strip():
            _LOGGER.log(level, "%s", text)


def _run_installer(working_directory: Path, kind: PlatformKind, env: Mapping[str, str] | None = None) -> None:
    behavior = PLATFORM_BEHAVIORS[kind]
    command = behavior.installer_command
    child_env = {**(os.environ if env is None else env), **behavior.installer_env(working_directory)}
    _LOGGER.debug("running %s in %s", " ".join(command), working_directory)
    with Popen(  # noqa: S603
        command,
        cwd=working_directory,
        env=child_env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        encoding="utf-8",
        errors="backslashreplace",
    ) as process:
        assert process.stdout is not None  # noqa: S101
        assert process.stderr is not None  # noqa: S101
        stderr_reader = threading.Thread(target=_pump, args=(process.stderr, logging.ERROR), daemon=True)
        stderr_reader.start()
        _pump(process.stdout, logging.INFO)
        stderr_reader.join()
        returncode = process.wait()
    if returncode != 0:
        raise ExecutionError(command, returncode)


def install_cpython_from_release(
    release: ToolRelease,
    config: InstallerConfig | None = None,
    platform: PlatformKind | None = None,
) -> None:
    """
    Download the first archive of *release*, unpack it and run its bundled setup script.

    :raises HTTPError: the download failed, after logging a hint about the status code
    :raises ExecutionError: the setup script failed
    """
    config = InstallerConfig.from_env() if config is None else config
    kind = PlatformKind.current() if platform is None else platform
    download_url = release.files[0].download_url

    _LOGGER.info('Download from "%s"', download_url)
    try:
        python_path = download_tool(download_url, auth=config.auth, temp_directory=config.temp_directory)
        _LOGGER.info("Extract downloaded archive")
        extracted = extract_archive(
            python_path,
            PLATFORM_BEHAVIORS[kind].archive_format,
            temp_directory=config.temp_directory,
        )
        _LOGGER.info("Execute installation script")
        _run_installer(extracted, kind)
    except HTTPError as exc:
        if exc.http_status_code in _RATE_LIMIT_CODES:
            _LOGGER.info(
                "Received HTTP status code %s.  This usually indicates the rate limit has been exceeded",
                exc.http_status_code,
            )
        else:
            _LOGGER.info("%s", exc)
        _LOGGER.debug("download failed", exc_info=True)
        raise


__all__ = [
    "ExecutionError",
    "find_release_from_manifest",
    "get_manifest",
    "install_cpython_from_release",
]
