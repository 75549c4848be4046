"""Download release archives and unpack them into a scratch directory."""

from __future__ import annotations

import logging
import random
import tarfile
import tempfile
import time
import uuid
import zipfile
from contextlib import suppress
from pathlib import Path
from typing import Final

import requests

from ._platform import ArchiveFormat

_LOGGER: Final[logging.Logger] = logging.getLogger(__name__)

DOWNLOAD_ATTEMPTS: Final[int] = 3
RETRY_MIN_SECONDS: Final[float] = 10.0
RETRY_MAX_SECONDS: Final[float] = 20.0
REQUEST_TIMEOUT: Final[float] = 60.0
_CHUNK_SIZE: Final[int] = 1 << 16
_SERVER_ERROR: Final[int] = 500
_RETRYABLE_CLIENT_ERRORS: Final[frozenset[int]] = frozenset({408, 429})


class HTTPError(Exception):
    """The download server answered with a status other than 200."""

    def __init__(self, http_status_code: int | None) -> None:
        super().__init__(f"Unexpected HTTP response: {http_status_code}")
        self.http_status_code = http_status_code


def _scratch_path(temp_directory: Path | None) -> Path:
    root = Path(tempfile.gettempdir()) if temp_directory is None else temp_directory
    return root / str(uuid.uuid4())


def _is_retryable(error: Exception) -> bool:
    if isinstance(error, HTTPError) and error.http_status_code is not None:
        code = error.http_status_code
        return code >= _SERVER_ERROR or code in _RETRYABLE_CLIENT_ERRORS
    return isinstance(error, requests.RequestException)


def _download_once(url: str, dest: Path, headers: dict[str, str]) -> None:
    with requests.get(url, headers=headers, stream=True, timeout=REQUEST_TIMEOUT) as response:
        if response.status_code != 200:  # noqa: PLR2004
            raise HTTPError(response.status_code)
        try:
            with dest.open("wb") as handler:
                for chunk in response.iter_content(chunk_size=_CHUNK_SIZE):
                    handler.write(chunk)
        except BaseException:
            with suppress(OSError):
                dest.unlink()
            raise


def download_tool(
    url: str,
    dest: Path | None = None,
    auth: str | None = None,
    temp_directory: Path | None = None,
) -> Path:
    """
    Download *url* into *dest* and return the written path.

    Server errors, timeouts and rate limiting (408, 429) are retried, any other client error fails immediately.

    :param url: archive location
    :param dest: target file, a fresh name under *temp_directory* when not given; must not exist yet
    :param auth: ``authorization`` header value
    :param temp_directory: scratch root, the system temporary directory when not given
    :raises HTTPError: when the server answers with a non-200 status
    """
    dest = _scratch_path(temp_directory) if dest is None else dest
    if dest.exists():
        msg = f"Destination file path {dest} already exists"
        raise FileExistsError(msg)
    dest.parent.mkdir(parents=True, exist_ok=True)
    headers = {"authorization": auth} if auth else {}
    _LOGGER.debug("downloading %s to %s", url, dest)

    attempt = 1
    while True:
        try:
            _download_once(url, dest, headers)
        except (HTTPError, requests.RequestException) as exc:
            if attempt >= DOWNLOAD_ATTEMPTS or not _is_retryable(exc):
                raise
            delay = random.uniform(RETRY_MIN_SECONDS, RETRY_MAX_SECONDS)  # noqa: S311
            _LOGGER.info("%s", exc)
            _LOGGER.info("Waiting %.0f seconds before trying again", delay)
            time.sleep(delay)
            attempt += 1
        else:
            return dest


def _ensure_within(root: Path, name: str) -> None:
    target = (root / name).resolve()
    if target != root and root not in target.parents:
        msg = f"archive member {name!r} escapes {root}"
        raise ValueError(msg)


def extract_tar(file: Path, dest: Path | None = None, temp_directory: Path | None = None) -> Path:
    """Unpack a (compressed) tar archive and return the directory holding its content."""
    dest = _scratch_path(temp_directory) if dest is None else dest
    dest.mkdir(parents=True, exist_ok=True)
    _LOGGER.debug("extracting tar %s to %s", file, dest)
    with tarfile.open(file, "r:*") as archive:
        root = dest.resolve()
        for member in archive.getmembers():
            _ensure_within(root, member.name)
        # extraction filters only exist on 3.9.17+, 3.10.12+ and 3.11.4+
        extra = {"filter": "tar"} if hasattr(tarfile, "data_filter") else {}
        archive.extractall(dest, **extra)  # noqa: S202
    return dest


def extract_zip(file: Path, dest: Path | None = None, temp_directory: Path | None = None) -> Path:
    """Unpack a zip archive and return the directory holding its content."""
    dest = _scratch_path(temp_directory) if dest is None else dest
    dest.mkdir(parents=True, exist_ok=True)
    _LOGGER.debug("extracting zip %s to %s", file, dest)
    with zipfile.ZipFile(file) as archive:
        root = dest.resolve()
        for name in archive.namelist():
            _ensure_within(root, name)
        archive.extractall(dest)  # noqa: S202
    return dest


def extract_archive(
    file: Path,
    archive_format: ArchiveFormat,
    dest: Path | None = None,
    temp_directory: Path | None = None,
) -> Path:
    if archive_format is ArchiveFormat.ZIP:
        return extract_zip(file, dest, temp_directory)
    return extract_tar(file, dest, temp_directory)


__all__ = [
    "HTTPError",
    "download_tool",
    "extract_archive",
    "extract_tar",
    "extract_zip",
]
