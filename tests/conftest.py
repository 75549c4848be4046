from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest

from python_release_install import InstallerConfig, parse_manifest

if TYPE_CHECKING:
    from pathlib import Path

    from python_release_install import ToolRelease

MANIFEST: list[dict[str, Any]] = [
    {
        "version": "3.14.0-beta.2",
        "stable": False,
        "release_url": "https://github.com/actions/python-versions/releases/tag/3.14.0-beta.2-1",
        "files": [
            {
                "filename": "python-3.14.0-beta.2-linux-22.04-x64.tar.gz",
                "arch": "x64",
                "platform": "linux",
                "platform_version": "22.04",
                "download_url": "https://example.com/python-3.14.0-beta.2-linux-22.04-x64.tar.gz",
            },
        ],
    },
    {
        "version": "3.12.1",
        "stable": True,
        "release_url": "https://github.com/actions/python-versions/releases/tag/3.12.1-1",
        "files": [
            {
                "filename": "python-3.12.1-darwin-arm64.tar.gz",
                "arch": "arm64",
                "platform": "darwin",
                "download_url": "https://example.com/python-3.12.1-darwin-arm64.tar.gz",
            },
            {
                "filename": "python-3.12.1-linux-20.04-x64.tar.gz",
                "arch": "x64",
                "platform": "linux",
                "platform_version": "20.04",
                "download_url": "https://example.com/python-3.12.1-linux-20.04-x64.tar.gz",
            },
            {
                "filename": "python-3.12.1-linux-22.04-x64.tar.gz",
                "arch": "x64",
                "platform": "linux",
                "platform_version": "22.04",
                "download_url": "https://example.com/python-3.12.1-linux-22.04-x64.tar.gz",
            },
            {
                "filename": "python-3.12.1-win32-x64.zip",
                "arch": "x64",
                "platform": "win32",
                "download_url": "https://example.com/python-3.12.1-win32-x64.zip",
            },
        ],
    },
    {
        "version": "3.12.0",
        "stable": True,
        "release_url": "https://github.com/actions/python-versions/releases/tag/3.12.0-1",
        "files": [
            {
                "filename": "python-3.12.0-win32-x86.zip",
                "arch": "x86",
                "platform": "win32",
                "download_url": "https://example.com/python-3.12.0-win32-x86.zip",
            },
        ],
    },
    {
        "version": "3.11.7",
        "stable": True,
        "release_url": "https://github.com/actions/python-versions/releases/tag/3.11.7-1",
        "files": [
            {
                "filename": "python-3.11.7-linux-22.04-x64.tar.gz",
                "arch": "x64",
                "platform": "linux",
                "platform_version": "22.04",
                "download_url": "https://example.com/python-3.11.7-linux-22.04-x64.tar.gz",
            },
        ],
    },
]


@pytest.fixture
def manifest_json() -> str:
    return json.dumps(MANIFEST)


@pytest.fixture
def manifest(manifest_json: str) -> list[ToolRelease]:
    return parse_manifest(manifest_json)


@pytest.fixture
def config(tmp_path: Path) -> InstallerConfig:
    return InstallerConfig(temp_directory=tmp_path / "runner-temp", token="abc")  # noqa: S106
