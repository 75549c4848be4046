from __future__ import annotations

import io
import logging
import sys
import tarfile
from typing import TYPE_CHECKING

import pytest

from python_release_install import (
    ArchiveFormat,
    ExecutionError,
    HTTPError,
    InstallerConfig,
    PlatformKind,
    ReleaseFile,
    ToolRelease,
    find_release_from_manifest,
    get_manifest,
    install_cpython_from_release,
)
from python_release_install._install import _run_installer

if TYPE_CHECKING:
    from pathlib import Path

    from pytest_mock import MockerFixture

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="installer scripts run through bash")

RELEASE = ToolRelease(
    version="3.12.1",
    files=(
        ReleaseFile(
            filename="python-3.12.1-linux-22.04-x64.tar.gz",
            arch="x64",
            platform="linux",
            platform_version="22.04",
            download_url="https://example.com/python-3.12.1-linux-22.04-x64.tar.gz",
        ),
        ReleaseFile(
            filename="ignored.tar.gz",
            arch="arm64",
            platform="linux",
            download_url="https://example.com/ignored.tar.gz",
        ),
    ),
)


def _messages(caplog: pytest.LogCaptureFixture, level: int) -> list[str]:
    return [record.getMessage() for record in caplog.records if record.levelno == level]


def test_get_manifest_default_reference(
    mocker: MockerFixture, config: InstallerConfig, caplog: pytest.LogCaptureFixture
) -> None:
    fetch = mocker.patch("python_release_install._install.get_manifest_from_repo", return_value=[RELEASE])
    with caplog.at_level(logging.DEBUG):
        assert get_manifest(config) == [RELEASE]
    fetch.assert_called_once_with("actions", "python-versions", "token abc", "main")
    expected = "Getting manifest from https://raw.githubusercontent.com/actions/python-versions/main/versions-manifest.json"
    assert expected in _messages(caplog, logging.DEBUG)


def test_get_manifest_override(mocker: MockerFixture, tmp_path: Path) -> None:
    fetch = mocker.patch("python_release_install._install.get_manifest_from_repo", return_value=[])
    config = InstallerConfig(temp_directory=tmp_path, uses_manifest="me/versions@feature/x")
    get_manifest(config)
    fetch.assert_called_once_with("me", "versions", None, "feature/x")


def test_get_manifest_bad_override(mocker: MockerFixture, tmp_path: Path) -> None:
    fetch = mocker.patch("python_release_install._install.get_manifest_from_repo")
    config = InstallerConfig(temp_directory=tmp_path, uses_manifest="me/versions")
    with pytest.raises(ValueError, match=r"\{\{owner\}\}/\{\{repo\}\}@\{\{ref\}\}"):
        get_manifest(config)
    fetch.assert_not_called()


def test_get_manifest_reads_environment(mocker: MockerFixture, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("INPUT_USES-CPYTHON-MANIFEST", "env/versions@v1")
    monkeypatch.delenv("INPUT_TOKEN", raising=False)
    monkeypatch.setenv("RUNNER_TEMP", str(tmp_path))
    fetch = mocker.patch("python_release_install._install.get_manifest_from_repo", return_value=[])
    get_manifest()
    fetch.assert_called_once_with("env", "versions", None, "v1")


def test_find_release_from_given_manifest(mocker: MockerFixture, manifest: list[ToolRelease]) -> None:
    fetch = mocker.patch("python_release_install._install.get_manifest")
    find = mocker.patch("python_release_install._install.find_from_manifest", return_value=RELEASE)
    assert find_release_from_manifest("3.12", "x64", manifest) is RELEASE
    fetch.assert_not_called()
    find.assert_called_once_with("3.12", False, manifest, "x64")


def test_find_release_fetches_manifest(
    mocker: MockerFixture, manifest: list[ToolRelease], config: InstallerConfig
) -> None:
    fetch = mocker.patch("python_release_install._install.get_manifest", return_value=manifest)
    mocker.patch("python_release_install._manifest.PlatformKind.current", return_value=PlatformKind.WINDOWS)
    release = find_release_from_manifest("3.12", "x86", config=config)
    fetch.assert_called_once_with(config)
    assert release is not None
    assert release.version == "3.12.0"


def test_find_release_not_found(manifest: list[ToolRelease]) -> None:
    assert find_release_from_manifest("2.7", "x64", manifest) is None


@pytest.mark.parametrize(
    ("kind", "archive_format"),
    [
        pytest.param(PlatformKind.WINDOWS, ArchiveFormat.ZIP, id="windows"),
        pytest.param(PlatformKind.LINUX, ArchiveFormat.TAR, id="linux"),
        pytest.param(PlatformKind.DARWIN, ArchiveFormat.TAR, id="macos"),
    ],
)
def test_install_cpython_from_release(
    kind: PlatformKind,
    archive_format: ArchiveFormat,
    mocker: MockerFixture,
    config: InstallerConfig,
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    archive, extracted = tmp_path / "archive", tmp_path / "extracted"
    download = mocker.patch("python_release_install._install.download_tool", return_value=archive)
    extract = mocker.patch("python_release_install._install.extract_archive", return_value=extracted)
    run = mocker.patch("python_release_install._install._run_installer")

    with caplog.at_level(logging.INFO):
        install_cpython_from_release(RELEASE, config, kind)

    download.assert_called_once_with(RELEASE.files[0].download_url, auth="token abc", temp_directory=config.temp_directory)
    extract.assert_called_once_with(archive, archive_format, temp_directory=config.temp_directory)
    run.assert_called_once_with(extracted, kind)
    assert _messages(caplog, logging.INFO) == [
        'Download from "https://example.com/python-3.12.1-linux-22.04-x64.tar.gz"',
        "Extract downloaded archive",
        "Execute installation script",
    ]


@pytest.mark.parametrize("status", [403, 429])
def test_install_rate_limited(
    status: int, mocker: MockerFixture, config: InstallerConfig, caplog: pytest.LogCaptureFixture
) -> None:
    error = HTTPError(status)
    mocker.patch("python_release_install._install.download_tool", side_effect=error)
    with caplog.at_level(logging.DEBUG), pytest.raises(HTTPError) as context:
        install_cpython_from_release(RELEASE, config, PlatformKind.LINUX)
    assert context.value is error
    hint = f"Received HTTP status code {status}.  This usually indicates the rate limit has been exceeded"
    assert hint in _messages(caplog, logging.INFO)
    traces = [record for record in caplog.records if record.levelno == logging.DEBUG and record.exc_info]
    assert traces
    assert traces[0].exc_info[1] is error


def test_install_http_error_other_status(
    mocker: MockerFixture, config: InstallerConfig, caplog: pytest.LogCaptureFixture
) -> None:
    error = HTTPError(404)
    mocker.patch("python_release_install._install.download_tool", side_effect=error)
    with caplog.at_level(logging.INFO), pytest.raises(HTTPError):
        install_cpython_from_release(RELEASE, config, PlatformKind.LINUX)
    messages = _messages(caplog, logging.INFO)
    assert "Unexpected HTTP response: 404" in messages
    assert not any("rate limit" in message for message in messages)


def test_install_other_errors_propagate_silently(
    mocker: MockerFixture, config: InstallerConfig, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    mocker.patch("python_release_install._install.download_tool", return_value=tmp_path / "archive")
    mocker.patch("python_release_install._install.extract_archive", return_value=tmp_path)
    error = ExecutionError(("bash", "./setup.sh"), 3)
    mocker.patch("python_release_install._install._run_installer", side_effect=error)
    with caplog.at_level(logging.INFO), pytest.raises(ExecutionError) as context:
        install_cpython_from_release(RELEASE, config, PlatformKind.LINUX)
    assert context.value is error
    assert _messages(caplog, logging.INFO)[-1] == "Execute installation script"


def test_execution_error() -> None:
    error = ExecutionError(["bash", "./setup.sh"], 2)
    assert str(error) == "The process 'bash' failed with exit code 2"
    assert error.command == ("bash", "./setup.sh")
    assert error.returncode == 2


def _setup_script(directory: Path, body: str) -> None:
    (directory / "setup.sh").write_text(f"#!/usr/bin/env bash\n{body}\n", encoding="utf-8", newline="\n")


@posix_only
def test_run_installer_streams_output(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _setup_script(tmp_path, 'echo "installing in $(pwd)"\necho "  warning: slow  " >&2\necho "lib=$LD_LIBRARY_PATH"')
    with caplog.at_level(logging.INFO):
        _run_installer(tmp_path, PlatformKind.LINUX, env={"PATH": "/usr/bin:/bin"})
    assert _messages(caplog, logging.INFO) == [f"installing in {tmp_path.resolve()}", f"lib={tmp_path / 'lib'}"]
    assert _messages(caplog, logging.ERROR) == ["warning: slow"]


@posix_only
def test_run_installer_no_library_path_on_macos(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    _setup_script(tmp_path, 'echo "lib=${LD_LIBRARY_PATH:-unset} token=$MARKER"')
    with caplog.at_level(logging.INFO):
        _run_installer(tmp_path, PlatformKind.DARWIN, env={"PATH": "/usr/bin:/bin", "MARKER": "kept"})
    assert _messages(caplog, logging.INFO) == ["lib=unset token=kept"]


@posix_only
def test_run_installer_inherits_process_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv("PYTHON_RELEASE_INSTALL_MARKER", "inherited")
    _setup_script(tmp_path, 'echo "$PYTHON_RELEASE_INSTALL_MARKER"')
    with caplog.at_level(logging.INFO):
        _run_installer(tmp_path, PlatformKind.LINUX)
    assert _messages(caplog, logging.INFO) == ["inherited"]


@posix_only
def test_run_installer_failure(tmp_path: Path) -> None:
    _setup_script(tmp_path, "echo boom >&2\nexit 7")
    with pytest.raises(ExecutionError, match="The process 'bash' failed with exit code 7") as context:
        _run_installer(tmp_path, PlatformKind.LINUX, env={"PATH": "/usr/bin:/bin"})
    assert context.value.returncode == 7


@posix_only
def test_install_end_to_end(mocker: MockerFixture, config: InstallerConfig, tmp_path: Path) -> None:
    marker = tmp_path / "installed"
    script = f'echo "$LD_LIBRARY_PATH" > "{marker}"\n'.encode()
    archive = tmp_path / "python.tar.gz"
    with tarfile.open(archive, "w:gz") as handler:
        info = tarfile.TarInfo("setup.sh")
        info.size = len(script)
        info.mode = 0o755
        handler.addfile(info, io.BytesIO(script))
    mocker.patch("python_release_install._install.download_tool", return_value=archive)

    install_cpython_from_release(RELEASE, config, PlatformKind.LINUX)

    extracted = next(config.temp_directory.iterdir())
    assert marker.read_text(encoding="utf-8").strip() == str(extracted / "lib")
