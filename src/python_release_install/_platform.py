"""Host platform detection and the per-platform install behavior table."""

from __future__ import annotations

import logging
import platform
import sys
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

_DC_KW = {"frozen": True, "kw_only": True, "slots": True} if sys.version_info >= (3, 10) else {"frozen": True}
_LOGGER: Final[logging.Logger] = logging.getLogger(__name__)

_LSB_RELEASE: Final[Path] = Path("/etc/lsb-release")
_OS_RELEASE: Final[Path] = Path("/etc/os-release")
_ARCH_ALIASES: Final[dict[str, str]] = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "i386": "x86",
    "i686": "x86",
    "x86": "x86",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "armv6l": "arm",
}


class PlatformKind(Enum):
    """Platform families; the values are the ``platform`` tags used by the versions manifest."""

    WINDOWS = "win32"
    LINUX = "linux"
    DARWIN = "darwin"

    @classmethod
    def current(cls) -> PlatformKind:
        return cls.from_sys_platform(sys.platform)

    @classmethod
    def from_sys_platform(cls, value: str) -> PlatformKind:
        if value.startswith("linux"):
            return cls.LINUX
        try:
            return cls(value)
        except ValueError:
            msg = f"unsupported platform {value!r}"
            raise ValueError(msg) from None


class ArchiveFormat(Enum):
    ZIP = "zip"
    TAR = "tar"


@dataclass(**_DC_KW)
class PlatformBehavior:
    archive_format: ArchiveFormat
    installer_command: tuple[str, ...]
    library_path_variable: str | None = None

    def installer_env(self, working_directory: Path) -> dict[str, str]:
        """Extra environment for the installer script, pointing the dynamic loader at the extracted ``lib``."""
        if self.library_path_variable is None:
            return {}
        return {self.library_path_variable: str(working_directory / "lib")}


PLATFORM_BEHAVIORS: Final[dict[PlatformKind, PlatformBehavior]] = {
    PlatformKind.WINDOWS: PlatformBehavior(
        archive_format=ArchiveFormat.ZIP,
        installer_command=("powershell", "./setup.ps1"),
    ),
    PlatformKind.LINUX: PlatformBehavior(
        archive_format=ArchiveFormat.TAR,
        installer_command=("bash", "./setup.sh"),
        library_path_variable="LD_LIBRARY_PATH",
    ),
    PlatformKind.DARWIN: PlatformBehavior(
        archive_format=ArchiveFormat.TAR,
        installer_command=("bash", "./setup.sh"),
    ),
}


def host_architecture(machine: str | None = None) -> str:
    """Map a machine name (``platform.machine()`` by default) to the manifest's ``arch`` tag."""
    low = (platform.machine() if machine is None else machine).lower()
    return _ARCH_ALIASES.get(low, low)


def _read_key_values(path: Path) -> dict[str, str]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        _LOGGER.debug("cannot read %s", path, exc_info=True)
        return {}
    result: dict[str, str] = {}
    for line in content.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            result[key.strip()] = value.strip().strip("\"'")
    return result


def os_version(kind: PlatformKind | None = None) -> str:
    """Release of the running operating system, as matched against a file's ``platform_version``."""
    kind = PlatformKind.current() if kind is None else kind
    if kind is PlatformKind.DARWIN:
        return platform.mac_ver()[0]
    if kind is PlatformKind.LINUX:
        if release := _read_key_values(_LSB_RELEASE).get("DISTRIB_RELEASE"):
            return release
        return _read_key_values(_OS_RELEASE).get("VERSION_ID", "")
    return ""


__all__ = [
    "PLATFORM_BEHAVIORS",
    "ArchiveFormat",
    "PlatformBehavior",
    "PlatformKind",
    "host_architecture",
    "os_version",
]
