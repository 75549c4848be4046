"""Process configuration, read once from the environment at entry."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

from platformdirs import user_cache_path

if TYPE_CHECKING:
    from collections.abc import Mapping

_DC_KW = {"frozen": True, "kw_only": True, "slots": True} if sys.version_info >= (3, 10) else {"frozen": True}
_LOGGER: Final[logging.Logger] = logging.getLogger(__name__)

APP_NAME: Final[str] = "python-release-install"
TOKEN_VARIABLE: Final[str] = "INPUT_TOKEN"
USES_MANIFEST_VARIABLE: Final[str] = "INPUT_USES-CPYTHON-MANIFEST"
TEMP_VARIABLE: Final[str] = "RUNNER_TEMP"


def _get_input(env: Mapping[str, str], name: str) -> str | None:
    return env.get(name, "").strip() or None


@dataclass(**_DC_KW)
class InstallerConfig:
    """Authorization token, manifest override and scratch directory shared by one install."""

    temp_directory: Path
    token: str | None = None
    uses_manifest: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> InstallerConfig:
        env = os.environ if env is None else env
        if runner_temp := _get_input(env, TEMP_VARIABLE):
            temp_directory = Path(runner_temp)
        else:
            temp_directory = user_cache_path(APP_NAME) / "tmp"
            _LOGGER.debug("%s not set, using %s for downloads", TEMP_VARIABLE, temp_directory)
        return cls(
            token=_get_input(env, TOKEN_VARIABLE),
            uses_manifest=_get_input(env, USES_MANIFEST_VARIABLE),
            temp_directory=temp_directory,
        )

    @property
    def auth(self) -> str | None:
        return None if self.token is None else f"token {self.token}"

    def __repr__(self) -> str:
        token = None if self.token is None else "***"
        return f"InstallerConfig(token={token}, uses_manifest={self.uses_manifest!r}, temp_directory={self.temp_directory})"


__all__ = [
    "InstallerConfig",
]
