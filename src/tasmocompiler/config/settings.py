"""
Runtime settings for tasmocompiler.

Paths of the firmware repository and of the files generated inside it are
fixed relative to the repository root. Defaults can be overridden from the
environment and, on top of that, from CLI flags.
"""

import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Mapping, Optional

DEFAULT_HOME = Path.home() / ".tasmocompiler"
DEFAULT_REPO_DIR = DEFAULT_HOME / "Tasmota"
DEFAULT_BUILD_COMMAND = ["pio", "run"]
MESSAGE_BUFFER_SIZE = 5

# Locations inside the firmware repository
SOURCE_DIR_NAME = "tasmota"
LEGACY_SOURCE_DIR_NAME = "sonoff"
USER_CONFIG_OVERRIDE = Path(SOURCE_DIR_NAME) / "user_config_override.h"
PLATFORMIO_OVERRIDE = Path("platformio_override.ini")
VERSION_FILE = Path(SOURCE_DIR_NAME) / "tasmota_version.h"
FIRMWARE_DIR = Path(".pio") / "build" / "firmware"

ENV_REPO_DIR = "TASMOCOMPILER_REPO"
ENV_BUILD_COMMAND = "TASMOCOMPILER_BUILD_COMMAND"
ENV_LOG_FILE = "TASMOCOMPILER_LOG_FILE"


@dataclass(frozen=True)
class Settings:
    """Where the firmware repository lives and how it is built.

    Attributes:
        repo_dir: Root of the firmware repository checkout
        build_command: Command that runs the build tool inside repo_dir
        message_buffer_size: Number of output chunks batched into one message
        log_file: Optional rotating log file
    """

    repo_dir: Path = DEFAULT_REPO_DIR
    build_command: List[str] = field(default_factory=lambda: list(DEFAULT_BUILD_COMMAND))
    message_buffer_size: int = MESSAGE_BUFFER_SIZE
    log_file: Optional[Path] = None

    @property
    def user_config_override(self) -> Path:
        return self.repo_dir / USER_CONFIG_OVERRIDE

    @property
    def platformio_override(self) -> Path:
        return self.repo_dir / PLATFORMIO_OVERRIDE

    @property
    def version_file(self) -> Path:
        return self.repo_dir / VERSION_FILE

    @property
    def firmware_dir(self) -> Path:
        return self.repo_dir / FIRMWARE_DIR

    @classmethod
    def from_environment(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            Settings with defaults for every variable that is not set
        """
        env = os.environ if environ is None else environ
        settings = cls()

        repo_dir = env.get(ENV_REPO_DIR, "").strip()
        if repo_dir:
            settings = replace(settings, repo_dir=Path(repo_dir).expanduser())

        build_command = env.get(ENV_BUILD_COMMAND, "").strip()
        if build_command:
            settings = replace(settings, build_command=shlex.split(build_command))

        log_file = env.get(ENV_LOG_FILE, "").strip()
        if log_file:
            settings = replace(settings, log_file=Path(log_file).expanduser())

        return settings

    def with_overrides(self, repo_dir: Optional[Path] = None) -> "Settings":
        """Return a copy with CLI-provided values applied."""
        if repo_dir is None:
            return self
        return replace(self, repo_dir=Path(repo_dir).expanduser())
