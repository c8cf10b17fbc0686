"""Generation of the two build tool input files.

Both files are rendered in memory before anything touches the disk, then
written one after the other. Each write goes to a temporary file that is
renamed over the target, so the build tool never sees half-written content.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from ..config.request import BuildRequest
from ..config.settings import Settings
from ..errors import WriteFailed
from .defines import render_override_header
from .platformio_env import render_build_env


@dataclass
class GeneratedFiles:
    """Rendered contents of the generated files."""

    user_config_override: str
    platformio_override: str


def write_file_atomic(path: Path, content: str) -> None:
    """Write a file through a temporary sibling and an atomic rename.

    Raises:
        WriteFailed: If the content cannot be written
    """
    temp_file = path.with_name(path.name + ".tmp")
    try:
        with open(temp_file, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        temp_file.replace(path)
    except OSError as e:
        try:
            temp_file.unlink(missing_ok=True)
        except OSError:
            pass
        raise WriteFailed(path, e) from e


class ConfigFileGenerator:
    """Renders and writes user_config_override.h and platformio_override.ini."""

    def __init__(self, settings: Settings):
        """Initialize generator.

        Args:
            settings: Settings providing the target paths
        """
        self.settings = settings

    def render(self, request: BuildRequest) -> GeneratedFiles:
        """Render both files without writing them."""
        return GeneratedFiles(
            user_config_override=render_override_header(request),
            platformio_override=render_build_env(request.board, request.features),
        )

    def generate(self, request: BuildRequest) -> GeneratedFiles:
        """Render both files, then write them to the repository.

        Args:
            request: Build request to translate

        Returns:
            The rendered contents

        Raises:
            WriteFailed: If either file cannot be written
        """
        files = self.render(request)

        write_file_atomic(self.settings.user_config_override, files.user_config_override)
        logging.debug(f"Successfully wrote {self.settings.user_config_override}")

        write_file_atomic(self.settings.platformio_override, files.platformio_override)
        logging.debug(f"Successfully wrote {self.settings.platformio_override}")

        return files
