"""Files offered for download after a build.

Besides the compiled firmware, the two generated files are offered so users
can reproduce the build locally. ESP8266 builds also produce a gzipped
firmware image for OTA updates.
"""

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import List

from ..config.request import BoardDefinition
from ..config.settings import Settings


@dataclass
class Artifact:
    """A downloadable build artifact.

    Attributes:
        name: File name offered to the user
        path: Location inside the repository
    """

    name: str
    path: Path

    @property
    def download_path(self) -> str:
        return f"/download/{self.name}"

    def exists(self) -> bool:
        return self.path.is_file()


def collect_artifacts(settings: Settings, board: BoardDefinition) -> List[Artifact]:
    """List the artifacts a build for the given board produces.

    Args:
        settings: Settings providing repository paths
        board: Board that was built

    Returns:
        Artifacts in display order; some may not exist (yet)
    """
    artifacts = [Artifact("firmware.bin", settings.firmware_dir / "firmware.bin")]
    if not board.is_esp32:
        artifacts.append(Artifact("firmware.bin.gz", settings.firmware_dir / "firmware.bin.gz"))
    artifacts.append(Artifact(settings.platformio_override.name, settings.platformio_override))
    artifacts.append(Artifact(settings.user_config_override.name, settings.user_config_override))
    return artifacts


def copy_artifacts(artifacts: List[Artifact], output_dir: Path) -> List[Path]:
    """Copy existing artifacts to output_dir.

    Returns:
        Paths of the copied files
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    copied = []
    for artifact in artifacts:
        if not artifact.exists():
            continue
        destination = output_dir / artifact.name
        shutil.copy2(artifact.path, destination)
        copied.append(destination)
    return copied
