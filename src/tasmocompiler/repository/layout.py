"""
Firmware repository layout migration.

Since Tasmota 6.7.1.1 the sources live in ``tasmota/``; older releases keep
them in ``sonoff/``. Checking out an old release therefore brings back the
legacy directory, which is moved to the current name so the generated files
always land in the same place.
"""

import logging
import shutil
from pathlib import Path

from ..config.settings import LEGACY_SOURCE_DIR_NAME, SOURCE_DIR_NAME
from ..errors import LayoutMigrationFailed


def normalize_layout(repo_dir: Path) -> bool:
    """
    Move the legacy source directory to its current name.

    An existing destination is replaced. Nothing happens when the legacy
    directory is absent.

    Args:
        repo_dir: Root of the firmware repository

    Returns:
        True if the directory was moved, False if there was nothing to do

    Raises:
        LayoutMigrationFailed: If the move cannot be completed
    """
    legacy_dir = repo_dir / LEGACY_SOURCE_DIR_NAME
    current_dir = repo_dir / SOURCE_DIR_NAME

    if not legacy_dir.exists():
        return False

    logging.info(f"Moving legacy source directory {legacy_dir} to {current_dir}")
    try:
        if current_dir.is_dir() and not current_dir.is_symlink():
            shutil.rmtree(current_dir)
        elif current_dir.exists() or current_dir.is_symlink():
            current_dir.unlink()
        shutil.move(str(legacy_dir), str(current_dir))
    except (OSError, shutil.Error) as e:
        raise LayoutMigrationFailed(e) from e

    return True
