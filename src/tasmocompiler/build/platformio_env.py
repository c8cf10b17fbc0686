"""
Rendering of ``platformio_override.ini``.

The override file declares a single ``firmware`` environment built from the
board's own settings plus whatever the selected features contribute through
``platformio_entries#<name>`` helper entries::

    [platformio]
    default_envs = firmware

    [env:firmware]
    board = esp32dev
    build_flags = ${common32.build_flags} -DUSE_BME680
"""

from typing import Any, Dict, Mapping

from ..config.request import PLATFORMIO_ENTRIES_PREFIX, BoardDefinition

ENV_NAME = "firmware"
BUILD_FLAGS = "build_flags"
COMMON_BUILD_FLAGS = "${common.build_flags}"
COMMON32_BUILD_FLAGS = "${common32.build_flags}"


def baseline_build_flags(board: BoardDefinition) -> str:
    """Return the shared build flag reference for a board's architecture."""
    return COMMON32_BUILD_FLAGS if board.is_esp32 else COMMON_BUILD_FLAGS


def collect_feature_entries(features: Mapping[str, Any]) -> Dict[str, str]:
    """
    Gather the build flags contributed by features.

    Every ``platformio_entries#*`` key may carry a ``build_flags`` value;
    these are joined with a space in encounter order. Other settings of a
    contribution are ignored.

    Args:
        features: Feature configuration

    Returns:
        ``{'build_flags': ...}``, or an empty dict when no feature adds flags
    """
    flags = []
    for key, contribution in features.items():
        if not key.startswith(PLATFORMIO_ENTRIES_PREFIX):
            continue
        if not isinstance(contribution, Mapping):
            continue
        value = contribution.get(BUILD_FLAGS)
        if value:
            flags.append(str(value))

    if not flags:
        return {}
    return {BUILD_FLAGS: " ".join(flags)}


def merge_entries(board: BoardDefinition, feature_entries: Mapping[str, str]) -> Dict[str, str]:
    """
    Merge feature settings into a copy of the board's settings.

    Values of settings the board already defines are appended after a space.
    When features contribute ``build_flags``, the baseline build flag
    reference is prepended unless it is already there. Board settings
    without a feature contribution are kept as they are.
    """
    merged = dict(board.platformio_entries)
    for setting, value in feature_entries.items():
        if merged.get(setting):
            merged[setting] = f"{merged[setting]} {value}"
        else:
            merged[setting] = value

        if setting == BUILD_FLAGS:
            baseline = baseline_build_flags(board)
            if baseline not in merged[setting]:
                merged[setting] = f"{baseline} {merged[setting]}"

    return merged


def render_entries(entries: Mapping[str, str]) -> str:
    """Render the ini file for already merged settings."""
    lines = "\n".join(f"{setting} = {value}" for setting, value in entries.items())
    return (
        "[platformio]\n"
        f"default_envs = {ENV_NAME}\n\n"
        f"[env:{ENV_NAME}]\n"
        f"{lines}\n"
    )


def render_build_env(board: BoardDefinition, features: Mapping[str, Any]) -> str:
    """
    Render the complete platformio_override.ini.

    Args:
        board: Selected board
        features: Feature configuration holding platformio_entries#* helpers

    Returns:
        File content
    """
    return render_entries(merge_entries(board, collect_feature_entries(features)))
