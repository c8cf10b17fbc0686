"""
Firmware version detection.

Tasmota declares its version in ``tasmota_version.h`` as a packed 32-bit
number::

    const uint32_t VERSION = 0x0D010000;  // 13.1.0

The most significant byte is the major version, followed by minor, patch and
build.
"""

import re
from pathlib import Path

from ..errors import VersionFileNotFound, VersionPatternMissing

VERSION_PATTERN = re.compile(
    r"const\s+uint32_t\s+VERSION\s*=\s*(0[xX][0-9a-fA-F]+|\d+)\s*;",
    re.MULTILINE,
)


def parse_version_number(text: str) -> int:
    """Parse a decimal or 0x-prefixed hexadecimal version literal."""
    if text[:2].lower() == "0x":
        return int(text, 16)
    return int(text, 10)


def read_firmware_version(version_file: Path) -> int:
    """
    Read the VERSION declaration from a firmware source file.

    Args:
        version_file: Path to the version declaration header

    Returns:
        The numeric value of the first VERSION declaration

    Raises:
        VersionFileNotFound: If the file does not exist
        VersionPatternMissing: If the file has no VERSION declaration
    """
    if not version_file.is_file():
        raise VersionFileNotFound(version_file)

    content = version_file.read_text(encoding="utf-8", errors="replace")
    match = VERSION_PATTERN.search(content)
    if match is None:
        raise VersionPatternMissing(version_file)

    return parse_version_number(match.group(1))


def format_firmware_version(version: int) -> str:
    """
    Format a packed firmware version as a dotted string.

    Example:
        format_firmware_version(0x0D010000)  # '13.1.0'
        format_firmware_version(0x0D010003)  # '13.1.0.3'
    """
    major = (version >> 24) & 0xFF
    minor = (version >> 16) & 0xFF
    patch = (version >> 8) & 0xFF
    build = version & 0xFF

    dotted = f"{major}.{minor}.{patch}"
    if build:
        dotted += f".{build}"
    return dotted
