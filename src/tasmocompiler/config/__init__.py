"""Configuration modules for tasmocompiler."""

from .request import BoardDefinition, BuildRequest, DefineField, EmitRule
from .settings import Settings
from .version import format_firmware_version, read_firmware_version

__all__ = [
    "BuildRequest",
    "BoardDefinition",
    "DefineField",
    "EmitRule",
    "Settings",
    "read_firmware_version",
    "format_firmware_version",
]
