"""Firmware repository collaborators: layout, branch switching, releases."""

from .git import BranchSwitcher, GitBranchSwitcher
from .layout import normalize_layout
from .releases import fetch_release_versions

__all__ = [
    "BranchSwitcher",
    "GitBranchSwitcher",
    "normalize_layout",
    "fetch_release_versions",
]
