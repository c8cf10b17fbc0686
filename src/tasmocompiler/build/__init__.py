"""
Build components for tasmocompiler.

This package provides:
- Rendering of user_config_override.h and platformio_override.ini
- Generation of both files inside the firmware repository
- Build orchestration and output streaming
- Download artifacts of a finished build
"""

from .artifacts import Artifact, collect_artifacts, copy_artifacts
from .defines import render_defines, render_override_header
from .generator import ConfigFileGenerator, GeneratedFiles
from .orchestrator import BuildOrchestrator, BuildOutcome, BuildSession
from .platformio_env import collect_feature_entries, render_build_env

__all__ = [
    "Artifact",
    "BuildOrchestrator",
    "BuildOutcome",
    "BuildSession",
    "ConfigFileGenerator",
    "GeneratedFiles",
    "collect_artifacts",
    "collect_feature_entries",
    "copy_artifacts",
    "render_build_env",
    "render_defines",
    "render_override_header",
]
