"""Exception hierarchy for tasmocompiler.

Every failure raised before the build tool is spawned ends the build session
with a single ``finished(ok=False)`` event. The exception text is what the
event channel consumer sees, so messages are written for humans.
"""

from pathlib import Path
from typing import Optional


class TasmoCompilerError(Exception):
    """Base class for all tasmocompiler errors."""

    pass


class RequestError(TasmoCompilerError):
    """Raised when a build request does not have the expected structure."""

    pass


class VersionNotFound(TasmoCompilerError):
    """Raised when the firmware version cannot be read."""

    pass


class VersionFileNotFound(VersionNotFound):
    """Raised when the version declaration file does not exist."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"{path} does not exist.")


class VersionPatternMissing(VersionNotFound):
    """Raised when the version file has no VERSION declaration."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Cannot find Tasmota version in {path}.")


class LayoutMigrationFailed(TasmoCompilerError):
    """Raised when the legacy source directory cannot be moved."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Cannot create new Tasmota structure: {cause}")


class WriteFailed(TasmoCompilerError):
    """Raised when a generated file cannot be written."""

    def __init__(self, path: Path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"Cannot write to {path}: {cause}")


class BranchSwitchFailed(TasmoCompilerError):
    """Raised when the requested firmware version cannot be checked out."""

    def __init__(self, version: str, cause: str):
        self.version = version
        self.cause = cause
        super().__init__(f"Cannot switch to version {version}: {cause}")


class DirectoryChangeFailed(TasmoCompilerError):
    """Raised when the build cannot run inside the repository directory."""

    def __init__(self, path: Path, reason: str, code: int = 1):
        self.path = path
        self.code = code
        super().__init__(f"cd: {path}: {reason}")


class BuildInProgress(TasmoCompilerError):
    """Raised when another session is already building the same repository."""

    def __init__(self, repo_dir: Path):
        self.repo_dir = repo_dir
        super().__init__(f"Repository {repo_dir} is already being built by another session")


class SubprocessNonzeroExit(TasmoCompilerError):
    """Raised on request when the build tool exited with a nonzero code."""

    def __init__(self, exit_code: Optional[int]):
        self.exit_code = exit_code
        super().__init__(f"Build tool exited with code {exit_code}")


class ReleaseCatalogError(TasmoCompilerError):
    """Raised when the list of firmware releases cannot be fetched."""

    pass
