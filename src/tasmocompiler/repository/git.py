"""
Branch switching for the firmware repository.

The orchestrator only needs something with a ``switch_to_branch(version)``
method. :class:`GitBranchSwitcher` is the default implementation and drives
the ``git`` executable against an existing checkout.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

from ..errors import BranchSwitchFailed

GIT_TIMEOUT = 300


class BranchSwitcher(ABC):
    """Checks out a firmware version before the build files are generated."""

    @abstractmethod
    def switch_to_branch(self, version: str) -> None:
        """Check out the given branch or tag.

        Raises:
            BranchSwitchFailed: If the version cannot be checked out
        """


class GitBranchSwitcher(BranchSwitcher):
    """Switches a local git checkout to a branch or release tag."""

    def __init__(self, repo_dir: Path, git_executable: str = "git"):
        """Initialize switcher.

        Args:
            repo_dir: Root of the git checkout
            git_executable: git binary to run
        """
        self.repo_dir = repo_dir
        self.git_executable = git_executable

    def _git(self, version: str, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        cmd = [self.git_executable, "-C", str(self.repo_dir)] + args
        logging.debug(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=GIT_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            raise BranchSwitchFailed(version, f"'git {' '.join(args)}' timed out")
        except OSError as e:
            raise BranchSwitchFailed(version, str(e)) from e

        if check and result.returncode != 0:
            output = (result.stderr or result.stdout).strip()
            raise BranchSwitchFailed(version, output or f"'git {' '.join(args)}' failed")
        return result

    def is_on_branch(self, version: str) -> bool:
        """Return True if HEAD is a branch rather than a detached tag."""
        result = self._git(version, ["symbolic-ref", "-q", "HEAD"], check=False)
        return result.returncode == 0

    def switch_to_branch(self, version: str) -> None:
        """Force checkout of a branch or tag, fast-forwarding branches.

        Args:
            version: Branch name (e.g. 'development') or release tag

        Raises:
            BranchSwitchFailed: If git fails
        """
        if not (self.repo_dir / ".git").exists():
            raise BranchSwitchFailed(version, f"{self.repo_dir} is not a git repository")

        logging.info(f"Switching {self.repo_dir} to {version}")
        self._git(version, ["checkout", "--force", version])

        if self.is_on_branch(version):
            upstream = self._git(version, ["rev-parse", "--abbrev-ref", "@{upstream}"], check=False)
            if upstream.returncode == 0:
                self._git(version, ["pull", "--ff-only"])
            else:
                logging.debug(f"Branch {version} has no upstream, skipping pull")
