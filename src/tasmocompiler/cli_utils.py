"""CLI utility functions for tasmocompiler.

This module provides common utilities used across CLI commands including:
- Loading build requests from JSON files
- Error handling and formatting
- Repository path validation
"""

import json
import sys
from pathlib import Path

from tasmocompiler.config import BuildRequest
from tasmocompiler.errors import RequestError, TasmoCompilerError


class RequestLoader:
    """Loads build requests from JSON files."""

    @staticmethod
    def load(config_path: Path) -> BuildRequest:
        """Load a build request.

        Args:
            config_path: JSON file with network, features, version and
                customParams, or '-' for stdin

        Returns:
            Parsed BuildRequest

        Raises:
            FileNotFoundError: If the file doesn't exist
            RequestError: If the file is not valid JSON or has the wrong shape
        """
        try:
            if str(config_path) == "-":
                data = json.load(sys.stdin)
            else:
                with open(config_path, encoding="utf-8") as f:
                    data = json.load(f)
        except json.JSONDecodeError as e:
            raise RequestError(f"Invalid JSON in {config_path}: {e}") from e

        return BuildRequest.from_dict(data)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Build failed")
            message: Error message details
        """
        print(file=sys.stderr)
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}", file=sys.stderr)
        if message:
            print(file=sys.stderr)
            print(message, file=sys.stderr)
        print(file=sys.stderr)

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print(file=sys.stderr)
        print(f"{ErrorFormatter.YELLOW}✗ {message}{ErrorFormatter.RESET}", file=sys.stderr)

    @staticmethod
    def handle_file_not_found(error: FileNotFoundError) -> None:
        """Handle FileNotFoundError with standard formatting."""
        ErrorFormatter.print_error("Error: File not found", str(error))
        sys.exit(1)

    @staticmethod
    def handle_tasmocompiler_error(error: TasmoCompilerError) -> None:
        """Handle expected tasmocompiler errors without a traceback."""
        ErrorFormatter.print_error(f"Error: {type(error).__name__}", str(error))
        sys.exit(1)

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:", file=sys.stderr)
            print(traceback.format_exc(), file=sys.stderr)

        sys.exit(1)


class PathValidator:
    """Validates repository paths."""

    @staticmethod
    def validate_repo_dir(repo_dir: Path) -> None:
        """Validate that the repository directory exists and is a directory.

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not repo_dir.exists():
            print(
                f"{ErrorFormatter.RED}✗ Error: Repository does not exist: {repo_dir}{ErrorFormatter.RESET}",
                file=sys.stderr,
            )
            sys.exit(2)
        if not repo_dir.is_dir():
            print(
                f"{ErrorFormatter.RED}✗ Error: Repository is not a directory: {repo_dir}{ErrorFormatter.RESET}",
                file=sys.stderr,
            )
            sys.exit(2)
