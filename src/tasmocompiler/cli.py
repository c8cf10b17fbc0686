"""
Command-line interface for tasmocompiler.

This module provides the `tasmocompiler` CLI tool for configuring and
building Tasmota firmware.
"""

import argparse
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from tasmocompiler import __version__
from tasmocompiler.build import (
    BuildOrchestrator,
    ConfigFileGenerator,
    collect_artifacts,
    copy_artifacts,
)
from tasmocompiler.cli_utils import ErrorFormatter, PathValidator, RequestLoader
from tasmocompiler.config import Settings, format_firmware_version, read_firmware_version
from tasmocompiler.errors import TasmoCompilerError
from tasmocompiler.events import ConsoleEventSink, EventSink, JsonLinesEventSink
from tasmocompiler.log_utils import setup_logging
from tasmocompiler.repository import fetch_release_versions


@dataclass
class BuildArgs:
    """Arguments for the build command."""

    config: Path
    repo_dir: Optional[Path] = None
    output_dir: Optional[Path] = None
    json_events: bool = False
    verbose: bool = False


@dataclass
class RenderArgs:
    """Arguments for the render command."""

    config: Path
    repo_dir: Optional[Path] = None
    verbose: bool = False


@dataclass
class VersionArgs:
    """Arguments for the version command."""

    repo_dir: Optional[Path] = None
    verbose: bool = False


def _settings(repo_dir: Optional[Path]) -> Settings:
    return Settings.from_environment().with_overrides(repo_dir=repo_dir)


def build_command(args: BuildArgs) -> None:
    """Generate the build files and compile the firmware.

    Examples:
        tasmocompiler build config.json                  # Build in the default repository
        tasmocompiler build config.json --repo ~/Tasmota # Build in a specific checkout
        tasmocompiler build config.json -o out/          # Copy firmware and generated files
        tasmocompiler build config.json --json           # Emit events as JSON lines
    """
    try:
        settings = _settings(args.repo_dir)
        request = RequestLoader.load(args.config)

        if not args.json_events:
            print(f"tasmocompiler v{__version__}")
            print(f"Repository: {settings.repo_dir}")
            if request.version_identifier:
                print(f"Version: {request.version_identifier}")
            print()

        sink: EventSink = JsonLinesEventSink() if args.json_events else ConsoleEventSink()
        orchestrator = BuildOrchestrator(settings)

        start_time = time.time()
        outcome = orchestrator.compile(request, sink)
        build_time = time.time() - start_time

        if args.json_events:
            sys.exit(0 if outcome.ok else 1)

        if not outcome.ok:
            # The event sink already printed the failure text
            ErrorFormatter.print_error("Build failed!", "")
            sys.exit(1)

        ErrorFormatter.print_success("Build successful!")
        print()
        artifacts = collect_artifacts(settings, request.board)
        if args.output_dir is not None:
            for path in copy_artifacts(artifacts, args.output_dir):
                print(f"  {path}")
        else:
            for artifact in artifacts:
                if artifact.exists():
                    print(f"  {artifact.path}")
        print()
        print(f"Build time: {build_time:.2f}s")
        sys.exit(0)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except TasmoCompilerError as e:
        ErrorFormatter.handle_tasmocompiler_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def render_command(args: RenderArgs) -> None:
    """Write user_config_override.h and platformio_override.ini without building.

    Examples:
        tasmocompiler render config.json
        tasmocompiler render config.json --repo ~/Tasmota
    """
    try:
        settings = _settings(args.repo_dir)
        PathValidator.validate_repo_dir(settings.repo_dir)
        request = RequestLoader.load(args.config)

        ConfigFileGenerator(settings).generate(request)
        print(f"Wrote {settings.user_config_override}")
        print(f"Wrote {settings.platformio_override}")
        sys.exit(0)

    except FileNotFoundError as e:
        ErrorFormatter.handle_file_not_found(e)
    except TasmoCompilerError as e:
        ErrorFormatter.handle_tasmocompiler_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def version_command(args: VersionArgs) -> None:
    """Print the firmware version of the current checkout."""
    try:
        settings = _settings(args.repo_dir)
        PathValidator.validate_repo_dir(settings.repo_dir)

        version = read_firmware_version(settings.version_file)
        print(f"{format_firmware_version(version)} (0x{version:08X})")
        sys.exit(0)

    except TasmoCompilerError as e:
        ErrorFormatter.handle_tasmocompiler_error(e)
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def versions_command(verbose: bool = False) -> None:
    """List the firmware versions that can be requested."""
    try:
        for version in fetch_release_versions():
            print(version)
        sys.exit(0)

    except TasmoCompilerError as e:
        ErrorFormatter.handle_tasmocompiler_error(e)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, verbose)


def _add_common_arguments(parser: argparse.ArgumentParser, with_repo: bool = True) -> None:
    if with_repo:
        parser.add_argument(
            "-r",
            "--repo",
            dest="repo_dir",
            type=Path,
            default=None,
            help="Firmware repository (default: $TASMOCOMPILER_REPO or ~/.tasmocompiler/Tasmota)",
        )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show verbose output",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Write a rotating debug log to this file",
    )


def main() -> None:
    """tasmocompiler - configure and build Tasmota firmware."""
    parser = argparse.ArgumentParser(
        prog="tasmocompiler",
        description="tasmocompiler - configure and build Tasmota firmware",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"tasmocompiler {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Build command
    build_parser = subparsers.add_parser(
        "build",
        help="Generate build files and compile the firmware",
    )
    build_parser.add_argument(
        "config",
        type=Path,
        help="Build configuration JSON ('-' for stdin)",
    )
    build_parser.add_argument(
        "-o",
        "--output",
        dest="output_dir",
        type=Path,
        default=None,
        help="Copy the firmware and generated files to this directory",
    )
    build_parser.add_argument(
        "--json",
        dest="json_events",
        action="store_true",
        help="Print build events as JSON lines",
    )
    _add_common_arguments(build_parser)

    # Render command
    render_parser = subparsers.add_parser(
        "render",
        help="Only write user_config_override.h and platformio_override.ini",
    )
    render_parser.add_argument(
        "config",
        type=Path,
        help="Build configuration JSON ('-' for stdin)",
    )
    _add_common_arguments(render_parser)

    # Version command
    version_parser = subparsers.add_parser(
        "version",
        help="Show the firmware version of the repository checkout",
    )
    _add_common_arguments(version_parser)

    # Versions command
    versions_parser = subparsers.add_parser(
        "versions",
        help="List firmware versions available for building",
    )
    _add_common_arguments(versions_parser, with_repo=False)

    parsed_args = parser.parse_args()

    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    settings = Settings.from_environment()
    setup_logging(
        verbose=parsed_args.verbose,
        log_file=parsed_args.log_file or settings.log_file,
    )

    if parsed_args.command == "build":
        build_command(
            BuildArgs(
                config=parsed_args.config,
                repo_dir=parsed_args.repo_dir,
                output_dir=parsed_args.output_dir,
                json_events=parsed_args.json_events,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "render":
        render_command(
            RenderArgs(
                config=parsed_args.config,
                repo_dir=parsed_args.repo_dir,
                verbose=parsed_args.verbose,
            )
        )
    elif parsed_args.command == "version":
        version_command(VersionArgs(repo_dir=parsed_args.repo_dir, verbose=parsed_args.verbose))
    elif parsed_args.command == "versions":
        versions_command(verbose=parsed_args.verbose)


if __name__ == "__main__":
    main()
