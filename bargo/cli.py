"""
Main CLI for bargo.

Parses the command line into a BuildConfig, finds the workspace and hands
both to the orchestrator.
"""

from __future__ import annotations

import argparse
import sys
import traceback
from typing import Iterable, Optional

from .build import BuildConfig, BuildOrchestrator, find_workspace_file, load_workspace
from .errors import BargoError
from .utils import log


# =============================================================================
# Version
# =============================================================================

__version__ = "0.1.0"


# =============================================================================
# Argument Parsing
# =============================================================================

COMMAND_ALIASES = {
    "b": "build",
    "r": "run",
    "h": "help",
}


def split_values(values: Iterable[str]) -> list[str]:
    """Flatten comma- or space-separated option values, keeping their order."""
    return [
        item
        for value in values
        for item in value.replace(",", " ").split()
    ]


def _add_build_options(parser: argparse.ArgumentParser, command_level: bool = False) -> None:
    """Add the options shared by the build and run commands.

    They are accepted both before and after the command. The copies on a
    command parser store into ``command_<name>`` with no default, so values
    given on either side of the command add up instead of replacing each
    other.
    """
    def dest(name: str) -> str:
        return f"command_{name}" if command_level else name

    def default(value: object) -> object:
        return argparse.SUPPRESS if command_level else value

    parser.add_argument(
        "--release", "-r",
        dest=dest("release"),
        action="store_true",
        default=default(False),
        help="Build in release mode",
    )
    parser.add_argument(
        "--features", "--feature", "-F",
        dest=dest("features"),
        nargs="+",
        action="extend",
        default=default([]),
        metavar="FEATURE",
        help="Features to enable (comma- or space-separated, repeatable)",
    )
    parser.add_argument(
        "--target", "--targets",
        dest=dest("targets"),
        nargs="+",
        action="extend",
        default=default([]),
        metavar="TARGET",
        help="Targets to build for, overriding each package's `target` setting",
    )
    parser.add_argument(
        "--package", "--packages", "-p",
        dest=dest("packages"),
        nargs="+",
        action="extend",
        default=default([]),
        metavar="PACKAGE",
        help="Packages to build (default: workspace.default-build, else all)",
    )
    parser.add_argument(
        "--dry-run",
        dest=dest("dry_run"),
        action="store_true",
        default=default(False),
        help="Show the commands that would run without running them",
    )
    parser.add_argument(
        "--verbose", "-v",
        dest=dest("verbose"),
        action="store_true",
        default=default(False),
        help="Echo every command and print per-package timings",
    )


def _option(args: argparse.Namespace, name: str):
    """Combine an option given before the command with its command-level copy."""
    value = getattr(args, name)
    command_value = getattr(args, f"command_{name}", None)
    if command_value is None:
        return value
    if isinstance(value, list):
        return value + command_value
    return value or command_value


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="bargo",
        description="Bargo is a build system wrapped around Cargo.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  build, b    Build the given packages, or the workspace's default-build
              packages, or every package in the workspace
  run, r      Build and run the given package, or the workspace's default-run
  help, h     Print this help message

Examples:
  bargo build                        # Build the workspace
  bargo build -p kernel --release    # Build one package in release mode
  bargo b -F serde,log --target x86_64-unknown-none
  bargo run -p app
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )

    _add_build_options(parser)

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )
    build_parser = subparsers.add_parser(
        "build",
        aliases=["b"],
        help="Build packages in the workspace",
        description="Build packages, running their prebuild packages first and postbuild scripts after.",
    )
    _add_build_options(build_parser, command_level=True)

    run_parser = subparsers.add_parser(
        "run",
        aliases=["r"],
        help="Build and run one package",
        description="Build one package with its prebuilds, then run it with cargo.",
    )
    _add_build_options(run_parser, command_level=True)

    subparsers.add_parser(
        "help",
        aliases=["h"],
        help="Print this help message",
    )

    return parser


def config_from_args(args: argparse.Namespace) -> BuildConfig:
    return BuildConfig(
        release=_option(args, "release"),
        features=split_values(_option(args, "features")),
        targets=split_values(_option(args, "targets")),
        packages=split_values(_option(args, "packages")),
        dry_run=_option(args, "dry_run"),
        verbose=_option(args, "verbose"),
    )


# =============================================================================
# Command Dispatch
# =============================================================================


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.no_color:
        log.set_color(False)

    command = COMMAND_ALIASES.get(args.command, args.command)

    # Help never needs a workspace
    if command is None or command == "help":
        parser.print_help()
        return 0

    config = config_from_args(args)

    try:
        workspace = load_workspace(find_workspace_file())
        orchestrator = BuildOrchestrator(workspace, config)

        if command == "build":
            orchestrator.build_all()
        elif command == "run":
            orchestrator.run()
        else:
            log.error(f"Unknown command: {args.command}")
            return 1

        return 0

    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 130
    except BargoError as e:
        log.error(str(e))
        if config.verbose:
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
