"""
bargo - a build system wrapped around Cargo.

Drives cargo across the packages declared in a ``bargo.toml`` workspace,
running each package's prebuild packages first and its postbuild script
after.

Usage:
    bargo <command> [options]
    python -m bargo <command> [options]

Commands:
    build, b    Build the selected packages (default: the whole workspace)
    run, r      Build and run one package
    help, h     Show help
"""

from .cli import __version__, main

__all__ = ["__version__", "main"]
