"""
Build configuration for bargo.

Constants, the parsed workspace, the per-run build config, and workspace
discovery.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from bargo.errors import (
    ChildTypeMismatch,
    NoPackages,
    NoWorkspace,
    PackageSource,
    TypeMismatch,
    UnknownPackage,
    WorkspaceParseError,
)
from bargo.values import Kind, kind_of

__all__ = [
    "WORKSPACE_FILE",
    "MANIFEST_FILE",
    "POSTBUILD_FILE",
    "TARGET_DIR_NAME",
    "DEFAULT_TOOL",
    "TOOL_ENV_VAR",
    "ROOT_ENV_VAR",
    "PROFILE_ENV_VAR",
    "NIGHTLY_CHANNEL",
    "SCRIPT_FLAG",
    "TARGET_FILE_MARKER",
    "BuildConfig",
    "Workspace",
    "find_workspace_file",
    "load_workspace",
    "parse_workspace",
]

# =============================================================================
# Constants
# =============================================================================

WORKSPACE_FILE = "bargo.toml"
MANIFEST_FILE = "Cargo.toml"
POSTBUILD_FILE = "postbuild.rs"
TARGET_DIR_NAME = "target"

DEFAULT_TOOL = "cargo"
TOOL_ENV_VAR = "BARGO_CARGO"

# Environment handed to postbuild scripts
ROOT_ENV_VAR = "BARGO_ROOT"
PROFILE_ENV_VAR = "PROFILE"

NIGHTLY_CHANNEL = "+nightly"
SCRIPT_FLAG = "-Zscript"

# Targets containing this are target-description files, not triples
TARGET_FILE_MARKER = ".json"

WORKSPACE_KEY = "workspace"
PACKAGES_KEY = "crates"


# =============================================================================
# Data Classes
# =============================================================================


def _default_tool() -> str:
    return os.environ.get(TOOL_ENV_VAR) or DEFAULT_TOOL


@dataclass
class BuildConfig:
    """Configuration for one bargo invocation, as parsed from the command line."""

    release: bool = False
    features: list[str] = field(default_factory=list)
    targets: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    dry_run: bool = False
    verbose: bool = False
    tool: str = field(default_factory=_default_tool)

    @property
    def profile(self) -> str:
        return "release" if self.release else "debug"


@dataclass
class Workspace:
    """A parsed ``bargo.toml``.

    ``settings`` is the optional ``workspace`` table (empty when absent) and
    ``packages`` maps each package name to its raw settings, in the order the
    file declares them.
    """

    root: Path
    settings: dict[str, Any]
    packages: dict[str, Any]

    @property
    def target_dir(self) -> Path:
        return self.root / TARGET_DIR_NAME

    def package_table(
        self,
        name: str,
        source: PackageSource,
        dependent: Optional[str] = None,
    ) -> dict[str, Any]:
        """Return the settings table for ``name``.

        Raises UnknownPackage when the name has no entry in ``crates``.
        """
        if name not in self.packages:
            raise UnknownPackage(source, name, dependent)
        table = self.packages[name]
        if not isinstance(table, dict):
            raise ChildTypeMismatch(PACKAGES_KEY, Kind.TABLE, kind_of(table))
        return table


# =============================================================================
# Workspace Discovery
# =============================================================================


def find_workspace_file(start_dir: Optional[Path] = None) -> Path:
    """Find the nearest ``bargo.toml`` in start_dir (or cwd) or its ancestors."""
    if start_dir is None:
        start_dir = Path.cwd()

    start = start_dir.resolve()
    for directory in (start, *start.parents):
        candidate = directory / WORKSPACE_FILE
        if candidate.is_file():
            return candidate

    raise NoWorkspace(start, WORKSPACE_FILE)


def parse_workspace(source: str, root: Path, path: Optional[Path] = None) -> Workspace:
    """Parse the text of a workspace config rooted at ``root``."""
    path = path or root / WORKSPACE_FILE
    try:
        data = tomllib.loads(source)
    except tomllib.TOMLDecodeError as e:
        raise WorkspaceParseError(path, str(e)) from e

    settings = data.get(WORKSPACE_KEY, {})
    if not isinstance(settings, dict):
        raise TypeMismatch(WORKSPACE_KEY, Kind.TABLE, kind_of(settings))

    if PACKAGES_KEY not in data:
        raise NoPackages(path)
    packages = data[PACKAGES_KEY]
    if not isinstance(packages, dict):
        raise TypeMismatch(PACKAGES_KEY, Kind.TABLE, kind_of(packages))
    if not packages:
        raise NoPackages(path)

    return Workspace(root=root, settings=settings, packages=packages)


def load_workspace(path: Path) -> Workspace:
    """Read and parse the workspace config at ``path``."""
    path = path.resolve()
    try:
        source = path.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkspaceParseError(path, f"could not be read ({e})") from e
    except UnicodeDecodeError as e:
        raise WorkspaceParseError(path, f"not valid UTF-8 ({e})") from e
    return parse_workspace(source, path.parent, path)
