"""
Packages in a bargo workspace.

A package is one entry of the ``crates`` table. Its settings fall back, key
by key, to the ``workspace`` table; its on-disk manifest is authoritative for
its name.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from bargo.build.config import MANIFEST_FILE, Workspace
from bargo.errors import (
    ChildTypeMismatch,
    InvalidManifest,
    MissingKey,
    NameMismatch,
    NoManifest,
)
from bargo.values import Kind, expect_string, expect_string_list, expect_table, kind_of


@dataclass
class Package:
    """A package resolved against its workspace."""

    name: str
    path: Path
    settings: dict[str, Any]
    workspace_settings: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str) -> Optional[Any]:
        """Look up a setting on the package, then on the workspace table.

        Only one fallback hop: nested tables are never merged.
        """
        if key in self.settings:
            return self.settings[key]
        return self.workspace_settings.get(key)

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILE


def read_manifest_name(name: str, manifest_path: Path) -> str:
    """Return the ``package.name`` declared in a manifest."""
    try:
        with manifest_path.open("rb") as f:
            data = tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise InvalidManifest(name, f"syntax error: {e}") from e

    package = data.get("package")
    if not isinstance(package, dict):
        raise InvalidManifest(name, MissingKey("package", Kind.TABLE))
    declared = package.get("name")
    if not isinstance(declared, str):
        raise InvalidManifest(name, MissingKey("package.name", Kind.STRING))
    return declared


def load_package(workspace: Workspace, settings: dict[str, Any], name: str) -> Package:
    """Resolve a package's location and check it against its manifest.

    The ``path`` setting is read from the package's own table only and is
    relative to the workspace root; without it the package lives in
    ``<root>/<name>``.
    """
    if "path" in settings:
        path = workspace.root / expect_string("path", settings["path"])
    else:
        path = workspace.root / name

    package = Package(
        name=name,
        path=path,
        settings=settings,
        workspace_settings=workspace.settings,
    )
    if not package.manifest_path.is_file():
        raise NoManifest(name, package.manifest_path)

    declared = read_manifest_name(name, package.manifest_path)
    if declared != name:
        raise NameMismatch(name, declared)

    return package


# =============================================================================
# Prebuild Entries
# =============================================================================


@dataclass
class PrebuildEntry:
    """One entry of a package's ``prebuild`` table."""

    name: str
    features: list[str] = field(default_factory=list)
    targets: list[str] = field(default_factory=list)


def prebuild_entries(package: Package) -> list[PrebuildEntry]:
    """Read the ``prebuild`` table, keeping its declaration order.

    Each entry maps a package name to a table that may override the
    ``features`` and ``targets`` that package is built with.
    """
    value = package.get("prebuild")
    if value is None:
        return []

    entries = []
    for name, overrides in expect_table("prebuild", value).items():
        if not isinstance(overrides, dict):
            raise ChildTypeMismatch("prebuild", Kind.TABLE, kind_of(overrides))
        entry = PrebuildEntry(name=name)
        if "features" in overrides:
            entry.features = expect_string_list("prebuild.features", overrides["features"])
        if "targets" in overrides:
            entry.targets = expect_string_list("prebuild.targets", overrides["targets"])
        entries.append(entry)
    return entries
