"""
Error types for bargo.

Every failure raised while loading a workspace or driving a build derives
from ``BargoError`` so the CLI can report it in one place. The three
branches follow the kind of failure:

- ``ConfigError``: malformed or missing workspace, package or manifest data
- ``StructureError``: references to unknown packages, cyclic prebuilds,
  an ambiguous or missing package to run
- ``ExecutionError``: the external tool or a postbuild hook failed

Nothing is retried. The first error aborts the whole run.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Sequence, Union

if TYPE_CHECKING:
    from bargo.values import Kind


class BargoError(Exception):
    """Base class for all bargo failures."""


class ConfigError(BargoError):
    """The workspace config, a package setting or a manifest is invalid."""


class StructureError(BargoError):
    """The package graph cannot be traversed as requested."""


class ExecutionError(BargoError):
    """A spawned process failed or could not be started."""


# =============================================================================
# Configuration Errors
# =============================================================================


class TypeMismatch(ConfigError):
    def __init__(self, key: str, expected: "Kind", actual: "Kind"):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Invalid value type for `{key}`. "
            f"Expected a(n) {expected.value}, but found a(n) {actual.value}."
        )


class ChildTypeMismatch(ConfigError):
    def __init__(self, key: str, expected: "Kind", actual: "Kind"):
        self.key = key
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"All members of `{key}` must be a(n) {expected.value}, "
            f"but found a(n) {actual.value}."
        )


class MissingKey(ConfigError):
    def __init__(self, key: str, expected: "Kind"):
        self.key = key
        self.expected = expected
        super().__init__(f"Missing required key `{key}` (expected a(n) {expected.value}).")


class WorkspaceParseError(ConfigError):
    def __init__(self, path: Path, detail: str):
        self.path = path
        self.detail = detail
        super().__init__(f"Error while parsing `{path}`: {detail}")


class NoWorkspace(ConfigError):
    def __init__(self, start_dir: Path, filename: str):
        self.start_dir = start_dir
        self.filename = filename
        super().__init__(
            f"Could not find a `{filename}` file in {start_dir} or any of its parent directories."
        )


class NoPackages(ConfigError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"`{path}` does not declare any packages in its `crates` table.")


class NoManifest(ConfigError):
    def __init__(self, package: str, path: Path):
        self.package = package
        self.path = path
        super().__init__(f"Package `{package}` has no manifest: expected a file at `{path}`.")


class InvalidManifest(ConfigError):
    def __init__(self, package: str, reason: Union[str, ConfigError]):
        self.package = package
        self.reason = reason
        super().__init__(f"Failed to read the manifest for `{package}`: {reason}")


class NameMismatch(ConfigError):
    def __init__(self, workspace_name: str, manifest_name: str):
        self.workspace_name = workspace_name
        self.manifest_name = manifest_name
        super().__init__(
            f"Package `{workspace_name}` is named `{manifest_name}` in its manifest. "
            f"The name in the `crates` table must match the manifest's `package.name`."
        )


# =============================================================================
# Structural Errors
# =============================================================================


class PackageSource(str, Enum):
    """Where a package name was referenced from."""

    CLI_ARG = "command line"
    DEFAULT_BUILD = "workspace.default-build"
    DEFAULT_RUN = "workspace.default-run"
    PREBUILD = "prebuild"


class UnknownPackage(StructureError):
    def __init__(self, source: PackageSource, name: str, dependent: Optional[str] = None):
        self.source = source
        self.name = name
        self.dependent = dependent
        if source is PackageSource.PREBUILD:
            message = (
                f"Package `{dependent}` lists `{name}` as a package to prebuild, "
                f"but `{name}` has no entry in the `crates` table."
            )
        else:
            message = (
                f"Unknown package `{name}` (from {source.value}): "
                f"it has no entry in the `crates` table."
            )
        super().__init__(message)


class CyclicPrebuild(StructureError):
    def __init__(self, package: str):
        self.package = package
        super().__init__(
            f"Cyclic prebuild detected: `{package}` was reached again while it was still being built."
        )


class TooManyPackages(StructureError):
    def __init__(self, packages: Sequence[str]):
        self.packages = list(packages)
        super().__init__(
            f"Only one package can be run at a time, but {len(self.packages)} were given: "
            + ", ".join(self.packages)
        )


class NoPackageToRun(StructureError):
    def __init__(self) -> None:
        super().__init__(
            "No package to run: pass one with `--package` or set `workspace.default-run`."
        )


# =============================================================================
# Execution Errors
# =============================================================================


class ToolInvocationFailed(ExecutionError):
    def __init__(
        self,
        package: str,
        command: Sequence[str],
        returncode: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        self.package = package
        self.command = list(command)
        self.returncode = returncode
        self.reason = reason
        if returncode is None:
            detail = f"could not be started ({reason})"
        else:
            detail = f"exited with status {returncode}"
        super().__init__(f"Build of `{package}` failed: `{' '.join(self.command)}` {detail}.")


class PostbuildNotFound(ExecutionError):
    def __init__(self, package: str, path: Path):
        self.package = package
        self.path = path
        super().__init__(f"Package `{package}` sets a postbuild script, but `{path}` does not exist.")


class PostbuildFailed(ExecutionError):
    def __init__(
        self,
        package: str,
        path: Path,
        returncode: Optional[int] = None,
        reason: Optional[str] = None,
    ):
        self.package = package
        self.path = path
        self.returncode = returncode
        self.reason = reason
        if returncode is None:
            detail = f"could not be started ({reason})"
        else:
            detail = f"exited with status {returncode}"
        super().__init__(f"Postbuild script `{path}` for `{package}` {detail}.")
