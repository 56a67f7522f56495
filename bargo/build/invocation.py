"""
Assembly of cargo command lines.

A package's ``unstable`` and ``direct-arg`` settings are turned into an
``InvocationTemplate`` once. The orchestrator then resolves features and
targets for each place the package is built from and expands the template
into an ``InvocationPlan``: one command per target, or a single command
without ``--target`` when no target applies.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from bargo.build.config import NIGHTLY_CHANNEL, TARGET_FILE_MARKER
from bargo.build.package import Package
from bargo.errors import ChildTypeMismatch, TypeMismatch
from bargo.values import Kind, expect_string_list, expect_table, kind_of


def unstable_flags(value: Any) -> list[str]:
    """Turn an ``unstable`` table into ``-Z`` flags, in declaration order.

    ``true`` gives ``-Zname``, ``false`` gives nothing, a string gives
    ``-Zname=value`` and a list of strings gives ``-Zname=a,b,c``.
    """
    table = expect_table("unstable", value)
    flags = []

    for name, setting in table.items():
        key = f"unstable.{name}"
        if isinstance(setting, bool):
            if setting:
                flags.append(f"-Z{name}")
        elif isinstance(setting, str):
            flags.append(f"-Z{name}={setting}")
        elif isinstance(setting, list):
            values = []
            for item in setting:
                if not isinstance(item, str):
                    raise ChildTypeMismatch(key, Kind.STRING, kind_of(item))
                values.append(item)
            flags.append(f"-Z{name}={','.join(values)}")
        else:
            raise TypeMismatch(key, Kind.STRING, kind_of(setting))

    return flags


@dataclass
class InvocationTemplate:
    """The target-independent part of a package's cargo invocation."""

    package: Package
    unstable_flags: list[str] = field(default_factory=list)
    direct_args: list[str] = field(default_factory=list)

    @property
    def is_unstable(self) -> bool:
        return bool(self.unstable_flags)

    def command(
        self,
        tool: str,
        subcommand: str,
        target_dir: Path,
        release: bool = False,
        features: Sequence[str] = (),
    ) -> list[str]:
        """Build the argument vector for ``tool``, without any ``--target``."""
        cmd = [tool]
        if self.is_unstable:
            cmd.append(NIGHTLY_CHANNEL)
        cmd += [subcommand, "--target-dir", str(target_dir)]
        cmd += self.unstable_flags
        cmd += self.direct_args
        if release:
            cmd.append("--release")
        if features:
            cmd += ["--features", ",".join(features)]
        return cmd


def assemble(package: Package) -> InvocationTemplate:
    """Read a package's ``unstable`` and ``direct-arg`` settings."""
    unstable = package.get("unstable")
    direct = package.get("direct-arg")

    return InvocationTemplate(
        package=package,
        unstable_flags=unstable_flags(unstable) if unstable is not None else [],
        direct_args=expect_string_list("direct-arg", direct) if direct is not None else [],
    )


# =============================================================================
# Feature/Target Resolution
# =============================================================================


def resolve_features(override: Sequence[str], requested: Sequence[str]) -> list[str]:
    """Per-prebuild overrides win over features from the command line."""
    return list(override) or list(requested)


def resolve_targets(
    package: Package,
    override: Sequence[str],
    requested: Sequence[str],
) -> list[str]:
    """Overrides, then command-line targets, then the package's ``target`` setting."""
    if override:
        return list(override)
    if requested:
        return list(requested)
    configured = package.get("target")
    if configured is None:
        return []
    return expect_string_list("target", configured)


def target_argument(target: str, root: Path) -> str:
    """Target files are given relative to the workspace root."""
    if TARGET_FILE_MARKER in target:
        return str(root / target)
    return target


@dataclass
class InvocationPlan:
    """Everything needed to build one package from one place in the graph."""

    package: Package
    args: list[str]
    features: list[str]
    targets: list[str]
    is_unstable: bool = False

    def commands(self, root: Path) -> list[list[str]]:
        if not self.targets:
            return [list(self.args)]
        return [
            self.args + ["--target", target_argument(target, root)]
            for target in self.targets
        ]


def plan_invocation(
    template: InvocationTemplate,
    tool: str,
    target_dir: Path,
    release: bool = False,
    requested_features: Sequence[str] = (),
    requested_targets: Sequence[str] = (),
    override_features: Sequence[str] = (),
    override_targets: Sequence[str] = (),
    subcommand: str = "build",
) -> InvocationPlan:
    features = resolve_features(override_features, requested_features)
    targets = resolve_targets(template.package, override_targets, requested_targets)

    return InvocationPlan(
        package=template.package,
        args=template.command(tool, subcommand, target_dir, release, features),
        features=features,
        targets=targets,
        is_unstable=template.is_unstable,
    )
