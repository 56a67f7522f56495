"""
Build orchestrator for bargo.

Walks the packages of a workspace depth-first. Each package goes through
three phases in order: its prebuild packages, its own cargo invocations
(one per target), then its postbuild script. Any failure aborts the run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from bargo.build.config import BuildConfig, Workspace
from bargo.build.invocation import assemble, plan_invocation, resolve_features
from bargo.build.package import Package, load_package, prebuild_entries
from bargo.build.phases import run_plan, run_postbuild, run_tool
from bargo.errors import (
    CyclicPrebuild,
    NoPackageToRun,
    PackageSource,
    TooManyPackages,
)
from bargo.utils import log
from bargo.values import expect_string, expect_string_list


# =============================================================================
# Session State
# =============================================================================


@dataclass
class BuildSession:
    """State threaded through one top-level build.

    ``in_progress`` holds the packages currently on the traversal stack and
    is the only cycle guard. ``completed`` only grows.
    """

    target_dir: Path
    completed: set[str] = field(default_factory=set)
    in_progress: set[str] = field(default_factory=set)
    built: list[str] = field(default_factory=list)
    timings: dict[str, float] = field(default_factory=dict)

    def enter(self, name: str) -> None:
        if name in self.in_progress:
            raise CyclicPrebuild(name)
        self.in_progress.add(name)

    def leave(self, name: str, success: bool) -> None:
        self.in_progress.discard(name)
        if success:
            self.completed.add(name)
            self.built.append(name)


# =============================================================================
# Build Orchestrator
# =============================================================================


class BuildOrchestrator:
    """Drives cargo across the packages of a workspace."""

    def __init__(self, workspace: Workspace, config: BuildConfig):
        self.workspace = workspace
        self.config = config

    def new_session(self) -> BuildSession:
        return BuildSession(target_dir=self.workspace.target_dir)

    def load(
        self,
        name: str,
        source: PackageSource,
        dependent: Optional[str] = None,
    ) -> Package:
        table = self.workspace.package_table(name, source, dependent)
        return load_package(self.workspace, table, name)

    def requested_packages(self) -> tuple[PackageSource, list[str]]:
        """Pick the packages to build.

        Packages named on the command line win, then ``workspace.default-build``,
        then every package in the ``crates`` table.
        """
        if self.config.packages:
            return PackageSource.CLI_ARG, list(self.config.packages)

        default = self.workspace.settings.get("default-build")
        if default is not None:
            return PackageSource.DEFAULT_BUILD, expect_string_list("workspace.default-build", default)

        return PackageSource.DEFAULT_BUILD, list(self.workspace.packages)

    def build_all(self, session: Optional[BuildSession] = None) -> BuildSession:
        """Build the requested packages, in order."""
        session = session or self.new_session()
        source, names = self.requested_packages()
        start = time.time()

        for name in names:
            self.build_one(session, self.load(name, source))

        log.header("BUILD COMPLETE")
        log.info(f"Built {len(session.built)} package(s) in {time.time() - start:.1f}s")
        if self.config.verbose:
            for name in session.built:
                log.info(f"  {name}: {session.timings.get(name, 0.0):.1f}s")
        return session

    def build_one(
        self,
        session: BuildSession,
        package: Package,
        override_features: Sequence[str] = (),
        override_targets: Sequence[str] = (),
    ) -> None:
        """Build one package and, first, everything it prebuilds.

        A package is built at most once per session: reaching it again
        through another prebuild edge, or naming it twice, is a no-op.
        """
        if package.name in session.completed:
            log.info(f"{package.name}: Already built, skipping")
            return

        session.enter(package.name)
        succeeded = False
        try:
            start = time.time()
            self.build_prebuilds(session, package)
            self.main_build(session, package, override_features, override_targets)
            run_postbuild(self.workspace, package, self.config)
            session.timings[package.name] = round(time.time() - start, 3)
            succeeded = True
        finally:
            session.leave(package.name, succeeded)

        log.success(f"{package.name}: Built")

    def build_prebuilds(self, session: BuildSession, package: Package) -> None:
        for entry in prebuild_entries(package):
            dependency = self.load(entry.name, PackageSource.PREBUILD, package.name)
            self.build_one(session, dependency, entry.features, entry.targets)

    def main_build(
        self,
        session: BuildSession,
        package: Package,
        override_features: Sequence[str] = (),
        override_targets: Sequence[str] = (),
    ) -> None:
        log.header(f"Building {package.name}")
        plan = plan_invocation(
            assemble(package),
            tool=self.config.tool,
            target_dir=session.target_dir,
            release=self.config.release,
            requested_features=self.config.features,
            requested_targets=self.config.targets,
            override_features=override_features,
            override_targets=override_targets,
        )
        if plan.targets:
            log.info(f"{package.name}: Targets {', '.join(plan.targets)}")
        run_plan(plan, self.workspace, self.config)

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run_target(self) -> tuple[PackageSource, str]:
        """Pick the single package to run."""
        if self.config.packages:
            if len(self.config.packages) > 1:
                raise TooManyPackages(self.config.packages)
            return PackageSource.CLI_ARG, self.config.packages[0]

        default = self.workspace.settings.get("default-run")
        if default is not None:
            return PackageSource.DEFAULT_RUN, expect_string("workspace.default-run", default)

        raise NoPackageToRun()

    def run(self, session: Optional[BuildSession] = None) -> BuildSession:
        """Build one package with its prebuilds, then ``cargo run`` it."""
        source, name = self.run_target()
        package = self.load(name, source)
        session = session or self.new_session()

        self.build_one(session, package)

        template = assemble(package)
        cmd = template.command(
            self.config.tool,
            "run",
            session.target_dir,
            self.config.release,
            resolve_features((), self.config.features),
        )
        log.header(f"Running {package.name}")
        run_tool(package, cmd, self.config)
        return session
