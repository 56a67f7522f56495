"""
Build phases for bargo.

The individual process-spawning steps the orchestrator sequences: running
cargo for each command of an invocation plan, and running a package's
postbuild script.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence

from bargo.build.config import (
    NIGHTLY_CHANNEL,
    POSTBUILD_FILE,
    PROFILE_ENV_VAR,
    ROOT_ENV_VAR,
    SCRIPT_FLAG,
    BuildConfig,
    Workspace,
)
from bargo.build.invocation import InvocationPlan
from bargo.build.package import Package
from bargo.errors import (
    PostbuildFailed,
    PostbuildNotFound,
    ToolInvocationFailed,
)
from bargo.utils import log, run_cmd
from bargo.values import expect_string


# =============================================================================
# Main Build
# =============================================================================


def run_tool(package: Package, cmd: Sequence[str], config: BuildConfig) -> None:
    """Run one cargo command in the package directory."""
    if config.verbose and not config.dry_run:
        log.command(cmd, package.path)

    try:
        returncode = run_cmd(cmd, cwd=package.path, dry_run=config.dry_run)
    except OSError as e:
        raise ToolInvocationFailed(package.name, cmd, reason=str(e)) from e

    if returncode != 0:
        raise ToolInvocationFailed(package.name, cmd, returncode)


def run_plan(plan: InvocationPlan, workspace: Workspace, config: BuildConfig) -> None:
    """Run every command of a plan, stopping at the first failure."""
    for cmd in plan.commands(workspace.root):
        run_tool(plan.package, cmd, config)


# =============================================================================
# Postbuild
# =============================================================================


def postbuild_script(workspace: Workspace, package: Package) -> tuple[Path, bool]:
    """Locate a package's postbuild script.

    Returns (path, custom). A ``postbuild`` setting is resolved against the
    workspace root and is custom; otherwise the default is ``postbuild.rs``
    in the package directory.
    """
    setting = package.get("postbuild")
    if setting is not None:
        return workspace.root / expect_string("postbuild", setting), True
    return package.path / POSTBUILD_FILE, False


def postbuild_env(workspace: Workspace, config: BuildConfig) -> dict[str, str]:
    env = os.environ.copy()
    env[ROOT_ENV_VAR] = str(workspace.root.resolve())
    env[PROFILE_ENV_VAR] = config.profile
    return env


def run_postbuild(workspace: Workspace, package: Package, config: BuildConfig) -> bool:
    """Run the package's postbuild script, if it has one.

    Returns True if a script ran. A missing default script is skipped; a
    missing custom script is an error.
    """
    path, custom = postbuild_script(workspace, package)

    if not path.exists():
        if custom:
            raise PostbuildNotFound(package.name, path)
        return False

    cmd = [config.tool, NIGHTLY_CHANNEL, SCRIPT_FLAG, str(path)]
    if config.verbose and not config.dry_run:
        log.command(cmd, workspace.root)

    try:
        returncode = run_cmd(
            cmd,
            cwd=workspace.root,
            env=postbuild_env(workspace, config),
            dry_run=config.dry_run,
        )
    except OSError as e:
        raise PostbuildFailed(package.name, path, reason=str(e)) from e

    if returncode != 0:
        raise PostbuildFailed(package.name, path, returncode)
    return True
