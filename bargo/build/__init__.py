"""
bargo.build - Workspace loading and build orchestration.

Resolves package settings against the workspace, assembles cargo command
lines and drives prebuild, main build and postbuild for each package.
"""

from bargo.build.config import (
    WORKSPACE_FILE,
    MANIFEST_FILE,
    POSTBUILD_FILE,
    BuildConfig,
    Workspace,
    find_workspace_file,
    load_workspace,
    parse_workspace,
)
from bargo.build.package import (
    Package,
    PrebuildEntry,
    load_package,
    prebuild_entries,
)
from bargo.build.invocation import (
    InvocationPlan,
    InvocationTemplate,
    assemble,
    plan_invocation,
)
from bargo.build.orchestrator import (
    BuildOrchestrator,
    BuildSession,
)

__all__ = [
    # Constants
    "WORKSPACE_FILE",
    "MANIFEST_FILE",
    "POSTBUILD_FILE",
    # Configuration
    "BuildConfig",
    "Workspace",
    "find_workspace_file",
    "load_workspace",
    "parse_workspace",
    # Packages
    "Package",
    "PrebuildEntry",
    "load_package",
    "prebuild_entries",
    # Invocations
    "InvocationPlan",
    "InvocationTemplate",
    "assemble",
    "plan_invocation",
    # Orchestrator
    "BuildOrchestrator",
    "BuildSession",
]
