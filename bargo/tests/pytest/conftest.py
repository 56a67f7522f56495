"""
Shared pytest fixtures for bargo tests.

Provides throwaway workspaces on disk and a recorder that stands in for
``subprocess.run``, so builds can be driven end to end without cargo.

Test Tier Markers:
  @pytest.mark.evergreen - Tests that always run, never skip
"""

from __future__ import annotations

import io
import subprocess
import textwrap
from contextlib import redirect_stdout
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import pytest

from bargo.build import BuildConfig, BuildOrchestrator, Workspace, load_workspace


# =============================================================================
# Pytest Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test tiers."""
    config.addinivalue_line(
        "markers",
        "evergreen: tests that always run, never skip"
    )


# =============================================================================
# Subprocess Recorder
# =============================================================================


@dataclass
class SpawnCall:
    """One recorded subprocess spawn."""

    cmd: list[str]
    cwd: Optional[Path]
    env: Optional[dict[str, str]]


class ToolRecorder:
    """Replacement for subprocess.run that records calls instead of spawning."""

    def __init__(self) -> None:
        self.calls: list[SpawnCall] = []
        self._failures: list[tuple[Callable[[list[str]], bool], int]] = []
        self._missing: list[Callable[[list[str]], bool]] = []

    def fail_when(self, predicate: Callable[[list[str]], bool], returncode: int = 101) -> None:
        """Make matching commands exit with ``returncode``."""
        self._failures.append((predicate, returncode))

    def missing_when(self, predicate: Callable[[list[str]], bool]) -> None:
        """Make matching commands fail to start, as if the executable were absent."""
        self._missing.append(predicate)

    def __call__(self, cmd, cwd=None, env=None, check=False, **kwargs) -> subprocess.CompletedProcess:
        call = SpawnCall(
            cmd=list(cmd),
            cwd=Path(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
        )
        self.calls.append(call)

        for predicate in self._missing:
            if predicate(call.cmd):
                raise FileNotFoundError(2, "No such file or directory", call.cmd[0])
        for predicate, returncode in self._failures:
            if predicate(call.cmd):
                return subprocess.CompletedProcess(cmd, returncode)
        return subprocess.CompletedProcess(cmd, 0)

    @property
    def commands(self) -> list[list[str]]:
        return [call.cmd for call in self.calls]

    def builds(self) -> list[SpawnCall]:
        """Calls that ran a cargo ``build``."""
        return [call for call in self.calls if "build" in call.cmd]

    def scripts(self) -> list[SpawnCall]:
        """Calls that ran a postbuild script."""
        return [call for call in self.calls if "-Zscript" in call.cmd]

    def built_dirs(self) -> list[str]:
        """Directory names of each build call, in spawn order."""
        return [call.cwd.name for call in self.builds() if call.cwd is not None]


@pytest.fixture
def tool(monkeypatch: pytest.MonkeyPatch) -> ToolRecorder:
    """Patch subprocess.run with a ToolRecorder for the duration of a test."""
    recorder = ToolRecorder()
    monkeypatch.setattr(subprocess, "run", recorder)
    return recorder


# =============================================================================
# Workspace Builder
# =============================================================================


class WorkspaceBuilder:
    """Creates a bargo workspace on disk."""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    @property
    def config_path(self) -> Path:
        return self.root / "bargo.toml"

    def write_config(self, text: str) -> Path:
        self.config_path.write_text(textwrap.dedent(text))
        return self.config_path

    def add_package(
        self,
        name: str,
        manifest_name: Optional[str] = None,
        path: Optional[str] = None,
        postbuild: bool = False,
    ) -> Path:
        """Create a package directory with a Cargo.toml.

        ``manifest_name`` sets a different ``package.name`` in the manifest.
        ``postbuild`` also writes a default ``postbuild.rs``.
        """
        package_dir = self.root / (path or name)
        package_dir.mkdir(parents=True, exist_ok=True)
        (package_dir / "Cargo.toml").write_text(
            "[package]\n"
            f'name = "{manifest_name or name}"\n'
            'version = "0.1.0"\n'
        )
        if postbuild:
            (package_dir / "postbuild.rs").write_text("fn main() {}\n")
        return package_dir

    def add_packages(self, *names: str) -> None:
        for name in names:
            self.add_package(name)

    def load(self) -> Workspace:
        return load_workspace(self.config_path)

    def orchestrator(self, **config: object) -> BuildOrchestrator:
        config.setdefault("tool", "cargo")
        return BuildOrchestrator(self.load(), BuildConfig(**config))  # type: ignore[arg-type]


@pytest.fixture
def workspace(tmp_path: Path) -> WorkspaceBuilder:
    """An empty workspace directory; tests write bargo.toml and packages."""
    return WorkspaceBuilder(tmp_path.resolve() / "ws")


# =============================================================================
# CLI Runner
# =============================================================================


class CLIResult:
    """Result of running a CLI command."""

    def __init__(self, returncode: int, stdout: str):
        self.returncode = returncode
        self.stdout = stdout

    def __repr__(self) -> str:
        return f"CLIResult(returncode={self.returncode}, stdout={self.stdout[:100]!r}...)"


class CLIRunner:
    """Runs the CLI in-process from inside a workspace, capturing output."""

    def __init__(self, cwd: Path, monkeypatch: pytest.MonkeyPatch):
        self.cwd = cwd
        monkeypatch.chdir(cwd)
        monkeypatch.delenv("BARGO_CARGO", raising=False)

    def run(self, args: list[str]) -> CLIResult:
        from bargo.cli import main

        stdout_capture = io.StringIO()

        with redirect_stdout(stdout_capture):
            try:
                returncode = main(["--no-color", *args])
            except SystemExit as e:
                returncode = e.code if isinstance(e.code, int) else 1

        return CLIResult(
            returncode=returncode or 0,
            stdout=stdout_capture.getvalue(),
        )


@pytest.fixture
def cli_runner(workspace: WorkspaceBuilder, monkeypatch: pytest.MonkeyPatch) -> CLIRunner:
    """A CLI runner whose working directory is the test workspace."""
    return CLIRunner(workspace.root, monkeypatch)
