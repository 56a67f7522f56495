"""
Shared utilities for bargo: terminal output and subprocess spawning.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence


# =============================================================================
# Logging
# =============================================================================


class Logger:
    """Colored terminal output, with color off for non-tty streams or --no-color."""

    COLORS = {
        "reset": "\033[0m",
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "cyan": "\033[96m",
        "bold": "\033[1m",
        "dim": "\033[2m",
    }

    def __init__(self, use_color: Optional[bool] = None):
        if use_color is None:
            self._use_color = sys.stdout.isatty() and "NO_COLOR" not in os.environ
        else:
            self._use_color = use_color

    def set_color(self, use_color: bool) -> None:
        """Turn colored output on or off."""
        self._use_color = use_color

    def _color(self, text: str, color: str) -> str:
        if not self._use_color:
            return text
        return f"{self.COLORS.get(color, '')}{text}{self.COLORS['reset']}"

    def header(self, message: str) -> None:
        """Print a banner between build phases."""
        print(f"\n{self._color('===', 'cyan')} {self._color(message, 'bold')} {self._color('===', 'cyan')}")

    def info(self, message: str) -> None:
        """Print a plain progress line."""
        print(f"  {message}")

    def success(self, message: str) -> None:
        """Print a line tagged [OK]."""
        print(f"  {self._color('[OK]', 'green')} {message}")

    def warning(self, message: str) -> None:
        """Print a line tagged [WARN]."""
        print(f"  {self._color('[WARN]', 'yellow')} {message}")

    def error(self, message: str) -> None:
        """Print a line tagged [ERROR]."""
        print(f"  {self._color('[ERROR]', 'red')} {message}")

    def dim(self, message: str) -> None:
        """Print a de-emphasized line."""
        print(f"  {self._color(message, 'dim')}")

    def command(self, cmd: Sequence[str], cwd: Optional[Path] = None) -> None:
        """Echo a command line, dimmed, with the directory it runs in."""
        line = "$ " + " ".join(cmd)
        if cwd is not None:
            line += f"  (in {cwd})"
        self.dim(line)


# Global logger instance
log = Logger()


# =============================================================================
# Runtime Utilities
# =============================================================================


def run_cmd(
    cmd: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    dry_run: bool = False,
) -> int:
    """Run a command with inherited stdio and return its exit status.

    Nothing is captured: the tool's own output streams straight to the
    terminal. Raises OSError if the executable cannot be started.
    """
    if dry_run:
        log.info(f"[DRY-RUN] Would run: {' '.join(cmd)}" + (f" in {cwd}" if cwd else ""))
        return 0

    result = subprocess.run(
        list(cmd),
        cwd=cwd,
        env=dict(env) if env is not None else None,
        check=False,
    )
    return result.returncode
