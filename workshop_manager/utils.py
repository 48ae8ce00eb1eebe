# /*
# Copyright 2026 The K8sGPT Workshop Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Utility functions for command execution, command checks, and shell files."""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path

import sh

from workshop_manager import logger
from workshop_manager.constants import BYTES_PER_GB


def command_exists(cmd: str) -> bool:
    """Return whether a command is on the system PATH.

    Args:
        cmd: Name of the CLI command to look up.
    """
    try:
        return bool(sh.which(cmd))
    except sh.ErrorReturnCode:
        return False


def require_command(cmd: str, hint: str = "Please install it first.") -> None:
    """Check if a command exists on the system PATH.

    Args:
        cmd: Name of the CLI command to check.
        hint: Remediation appended to the error message.

    Raises:
        RuntimeError: If the command is not found.
    """
    if not command_exists(cmd):
        raise RuntimeError(f"Required command '{cmd}' not found. {hint}")


def run_command(args: list[str], timeout: int | None = 30, input_text: str | None = None) -> tuple[bool, str, str]:
    """Run a command via subprocess and return (success, stdout, stderr).

    Used instead of sh where stdout and stderr must stay separate, a
    timeout must be enforced, or a missing binary must not raise.

    Args:
        args: Full command line, program first.
        timeout: Maximum seconds to wait for the command to complete.
        input_text: Optional text written to the command's stdin.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    logger.debug("Running: %s", " ".join(args))
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input_text,
        )
        return result.returncode == 0, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return False, "", f"'{args[0]}' timed out after {timeout}s"
    except (subprocess.SubprocessError, OSError) as exc:
        return False, "", str(exc)


def run_kubectl(args: list[str], timeout: int = 30, input_text: str | None = None) -> tuple[bool, str, str]:
    """Run a kubectl command and return (success, stdout, stderr).

    Args:
        args: kubectl arguments (e.g. ``["get", "pods", "-n", "demo"]``).
        timeout: Maximum seconds to wait for the command to complete.
        input_text: Optional manifest text piped to stdin.

    Returns:
        Tuple of (success, stdout, stderr).
    """
    return run_command(["kubectl", *args], timeout=timeout, input_text=input_text)


def brew_install(formula: str, cask: bool = False) -> None:
    """Install a Homebrew formula.

    Args:
        formula: Formula or cask name.
        cask: Whether to install it as a cask.
    """
    args = ["install", "--cask", formula] if cask else ["install", formula]
    logger.debug("brew %s", " ".join(args))
    sh.brew(*args)


def first_line(text: str) -> str:
    """Return the first non-empty line of command output."""
    for line in str(text).splitlines():
        if line.strip():
            return line.strip()
    return ""


def free_disk_gb(path: Path | str = ".") -> float:
    """Return free disk space in GB on the filesystem holding *path*."""
    return shutil.disk_usage(path).free / BYTES_PER_GB


# ============================================================================
# Shell configuration
# ============================================================================

def shell_config_path(shell: str | None = None, home: Path | None = None) -> Path:
    """Pick the rc file to patch for the user's login shell.

    Args:
        shell: Value of ``$SHELL``; read from the environment when None.
        home: Home directory; ``Path.home()`` when None.

    Returns:
        Path of the rc file. It may not exist yet.
    """
    home = home or Path.home()
    shell_name = Path(shell if shell is not None else os.environ.get("SHELL", "")).name

    if shell_name == "zsh":
        return home / ".zshrc"
    if shell_name == "bash":
        for candidate in (".bashrc", ".bash_profile"):
            if (home / candidate).is_file():
                return home / candidate
        return home / ".bashrc"
    if shell_name == "fish":
        return home / ".config" / "fish" / "config.fish"

    for candidate in (".bashrc", ".bash_profile", ".zshrc"):
        if (home / candidate).is_file():
            return home / candidate
    return home / ".profile"


def append_line_once(path: Path, line: str) -> bool:
    """Append *line* to *path* unless it is already present.

    Args:
        path: File to patch; it and its parent directory are created if missing.
        line: Line to add, without trailing newline.

    Returns:
        True if the line was added, False if it was already there.
    """
    if path.is_file() and line in path.read_text().splitlines():
        return False
    path.parent.mkdir(parents=True, exist_ok=True)
    existing = path.read_text() if path.is_file() else ""
    prefix = "" if not existing or existing.endswith("\n") else "\n"
    with open(path, "a") as f:
        f.write(f"{prefix}{line}\n")
    return True
