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

"""kubectl, k3d, and kubecolor installation via Homebrew."""

from __future__ import annotations

from pathlib import Path

import sh
from rich.panel import Panel

from workshop_manager import console
from workshop_manager.constants import KUBECOLOR_ALIAS, dep_value
from workshop_manager.utils import append_line_once, brew_install, command_exists, first_line, shell_config_path

# Version commands per tool, used when the tool is already installed.
_VERSION_ARGS: dict[str, tuple[str, ...]] = {
    "kubectl": ("version", "--client"),
    "k3d": ("version",),
}


def _formula(tool: str) -> str:
    return dep_value("brew", "formulas", tool, default=tool)


def ensure_tool(tool: str) -> bool:
    """Install *tool* via Homebrew unless it is already on PATH.

    Args:
        tool: Command name (also the key in the ``brew.formulas`` table).

    Returns:
        True if the tool was installed by this call.
    """
    if command_exists(tool):
        version_args = _VERSION_ARGS.get(tool)
        version = first_line(sh.Command(tool)(*version_args)) if version_args else ""
        console.print(f"[green]✅ {tool} already installed {version}[/green]")
        return False
    console.print(f"[yellow]ℹ️  Installing {tool}...[/yellow]")
    brew_install(_formula(tool))
    console.print(f"[green]✅ {tool} installed[/green]")
    return True


def install_kubecolor_alias(shell_config: Path | None = None) -> None:
    """Alias kubectl to kubecolor in the user's shell rc file.

    Args:
        shell_config: rc file to patch; detected from ``$SHELL`` when None.
    """
    shell_config = shell_config or shell_config_path()
    if append_line_once(shell_config, KUBECOLOR_ALIAS):
        console.print(f"[yellow]ℹ️  Added kubectl alias to {shell_config}[/yellow]")
        console.print(f"[yellow]   Reload your shell or run 'source {shell_config}' to use colorized output[/yellow]")
    else:
        console.print("[yellow]ℹ️  kubectl alias already exists in shell configuration[/yellow]")


def install_tools() -> None:
    """Install kubectl, k3d, and kubecolor (with its kubectl alias)."""
    console.print(Panel.fit("Installing kubectl and k3d", style="bold blue"))
    ensure_tool("kubectl")
    ensure_tool("k3d")
    if ensure_tool("kubecolor"):
        install_kubecolor_alias()
