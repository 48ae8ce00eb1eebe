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

"""Host prerequisite checks: platform, Homebrew, Docker, and disk space."""

from __future__ import annotations

import sys

import docker
import sh
from rich.panel import Panel
from rich.prompt import Confirm

from workshop_manager import console
from workshop_manager.constants import MIN_FREE_DISK_GB, SUPPORTED_PLATFORM
from workshop_manager.utils import first_line, free_disk_gb, require_command


def check_platform() -> None:
    """Warn when not running on macOS, the platform the workshop targets."""
    if sys.platform.startswith(SUPPORTED_PLATFORM):
        return
    console.print(f"[yellow]⚠️  This workshop targets macOS. Detected: {sys.platform}[/yellow]")
    console.print("[yellow]   Continuing because Homebrew is available on this platform[/yellow]")


def docker_running() -> bool:
    """Return whether the Docker daemon answers a ping."""
    try:
        client = docker.from_env()
    except docker.errors.DockerException:
        return False
    try:
        return bool(client.ping())
    except docker.errors.DockerException:
        return False
    finally:
        client.close()


def check_docker() -> None:
    """Ensure Docker is installed and its daemon is running.

    Raises:
        RuntimeError: If the docker CLI is missing or the daemon is down.
    """
    require_command("docker", "Install Docker Desktop from: https://www.docker.com/products/docker-desktop")
    if not docker_running():
        raise RuntimeError("Docker is installed but not running. Please start Docker Desktop.")
    console.print("[green]✅ Docker is running[/green]")


def check_disk_space(assume_yes: bool = False, minimum_gb: int = MIN_FREE_DISK_GB) -> None:
    """Ask for confirmation when free disk space is below what the models need.

    Args:
        assume_yes: Continue without prompting.
        minimum_gb: Free space threshold in GB.

    Raises:
        RuntimeError: If the user declines to continue.
    """
    available = free_disk_gb()
    if available >= minimum_gb:
        console.print(f"[green]✅ Sufficient disk space available: {available:.0f}GB[/green]")
        return

    console.print(f"[yellow]⚠️  Low disk space: {available:.1f}GB available. LLM models require {minimum_gb}GB+[/yellow]")
    if assume_yes:
        return
    if not Confirm.ask("Continue anyway?", default=False):
        raise RuntimeError("Setup cancelled. Free up disk space and try again.")


def check_prerequisites(assume_yes: bool = False) -> None:
    """Run all host prerequisite checks.

    Args:
        assume_yes: Skip the low-disk-space confirmation prompt.

    Raises:
        RuntimeError: If a required tool or service is unavailable.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    check_platform()
    require_command("brew", "Install Homebrew from: https://brew.sh/")
    console.print(f"[green]✅ Homebrew found: {first_line(sh.brew('--version'))}[/green]")
    check_docker()
    check_disk_space(assume_yes=assume_yes)
    console.print("[green]✅ Prerequisites check passed[/green]")
