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

"""Demo application build, deployment, host entry, and reachability."""

from __future__ import annotations

from pathlib import Path
from string import Template

import docker
import requests
import sh
from rich.panel import Panel

from workshop_manager import console, logger
from workshop_manager.cluster import ensure_namespace, import_image, remove_cached_image
from workshop_manager.config import DemoConfig
from workshop_manager.constants import (
    DEMO_APP_DIR,
    DEMO_CONTAINER_NAME,
    DEMO_DEPLOYMENT_MANIFEST,
    HOST_ENTRY_ADDRESS,
    HOSTS_FILE,
)
from workshop_manager.utils import run_command, run_kubectl


def render_manifest(demo_cfg: DemoConfig, template_path: Path | None = None) -> str:
    """Fill the demo app manifest template from configuration.

    Args:
        demo_cfg: Demo configuration with name, image, host, and namespace.
        template_path: Manifest template; the packaged one when None.

    Returns:
        Multi-document YAML ready for ``kubectl apply -f -``.
    """
    template_path = template_path or DEMO_APP_DIR / DEMO_DEPLOYMENT_MANIFEST
    return Template(template_path.read_text()).substitute(
        app_name=demo_cfg.app_name,
        namespace=demo_cfg.namespace,
        image=demo_cfg.image,
        hostname=demo_cfg.hostname,
    )


# ============================================================================
# Build
# ============================================================================

def build_image(demo_cfg: DemoConfig, context_dir: Path = DEMO_APP_DIR) -> None:
    """Build the demo image, dropping leftovers from earlier local runs.

    Raises:
        RuntimeError: If the Docker build fails.
    """
    console.print(Panel.fit(f"Building demo image: {demo_cfg.image}", style="bold blue"))
    client = docker.from_env()
    try:
        for container in client.containers.list(all=True, filters={"name": DEMO_CONTAINER_NAME}):
            container.remove(force=True)
        try:
            client.images.remove(demo_cfg.image, force=True)
        except docker.errors.ImageNotFound:
            logger.debug("No previous %s image to remove", demo_cfg.image)

        try:
            _, build_logs = client.images.build(path=str(context_dir), tag=demo_cfg.image, rm=True)
        except docker.errors.BuildError as err:
            raise RuntimeError(f"Docker build failed: {err.msg}") from err
        for chunk in build_logs:
            if "stream" in chunk:
                logger.debug(chunk["stream"].rstrip())
    finally:
        client.close()
    console.print(f"[green]✅ Built {demo_cfg.image}[/green]")


# ============================================================================
# Deploy
# ============================================================================

def deployment_exists(demo_cfg: DemoConfig) -> bool:
    ok, _, _ = run_kubectl(["get", "deployment", demo_cfg.app_name, "-n", demo_cfg.namespace])
    return ok


def deploy(demo_cfg: DemoConfig) -> None:
    """Apply the demo manifests (or restart an existing rollout) and wait.

    Raises:
        RuntimeError: If the manifests cannot be applied or the rollout stalls.
    """
    console.print(Panel.fit("Deploying demo application", style="bold blue"))
    ensure_namespace(demo_cfg.namespace)

    existed = deployment_exists(demo_cfg)
    ok, _, stderr = run_kubectl(["apply", "-f", "-"], input_text=render_manifest(demo_cfg))
    if not ok:
        raise RuntimeError(f"Failed to apply demo manifests: {stderr.strip()}")
    if existed:
        # Same tag, new image: only a restart makes pods pick it up.
        console.print("[yellow]ℹ️  Rolling restart of existing deployment...[/yellow]")
        sh.kubectl("rollout", "restart", f"deployment/{demo_cfg.app_name}", "-n", demo_cfg.namespace)

    console.print("[yellow]ℹ️  Waiting for demo application to be ready...[/yellow]")
    try:
        sh.kubectl(
            "wait", "--for=condition=Available", f"deployment/{demo_cfg.app_name}",
            "-n", demo_cfg.namespace, f"--timeout={demo_cfg.rollout_timeout}",
        )
    except sh.ErrorReturnCode as err:
        raise RuntimeError(f"Demo deployment did not become available within {demo_cfg.rollout_timeout}") from err

    _, status, _ = run_kubectl(["get", "pods,svc,ingress", "-n", demo_cfg.namespace, "-l", f"app={demo_cfg.app_name}"])
    console.print(status, markup=False)
    console.print("[green]✅ Demo application deployed successfully[/green]")


def build_and_deploy(demo_cfg: DemoConfig, cluster_name: str, skip_build: bool = False) -> None:
    """Build the image, import it into the cluster, and deploy."""
    if not skip_build:
        build_image(demo_cfg)
        run_kubectl(["delete", "pods", "-l", f"app={demo_cfg.app_name}", "-n", demo_cfg.namespace])
        remove_cached_image(cluster_name, demo_cfg.image)
        import_image(cluster_name, demo_cfg.image)
    deploy(demo_cfg)


# ============================================================================
# Host entry and reachability
# ============================================================================

def has_host_entry(hostname: str, hosts_file: Path = HOSTS_FILE) -> bool:
    """Return whether *hostname* is mapped in the hosts file."""
    try:
        lines = hosts_file.read_text().splitlines()
    except OSError:
        return False
    for line in lines:
        fields = line.split("#", 1)[0].split()
        if hostname in fields[1:]:
            return True
    return False


def ensure_host_entry(hostname: str, hosts_file: Path = HOSTS_FILE) -> None:
    """Map *hostname* to localhost in the hosts file (uses sudo).

    Raises:
        RuntimeError: If the entry cannot be written.
    """
    entry = f"{HOST_ENTRY_ADDRESS} {hostname}"
    if has_host_entry(hostname, hosts_file):
        console.print("[yellow]ℹ️  Host entry already exists[/yellow]")
        return
    console.print(f"[yellow]ℹ️  Adding host entry to {hosts_file} (requires sudo)...[/yellow]")
    ok, _, stderr = run_command(["sudo", "tee", "-a", str(hosts_file)], timeout=120, input_text=f"{entry}\n")
    if not ok:
        raise RuntimeError(f"Failed to add host entry '{entry}': {stderr.strip()}")
    console.print(f"[green]✅ Host entry added: {entry}[/green]")


def app_reachable(url: str, timeout: int = 10) -> bool:
    """Return whether the demo app answers over HTTP."""
    try:
        return requests.get(url, timeout=timeout).ok
    except requests.RequestException:
        return False
