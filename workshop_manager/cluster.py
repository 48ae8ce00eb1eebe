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

"""k3d cluster lifecycle, validation, and image import."""

from __future__ import annotations

import json
from pathlib import Path

import docker
import sh
import yaml
from rich.panel import Panel
from rich.prompt import Prompt
from tenacity import retry, stop_after_attempt, wait_fixed

from workshop_manager import console, logger
from workshop_manager.config import ClusterConfig, ExistingClusterPolicy
from workshop_manager.constants import (
    CLUSTER_CREATE_RETRY_WAIT_SECONDS,
    K3D_CONFIG_API_VERSION,
    LB_PORTS,
    SMOKE_TEST_IMAGE,
    SMOKE_TEST_POD,
)
from workshop_manager.utils import run_command, run_kubectl

_PROMPT_CHOICES = {
    "1": ExistingClusterPolicy.RECREATE,
    "2": ExistingClusterPolicy.REUSE,
    "3": ExistingClusterPolicy.ABORT,
}


# ============================================================================
# k3d config
# ============================================================================

def render_cluster_config(cluster_cfg: ClusterConfig) -> dict:
    """Build the k3d Simple config for the workshop cluster.

    Args:
        cluster_cfg: Cluster configuration with name, ports, and image.

    Returns:
        k3d config as a dictionary ready for YAML serialization.
    """
    return {
        "apiVersion": K3D_CONFIG_API_VERSION,
        "kind": "Simple",
        "metadata": {"name": cluster_cfg.cluster_name},
        "servers": 1,
        "agents": cluster_cfg.agents,
        "image": cluster_cfg.k3s_image,
        "kubeAPI": {
            "host": "0.0.0.0",
            "hostIP": "127.0.0.1",
            "hostPort": str(cluster_cfg.api_port),
        },
        "ports": [
            {"port": f"{port}:{port}", "nodeFilters": ["loadbalancer"]}
            for port in LB_PORTS
        ],
    }


def ensure_cluster_config(cluster_cfg: ClusterConfig) -> Path:
    """Write the k3d config file unless one already exists.

    Args:
        cluster_cfg: Cluster configuration with the config file path.

    Returns:
        Path of the config file to pass to ``k3d cluster create``.
    """
    path = cluster_cfg.config_file
    if path.exists():
        console.print(f"[yellow]ℹ️  Using existing cluster config: {path}[/yellow]")
        return path
    console.print("[yellow]ℹ️  Creating default cluster configuration...[/yellow]")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(render_cluster_config(cluster_cfg), sort_keys=False))
    return path


# ============================================================================
# Cluster operations
# ============================================================================

def cluster_exists(cluster_name: str) -> bool:
    """Return whether a k3d cluster with this name exists.

    Args:
        cluster_name: Name of the k3d cluster.
    """
    ok, stdout, stderr = run_command(["k3d", "cluster", "list", "-o", "json"])
    if not ok:
        logger.debug("k3d cluster list failed: %s", stderr)
        return False
    try:
        clusters = json.loads(stdout or "[]")
    except json.JSONDecodeError:
        return False
    return any(c.get("name") == cluster_name for c in clusters)


def use_context(cluster_cfg: ClusterConfig) -> None:
    """Switch kubectl to the cluster's context.

    Raises:
        RuntimeError: If the context does not exist.
    """
    ok, _, stderr = run_kubectl(["config", "use-context", cluster_cfg.context])
    if not ok:
        raise RuntimeError(
            f"Failed to set context '{cluster_cfg.context}': {stderr.strip()}. The cluster may be corrupted. "
            f"Try running: k3d cluster delete {cluster_cfg.cluster_name}"
        )


def delete_cluster(cluster_cfg: ClusterConfig) -> None:
    """Delete the k3d cluster.

    Args:
        cluster_cfg: Cluster configuration with the cluster name.
    """
    console.print(f"[yellow]ℹ️  Deleting k3d cluster '{cluster_cfg.cluster_name}'...[/yellow]")
    try:
        sh.k3d("cluster", "delete", cluster_cfg.cluster_name)
        console.print(f"[green]✅ Cluster '{cluster_cfg.cluster_name}' deleted[/green]")
    except sh.ErrorReturnCode_1:
        console.print(f"[yellow]⚠️  Cluster '{cluster_cfg.cluster_name}' not found or already deleted[/yellow]")


def resolve_existing_policy(policy: ExistingClusterPolicy) -> ExistingClusterPolicy:
    """Turn ``ask`` into a concrete choice by prompting the user."""
    if policy is not ExistingClusterPolicy.ASK:
        return policy
    console.print("[yellow]Options:[/yellow]")
    console.print("  1. Delete and recreate the cluster (recommended for clean demo)")
    console.print("  2. Use the existing cluster (may have old configurations)")
    console.print("  3. Exit and manage cluster manually")
    choice = Prompt.ask("What would you like to do?", choices=list(_PROMPT_CHOICES), default="1")
    return _PROMPT_CHOICES[choice]


def create_cluster(cluster_cfg: ClusterConfig, on_existing: ExistingClusterPolicy = ExistingClusterPolicy.ASK) -> bool:
    """Create the k3d cluster, honouring the policy for an existing one.

    Args:
        cluster_cfg: Cluster configuration including retry count.
        on_existing: What to do if the cluster already exists.

    Returns:
        True if a new cluster was created, False if an existing one is reused.

    Raises:
        RuntimeError: If the user aborts or the existing cluster is unusable.
        sh.ErrorReturnCode: If the cluster cannot be created after all retries.
    """
    console.print(Panel.fit(f"Creating k3d cluster: {cluster_cfg.cluster_name}", style="bold blue"))

    if cluster_exists(cluster_cfg.cluster_name):
        console.print(f"[yellow]⚠️  Cluster '{cluster_cfg.cluster_name}' already exists![/yellow]")
        policy = resolve_existing_policy(on_existing)
        if policy is ExistingClusterPolicy.REUSE:
            use_context(cluster_cfg)
            console.print(f"[green]✅ Using existing cluster: {cluster_cfg.cluster_name}[/green]")
            return False
        if policy is ExistingClusterPolicy.ABORT:
            raise RuntimeError(
                f"Cluster '{cluster_cfg.cluster_name}' already exists. Manage it manually with "
                f"'k3d cluster delete {cluster_cfg.cluster_name}' or 'k3d cluster list'"
            )
        delete_cluster(cluster_cfg)

    config_path = ensure_cluster_config(cluster_cfg)

    @retry(
        stop=stop_after_attempt(cluster_cfg.max_retries),
        wait=wait_fixed(CLUSTER_CREATE_RETRY_WAIT_SECONDS),
        reraise=True,
    )
    def _attempt() -> None:
        if cluster_exists(cluster_cfg.cluster_name):
            sh.k3d("cluster", "delete", cluster_cfg.cluster_name)
            console.print("[yellow]   Removed partially created cluster[/yellow]")
        sh.k3d("cluster", "create", "--config", str(config_path), "--wait")

    _attempt()
    use_context(cluster_cfg)
    console.print("[green]✅ Cluster created successfully[/green]")
    return True


def wait_for_nodes(timeout: str) -> None:
    """Wait for all nodes to be ready.

    Raises:
        RuntimeError: If nodes are not Ready within *timeout*.
    """
    console.print("[yellow]ℹ️  Waiting for all nodes to be ready...[/yellow]")
    try:
        sh.kubectl("wait", "--for=condition=Ready", "nodes", "--all", f"--timeout={timeout}")
    except sh.ErrorReturnCode as err:
        raise RuntimeError("Cluster nodes are not ready") from err
    console.print("[green]✅ All nodes are ready[/green]")


def ensure_namespace(namespace: str) -> None:
    """Create *namespace* if it does not already exist.

    Raises:
        RuntimeError: If the namespace cannot be created.
    """
    ok, _, stderr = run_kubectl(["create", "namespace", namespace])
    if not ok and "AlreadyExists" not in stderr:
        raise RuntimeError(f"Failed to create namespace {namespace}: {stderr}")


def smoke_test(namespace: str, timeout: str) -> None:
    """Run a throwaway pod to prove the cluster can schedule and pull images.

    Raises:
        RuntimeError: If the pod does not become Ready.
    """
    console.print("[yellow]ℹ️  Testing basic cluster functionality...[/yellow]")
    run_kubectl(["delete", "pod", SMOKE_TEST_POD, "-n", namespace, "--ignore-not-found=true"])
    try:
        sh.kubectl("run", SMOKE_TEST_POD, f"--image={SMOKE_TEST_IMAGE}", "--restart=Never", "-n", namespace)
        sh.kubectl("wait", "--for=condition=Ready", f"pod/{SMOKE_TEST_POD}", "-n", namespace, f"--timeout={timeout}")
    except sh.ErrorReturnCode as err:
        raise RuntimeError("Basic functionality test failed: test pod did not become ready") from err
    finally:
        run_kubectl(["delete", "pod", SMOKE_TEST_POD, "-n", namespace, "--ignore-not-found=true"])
    console.print("[green]✅ Basic functionality test passed[/green]")


def validate_cluster(cluster_cfg: ClusterConfig) -> None:
    """Check nodes, create the demo namespace, and run the smoke test.

    Args:
        cluster_cfg: Cluster configuration with namespace and timeouts.
    """
    console.print(Panel.fit("Validating cluster setup", style="bold blue"))
    wait_for_nodes(cluster_cfg.node_ready_timeout)
    ensure_namespace(cluster_cfg.namespace)
    smoke_test(cluster_cfg.namespace, cluster_cfg.node_ready_timeout)

    console.print(f"  Cluster Name:       {cluster_cfg.cluster_name}")
    console.print(f"  Context:            {cluster_cfg.context}")
    console.print(f"  API Server:         https://127.0.0.1:{cluster_cfg.api_port}")
    console.print(f"  LoadBalancer Ports: {', '.join(str(p) for p in LB_PORTS)}")
    console.print(f"  Demo Namespace:     {cluster_cfg.namespace}")


# ============================================================================
# Image import
# ============================================================================

def server_node_containers(cluster_name: str) -> list[str]:
    """Return the container names of the cluster's server nodes."""
    ok, stdout, _ = run_command(["k3d", "node", "list", "-o", "json"])
    if not ok:
        return []
    try:
        nodes = json.loads(stdout or "[]")
    except json.JSONDecodeError:
        return []
    prefix = f"k3d-{cluster_name}-"
    return [n["name"] for n in nodes if n.get("role") == "server" and n.get("name", "").startswith(prefix)]


def remove_cached_image(cluster_name: str, image: str) -> None:
    """Remove *image* from each server node's containerd cache.

    A fresh import is otherwise shadowed by the cached copy with the same tag.
    """
    nodes = server_node_containers(cluster_name)
    if not nodes:
        return
    client = docker.from_env()
    try:
        for node in nodes:
            console.print(f"[yellow]   Removing image from node: {node}[/yellow]")
            try:
                client.containers.get(node).exec_run(["crictl", "rmi", image])
            except docker.errors.APIError as e:
                logger.debug("crictl rmi on %s failed: %s", node, e)
    finally:
        client.close()


def import_image(cluster_name: str, image: str) -> None:
    """Import a locally built image into the k3d cluster."""
    console.print(f"[yellow]ℹ️  Importing {image} into k3d cluster...[/yellow]")
    sh.k3d("image", "import", image, "--cluster", cluster_name)
    console.print("[green]✅ Image imported[/green]")
