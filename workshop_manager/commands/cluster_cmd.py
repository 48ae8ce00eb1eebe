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

"""Cluster subcommands (create, delete)."""

from __future__ import annotations

import typer

from workshop_manager.cluster import create_cluster, delete_cluster, validate_cluster
from workshop_manager.config import ClusterConfig, ExistingClusterPolicy

app = typer.Typer(help="Manage the k3d workshop cluster.")


def _cluster_config(name: str | None, agents: int | None = None) -> ClusterConfig:
    cluster_cfg = ClusterConfig()
    overrides: dict = {}
    if name is not None:
        overrides["cluster_name"] = name
    if agents is not None:
        overrides["agents"] = agents
    if overrides:
        cluster_cfg = cluster_cfg.model_copy(update=overrides)
    return cluster_cfg


@app.command("create")
def create(
    name: str | None = typer.Option(None, "--name", help="k3d cluster name"),
    agents: int | None = typer.Option(None, "--agents", help="Number of agent nodes"),
    on_existing: ExistingClusterPolicy = typer.Option(
        ExistingClusterPolicy.ASK, "--on-existing", help="What to do if the cluster already exists"),
    skip_validation: bool = typer.Option(
        False, "--skip-validation", help="Skip node checks and the smoke test"),
) -> None:
    """Create the k3d cluster and validate it."""
    cluster_cfg = _cluster_config(name, agents)
    create_cluster(cluster_cfg, on_existing)
    if not skip_validation:
        validate_cluster(cluster_cfg)


@app.command("delete")
def delete(
    name: str | None = typer.Option(None, "--name", help="k3d cluster name"),
) -> None:
    """Delete the k3d cluster."""
    delete_cluster(_cluster_config(name))
