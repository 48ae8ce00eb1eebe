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

"""Composite setup subcommands (all, validate, clean)."""

from __future__ import annotations

import typer

from workshop_manager.config import ExistingClusterPolicy, SetupOptions
from workshop_manager.orchestrator import WorkshopConfigs, cleanup, run_full_setup
from workshop_manager.validation import run_validation

app = typer.Typer(help="Composite setup workflows.")


@app.command("all")
def all_(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
    skip_cluster: bool = typer.Option(False, "--skip-cluster", help="Skip tools and cluster creation"),
    skip_ollama: bool = typer.Option(False, "--skip-ollama", help="Skip Ollama installation and model pulls"),
    skip_k8sgpt: bool = typer.Option(False, "--skip-k8sgpt", help="Skip K8sGPT installation"),
    skip_demo: bool = typer.Option(False, "--skip-demo", help="Skip demo app deployment and guides"),
    skip_validation: bool = typer.Option(False, "--skip-validation", help="Skip the final validation report"),
    on_existing: ExistingClusterPolicy = typer.Option(
        ExistingClusterPolicy.ASK, "--on-existing", help="What to do if the cluster already exists"),
) -> None:
    """Full workshop setup: tools, cluster, Ollama, K8sGPT, demo app, validation.

    Use --skip-* flags to opt out of individual phases.
    """
    run_full_setup(SetupOptions(
        skip_cluster=skip_cluster,
        skip_ollama=skip_ollama,
        skip_k8sgpt=skip_k8sgpt,
        skip_demo=skip_demo,
        skip_validation=skip_validation,
        on_existing=on_existing,
        assume_yes=yes,
    ))


@app.command("validate")
def validate() -> None:
    """Validate the whole environment and print a report."""
    configs = WorkshopConfigs()
    report = run_validation(configs.cluster, configs.ollama, configs.k8sgpt, configs.demo)
    if not report.ok:
        raise typer.Exit(code=1)


@app.command("clean")
def clean() -> None:
    """Delete the cluster and stop Ollama."""
    cleanup()
