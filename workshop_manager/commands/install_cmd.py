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

"""Install subcommands (tools, ollama, k8sgpt)."""

from __future__ import annotations

import typer

from workshop_manager.orchestrator import WorkshopConfigs, run_k8sgpt_setup, run_ollama_setup
from workshop_manager.tools import install_tools

app = typer.Typer(help="Install workshop components.")


@app.command("tools")
def tools() -> None:
    """Install kubectl, k3d, and kubecolor."""
    install_tools()


@app.command("ollama")
def ollama(
    models: list[str] | None = typer.Option(
        None, "--model", help="Model to pull (repeatable, overrides the default list)"),
) -> None:
    """Install Ollama, start it, and pull models."""
    configs = WorkshopConfigs()
    if models:
        configs.ollama = configs.ollama.model_copy(update={"models": models})
    run_ollama_setup(configs.ollama, configs.demo)


@app.command("k8sgpt")
def k8sgpt(
    model: str | None = typer.Option(None, "--model", help="Ollama model for the K8sGPT backend"),
    skip_smoke_test: bool = typer.Option(
        False, "--skip-smoke-test", help="Skip the broken-deployment analysis test"),
) -> None:
    """Install K8sGPT and configure the Ollama backend."""
    run_k8sgpt_setup(WorkshopConfigs(), model=model, run_smoke_test=not skip_smoke_test)
