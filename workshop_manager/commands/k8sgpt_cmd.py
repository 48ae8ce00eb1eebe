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

"""K8sGPT subcommands (switch-model, analyze, auth)."""

from __future__ import annotations

import typer

from workshop_manager import console
from workshop_manager.config import DemoConfig, K8sGPTConfig, OllamaConfig
from workshop_manager.k8sgpt import analyze as run_analyze
from workshop_manager.k8sgpt import auth_list, switch_model as run_switch_model

app = typer.Typer(help="Work with the K8sGPT Ollama backend.")


@app.command("switch-model")
def switch_model(
    model: str = typer.Argument(..., help="Ollama model, e.g. llama2:13b"),
) -> None:
    """Point K8sGPT at another Ollama model."""
    run_switch_model(K8sGPTConfig(), OllamaConfig(), model)


@app.command("analyze")
def analyze(
    namespace: str | None = typer.Option(None, "--namespace", help="Namespace (defaults to the demo namespace)"),
    explain: bool = typer.Option(False, "--explain", help="Ask the model to explain each finding"),
    filters: list[str] | None = typer.Option(None, "--filter", help="Analyzer filter, e.g. Pod (repeatable)"),
    all_namespaces: bool = typer.Option(False, "--all-namespaces", help="Analyze the whole cluster"),
) -> None:
    """Run k8sgpt analyze against the cluster."""
    k8sgpt_cfg = K8sGPTConfig()
    if not all_namespaces:
        namespace = namespace or DemoConfig().namespace
    else:
        namespace = None
    ok, output = run_analyze(namespace, explain=explain, filters=filters, timeout=k8sgpt_cfg.analyze_timeout)
    console.print(output, markup=False)
    if not ok:
        raise RuntimeError("k8sgpt analyze failed or timed out")


@app.command("auth")
def auth() -> None:
    """Show the configured K8sGPT backends."""
    console.print(auth_list(), markup=False)
