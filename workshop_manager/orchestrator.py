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

"""Orchestration functions that compose domain modules into workflows."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from rich.panel import Panel
from rich.prompt import Confirm

from workshop_manager import console, logger
from workshop_manager import demo, guides, k8sgpt, scenarios
from workshop_manager.cluster import (
    cluster_exists,
    create_cluster,
    delete_cluster,
    resolve_existing_policy,
    validate_cluster,
)
from workshop_manager.config import (
    ClusterConfig,
    DemoConfig,
    ExistingClusterPolicy,
    K8sGPTConfig,
    OllamaConfig,
    SetupOptions,
)
from workshop_manager.constants import K8SGPT_ISSUE_SETTLE_SECONDS
from workshop_manager.ollama import load_models, start_service, stop_ollama
from workshop_manager.prerequisites import check_prerequisites
from workshop_manager.tools import install_tools
from workshop_manager.validation import run_validation


@dataclass
class WorkshopConfigs:
    """The four settings groups, loaded together from the environment."""

    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    ollama: OllamaConfig = field(default_factory=OllamaConfig)
    k8sgpt: K8sGPTConfig = field(default_factory=K8sGPTConfig)
    demo: DemoConfig = field(default_factory=DemoConfig)


@dataclass
class SetupState:
    """What a full setup run has brought up, so a failure only tears that down."""

    cluster_created: bool = False
    ollama_started: bool = False


# ============================================================================
# Internal helpers
# ============================================================================


def _run_parallel(tasks: dict[str, Callable[[], None]]) -> None:
    """Run tasks in parallel, printing each task's output as a clean block.

    Args:
        tasks: Mapping of task name to callable.

    Raises:
        Exception: Re-raises the first exception from any failed task.
    """
    if not tasks:
        return

    outputs: dict[str, str] = {}
    lock = threading.Lock()

    def _run_task(name: str, fn: Callable) -> None:
        with console.buffered() as buf:
            try:
                fn()
            finally:
                with lock:
                    outputs[name] = buf.getvalue()

    try:
        with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
            futures = {executor.submit(_run_task, name, fn): name for name, fn in tasks.items()}
            for future in as_completed(futures):
                future.result()
    finally:
        for name in tasks:
            if outputs.get(name):
                console.print(outputs[name], end="")


def _confirm_start(options: SetupOptions) -> None:
    console.print(Panel.fit(
        "K8sGPT Workshop Setup\n"
        "This will install the workshop tools, create a k3d cluster,\n"
        "start Ollama with local models, configure K8sGPT, and deploy the demo app.",
        style="bold blue",
    ))
    if options.assume_yes:
        return
    if not Confirm.ask("Proceed with the setup?", default=True):
        raise RuntimeError("Setup cancelled by user")


def _resolve_cluster_policy(cluster_cfg: ClusterConfig, policy: ExistingClusterPolicy) -> ExistingClusterPolicy:
    """Ask about an existing cluster up front; the cluster task runs with buffered output."""
    if policy is ExistingClusterPolicy.ASK and cluster_exists(cluster_cfg.cluster_name):
        console.print(f"[yellow]⚠️  Cluster '{cluster_cfg.cluster_name}' already exists![/yellow]")
        return resolve_existing_policy(policy)
    return policy


def run_cluster_setup(
    cluster_cfg: ClusterConfig,
    on_existing: ExistingClusterPolicy,
    state: SetupState | None = None,
) -> None:
    """Install tools, create the cluster, and validate it.

    Args:
        cluster_cfg: Cluster configuration.
        on_existing: What to do if the cluster already exists.
        state: Records whether a new cluster was created; a reused one is not.
    """
    install_tools()
    created = create_cluster(cluster_cfg, on_existing)
    if state is not None:
        state.cluster_created = created
    validate_cluster(cluster_cfg)


def run_ollama_setup(ollama_cfg: OllamaConfig, demo_cfg: DemoConfig, state: SetupState | None = None) -> None:
    """Set up Ollama and write the service information file."""
    client = start_service(ollama_cfg)
    if state is not None:
        state.ollama_started = True
    load_models(client, ollama_cfg)
    guides.write_ollama_service_info(ollama_cfg, client.model_names(), demo_cfg.output_dir)


def run_k8sgpt_setup(configs: WorkshopConfigs, model: str | None = None, run_smoke_test: bool = True) -> None:
    """Install and configure K8sGPT, then write its usage guide."""
    k8sgpt_cfg = configs.k8sgpt
    if model is not None:
        k8sgpt_cfg = k8sgpt_cfg.model_copy(update={"default_model": model})
    k8sgpt.setup_k8sgpt(k8sgpt_cfg, configs.ollama, configs.demo.namespace, run_smoke_test=run_smoke_test)
    guides.write_k8sgpt_usage_guide(k8sgpt_cfg, configs.ollama, configs.demo.namespace, configs.demo.output_dir)


def _check_demo_workflow(configs: WorkshopConfigs) -> None:
    """Break the demo with scenario 1, let K8sGPT look at it, and clean up."""
    console.print(Panel.fit("Testing demo workflow", style="bold blue"))
    namespace = configs.demo.namespace
    scenarios.deploy_scenario(1, namespace)
    try:
        time.sleep(K8SGPT_ISSUE_SETTLE_SECONDS)
        ok, output = k8sgpt.analyze(namespace, timeout=configs.k8sgpt.analyze_timeout)
        console.print(output, markup=False)
        if ok:
            console.print("[green]✅ Demo workflow test completed[/green]")
        else:
            console.print("[yellow]⚠️  K8sGPT analysis did not finish (slow models can time out)[/yellow]")
    finally:
        scenarios.clean_scenario(1, namespace)
    # Cleaning scenario 1 removes every deployment in the namespace.
    demo.deploy(configs.demo)


def run_demo_setup(configs: WorkshopConfigs, skip_build: bool = False) -> None:
    """Build and deploy the demo app, then prepare the scenarios and guides."""
    demo.build_and_deploy(configs.demo, configs.cluster.cluster_name, skip_build=skip_build)
    demo.ensure_host_entry(configs.demo.hostname)
    if not demo.app_reachable(configs.demo.url):
        console.print(f"[yellow]⚠️  Demo app not reachable at {configs.demo.url} yet[/yellow]")
    missing = [n for n, present in scenarios.verify_files().items() if not present]
    if missing:
        raise RuntimeError(f"Scenario manifests missing for: {', '.join(str(n) for n in missing)}")
    _check_demo_workflow(configs)
    guides.write_demo_guides(configs.cluster, configs.demo, configs.ollama, configs.k8sgpt)


def _print_next_steps(configs: WorkshopConfigs) -> None:
    console.print(Panel.fit("🎉 Workshop environment is ready", style="bold green"))
    console.print("Next steps:")
    console.print("  1. Validate:       workshop-manager setup validate")
    console.print("  2. Break the demo: workshop-manager scenario run 1")
    console.print(f"  3. Analyze:        k8sgpt analyze --namespace {configs.demo.namespace} --explain")
    console.print("  4. Fix it:         workshop-manager scenario run 1 fix")
    console.print(f"  Demo app:          {configs.demo.url}")
    console.print(f"  Guides:            {configs.demo.output_dir.resolve()}")


# ============================================================================
# Public API
# ============================================================================


def cleanup(configs: WorkshopConfigs | None = None, *, cluster: bool = True, ollama: bool = True) -> None:
    """Delete the workshop cluster and stop Ollama."""
    configs = configs or WorkshopConfigs()
    console.print(Panel.fit("Cleaning up workshop environment", style="bold blue"))
    if cluster:
        delete_cluster(configs.cluster)
    if ollama:
        stop_ollama()
    console.print("[green]✅ Cleanup completed[/green]")


def run_full_setup(options: SetupOptions, configs: WorkshopConfigs | None = None) -> None:
    """Run the whole workshop setup, cleaning up if any phase fails.

    Args:
        options: Which phases to skip and how to treat an existing cluster.
        configs: Settings groups, or None to load them from the environment.

    Raises:
        RuntimeError: If any phase fails; whatever this run brought up is
            torn down first. A reused cluster is left alone.
    """
    configs = configs or WorkshopConfigs()
    _confirm_start(options)
    start = time.monotonic()
    state = SetupState()

    try:
        check_prerequisites(assume_yes=options.assume_yes)

        parallel_tasks: dict[str, Callable[[], None]] = {}
        if not options.skip_cluster:
            policy = _resolve_cluster_policy(configs.cluster, options.on_existing)
            parallel_tasks["cluster"] = lambda: run_cluster_setup(configs.cluster, policy, state)
        if not options.skip_ollama:
            parallel_tasks["ollama"] = lambda: run_ollama_setup(configs.ollama, configs.demo, state)
        _run_parallel(parallel_tasks)

        if not options.skip_k8sgpt:
            run_k8sgpt_setup(configs)
        if not options.skip_demo:
            run_demo_setup(configs)
    except Exception:
        console.print("[red]❌ Setup failed[/red]")
        if state.cluster_created or state.ollama_started:
            console.print("[yellow]ℹ️  Cleaning up what this run created...[/yellow]")
            try:
                cleanup(configs, cluster=state.cluster_created, ollama=state.ollama_started)
            except Exception as cleanup_err:
                logger.warning("Cleanup after failed setup also failed: %s", cleanup_err)
        raise

    if not options.skip_validation:
        report = run_validation(configs.cluster, configs.ollama, configs.k8sgpt, configs.demo)
        if not report.ok:
            console.print("[yellow]⚠️  Validation reported failures; review the report above[/yellow]")

    elapsed = int(time.monotonic() - start)
    console.print(f"[green]✅ Setup finished in {elapsed // 60}m {elapsed % 60}s[/green]")
    _print_next_steps(configs)
