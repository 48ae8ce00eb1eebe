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

"""
cli.py - Command line interface for the K8sGPT workshop environment.

Subcommands:
    cluster    Create or delete the k3d cluster
    install    Install tools, Ollama, or K8sGPT
    demo       Build and deploy the demo application
    scenario   Inject, fix, and clean up failure scenarios
    k8sgpt     Switch models and run analyses
    setup      Composite workflows (all, validate, clean)

Examples:
    # Full setup without prompts
    workshop-manager setup all --yes

    # Break the demo app, then fix it
    workshop-manager scenario run 1
    workshop-manager scenario run 1 fix

    # Use a different model for K8sGPT
    workshop-manager k8sgpt switch-model llama2:13b

For detailed usage information, run: workshop-manager --help
"""

from __future__ import annotations

import logging
import sys

import typer

from workshop_manager import console
from workshop_manager.commands import (
    cluster_cmd,
    demo_cmd,
    install_cmd,
    k8sgpt_cmd,
    scenario_cmd,
    setup_cmd,
)

app = typer.Typer(
    help="Set up and drive a local K8sGPT + Ollama workshop environment.",
    no_args_is_help=True,
)


@app.callback()
def _main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Initialize logging for all subcommands."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )


app.add_typer(cluster_cmd.app, name="cluster")
app.add_typer(install_cmd.app, name="install")
app.add_typer(demo_cmd.app, name="demo")
app.add_typer(scenario_cmd.app, name="scenario")
app.add_typer(k8sgpt_cmd.app, name="k8sgpt")
app.add_typer(setup_cmd.app, name="setup")


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]❌ {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
