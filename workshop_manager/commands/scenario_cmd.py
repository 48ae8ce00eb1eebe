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

"""Failure scenario subcommands (list, run)."""

from __future__ import annotations

import typer

from workshop_manager import console
from workshop_manager.config import DemoConfig
from workshop_manager.scenarios import ScenarioAction, run_scenario, scenario_table

app = typer.Typer(help="Inject, fix, and clean up demo failure scenarios.")


@app.command("list")
def list_scenarios() -> None:
    """List the available scenarios."""
    console.print(scenario_table())


@app.command("run")
def run(
    number: int = typer.Argument(..., help="Scenario number"),
    action: ScenarioAction = typer.Argument(ScenarioAction.DEPLOY, help="deploy, fix, or clean"),
) -> None:
    """Deploy, fix, or clean scenario NUMBER."""
    run_scenario(number, action, DemoConfig().namespace)
