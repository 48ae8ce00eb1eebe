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

"""Failure scenarios: inject, fix, and clean up demo faults."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

import sh
from rich.table import Table

from workshop_manager import console
from workshop_manager.constants import NS_DEMO, SCENARIOS_DIR


class ScenarioAction(str, Enum):
    """What to do with a scenario."""

    DEPLOY = "deploy"
    FIX = "fix"
    CLEAN = "clean"


@dataclass(frozen=True)
class Scenario:
    """A canned fault and its repair.

    Attributes:
        number: Scenario number used on the command line.
        title: Short name of the fault.
        description: What the error manifest breaks.
    """

    number: int
    title: str
    description: str

    @property
    def directory(self) -> Path:
        return SCENARIOS_DIR / f"scenario-{self.number}"

    @property
    def error_manifest(self) -> Path:
        return self.directory / f"error_{self.number}.yaml"

    @property
    def fix_manifest(self) -> Path:
        return self.directory / f"fix_{self.number}.yaml"

    def files_present(self) -> bool:
        return self.error_manifest.is_file() and self.fix_manifest.is_file()


SCENARIOS: dict[int, Scenario] = {
    s.number: s
    for s in (
        Scenario(1, "ImagePullBackOff", "Deploying app with non-existent image"),
        Scenario(2, "Service Mismatch", "Deploying app with wrong service selector"),
        Scenario(3, "Resource Limits", "Deploying app with insufficient resources"),
    )
}


def get_scenario(number: int) -> Scenario:
    """Look up a scenario by number.

    Raises:
        ValueError: If no scenario has this number.
    """
    try:
        return SCENARIOS[number]
    except KeyError:
        valid = ", ".join(str(n) for n in SCENARIOS)
        raise ValueError(f"Invalid scenario number: {number} (valid: {valid})") from None


def _apply(manifest: Path, namespace: str) -> None:
    if not manifest.is_file():
        raise RuntimeError(f"Scenario manifest not found: {manifest}")
    # Manifests carry no namespace of their own.
    sh.kubectl("apply", "-n", namespace, "-f", str(manifest))


def deploy_scenario(number: int, namespace: str = NS_DEMO) -> Scenario:
    """Apply the scenario's error manifest."""
    scenario = get_scenario(number)
    console.print(f"[yellow]ℹ️  Scenario {number}: {scenario.title} - {scenario.description}[/yellow]")
    _apply(scenario.error_manifest, namespace)
    console.print(f"[green]✅ Scenario {number} deployed[/green]")
    console.print(f"[yellow]ℹ️  Wait a few moments, then run: k8sgpt analyze --namespace {namespace} --explain[/yellow]")
    return scenario


def fix_scenario(number: int, namespace: str = NS_DEMO) -> Scenario:
    """Apply the scenario's fix manifest."""
    scenario = get_scenario(number)
    console.print(f"[yellow]ℹ️  Applying fix for scenario {number}...[/yellow]")
    _apply(scenario.fix_manifest, namespace)
    console.print(f"[green]✅ Fix applied for scenario {number}[/green]")
    return scenario


def clean_scenario(number: int, namespace: str = NS_DEMO) -> Scenario:
    """Delete every deployment, service, and ingress in the demo namespace."""
    scenario = get_scenario(number)
    console.print(f"[yellow]ℹ️  Cleaning up scenario {number}...[/yellow]")
    sh.kubectl("delete", "deployment,service,ingress", "--all", "-n", namespace, "--ignore-not-found=true")
    console.print(f"[green]✅ Scenario {number} cleaned up[/green]")
    return scenario


_ACTIONS = {
    ScenarioAction.DEPLOY: deploy_scenario,
    ScenarioAction.FIX: fix_scenario,
    ScenarioAction.CLEAN: clean_scenario,
}


def run_scenario(number: int, action: ScenarioAction | str = ScenarioAction.DEPLOY, namespace: str = NS_DEMO) -> Scenario:
    """Dispatch *action* for scenario *number*.

    Raises:
        ValueError: If the scenario number or action is unknown.
    """
    try:
        action = ScenarioAction(action)
    except ValueError:
        valid = ", ".join(a.value for a in ScenarioAction)
        raise ValueError(f"Invalid action: {action} (valid: {valid})") from None
    return _ACTIONS[action](number, namespace)


def verify_files() -> dict[int, bool]:
    """Report, per scenario, whether both manifests are present."""
    results = {number: s.files_present() for number, s in SCENARIOS.items()}
    for number, present in results.items():
        if present:
            console.print(f"[green]✅ Scenario {number} files found[/green]")
        else:
            console.print(f"[yellow]⚠️  Scenario {number} files missing[/yellow]")
    return results


def scenario_table() -> Table:
    """Render the scenario list as a table."""
    table = Table(title="Failure scenarios")
    table.add_column("#", justify="right")
    table.add_column("Scenario")
    table.add_column("Description")
    for scenario in SCENARIOS.values():
        table.add_row(str(scenario.number), scenario.title, scenario.description)
    return table
