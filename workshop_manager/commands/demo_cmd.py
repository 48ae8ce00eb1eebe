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

"""Demo application subcommands (deploy, setup)."""

from __future__ import annotations

import typer

from workshop_manager.config import DemoConfig
from workshop_manager.demo import build_and_deploy
from workshop_manager.orchestrator import WorkshopConfigs, run_demo_setup

app = typer.Typer(help="Build and deploy the demo application.")


@app.command("deploy")
def deploy(
    skip_build: bool = typer.Option(False, "--skip-build", help="Deploy the existing image without rebuilding"),
    tag: str | None = typer.Option(None, "--tag", help="Image tag"),
) -> None:
    """Build the demo image, import it into the cluster, and deploy it."""
    configs = WorkshopConfigs()
    demo_cfg: DemoConfig = configs.demo
    if tag is not None:
        demo_cfg = demo_cfg.model_copy(update={"image_tag": tag})
    build_and_deploy(demo_cfg, configs.cluster.cluster_name, skip_build=skip_build)


@app.command("setup")
def setup(
    skip_build: bool = typer.Option(False, "--skip-build", help="Deploy the existing image without rebuilding"),
) -> None:
    """Deploy the demo app, add the host entry, test the workflow, and write guides."""
    run_demo_setup(WorkshopConfigs(), skip_build=skip_build)
