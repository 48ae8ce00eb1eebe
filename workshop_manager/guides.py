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

"""Generated workshop guides and service information files."""

from __future__ import annotations

from pathlib import Path
from string import Template

from workshop_manager import console
from workshop_manager.config import ClusterConfig, DemoConfig, K8sGPTConfig, OllamaConfig
from workshop_manager.constants import (
    DEMO_GUIDE_FILE,
    K8SGPT_USAGE_GUIDE_FILE,
    OLLAMA_LOG_FILE,
    OLLAMA_SERVICE_INFO_FILE,
    QUICK_REFERENCE_FILE,
)
from workshop_manager.scenarios import SCENARIOS

_DEMO_GUIDE = Template("""\
# K8sGPT Workshop Demo Guide

## Environment

| Component | Value |
|-----------|-------|
| Cluster | `$cluster_name` (context `$context`) |
| Demo namespace | `$namespace` |
| Demo app | $app_url |
| Ollama API | $ollama_url |
| K8sGPT model | `$model` |

## Before the demo

```bash
workshop-manager setup validate
watch kubectl get pods -n $namespace
```

## Scenarios

$scenario_sections
## Switching models

```bash
workshop-manager k8sgpt switch-model llama2:13b
k8sgpt auth list
```

## Troubleshooting

```bash
# Demo app not reachable through the ingress
kubectl get ingress,svc -n $namespace
kubectl port-forward svc/$app_name 8080:80 -n $namespace

# Ollama not answering
curl -s $ollama_url/api/tags

# Start over
workshop-manager setup clean
workshop-manager setup all
```
""")

_SCENARIO_SECTION = Template("""\
### Scenario $number: $title

$description.

```bash
workshop-manager scenario run $number
k8sgpt analyze --namespace $namespace --explain
workshop-manager scenario run $number fix
workshop-manager scenario run $number clean
```

""")

_QUICK_REFERENCE = Template("""\
# Quick Reference Card

## One-Command Setup
```bash
workshop-manager setup all
```

## Demo Flow
1. **Check**: `workshop-manager setup validate`
2. **Break**: `workshop-manager scenario run 1`
3. **Analyze**: `k8sgpt analyze --namespace $namespace --explain`
4. **Fix**: `workshop-manager scenario run 1 fix`

## Key URLs
- **Demo App**: $app_url
- **Ollama API**: $ollama_url
- **Cluster**: https://127.0.0.1:$api_port

## Emergency Commands
```bash
workshop-manager setup validate
k3d cluster delete $cluster_name
workshop-manager cluster create --on-existing recreate
```
""")

_K8SGPT_USAGE_GUIDE = Template("""\
# K8sGPT Usage Guide

## Quick Commands

```bash
k8sgpt analyze
k8sgpt analyze --namespace $namespace
k8sgpt analyze --explain
k8sgpt analyze --filter Pod
k8sgpt analyze --filter Deployment,Service
k8sgpt analyze --namespace $namespace --filter Pod --explain
```

## Authentication Management

```bash
k8sgpt auth list
workshop-manager k8sgpt switch-model llama2:13b
k8sgpt auth remove --backends $backend
k8sgpt auth add --backend $backend --baseurl $ollama_url --model $model
```

## Available Models

$model_list

## Configuration

- Config Directory: `$config_dir`
- Ollama Service: `$ollama_url`

## Troubleshooting

```bash
# K8sGPT not finding issues: bypass the cache
k8sgpt analyze --no-cache

# Slow analysis: use a smaller model, or skip --explain
workshop-manager k8sgpt switch-model orca-mini:latest
k8sgpt analyze --namespace $namespace
```
""")

_OLLAMA_SERVICE_INFO = Template("""\
=== Ollama Service Information ===
Service URL: $ollama_url
Config Directory: $config_dir
Log File: $log_file

=== API Endpoints ===
List Models: GET $ollama_url/api/tags
Generate: POST $ollama_url/api/generate
Pull Model: POST $ollama_url/api/pull

=== Available Models ===
$model_list

=== Usage Examples ===
# CLI usage
ollama run $model "Explain Docker containers"

# API usage
curl -X POST $ollama_url/api/generate \\
  -H "Content-Type: application/json" \\
  -d '{"model": "$model", "prompt": "What is Kubernetes?", "stream": false}'

=== K8sGPT Integration ===
k8sgpt auth add --backend ollama --baseurl $ollama_url --model $model
k8sgpt auth default --provider ollama
""")


def _write(output_dir: Path, name: str, content: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / name
    path.write_text(content)
    console.print(f"[green]✅ Created {path}[/green]")
    return path


def render_demo_guide(cluster_cfg: ClusterConfig, demo_cfg: DemoConfig, ollama_cfg: OllamaConfig,
                      k8sgpt_cfg: K8sGPTConfig) -> str:
    sections = "".join(
        _SCENARIO_SECTION.substitute(
            number=s.number, title=s.title, description=s.description, namespace=demo_cfg.namespace,
        )
        for s in SCENARIOS.values()
    )
    return _DEMO_GUIDE.substitute(
        cluster_name=cluster_cfg.cluster_name,
        context=cluster_cfg.context,
        namespace=demo_cfg.namespace,
        app_name=demo_cfg.app_name,
        app_url=demo_cfg.url,
        ollama_url=ollama_cfg.url,
        model=k8sgpt_cfg.default_model,
        scenario_sections=sections,
    )


def render_quick_reference(cluster_cfg: ClusterConfig, demo_cfg: DemoConfig, ollama_cfg: OllamaConfig) -> str:
    return _QUICK_REFERENCE.substitute(
        namespace=demo_cfg.namespace,
        app_url=demo_cfg.url,
        ollama_url=ollama_cfg.url,
        api_port=cluster_cfg.api_port,
        cluster_name=cluster_cfg.cluster_name,
    )


def write_demo_guides(cluster_cfg: ClusterConfig, demo_cfg: DemoConfig, ollama_cfg: OllamaConfig,
                      k8sgpt_cfg: K8sGPTConfig) -> list[Path]:
    """Write DEMO_GUIDE.md and QUICK_REFERENCE.md to the demo output directory."""
    return [
        _write(demo_cfg.output_dir, DEMO_GUIDE_FILE,
               render_demo_guide(cluster_cfg, demo_cfg, ollama_cfg, k8sgpt_cfg)),
        _write(demo_cfg.output_dir, QUICK_REFERENCE_FILE,
               render_quick_reference(cluster_cfg, demo_cfg, ollama_cfg)),
    ]


def write_k8sgpt_usage_guide(k8sgpt_cfg: K8sGPTConfig, ollama_cfg: OllamaConfig, namespace: str,
                             output_dir: Path) -> Path:
    """Write the K8sGPT usage guide."""
    content = _K8SGPT_USAGE_GUIDE.substitute(
        namespace=namespace,
        backend=k8sgpt_cfg.backend,
        ollama_url=ollama_cfg.url,
        model=k8sgpt_cfg.default_model,
        model_list="\n".join(f"- `{m}`" for m in ollama_cfg.models),
        config_dir=k8sgpt_cfg.config_dir,
    )
    return _write(output_dir, K8SGPT_USAGE_GUIDE_FILE, content)


def write_ollama_service_info(ollama_cfg: OllamaConfig, available_models: list[str], output_dir: Path) -> Path:
    """Write the Ollama service information file."""
    content = _OLLAMA_SERVICE_INFO.substitute(
        ollama_url=ollama_cfg.url,
        config_dir=ollama_cfg.config_dir,
        log_file=ollama_cfg.config_dir / OLLAMA_LOG_FILE,
        model_list="\n".join(available_models) or "Run 'ollama list' to see models",
        model=ollama_cfg.models[0],
    )
    return _write(output_dir, OLLAMA_SERVICE_INFO_FILE, content)
