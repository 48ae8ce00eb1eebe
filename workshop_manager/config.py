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

"""Configuration classes and config models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from workshop_manager.constants import (
    DEFAULT_AGENTS,
    DEFAULT_API_PORT,
    DEFAULT_CLUSTER_CREATE_MAX_RETRIES,
    DEFAULT_CLUSTER_NAME,
    DEFAULT_DEMO_APP_NAME,
    DEFAULT_DEMO_HOSTNAME,
    DEFAULT_DEMO_IMAGE_TAG,
    DEFAULT_K3D_CONFIG_FILE,
    DEFAULT_K3S_IMAGE,
    DEFAULT_K8SGPT_ANALYZE_TIMEOUT,
    DEFAULT_K8SGPT_MODEL,
    DEFAULT_NODE_READY_TIMEOUT,
    DEFAULT_OLLAMA_BIND_HOST,
    DEFAULT_OLLAMA_MODELS,
    DEFAULT_OLLAMA_REQUEST_TIMEOUT,
    DEFAULT_OLLAMA_STARTUP_ATTEMPTS,
    DEFAULT_OLLAMA_STARTUP_INTERVAL_SECONDS,
    DEFAULT_OLLAMA_URL,
    DEFAULT_ROLLOUT_TIMEOUT,
    K3D_CONTEXT_PREFIX,
    K8SGPT_BACKEND,
    NS_DEMO,
)

_DURATION_PATTERN = r"^\d+[smh]$"


# ============================================================================
# Configuration classes
# ============================================================================

class ClusterConfig(BaseSettings):
    """k3d cluster configuration, auto-loaded from WORKSHOP_* env vars.

    Attributes:
        cluster_name: Name of the k3d cluster.
        api_port: Host port the Kubernetes API server is published on.
        agents: Number of agent (worker) nodes to create.
        k3s_image: K3s Docker image to use.
        max_retries: Maximum cluster creation retry attempts.
        node_ready_timeout: kubectl wait timeout for nodes and the smoke-test pod.
        namespace: Namespace the demo workloads run in.
        config_file: Path of the k3d Simple config file (written if missing).
    """

    model_config = SettingsConfigDict(env_prefix="WORKSHOP_", extra="ignore")

    cluster_name: str = Field(default=DEFAULT_CLUSTER_NAME, pattern=r"^[a-z0-9][a-z0-9-]*$")
    api_port: int = Field(default=DEFAULT_API_PORT, ge=1, le=65535)
    agents: int = Field(default=DEFAULT_AGENTS, ge=0, le=10)
    k3s_image: str = DEFAULT_K3S_IMAGE
    max_retries: int = Field(default=DEFAULT_CLUSTER_CREATE_MAX_RETRIES, ge=1, le=10)
    node_ready_timeout: str = Field(default=DEFAULT_NODE_READY_TIMEOUT, pattern=_DURATION_PATTERN)
    namespace: str = NS_DEMO
    config_file: Path = Path(DEFAULT_K3D_CONFIG_FILE)

    @property
    def context(self) -> str:
        """kubectl context name k3d registers for this cluster."""
        return f"{K3D_CONTEXT_PREFIX}{self.cluster_name}"


class OllamaConfig(BaseSettings):
    """Ollama service configuration, auto-loaded from WORKSHOP_OLLAMA_* env vars.

    Attributes:
        bind_host: Address ``ollama serve`` listens on (``OLLAMA_HOST``).
        url: Base URL clients use to reach the API.
        models: Models to pull, in order.
        config_dir: Ollama configuration and log directory.
        startup_attempts: Number of readiness polls after starting the service.
        startup_interval: Seconds between readiness polls.
        request_timeout: Timeout in seconds for generate requests.
    """

    model_config = SettingsConfigDict(env_prefix="WORKSHOP_OLLAMA_", extra="ignore")

    bind_host: str = DEFAULT_OLLAMA_BIND_HOST
    url: str = Field(default=DEFAULT_OLLAMA_URL, pattern=r"^https?://")
    models: list[str] = Field(default_factory=lambda: list(DEFAULT_OLLAMA_MODELS), min_length=1)
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".ollama")
    startup_attempts: int = Field(default=DEFAULT_OLLAMA_STARTUP_ATTEMPTS, ge=1)
    startup_interval: float = Field(default=DEFAULT_OLLAMA_STARTUP_INTERVAL_SECONDS, ge=0)
    request_timeout: int = Field(default=DEFAULT_OLLAMA_REQUEST_TIMEOUT, ge=1)


class K8sGPTConfig(BaseSettings):
    """K8sGPT configuration, auto-loaded from WORKSHOP_K8SGPT_* env vars.

    Attributes:
        backend: K8sGPT AI backend name.
        default_model: Model K8sGPT is configured with.
        config_dir: K8sGPT configuration directory.
        analyze_timeout: Seconds before an ``analyze`` run is abandoned.
    """

    model_config = SettingsConfigDict(env_prefix="WORKSHOP_K8SGPT_", extra="ignore")

    backend: str = K8SGPT_BACKEND
    default_model: str = DEFAULT_K8SGPT_MODEL
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".k8sgpt")
    analyze_timeout: int = Field(default=DEFAULT_K8SGPT_ANALYZE_TIMEOUT, ge=1)


class DemoConfig(BaseSettings):
    """Demo application configuration, auto-loaded from WORKSHOP_DEMO_* env vars.

    Attributes:
        app_name: Name of the Deployment, Service, Ingress, and image.
        image_tag: Tag of the demo image.
        hostname: Ingress host name added to /etc/hosts.
        namespace: Namespace the demo app runs in.
        rollout_timeout: Timeout for the deployment to become Available.
        output_dir: Directory generated guides are written to.
    """

    model_config = SettingsConfigDict(env_prefix="WORKSHOP_DEMO_", extra="ignore")

    app_name: str = DEFAULT_DEMO_APP_NAME
    image_tag: str = DEFAULT_DEMO_IMAGE_TAG
    hostname: str = DEFAULT_DEMO_HOSTNAME
    namespace: str = NS_DEMO
    rollout_timeout: str = Field(default=DEFAULT_ROLLOUT_TIMEOUT, pattern=_DURATION_PATTERN)
    output_dir: Path = Path(".")

    @property
    def image(self) -> str:
        """Full image reference of the demo app."""
        return f"{self.app_name}:{self.image_tag}"

    @property
    def url(self) -> str:
        """URL the demo app is served on through the ingress."""
        return f"http://{self.hostname}"


# ============================================================================
# Setup options
# ============================================================================

class ExistingClusterPolicy(str, Enum):
    """What to do when the k3d cluster already exists."""

    RECREATE = "recreate"
    REUSE = "reuse"
    ABORT = "abort"
    ASK = "ask"


@dataclass(frozen=True)
class SetupOptions:
    """Options for the full workshop setup.

    Attributes:
        skip_cluster: Skip tool installation and cluster creation.
        skip_ollama: Skip Ollama installation and model pulls.
        skip_k8sgpt: Skip K8sGPT installation and configuration.
        skip_demo: Skip demo app build, deploy, and guide generation.
        skip_validation: Skip the final validation report.
        on_existing: Policy for an already existing cluster.
        assume_yes: Answer yes to confirmation prompts.
    """

    skip_cluster: bool = False
    skip_ollama: bool = False
    skip_k8sgpt: bool = False
    skip_demo: bool = False
    skip_validation: bool = False
    on_existing: ExistingClusterPolicy = ExistingClusterPolicy.ASK
    assume_yes: bool = False
