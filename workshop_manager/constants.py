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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

# -- Resolved paths --
PACKAGE_DIR = Path(__file__).resolve().parent
MANIFESTS_DIR = PACKAGE_DIR / "manifests"
SCENARIOS_DIR = MANIFESTS_DIR / "scenarios"
DEMO_APP_DIR = PACKAGE_DIR / "demo_app"


def load_dependencies() -> dict:
    """Load pinned versions, images, and models from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = PACKAGE_DIR / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Prerequisites --
MIN_FREE_DISK_GB = 10
SUPPORTED_PLATFORM = "darwin"

# -- Cluster --
K3D_CONFIG_API_VERSION = "k3d.io/v1alpha5"
K3D_CONTEXT_PREFIX = "k3d-"
CLUSTER_CREATE_RETRY_WAIT_SECONDS = 10
SMOKE_TEST_POD = "test-pod"
LB_PORTS = (8080, 80, 443)

# -- Namespaces --
NS_DEMO = "demo"

# -- Ollama --
OLLAMA_DEFAULT_PORT = 11434
OLLAMA_LOG_FILE = "ollama.log"
OLLAMA_CONFIG_FILE = "config.json"
OLLAMA_TAGS_PATH = "/api/tags"
OLLAMA_GENERATE_PATH = "/api/generate"
OLLAMA_PULL_PATH = "/api/pull"
OLLAMA_TEST_PROMPT = "Say hello in one word"
OLLAMA_API_TEST_PROMPT = "What is Kubernetes in one sentence?"
BYTES_PER_GB = 1024 ** 3

# -- K8sGPT --
K8SGPT_BACKEND = "ollama"
K8SGPT_TEST_DEPLOYMENT = "k8sgpt-test"
K8SGPT_ISSUE_SETTLE_SECONDS = 10
K8SGPT_DEFAULT_SECTION = "Default"
K8SGPT_ACTIVE_SECTION = "Active"
K8SGPT_ISSUE_KEYWORDS = ("error", "issue", "problem", "fail")

# -- Demo application --
DEMO_CONTAINER_NAME = "demo-app-container"
DEMO_DEPLOYMENT_MANIFEST = "k8s/deployment.yaml"
HOSTS_FILE = Path("/etc/hosts")
HOST_ENTRY_ADDRESS = "127.0.0.1"

# -- Validation --
VALIDATION_TEST_DEPLOYMENT = "validation-test"
VALIDATION_SETTLE_SECONDS = 5

# -- Generated files --
OLLAMA_SERVICE_INFO_FILE = "ollama-service-info.txt"
K8SGPT_USAGE_GUIDE_FILE = "k8sgpt-usage-guide.md"
DEMO_GUIDE_FILE = "DEMO_GUIDE.md"
QUICK_REFERENCE_FILE = "QUICK_REFERENCE.md"
GENERATED_FILES = (DEMO_GUIDE_FILE, QUICK_REFERENCE_FILE, K8SGPT_USAGE_GUIDE_FILE, OLLAMA_SERVICE_INFO_FILE)

# -- Shell integration --
KUBECOLOR_ALIAS = 'alias kubectl="kubecolor"'

# -- Defaults --
DEFAULT_CLUSTER_NAME = "k8sgpt-workshop"
DEFAULT_API_PORT = 6443
DEFAULT_AGENTS = 0
DEFAULT_K3S_IMAGE = dep_value("k3s", "image", default="rancher/k3s:v1.31.5-k3s1")
DEFAULT_CLUSTER_CREATE_MAX_RETRIES = 3
DEFAULT_NODE_READY_TIMEOUT = "60s"
DEFAULT_K3D_CONFIG_FILE = "k8s/k3d-cluster.yaml"

DEFAULT_OLLAMA_BIND_HOST = f"0.0.0.0:{OLLAMA_DEFAULT_PORT}"
DEFAULT_OLLAMA_URL = f"http://localhost:{OLLAMA_DEFAULT_PORT}"
DEFAULT_OLLAMA_MODELS = list(dep_value("ollama", "models", default=["mistral:7b"]))
DEFAULT_OLLAMA_STARTUP_ATTEMPTS = 30
DEFAULT_OLLAMA_STARTUP_INTERVAL_SECONDS = 2
DEFAULT_OLLAMA_REQUEST_TIMEOUT = 120

DEFAULT_K8SGPT_MODEL = dep_value("ollama", "default_model", default="mistral:7b")
DEFAULT_K8SGPT_ANALYZE_TIMEOUT = 60

DEFAULT_DEMO_APP_NAME = "k8sgpt-demo"
DEFAULT_DEMO_IMAGE_TAG = "latest"
DEFAULT_DEMO_HOSTNAME = "demo.k8sgpt.local"
DEFAULT_ROLLOUT_TIMEOUT = "120s"

SMOKE_TEST_IMAGE = dep_value("test_images", "smoke", default="nginx:alpine")
BROKEN_TEST_IMAGE = dep_value("test_images", "broken", default="nonexistent-image:latest")
