"""Shared pytest fixtures."""

import pytest

from workshop_manager.config import ClusterConfig, DemoConfig, K8sGPTConfig, OllamaConfig


@pytest.fixture
def cluster_cfg(tmp_path):
    return ClusterConfig(config_file=tmp_path / "k3d-cluster.yaml")


@pytest.fixture
def ollama_cfg(tmp_path):
    return OllamaConfig(config_dir=tmp_path / ".ollama", startup_attempts=2, startup_interval=0)


@pytest.fixture
def k8sgpt_cfg(tmp_path):
    return K8sGPTConfig(config_dir=tmp_path / ".k8sgpt")


@pytest.fixture
def demo_cfg(tmp_path):
    return DemoConfig(output_dir=tmp_path / "out")
