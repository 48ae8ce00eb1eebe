"""Tests for K8sGPT backend wiring and analysis."""

from unittest.mock import MagicMock, call, patch

import pytest
import sh
import yaml

from workshop_manager.k8sgpt import (
    analyze,
    broken_deployment_manifest,
    configure_backend,
    deploy_broken_workload,
    has_active_provider,
    is_configured,
    parse_auth_list,
    parse_version,
    smoke_test,
    switch_model,
)

AUTH_LIST = (
    "Default: \n"
    "> ollama\n"
    "Active: \n"
    "> ollama\n"
    "Unused: \n"
    "> openai\n"
    "> azureopenai\n"
)

# A fresh install lists every provider, ollama included, under Unused.
UNCONFIGURED_AUTH_LIST = (
    "Default: \n"
    "> openai\n"
    "Active: \n"
    "Unused: \n"
    "> openai\n"
    "> localai\n"
    "> ollama\n"
    "> azureopenai\n"
)


def _mock_sh():
    mock_sh = MagicMock()
    mock_sh.ErrorReturnCode = sh.ErrorReturnCode
    mock_sh.ErrorReturnCode_1 = sh.ErrorReturnCode_1
    return mock_sh


class TestParsing:
    def test_parse_version(self):
        assert parse_version("k8sgpt: 0.4.17 (abc123), built at: unknown") == "0.4.17"
        assert parse_version("no version here") is None

    def test_auth_text_helpers(self):
        assert is_configured(AUTH_LIST, "ollama")
        assert has_active_provider(AUTH_LIST)

    def test_unused_providers_are_not_configured(self):
        assert not is_configured(UNCONFIGURED_AUTH_LIST, "ollama")
        assert not has_active_provider(UNCONFIGURED_AUTH_LIST)
        assert not has_active_provider("")

    def test_parse_auth_list(self):
        assert parse_auth_list(AUTH_LIST) == {
            "Default": ["ollama"],
            "Active": ["ollama"],
            "Unused": ["openai", "azureopenai"],
        }
        assert parse_auth_list(UNCONFIGURED_AUTH_LIST)["Active"] == []


class TestBrokenWorkload:
    def test_manifest(self):
        manifest = broken_deployment_manifest("k8sgpt-test", "demo")
        assert manifest["metadata"] == {"name": "k8sgpt-test", "namespace": "demo"}
        container = manifest["spec"]["template"]["spec"]["containers"][0]
        assert container["image"] == "nonexistent-image:latest"
        assert manifest["spec"]["selector"]["matchLabels"] == {"app": "k8sgpt-test"}

    def test_deploy_pipes_yaml_to_kubectl(self):
        with patch("workshop_manager.k8sgpt.run_kubectl", return_value=(True, "", "")) as mock_kubectl:
            assert deploy_broken_workload("validation-test", "demo") is True
        args, kwargs = mock_kubectl.call_args
        assert args[0] == ["apply", "-f", "-"]
        assert yaml.safe_load(kwargs["input_text"])["metadata"]["name"] == "validation-test"


class TestConfigureBackend:
    def test_remove_add_default_sequence(self, k8sgpt_cfg):
        mock_sh = _mock_sh()
        with patch("workshop_manager.k8sgpt.sh", mock_sh):
            configure_backend(k8sgpt_cfg, "http://localhost:11434", "llama2:13b")
        assert mock_sh.k8sgpt.call_args_list == [
            call("auth", "remove", "--backends", "ollama"),
            call("auth", "add", "--backend", "ollama", "--baseurl", "http://localhost:11434",
                 "--model", "llama2:13b"),
            call("auth", "default", "--provider", "ollama"),
        ]
        assert k8sgpt_cfg.config_dir.is_dir()

    def test_missing_backend_on_remove_is_tolerated(self, k8sgpt_cfg):
        mock_sh = _mock_sh()
        mock_sh.k8sgpt.side_effect = [sh.ErrorReturnCode_1("k8sgpt auth remove", b"", b""), None, None]
        with patch("workshop_manager.k8sgpt.sh", mock_sh):
            configure_backend(k8sgpt_cfg, "http://localhost:11434")
        assert mock_sh.k8sgpt.call_args_list[1].args[-1] == k8sgpt_cfg.default_model

    def test_rejected_backend_raises_runtime_error(self, k8sgpt_cfg):
        mock_sh = _mock_sh()
        error = sh.ErrorReturnCode_1("k8sgpt auth add", b"", b"invalid baseurl")
        mock_sh.k8sgpt.side_effect = [None, error]
        with patch("workshop_manager.k8sgpt.sh", mock_sh):
            with pytest.raises(RuntimeError, match="Failed to configure K8sGPT ollama backend") as exc_info:
                configure_backend(k8sgpt_cfg, "http://localhost:11434")
        assert exc_info.value.__cause__ is error
        assert mock_sh.k8sgpt.call_count == 2

    def test_switch_model_rejects_unknown_model(self, k8sgpt_cfg, ollama_cfg):
        client = MagicMock()
        client.is_up.return_value = True
        client.has_model.return_value = False
        client.model_names.return_value = ["mistral:7b"]
        with patch("workshop_manager.k8sgpt.OllamaClient", return_value=client), \
                patch("workshop_manager.k8sgpt.configure_backend") as mock_configure:
            with pytest.raises(RuntimeError, match="Available models: mistral:7b"):
                switch_model(k8sgpt_cfg, ollama_cfg, "llama2:13b")
        mock_configure.assert_not_called()

    def test_switch_model(self, k8sgpt_cfg, ollama_cfg):
        client = MagicMock()
        client.is_up.return_value = True
        client.has_model.return_value = True
        with patch("workshop_manager.k8sgpt.OllamaClient", return_value=client), \
                patch("workshop_manager.k8sgpt.auth_list", return_value=AUTH_LIST), \
                patch("workshop_manager.k8sgpt.configure_backend") as mock_configure:
            switch_model(k8sgpt_cfg, ollama_cfg, "llama2:13b")
        mock_configure.assert_called_once_with(k8sgpt_cfg, ollama_cfg.url, "llama2:13b")


class TestAnalyze:
    def test_builds_arguments(self):
        with patch("workshop_manager.k8sgpt.run_command", return_value=(True, "out", "")) as mock_run:
            ok, output = analyze("demo", explain=True, filters=["Pod", "Service"], timeout=90)
        assert ok and output == "out"
        assert mock_run.call_args.args[0] == [
            "k8sgpt", "analyze", "--namespace", "demo", "--filter", "Pod,Service", "--explain", "--no-cache",
        ]
        assert mock_run.call_args.kwargs["timeout"] == 90

    def test_whole_cluster_with_cache(self):
        with patch("workshop_manager.k8sgpt.run_command", return_value=(False, "", "timed out")) as mock_run:
            ok, output = analyze(no_cache=False)
        assert not ok and output == "timed out"
        assert mock_run.call_args.args[0] == ["k8sgpt", "analyze"]

    def test_smoke_test_always_deletes_workload(self, k8sgpt_cfg):
        with patch("workshop_manager.k8sgpt.time.sleep"), \
                patch("workshop_manager.k8sgpt.deploy_broken_workload"), \
                patch("workshop_manager.k8sgpt.analyze", side_effect=RuntimeError("boom")), \
                patch("workshop_manager.k8sgpt.delete_workload") as mock_delete:
            with pytest.raises(RuntimeError):
                smoke_test(k8sgpt_cfg, "demo")
        mock_delete.assert_called_once_with("k8sgpt-test", "demo")

    def test_smoke_test_timeouts_are_warnings(self, k8sgpt_cfg):
        with patch("workshop_manager.k8sgpt.time.sleep"), \
                patch("workshop_manager.k8sgpt.deploy_broken_workload"), \
                patch("workshop_manager.k8sgpt.analyze", return_value=(False, "timed out")) as mock_analyze, \
                patch("workshop_manager.k8sgpt.delete_workload"):
            smoke_test(k8sgpt_cfg, "demo")
        assert [c.kwargs.get("explain", False) for c in mock_analyze.call_args_list] == [False, True]
