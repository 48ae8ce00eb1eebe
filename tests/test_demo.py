"""Tests for the demo app manifests, deployment sequencing, and host entry."""

from unittest.mock import MagicMock, patch

import pytest
import requests
import sh
import yaml

from workshop_manager.demo import (
    app_reachable,
    build_and_deploy,
    deploy,
    ensure_host_entry,
    has_host_entry,
    render_manifest,
)


def _mock_sh():
    mock_sh = MagicMock()
    mock_sh.ErrorReturnCode = sh.ErrorReturnCode
    return mock_sh


class TestRenderManifest:
    def test_documents(self, demo_cfg):
        docs = list(yaml.safe_load_all(render_manifest(demo_cfg)))
        assert [d["kind"] for d in docs] == ["Deployment", "Service", "Ingress"]
        assert all(d["metadata"]["namespace"] == "demo" for d in docs)
        container = docs[0]["spec"]["template"]["spec"]["containers"][0]
        assert container["image"] == "k8sgpt-demo:latest"
        assert docs[2]["spec"]["rules"][0]["host"] == "demo.k8sgpt.local"

    def test_overrides(self, demo_cfg):
        cfg = demo_cfg.model_copy(update={"app_name": "shop", "image_tag": "v2", "namespace": "store"})
        docs = list(yaml.safe_load_all(render_manifest(cfg)))
        assert docs[0]["spec"]["template"]["spec"]["containers"][0]["image"] == "shop:v2"
        assert docs[1]["spec"]["selector"] == {"app": "shop"}
        assert {d["metadata"]["namespace"] for d in docs} == {"store"}


class TestDeploy:
    def test_new_deployment_is_applied_and_awaited(self, demo_cfg):
        mock_sh = _mock_sh()
        with patch("workshop_manager.demo.ensure_namespace"), \
                patch("workshop_manager.demo.deployment_exists", return_value=False), \
                patch("workshop_manager.demo.run_kubectl", return_value=(True, "", "")) as mock_kubectl, \
                patch("workshop_manager.demo.sh", mock_sh):
            deploy(demo_cfg)
        assert mock_kubectl.call_args_list[0].args[0] == ["apply", "-f", "-"]
        sh_calls = [c.args[:2] for c in mock_sh.kubectl.call_args_list]
        assert sh_calls == [("wait", "--for=condition=Available")]

    def test_existing_deployment_is_restarted(self, demo_cfg):
        mock_sh = _mock_sh()
        with patch("workshop_manager.demo.ensure_namespace"), \
                patch("workshop_manager.demo.deployment_exists", return_value=True), \
                patch("workshop_manager.demo.run_kubectl", return_value=(True, "", "")), \
                patch("workshop_manager.demo.sh", mock_sh):
            deploy(demo_cfg)
        assert mock_sh.kubectl.call_args_list[0].args[:3] == ("rollout", "restart", "deployment/k8sgpt-demo")

    def test_apply_failure(self, demo_cfg):
        with patch("workshop_manager.demo.ensure_namespace"), \
                patch("workshop_manager.demo.deployment_exists", return_value=False), \
                patch("workshop_manager.demo.run_kubectl", return_value=(False, "", "invalid")):
            with pytest.raises(RuntimeError, match="invalid"):
                deploy(demo_cfg)

    def test_rollout_timeout(self, demo_cfg):
        mock_sh = _mock_sh()
        mock_sh.kubectl.side_effect = sh.ErrorReturnCode_1("kubectl wait", b"", b"timed out")
        with patch("workshop_manager.demo.ensure_namespace"), \
                patch("workshop_manager.demo.deployment_exists", return_value=False), \
                patch("workshop_manager.demo.run_kubectl", return_value=(True, "", "")), \
                patch("workshop_manager.demo.sh", mock_sh):
            with pytest.raises(RuntimeError, match="120s"):
                deploy(demo_cfg)

    def test_build_and_deploy_order(self, demo_cfg):
        manager = MagicMock()
        with patch("workshop_manager.demo.build_image", manager.build), \
                patch("workshop_manager.demo.run_kubectl", manager.kubectl), \
                patch("workshop_manager.demo.remove_cached_image", manager.remove), \
                patch("workshop_manager.demo.import_image", manager.import_), \
                patch("workshop_manager.demo.deploy", manager.deploy):
            build_and_deploy(demo_cfg, "k8sgpt-workshop")
        assert [c[0] for c in manager.mock_calls] == ["build", "kubectl", "remove", "import_", "deploy"]
        manager.import_.assert_called_once_with("k8sgpt-workshop", "k8sgpt-demo:latest")

    def test_skip_build_only_deploys(self, demo_cfg):
        with patch("workshop_manager.demo.build_image") as mock_build, \
                patch("workshop_manager.demo.deploy") as mock_deploy:
            build_and_deploy(demo_cfg, "k8sgpt-workshop", skip_build=True)
        mock_build.assert_not_called()
        mock_deploy.assert_called_once_with(demo_cfg)


class TestHostEntry:
    def test_detects_entry(self, tmp_path):
        hosts = tmp_path / "hosts"
        hosts.write_text("127.0.0.1 localhost\n127.0.0.1   demo.k8sgpt.local  # workshop\n")
        assert has_host_entry("demo.k8sgpt.local", hosts)

    def test_ignores_comments_and_substrings(self, tmp_path):
        hosts = tmp_path / "hosts"
        hosts.write_text("# 127.0.0.1 demo.k8sgpt.local\n127.0.0.1 demo.k8sgpt.local.example\n")
        assert not has_host_entry("demo.k8sgpt.local", hosts)

    def test_missing_file(self, tmp_path):
        assert not has_host_entry("demo.k8sgpt.local", tmp_path / "missing")

    def test_existing_entry_is_not_rewritten(self, tmp_path):
        hosts = tmp_path / "hosts"
        hosts.write_text("127.0.0.1 demo.k8sgpt.local\n")
        with patch("workshop_manager.demo.run_command") as mock_run:
            ensure_host_entry("demo.k8sgpt.local", hosts)
        mock_run.assert_not_called()

    def test_appends_with_sudo_tee(self, tmp_path):
        hosts = tmp_path / "hosts"
        hosts.write_text("127.0.0.1 localhost\n")
        with patch("workshop_manager.demo.run_command", return_value=(True, "", "")) as mock_run:
            ensure_host_entry("demo.k8sgpt.local", hosts)
        assert mock_run.call_args.args[0] == ["sudo", "tee", "-a", str(hosts)]
        assert mock_run.call_args.kwargs["input_text"] == "127.0.0.1 demo.k8sgpt.local\n"

    def test_sudo_failure(self, tmp_path):
        with patch("workshop_manager.demo.run_command", return_value=(False, "", "no tty")):
            with pytest.raises(RuntimeError, match="no tty"):
                ensure_host_entry("demo.k8sgpt.local", tmp_path / "hosts")


class TestReachability:
    def test_ok(self):
        with patch("workshop_manager.demo.requests.get", return_value=MagicMock(ok=True)):
            assert app_reachable("http://demo.k8sgpt.local")

    def test_connection_error(self):
        with patch("workshop_manager.demo.requests.get", side_effect=requests.ConnectionError("dns")):
            assert not app_reachable("http://demo.k8sgpt.local")
