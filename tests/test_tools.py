"""Tests for tool installation and host prerequisite checks."""

from unittest.mock import MagicMock, patch

import pytest

from workshop_manager.prerequisites import check_disk_space, check_docker, docker_running
from workshop_manager.tools import ensure_tool, install_kubecolor_alias


class TestTools:
    def test_installed_tool_is_not_reinstalled(self):
        with patch("workshop_manager.tools.command_exists", return_value=True), \
                patch("workshop_manager.tools.sh") as mock_sh, \
                patch("workshop_manager.tools.brew_install") as mock_brew:
            mock_sh.Command.return_value.return_value = "Client Version: v1.31.0\n"
            assert ensure_tool("kubectl") is False
        mock_brew.assert_not_called()
        mock_sh.Command.assert_called_once_with("kubectl")

    def test_missing_tool_is_installed_with_formula(self):
        with patch("workshop_manager.tools.command_exists", return_value=False), \
                patch("workshop_manager.tools.brew_install") as mock_brew:
            assert ensure_tool("k3d") is True
        mock_brew.assert_called_once_with("k3d")

    def test_kubecolor_alias_added_once(self, tmp_path):
        rc = tmp_path / ".zshrc"
        install_kubecolor_alias(rc)
        install_kubecolor_alias(rc)
        assert rc.read_text().count('alias kubectl="kubecolor"') == 1


class TestPrerequisites:
    def test_docker_running(self):
        client = MagicMock()
        client.ping.return_value = True
        with patch("workshop_manager.prerequisites.docker.from_env", return_value=client):
            assert docker_running() is True
        client.close.assert_called_once()

    def test_docker_unavailable(self):
        import docker

        with patch("workshop_manager.prerequisites.docker.from_env",
                   side_effect=docker.errors.DockerException("no socket")):
            assert docker_running() is False

    def test_docker_daemon_down(self):
        with patch("workshop_manager.prerequisites.require_command"), \
                patch("workshop_manager.prerequisites.docker_running", return_value=False):
            with pytest.raises(RuntimeError, match="not running"):
                check_docker()

    def test_enough_disk(self):
        with patch("workshop_manager.prerequisites.free_disk_gb", return_value=50.0), \
                patch("workshop_manager.prerequisites.Confirm.ask") as mock_ask:
            check_disk_space()
        mock_ask.assert_not_called()

    def test_low_disk_declined(self):
        with patch("workshop_manager.prerequisites.free_disk_gb", return_value=3.0), \
                patch("workshop_manager.prerequisites.Confirm.ask", return_value=False):
            with pytest.raises(RuntimeError, match="disk space"):
                check_disk_space()

    def test_low_disk_non_interactive(self):
        with patch("workshop_manager.prerequisites.free_disk_gb", return_value=3.0), \
                patch("workshop_manager.prerequisites.Confirm.ask") as mock_ask:
            check_disk_space(assume_yes=True)
        mock_ask.assert_not_called()
