"""Tests for command helpers and shell rc handling."""

import subprocess
from unittest.mock import patch

import pytest
import sh

from workshop_manager.utils import (
    append_line_once,
    command_exists,
    first_line,
    require_command,
    run_command,
    run_kubectl,
    shell_config_path,
)


class TestShellConfigPath:
    def test_zsh(self, tmp_path):
        assert shell_config_path("/bin/zsh", tmp_path) == tmp_path / ".zshrc"

    def test_bash_prefers_existing_bashrc(self, tmp_path):
        (tmp_path / ".bashrc").touch()
        (tmp_path / ".bash_profile").touch()
        assert shell_config_path("/bin/bash", tmp_path) == tmp_path / ".bashrc"

    def test_bash_falls_back_to_bash_profile(self, tmp_path):
        (tmp_path / ".bash_profile").touch()
        assert shell_config_path("/usr/local/bin/bash", tmp_path) == tmp_path / ".bash_profile"

    def test_bash_without_files(self, tmp_path):
        assert shell_config_path("/bin/bash", tmp_path) == tmp_path / ".bashrc"

    def test_fish(self, tmp_path):
        assert shell_config_path("/opt/homebrew/bin/fish", tmp_path) == tmp_path / ".config" / "fish" / "config.fish"

    def test_unknown_shell_uses_first_existing(self, tmp_path):
        (tmp_path / ".zshrc").touch()
        assert shell_config_path("/bin/tcsh", tmp_path) == tmp_path / ".zshrc"

    def test_unknown_shell_defaults_to_profile(self, tmp_path):
        assert shell_config_path("", tmp_path) == tmp_path / ".profile"


class TestAppendLineOnce:
    def test_creates_file_and_parent(self, tmp_path):
        rc = tmp_path / ".config" / "fish" / "config.fish"
        assert append_line_once(rc, "alias k=kubectl") is True
        assert rc.read_text() == "alias k=kubectl\n"

    def test_second_call_is_noop(self, tmp_path):
        rc = tmp_path / ".zshrc"
        append_line_once(rc, "alias k=kubectl")
        assert append_line_once(rc, "alias k=kubectl") is False
        assert rc.read_text().count("alias k=kubectl") == 1

    def test_adds_missing_trailing_newline(self, tmp_path):
        rc = tmp_path / ".zshrc"
        rc.write_text("export A=1")
        append_line_once(rc, "alias k=kubectl")
        assert rc.read_text() == "export A=1\nalias k=kubectl\n"


class TestRunCommand:
    def test_success(self):
        completed = subprocess.CompletedProcess(["k3d"], 0, stdout="out", stderr="")
        with patch("workshop_manager.utils.subprocess.run", return_value=completed) as mock_run:
            assert run_command(["k3d", "version"]) == (True, "out", "")
        assert mock_run.call_args.kwargs["timeout"] == 30

    def test_failure(self):
        completed = subprocess.CompletedProcess(["k3d"], 1, stdout="", stderr="boom")
        with patch("workshop_manager.utils.subprocess.run", return_value=completed):
            assert run_command(["k3d"]) == (False, "", "boom")

    def test_timeout(self):
        with patch("workshop_manager.utils.subprocess.run",
                   side_effect=subprocess.TimeoutExpired(["k8sgpt"], 5)):
            ok, _, stderr = run_command(["k8sgpt", "analyze"], timeout=5)
        assert ok is False
        assert "timed out" in stderr

    def test_missing_binary(self):
        with patch("workshop_manager.utils.subprocess.run", side_effect=FileNotFoundError("nope")):
            assert run_command(["nope"])[0] is False

    def test_kubectl_passes_stdin(self):
        completed = subprocess.CompletedProcess(["kubectl"], 0, stdout="", stderr="")
        with patch("workshop_manager.utils.subprocess.run", return_value=completed) as mock_run:
            run_kubectl(["apply", "-f", "-"], input_text="kind: Pod")
        assert mock_run.call_args.args[0] == ["kubectl", "apply", "-f", "-"]
        assert mock_run.call_args.kwargs["input"] == "kind: Pod"


class TestCommandExists:
    def test_found(self):
        with patch("workshop_manager.utils.sh") as mock_sh:
            mock_sh.ErrorReturnCode = sh.ErrorReturnCode
            mock_sh.which.return_value = "/usr/bin/kubectl"
            assert command_exists("kubectl") is True

    def test_missing(self):
        with patch("workshop_manager.utils.sh") as mock_sh:
            mock_sh.ErrorReturnCode = sh.ErrorReturnCode
            mock_sh.which.side_effect = sh.ErrorReturnCode_1("which nope", b"", b"")
            assert command_exists("nope") is False

    def test_require_command_raises_with_hint(self):
        with patch("workshop_manager.utils.command_exists", return_value=False):
            with pytest.raises(RuntimeError, match="brew.sh"):
                require_command("brew", "Install Homebrew from: https://brew.sh/")


def test_first_line_skips_blank_lines():
    assert first_line("\n\n  k3d version v5.7.4\nk3s version v1.31") == "k3d version v5.7.4"
    assert first_line("") == ""
