"""Tests for the Ollama REST client and model handling."""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests
import sh

from workshop_manager import console
from workshop_manager.ollama import (
    OllamaClient,
    _pull_with_progress,
    download_models,
    format_model_line,
    normalize_model_name,
    smoke_test_models,
    stop_ollama,
    validate_api,
    wait_for_ollama,
    write_ollama_config,
)


def _response(payload=None, ok=True):
    resp = MagicMock()
    resp.ok = ok
    resp.json.return_value = payload or {}
    if not ok:
        resp.raise_for_status.side_effect = requests.HTTPError("500")
    return resp


def _client(tags=None):
    session = MagicMock()
    session.get.return_value = _response({"models": tags or []})
    return OllamaClient("http://localhost:11434/", session=session), session


def _stream(client_session, lines):
    resp = MagicMock()
    resp.iter_lines.return_value = lines
    client_session.post.return_value.__enter__.return_value = resp
    return resp


class TestOllamaClient:
    def test_base_url_trailing_slash(self):
        client, session = _client()
        client.list_models()
        assert session.get.call_args.args[0] == "http://localhost:11434/api/tags"

    def test_is_up(self):
        client, _ = _client()
        assert client.is_up() is True

    def test_is_down_on_connection_error(self):
        client, session = _client()
        session.get.side_effect = requests.ConnectionError("refused")
        assert client.is_up() is False

    def test_model_names(self):
        client, _ = _client([{"name": "mistral:7b"}, {"name": "orca-mini:latest"}])
        assert client.model_names() == ["mistral:7b", "orca-mini:latest"]

    @pytest.mark.parametrize("name,expected", [
        ("mistral:7b", True),
        ("orca-mini", True),
        ("mistral", False),
        ("llama2:13b", False),
    ])
    def test_has_model_treats_untagged_as_latest(self, name, expected):
        client, _ = _client([{"name": "mistral:7b"}, {"name": "orca-mini:latest"}])
        assert client.has_model(name) is expected

    def test_generate(self):
        client, session = _client()
        session.post.return_value = _response({"response": "  Hello \n"})
        assert client.generate("mistral:7b", "hi") == "Hello"
        body = session.post.call_args.kwargs["json"]
        assert body == {"model": "mistral:7b", "prompt": "hi", "stream": False}

    def test_generate_http_error(self):
        client, session = _client()
        session.post.return_value = _response(ok=False)
        with pytest.raises(requests.HTTPError):
            client.generate("mistral:7b", "hi")

    def test_pull_streams_statuses(self):
        client, session = _client()
        resp = MagicMock()
        resp.iter_lines.return_value = [
            json.dumps({"status": "pulling manifest"}).encode(),
            b"",
            json.dumps({"status": "downloading", "total": 10, "completed": 5}).encode(),
            json.dumps({"status": "success"}).encode(),
        ]
        session.post.return_value.__enter__.return_value = resp
        statuses = [s["status"] for s in client.pull("mistral:7b")]
        assert statuses == ["pulling manifest", "downloading", "success"]

    def test_pull_error_in_stream(self):
        client, session = _client()
        resp = MagicMock()
        resp.iter_lines.return_value = [json.dumps({"error": "file does not exist"}).encode()]
        session.post.return_value.__enter__.return_value = resp
        with pytest.raises(RuntimeError, match="file does not exist"):
            list(client.pull("nope:1b"))


class TestServiceLifecycle:
    def test_wait_for_ollama_comes_up(self):
        client = MagicMock()
        client.is_up.side_effect = [False, False, True]
        assert wait_for_ollama(client, attempts=5, interval=0) is True
        assert client.is_up.call_count == 3

    def test_wait_for_ollama_gives_up(self):
        client = MagicMock()
        client.is_up.return_value = False
        assert wait_for_ollama(client, attempts=3, interval=0) is False
        assert client.is_up.call_count == 3

    def test_write_config(self, ollama_cfg):
        path = write_ollama_config(ollama_cfg)
        data = json.loads(path.read_text())
        assert data["host"] == "0.0.0.0:11434"
        assert data["origins"] == ["*"]
        assert data["models_path"] == str(ollama_cfg.config_dir / "models")

    def test_stop_without_running_process(self):
        mock_sh = MagicMock()
        mock_sh.ErrorReturnCode_1 = sh.ErrorReturnCode_1
        mock_sh.pkill.side_effect = sh.ErrorReturnCode_1("pkill ollama", b"", b"")
        with patch("workshop_manager.ollama.sh", mock_sh):
            stop_ollama()
        mock_sh.pkill.assert_called_once_with("ollama")


class TestModels:
    def test_normalize(self):
        assert normalize_model_name("orca-mini") == "orca-mini:latest"
        assert normalize_model_name("mistral:7b") == "mistral:7b"

    def test_download_skips_present_and_continues_after_failure(self):
        client = MagicMock()
        present = {"mistral:7b"}
        client.has_model.side_effect = lambda m: m in present

        def fake_pull(_client, model):
            if model == "llama2:13b":
                raise requests.ConnectionError("reset")
            present.add(model)

        with patch("workshop_manager.ollama._pull_with_progress", side_effect=fake_pull) as mock_pull:
            missing = download_models(client, ["mistral:7b", "llama2:13b", "orca-mini:latest"])

        assert missing == ["llama2:13b"]
        pulled = [c.args[1] for c in mock_pull.call_args_list]
        assert pulled == ["llama2:13b", "orca-mini:latest"]

    def test_smoke_test_skips_missing_models(self):
        client = MagicMock()
        client.has_model.side_effect = lambda m: m != "llama2:13b"
        client.generate.side_effect = ["Hello", requests.Timeout("slow")]
        results = smoke_test_models(client, ["mistral:7b", "llama2:13b", "orca-mini:latest"])
        assert results == {"mistral:7b": True, "orca-mini:latest": False}

    def test_format_model_line(self):
        assert format_model_line({"name": "mistral:7b", "size": 4109865159}) == "mistral:7b (4GB)"

    def test_validate_api_without_models(self):
        client = MagicMock()
        client.list_models.return_value = []
        with pytest.raises(RuntimeError, match="No models"):
            validate_api(client)

    def test_validate_api_unreachable(self):
        client = MagicMock()
        client.list_models.side_effect = requests.ConnectionError("refused")
        with pytest.raises(RuntimeError, match="not responding"):
            validate_api(client)

    def test_validate_api_generates_with_first_model(self):
        client = MagicMock()
        client.list_models.return_value = [{"name": "orca-mini:latest", "size": 0}, {"name": "mistral:7b"}]
        client.generate.return_value = "An orchestrator."
        validate_api(client)
        assert client.generate.call_args.args[0] == "orca-mini:latest"


class TestPulls:
    PULL_LINES = [
        json.dumps({"status": "pulling manifest"}).encode(),
        json.dumps({"status": "pulling", "total": 10, "completed": 10}).encode(),
        json.dumps({"status": "success"}).encode(),
    ]

    def test_progress_bar_runs_to_completion(self, capsys):
        client, session = _client()
        _stream(session, self.PULL_LINES)
        _pull_with_progress(client, "mistral:7b")
        assert "mistral:7b" in capsys.readouterr().err

    def test_progress_bar_inside_buffered_task(self):
        client, session = _client()
        _stream(session, self.PULL_LINES)
        with console.buffered() as buf:
            _pull_with_progress(client, "mistral:7b")
        assert "mistral:7b: success" in buf.getvalue()

    def test_download_verifies_pulled_model(self):
        client, session = _client()
        session.get.side_effect = [
            _response({"models": []}),
            _response({"models": [{"name": "mistral:7b"}]}),
        ]
        _stream(session, self.PULL_LINES)
        assert download_models(client, ["mistral:7b"]) == []
        assert session.post.call_args.kwargs["json"] == {"model": "mistral:7b", "stream": True}

    def test_non_json_line_is_a_runtime_error(self):
        client, session = _client()
        _stream(session, [b"<html>502 Bad Gateway</html>"])
        with pytest.raises(RuntimeError, match="502 Bad Gateway") as exc_info:
            list(client.pull("mistral:7b"))
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_bad_gateway_does_not_stop_remaining_models(self):
        client, session = _client()
        _stream(session, [b"<html>502 Bad Gateway</html>"])
        assert download_models(client, ["mistral:7b", "orca-mini:latest"]) == ["mistral:7b", "orca-mini:latest"]
        assert session.post.call_count == 2

    def test_unreachable_tags_endpoint_is_reported_per_model(self):
        client, session = _client()
        session.get.side_effect = requests.ConnectionError("refused")
        assert download_models(client, ["mistral:7b", "llama2:13b"]) == ["mistral:7b", "llama2:13b"]
        session.post.assert_not_called()
