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

"""Ollama installation, service lifecycle, model pulls, and API checks."""

from __future__ import annotations

import json
import os
import subprocess
from collections.abc import Iterator
from pathlib import Path

import requests
import sh
from rich.panel import Panel
from rich.progress import BarColumn, DownloadColumn, Progress, SpinnerColumn, TextColumn
from tenacity import RetryError, retry, retry_if_result, stop_after_attempt, wait_fixed

from workshop_manager import console, logger
from workshop_manager.config import OllamaConfig
from workshop_manager.constants import (
    BYTES_PER_GB,
    OLLAMA_API_TEST_PROMPT,
    OLLAMA_CONFIG_FILE,
    OLLAMA_GENERATE_PATH,
    OLLAMA_LOG_FILE,
    OLLAMA_PULL_PATH,
    OLLAMA_TAGS_PATH,
    OLLAMA_TEST_PROMPT,
    dep_value,
)
from workshop_manager.utils import brew_install, command_exists


def normalize_model_name(name: str) -> str:
    """Append the implicit ``:latest`` tag Ollama uses for untagged names."""
    return name if ":" in name else f"{name}:latest"


# ============================================================================
# REST client
# ============================================================================

class OllamaClient:
    """Thin client for the Ollama REST API."""

    def __init__(self, base_url: str, timeout: int = 120, session: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def is_up(self) -> bool:
        """Return whether the API answers the tags endpoint."""
        try:
            return self.session.get(self._url(OLLAMA_TAGS_PATH), timeout=5).ok
        except requests.RequestException:
            return False

    def list_models(self) -> list[dict]:
        """Return the locally available models as reported by ``/api/tags``.

        Raises:
            requests.RequestException: If the API is unreachable or errors.
        """
        resp = self.session.get(self._url(OLLAMA_TAGS_PATH), timeout=10)
        resp.raise_for_status()
        return resp.json().get("models") or []

    def model_names(self) -> list[str]:
        return [m.get("name", "") for m in self.list_models()]

    def has_model(self, name: str) -> bool:
        """Return whether *name* is available locally (untagged means ``:latest``)."""
        wanted = normalize_model_name(name)
        return any(normalize_model_name(n) == wanted for n in self.model_names())

    def generate(self, model: str, prompt: str) -> str:
        """Run a non-streaming generation and return the response text.

        Raises:
            requests.RequestException: If the request fails.
        """
        resp = self.session.post(
            self._url(OLLAMA_GENERATE_PATH),
            json={"model": model, "prompt": prompt, "stream": False},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return (resp.json().get("response") or "").strip()

    def pull(self, model: str) -> Iterator[dict]:
        """Pull *model*, yielding each streamed status message.

        Raises:
            requests.RequestException: If the request fails.
            RuntimeError: If the server reports an error or sends a non-JSON line.
        """
        with self.session.post(
            self._url(OLLAMA_PULL_PATH),
            json={"model": model, "stream": True},
            stream=True,
            timeout=self.timeout,
        ) as resp:
            resp.raise_for_status()
            for line in resp.iter_lines():
                if not line:
                    continue
                try:
                    status = json.loads(line)
                except ValueError as err:
                    text = line.decode(errors="replace") if isinstance(line, bytes) else line
                    raise RuntimeError(f"Unexpected pull response for {model}: {text[:80]}") from err
                if "error" in status:
                    raise RuntimeError(status["error"])
                yield status


# ============================================================================
# Installation and service lifecycle
# ============================================================================

def stop_ollama() -> None:
    """Stop any running Ollama processes."""
    try:
        sh.pkill("ollama")
        console.print("[yellow]   Stopped running Ollama processes[/yellow]")
    except sh.ErrorReturnCode_1:
        logger.debug("No Ollama process to stop")


def install_ollama() -> None:
    """Install Ollama via Homebrew, or upgrade an existing installation."""
    console.print(Panel.fit("Installing Ollama", style="bold blue"))
    stop_ollama()
    if not command_exists("ollama"):
        brew_install(dep_value("brew", "formulas", "ollama", default="ollama"))
    else:
        console.print("[yellow]ℹ️  Ollama already installed, checking for updates...[/yellow]")
        try:
            sh.brew("upgrade", "ollama")
        except sh.ErrorReturnCode:
            console.print("[yellow]   Ollama is up to date[/yellow]")
    console.print("[green]✅ Ollama installation completed[/green]")


def write_ollama_config(ollama_cfg: OllamaConfig) -> Path:
    """Write Ollama's config.json so it listens for external access.

    Returns:
        Path of the written config file.
    """
    ollama_cfg.config_dir.mkdir(parents=True, exist_ok=True)
    config_path = ollama_cfg.config_dir / OLLAMA_CONFIG_FILE
    config_path.write_text(json.dumps({
        "host": ollama_cfg.bind_host,
        "origins": ["*"],
        "models_path": str(ollama_cfg.config_dir / "models"),
    }, indent=4) + "\n")
    console.print(f"[green]✅ Ollama configured to listen on {ollama_cfg.bind_host}[/green]")
    return config_path


def wait_for_ollama(client: OllamaClient, attempts: int, interval: float) -> bool:
    """Poll the API until it answers or *attempts* run out.

    Returns:
        True if the API answered.
    """

    @retry(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda up: not up),
    )
    def _poll() -> bool:
        return client.is_up()

    try:
        return _poll()
    except RetryError:
        return False


def start_ollama(ollama_cfg: OllamaConfig, client: OllamaClient) -> int:
    """Start ``ollama serve`` in the background and wait for the API.

    Returns:
        PID of the started server.

    Raises:
        RuntimeError: If the API does not come up.
    """
    console.print("[yellow]ℹ️  Starting Ollama service...[/yellow]")
    ollama_cfg.config_dir.mkdir(parents=True, exist_ok=True)
    log_path = ollama_cfg.config_dir / OLLAMA_LOG_FILE
    env = {**os.environ, "OLLAMA_HOST": ollama_cfg.bind_host}
    with open(log_path, "ab") as log_file:
        process = subprocess.Popen(
            ["ollama", "serve"],
            stdout=log_file,
            stderr=subprocess.STDOUT,
            env=env,
            start_new_session=True,
        )

    if not wait_for_ollama(client, ollama_cfg.startup_attempts, ollama_cfg.startup_interval):
        process.terminate()
        raise RuntimeError(f"Ollama service failed to start. Check logs at: {log_path}")
    console.print(f"[green]✅ Ollama service is running (PID: {process.pid})[/green]")
    return process.pid


# ============================================================================
# Models
# ============================================================================

def _pull_with_progress(client: OllamaClient, model: str) -> None:
    # Progress refreshes from its own thread, so bind it to this thread's console.
    with Progress(
        SpinnerColumn(), TextColumn("[progress.description]{task.description}"),
        BarColumn(), DownloadColumn(), console=console.current,
    ) as progress:
        task = progress.add_task(f"[cyan]{model}", total=None)
        for status in client.pull(model):
            if status.get("total"):
                progress.update(task, total=status["total"], completed=status.get("completed", 0))
            progress.update(task, description=f"[cyan]{model}: {status.get('status', '')}")


def download_models(client: OllamaClient, models: list[str]) -> list[str]:
    """Pull each model that is not present locally.

    A failed pull is reported and the remaining models still download.

    Returns:
        Models that are missing after the pulls.
    """
    console.print(Panel.fit("Downloading LLM models", style="bold blue"))
    missing: list[str] = []
    for model in models:
        try:
            if client.has_model(model):
                console.print(f"[green]✅ Model {model} already exists, skipping download[/green]")
                continue
            console.print(f"[yellow]ℹ️  Downloading model: {model}[/yellow]")
            _pull_with_progress(client, model)
            present = client.has_model(model)
        except (requests.RequestException, RuntimeError) as e:
            console.print(f"[red]❌ Failed to download {model}: {e}[/red]")
            missing.append(model)
            continue
        if present:
            console.print(f"[green]✅ Model {model} verified in local registry[/green]")
        else:
            console.print(f"[red]❌ Model {model} not found after download[/red]")
            missing.append(model)
    return missing


def smoke_test_models(client: OllamaClient, models: list[str]) -> dict[str, bool]:
    """Prompt each downloaded model once.

    Returns:
        Mapping of tested model to whether it answered.
    """
    console.print(Panel.fit("Testing model functionality", style="bold blue"))
    results: dict[str, bool] = {}
    for model in models:
        if not client.has_model(model):
            console.print(f"[yellow]⚠️  Skipping test for {model} (not downloaded)[/yellow]")
            continue
        try:
            response = client.generate(model, OLLAMA_TEST_PROMPT)
            console.print(f"[green]✅ Model {model} test passed: {response}[/green]")
            results[model] = True
        except requests.RequestException as e:
            console.print(f"[red]❌ Model {model} failed test: {e}[/red]")
            results[model] = False
    return results


def format_model_line(model: dict) -> str:
    """Render a ``/api/tags`` entry as ``name (NGB)``."""
    size_gb = round(model.get("size", 0) / BYTES_PER_GB)
    return f"{model.get('name', '?')} ({size_gb}GB)"


def validate_api(client: OllamaClient) -> None:
    """Check the tags and generate endpoints.

    Raises:
        RuntimeError: If the API is down or has no models.
    """
    console.print(Panel.fit("Validating Ollama API endpoints", style="bold blue"))
    try:
        models = client.list_models()
    except requests.RequestException as err:
        raise RuntimeError("Ollama API endpoint not responding") from err
    if not models:
        raise RuntimeError("No models found via Ollama API")

    console.print(f"[green]✅ API endpoint active with {len(models)} models available[/green]")
    for model in models:
        console.print(f"  - {format_model_line(model)}")

    first_model = models[0]["name"]
    console.print(f"[yellow]ℹ️  Testing generation API with model: {first_model}[/yellow]")
    try:
        response = client.generate(first_model, OLLAMA_API_TEST_PROMPT)
    except requests.RequestException as e:
        console.print(f"[red]❌ Generation API test failed: {e}[/red]")
        return
    if response:
        console.print("[green]✅ Generation API test passed[/green]")
        console.print(f"Sample response: {response}")
    else:
        console.print("[red]❌ Generation API test failed: empty response[/red]")


def start_service(ollama_cfg: OllamaConfig) -> OllamaClient:
    """Install, configure, and start Ollama.

    Returns:
        Client bound to the running service.
    """
    client = OllamaClient(ollama_cfg.url, timeout=ollama_cfg.request_timeout)
    install_ollama()
    write_ollama_config(ollama_cfg)
    start_ollama(ollama_cfg, client)
    return client


def load_models(client: OllamaClient, ollama_cfg: OllamaConfig) -> None:
    """Pull the configured models, try each one, and check the API."""
    download_models(client, ollama_cfg.models)
    smoke_test_models(client, ollama_cfg.models)
    validate_api(client)
