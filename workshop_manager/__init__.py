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

"""workshop_manager - local K8sGPT + Ollama workshop environment management."""

from __future__ import annotations

import io
import logging
import threading
from contextlib import contextmanager

from rich.console import Console

__version__ = "0.1.0"


class ThreadAwareConsole:
    """Console proxy that routes to thread-local buffers when set."""

    def __init__(self, real_console: Console) -> None:
        object.__setattr__(self, "_real", real_console)
        object.__setattr__(self, "_local", threading.local())

    @property
    def current(self) -> Console:
        """The console output goes to on this thread."""
        return getattr(self._local, "console", self._real)

    def __getattr__(self, name: str):
        return getattr(self.current, name)

    def __enter__(self) -> Console:
        return self.current.__enter__()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.current.__exit__(exc_type, exc_value, traceback)

    @contextmanager
    def buffered(self):
        """Buffer all console output for the current thread."""
        buf = io.StringIO()
        self._local.console = Console(file=buf, stderr=False, force_terminal=False)
        try:
            yield buf
        finally:
            del self._local.console


console = ThreadAwareConsole(Console(stderr=True))
logger = logging.getLogger("workshop_manager")
