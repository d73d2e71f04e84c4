"""
Fixtures for tests that run the client against the fake language server.

The fake server (tests/fixtures/fake_tailwind_server.py) runs under the
current interpreter and appends every message it receives to a JSON-lines
log, which tests read back with ``server_log``.
"""

import json
import sys
import time
from pathlib import Path

import pytest

project_root_str = str(Path(__file__).parent.parent.parent.resolve())
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

from tailwind_sorter import SorterConfig, TailwindSorterClient
from tailwind_sorter.project import ProjectContext

FAKE_SERVER = Path(__file__).parent.parent / "fixtures" / "fake_tailwind_server.py"


class ServerLog:
    def __init__(self, path: Path):
        self.path = path

    def messages(self):
        if not self.path.exists():
            return []
        text = self.path.read_text(encoding="utf-8")
        # The last line may still be half written by the server.
        return [
            json.loads(line)
            for line in text.splitlines(keepends=True)
            if line.endswith("\n") and line.strip()
        ]

    def methods(self):
        return [m["method"] for m in self.messages() if "method" in m]

    def count(self, method):
        return self.methods().count(method)

    def replies(self):
        return [m for m in self.messages() if "method" not in m]

    def wait_for(self, predicate, timeout=5.0):
        """Poll until ``predicate(self)`` holds; the server logs asynchronously."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate(self):
                return
            time.sleep(0.02)
        raise AssertionError(f"Server log never satisfied condition: {self.messages()}")


@pytest.fixture
def server_log(tmp_path):
    return ServerLog(tmp_path / "server-log.jsonl")


@pytest.fixture
def fake_server_command():
    return [sys.executable, str(FAKE_SERVER)]


@pytest.fixture
def make_client(server_log, fake_server_command):
    clients = []

    def make(project=None, environment=None, **overrides):
        env = {"FAKE_TAILWIND_LOG": str(server_log.path)}
        env.update(environment or {})
        overrides.setdefault("drain_timeout", 0.3)
        config = SorterConfig(
            server_command=fake_server_command, environment=env, **overrides
        )
        if project is None and "start_dir" not in overrides:
            project = ProjectContext()
        client = TailwindSorterClient(config, project=project)
        clients.append(client)
        return client

    yield make
    for client in clients:
        client.cleanup()


@pytest.fixture
def tailwind_project(tmp_path):
    root = tmp_path / "storefront"
    root.mkdir()
    (root / "tailwind.config.cjs").write_text(
        "module.exports = {\n  content: ['./src/**/*.html'],\n  plugins: [],\n}\n"
    )
    (root / "src").mkdir()
    (root / "src" / "styles.css").write_text(
        "@tailwind base;\n@tailwind components;\n@tailwind utilities;\n"
    )
    return root
