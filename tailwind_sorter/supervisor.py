"""
Lifecycle of the Tailwind CSS language server process.

The supervisor stages a private workspace (a copy of the project's Tailwind
config and stylesheet, or synthetic defaults, plus a virtual HTML document),
spawns the server over stdio and performs the LSP handshake. The staging
directory outlives ``stop()`` so a restart can reuse it; ``cleanup()``
removes it.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from tailwind_sorter.cache import ResultCache
from tailwind_sorter.config import SorterConfig
from tailwind_sorter.exceptions import (
    ConfigurationError,
    HandshakeError,
    ProtocolError,
    TailwindSorterError,
    WorkerNotFoundError,
)
from tailwind_sorter.logger import log_context, setup_logger
from tailwind_sorter.lsp.channel import (
    BaseMessageChannel,
    MessageChannel,
    TracingChannel,
)
from tailwind_sorter.lsp.dispatcher import (
    TAILWIND_SECTION,
    RequestDispatcher,
    ServerRequestHandler,
)
from tailwind_sorter.lsp.types import LspMethod
from tailwind_sorter.project import ProjectContext
from tailwind_sorter.worker import check_server_version, find_server_command
from tailwind_sorter.version import __version__

logger = setup_logger(__name__)

VIRTUAL_DOCUMENT_NAME = "virtual.html"
VIRTUAL_DOCUMENT_COMMENT = "<!-- virtual document for processing tailwind classes -->"
VIRTUAL_DOCUMENT_TEXT = f"<div>{VIRTUAL_DOCUMENT_COMMENT}</div>"

DEFAULT_CONFIG_NAME = "tailwind.config.js"
DEFAULT_STYLESHEET_NAME = "styles.css"

DEFAULT_CONFIG = """module.exports = {
  content: ['*.html'],
  theme: {
    extend: {},
  },
  plugins: [],
}
"""

DEFAULT_CSS = """@tailwind base;
@tailwind components;
@tailwind utilities;
"""

WORKSPACE_SETTINGS: Dict[str, Any] = {
    TAILWIND_SECTION: {
        "experimental": {"classRegex": []},
        "validate": True,
    }
}


@dataclass
class WorkspaceConfigCache:
    """Snapshot of the project config last copied into the staging directory."""

    path: Optional[Path] = None
    mtime: Optional[float] = None
    content: Optional[str] = None

    def matches(self, path: Path, mtime: float) -> bool:
        return self.path == path and self.mtime == mtime


def _language_id(path: Path) -> str:
    if path.suffix == ".ts":
        return "typescript"
    if path.suffix == ".css":
        return "css"
    if path.suffix == ".html":
        return "html"
    return "javascript"


class ProcessSupervisor:
    """Owns the language server process and the workspace it is pointed at."""

    def __init__(
        self,
        project: ProjectContext,
        cache: ResultCache,
        config: Optional[SorterConfig] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self.project = project
        self.cache = cache
        self.config = config or SorterConfig()
        self._popen = popen

        self.staging_dir: Optional[Path] = None
        self.snapshot = WorkspaceConfigCache()
        self.active_config_path: Optional[Path] = None
        self.active_stylesheet_path: Optional[Path] = None

        self.process: Optional[subprocess.Popen] = None
        self.stdin = None
        self.stdout = None
        self.stderr = None
        self.channel: Optional[BaseMessageChannel] = None
        self.dispatcher: Optional[RequestDispatcher] = None
        self._last_request_id = 0

        self.document_version = 0
        self.server_version: Optional[str] = None

    @property
    def virtual_document_path(self) -> Optional[Path]:
        if self.staging_dir is None:
            return None
        return self.staging_dir / VIRTUAL_DOCUMENT_NAME

    @property
    def virtual_document_uri(self) -> Optional[str]:
        path = self.virtual_document_path
        return path.as_uri() if path is not None else None

    def is_running(self) -> bool:
        handles = (self.stdin, self.stdout, self.stderr)
        if self.process is None or any(h is None or h.closed for h in handles):
            return False
        return self.process.poll() is None

    def ensure_started(self) -> None:
        if self.is_running():
            return

        if self.process is not None:
            logger.debug("Discarding dead language server session")
            self.abandon()

        self._prepare_workspace()
        self._spawn()
        with log_context(staging_dir=str(self.staging_dir)):
            self._handshake()

    def next_document_version(self) -> int:
        self.document_version += 1
        return self.document_version

    def _create_staging_dir(self) -> Path:
        name = self.project.root_path.name if self.project.root_path else "default"
        stamp = time.strftime("%Y%m%d%H%M%S")
        return Path(tempfile.mkdtemp(prefix=f"tailwind_sorter_{name}_{stamp}_"))

    def _prepare_workspace(self) -> None:
        if self.staging_dir is None or not self.staging_dir.is_dir():
            self.staging_dir = self._create_staging_dir()
            logger.debug(f"Created staging directory {self.staging_dir}")

        virtual_path = self.staging_dir / VIRTUAL_DOCUMENT_NAME
        if not virtual_path.exists():
            virtual_path.write_text(VIRTUAL_DOCUMENT_TEXT, encoding="utf-8")

        if self.project.found:
            self._stage_project_files()
        else:
            self._stage_defaults()

    def _stage_project_files(self) -> None:
        config_path = self.project.config_path
        try:
            mtime = config_path.stat().st_mtime
        except FileNotFoundError as exc:
            raise ConfigurationError(
                f"Tailwind config {config_path} disappeared"
            ) from exc

        staged_config = self.staging_dir / config_path.name
        if not self.snapshot.matches(config_path, mtime):
            logger.debug("Config file changed or new, copying to workspace")
            shutil.copyfile(config_path, staged_config)

            stylesheet = self.project.stylesheet_path
            if stylesheet is not None:
                staged_stylesheet = self.staging_dir / stylesheet.name
                if not staged_stylesheet.exists():
                    shutil.copyfile(stylesheet, staged_stylesheet)

            self.snapshot = WorkspaceConfigCache(
                path=config_path,
                mtime=mtime,
                content=config_path.read_text(encoding="utf-8"),
            )
            self.cache.invalidate_all()

        self.active_config_path = staged_config
        if self.project.stylesheet_path is not None:
            self.active_stylesheet_path = (
                self.staging_dir / self.project.stylesheet_path.name
            )
        else:
            self.active_stylesheet_path = None

    def _stage_defaults(self) -> None:
        config_path = self.staging_dir / DEFAULT_CONFIG_NAME
        stylesheet_path = self.staging_dir / DEFAULT_STYLESHEET_NAME
        if not config_path.exists():
            logger.debug("No project found, writing default Tailwind config")
            config_path.write_text(DEFAULT_CONFIG, encoding="utf-8")
            stylesheet_path.write_text(DEFAULT_CSS, encoding="utf-8")
        self.active_config_path = config_path
        self.active_stylesheet_path = (
            stylesheet_path if stylesheet_path.exists() else None
        )

    def _spawn(self) -> None:
        command = find_server_command(
            self.config.server_command, self.config.start_dir
        ) + ["--stdio"]
        env = os.environ.copy()
        env.update(self.config.environment)

        logger.debug(f"Starting language server: {command}")
        try:
            process = self._popen(
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                cwd=str(self.staging_dir),
                env=env,
                bufsize=0,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise WorkerNotFoundError(
                f"Could not launch Tailwind CSS language server {command[0]!r}: {exc}"
            ) from exc

        self.process = process
        self.stdin, self.stdout, self.stderr = process.stdin, process.stdout, process.stderr

        channel: BaseMessageChannel = MessageChannel(
            self.stdout, self.stdin, read_timeout=self.config.read_timeout
        )
        if self.config.debug:
            channel = TracingChannel(channel)
        self.channel = channel
        self.dispatcher = RequestDispatcher(
            channel,
            ServerRequestHandler(),
            request_timeout=self.config.request_timeout,
            read_timeout=self.config.read_timeout,
            start_id=self._last_request_id,
        )

        threading.Thread(
            target=self._pump_stderr,
            args=(self.stderr,),
            name="tailwind-sorter-stderr",
            daemon=True,
        ).start()

    @staticmethod
    def _pump_stderr(stream) -> None:
        try:
            for line in iter(stream.readline, b""):
                logger.debug(
                    f"[server] {line.decode('utf-8', errors='replace').rstrip()}"
                )
        except (OSError, ValueError):
            # Stream closed underneath us during teardown.
            return

    def _initialize_params(self) -> Dict[str, Any]:
        root_uri = self.staging_dir.as_uri()
        return {
            "processId": os.getpid(),
            "clientInfo": {"name": "tailwind_sorter", "version": __version__},
            "rootUri": root_uri,
            "workspaceFolders": [{"uri": root_uri, "name": "tailwind_sorter"}],
            "capabilities": {
                "textDocument": {
                    "synchronization": {"didOpen": True, "didChange": True}
                },
                "workspace": {"configuration": True},
            },
        }

    def _open_document(self, path: Path, version: int = 1) -> None:
        self.dispatcher.send_notification(
            LspMethod.DID_OPEN,
            {
                "textDocument": {
                    "uri": path.as_uri(),
                    "languageId": _language_id(path),
                    "version": version,
                    "text": path.read_text(encoding="utf-8"),
                }
            },
        )

    def _handshake(self) -> None:
        try:
            result = self.dispatcher.request_sync(
                LspMethod.INITIALIZE, self._initialize_params()
            )
            self.server_version = check_server_version(
                result, self.config.min_server_version
            )

            self.dispatcher.send_notification(LspMethod.INITIALIZED, {})
            self.dispatcher.send_notification(
                LspMethod.DID_CHANGE_CONFIGURATION, {"settings": WORKSPACE_SETTINGS}
            )

            # The config must be open before any sort request or the server
            # never detects the project.
            self._open_document(self.active_config_path)
            if self.active_stylesheet_path is not None:
                self._open_document(self.active_stylesheet_path)
            self._open_document(self.virtual_document_path)
            self.document_version = 1

            handled = self.dispatcher.drain(self.config.drain_timeout)
            logger.debug(f"Handshake complete, answered {handled} server messages")
        except TailwindSorterError as exc:
            self.abandon()
            raise HandshakeError(
                f"Tailwind CSS language server handshake failed: {exc}"
            ) from exc

    def stop(self) -> None:
        if not self.is_running():
            return

        logger.debug("Stopping language server")
        try:
            self.dispatcher.send_notification(
                LspMethod.DID_CLOSE, {"textDocument": {"uri": self.virtual_document_uri}}
            )
            self.dispatcher.send_notification(LspMethod.EXIT, {})
        except ProtocolError as exc:
            logger.debug(f"Language server went away during shutdown: {exc}")
        finally:
            self._teardown(graceful=True)

    def abandon(self) -> None:
        """Tear the session down without talking to the server."""
        self._teardown()

    @staticmethod
    def _close_stream(stream) -> None:
        if stream is None:
            return
        try:
            stream.close()
        except (OSError, ValueError):
            logger.debug("Ignoring error while closing server stream")

    def _teardown(self, graceful: bool = False) -> None:
        if self.dispatcher is not None:
            self._last_request_id = self.dispatcher.last_request_id

        self._close_stream(self.stdin)

        process = self.process
        if graceful and process is not None:
            # After "exit" the server should leave on its own.
            try:
                process.wait(timeout=self.config.shutdown_timeout)
            except subprocess.TimeoutExpired:
                logger.debug("Language server still running after exit")
        if process is not None and process.poll() is None:
            process.terminate()
            try:
                process.wait(timeout=self.config.shutdown_timeout)
            except subprocess.TimeoutExpired:
                logger.warning("Language server ignored SIGTERM, killing it")
                process.kill()
                process.wait()

        # Closed only once the process is gone so the stderr pump sees EOF first.
        self._close_stream(self.stdout)
        self._close_stream(self.stderr)

        self.process = self.stdin = self.stdout = self.stderr = None
        self.channel = None
        self.dispatcher = None

    def cleanup(self) -> None:
        """Stop the server and delete the staging directory."""
        self.stop()
        self.abandon()

        if self.staging_dir is not None and self.staging_dir.is_dir():
            shutil.rmtree(self.staging_dir)
        self.staging_dir = None
        self.active_config_path = None
        self.active_stylesheet_path = None
        self.snapshot = WorkspaceConfigCache()
        self.cache.invalidate_all()
