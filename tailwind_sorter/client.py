"""
Synchronous Tailwind CSS class sorting through the Tailwind language server.

Example:
    >>> from tailwind_sorter import TailwindSorterClient
    >>>
    >>> with TailwindSorterClient() as client:
    ...     client.sort_classes("p-4 flex mt-2")
    'mt-2 flex p-4'
"""

from __future__ import annotations

import subprocess
from typing import Any, Callable, Dict, Optional

from tailwind_sorter.cache import ResultCache
from tailwind_sorter.config import SorterConfig
from tailwind_sorter.exceptions import DomainError, ProtocolError, RequestTimeoutError
from tailwind_sorter.logger import configure_logging, setup_logger
from tailwind_sorter.lsp.types import LspMethod
from tailwind_sorter.project import ProjectContext, ProjectLocator
from tailwind_sorter.supervisor import VIRTUAL_DOCUMENT_COMMENT, ProcessSupervisor

logger = setup_logger(__name__)


def normalize_whitespace(value: str) -> str:
    """Collapse runs of whitespace to single spaces and strip the ends."""
    return " ".join(value.split())


def render_virtual_document(classes: str) -> str:
    return f'<div class="{classes}">{VIRTUAL_DOCUMENT_COMMENT}</div>'


def _raise_for_error(result: Any, action: str) -> None:
    if isinstance(result, dict) and result.get("error"):
        raise DomainError(f"Error {action}: {result['error']}")


class TailwindSorterClient:
    """
    Client for one private Tailwind language server.

    The project is discovered once, at construction, by walking up from
    ``config.start_dir``. The server is started lazily by the first call
    that needs it and restarted by the next call after it dies or after a
    protocol failure.
    """

    def __init__(
        self,
        config: Optional[SorterConfig] = None,
        *,
        project: Optional[ProjectContext] = None,
        locator: Optional[ProjectLocator] = None,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
    ) -> None:
        self.config = config or SorterConfig()
        if self.config.debug:
            configure_logging("DEBUG", force=True)

        if project is None:
            project = (locator or ProjectLocator()).locate(self.config.start_dir)
        self.project = project

        self.cache = ResultCache(ttl=self.config.cache_ttl)
        self.supervisor = ProcessSupervisor(
            self.project, self.cache, self.config, popen=popen
        )

        logger.debug(
            f"Initialized with project root {self.project.root_path}, "
            f"config {self.project.config_path}, "
            f"CSS {self.project.stylesheet_path}"
        )

    def __enter__(self) -> "TailwindSorterClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> None:
        self.supervisor.ensure_started()

    def stop(self) -> None:
        self.supervisor.stop()

    def cleanup(self) -> None:
        self.supervisor.cleanup()

    def is_running(self) -> bool:
        return self.supervisor.is_running()

    def _request(self, method: LspMethod, params: Dict[str, Any]) -> Any:
        try:
            return self.supervisor.dispatcher.request_sync(method, params)
        except (ProtocolError, RequestTimeoutError):
            # The stream may hold half a frame; start over on the next call.
            self.supervisor.abandon()
            raise

    def sort_classes(self, classes: str) -> str:
        """
        Return ``classes`` in Tailwind's recommended order.

        Results are cached for ``config.cache_ttl`` seconds. If the server
        has no answer (for example while it is still loading the project)
        the input is returned unchanged and not cached.
        """
        cached = self.cache.get(classes)
        if cached is not None:
            return cached

        self.supervisor.ensure_started()
        document_uri = self.supervisor.virtual_document_uri

        try:
            self.supervisor.dispatcher.send_notification(
                LspMethod.DID_CHANGE,
                {
                    "textDocument": {
                        "uri": document_uri,
                        "version": self.supervisor.next_document_version(),
                    },
                    "contentChanges": [{"text": render_virtual_document(classes)}],
                },
            )
        except ProtocolError:
            self.supervisor.abandon()
            raise

        result = self._request(
            LspMethod.SORT_SELECTION,
            {"uri": document_uri, "classLists": [classes]},
        )
        _raise_for_error(result, "sorting classes")

        class_lists = result.get("classLists") if isinstance(result, dict) else None
        if not class_lists or not isinstance(class_lists[0], str):
            logger.debug(f"Server returned no sorted classes for: {classes}")
            return classes

        sorted_classes = normalize_whitespace(class_lists[0])
        self.cache.put(classes, sorted_classes)
        return sorted_classes

    def get_project(self) -> Optional[Dict[str, Any]]:
        """
        Ask the server which Tailwind project it detected.

        Returns the server's project descriptor, or None when it found none.
        """
        self.supervisor.ensure_started()

        result = self._request(
            LspMethod.GET_PROJECT,
            {"uri": self.supervisor.active_config_path.as_uri()},
        )
        _raise_for_error(result, "finding project")

        if result is None:
            logger.info("No project found")
        return result
