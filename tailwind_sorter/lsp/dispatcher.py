"""
Synchronous request/response correlation over a ``MessageChannel``.

Only one client request is outstanding at a time. While waiting for its
response the dispatcher answers any requests the server sends in the
meantime (the Tailwind server pulls ``workspace/configuration`` at will and
blocks until it gets an answer).
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from tailwind_sorter.exceptions import DomainError, RequestTimeoutError
from tailwind_sorter.logger import setup_logger
from tailwind_sorter.lsp.channel import BaseMessageChannel
from tailwind_sorter.lsp.types import (
    LspMethod,
    NotificationMessage,
    RequestMessage,
    ResponseMessage,
)

logger = setup_logger(__name__)

TAILWIND_SECTION = "tailwindCSS"

TAILWIND_SETTINGS: Dict[str, Any] = {
    "experimental": {"classRegex": []},
    "includeLanguages": {},
    "validate": True,
}

EDITOR_SETTINGS: Dict[str, Any] = {"tabSize": 4, "insertSpaces": True}


class RequestState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class ServerRequestHandler:
    """Answers requests initiated by the language server."""

    def __init__(
        self,
        tailwind_settings: Optional[Dict[str, Any]] = None,
        editor_settings: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.tailwind_settings = tailwind_settings or TAILWIND_SETTINGS
        self.editor_settings = editor_settings or EDITOR_SETTINGS

    def settings_for(self, section: Optional[str]) -> Dict[str, Any]:
        if section == TAILWIND_SECTION:
            return self.tailwind_settings
        return self.editor_settings

    def _workspace_configuration(self, params: Any) -> List[Dict[str, Any]]:
        items = params.get("items") if isinstance(params, dict) else None
        if not items:
            return [self.editor_settings]
        return [
            self.settings_for(item.get("section") if isinstance(item, dict) else None)
            for item in items
        ]

    def handle(self, message: Any) -> Optional[ResponseMessage]:
        """
        Build the reply for a server message, or None when none is due.

        Notifications never get a reply. Every request does, even an
        unrecognised one, because the server may block until it is answered.
        """
        if isinstance(message, NotificationMessage):
            logger.debug(f"Ignoring server notification {message.method}")
            return None
        if not isinstance(message, RequestMessage):
            return None

        if message.method == LspMethod.WORKSPACE_CONFIGURATION.value:
            result: Any = self._workspace_configuration(message.params)
        else:
            logger.debug(
                f"Answering unsupported server request {message.method} with null"
            )
            result = None
        return ResponseMessage(id=message.id, result=result)


class RequestDispatcher:
    """Sends requests and blocks until the matching response is read."""

    def __init__(
        self,
        channel: BaseMessageChannel,
        handler: Optional[ServerRequestHandler] = None,
        request_timeout: float = 5.0,
        read_timeout: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
        start_id: int = 0,
    ) -> None:
        self.channel = channel
        self.handler = handler or ServerRequestHandler()
        self.request_timeout = request_timeout
        self.read_timeout = read_timeout
        self._clock = clock
        self._request_id = start_id
        self.state = RequestState.IDLE

    @property
    def last_request_id(self) -> int:
        return self._request_id

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _handle_server_message(self, message: Any) -> None:
        reply = self.handler.handle(message)
        if reply is not None:
            self.channel.send(reply)

    def request_sync(
        self, method: str, params: Any = None, timeout: Optional[float] = None
    ) -> Any:
        """
        Send a request and return the ``result`` of its response.

        Raises:
            RequestTimeoutError: no matching response within ``timeout``.
            DomainError: the response carried a JSON-RPC error object.
            ProtocolError: the channel failed; propagated unchanged.
        """
        if timeout is None:
            timeout = self.request_timeout
        method = method.value if isinstance(method, LspMethod) else method

        request = RequestMessage(id=self._next_id(), method=method, params=params)
        logger.debug(f"Sending request {request.id}: {method}")

        self.state = RequestState.AWAITING_RESPONSE
        try:
            self.channel.send(request)
            start_time = self._clock()

            while True:
                remaining = timeout - (self._clock() - start_time)
                if remaining <= 0:
                    break
                try:
                    message = self.channel.receive(
                        timeout=min(self.read_timeout, remaining)
                    )
                except RequestTimeoutError as exc:
                    if self.read_timeout < remaining:
                        # The per-read bound tripped first: the server is hung.
                        raise RequestTimeoutError(
                            f"Request {method} timed out: no data from language "
                            f"server within {self.read_timeout:g} seconds "
                            f"(request timeout {timeout:g} seconds)",
                            timeout=timeout,
                            read_timeout=self.read_timeout,
                        ) from exc
                    break

                if isinstance(message, (RequestMessage, NotificationMessage)):
                    self._handle_server_message(message)
                    continue

                if message.id != request.id:
                    logger.debug(f"Discarding unmatched response {message.id}")
                    continue

                self.state = RequestState.COMPLETED
                if message.error is not None:
                    raise DomainError(
                        f"{method} failed: {message.error.message}",
                        code=message.error.code,
                        data=message.error.data,
                    )
                return message.result
        except RequestTimeoutError:
            self.state = RequestState.TIMED_OUT
            raise
        except DomainError:
            raise
        except Exception:
            self.state = RequestState.FAILED
            raise

        self.state = RequestState.TIMED_OUT
        raise RequestTimeoutError(
            f"Request {method} timed out after {timeout:g} seconds",
            timeout=timeout,
        )

    def send_notification(self, method: str, params: Any = None) -> None:
        method = method.value if isinstance(method, LspMethod) else method
        self.channel.send(NotificationMessage(method=method, params=params))

    def drain(self, timeout: float) -> int:
        """
        Answer server messages for up to ``timeout`` seconds.

        Running out of time is how the drain ends, not an error.
        """
        handled = 0
        start_time = self._clock()
        while True:
            remaining = timeout - (self._clock() - start_time)
            if remaining <= 0:
                return handled
            try:
                message = self.channel.receive(timeout=remaining)
            except RequestTimeoutError:
                return handled
            if isinstance(message, ResponseMessage):
                logger.debug(f"Discarding unmatched response {message.id}")
                continue
            self._handle_server_message(message)
            handled += 1
