"""
JSON-RPC message models and the LSP methods spoken to the Tailwind CSS
language server.

Messages are pydantic models; ``to_payload`` produces the JSON object put on
the wire and ``parse_message`` classifies a decoded object back into one of
the three message kinds.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from tailwind_sorter.exceptions import DecodeError

JSONRPC_VERSION = "2.0"

MessageId = Union[int, str]


class LspMethod(str, Enum):
    """LSP methods used by the client, standard and Tailwind-specific."""

    INITIALIZE = "initialize"
    INITIALIZED = "initialized"
    EXIT = "exit"
    DID_CHANGE_CONFIGURATION = "workspace/didChangeConfiguration"
    WORKSPACE_CONFIGURATION = "workspace/configuration"
    DID_OPEN = "textDocument/didOpen"
    DID_CHANGE = "textDocument/didChange"
    DID_CLOSE = "textDocument/didClose"
    SORT_SELECTION = "@/tailwindCSS/sortSelection"
    GET_PROJECT = "@/tailwindCSS/getProject"


class ResponseError(BaseModel):
    """Error object of a failed JSON-RPC response."""

    code: int = Field(..., description="JSON-RPC error code.")
    message: str = Field(..., description="Human-readable error message.")
    data: Optional[Any] = Field(None, description="Optional error details.")


class JsonRpcMessage(BaseModel):
    jsonrpc: Literal["2.0"] = JSONRPC_VERSION

    def to_payload(self) -> Dict[str, Any]:
        raise NotImplementedError


class RequestMessage(JsonRpcMessage):
    """A call that expects a response carrying the same id."""

    id: MessageId
    method: str
    params: Optional[Any] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "jsonrpc": self.jsonrpc,
            "id": self.id,
            "method": self.method,
        }
        if self.params is not None:
            payload["params"] = self.params
        return payload


class NotificationMessage(JsonRpcMessage):
    """A fire-and-forget message; it has no id and gets no response."""

    method: str
    params: Optional[Any] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "method": self.method}
        if self.params is not None:
            payload["params"] = self.params
        return payload


class ResponseMessage(JsonRpcMessage):
    """Answer to a request: exactly one of ``result`` or ``error``."""

    id: Optional[MessageId] = None
    result: Optional[Any] = None
    error: Optional[ResponseError] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            error: Dict[str, Any] = {
                "code": self.error.code,
                "message": self.error.message,
            }
            if self.error.data is not None:
                error["data"] = self.error.data
            payload["error"] = error
        else:
            payload["result"] = self.result
        return payload


Message = Union[RequestMessage, NotificationMessage, ResponseMessage]


def parse_message(payload: Any) -> Message:
    """Classify a decoded JSON value as a request, notification or response."""
    if not isinstance(payload, dict):
        raise DecodeError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    try:
        if "method" in payload:
            if "id" in payload:
                return RequestMessage.model_validate(payload)
            return NotificationMessage.model_validate(payload)
        if "id" in payload:
            if "result" in payload and payload.get("error") is not None:
                raise DecodeError("Response carries both result and error")
            return ResponseMessage.model_validate(payload)
    except ValidationError as exc:
        raise DecodeError(f"Invalid JSON-RPC message: {exc}") from exc

    raise DecodeError("Message has neither a method nor an id")
