"""
Content-Length framed transport over a pair of byte streams.

``MessageChannel`` writes and reads LSP base-protocol frames::

    Content-Length: <n>\\r\\n
    \\r\\n
    <n bytes of UTF-8 JSON>

Reads keep their own buffer, so a read that times out part way through a
frame loses nothing; the next ``receive`` continues where it stopped.
"""

from __future__ import annotations

import io
import json
import os
import select
import time
from typing import Any, BinaryIO, Dict, Optional, Tuple

from tailwind_sorter.exceptions import (
    ConnectionLostError,
    DecodeError,
    FramingError,
    RequestTimeoutError,
)
from tailwind_sorter.logger import setup_logger
from tailwind_sorter.lsp.types import Message, parse_message

logger = setup_logger(__name__)

HEADER_SEPARATOR = b"\r\n"
HEADER_TERMINATOR = b"\r\n\r\n"
CONTENT_LENGTH = "content-length"
READ_CHUNK_SIZE = 65536


def encode_message(message: Message) -> bytes:
    """Frame ``message`` as header block plus JSON body."""
    body = json.dumps(
        message.to_payload(), ensure_ascii=False, separators=(",", ":")
    ).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


def decode_body(body: bytes) -> Message:
    try:
        payload = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"Message body is not valid JSON: {exc}") from exc
    return parse_message(payload)


class BaseMessageChannel:
    """Interface shared by the raw channel and its wrappers."""

    def send(self, message: Message) -> None:
        raise NotImplementedError

    def receive(self, timeout: Optional[float] = None) -> Message:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class MessageChannel(BaseMessageChannel):
    """Framed JSON-RPC channel over a writer (server stdin) and reader (stdout)."""

    def __init__(
        self,
        reader: BinaryIO,
        writer: BinaryIO,
        read_timeout: float = 5.0,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self.read_timeout = read_timeout
        self._buffer = bytearray()
        self._fd = self._fileno(reader)

    @staticmethod
    def _fileno(stream: Any) -> Optional[int]:
        try:
            return stream.fileno()
        except (AttributeError, io.UnsupportedOperation, OSError, ValueError):
            return None

    def send(self, message: Message) -> None:
        data = encode_message(message)
        try:
            self._writer.write(data)
            self._writer.flush()
        except (BrokenPipeError, ConnectionResetError) as exc:
            raise ConnectionLostError(
                f"Language server closed its input: {exc}"
            ) from exc
        except ValueError as exc:
            # Writing to a closed file object.
            raise ConnectionLostError(f"Channel writer is closed: {exc}") from exc

    def receive(self, timeout: Optional[float] = None) -> Message:
        """
        Read one complete frame and decode it.

        ``timeout`` bounds the whole header scan plus body read and defaults
        to ``read_timeout``. Nothing is taken off the buffer until the full
        frame is there, so a timeout part way through costs no bytes.
        """
        if timeout is None:
            timeout = self.read_timeout
        deadline = time.monotonic() + timeout

        body_start, length = self._read_headers(deadline, timeout)
        frame_end = body_start + length
        while len(self._buffer) < frame_end:
            self._fill(deadline, timeout, in_frame=True)

        body = bytes(self._buffer[body_start:frame_end])
        del self._buffer[:frame_end]
        return decode_body(body)

    def close(self) -> None:
        for stream in (self._writer, self._reader):
            try:
                stream.close()
            except (OSError, ValueError):
                logger.debug("Ignoring error while closing channel stream")

    def _read_headers(self, deadline: float, timeout: float) -> Tuple[int, int]:
        """Wait for a complete header block; return (body offset, body length)."""
        while True:
            # Stray blank lines between frames.
            while self._buffer.startswith(HEADER_SEPARATOR):
                del self._buffer[: len(HEADER_SEPARATOR)]

            end = self._buffer.find(HEADER_TERMINATOR)
            if end >= 0:
                break
            self._fill(deadline, timeout, in_frame=bool(self._buffer))

        headers = self._parse_headers(bytes(self._buffer[:end]))
        raw_length = headers.get(CONTENT_LENGTH)
        if raw_length is None:
            raise FramingError(
                f"Content-Length header not found in headers: {sorted(headers)}"
            )
        try:
            length = int(raw_length)
        except ValueError as exc:
            raise FramingError(
                f"Invalid Content-Length value: {raw_length!r}"
            ) from exc
        if length < 0:
            raise FramingError(f"Invalid Content-Length value: {raw_length!r}")
        return end + len(HEADER_TERMINATOR), length

    @staticmethod
    def _parse_headers(block: bytes) -> Dict[str, str]:
        headers = {}
        for line in block.split(HEADER_SEPARATOR):
            try:
                key, value = line.decode("ascii").split(":", 1)
            except (UnicodeDecodeError, ValueError) as exc:
                raise FramingError(f"Malformed header line: {line!r}") from exc
            headers[key.strip().lower()] = value.strip()
        return headers

    def _fill(self, deadline: float, timeout: float, in_frame: bool) -> None:
        """Append at least one byte to the buffer or raise."""
        if self._fd is not None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise RequestTimeoutError(
                    f"No data from language server within {timeout:g} seconds",
                    timeout=timeout,
                )
            try:
                ready, _, _ = select.select([self._fd], [], [], remaining)
            except (OSError, ValueError) as exc:
                raise ConnectionLostError(
                    f"Language server output is unavailable: {exc}"
                ) from exc
            if not ready:
                raise RequestTimeoutError(
                    f"No data from language server within {timeout:g} seconds",
                    timeout=timeout,
                )
            try:
                chunk = os.read(self._fd, READ_CHUNK_SIZE)
            except OSError as exc:
                raise ConnectionLostError(
                    f"Reading from language server failed: {exc}"
                ) from exc
        else:
            try:
                chunk = self._reader.read(READ_CHUNK_SIZE)
            except ValueError as exc:
                raise ConnectionLostError(f"Channel reader is closed: {exc}") from exc

        if not chunk:
            if in_frame:
                raise FramingError(
                    "Stream ended before the declared message was complete"
                )
            raise ConnectionLostError("Language server closed its output")
        self._buffer.extend(chunk)


class TracingChannel(BaseMessageChannel):
    """Wraps another channel and logs every message that passes through."""

    def __init__(self, inner: BaseMessageChannel) -> None:
        self._inner = inner

    @staticmethod
    def _pretty(message: Message) -> str:
        return json.dumps(message.to_payload(), indent=2, ensure_ascii=False)

    def send(self, message: Message) -> None:
        logger.debug(f"→ Sending: {self._pretty(message)}")
        self._inner.send(message)

    def receive(self, timeout: Optional[float] = None) -> Message:
        message = self._inner.receive(timeout)
        logger.debug(f"← Received: {self._pretty(message)}")
        return message

    def close(self) -> None:
        self._inner.close()
