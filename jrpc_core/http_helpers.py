"""Reading JSON-RPC request bodies and HTTP headers."""

from __future__ import annotations

import re
from collections.abc import AsyncIterator, Iterable, Mapping
from typing import Any

from .errors import GenericTransportError, MalformedError, TooLargeError

CONTENT_LENGTH = "content-length"

_U32_MAX = 2**32 - 1
_DECIMAL = re.compile(r"\+?[0-9]+")
_ASCII_WHITESPACE = b" \t\n\r\x0c"


def _as_text(value: Any) -> str | None:
    """A header value as text, or None if it holds anything but visible ASCII or tab."""
    if isinstance(value, (bytes, bytearray)):
        try:
            value = bytes(value).decode("ascii")
        except UnicodeDecodeError:
            return None
    if not isinstance(value, str):
        return None
    if all(ch == "\t" or " " <= ch <= "~" for ch in value):
        return value
    return None


def read_header_values(headers: Any, header_name: str) -> list[Any]:
    """All values given for `header_name`, compared case-insensitively.

    `headers` may be a mapping of names to a value or a list of values, an
    object with a `get_all` method, or an iterable of (name, value) pairs.
    """
    wanted = header_name.lower()
    values: list[Any] = []
    if isinstance(headers, Mapping):
        for name, value in headers.items():
            if name.lower() != wanted:
                continue
            if isinstance(value, (str, bytes, bytearray)):
                values.append(value)
            else:
                values.extend(value)
        return values
    if hasattr(headers, "get_all"):
        return list(headers.get_all(header_name) or [])
    for name, value in headers:
        if name.lower() == wanted:
            values.append(value)
    return values


def read_header_value(headers: Any, header_name: str) -> str | None:
    """The value of `header_name` when it was given exactly once, else None."""
    values = read_header_values(headers, header_name)
    if len(values) != 1:
        return None
    return _as_text(values[0])


def read_header_content_length(headers: Any) -> int | None:
    """The Content-Length header as an integer; None if absent, repeated or not a u32."""
    length = read_header_value(headers, CONTENT_LENGTH)
    if length is None or not _DECIMAL.fullmatch(length):
        return None
    value = int(length)
    return value if value <= _U32_MAX else None


async def _chunks(body: Any) -> AsyncIterator[bytes]:
    if isinstance(body, (bytes, bytearray, memoryview)):
        if len(body):
            yield bytes(body)
    elif hasattr(body, "__aiter__"):
        async for chunk in body:
            yield bytes(chunk)
    else:
        for chunk in body:
            yield bytes(chunk)


async def read_body(
    headers: Any, body: bytes | Iterable[bytes] | Any, max_request_body_size: int
) -> tuple[bytes, bool]:
    """Read a request body that must not exceed `max_request_body_size` bytes.

    Returns the data and whether it is a single call (True) or a batch (False).
    Raises TooLargeError, MalformedError, or GenericTransportError wrapping a
    failure to read from `body`.
    """
    body_size = read_header_content_length(headers) or 0
    if body_size > max_request_body_size:
        raise TooLargeError()

    chunks = _chunks(body)

    async def next_chunk() -> bytes | None:
        try:
            return await chunks.__anext__()
        except StopAsyncIteration:
            return None
        except Exception as exc:
            raise GenericTransportError(exc) from exc

    first = await next_chunk()
    if first is None:
        raise MalformedError()
    if len(first) > max_request_body_size:
        raise TooLargeError()

    lead = first.lstrip(_ASCII_WHITESPACE)[:1]
    if lead == b"{":
        single = True
    elif lead == b"[":
        single = False
    else:
        raise MalformedError()

    received = bytearray(first)
    while (chunk := await next_chunk()) is not None:
        if len(chunk) + len(received) > max_request_body_size:
            raise TooLargeError()
        received.extend(chunk)
    return bytes(received), single