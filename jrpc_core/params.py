"""Builders for JSON-RPC request parameters."""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable

from .errors import ParseError


@runtime_checkable
class ToRpcParams(Protocol):
    """Anything that can produce the JSON text of request parameters."""

    def to_rpc_params(self) -> str | None: ...


def _dump(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise ParseError(exc) from exc


class _ParamsBuilder:
    """Collects serialized entries and wraps them in start and end tokens."""

    def __init__(self, start: str, end: str) -> None:
        self._start = start
        self._end = end
        self._entries: list[str] = []

    def add(self, entry: str) -> None:
        self._entries.append(entry)

    def build(self) -> str | None:
        if not self._entries:
            return None
        return self._start + ",".join(self._entries) + self._end


class ObjectParams:
    """Named parameters, serialized as a JSON object."""

    def __init__(self) -> None:
        self._builder = _ParamsBuilder("{", "}")

    def insert(self, name: str, value: Any) -> None:
        """Add a named value; raises ParseError if it cannot be serialized."""
        entry = _dump(name) + ":" + _dump(value)
        self._builder.add(entry)

    def to_rpc_params(self) -> str | None:
        """The JSON object text, or None when nothing was inserted."""
        return self._builder.build()


class ArrayParams:
    """Positional parameters, serialized as a JSON array."""

    def __init__(self) -> None:
        self._builder = _ParamsBuilder("[", "]")

    def insert(self, value: Any) -> None:
        """Add a value; raises ParseError if it cannot be serialized."""
        self._builder.add(_dump(value))

    def to_rpc_params(self) -> str | None:
        """The JSON array text, or None when nothing was inserted."""
        return self._builder.build()


def to_rpc_params(value: Any) -> str | None:
    """Serialize request parameters from a builder, list or tuple."""
    if isinstance(value, ToRpcParams):
        return value.to_rpc_params()
    if isinstance(value, (list, tuple)):
        return _dump(list(value))
    raise TypeError(f"{type(value).__name__} cannot be used as RPC parameters")


class BatchRequestBuilder:
    """Collects (method, params) pairs for a batch request."""

    def __init__(self) -> None:
        self._requests: list[tuple[str, str | None]] = []

    def insert(self, method: str, params: Any) -> None:
        """Add a call to `method` with `params`."""
        self._requests.append((method, to_rpc_params(params)))

    def build(self) -> list[tuple[str, str | None]]:
        """The collected calls, in insertion order."""
        return list(self._requests)