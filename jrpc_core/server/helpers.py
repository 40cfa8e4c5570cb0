"""Sinks, subscription limits and response builders shared by servers."""

from __future__ import annotations

import asyncio
import collections
import json as _json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Union

from ..errors import (
    OVERSIZED_RESPONSE_CODE,
    OVERSIZED_RESPONSE_MSG,
    ErrorCode,
    ErrorObject,
    InternalChannelError,
    ParseError,
    to_error_object,
)
from ..logs import tx_log_from_str

Id = Union[int, str, None]

U32_MAX = 2**32 - 1

logger = logging.getLogger(__name__)


def _to_json(value: Any) -> str:
    try:
        return _json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise ParseError(exc) from exc


def _success_payload(id: Id, result: Any) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "result": result, "id": id}


def _error_payload(id: Id, error: ErrorObject) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "error": error.to_dict(), "id": id}


def _error_response_json(id: Id, err: object) -> str:
    return _to_json(_error_payload(id, to_error_object(err)))


class CapacityExceededError(OSError):
    """Raised when a bounded writer would grow past its limit."""

    def __init__(self) -> None:
        super().__init__("Memory capacity exceeded")


class BoundedWriter:
    """A byte buffer that refuses to hold more than `max_len` bytes."""

    def __init__(self, max_len: int) -> None:
        self.max_len = max_len
        self._buf = bytearray()

    def write(self, data: bytes) -> int:
        """Append `data`; raise CapacityExceededError if it does not fit."""
        if len(self._buf) + len(data) > self.max_len:
            raise CapacityExceededError()
        self._buf.extend(data)
        return len(data)

    def flush(self) -> None:
        """Nothing is buffered beyond memory; present for the file protocol."""
        return None

    def getvalue(self) -> bytes:
        """The bytes written so far."""
        return bytes(self._buf)


class UnboundedChannel:
    """An unbounded asynchronous queue of strings that can be closed."""

    def __init__(self) -> None:
        self._items: collections.deque[str] = collections.deque()
        self._waiters: collections.deque[asyncio.Future[None]] = collections.deque()
        self._closed = False

    def send(self, item: str) -> None:
        """Queue `item`; raises InternalChannelError once the channel is closed."""
        if self._closed:
            raise InternalChannelError("send failed because the channel is closed")
        self._items.append(item)
        self._wake_one()

    async def recv(self) -> str | None:
        """Next item, or None when the channel is closed and drained."""
        while True:
            if self._items:
                return self._items.popleft()
            if self._closed:
                return None
            fut = asyncio.get_running_loop().create_future()
            self._waiters.append(fut)
            try:
                await fut
            finally:
                if fut in self._waiters:
                    self._waiters.remove(fut)

    def close(self) -> None:
        """Refuse further items; pending receivers are woken."""
        self._closed = True
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)

    def is_closed(self) -> bool:
        return self._closed

    def _wake_one(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return


class Notify:
    """Wakes waiting tasks; a single notification is remembered if nobody waits."""

    def __init__(self) -> None:
        self._waiters: collections.deque[asyncio.Future[None]] = collections.deque()
        self._permit = False

    def notify_one(self) -> None:
        """Wake one waiter, or store a permit for the next one."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._permit = True

    def notify_waiters(self) -> None:
        """Wake every task currently waiting; no permit is stored."""
        waiters, self._waiters = self._waiters, collections.deque()
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def notified(self) -> None:
        """Wait until notified."""
        if self._permit:
            self._permit = False
            return
        fut = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        finally:
            if fut in self._waiters:
                self._waiters.remove(fut)


class MethodSink:
    """Sends serialized responses for a connection back through a channel."""

    def __init__(
        self,
        channel: UnboundedChannel,
        max_response_size: int = U32_MAX,
        max_log_length: int = U32_MAX,
    ) -> None:
        self._channel = channel
        self._max_response_size = max_response_size
        self._max_log_length = max_log_length

    def is_closed(self) -> bool:
        return self._channel.is_closed()

    def send_error(self, id: Id, error: object) -> bool:
        """Send a JSON-RPC error response; True if it was queued."""
        try:
            text = _error_response_json(id, error)
        except (ParseError, TypeError) as exc:
            logger.error("Error serializing response: %r", exc)
            return False
        try:
            self.send_raw(text)
        except InternalChannelError as exc:
            logger.warning("Error sending response %r", exc)
            return False
        return True

    def send_call_error(self, id: Id, err: BaseException) -> bool:
        """Send a library error as a JSON-RPC error response."""
        return self.send_error(id, to_error_object(err))

    def send_raw(self, json: str) -> None:
        """Send text as-is; raises InternalChannelError if the channel is closed."""
        tx_log_from_str(json, self._max_log_length)
        self._channel.send(json)

    def close(self) -> None:
        self._channel.close()

    def max_response_size(self) -> int:
        return self._max_response_size


def _is_valid_id(value: object) -> bool:
    if value is None or isinstance(value, str):
        return True
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 2**64


def prepare_error(data: bytes | str) -> tuple[Id, ErrorCode]:
    """Extract the request id from a bad request, or report a parse error."""
    try:
        obj = _json.loads(data)
    except ValueError:
        return None, ErrorCode.PARSE_ERROR
    if isinstance(obj, dict) and "id" in obj and _is_valid_id(obj["id"]):
        return obj["id"], ErrorCode.INVALID_REQUEST
    return None, ErrorCode.PARSE_ERROR


class SubscriptionPermit:
    """A claimed subscription slot, with a handle to the connection's close signal."""

    def __init__(self, owner: BoundedSubscriptions, resource: Notify) -> None:
        self._owner = owner
        self._resource = resource
        self._released = False

    def handle(self) -> Notify:
        return self._resource

    def release(self) -> None:
        """Give the slot back; calling again has no effect."""
        if not self._released:
            self._released = True
            self._owner._release_slot()


class BoundedSubscriptions:
    """Hands out at most `max_subscriptions` permits at a time."""

    def __init__(self, max_subscriptions: int) -> None:
        self._max = max_subscriptions
        self._available = max_subscriptions
        self._lock = threading.Lock()
        self._resource = Notify()

    def acquire(self) -> SubscriptionPermit | None:
        """A permit, or None when all slots are taken."""
        with self._lock:
            if self._available <= 0:
                return None
            self._available -= 1
        return SubscriptionPermit(self, self._resource)

    def max(self) -> int:
        return self._max

    def close(self) -> None:
        """Signal every waiting subscription that the connection is closing."""
        self._resource.notify_waiters()

    def _release_slot(self) -> None:
        with self._lock:
            self._available += 1


@dataclass
class MethodResponse:
    """A serialized response to a method call."""

    result: str
    success: bool

    @classmethod
    def response(cls, id: Id, result: Any, max_response_size: int) -> MethodResponse:
        """Serialize a success response, or an error if it is too big or unserializable."""
        try:
            text = _to_json(_success_payload(id, result))
            BoundedWriter(max_response_size).write(text.encode("utf-8"))
        except CapacityExceededError as exc:
            logger.error("Error serializing response: %r", exc)
            err = ErrorObject(
                OVERSIZED_RESPONSE_CODE,
                OVERSIZED_RESPONSE_MSG,
                f"Exceeded max limit of {max_response_size}",
            )
            return cls(_error_response_json(id, err), False)
        except ParseError as exc:
            logger.error("Error serializing response: %r", exc)
            return cls(_error_response_json(id, ErrorCode.INTERNAL_ERROR), False)
        return cls(text, True)

    @classmethod
    def error(cls, id: Id, err: object) -> MethodResponse:
        """Serialize an error response."""
        return cls(_error_response_json(id, err), False)


@dataclass
class BatchResponse:
    """A serialized response to a batch request."""

    result: str
    success: bool

    @classmethod
    def error(cls, id: Id, err: object) -> BatchResponse:
        return cls(_error_response_json(id, err), False)


class BatchLimitExceeded(Exception):
    """The batch response grew past its limit; carries the error response to send."""

    def __init__(self, response: BatchResponse) -> None:
        self.response = response
        super().__init__("Batch response exceeded the maximum size")


class BatchResponseBuilder:
    """Joins individual method responses into a batch response."""

    def __init__(self, limit: int) -> None:
        self._max_response_size = limit
        self._parts: list[str] = []
        self._size = 1  # the opening bracket

    def append(self, response: MethodResponse) -> BatchResponseBuilder:
        """Add a response; raises BatchLimitExceeded if the limit would be passed."""
        length = len(response.result.encode("utf-8"))
        if length + self._size + 1 > self._max_response_size:
            raise BatchLimitExceeded(BatchResponse.error(None, ErrorCode.INVALID_REQUEST))
        self._parts.append(response.result)
        self._size += length + 1
        return self

    def finish(self) -> BatchResponse:
        """The batch response; an invalid-request error when it is empty."""
        if not self._parts:
            return BatchResponse.error(None, ErrorCode.INVALID_REQUEST)
        return BatchResponse("[" + ",".join(self._parts) + "]", True)