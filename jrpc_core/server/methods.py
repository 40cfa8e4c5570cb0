"""Method registry and in-process calls without a running server."""

from __future__ import annotations

import enum
import inspect
import json
import logging
import sys
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from ..errors import (
    CustomCallError,
    ErrorCode,
    ErrorObject,
    MaxResourcesReachedError,
    MethodAlreadyRegisteredError,
    ParseError,
    ResourceNameNotFoundForMethodError,
    RpcError,
    UninitializedMethodError,
)
from ..id_providers import IdProvider, RandomIntegerIdProvider
from ..params import to_rpc_params
from .helpers import (
    U32_MAX,
    BoundedSubscriptions,
    Id,
    MethodResponse,
    MethodSink,
    SubscriptionPermit,
    UnboundedChannel,
)
from .resource_limiting import RESOURCE_COUNT, ResourceGuard, Resources

logger = logging.getLogger(__name__)

_MAX_RESPONSE_SIZE = sys.maxsize

SubscriptionId = int | str


class MethodKind(enum.Enum):
    """How a registered callback is invoked.

    SYNC:            callback(id, params, max_response_size) -> MethodResponse
    ASYNC:           await callback(id, params, conn_id, max_response_size, claimed)
    SUBSCRIPTION:    await callback(id, params, method_sink, conn_state, claimed)
    UNSUBSCRIPTION:  callback(id, params, conn_id, max_response_size) -> MethodResponse

    `params` is the decoded JSON value of the request parameters, or None.
    """

    SYNC = "sync"
    ASYNC = "async"
    SUBSCRIPTION = "subscription"
    UNSUBSCRIPTION = "unsubscription"


@dataclass
class ConnState:
    """Per-connection state handed to subscription callbacks."""

    conn_id: int
    close_notify: SubscriptionPermit
    id_provider: IdProvider


class MethodCallback:
    """A callback plus the resource units it claims while running."""

    def __init__(self, kind: MethodKind, callback: Callable[..., Any]) -> None:
        self.kind = kind
        self.callback = callback
        self._pending: tuple[tuple[str, int], ...] | None = ()
        self._table: list[int] | None = None

    @property
    def initialized(self) -> bool:
        """Whether resource units were resolved against a Resources table."""
        return self._table is not None

    @property
    def units(self) -> tuple[int, ...] | None:
        """Resolved units per resource index, or None before initialization."""
        return None if self._table is None else tuple(self._table)

    def _set_pending(self, pending: list[tuple[str, int]]) -> None:
        self._pending = tuple(pending)
        self._table = None

    def _initialize(self, method_name: str, resources: Resources) -> None:
        if self._table is not None or self._pending is None:
            return
        table = list(resources.defaults)
        for label, units in self._pending:
            try:
                idx = resources.labels.index(label)
            except ValueError:
                raise ResourceNameNotFoundForMethodError(label, method_name) from None
            # A capacity of 0 makes the resource unlimited, so the cost is ignored.
            table[idx] = 0 if resources.capacities[idx] == 0 else units
        self._table = table
        self._pending = None

    def claim(self, name: str, resources: Resources) -> ResourceGuard:
        """Claim this method's units; raises UninitializedMethodError before initialization."""
        if self._table is None:
            raise UninitializedMethodError(name)
        return resources.claim(self._table)

    def __repr__(self) -> str:
        return f"MethodCallback(kind={self.kind.name}, units={self.units!r})"


class MethodResourcesBuilder:
    """Declares how many units of named resources a method uses."""

    def __init__(self, callback: MethodCallback) -> None:
        self._callback = callback
        self._build: list[tuple[str, int]] = []

    def resource(self, label: str, units: int) -> MethodResourcesBuilder:
        """Add a resource cost; raises MaxResourcesReachedError past eight entries."""
        if len(self._build) >= RESOURCE_COUNT:
            raise MaxResourcesReachedError()
        self._build.append((label, units))
        self._callback._set_pending(self._build)
        return self


def _is_valid_id(value: object) -> bool:
    if value is None or isinstance(value, str):
        return True
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < 2**64


def _parse_request(text: str | bytes) -> tuple[Id, str, Any]:
    try:
        obj = json.loads(text)
    except ValueError as exc:
        raise ParseError(exc) from exc
    if not isinstance(obj, dict):
        raise ParseError(ValueError("request must be a JSON object"))
    if obj.get("jsonrpc") != "2.0":
        raise ParseError(ValueError("missing or invalid `jsonrpc` field"))
    method = obj.get("method")
    if not isinstance(method, str):
        raise ParseError(ValueError("missing or invalid `method` field"))
    if "id" not in obj or not _is_valid_id(obj["id"]):
        raise ParseError(ValueError("missing or invalid `id` field"))
    return obj["id"], method, obj.get("params")


def _decode(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError as exc:
        raise ParseError(exc) from exc


def _raise_error_response(text: str) -> None:
    obj = _decode(text)
    if not isinstance(obj, dict) or obj.get("jsonrpc") != "2.0" or "error" not in obj:
        raise ParseError(ValueError("response is neither a result nor an error"))
    raise CustomCallError(ErrorObject.from_dict(obj["error"]))


class Methods:
    """A collection of named method callbacks."""

    def __init__(self) -> None:
        self._callbacks: dict[str, MethodCallback] = {}

    def verify_method_name(self, name: str) -> None:
        """Raise MethodAlreadyRegisteredError if `name` is taken."""
        if name in self._callbacks:
            raise MethodAlreadyRegisteredError(name)

    def verify_and_insert(self, name: str, callback: MethodCallback) -> MethodCallback:
        """Insert `callback` under `name` unless taken; returns the inserted callback."""
        self.verify_method_name(name)
        self._callbacks[name] = callback
        return callback

    def initialize_resources(self, resources: Resources) -> Methods:
        """Resolve resource costs of every method; already resolved ones are left alone."""
        for name, callback in self._callbacks.items():
            callback._initialize(name, resources)
        return self

    def merge(self, other: Methods | Any) -> None:
        """Add all callbacks of `other`; fails without changes if any name is taken.

        `other` is a Methods or anything exposing one as its `methods` attribute.
        """
        if not isinstance(other, Methods):
            other = other.methods
        for name in other._callbacks:
            self.verify_method_name(name)
        self._callbacks.update(other._callbacks)

    def method(self, method_name: str) -> MethodCallback | None:
        """The callback registered under `method_name`, if any."""
        return self._callbacks.get(method_name)

    def method_names(self) -> Iterator[str]:
        """Names of all registered methods."""
        return iter(list(self._callbacks))

    def __contains__(self, name: object) -> bool:
        return name in self._callbacks

    def __len__(self) -> int:
        return len(self._callbacks)

    async def call(self, method: str, params: Any) -> Any:
        """Call `method` in-process and return the decoded `result` field.

        A JSON-RPC error response is raised as CustomCallError.
        """
        params_text = to_rpc_params(params)
        decoded = None if params_text is None else json.loads(params_text)
        logger.debug("[Methods::call] Method: %r, params: %r", method, params_text)
        resp, _, _ = await self._inner_call(0, method, decoded)
        if resp.success:
            obj = _decode(resp.result)
            if not isinstance(obj, dict) or "result" not in obj:
                raise ParseError(ValueError("response has no `result` field"))
            return obj["result"]
        _raise_error_response(resp.result)

    async def raw_json_request(self, request: str | bytes) -> tuple[MethodResponse, UnboundedChannel]:
        """Run a raw JSON request; returns the response and the notification channel."""
        logger.debug("[Methods::raw_json_request] Request: %r", request)
        id, method, params = _parse_request(request)
        resp, channel, _ = await self._inner_call(id, method, params)
        return resp, channel

    async def subscribe(self, sub_method: str, params: Any) -> Subscription:
        """Start a subscription in-process."""
        params_text = to_rpc_params(params)
        decoded = None if params_text is None else json.loads(params_text)
        logger.debug("[Methods::subscribe] Method: %s, params: %r", sub_method, params_text)
        response, channel, close_notify = await self._inner_call(0, sub_method, decoded)
        obj = _decode(response.result)
        if isinstance(obj, dict) and obj.get("jsonrpc") == "2.0" and "result" in obj:
            sub_id = obj["result"]
            if isinstance(sub_id, str) or (
                isinstance(sub_id, int) and not isinstance(sub_id, bool) and sub_id >= 0
            ):
                return Subscription(close_notify, channel, sub_id)
        _raise_error_response(response.result)
        raise AssertionError("unreachable")

    async def _inner_call(
        self, id: Id, method: str, params: Any
    ) -> tuple[MethodResponse, UnboundedChannel, SubscriptionPermit]:
        channel = UnboundedChannel()
        sink = MethodSink(channel)
        bounded = BoundedSubscriptions(U32_MAX)
        close_notify = bounded.acquire()
        notify = bounded.acquire()
        assert close_notify is not None and notify is not None

        callback = self.method(method)
        if callback is None:
            response = MethodResponse.error(id, ErrorCode.METHOD_NOT_FOUND)
        elif callback.kind is MethodKind.SYNC:
            response = callback.callback(id, params, _MAX_RESPONSE_SIZE)
        elif callback.kind is MethodKind.ASYNC:
            response = await _resolve(callback.callback(id, params, 0, _MAX_RESPONSE_SIZE, None))
        elif callback.kind is MethodKind.SUBSCRIPTION:
            conn_state = ConnState(0, close_notify, RandomIntegerIdProvider())
            response = await _resolve(callback.callback(id, params, sink, conn_state, None))
            # The subscription answer is also sent on the sink; it is already in `response`.
            await channel.recv()
        else:
            response = callback.callback(id, params, 0, _MAX_RESPONSE_SIZE)

        logger.debug("[Methods::inner_call] Method: %s, response: %r", method, response)
        return response, channel, notify

    def __repr__(self) -> str:
        return f"Methods({sorted(self._callbacks)!r})"


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class Subscription:
    """Client side of an in-process subscription, mainly for testing."""

    def __init__(
        self,
        close_notify: SubscriptionPermit | None,
        rx: UnboundedChannel,
        sub_id: SubscriptionId,
    ) -> None:
        self._close_notify = close_notify
        self._rx = rx
        self._sub_id = sub_id

    def close(self) -> None:
        """Signal the server side that this subscriber went away."""
        if self._close_notify is not None:
            permit, self._close_notify = self._close_notify, None
            permit.handle().notify_one()

    def subscription_id(self) -> SubscriptionId:
        return self._sub_id

    def is_closed(self) -> bool:
        return self._close_notify is None

    async def next(self) -> tuple[Any, SubscriptionId] | None:
        """The next (result, subscription id), or None once the subscription ended.

        Raises ParseError for a message that is neither a notification nor a close.
        """
        if self._close_notify is None:
            logger.debug("[Subscription::next] Closed.")
            return None
        raw = await self._rx.recv()
        if raw is None:
            return None
        logger.debug("[Subscription::next]: rx %s", raw)
        obj = _decode(raw)
        payload = obj.get("params") if isinstance(obj, dict) else None
        valid = (
            isinstance(obj, dict)
            and obj.get("jsonrpc") == "2.0"
            and isinstance(obj.get("method"), str)
            and isinstance(payload, dict)
            and "subscription" in payload
        )
        if valid and "result" in payload:
            return payload["result"], payload["subscription"]
        if valid and "error" in payload:
            return None
        raise ParseError(ValueError(f"invalid subscription message: {raw}"))

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        item = await self.next()
        if item is None:
            raise StopAsyncIteration
        return item[0]

    def __repr__(self) -> str:
        return f"Subscription(sub_id={self._sub_id!r}, closed={self.is_closed()})"


__all__ = [
    "ConnState",
    "MethodCallback",
    "MethodKind",
    "MethodResourcesBuilder",
    "Methods",
    "RpcError",
    "Subscription",
]