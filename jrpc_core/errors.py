"""Error types and JSON-RPC error objects."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

T = TypeVar("T")

TEN_MB_SIZE_BYTES = 10 * 1024 * 1024

PARSE_ERROR_CODE = -32700
OVERSIZED_REQUEST_CODE = -32701
OVERSIZED_RESPONSE_CODE = -32702
INVALID_REQUEST_CODE = -32600
METHOD_NOT_FOUND_CODE = -32601
INVALID_PARAMS_CODE = -32602
INTERNAL_ERROR_CODE = -32603
SERVER_IS_BUSY_CODE = -32604
CALL_EXECUTION_FAILED_CODE = -32000
UNKNOWN_ERROR_CODE = -32001
SUBSCRIPTION_CLOSED = -32003
SUBSCRIPTION_CLOSED_WITH_ERROR = -32004
TOO_MANY_SUBSCRIPTIONS_CODE = -32006

OVERSIZED_RESPONSE_MSG = "Response is too big"
TOO_MANY_SUBSCRIPTIONS_MSG = "Too many subscriptions"
SERVER_ERROR_MSG = "Server error"


@dataclass(frozen=True)
class Mismatch(Generic[T]):
    """An expected value paired with the value actually seen."""

    expected: T
    got: T

    def __str__(self) -> str:
        return f"Expected: {self.expected}, Got: {self.got}"


class ErrorCode(enum.Enum):
    """Standard JSON-RPC error codes."""

    PARSE_ERROR = PARSE_ERROR_CODE
    OVERSIZED_REQUEST = OVERSIZED_REQUEST_CODE
    INVALID_REQUEST = INVALID_REQUEST_CODE
    METHOD_NOT_FOUND = METHOD_NOT_FOUND_CODE
    SERVER_IS_BUSY = SERVER_IS_BUSY_CODE
    INVALID_PARAMS = INVALID_PARAMS_CODE
    INTERNAL_ERROR = INTERNAL_ERROR_CODE

    def message(self) -> str:
        """The standard message for this code."""
        return _CODE_MESSAGES[self]


_CODE_MESSAGES = {
    ErrorCode.PARSE_ERROR: "Parse error",
    ErrorCode.OVERSIZED_REQUEST: "Request is too big",
    ErrorCode.INVALID_REQUEST: "Invalid request",
    ErrorCode.METHOD_NOT_FOUND: "Method not found",
    ErrorCode.SERVER_IS_BUSY: "Server is busy, try again later",
    ErrorCode.INVALID_PARAMS: "Invalid params",
    ErrorCode.INTERNAL_ERROR: "Internal error",
}


@dataclass(frozen=True)
class ErrorObject:
    """The `error` member of a JSON-RPC error response."""

    code: int
    message: str
    data: Any = None

    @classmethod
    def from_code(cls, code: ErrorCode | int) -> ErrorObject:
        """Build an error object carrying the standard message of `code`."""
        if isinstance(code, ErrorCode):
            return cls(code.value, code.message())
        try:
            known = ErrorCode(code)
        except ValueError:
            return cls(code, SERVER_ERROR_MSG)
        return cls(known.value, known.message())

    @classmethod
    def from_dict(cls, obj: dict[str, Any]) -> ErrorObject:
        """Build an error object from its decoded JSON form."""
        try:
            code = obj["code"]
            message = obj["message"]
        except (KeyError, TypeError) as exc:
            raise ParseError(exc) from exc
        if not isinstance(code, int) or not isinstance(message, str):
            raise ParseError(ValueError("invalid error object"))
        return cls(code, message, obj.get("data"))

    def to_dict(self) -> dict[str, Any]:
        """The JSON form of this error object; `data` is left out when unset."""
        out: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out

    def __str__(self) -> str:
        text = f"{self.code}: {self.message}"
        if self.data is not None:
            text += f": {self.data}"
        return text


class RpcError(Exception):
    """Base of every error raised by the library."""


class CallError(RpcError):
    """A method call failed."""


class InvalidParamsError(CallError):
    """The parameters of a call could not be used."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Invalid params in the call: {cause}")


class CallFailedError(CallError):
    """The call was executed and failed."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"RPC call failed: {cause}")


class CustomCallError(CallError):
    """The call failed with a caller-provided error object."""

    def __init__(self, error_object: ErrorObject) -> None:
        self.error_object = error_object
        super().__init__(str(error_object))


class TransportError(RpcError):
    """Networking error or error on the low-level protocol layer."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Networking or low-level protocol error: {cause}")


class InternalChannelError(RpcError):
    """Frontend/backend channel error."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Frontend/backend channel error: {cause}")


class InvalidResponseError(RpcError):
    """The response did not match what was expected."""

    def __init__(self, mismatch: Mismatch[str]) -> None:
        self.mismatch = mismatch
        super().__init__(f"Invalid response: {mismatch}")


class RestartNeededError(RpcError):
    """The background task has been terminated."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(
            f"The background task been terminated because: {reason}; restart required"
        )


class ParseError(RpcError):
    """Data could not be serialized or parsed."""

    def __init__(self, cause: object) -> None:
        self.cause = cause
        super().__init__(f"Parse error: {cause}")


class InvalidSubscriptionIdError(RpcError):
    def __init__(self) -> None:
        super().__init__("Invalid subscription ID")


class InvalidRequestIdError(RpcError):
    def __init__(self) -> None:
        super().__init__("Invalid request ID")


class UnregisteredNotificationError(RpcError):
    """A notification arrived for a method nobody registered."""

    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__("Unregistered notification method")


class DuplicateRequestIdError(RpcError):
    def __init__(self) -> None:
        super().__init__("A request with the same request ID has already been registered")


class MethodAlreadyRegisteredError(RpcError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Method: {name} was already registered")


class MethodNotFoundError(RpcError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Method: {name} has not yet been registered")


class SubscriptionNameConflictError(RpcError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f"Cannot use the same method name for subscribe and unsubscribe, used: {name}"
        )


class RequestTimeoutError(RpcError):
    def __init__(self) -> None:
        super().__init__("Request timeout")


class MaxSlotsExceededError(RpcError):
    def __init__(self) -> None:
        super().__init__("Configured max number of request slots exceeded")


class AlreadyStoppedError(RpcError):
    def __init__(self) -> None:
        super().__init__("Attempted to stop server that is already stopped")


class EmptyAllowListError(RpcError):
    def __init__(self, header: str) -> None:
        self.header = header
        super().__init__(f"Must set at least one allowed value for the {header} header")


class HttpHeaderRejectedError(RpcError):
    def __init__(self, header: str, value: str) -> None:
        self.header = header
        self.value = value
        super().__init__(f"HTTP header: `{header}` value: `{value}` verification failed")


class ResourceAtCapacityError(RpcError):
    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Resource at capacity: {label}")


class ResourceNameAlreadyTakenError(RpcError):
    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Resource name already taken: {label}")


class ResourceNameNotFoundForMethodError(RpcError):
    def __init__(self, label: str, method: str) -> None:
        self.label = label
        self.method = method
        super().__init__(f"Resource name `{label}` not found for method `{method}`")


class UninitializedMethodError(RpcError):
    def __init__(self, method: str) -> None:
        self.method = method
        super().__init__(f"Method `{method}` has uninitialized resources")


class MaxResourcesReachedError(RpcError):
    def __init__(self) -> None:
        super().__init__("Maximum number of resources reached")


class CustomError(RpcError):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(f"Custom error: {message}")


class HttpNotImplementedError(RpcError):
    def __init__(self) -> None:
        super().__init__("Not implemented")


class SubscriptionAcceptRejectError(Exception):
    """A subscription could not be accepted or rejected."""


class AlreadyCalledError(SubscriptionAcceptRejectError):
    def __init__(self) -> None:
        super().__init__("The subscription was already accepted or rejected")


class RemotePeerAbortedError(SubscriptionAcceptRejectError):
    def __init__(self) -> None:
        super().__init__("The remote peer closed the connection")


class GenericTransportError(Exception):
    """Transport-level failure, wrapping the underlying error."""

    def __init__(self, inner: object) -> None:
        self.inner = inner
        super().__init__(f"Transport error: {inner}")


class TooLargeError(GenericTransportError):
    def __init__(self) -> None:
        self.inner = None
        Exception.__init__(self, "The request was too big")


class MalformedError(GenericTransportError):
    def __init__(self) -> None:
        self.inner = None
        Exception.__init__(self, "Malformed request")


class SubscriptionClosedKind(enum.Enum):
    """Why a subscription ended."""

    REMOTE_PEER_ABORTED = "remote_peer_aborted"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class SubscriptionClosed:
    """How a subscription was closed, by either side."""

    kind: SubscriptionClosedKind
    error: ErrorObject | None = None

    def __post_init__(self) -> None:
        if (self.kind is SubscriptionClosedKind.FAILED) != (self.error is not None):
            raise ValueError("an error object is given exactly when the subscription failed")

    @classmethod
    def remote_peer_aborted(cls) -> SubscriptionClosed:
        return cls(SubscriptionClosedKind.REMOTE_PEER_ABORTED)

    @classmethod
    def success(cls) -> SubscriptionClosed:
        return cls(SubscriptionClosedKind.SUCCESS)

    @classmethod
    def failed(cls, error: ErrorObject) -> SubscriptionClosed:
        return cls(SubscriptionClosedKind.FAILED, error)

    def to_error_object(self) -> ErrorObject:
        """The error object sent to the subscriber for this outcome."""
        if self.kind is SubscriptionClosedKind.REMOTE_PEER_ABORTED:
            return ErrorObject(SUBSCRIPTION_CLOSED, "Subscription was closed by the remote peer")
        if self.kind is SubscriptionClosedKind.SUCCESS:
            return ErrorObject(
                SUBSCRIPTION_CLOSED, "Subscription was completed by the server successfully"
            )
        assert self.error is not None
        return self.error


def to_call_error(err: BaseException) -> CallFailedError:
    """Wrap any exception as a failed call."""
    return CallFailedError(err)


def to_error_object(err: object) -> ErrorObject:
    """Turn an error, error code or close reason into a JSON-RPC error object."""
    if isinstance(err, ErrorObject):
        return err
    if isinstance(err, ErrorCode):
        return ErrorObject.from_code(err)
    if isinstance(err, SubscriptionClosed):
        return err.to_error_object()
    if isinstance(err, CustomCallError):
        return err.error_object
    if isinstance(err, InvalidParamsError):
        return ErrorObject(INVALID_PARAMS_CODE, str(err.cause))
    if isinstance(err, CallFailedError):
        return ErrorObject(CALL_EXECUTION_FAILED_CODE, str(err.cause))
    if isinstance(err, RpcError):
        return ErrorObject(UNKNOWN_ERROR_CODE, str(err))
    if isinstance(err, BaseException):
        return ErrorObject(CALL_EXECUTION_FAILED_CODE, str(err))
    raise TypeError(f"cannot convert {type(err).__name__} into an error object")