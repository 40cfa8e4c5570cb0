# jrpc_core

Building blocks for JSON-RPC 2.0 servers, in pure Python with no third-party
dependencies.

## Modules

- `jrpc_core.errors`: the `RpcError` hierarchy (for example
  `MethodAlreadyRegisteredError`, `ResourceAtCapacityError`,
  `HttpHeaderRejectedError`, `CustomCallError`), JSON-RPC error objects
  (`ErrorObject`, `ErrorCode`), the `SubscriptionClosed` outcome type, and
  `to_error_object` / `to_call_error` for converting errors.
- `jrpc_core.params`: `ArrayParams`, `ObjectParams`, `BatchRequestBuilder` and
  `to_rpc_params`, which turn Python values into the JSON text of request
  parameters (or `None` when no parameter was inserted).
- `jrpc_core.id_providers`: subscription ID generators
  `RandomIntegerIdProvider` (random integers below 2**53),
  `RandomStringIdProvider(length)` (random alphanumeric strings) and
  `NoopIdProvider` (always 0).
- `jrpc_core.logs`: trace-level logging of sent and received messages, cut to
  a maximum number of characters by `truncate_at_char_boundary`.
- `jrpc_core.http_helpers`: `read_body` reads a request body within a size
  limit and tells single calls from batches; `read_header_value`,
  `read_header_values` and `read_header_content_length` read HTTP headers.
- `jrpc_core.server.helpers`: `MethodResponse`, `BatchResponseBuilder`,
  `BatchResponse`, `BoundedWriter`, `MethodSink`, `UnboundedChannel`,
  `Notify`, `BoundedSubscriptions` and `prepare_error`.
- `jrpc_core.server.resource_limiting`: `Resources` and `ResourceGuard`, for
  up to eight named resources with capacities and default costs.
- `jrpc_core.server.host_filtering`: `Host`, `Matcher` and `AllowHosts` for
  checking the `Host` header against glob patterns.
- `jrpc_core.server.methods`: the `Methods` registry of `MethodCallback`s,
  in-process calls (`call`, `raw_json_request`, `subscribe`) and the
  `Subscription` reader.

## Installation

```
pip install .
```

## Examples

### Registering and calling a method

A `MethodCallback` of kind `MethodKind.SYNC` is called as
`callback(id, params, max_response_size)` and returns a `MethodResponse`.

```python
import asyncio

from jrpc_core.params import ArrayParams
from jrpc_core.server.helpers import MethodResponse
from jrpc_core.server.methods import MethodCallback, MethodKind, Methods

methods = Methods()
methods.verify_and_insert(
    "say_hello",
    MethodCallback(
        MethodKind.SYNC,
        lambda id, params, max_size: MethodResponse.response(id, "hello", max_size),
    ),
)


async def main():
    print(await methods.call("say_hello", ArrayParams()))  # hello
    response, _ = await methods.raw_json_request(
        '{"jsonrpc":"2.0","method":"say_hello","id":1}'
    )
    print(response.result)  # {"jsonrpc":"2.0","result":"hello","id":1}


asyncio.run(main())
```

Registering a name twice raises `MethodAlreadyRegisteredError`; calling an
unknown method through `call` raises `CustomCallError` carrying the
"Method not found" error object.

### Building parameters

```python
from jrpc_core.params import ArrayParams, ObjectParams

array = ArrayParams()
array.insert(1)
array.insert("abc")
array.to_rpc_params()   # '[1,"abc"]'

named = ObjectParams()
named.insert("key", 1)
named.to_rpc_params()   # '{"key":1}'
```

### Batch responses

```python
from jrpc_core.server.helpers import BatchResponseBuilder, MethodResponse

one = MethodResponse.response(1, "a", 1024)
batch = BatchResponseBuilder(1024).append(one).append(one).finish()
batch.result  # '[{"jsonrpc":"2.0","result":"a","id":1},{"jsonrpc":"2.0","result":"a","id":1}]'
```

`append` raises `BatchLimitExceeded` once the limit would be passed; the
exception's `response` holds the error response to send instead.

### Host filtering

```python
from jrpc_core.server.host_filtering import AllowHosts, Host

allowed = AllowHosts.only([Host.parse("*.example.com:*")])
allowed.verify("api.example.com:8080")   # passes
allowed.verify("other.org")              # raises HttpHeaderRejectedError
```

### Resource limits

```python
from jrpc_core.server.resource_limiting import Resources

resources = Resources()
resources.register("cpu", 10, 1)
with resources.claim([5]):
    ...  # units are given back on leaving the block
```

Method costs are declared with `MethodResourcesBuilder(callback).resource(label, units)`
and resolved with `Methods.initialize_resources(resources)`; after that
`MethodCallback.claim(name, resources)` returns a `ResourceGuard`.

## What this package does not do

- It has no network server or client: nothing listens on a socket or speaks
  HTTP or WebSocket. `read_body`, `AllowHosts` and the response builders are
  pieces for a server to use.
- It has no higher-level module type that wraps plain handler functions and a
  shared context. Callbacks are registered on `Methods` directly as
  `MethodCallback`s with the call signatures described on `MethodKind`;
  subscription callbacks must answer the subscribe call themselves.
- It has no command-line program.

## Running the tests

```
pip install ".[test]"
pytest
```