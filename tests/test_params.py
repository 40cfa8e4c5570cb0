import json
import math

import pytest

import jrpc_core.params as params_module
from jrpc_core.errors import ParseError
from jrpc_core.params import (
    ArrayParams,
    BatchRequestBuilder,
    ObjectParams,
    to_rpc_params,
)


class ManualParam:
    def to_rpc_params(self):
        return '[1, "2", 3]'


def test_empty_array_params_is_none():
    assert ArrayParams().to_rpc_params() is None


def test_empty_object_params_is_none():
    assert ObjectParams().to_rpc_params() is None


def test_array_params_compact_json():
    builder = ArrayParams()
    builder.insert(1)
    builder.insert(2)
    assert builder.to_rpc_params() == "[1,2]"


def test_object_params_compact_json():
    builder = ObjectParams()
    builder.insert("key", 1)
    assert builder.to_rpc_params() == '{"key":1}'


def test_object_params_round_trip_and_order():
    builder = ObjectParams()
    builder.insert("param1", 1)
    builder.insert("param2", "abc")
    decoded = json.loads(builder.to_rpc_params())
    assert decoded == {"param1": 1, "param2": "abc"}
    assert list(decoded) == ["param1", "param2"]


def test_array_params_nested_round_trip():
    values = ["param1", 1, {"a": [True, None]}, 2.5]
    builder = ArrayParams()
    for value in values:
        builder.insert(value)
    assert json.loads(builder.to_rpc_params()) == values


def test_non_ascii_is_kept_literal():
    builder = ArrayParams()
    builder.insert("ボルテックス")
    text = builder.to_rpc_params()
    assert "ボルテックス" in text
    assert json.loads(text) == ["ボルテックス"]


def test_unserializable_value_raises_and_is_not_added():
    builder = ArrayParams()
    with pytest.raises(ParseError):
        builder.insert(object())
    assert builder.to_rpc_params() is None


def test_nan_raises_parse_error():
    builder = ObjectParams()
    with pytest.raises(ParseError):
        builder.insert("x", math.nan)


def test_to_rpc_params_list_and_tuple():
    assert json.loads(to_rpc_params([1, "2", 3])) == [1, "2", 3]
    assert json.loads(to_rpc_params((1, "2", 3))) == [1, "2", 3]
    assert json.loads(to_rpc_params([])) == []


def test_to_rpc_params_delegates_to_builder():
    builder = ObjectParams()
    builder.insert("a", 1)
    assert to_rpc_params(builder) == builder.to_rpc_params()


def test_to_rpc_params_custom_implementation():
    result = params_module.to_rpc_params(ManualParam())
    assert result == '[1, "2", 3]'
    assert json.loads(result) == [1, "2", 3]


def test_to_rpc_params_rejects_scalars():
    with pytest.raises(TypeError):
        to_rpc_params(5)


def test_batch_builder_keeps_order():
    batch = BatchRequestBuilder()
    batch.insert("say_hello", ArrayParams())
    batch.insert("slow_hello", [1])
    built = batch.build()
    assert [method for method, _ in built] == ["say_hello", "slow_hello"]
    assert built[0][1] is None
    assert json.loads(built[1][1]) == [1]


def test_batch_builder_accepts_custom_params():
    batch = BatchRequestBuilder()
    batch.insert("manual", ManualParam())
    assert batch.build() == [("manual", '[1, "2", 3]')]


def test_batch_builder_failed_insert_adds_nothing():
    batch = BatchRequestBuilder()
    with pytest.raises(ParseError):
        batch.insert("m", [object()])
    assert batch.build() == []