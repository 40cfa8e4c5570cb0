import pytest

from jrpc_core.errors import GenericTransportError, MalformedError, TooLargeError
from jrpc_core.http_helpers import (
    read_body,
    read_header_content_length,
    read_header_value,
    read_header_values,
)


async def _agen(chunks):
    for chunk in chunks:
        yield chunk


async def _failing():
    yield b"{"
    raise ConnectionResetError("reset")


@pytest.mark.asyncio
async def test_body_to_bytes_size_limit_works():
    with pytest.raises(TooLargeError):
        await read_body({}, bytes(128), 127)


def test_read_content_length_works():
    headers = [("Content-Length", "177")]
    assert read_header_content_length(headers) == 177
    headers.append(("Content-Length", "999"))
    assert read_header_content_length(headers) is None


def test_read_content_length_too_big_value():
    headers = {"content-length": "18446744073709551616"}
    assert read_header_content_length(headers) is None


def test_read_content_length_not_a_number():
    assert read_header_content_length({"content-length": "abc"}) is None
    assert read_header_content_length({}) is None


def test_read_header_value_case_insensitive_mapping_with_list():
    headers = {"Host": ["example.com"]}
    assert read_header_value(headers, "host") == "example.com"
    assert read_header_values(headers, "HOST") == ["example.com"]


def test_read_header_value_rejects_multiple_values():
    headers = {"host": ["a.example.com", "b.example.com"]}
    assert read_header_value(headers, "host") is None
    assert read_header_values(headers, "host") == ["a.example.com", "b.example.com"]


@pytest.mark.asyncio
async def test_single_object_body():
    data, single = await read_body({}, b'{"id":1}', 100)
    assert data == b'{"id":1}'
    assert single is True


@pytest.mark.asyncio
async def test_batch_body_with_leading_whitespace():
    data, single = await read_body({}, b" \n\t[1]", 100)
    assert data == b" \n\t[1]"
    assert single is False


@pytest.mark.asyncio
async def test_chunks_are_concatenated():
    data, single = await read_body({}, _agen([b"[1,", b"2]"]), 100)
    assert data == b"[1,2]"
    assert single is False


@pytest.mark.asyncio
async def test_sync_iterable_body():
    data, single = await read_body({}, [b"{}", b" "], 100)
    assert (data, single) == (b"{} ", True)


@pytest.mark.asyncio
async def test_later_chunks_exceeding_limit():
    with pytest.raises(TooLargeError):
        await read_body({}, _agen([b"[1,", b"2,3]"]), 5)


@pytest.mark.asyncio
async def test_content_length_exceeding_limit():
    with pytest.raises(TooLargeError):
        await read_body({"content-length": "500"}, b"{}", 100)


@pytest.mark.asyncio
async def test_empty_body_is_malformed():
    with pytest.raises(MalformedError):
        await read_body({}, b"", 100)


@pytest.mark.asyncio
async def test_non_json_start_is_malformed():
    with pytest.raises(MalformedError):
        await read_body({}, b"hello", 100)


@pytest.mark.asyncio
async def test_body_read_failure_is_wrapped():
    with pytest.raises(GenericTransportError) as info:
        await read_body({}, _failing(), 100)
    assert isinstance(info.value.inner, ConnectionResetError)