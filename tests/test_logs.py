import logging

import pytest

from jrpc_core.logs import (
    TRACE,
    rx_log_from_bytes,
    rx_log_from_json,
    rx_log_from_str,
    truncate_at_char_boundary,
    tx_log_from_json,
    tx_log_from_str,
)

LOGGER = "jrpc_core.logs"


def messages(caplog):
    return [r.getMessage() for r in caplog.records]


@pytest.mark.parametrize(
    "text, limit, expected",
    [
        ("ボルテックス", 0, ""),
        ("ボルテックス", 4, "ボルテッ"),
        ("ボルテックス", 100, "ボルテックス"),
        ("hola-hola", 4, "hola"),
    ],
)
def test_truncate_at_char_boundary(text, limit, expected):
    assert truncate_at_char_boundary(text, limit) == expected


def test_tx_log_from_str_truncates(caplog):
    caplog.set_level(TRACE, logger=LOGGER)
    tx_log_from_str("hola-hola", 4)
    assert messages(caplog) == ["send=hola"]


def test_rx_log_from_str(caplog):
    caplog.set_level(TRACE, logger=LOGGER)
    rx_log_from_str("ボルテックス", 100)
    assert messages(caplog) == ["recv=ボルテックス"]


def test_tx_log_from_json(caplog):
    caplog.set_level(TRACE, logger=LOGGER)
    tx_log_from_json({"a": [1, 2]}, 100)
    assert messages(caplog) == ['send={"a":[1,2]}']


def test_tx_log_from_json_unserializable_logs_empty(caplog):
    caplog.set_level(TRACE, logger=LOGGER)
    tx_log_from_json(object(), 100)
    assert messages(caplog) == ["send="]


def test_rx_log_from_json_truncates(caplog):
    caplog.set_level(TRACE, logger=LOGGER)
    rx_log_from_json("abcdef", 3)
    assert messages(caplog) == ['recv="ab']


def test_rx_log_from_bytes_valid(caplog):
    caplog.set_level(TRACE, logger=LOGGER)
    rx_log_from_bytes(b'{"a": 1}', 100)
    assert messages(caplog) == ['recv={"a":1}']


def test_rx_log_from_bytes_invalid_is_null(caplog):
    caplog.set_level(TRACE, logger=LOGGER)
    rx_log_from_bytes(b"not json", 100)
    assert messages(caplog) == ["recv=null"]


def test_nothing_logged_when_trace_disabled(caplog):
    caplog.set_level(logging.WARNING, logger=LOGGER)
    tx_log_from_str("hello", 10)
    rx_log_from_bytes(b"[1]", 10)
    assert caplog.records == []