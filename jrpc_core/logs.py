"""Trace logging of sent and received JSON-RPC messages."""

from __future__ import annotations

import json
import logging
from typing import Any

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

logger = logging.getLogger(__name__)


def truncate_at_char_boundary(s: str, max_len: int) -> str:
    """Return at most the first `max_len` characters of `s`."""
    if len(s) < max_len:
        return s
    return s[:max_len]


def _to_json_or_empty(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError, RecursionError):
        return ""


def tx_log_from_str(s: str, max_len: int) -> None:
    """Trace an outgoing message given as text."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, "send=%s", truncate_at_char_boundary(s, max_len))


def tx_log_from_json(value: Any, max_len: int) -> None:
    """Trace an outgoing message given as a JSON-serializable value."""
    if logger.isEnabledFor(TRACE):
        text = _to_json_or_empty(value)
        logger.log(TRACE, "send=%s", truncate_at_char_boundary(text, max_len))


def rx_log_from_str(s: str, max_len: int) -> None:
    """Trace an incoming message given as text."""
    if logger.isEnabledFor(TRACE):
        logger.log(TRACE, "recv=%s", truncate_at_char_boundary(s, max_len))


def rx_log_from_json(value: Any, max_len: int) -> None:
    """Trace an incoming message given as a JSON-serializable value."""
    if logger.isEnabledFor(TRACE):
        text = _to_json_or_empty(value)
        logger.log(TRACE, "recv=%s", truncate_at_char_boundary(text, max_len))


def rx_log_from_bytes(data: bytes, max_len: int) -> None:
    """Trace an incoming message given as raw bytes; unparsable data shows as null."""
    if logger.isEnabledFor(TRACE):
        try:
            value = json.loads(data)
        except ValueError:
            value = None
        rx_log_from_json(value, max_len)