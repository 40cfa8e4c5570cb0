"""Validation of the HTTP `Host` header against an allow list."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from ..errors import HttpHeaderRejectedError

logger = logging.getLogger(__name__)

_U16_MAX = 0xFFFF
_DECIMAL = re.compile(r"\+?[0-9]+")
_ASCII_LOWER = str.maketrans("ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz")

Port = int | str | None


def _glob_to_regex(pattern: str) -> str:
    """Translate a glob (`*`, `?`, `[...]`, `{a,b}`, `\\` escapes) into a regex."""
    out: list[str] = []
    in_alt = False
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "\\":
            if i + 1 >= n:
                raise ValueError("dangling escape")
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if c == "*":
            while i + 1 < n and pattern[i + 1] == "*":
                i += 1
            out.append(".*")
        elif c == "?":
            out.append(".")
        elif c == "[":
            j = i + 1
            negate = j < n and pattern[j] in "!^"
            if negate:
                j += 1
            members: list[str] = []
            first = True
            while j < n and (pattern[j] != "]" or first):
                first = False
                ch = pattern[j]
                if j + 2 < n and pattern[j + 1] == "-" and pattern[j + 2] != "]":
                    end = pattern[j + 2]
                    if end < ch:
                        raise ValueError("invalid character range")
                    members.append(re.escape(ch) + "-" + re.escape(end))
                    j += 3
                else:
                    members.append(re.escape(ch))
                    j += 1
            if j >= n:
                raise ValueError("unclosed character class")
            out.append("[" + ("^" if negate else "") + "".join(members) + "]")
            i = j
        elif c == "{":
            if in_alt:
                raise ValueError("nested alternation")
            in_alt = True
            out.append("(?:")
        elif c == "}" and in_alt:
            in_alt = False
            out.append(")")
        elif c == "," and in_alt:
            out.append("|")
        else:
            out.append(re.escape(c))
        i += 1
    if in_alt:
        raise ValueError("unclosed alternation")
    return "".join(out)


class Matcher:
    """Case-insensitive glob match; an invalid glob falls back to plain comparison."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        try:
            self._regex: re.Pattern[str] | None = re.compile(
                _glob_to_regex(pattern), re.IGNORECASE | re.DOTALL
            )
        except (ValueError, re.error) as exc:
            logger.warning("Invalid glob pattern for %s: %r", pattern, exc)
            self._regex = None

    def matches(self, other: str) -> bool:
        """Whether `other` matches the whole pattern."""
        if self._regex is not None:
            return self._regex.fullmatch(other) is not None
        return self.pattern.translate(_ASCII_LOWER) == other.translate(_ASCII_LOWER)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Matcher):
            return NotImplemented
        return self.pattern == other.pattern

    def __hash__(self) -> int:
        return hash(self.pattern)

    def __repr__(self) -> str:
        return f"{self.pattern!r} ({self._regex is not None})"


def _pre_process(host: str) -> str:
    """Drop any protocol prefix and path, and lower-case what is left."""
    parts = host.split("://")
    rest = parts[1] if len(parts) > 1 else parts[0]
    return rest.split("/")[0].lower()


def _parse_port(text: str) -> int | str:
    if _DECIMAL.fullmatch(text):
        value = int(text)
        if value <= _U16_MAX:
            return value
    return text


class Host:
    """A host name with an optional fixed or wildcard port, matched as a glob."""

    def __init__(self, hostname: str, port: Port = None) -> None:
        if isinstance(port, int) and not 0 <= port <= _U16_MAX:
            raise ValueError(f"port must be between 0 and {_U16_MAX}, got {port}")
        self.hostname = _pre_process(hostname)
        self.port = port
        suffix = "" if port is None else f":{port}"
        self.host_with_port = self.hostname + suffix
        self.matcher = Matcher(self.host_with_port)

    @classmethod
    def parse(cls, value: str) -> Host:
        """Parse `[protocol://]host[:port][/path]`; never fails."""
        pieces = _pre_process(value).split(":")
        port: Port = _parse_port(pieces[1]) if len(pieces) > 1 else None
        return cls(pieces[0], port)

    def matches(self, other: str) -> bool:
        return self.matcher.matches(other)

    def __str__(self) -> str:
        return self.host_with_port

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Host):
            return NotImplemented
        return (
            self.hostname == other.hostname
            and type(self.port) is type(other.port)
            and self.port == other.port
            and self.host_with_port == other.host_with_port
        )

    def __hash__(self) -> int:
        return hash((self.hostname, self.port, self.host_with_port))

    def __repr__(self) -> str:
        return f"Host(hostname={self.hostname!r}, port={self.port!r})"


class AllowHosts:
    """Policy for the `Host` header: allow any host, or only those listed."""

    def __init__(self, hosts: Iterable[Host | str] | None = None) -> None:
        self.hosts: tuple[Host, ...] | None = (
            None
            if hosts is None
            else tuple(h if isinstance(h, Host) else Host.parse(h) for h in hosts)
        )

    @classmethod
    def any(cls) -> AllowHosts:
        """Allow every host."""
        return cls(None)

    @classmethod
    def only(cls, hosts: Iterable[Host | str]) -> AllowHosts:
        """Allow only the listed hosts; strings are parsed with Host.parse."""
        return cls(hosts)

    def verify(self, value: str) -> None:
        """Raise HttpHeaderRejectedError if `value` is not allowed."""
        if self.hosts is not None and not any(h.matches(value) for h in self.hosts):
            raise HttpHeaderRejectedError("host", value)

    def __repr__(self) -> str:
        return "AllowHosts.any()" if self.hosts is None else f"AllowHosts.only({list(self.hosts)!r})"