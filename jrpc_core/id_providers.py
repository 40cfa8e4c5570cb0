"""Subscription ID providers."""

from __future__ import annotations

import abc
import random
import string

SubscriptionId = int | str

_JS_NUM_MASK = (1 << 53) - 1
_ALPHANUMERIC = string.ascii_letters + string.digits


class IdProvider(abc.ABC):
    """Generates subscription IDs."""

    @abc.abstractmethod
    def next_id(self) -> SubscriptionId:
        """Return the next ID for a subscription."""


class RandomIntegerIdProvider(IdProvider):
    """Random integers that fit in a JavaScript number."""

    def next_id(self) -> int:
        return random.getrandbits(64) & _JS_NUM_MASK


class RandomStringIdProvider(IdProvider):
    """Random alphanumeric strings of a fixed length."""

    def __init__(self, length: int) -> None:
        self.length = length

    def next_id(self) -> str:
        return "".join(random.choices(_ALPHANUMERIC, k=self.length))

    def __repr__(self) -> str:
        return f"RandomStringIdProvider(length={self.length})"


class NoopIdProvider(IdProvider):
    """Always returns 0; for servers without subscriptions."""

    def next_id(self) -> int:
        return 0