"""Limiting how much of each named resource concurrent calls may use.

Up to eight resources can be registered, each with a capacity and a default
cost. A capacity of 0 leaves that resource unlimited once method costs are
initialized; a cost of 0 means a method does not use the resource.
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from ..errors import (
    MaxResourcesReachedError,
    ResourceAtCapacityError,
    ResourceNameAlreadyTakenError,
)

RESOURCE_COUNT = 8
_U16_MAX = 0xFFFF
_UNKNOWN_LABEL = "<UNKNOWN>"


def _check_u16(value: int, what: str) -> int:
    if not 0 <= value <= _U16_MAX:
        raise ValueError(f"{what} must be between 0 and {_U16_MAX}, got {value}")
    return value


def _to_table(units: Sequence[int]) -> list[int]:
    if len(units) > RESOURCE_COUNT:
        raise ValueError(f"at most {RESOURCE_COUNT} resource units can be given")
    table = [_check_u16(u, "units") for u in units]
    return table + [0] * (RESOURCE_COUNT - len(table))


class _Totals:
    """Units currently in use, shared by resources and their guards."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.values = [0] * RESOURCE_COUNT


class Resources:
    """Registered resources with their capacities, default costs and current use."""

    def __init__(self) -> None:
        self._totals = _Totals()
        self.capacities: list[int] = [0] * RESOURCE_COUNT
        self.defaults: list[int] = [0] * RESOURCE_COUNT
        self.labels: list[str] = []

    def register(self, label: str, capacity: int, default: int) -> None:
        """Register a resource kind; fails on a taken label or past eight resources."""
        _check_u16(capacity, "capacity")
        _check_u16(default, "default")
        if label in self.labels:
            raise ResourceNameAlreadyTakenError(label)
        if len(self.labels) >= RESOURCE_COUNT:
            raise MaxResourcesReachedError()
        idx = len(self.labels)
        self.labels.append(label)
        self.capacities[idx] = capacity
        self.defaults[idx] = default

    def claim(self, units: Sequence[int]) -> ResourceGuard:
        """Claim `units` of each resource, by index; missing trailing entries count as 0.

        Raises ResourceAtCapacityError if any total would pass its capacity.
        """
        table = _to_table(units)
        with self._totals.lock:
            new_totals = []
            for idx, (current, claimed) in enumerate(zip(self._totals.values, table)):
                total = current + claimed
                if total > _U16_MAX or total > self.capacities[idx]:
                    label = self.labels[idx] if idx < len(self.labels) else _UNKNOWN_LABEL
                    raise ResourceAtCapacityError(label)
                new_totals.append(total)
            self._totals.values = new_totals
        return ResourceGuard(self._totals, table)

    def in_use(self) -> list[int]:
        """Units currently claimed for each resource index."""
        with self._totals.lock:
            return list(self._totals.values)

    def __repr__(self) -> str:
        return (
            f"Resources(labels={self.labels!r}, capacities={self.capacities!r}, "
            f"defaults={self.defaults!r})"
        )


class ResourceGuard:
    """Claimed resource units; they are given back by `release` or on leaving a `with`."""

    def __init__(self, totals: _Totals, units: list[int]) -> None:
        self._totals = totals
        self._units = units
        self._released = False

    @property
    def units(self) -> tuple[int, ...]:
        return tuple(self._units)

    def release(self) -> None:
        """Give the units back; later calls do nothing."""
        with self._totals.lock:
            if self._released:
                return
            self._released = True
            self._totals.values = [
                total - claimed for total, claimed in zip(self._totals.values, self._units)
            ]

    def __enter__(self) -> ResourceGuard:
        return self

    def __exit__(self, *args: object) -> None:
        self.release()