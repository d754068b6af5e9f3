"""Projection helpers.

Provides a simple replay loop to build materialized views from signals.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from schemas.signals import Signal


class AppliesSignal(Protocol):
    def apply(self, signal: Signal) -> None:  # pragma: no cover - Protocol definition only
        ...


def replay(projection: AppliesSignal, signals: Iterable[Signal]) -> int:
    """Replay signals into the projection, in order.

    Args:
        projection: Object exposing an ``apply(signal)`` method.
        signals: Signal history, oldest first.

    Returns:
        The number of signals applied.
    """
    count = 0
    for signal in signals:
        projection.apply(signal)
        count += 1
    return count
