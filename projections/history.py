"""Audit views over the raw signal history."""

from __future__ import annotations

from typing import List, Optional, Sequence

from schemas.signals import Signal, SignalType

# Signals that change the project itself rather than record a run.
PROJECT_CHANGE_TYPES = frozenset(
    {SignalType.INIT, SignalType.ADD, SignalType.REMOVE, SignalType.UNDO, SignalType.BOOTSTRAP}
)


def filter_by_type(signals: Sequence[Signal], token: str) -> List[Signal]:
    """Signals whose wire token equals ``token``; custom tags included."""
    return [s for s in signals if s.type_token == token]


def last_project_change(signals: Sequence[Signal]) -> Optional[Signal]:
    for signal in reversed(signals):
        if signal.type in PROJECT_CHANGE_TYPES:
            return signal
    return None
