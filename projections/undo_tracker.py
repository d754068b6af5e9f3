"""Undo eligibility derived from the full signal history.

``add`` and ``remove`` are the reversible operations. An ``undo`` signal
names its target by id; targets already named are consumed and are never
offered again. Recording an undo only appends a compensating signal, the
targeted record stays as written.
"""

from __future__ import annotations

from typing import FrozenSet, Optional, Sequence

from core.logging_setup import get_logger
from schemas.payloads import UndoPayload
from schemas.signals import Signal, SignalType
from storage.signal_store import SignalStore

logger = get_logger(__name__)

REVERSIBLE_TYPES = frozenset({SignalType.ADD, SignalType.REMOVE})


class UndoUnavailable(Exception):
    """Raised when no reversible operation is left to undo."""


def consumed_undo_ids(signals: Sequence[Signal]) -> FrozenSet[str]:
    """Collect every ``target_id`` already named by an ``undo`` signal."""
    consumed = set()
    for signal in signals:
        if signal.type == SignalType.UNDO:
            target = signal.field("target_id")
            if isinstance(target, str):
                consumed.add(target)
    return frozenset(consumed)


def next_undo_candidate(signals: Sequence[Signal]) -> Optional[Signal]:
    """Return the most recent ``add``/``remove`` not yet undone, if any."""
    consumed = consumed_undo_ids(signals)
    for signal in reversed(signals):
        if signal.type in REVERSIBLE_TYPES and signal.id not in consumed:
            return signal
    return None


def undo_payload(target: Signal) -> UndoPayload:
    """Build the compensating payload for ``target``.

    Raises:
        UndoUnavailable: If the target carries no ``gem`` name.
    """
    gem = target.field("gem")
    if not isinstance(gem, str) or not gem:
        raise UndoUnavailable(f"signal {target.id} has no gem name to restore")
    return UndoPayload(target_id=target.id or "", target_type=target.type_token, gem=gem)


def record_undo(store: SignalStore) -> Signal:
    """Append the undo signal for the next candidate.

    Manifest edits that realize the undo belong to the caller; this only makes
    the compensation part of the history.

    Returns:
        The appended ``undo`` signal.

    Raises:
        UndoUnavailable: If there is nothing left to undo.
    """
    target = next_undo_candidate(store.read_all())
    if target is None:
        raise UndoUnavailable("no reversible operation (add/remove) to undo")
    signal = store.record(SignalType.UNDO, undo_payload(target))
    logger.info("undo_recorded", id=signal.id, target_id=target.id, target_type=target.type_token)
    return signal


__all__ = [
    "REVERSIBLE_TYPES",
    "UndoUnavailable",
    "consumed_undo_ids",
    "next_undo_candidate",
    "undo_payload",
    "record_undo",
]
