"""Project state projection.

Rebuilds the observable project state from the full signal history in a
single forward pass: the latest ``init`` facts plus one :class:`Execution` per
start/end correlation. The result is a pure function of the signal sequence.

Correlation rules:
- every ``*_start`` waits in a pending map keyed by its own id;
- an ``*_end`` closes the pending start named by its ``ref_id``; an end whose
  reference is missing or unknown still yields an execution with placeholder
  command fields, so counts stay a conservative lower bound;
- starts still pending when the log ends are orphans (crashed or killed
  processes) and are emitted last, ordered by ``started_at`` then id.
Every other type, including custom tags, is inert here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.logging_setup import get_logger
from projections.base import replay
from schemas.signals import Signal, SignalType

logger = get_logger(__name__)

UNKNOWN_COMMAND = "unknown"


@dataclass(frozen=True)
class Execution:
    command: str
    args: Tuple[str, ...]
    cwd: str
    exit_code: Optional[int]
    success: bool
    duration_ms: Optional[int]
    started_at: str
    ended_at: Optional[str]
    start_id: str
    kind: str = "exec"

    @property
    def is_orphan(self) -> bool:
        """True when no end was ever observed for the start."""
        return self.ended_at is None

    @property
    def display_command(self) -> str:
        return " ".join([self.command, *self.args])


@dataclass
class ProjectState:
    """State rebuilt from the signal log."""

    project_path: Optional[str] = None
    version: Optional[str] = None
    initialized_at: Optional[str] = None
    executions: List[Execution] = field(default_factory=list)
    signal_count: int = 0

    def last_execution(self) -> Optional[Execution]:
        return self.executions[-1] if self.executions else None

    def failed_executions(self) -> List[Execution]:
        return [e for e in self.executions if not e.success]


def _str_field(signal: Signal, name: str, default: str) -> str:
    value = signal.field(name)
    return value if isinstance(value, str) else default


def _args_field(signal: Signal) -> Tuple[str, ...]:
    value = signal.field("args")
    if not isinstance(value, list):
        return ()
    return tuple(a for a in value if isinstance(a, str))


def _int_field(signal: Signal, name: str) -> Optional[int]:
    value: Any = signal.field(name)
    # bool is an int subclass; a JSON true is not an exit code
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


@dataclass
class StateReconstructor:
    """Replays signals into a :class:`ProjectState`.

    Feed signals through :meth:`apply` (or :func:`projections.base.replay`)
    and call :meth:`finish` once, after the last signal.
    """

    state: ProjectState = field(default_factory=ProjectState)
    pending: Dict[str, Signal] = field(default_factory=dict)

    def apply(self, signal: Signal) -> None:
        """Apply a single signal to the derived state."""
        self.state.signal_count += 1
        kind = signal.type
        if kind == SignalType.INIT:
            if self.state.initialized_at is not None:
                logger.debug("init_repeated", id=signal.id)
            # Last init wins.
            self.state.initialized_at = signal.timestamp
            self.state.project_path = _str_field(signal, "path", "") or None
            self.state.version = _str_field(signal, "version", "") or None
        elif isinstance(kind, SignalType) and kind.is_start:
            start_id = signal.id or ""
            if start_id in self.pending:
                logger.debug("start_id_repeated", id=start_id)
            self.pending[start_id] = signal
        elif isinstance(kind, SignalType) and kind.is_end:
            self.state.executions.append(self._close(signal))

    def _close(self, end: Signal) -> Execution:
        ref_id = end.field("ref_id")
        start = self.pending.pop(ref_id, None) if isinstance(ref_id, str) else None
        duration = _int_field(end, "duration_ms")
        if duration is not None and duration < 0:
            duration = None
        success = end.field("success")
        common = dict(
            exit_code=_int_field(end, "exit_code"),
            success=success if isinstance(success, bool) else False,
            duration_ms=duration,
            ended_at=end.timestamp,
        )
        if start is None:
            logger.debug("end_unmatched", id=end.id, ref_id=ref_id)
            return Execution(
                command=UNKNOWN_COMMAND,
                args=(),
                cwd="",
                started_at="",
                start_id="",
                kind=end.type.family or "exec",  # type: ignore[union-attr]
                **common,
            )
        return Execution(
            command=_str_field(start, "command", UNKNOWN_COMMAND),
            args=_args_field(start),
            cwd=_str_field(start, "cwd", ""),
            started_at=start.timestamp or "",
            start_id=start.id or "",
            kind=start.type.family or "exec",  # type: ignore[union-attr]
            **common,
        )

    def _orphan(self, start: Signal) -> Execution:
        return Execution(
            command=_str_field(start, "command", UNKNOWN_COMMAND),
            args=_args_field(start),
            cwd=_str_field(start, "cwd", ""),
            exit_code=None,
            success=False,
            duration_ms=None,
            started_at=start.timestamp or "",
            ended_at=None,
            start_id=start.id or "",
            kind=start.type.family or "exec",  # type: ignore[union-attr]
        )

    def finish(self) -> ProjectState:
        """Materialize orphans and return the final state."""
        orphans = sorted(self.pending.values(), key=lambda s: (s.timestamp or "", s.id or ""))
        if orphans:
            logger.debug("orphan_starts", count=len(orphans))
        self.state.executions.extend(self._orphan(s) for s in orphans)
        self.pending.clear()
        return self.state


def reconstruct(signals: Iterable[Signal]) -> ProjectState:
    """Replay the full history and return the derived project state."""
    reconstructor = StateReconstructor()
    replay(reconstructor, signals)
    return reconstructor.finish()


__all__ = ["Execution", "ProjectState", "StateReconstructor", "reconstruct", "UNKNOWN_COMMAND"]
