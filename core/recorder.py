"""Start/end recording around an external action.

A process-execution collaborator brackets its own launch with these calls:
the start signal is durable before anything runs, and the end signal names
the start by id. When the process (or the collaborator) dies in between, the
log simply holds an unmatched start, which replay reports as an orphan.

Example::

    recorder = ExecutionRecorder(store)
    with recorder.track("exec", "rspec", ["spec/models"], cwd) as handle:
        handle.exit_code = subprocess.call(["rspec", "spec/models"])
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from core.logging_setup import get_logger
from schemas.payloads import EndPayload, StartPayload
from schemas.signals import Signal, end_type, start_type
from storage.signal_store import SignalStore

logger = get_logger(__name__)

FAMILIES = ("exec", "install", "run")
# Exit code recorded when the tracked body raises before setting one.
FAILED_EXIT_CODE = 1


@dataclass
class ExecutionHandle:
    start: Signal
    exit_code: Optional[int] = None
    end: Optional[Signal] = field(default=None, repr=False)


class ExecutionRecorder:
    """Appends correlated ``<family>_start`` / ``<family>_end`` pairs.

    Args:
        store: Signal store of the project.
    """

    def __init__(self, store: SignalStore) -> None:
        self.store = store

    def start(
        self,
        family: str,
        command: str,
        args: Sequence[str] = (),
        cwd: Path | str = "",
        **extra: Any,
    ) -> Signal:
        """Record the start; call strictly before launching."""
        if family not in FAMILIES:
            raise ValueError(f"unknown execution family: {family!r}")
        payload = StartPayload(command=command, args=list(args), cwd=str(cwd), **extra)
        signal = self.store.record(start_type(family), payload)
        logger.debug("execution_started", id=signal.id, family=family, command=command)
        return signal

    def finish(self, start: Signal, exit_code: Optional[int], duration_ms: Optional[int]) -> Signal:
        """Record the end for ``start``; call strictly after termination."""
        family = getattr(start.type, "family", None)
        if family is None or not start.type.is_start:  # type: ignore[union-attr]
            raise ValueError(f"signal {start.id} is not a start signal")
        payload = EndPayload(
            ref_id=start.id or "",
            exit_code=exit_code,
            success=exit_code == 0,
            duration_ms=duration_ms,
        )
        signal = self.store.record(end_type(family), payload)
        logger.debug("execution_finished", id=signal.id, ref_id=start.id, exit_code=exit_code)
        return signal

    @contextmanager
    def track(
        self,
        family: str,
        command: str,
        args: Sequence[str] = (),
        cwd: Path | str = "",
        **extra: Any,
    ) -> Iterator[ExecutionHandle]:
        """Bracket a block with start/end signals and measure its duration.

        The block sets ``handle.exit_code``. If it raises, the end is recorded
        as a failure and the exception propagates.
        """
        handle = ExecutionHandle(start=self.start(family, command, args, cwd, **extra))
        began = time.monotonic()
        try:
            yield handle
        except BaseException:
            if handle.exit_code is None or handle.exit_code == 0:
                handle.exit_code = FAILED_EXIT_CODE
            raise
        finally:
            elapsed = int((time.monotonic() - began) * 1000)
            handle.end = self.finish(handle.start, handle.exit_code, elapsed)


def command_line(argv: Sequence[str]) -> tuple[str, List[str]]:
    """Split an argv into ``(command, args)`` as stored in start payloads."""
    if not argv:
        raise ValueError("empty command line")
    return argv[0], list(argv[1:])


__all__ = ["FAMILIES", "ExecutionHandle", "ExecutionRecorder", "command_line"]
