"""Per-command aggregate statistics over reconstructed executions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from projections.project_state import Execution


@dataclass(frozen=True)
class CommandStats:
    command: str
    total_runs: int
    successes: int
    failures: int
    avg_duration_ms: Optional[int]
    last_run: str

    @property
    def success_rate(self) -> float:
        return self.successes / self.total_runs if self.total_runs else 0.0


def _aggregate(command: str, runs: List[Execution]) -> CommandStats:
    successes = sum(1 for e in runs if e.success)
    durations = [e.duration_ms for e in runs if e.duration_ms is not None]
    return CommandStats(
        command=command,
        total_runs=len(runs),
        successes=successes,
        failures=len(runs) - successes,
        # Orphans and unmatched ends without a duration stay out of the mean.
        avg_duration_ms=sum(durations) // len(durations) if durations else None,
        # Fixed-width timestamps compare correctly as strings.
        last_run=max(e.started_at for e in runs),
    )


def command_stats(executions: Iterable[Execution]) -> List[CommandStats]:
    """Group executions by literal command string.

    Returns:
        One entry per command, most recently used first; equal ``last_run``
        values are ordered by command name.
    """
    groups: Dict[str, List[Execution]] = {}
    for execution in executions:
        groups.setdefault(execution.command, []).append(execution)

    stats = [_aggregate(command, runs) for command, runs in groups.items()]
    stats.sort(key=lambda s: s.command)
    stats.sort(key=lambda s: s.last_run, reverse=True)
    return stats


__all__ = ["CommandStats", "command_stats"]
