"""arc-flux CLI entrypoint.

Commands:
- init: create the signal log and record the ``init`` signal
- state: replay the log and summarize the project (or dump raw/JSON/diff views)
- stats: per-command run statistics
- undo: record the compensating signal for the latest add/remove

Inspection surface over the signal log; launching processes and editing the
Gemfile are left to the tools that produce the signals.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from core.config import ConfigError
from core.logging_setup import configure_logging
from core.project import Project, init_project, open_project
from projections.command_stats import CommandStats, command_stats
from projections.history import filter_by_type, last_project_change
from projections.project_state import reconstruct
from projections.undo_tracker import UndoUnavailable, next_undo_candidate, record_undo
from schemas.signals import Signal, SignalType
from storage.errors import SignalStoreError
from storage.signal_store import dump_signals

app = typer.Typer(add_completion=False, help="arc-flux: signal log and state replay for arc projects")
console = Console()


@app.callback()
def _main(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Log level (default WARNING)"),
) -> None:
    configure_logging(log_level)


def fmt_duration(ms: int) -> str:
    if ms < 1_000:
        return f"{ms}ms"
    if ms < 60_000:
        return f"{ms / 1_000:.1f}s"
    return f"{ms // 60_000}m{(ms % 60_000) // 1_000}s"


def fmt_timestamp(ts: str) -> str:
    return ts[:16].replace("T", " ") if len(ts) >= 16 else ts


def _text(value: object) -> str:
    """Render a log-derived value as literal console text."""
    return escape(str(value))


def _fail(message: str) -> typer.Exit:
    console.print(message, style="red", markup=False, soft_wrap=True)
    return typer.Exit(code=1)


def _open(root: Path) -> Project:
    try:
        return open_project(root)
    except (SignalStoreError, ConfigError) as e:
        raise _fail(str(e)) from e


def _read(project: Project) -> List[Signal]:
    try:
        return project.signals()
    except SignalStoreError as e:
        raise _fail(str(e)) from e


def _stats_table(stats: List[CommandStats]) -> Table:
    table = Table(title="Commands")
    table.add_column("Command")
    table.add_column("Runs", justify="right")
    table.add_column("Success", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Avg Time", justify="right")
    for s in stats:
        avg = fmt_duration(s.avg_duration_ms) if s.avg_duration_ms is not None else "—"
        table.add_row(escape(s.command), str(s.total_runs), str(s.successes), str(s.failures or "—"), avg)
    return table


def _render_raw(signals: List[Signal], project: Project) -> None:
    table = Table(title=f"Signals: {len(signals)} entries from {escape(str(project.store.path))}")
    table.add_column("Type")
    table.add_column("ID")
    table.add_column("Payload", overflow="ellipsis", no_wrap=True)
    for s in signals:
        table.add_row(
            escape(s.type_token), escape(s.id or ""), escape(json.dumps(s.payload, sort_keys=True))
        )
    console.print(table)


def _render_diff(signals: List[Signal]) -> None:
    if not signals:
        console.print("No signals found.")
        return
    last = last_project_change(signals)
    if last is None:
        console.print("No project changes found.")
        return
    console.print("Last project change:")
    gem = _text(last.field("gem", "?"))
    if last.type == SignalType.ADD:
        version = last.field("version")
        suffix = f", '{_text(version)}'" if version else ""
        console.print(f"  [green]+ gem '{gem}'{suffix}[/green]")
    elif last.type == SignalType.REMOVE:
        console.print(f"  [red]- gem '{gem}'[/red]")
    elif last.type == SignalType.UNDO:
        console.print(f"  Undo of '{_text(last.field('target_type', '?'))}' ({gem})")
    elif last.type == SignalType.BOOTSTRAP:
        console.print(f"  [green]+ Ruby {_text(last.field('ruby_version', '?'))}[/green]")
    else:
        console.print(f"  Initialized at {_text(last.field('path', '?'))}")
    console.print(f"  Timestamp: {fmt_timestamp(last.timestamp or '')}")
    console.print(f"  Signal ID: {_text(last.id)}")


def _render_full(signals: List[Signal]) -> None:
    state = reconstruct(signals)
    if state.project_path:
        console.print(f"Project:     {escape(state.project_path)}")
    if state.initialized_at:
        console.print(f"Initialized: {fmt_timestamp(state.initialized_at)}")
    console.print(f"Signals:     {state.signal_count}")
    console.print(f"Executions:  {len(state.executions)}")
    last = state.last_execution()
    if last is not None:
        mark = "ok" if last.success else "failed"
        dur = fmt_duration(last.duration_ms) if last.duration_ms is not None else "running"
        console.print(f"Last:        {mark} {escape(last.display_command)} ({dur})")

    stats = command_stats(state.executions)
    if stats:
        console.print(_stats_table(stats))

    failed = state.failed_executions()
    if failed:
        console.print(f"[yellow]Failed operations ({len(failed)}):[/yellow]")
        for e in failed:
            code = str(e.exit_code) if e.exit_code is not None else "?"
            dur = fmt_duration(e.duration_ms) if e.duration_ms is not None else "incomplete"
            console.print(f"  {escape(e.display_command)} (exit: {code}, {dur})")


@app.command()
def init(
    path: Path = typer.Argument(Path("."), resolve_path=True, help="Project root"),
) -> None:
    """Initialize a project: create the signal log and record ``init``."""
    try:
        project = init_project(path)
    except (SignalStoreError, ConfigError) as e:
        raise _fail(str(e)) from e
    console.print(f"Initialized project at {_text(project.root)}")
    console.print(f"Ruby: {escape(project.config.ruby.version)}")


@app.command()
def state(
    as_json: bool = typer.Option(False, "--json", help="Dump signals as JSON"),
    raw: bool = typer.Option(False, "--raw", "-r", help="Table of raw signals"),
    diff: bool = typer.Option(False, "--diff", "-d", help="Show the last project change"),
    type_: Optional[str] = typer.Option(None, "--type", "-t", help="Only signals of this type"),
    root: Path = typer.Option(Path("."), "--root", resolve_path=True, help="Project root"),
) -> None:
    """Replay the signal log and show the current project state."""
    project = _open(root)
    signals = _read(project)
    filtered = filter_by_type(signals, type_) if type_ else signals

    if as_json:
        typer.echo(json.dumps(dump_signals(filtered), indent=2))
        return
    if raw:
        _render_raw(filtered, project)
        return
    if diff:
        _render_diff(signals)
        return
    _render_full(signals)


@app.command()
def stats(
    root: Path = typer.Option(Path("."), "--root", resolve_path=True, help="Project root"),
) -> None:
    """Show per-command statistics, most recently used first."""
    project = _open(root)
    try:
        rows = project.stats()
    except SignalStoreError as e:
        raise _fail(str(e)) from e
    if not rows:
        console.print("No executions recorded.")
        return
    console.print(_stats_table(rows))


@app.command()
def undo(
    dry_run: bool = typer.Option(False, "--dry-run", help="Only show what would be undone"),
    root: Path = typer.Option(Path("."), "--root", resolve_path=True, help="Project root"),
) -> None:
    """Record an undo for the latest add/remove not yet undone."""
    project = _open(root)
    if dry_run:
        target = next_undo_candidate(_read(project))
        if target is None:
            raise _fail("Nothing to undo.")
        gem = _text(target.field("gem", "?"))
        console.print(f"Would undo {escape(target.type_token)} of '{gem}' ({_text(target.id)})")
        return
    try:
        signal = record_undo(project.store)
    except (UndoUnavailable, SignalStoreError) as e:
        raise _fail(str(e)) from e
    target_type, gem = _text(signal.field("target_type")), _text(signal.field("gem"))
    console.print(f"Undo recorded: {target_type} of '{gem}'")


def main() -> int:
    """Entry point for `python -m cli.main`."""
    app()
    return 0


if __name__ == "__main__":
    sys.exit(main())
