"""Append-only JSONL signal store.

Provides durable, append-only persistence for project signals. Each record is
one compact JSON object per line in ``<root>/.arc/signals.jsonl``; file order
is the chronological order of the log. The store never interprets payloads.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, List, Mapping

from pydantic import ValidationError

from core.logging_setup import get_logger
from schemas.signals import Signal, SignalKind, new_signal_id, now_timestamp
from storage.errors import AlreadyInitialized, IoFailure, NotInitialized, ParseFailure

logger = get_logger(__name__)

ARC_DIR = ".arc"
SIGNAL_FILE = "signals.jsonl"


def signal_log_path(root: Path) -> Path:
    """Return the log location for a project root."""
    return Path(root) / ARC_DIR / SIGNAL_FILE


class SignalStore:
    """Signal log of one project.

    Instances are the explicit project context for log access: obtain one via
    :meth:`initialize` or :meth:`open`. At most one process may append to a
    given log at a time; no locking is performed.

    Args:
        root: Project root directory.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.arc_dir = self.root / ARC_DIR
        self.path = signal_log_path(self.root)

    @classmethod
    def initialize(cls, root: Path) -> "SignalStore":
        """Create an empty log for ``root``.

        Raises:
            AlreadyInitialized: If the log file already exists.
            IoFailure: If the directory or file cannot be created.
        """
        store = cls(root)
        if store.path.exists():
            raise AlreadyInitialized(store.path)
        try:
            store.arc_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IoFailure(f"cannot create directory {store.arc_dir}: {e}") from e
        try:
            # "x" keeps the guard honest if the file appears in between.
            with open(store.path, "xb"):
                pass
        except FileExistsError as e:
            raise AlreadyInitialized(store.path) from e
        except OSError as e:
            raise IoFailure(f"cannot create signal log {store.path}: {e}") from e
        logger.debug("signal_log_initialized", path=str(store.path))
        return store

    @classmethod
    def open(cls, root: Path) -> "SignalStore":
        """Open the existing log for ``root``.

        Raises:
            NotInitialized: If the log file is absent.
        """
        store = cls(root)
        if not store.path.is_file():
            raise NotInitialized(store.path)
        return store

    def append(self, signal: Signal) -> Signal:
        """Append a single signal.

        Assigns ``id`` and ``timestamp`` when the signal does not carry them.
        The line is flushed and fsynced before returning; failures are raised
        immediately and never retried.

        Args:
            signal: Signal to persist.

        Returns:
            The signal exactly as written.
        """
        update: dict[str, Any] = {}
        if not signal.id:
            update["id"] = new_signal_id()
        if not signal.timestamp:
            update["timestamp"] = now_timestamp()
        if update:
            signal = signal.model_copy(update=update)
        line = signal.to_json().encode("utf-8") + b"\n"
        try:
            with open(self.path, "ab") as f:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise IoFailure(f"cannot append to signal log {self.path}: {e}") from e
        logger.debug("signal_appended", id=signal.id, type=signal.type_token)
        return signal

    def record(self, kind: SignalKind | str, payload: Any = None) -> Signal:
        """Build a signal of ``kind`` and append it.

        Args:
            kind: Type tag or wire token.
            payload: Mapping or pydantic payload model.

        Returns:
            The appended signal, with id and timestamp assigned.
        """
        return self.append(Signal.of(kind, payload))

    def read_all(self) -> List[Signal]:
        """Read every signal in file order.

        Raises:
            ParseFailure: On the first malformed line; nothing is returned.
            IoFailure: If the file cannot be read.
        """
        try:
            with open(self.path, "rb") as f:
                lines = f.read().split(b"\n")
        except OSError as e:
            raise IoFailure(f"cannot read signal log {self.path}: {e}") from e

        out: List[Signal] = []
        for number, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue
            out.append(self._parse_line(raw, number))
        logger.debug("signal_log_read", path=str(self.path), count=len(out))
        return out

    def _parse_line(self, raw: bytes, number: int) -> Signal:
        try:
            signal = Signal.model_validate_json(raw)
        except ValidationError as e:
            raise ParseFailure(self.path, number, e.errors()[0]["msg"]) from e
        if not signal.id or not signal.timestamp:
            raise ParseFailure(self.path, number, "record lacks id or timestamp")
        return signal


def dump_signals(signals: List[Signal]) -> List[Mapping[str, Any]]:
    """Return signals as JSON-ready dicts, in order."""
    return [s.model_dump(mode="json") for s in signals]


__all__ = ["ARC_DIR", "SIGNAL_FILE", "SignalStore", "signal_log_path", "dump_signals"]
