"""Exception types raised by the signal store."""

from __future__ import annotations

from pathlib import Path


class SignalStoreError(Exception):
    """Base class for signal log failures."""


class NotInitialized(SignalStoreError):
    """Raised when opening a project whose signal log does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"no signal log at {path}; run `arc init` first")
        self.path = path


class AlreadyInitialized(SignalStoreError):
    """Raised when initializing over an existing signal log."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"signal log already exists at {path}")
        self.path = path


class IoFailure(SignalStoreError):
    """Raised when the underlying filesystem read or write fails."""


class ParseFailure(SignalStoreError):
    """Raised when a log line is not a valid signal record.

    The whole read is aborted; ``line_number`` is 1-based.
    """

    def __init__(self, path: Path, line_number: int, reason: str = "") -> None:
        msg = f"{path}: malformed signal on line {line_number}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)
        self.path = path
        self.line_number = line_number
