"""Pytest configuration and shared fixtures.

Ensures the repository root is importable (so tests can import packages like
`storage`, `projections`, `cli` without an editable install), and provides a
fresh signal store plus a factory for signals with deterministic ids and
timestamps.
"""

from __future__ import annotations

import itertools
import sys
from pathlib import Path
from typing import Any

import pytest

# Make repo root importable for tests (avoid requiring `pip install -e .`).
_REPO_ROOT = Path(__file__).resolve().parent.parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from schemas.signals import Signal  # noqa: E402
from storage.signal_store import SignalStore  # noqa: E402


@pytest.fixture
def store(tmp_path: Path) -> SignalStore:
    """An initialized, empty signal store under ``tmp_path``."""
    return SignalStore.initialize(tmp_path)


@pytest.fixture
def make_signal():
    """Factory for signals with explicit ids and increasing timestamps.

    Example:
        make_signal("exec_start", {"command": "rspec"}, id="A")
    """
    counter = itertools.count(1)

    def _make(kind: str, payload: Any = None, *, id: str | None = None, ts: str | None = None) -> Signal:
        n = next(counter)
        return Signal(
            id=id or f"S{n:04d}",
            type=kind,
            payload=payload if payload is not None else {},
            timestamp=ts or f"2024-01-01T00:{n // 60:02d}:{n % 60:02d}.000000Z",
        )

    return _make
