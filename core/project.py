"""Project context: signal store plus configuration.

A :class:`Project` is created by :func:`init_project` or :func:`open_project`
and passed explicitly to every operation; there is no process-wide handle.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from core.config import ConfigError, load_config, save_config
from core.logging_setup import get_logger
from core.version import __version__
from projections.command_stats import CommandStats, command_stats
from projections.project_state import ProjectState, reconstruct
from projections.undo_tracker import next_undo_candidate
from schemas.config import ArcConfig
from schemas.payloads import InitPayload
from schemas.signals import Signal, SignalType
from storage.errors import IoFailure, SignalStoreError
from storage.signal_store import SignalStore

logger = get_logger(__name__)


@dataclass
class Project:
    root: Path
    store: SignalStore
    config: ArcConfig

    def signals(self) -> List[Signal]:
        return self.store.read_all()

    def state(self) -> ProjectState:
        """Replay the whole log into the current project state."""
        return reconstruct(self.store.read_all())

    def stats(self) -> List[CommandStats]:
        return command_stats(self.state().executions)

    def undo_candidate(self) -> Optional[Signal]:
        return next_undo_candidate(self.store.read_all())


def _discard_empty_log(store: SignalStore) -> None:
    # Leaves the root retryable after a failed init; never touches a log with records.
    try:
        if store.path.stat().st_size == 0:
            store.path.unlink()
    except OSError as e:
        logger.warning("init_rollback_failed", path=str(store.path), error=str(e))


def init_project(root: Path, version: str = __version__, config: ArcConfig | None = None) -> Project:
    """Initialize a project at ``root`` and record its ``init`` signal.

    Raises:
        AlreadyInitialized: If ``root`` already has a signal log.
        ConfigError: If the config file cannot be written. The empty log is
            removed again so init can be retried.
    """
    root = Path(root)
    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise IoFailure(f"cannot create project directory {root}: {e}") from e
    store = SignalStore.initialize(root)
    config = config or ArcConfig()
    try:
        save_config(root, config)
        signal = store.record(
            SignalType.INIT,
            InitPayload(path=str(root), version=version, ruby_version=config.ruby.version),
        )
    except (ConfigError, SignalStoreError):
        _discard_empty_log(store)
        raise
    logger.info("project_initialized", root=str(root), id=signal.id)
    return Project(root=root, store=store, config=config)


def open_project(root: Path) -> Project:
    """Open an initialized project.

    Raises:
        NotInitialized: If ``root`` has no signal log.
    """
    root = Path(root)
    store = SignalStore.open(root)
    return Project(root=root, store=store, config=load_config(root))


__all__ = ["Project", "init_project", "open_project"]
