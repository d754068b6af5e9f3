from __future__ import annotations

import pytest

from core.recorder import ExecutionRecorder, command_line
from projections.project_state import reconstruct
from schemas.signals import SignalType
from storage.signal_store import SignalStore


def test_start_then_finish(store: SignalStore) -> None:
    recorder = ExecutionRecorder(store)
    start = recorder.start("install", "bundle", ["install"], cwd="/proj", env_context="isolated")
    assert store.read_all() == [start]

    end = recorder.finish(start, exit_code=0, duration_ms=1200)
    assert end.type is SignalType.INSTALL_END
    assert end.payload == {"ref_id": start.id, "exit_code": 0, "success": True, "duration_ms": 1200}

    (e,) = reconstruct(store.read_all()).executions
    assert (e.command, e.args, e.cwd, e.kind) == ("bundle", ("install",), "/proj", "install")
    assert e.success


def test_track_records_exit_code(store: SignalStore) -> None:
    recorder = ExecutionRecorder(store)
    with recorder.track("exec", "rspec", ["spec"], cwd="/proj") as handle:
        handle.exit_code = 3
    assert handle.end is not None
    assert handle.end.field("success") is False

    (e,) = reconstruct(store.read_all()).executions
    assert e.exit_code == 3
    assert e.duration_ms is not None and e.duration_ms >= 0


def test_track_records_failure_and_reraises(store: SignalStore) -> None:
    recorder = ExecutionRecorder(store)
    with pytest.raises(RuntimeError):
        with recorder.track("run", "rails", ["server"]):
            raise RuntimeError("launch failed")

    start, end = store.read_all()
    assert start.type is SignalType.RUN_START
    assert end.type is SignalType.RUN_END
    assert end.field("ref_id") == start.id
    assert end.field("exit_code") == 1


def test_unterminated_start_is_orphan(store: SignalStore) -> None:
    ExecutionRecorder(store).start("exec", "rake", ["db:migrate"])
    (e,) = reconstruct(store.read_all()).executions
    assert e.is_orphan and not e.success


def test_rejects_unknown_family_and_non_start(store: SignalStore) -> None:
    recorder = ExecutionRecorder(store)
    with pytest.raises(ValueError):
        recorder.start("deploy", "cap")
    add = store.record(SignalType.ADD, {"gem": "a"})
    with pytest.raises(ValueError):
        recorder.finish(add, 0, 1)


def test_command_line() -> None:
    assert command_line(["rspec", "-f", "d"]) == ("rspec", ["-f", "d"])
    with pytest.raises(ValueError):
        command_line([])
