from __future__ import annotations

import json
from pathlib import Path

import pytest

from schemas.payloads import AddPayload
from schemas.signals import CustomType, Signal, SignalType
from storage.errors import AlreadyInitialized, IoFailure, NotInitialized, ParseFailure
from storage.signal_store import SignalStore, signal_log_path


def test_initialize_creates_empty_log(tmp_path: Path) -> None:
    store = SignalStore.initialize(tmp_path)
    assert store.path == signal_log_path(tmp_path)
    assert store.path.is_file()
    assert store.read_all() == []


def test_initialize_twice_fails(tmp_path: Path) -> None:
    SignalStore.initialize(tmp_path)
    with pytest.raises(AlreadyInitialized):
        SignalStore.initialize(tmp_path)


def test_open_without_log_fails(tmp_path: Path) -> None:
    with pytest.raises(NotInitialized):
        SignalStore.open(tmp_path)


def test_append_assigns_id_and_timestamp(store: SignalStore) -> None:
    s = store.append(Signal.of(SignalType.ADD, AddPayload(gem="rails", version="7.1")))
    assert s.id and len(s.id) == 26
    assert s.timestamp and len(s.timestamp) == 27 and s.timestamp.endswith("Z")

    (row,) = store.read_all()
    assert row == s
    assert row.payload == {"gem": "rails", "version": "7.1"}


def test_append_keeps_preassigned_fields(store: SignalStore, make_signal) -> None:
    original = make_signal("exec_start", {"command": "rspec", "args": [], "cwd": "/p"}, id="A")
    written = store.append(original)
    assert written == original
    assert store.read_all()[-1] == original


def test_round_trip_leaves_prior_records(store: SignalStore, make_signal) -> None:
    first = store.append(make_signal("init", {"path": "/p", "version": "1.0.0"}))
    before = store.read_all()
    last = store.append(make_signal("remove", {"gem": "puma"}))
    after = store.read_all()
    assert after[:-1] == before == [first]
    assert after[-1] == last


def test_order_preserved(store: SignalStore) -> None:
    written = [store.record(SignalType.ADD, {"gem": f"g{i}"}) for i in range(10)]
    assert store.read_all() == written


def test_one_line_per_record(store: SignalStore) -> None:
    store.record(SignalType.ADD, {"gem": "a", "note": "multi\nline"})
    store.record(SignalType.REMOVE, {"gem": "a"})
    lines = store.path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    assert set(json.loads(lines[0])) == {"id", "type", "payload", "timestamp"}


def test_custom_type_survives(store: SignalStore) -> None:
    s = store.record("shell_enter", {"shell": "/bin/zsh"})
    (row,) = store.read_all()
    assert row.type == CustomType("shell_enter")
    assert row.type_token == "shell_enter"
    assert row == s


def test_malformed_line_aborts_read(store: SignalStore) -> None:
    store.record(SignalType.ADD, {"gem": "a"})
    with open(store.path, "a", encoding="utf-8") as f:
        f.write("{not json\n")
    store.record(SignalType.ADD, {"gem": "b"})

    with pytest.raises(ParseFailure) as ei:
        store.read_all()
    assert ei.value.line_number == 2


def test_record_without_id_is_malformed(store: SignalStore) -> None:
    with open(store.path, "a", encoding="utf-8") as f:
        f.write(json.dumps({"type": "add", "payload": {}, "timestamp": "x"}) + "\n")
    with pytest.raises(ParseFailure) as ei:
        store.read_all()
    assert ei.value.line_number == 1


def test_read_after_append_sees_everything(tmp_path: Path) -> None:
    writer = SignalStore.initialize(tmp_path)
    reader = SignalStore.open(tmp_path)
    s = writer.record(SignalType.BOOTSTRAP, {"ruby_version": "3.3.6"})
    assert reader.read_all() == [s]


def test_initialize_over_plain_file_is_io_failure(tmp_path: Path) -> None:
    (tmp_path / ".arc").write_text("not a directory", encoding="utf-8")
    with pytest.raises(IoFailure) as excinfo:
        SignalStore.initialize(tmp_path)
    assert isinstance(excinfo.value.__cause__, OSError)


def test_append_and_read_wrap_os_errors(store: SignalStore) -> None:
    store.path.unlink()
    store.path.mkdir()

    with pytest.raises(IoFailure) as excinfo:
        store.record(SignalType.ADD, AddPayload(gem="rails"))
    assert isinstance(excinfo.value.__cause__, OSError)
    assert str(store.path) in str(excinfo.value)

    with pytest.raises(IoFailure) as excinfo:
        store.read_all()
    assert isinstance(excinfo.value.__cause__, OSError)
