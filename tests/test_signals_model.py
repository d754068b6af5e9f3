from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from schemas import payloads as pl
from schemas.signals import (
    CustomType,
    Signal,
    SignalType,
    end_type,
    new_signal_id,
    now_timestamp,
    parse_signal_type,
    signal_type_token,
    start_type,
)


def test_known_tokens_parse_to_closed_set() -> None:
    for kind in SignalType:
        assert parse_signal_type(kind.value) is kind
        assert signal_type_token(kind) == kind.value


def test_unknown_token_is_preserved() -> None:
    kind = parse_signal_type("shell_exit")
    assert kind == CustomType("shell_exit")
    assert signal_type_token(kind) == "shell_exit"


def test_start_end_families() -> None:
    assert SignalType.INSTALL_START.is_start
    assert SignalType.RUN_END.is_end
    assert SignalType.EXEC_END.family == "exec"
    assert SignalType.ADD.family is None
    assert start_type("run") is SignalType.RUN_START
    assert end_type("install") is SignalType.INSTALL_END


def test_wire_shape() -> None:
    s = Signal(id="01H", type="undo", payload={"target_id": "x"}, timestamp="2024-01-01T00:00:00.000000Z")
    data = json.loads(s.to_json())
    assert data == {
        "id": "01H",
        "type": "undo",
        "payload": {"target_id": "x"},
        "timestamp": "2024-01-01T00:00:00.000000Z",
    }
    assert Signal.from_json(s.to_json()) == s


def test_custom_round_trip() -> None:
    s = Signal(id="01H", type="lifecycle_marker", payload=[1, 2], timestamp="t")
    again = Signal.from_json(s.to_json())
    assert again.type == CustomType("lifecycle_marker")
    assert again.is_custom
    assert again.payload == [1, 2]


def test_type_must_be_string() -> None:
    with pytest.raises(ValidationError):
        Signal.model_validate({"id": "a", "type": 3, "payload": {}, "timestamp": "t"})


def test_field_on_non_object_payload() -> None:
    s = Signal(type=SignalType.INIT, payload="text")
    assert s.field("path") is None
    assert s.field("path", "/x") == "/x"


def test_of_accepts_payload_models() -> None:
    s = Signal.of(SignalType.EXEC_END, pl.EndPayload(ref_id="A", exit_code=0, success=True, duration_ms=5))
    assert s.payload == {"ref_id": "A", "exit_code": 0, "success": True, "duration_ms": 5}
    assert s.id is None and s.timestamp is None


def test_payload_extra_fields_pass_through() -> None:
    p = pl.StartPayload(command="bundle", args=["install"], cwd="/p", env_context="isolated")
    assert p.to_payload()["env_context"] == "isolated"


def test_id_and_timestamp_shapes() -> None:
    ids = [new_signal_id() for _ in range(3)]
    assert all(len(i) == 26 for i in ids)
    ts = now_timestamp()
    assert len(ts) == 27 and ts[10] == "T"


def test_custom_type_spelled_like_known_token_normalizes(store) -> None:
    s = Signal(id="A", type=CustomType("add"), payload={"gem": "rails"}, timestamp=now_timestamp())
    assert s.type is SignalType.ADD
    assert not s.is_custom
    assert s == Signal.model_validate_json(s.to_json())
    assert Signal.of(CustomType("exec_start"), {}).type is SignalType.EXEC_START

    store.append(s)
    (row,) = store.read_all()
    assert row == s
