"""Signal record model and type tags.

A signal is one immutable line of the project log. The ``type`` tag is a closed
set of known operations plus an open ``CustomType`` arm so that newer writers
can introduce markers (``shell_enter``, ``shell_exit``, ...) that older readers
carry through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, PlainSerializer, PlainValidator
from ulid import ULID

T = TypeVar("T", bound="_JsonMixin")

# Fixed width, zero padded, always UTC: lexical order == chronological order.
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


class SignalType(str, Enum):
    INIT = "init"
    EXEC_START = "exec_start"
    EXEC_END = "exec_end"
    INSTALL_START = "install_start"
    INSTALL_END = "install_end"
    RUN_START = "run_start"
    RUN_END = "run_end"
    ADD = "add"
    REMOVE = "remove"
    BOOTSTRAP = "bootstrap"
    UNDO = "undo"

    @property
    def is_start(self) -> bool:
        return self in _START_TYPES

    @property
    def is_end(self) -> bool:
        return self in _END_TYPES

    @property
    def family(self) -> Optional[str]:
        """Execution family (``exec``/``install``/``run``) for start/end tags."""
        if self.is_start or self.is_end:
            return self.value.rsplit("_", 1)[0]
        return None


_START_TYPES = frozenset({SignalType.EXEC_START, SignalType.INSTALL_START, SignalType.RUN_START})
_END_TYPES = frozenset({SignalType.EXEC_END, SignalType.INSTALL_END, SignalType.RUN_END})


@dataclass(frozen=True)
class CustomType:
    """Any tag outside :class:`SignalType`, kept verbatim."""

    name: str

    def __str__(self) -> str:
        return self.name


SignalKind = Union[SignalType, CustomType]


def parse_signal_type(token: str) -> SignalKind:
    """Map a wire token to a type tag; unknown tokens never fail."""
    try:
        return SignalType(token)
    except ValueError:
        return CustomType(token)


def signal_type_token(kind: SignalKind) -> str:
    if isinstance(kind, SignalType):
        return kind.value
    return kind.name


def _coerce_kind(value: Any) -> SignalKind:
    if isinstance(value, SignalType):
        return value
    if isinstance(value, CustomType):
        # A custom tag spelled like a known token is that known type.
        return parse_signal_type(value.name)
    if isinstance(value, str):
        return parse_signal_type(value)
    raise ValueError("signal type must be a string token")


SignalTypeField = Annotated[
    SignalKind,
    PlainValidator(_coerce_kind),
    PlainSerializer(signal_type_token, return_type=str),
]


def start_type(family: str) -> SignalType:
    return SignalType(f"{family}_start")


def end_type(family: str) -> SignalType:
    return SignalType(f"{family}_end")


def new_signal_id() -> str:
    """Return a fresh ULID string (sortable by creation time)."""
    return str(ULID())


def now_timestamp() -> str:
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


class _JsonMixin(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls: type[T], data: str | bytes) -> T:
        return cls.model_validate_json(data)


class Signal(_JsonMixin):
    """One record of the signal log.

    ``id`` and ``timestamp`` stay ``None`` until the store assigns them on
    append; callers may also pre-assign both.
    """

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    type: SignalTypeField
    payload: Any = None
    timestamp: Optional[str] = None

    @property
    def type_token(self) -> str:
        return signal_type_token(self.type)

    @property
    def is_custom(self) -> bool:
        return isinstance(self.type, CustomType)

    def field(self, name: str, default: Any = None) -> Any:
        """Read one payload field; non-object payloads have no fields."""
        if isinstance(self.payload, dict):
            return self.payload.get(name, default)
        return default

    @classmethod
    def of(cls, kind: SignalKind | str, payload: Any = None) -> "Signal":
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump(mode="json")
        return cls(type=kind, payload=payload if payload is not None else {})


__all__ = [
    "TIMESTAMP_FORMAT",
    "SignalType",
    "CustomType",
    "SignalKind",
    "Signal",
    "parse_signal_type",
    "signal_type_token",
    "start_type",
    "end_type",
    "new_signal_id",
    "now_timestamp",
]
